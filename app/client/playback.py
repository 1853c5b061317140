from __future__ import annotations

import logging
import threading
from typing import Callable, Optional, Protocol

logger = logging.getLogger("crop_advisory.playback")


class PlaybackHandle(Protocol):
    def stop(self) -> None: ...


class AudioPlayer(Protocol):
    def play(self, audio: bytes, on_finished: Callable[[], None]) -> PlaybackHandle: ...


class SpeechPlayback:
    """One speech session at a time.

    Starting new speech cancels whatever is playing or still being
    synthesized; a synthesis result that arrives after a stop is dropped.
    """

    def __init__(self, synthesize: Callable[[str, str], Optional[bytes]], player: AudioPlayer):
        self._synthesize = synthesize
        self._player = player
        self._lock = threading.RLock()
        self._generation = 0
        self._handle: Optional[PlaybackHandle] = None
        self.speaking = False

    def speak(self, text: str, language: str) -> bool:
        if not (text or "").strip():
            return False
        with self._lock:
            self._stop_locked()
            gen = self._generation
            self.speaking = True

        try:
            audio = self._synthesize(text, language)
        except Exception:
            logger.exception("Speech synthesis failed")
            audio = None

        with self._lock:
            if gen != self._generation:
                return False
            if not audio:
                self.speaking = False
                return False
            self._handle = self._player.play(audio, lambda: self._finished(gen))
            return True

    def toggle(self, text: str, language: str) -> bool:
        """Speaker button: stop if speaking, otherwise start."""
        with self._lock:
            if self.speaking:
                self._stop_locked()
                return False
        return self.speak(text, language)

    def stop(self) -> None:
        with self._lock:
            self._stop_locked()

    def _finished(self, gen: int) -> None:
        with self._lock:
            if gen == self._generation:
                self._handle = None
                self.speaking = False

    def _stop_locked(self) -> None:
        self._generation += 1
        handle, self._handle = self._handle, None
        self.speaking = False
        if handle is not None:
            try:
                handle.stop()
            except Exception:
                logger.exception("Error stopping audio")
