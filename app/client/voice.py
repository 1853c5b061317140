from __future__ import annotations

import logging
from typing import Callable, Optional, Protocol

from app.core.languages import DEFAULT_LANGUAGE, speech_locale

logger = logging.getLogger("crop_advisory.voice")


class VoiceUnavailable(RuntimeError):
    pass


class Recognizer(Protocol):
    def start(self, locale: str, on_result: Callable[[str, bool], None]) -> None: ...

    def stop(self) -> None: ...


class VoiceCapture:
    """Start/stop voice session feeding final transcripts to field extraction."""

    def __init__(
        self,
        recognizer: Optional[Recognizer],
        extract: Callable[[str, str], dict],
        on_fields: Callable[[dict], None],
        language: str = DEFAULT_LANGUAGE,
    ):
        self._recognizer = recognizer
        self._extract = extract
        self._on_fields = on_fields
        self.language = language
        self.listening = False
        self.interim = ""
        self._last_processed = ""

    @property
    def available(self) -> bool:
        return self._recognizer is not None

    def start(self) -> None:
        if not self.available:
            raise VoiceUnavailable("Voice recognition is not supported in this environment.")
        if self.listening:
            return
        self.interim = ""
        self._last_processed = ""
        self._recognizer.start(speech_locale(self.language), self.handle_result)
        self.listening = True
        logger.info("Voice recognition started (%s)", speech_locale(self.language))

    def stop(self) -> None:
        if self.listening and self._recognizer is not None:
            self._recognizer.stop()
        self.listening = False

    def toggle(self) -> None:
        if self.listening:
            self.stop()
        else:
            self.start()

    def handle_result(self, transcript: str, is_final: bool) -> Optional[dict]:
        if not is_final:
            self.interim = transcript
            return None

        text = (transcript or "").strip()
        if not text or text == self._last_processed:
            return None
        self._last_processed = text
        self.interim = text

        try:
            fields = self._extract(text, self.language)
        except Exception:
            logger.exception("Voice processing failed")
            return None
        fields = {k: v for k, v in (fields or {}).items() if v}
        if fields:
            self._on_fields(fields)
        return fields
