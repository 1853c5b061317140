from __future__ import annotations

import logging
from typing import Optional

from app.client.api import AdvisoryApiClient, ApiError
from app.client.playback import SpeechPlayback
from app.core.languages import DEFAULT_LANGUAGE, normalize_language

logger = logging.getLogger("crop_advisory.session")

ANALYSIS_FAILED = "Analysis failed. Please check your inputs and try again."


class AdvisorySession:
    """View state of one farmer session: query, analysis, decision, history."""

    def __init__(
        self,
        api: AdvisoryApiClient,
        playback: Optional[SpeechPlayback] = None,
        language: str = DEFAULT_LANGUAGE,
        auto_speak: bool = True,
    ):
        self.api = api
        self.playback = playback
        self.language = normalize_language(language)
        self.auto_speak = auto_speak

        self.crop = ""
        self.location = ""
        self.date = ""

        self.analysis: Optional[dict] = None
        self.error: Optional[str] = None
        self.current_submission_id: Optional[str] = None
        self.choice: Optional[str] = None
        self.submissions: list[dict] = []

    @property
    def ready(self) -> bool:
        return bool(self.crop and self.location and self.date)

    def analyze(self) -> Optional[dict]:
        if not self.ready:
            return None

        self.error = None
        try:
            result = self.api.analyze(self.crop, self.location, self.date, self.language)
        except ApiError as exc:
            logger.error("Analysis failed: %s", exc)
            self.error = ANALYSIS_FAILED
            self.analysis = None
            self.current_submission_id = None
            self.choice = None
            return None

        self.analysis = result
        # A decision only ever applies to the submission saved for this result.
        self.current_submission_id = None
        self.choice = None
        payload = {
            "crop": self.crop,
            "location": self.location,
            "date": self.date,
            "lat": result.get("lat"),
            "lng": result.get("lng"),
            "riskLevel": result.get("riskLevel"),
            "climaticConditions": result.get("climaticConditions", ""),
            "fullAnalysis": result,
        }
        try:
            saved = self.api.create_submission(payload)
        except ApiError as exc:
            # The analysis is still shown; only history misses it.
            logger.error("Failed to save submission: %s", exc)
        else:
            self.current_submission_id = saved.get("id")
            self.refresh_history()

        if result.get("riskLevel") == "high":
            self._auto_alert(result)
        return result

    def choose(self, choice: str) -> Optional[dict]:
        """Record option A (change crop) or B (continue with precautions)."""
        if not self.current_submission_id:
            return None
        saved = self.api.record_choice(self.current_submission_id, choice)
        self.choice = choice
        self.refresh_history()
        return saved

    def set_language(self, language: str) -> None:
        lang = normalize_language(language)
        if lang == self.language:
            return
        self.language = lang
        # Advisory text is generated in the chosen language, so re-run.
        if self.analysis is not None and self.ready:
            self.analyze()

    def load_submission(self, sub: dict) -> None:
        """Replay a stored submission without calling the model again."""
        self.crop = sub.get("crop", "")
        self.location = sub.get("location", "")
        self.date = sub.get("date", "")
        self.analysis = sub.get("fullAnalysis")
        self.current_submission_id = sub.get("id")
        self.choice = sub.get("choice")
        self.error = None
        if sub.get("riskLevel") == "high" and self.analysis:
            self._auto_alert(self.analysis)

    def refresh_history(self) -> list[dict]:
        self.submissions = self.api.fetch_submissions()
        return self.submissions

    def clear_history(self) -> None:
        self.api.clear_history()
        self.submissions = []

    def ask(self, question: str) -> str:
        return self.api.follow_up(question, self.analysis or {}, self.language)

    def apply_voice_fields(self, fields: dict) -> Optional[str]:
        """Merge extracted fields; returns spoken feedback when something changed."""
        feedback = []
        crop = (fields.get("crop") or "").strip()
        location = (fields.get("location") or "").strip()
        date = (fields.get("date") or "").strip()

        if crop and crop.lower() != self.crop.lower():
            self.crop = crop
            feedback.append(crop)
        if location and location.lower() != self.location.lower():
            self.location = location
            feedback.append(f"in {location}")
        if date and date != self.date:
            self.date = date

        if not feedback:
            return None
        text = f"Got it: {' '.join(feedback)}."
        if self.playback is not None:
            self.playback.speak(text, self.language)
        return text

    def advisory_text(self) -> str:
        a = self.analysis or {}
        adv = a.get("advisory") or {}
        lines = [
            f"Crop: {self.crop}.",
            f"Risk level: {a.get('riskLevel', '')}.",
            f"What may happen: {adv.get('whatMayHappen', '')}.",
            f"Expected yield change: {adv.get('expectedYieldChange', '')}.",
            f"Option A: {(adv.get('optionA') or {}).get('suggestion', '')}.",
            f"Option B: {'. '.join((adv.get('optionB') or {}).get('precautionSteps', []))}.",
        ]
        return "\n".join(lines)

    def speak_advisory(self) -> bool:
        if self.playback is None or not self.analysis:
            return False
        return self.playback.toggle(self.advisory_text(), self.language)

    def _auto_alert(self, result: dict) -> None:
        if not (self.auto_speak and self.playback is not None):
            return
        adv = result.get("advisory") or {}
        text = (
            "High risk alert. "
            f"Risk level: {result.get('riskLevel', '')}. "
            f"What may happen: {adv.get('whatMayHappen', '')}."
        )
        self.playback.speak(text, self.language)
