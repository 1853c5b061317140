from __future__ import annotations

import base64
import binascii
import io
import json
import logging
import time
import wave
from dataclasses import dataclass
from typing import Optional

import requests
from pydantic import ValidationError

from app.core.config import Settings
from app.core.languages import language_name
from app.gateway import prompts
from app.gateway.schemas import AnalysisResult, PartialQuery

logger = logging.getLogger("crop_advisory.gateway")

# Gemini TTS returns 16-bit mono PCM.
PCM_SAMPLE_RATE = 24000


class GatewayError(Exception):
    """Model call failed or returned something we cannot use."""


class GatewayNotConfigured(GatewayError):
    """No API key; raised only when a call is attempted."""


@dataclass(frozen=True)
class GatewayConfig:
    api_key: str
    api_base: str
    analysis_model: str
    extract_model: str
    follow_up_model: str
    tts_model: str
    tts_voice: str
    timeout_seconds: float = 90.0

    @classmethod
    def from_settings(cls, s: Settings) -> "GatewayConfig":
        return cls(
            api_key=s.GEMINI_API_KEY,
            api_base=s.GEMINI_API_BASE.rstrip("/"),
            analysis_model=s.ANALYSIS_MODEL,
            extract_model=s.EXTRACT_MODEL,
            follow_up_model=s.FOLLOW_UP_MODEL,
            tts_model=s.TTS_MODEL,
            tts_voice=s.TTS_VOICE,
            timeout_seconds=s.GATEWAY_TIMEOUT_SECONDS,
        )


def pcm_to_wav(pcm: bytes, sample_rate: int = PCM_SAMPLE_RATE) -> bytes:
    buf = io.BytesIO()
    with wave.open(buf, "wb") as w:
        w.setnchannels(1)
        w.setsampwidth(2)
        w.setframerate(sample_rate)
        w.writeframes(pcm)
    return buf.getvalue()


class GeminiGateway:
    """Adapter over the Gemini generateContent REST API.

    Every call hits the model; nothing is cached because identical inputs may
    legitimately produce different answers.
    """

    def __init__(self, config: GatewayConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.session = session or requests.Session()

    # ----------------------------------------------------------- operations

    def analyze(self, crop: str, location: str, date: str, language: str) -> AnalysisResult:
        lang = language_name(language)
        raw = self._generate_json(
            self.config.analysis_model,
            prompts.analysis_prompt(crop, location, date, lang),
            prompts.ANALYSIS_SCHEMA,
        )
        try:
            return AnalysisResult.model_validate(raw)
        except ValidationError as exc:
            logger.warning("Analysis response failed validation: %s", exc.errors()[:3])
            raise GatewayError("Model returned an invalid analysis") from exc

    def extract_fields(self, transcript: str, language: str) -> PartialQuery:
        if not (transcript or "").strip():
            return PartialQuery()
        raw = self._generate_json(
            self.config.extract_model,
            prompts.extract_prompt(transcript, language_name(language)),
            prompts.EXTRACT_SCHEMA,
        )
        try:
            return PartialQuery.model_validate(raw)
        except ValidationError as exc:
            raise GatewayError("Model returned invalid fields") from exc

    def follow_up(self, question: str, context: dict, language: str) -> str:
        data = self._generate(
            self.config.follow_up_model,
            {"contents": [{"parts": [{"text": prompts.follow_up_prompt(question, context, language_name(language))}]}]},
        )
        text = _first_text(data).strip()
        if not text:
            raise GatewayError("Model returned an empty answer")
        return text

    def speak(self, text: str, language: str) -> Optional[bytes]:
        """Synthesize `text`; returns WAV bytes, or None when no audio came back."""
        if not (text or "").strip():
            return None
        body = {
            "contents": [{"parts": [{"text": text}]}],
            "generationConfig": {
                "responseModalities": ["AUDIO"],
                "speechConfig": {
                    "voiceConfig": {"prebuiltVoiceConfig": {"voiceName": self.config.tts_voice}},
                },
            },
        }
        data = self._generate(self.config.tts_model, body)
        try:
            b64 = data["candidates"][0]["content"]["parts"][0]["inlineData"]["data"]
        except (KeyError, IndexError, TypeError):
            logger.info("TTS returned no audio (language=%s)", language)
            return None
        try:
            pcm = base64.b64decode(b64)
        except (binascii.Error, ValueError) as exc:
            raise GatewayError("Model returned undecodable audio") from exc
        return pcm_to_wav(pcm)

    # ------------------------------------------------------------ transport

    def _generate_json(self, model: str, prompt: str, schema: dict) -> dict:
        body = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": schema,
            },
        }
        text = _first_text(self._generate(model, body))
        try:
            raw = json.loads(text or "")
        except ValueError as exc:
            raise GatewayError("Model returned malformed JSON") from exc
        if not isinstance(raw, dict):
            raise GatewayError("Model returned a non-object JSON value")
        return raw

    def _generate(self, model: str, body: dict) -> dict:
        if not self.config.api_key:
            raise GatewayNotConfigured("GEMINI_API_KEY is not set")

        url = f"{self.config.api_base}/models/{model}:generateContent"
        start = time.perf_counter()
        try:
            resp = self.session.post(
                url,
                headers={"Content-Type": "application/json", "x-goog-api-key": self.config.api_key},
                json=body,
                timeout=self.config.timeout_seconds,
            )
        except requests.RequestException as exc:
            logger.error("Gemini request failed (%s): %s", model, exc)
            raise GatewayError(f"Model request failed: {exc}") from exc

        elapsed = (time.perf_counter() - start) * 1000
        if resp.status_code != 200:
            logger.error("Gemini API error %s (%s) after %.0fms", resp.status_code, model, elapsed)
            raise GatewayError(f"Model API returned HTTP {resp.status_code}")
        logger.info("Gemini %s answered in %.0fms", model, elapsed)

        try:
            data = resp.json()
        except ValueError as exc:
            raise GatewayError("Model API returned a non-JSON body") from exc
        if not isinstance(data, dict):
            raise GatewayError("Model API returned an unexpected body")
        return data


def _first_text(data: dict) -> str:
    try:
        parts = data["candidates"][0]["content"]["parts"]
    except (KeyError, IndexError, TypeError):
        return ""
    return "".join(p.get("text", "") for p in parts if isinstance(p, dict))
