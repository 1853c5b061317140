from __future__ import annotations

import logging
from typing import Any, Callable, TypeVar

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response
from pydantic import BaseModel, Field

from app.core.deps import get_gateway
from app.core.errors import require
from app.core.languages import DEFAULT_LANGUAGE
from app.gateway.gemini import GatewayError, GatewayNotConfigured, GeminiGateway

logger = logging.getLogger("crop_advisory.analysis")

router = APIRouter(prefix="/api", tags=["analysis"])

T = TypeVar("T")

ANALYSIS_FAILED = "Analysis failed. Please check your inputs and try again."


class AnalyzeRequest(BaseModel):
    crop: str = ""
    location: str = ""
    date: str = ""
    language: str = DEFAULT_LANGUAGE


class ExtractRequest(BaseModel):
    transcript: str
    language: str = DEFAULT_LANGUAGE


class SpeakRequest(BaseModel):
    text: str
    language: str = DEFAULT_LANGUAGE


class FollowUpRequest(BaseModel):
    question: str
    context: dict[str, Any] = Field(default_factory=dict)
    language: str = DEFAULT_LANGUAGE


def _call(fn: Callable[[], T], failure_msg: str) -> T:
    try:
        return fn()
    except GatewayNotConfigured as exc:
        logger.error("Gateway not configured: %s", exc)
        raise HTTPException(status_code=503, detail="Analysis service is not configured")
    except GatewayError as exc:
        logger.warning("%s (%s)", failure_msg, exc)
        raise HTTPException(status_code=502, detail=failure_msg)


@router.post("/analyze")
def analyze(body: AnalyzeRequest, gateway: GeminiGateway = Depends(get_gateway)):
    require(bool(body.crop.strip() and body.location.strip() and body.date.strip()),
            "crop, location and date are required", 422)
    result = _call(
        lambda: gateway.analyze(body.crop.strip(), body.location.strip(), body.date.strip(), body.language),
        ANALYSIS_FAILED,
    )
    return result.model_dump(mode="json", exclude_none=True)


@router.post("/extract")
def extract(body: ExtractRequest, gateway: GeminiGateway = Depends(get_gateway)):
    fields = _call(lambda: gateway.extract_fields(body.transcript, body.language), "Voice extraction failed")
    return fields.model_dump(exclude_none=True)


@router.post("/speak")
def speak(body: SpeakRequest, gateway: GeminiGateway = Depends(get_gateway)):
    audio = _call(lambda: gateway.speak(body.text, body.language), "Speech synthesis failed")
    if audio is None:
        return Response(status_code=204)
    return Response(content=audio, media_type="audio/wav")


@router.post("/follow-up")
def follow_up(body: FollowUpRequest, gateway: GeminiGateway = Depends(get_gateway)):
    require(bool(body.question.strip()), "question is required", 422)
    answer = _call(lambda: gateway.follow_up(body.question, body.context, body.language), "Follow-up failed")
    return {"answer": answer}
