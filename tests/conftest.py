from __future__ import annotations

import json
from typing import Optional

import pytest
import requests
from fastapi.testclient import TestClient

from app.core.config import Settings
from app.db.store import SubmissionStore
from app.gateway.gemini import GatewayError, GatewayNotConfigured
from app.gateway.schemas import AnalysisResult, PartialQuery
from app.main import create_app
from app.utils.stats_cache import StatsCache

MONTHS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


def make_analysis(risk: str = "high", **overrides) -> dict:
    data = {
        "bloomingData": [{"date": m, "activity": 10 + i * 5} for i, m in enumerate(MONTHS)],
        "pollinationData": [{"date": m, "activity": 5 + i * 4} for i, m in enumerate(MONTHS)],
        "riskLevel": risk,
        "mismatchDays": 12,
        "yieldRiskPercentage": 45,
        "climaticConditions": "Hot and dry spring.",
        "suggestions": "Irrigate early.",
        "lat": 17.385,
        "lng": 78.4867,
        "advisory": {
            "whatMayHappen": "Flowers open before bees are active.",
            "expectedYieldChange": "-30%",
            "optionA": {"suggestion": "Switch to a late variety.", "crops": ["Sorghum", "Millet"]},
            "optionB": {"precautionSteps": ["Keep bee boxes", "Mulch the soil"]},
        },
    }
    data.update(overrides)
    return data


def make_submission_body(crop: str = "Mango", risk: str = "high", **overrides) -> dict:
    analysis = make_analysis(risk)
    body = {
        "crop": crop,
        "location": "Hyderabad",
        "date": "2026-03-01",
        "lat": analysis["lat"],
        "lng": analysis["lng"],
        "riskLevel": risk,
        "climaticConditions": analysis["climaticConditions"],
        "fullAnalysis": analysis,
    }
    body.update(overrides)
    return body


class FakeGateway:
    def __init__(self, analysis: Optional[dict] = None, fail: Optional[Exception] = None):
        self.analysis = analysis or make_analysis()
        self.fail = fail
        self.calls: list[tuple] = []
        self.audio: Optional[bytes] = b"RIFF-fake"
        self.fields = {"crop": "Mango", "location": "Hyderabad"}

    def _maybe_fail(self):
        if self.fail is not None:
            raise self.fail

    def analyze(self, crop, location, date, language):
        self.calls.append(("analyze", crop, location, date, language))
        self._maybe_fail()
        return AnalysisResult.model_validate(self.analysis)

    def extract_fields(self, transcript, language):
        self.calls.append(("extract", transcript, language))
        self._maybe_fail()
        return PartialQuery.model_validate(self.fields)

    def speak(self, text, language):
        self.calls.append(("speak", text, language))
        self._maybe_fail()
        return self.audio

    def follow_up(self, question, context, language):
        self.calls.append(("follow_up", question, language))
        self._maybe_fail()
        return "Water in the evening."


class FakeResponse:
    def __init__(self, status_code: int = 200, body=None, content: bytes = b""):
        self.status_code = status_code
        self._body = body
        self.content = content or (json.dumps(body).encode() if body is not None else b"")

    def json(self):
        if self._body is None:
            raise ValueError("no json")
        return self._body

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"HTTP {self.status_code}")


class FakeSession:
    """Stands in for requests.Session; replays queued responses/exceptions."""

    def __init__(self, *responses):
        self.queue = list(responses)
        self.calls: list[dict] = []

    def _next(self, method, url, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        item = self.queue.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def request(self, method, url, **kwargs):
        return self._next(method, url, **kwargs)

    def get(self, url, **kwargs):
        return self._next("GET", url, **kwargs)

    def post(self, url, **kwargs):
        return self._next("POST", url, **kwargs)


class FakeRedis:
    def __init__(self):
        self.data: dict[str, str] = {}

    def get(self, key):
        return self.data.get(key)

    def setex(self, key, ttl, value):
        self.data[key] = value

    def delete(self, key):
        self.data.pop(key, None)


@pytest.fixture
def data_file(tmp_path):
    return tmp_path / "db.json"


@pytest.fixture
def store(data_file):
    return SubmissionStore(data_file)


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def app(data_file, store, gateway):
    settings = Settings(DATA_FILE=str(data_file), REDIS_URL="", STATIC_DIR="", GEMINI_API_KEY="")
    return create_app(settings, store=store, gateway=gateway, stats_cache=StatsCache(None))


@pytest.fixture
def client(app):
    return TestClient(app)


__all__ = [
    "FakeGateway",
    "FakeRedis",
    "FakeResponse",
    "FakeSession",
    "GatewayError",
    "GatewayNotConfigured",
    "make_analysis",
    "make_submission_body",
]
