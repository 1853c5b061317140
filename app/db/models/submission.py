from __future__ import annotations

import math
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

RiskLevel = Literal["low", "medium", "high"]
Choice = Literal["A", "B"]

# Fields the store owns; never taken from the requester.
SERVER_FIELDS = ("id", "timestamp", "choice")


def _coord(v: Any, limit: float) -> Optional[float]:
    if v is None or isinstance(v, bool):
        return None
    try:
        f = float(v)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(f) or abs(f) > limit:
        return None
    return f


class _SubmissionFields(BaseModel):
    # Unknown keys are kept verbatim so older/newer clients round-trip.
    model_config = ConfigDict(extra="allow")

    crop: str
    location: str
    date: str

    # Missing/invalid coordinates mean "unmappable", never (0, 0).
    lat: Optional[float] = None
    lng: Optional[float] = None

    riskLevel: RiskLevel
    climaticConditions: str = ""
    fullAnalysis: Optional[dict[str, Any]] = None

    @field_validator("lat", mode="before")
    @classmethod
    def _valid_lat(cls, v):
        return _coord(v, 90.0)

    @field_validator("lng", mode="before")
    @classmethod
    def _valid_lng(cls, v):
        return _coord(v, 180.0)

    @property
    def coordinates(self) -> Optional[tuple[float, float]]:
        if self.lat is None or self.lng is None:
            return None
        return (self.lat, self.lng)


class SubmissionInput(_SubmissionFields):
    """Body of POST /api/submissions."""

    @model_validator(mode="before")
    @classmethod
    def _drop_server_fields(cls, data):
        if isinstance(data, dict):
            data = {k: v for k, v in data.items() if k not in SERVER_FIELDS}
        return data


class Submission(_SubmissionFields):
    id: str
    timestamp: int
    choice: Optional[Choice] = None


class ChoiceUpdate(BaseModel):
    choice: Optional[Choice] = None
