from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.db.models.submission import RiskLevel

SERIES_LENGTH = 12


class _Strict(BaseModel):
    # Extra keys from the model are dropped; missing/invalid keys reject.
    model_config = ConfigDict(extra="ignore")


class ActivityPoint(_Strict):
    date: str
    activity: float = Field(ge=0, le=100)


class OptionA(_Strict):
    suggestion: str
    crops: list[str] = Field(default_factory=list)


class OptionB(_Strict):
    precautionSteps: list[str]


class Advisory(_Strict):
    whatMayHappen: str
    expectedYieldChange: str
    optionA: OptionA
    optionB: OptionB


class ClimateIntelligence(_Strict):
    temperatureAnomaly: float
    ndviTrend: str
    rainfallAnomaly: float
    globalClimateSignal: str


class FarmerAdvisory(_Strict):
    riskScore: float = Field(ge=0, le=100)
    yieldImpactPercentage: float
    stageRecommendations: str
    actionableSteps: list[str] = Field(default_factory=list)


class Source(_Strict):
    title: str
    uri: str


class AnalysisResult(_Strict):
    bloomingData: list[ActivityPoint]
    pollinationData: list[ActivityPoint]
    riskLevel: RiskLevel
    mismatchDays: float
    yieldRiskPercentage: float = Field(ge=0, le=100)
    climaticConditions: str
    suggestions: str = ""
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)
    advisory: Advisory
    climateIntelligence: Optional[ClimateIntelligence] = None
    farmerAdvisory: Optional[FarmerAdvisory] = None
    sources: Optional[list[Source]] = None

    @model_validator(mode="after")
    def _paired_series(self):
        if len(self.bloomingData) != SERIES_LENGTH or len(self.pollinationData) != SERIES_LENGTH:
            raise ValueError(f"activity series must have {SERIES_LENGTH} points each")
        for b, p in zip(self.bloomingData, self.pollinationData):
            if b.date != p.date:
                raise ValueError(f"series labels differ: {b.date!r} vs {p.date!r}")
        return self


class PartialQuery(_Strict):
    crop: Optional[str] = None
    location: Optional[str] = None
    date: Optional[str] = None

    @model_validator(mode="after")
    def _blank_is_missing(self):
        for name in ("crop", "location", "date"):
            v = getattr(self, name)
            if v is not None and not v.strip():
                setattr(self, name, None)
        return self
