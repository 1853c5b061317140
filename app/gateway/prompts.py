"""Prompt templates and response schemas sent to the generative model."""

from __future__ import annotations

import json

_SERIES = {
    "type": "ARRAY",
    "items": {
        "type": "OBJECT",
        "properties": {"date": {"type": "STRING"}, "activity": {"type": "NUMBER"}},
        "required": ["date", "activity"],
    },
}

ANALYSIS_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "bloomingData": _SERIES,
        "pollinationData": _SERIES,
        "riskLevel": {"type": "STRING", "enum": ["low", "medium", "high"]},
        "mismatchDays": {"type": "NUMBER"},
        "yieldRiskPercentage": {"type": "NUMBER"},
        "climaticConditions": {"type": "STRING"},
        "suggestions": {"type": "STRING"},
        "lat": {"type": "NUMBER"},
        "lng": {"type": "NUMBER"},
        "advisory": {
            "type": "OBJECT",
            "properties": {
                "whatMayHappen": {"type": "STRING"},
                "expectedYieldChange": {"type": "STRING"},
                "optionA": {
                    "type": "OBJECT",
                    "properties": {
                        "suggestion": {"type": "STRING"},
                        "crops": {"type": "ARRAY", "items": {"type": "STRING"}},
                    },
                    "required": ["suggestion", "crops"],
                },
                "optionB": {
                    "type": "OBJECT",
                    "properties": {
                        "precautionSteps": {"type": "ARRAY", "items": {"type": "STRING"}},
                    },
                    "required": ["precautionSteps"],
                },
            },
            "required": ["whatMayHappen", "expectedYieldChange", "optionA", "optionB"],
        },
        "climateIntelligence": {
            "type": "OBJECT",
            "properties": {
                "temperatureAnomaly": {"type": "NUMBER"},
                "ndviTrend": {"type": "STRING"},
                "rainfallAnomaly": {"type": "NUMBER"},
                "globalClimateSignal": {"type": "STRING"},
            },
            "required": ["temperatureAnomaly", "ndviTrend", "rainfallAnomaly", "globalClimateSignal"],
        },
        "farmerAdvisory": {
            "type": "OBJECT",
            "properties": {
                "riskScore": {"type": "NUMBER"},
                "yieldImpactPercentage": {"type": "NUMBER"},
                "stageRecommendations": {"type": "STRING"},
                "actionableSteps": {"type": "ARRAY", "items": {"type": "STRING"}},
            },
            "required": ["riskScore", "yieldImpactPercentage", "stageRecommendations", "actionableSteps"],
        },
    },
    "required": [
        "bloomingData",
        "pollinationData",
        "riskLevel",
        "mismatchDays",
        "yieldRiskPercentage",
        "climaticConditions",
        "lat",
        "lng",
        "advisory",
    ],
}

EXTRACT_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "crop": {"type": "STRING"},
        "location": {"type": "STRING"},
        "date": {"type": "STRING"},
    },
}


def analysis_prompt(crop: str, location: str, date: str, language: str) -> str:
    return f"""
Act as an agricultural scientist and climate expert.
Analyze the blooming and pollination mismatch for the following:
Crop: {crop}
Location: {location}
Target Date: {date}
Response Language: {language}

Tasks:
1. Generate a 12-month series of blooming activity (0-100) and pollination activity (0-100)
   centered around the target date. Both series must use the same 12 month labels in the same order.
2. Calculate the mismatch in days between peak blooming and peak pollination.
3. Assess the risk level (low, medium, high) and the yield risk percentage (0-100).
   Keep them consistent: low below 25%, medium 25-50%, high above 50%.
4. Describe the climatic conditions at that location in {language}.
5. Provide the latitude and longitude of "{location}".
6. Write an advisory in {language} a farmer can act on:
   - whatMayHappen: plain explanation of the expected impact.
   - expectedYieldChange: short phrase such as "-30%".
   - optionA: switch to a better suited crop (suggestion plus candidate crops).
   - optionB: continue with the current crop (list of precaution steps).
7. Optionally add temperature/NDVI/rainfall signals and a stage-based farmer advisory.
""".strip()


def extract_prompt(transcript: str, language: str) -> str:
    return f"""
Extract agricultural details from this transcript ({language}): {json.dumps(transcript, ensure_ascii=False)}
Return a JSON object with "crop", "location", and "date" (YYYY-MM-DD format if possible).
Translate crop and location names to English. If a detail is missing, omit it.
""".strip()


def follow_up_prompt(question: str, context: dict, language: str) -> str:
    return f"""
You are a farm advisory assistant. A farmer has received this analysis:
{json.dumps(context, ensure_ascii=False, default=str)}

Answer the farmer's question briefly and practically in {language}.
Question: {question}
""".strip()
