from __future__ import annotations

from typing import Iterable

from app.db.models.submission import Submission

_CHOICE_BUCKETS = {"A": "change", "B": "continue"}


def empty_stats() -> dict:
    return {
        "total": 0,
        "byRisk": {"high": 0, "medium": 0, "low": 0},
        "byChoice": {"change": 0, "continue": 0, "none": 0},
        "byCrop": {},
    }


def aggregate(submissions: Iterable[Submission]) -> dict:
    """Admin stats over the whole collection.

    Every submission lands in exactly one risk bucket and one choice bucket,
    so both bucket sums equal `total`.
    """
    out = empty_stats()
    for s in submissions:
        out["total"] += 1
        out["byRisk"][s.riskLevel] += 1
        out["byChoice"][_CHOICE_BUCKETS.get(s.choice or "", "none")] += 1
        out["byCrop"][s.crop] = out["byCrop"].get(s.crop, 0) + 1
    return out
