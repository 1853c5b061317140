from __future__ import annotations

from fastapi import Request

from app.db.store import SubmissionStore
from app.gateway.gemini import GeminiGateway
from app.utils.stats_cache import StatsCache


def get_store(request: Request) -> SubmissionStore:
    return request.app.state.store


def get_gateway(request: Request) -> GeminiGateway:
    return request.app.state.gateway


def get_stats_cache(request: Request) -> StatsCache:
    return request.app.state.stats_cache
