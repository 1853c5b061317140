from __future__ import annotations

from fastapi import APIRouter, Depends

from app.core.deps import get_stats_cache, get_store
from app.db.store import SubmissionStore
from app.utils.stats_cache import StatsCache

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.get("/stats")
def stats(
    store: SubmissionStore = Depends(get_store),
    cache: StatsCache = Depends(get_stats_cache),
):
    # An empty or missing store yields the zeroed shape, never an error.
    return cache.get_or_compute(store.aggregate)
