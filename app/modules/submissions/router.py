from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from app.core.deps import get_store
from app.db.models.submission import ChoiceUpdate, RiskLevel, SubmissionInput
from app.db.store import StoreError, SubmissionNotFound, SubmissionStore

logger = logging.getLogger("crop_advisory.submissions")

router = APIRouter(prefix="/api/submissions", tags=["submissions"])


@router.get("")
def list_submissions(
    risk: RiskLevel | None = None,
    crop: str | None = None,
    mappable: bool = False,
    store: SubmissionStore = Depends(get_store),
):
    """Submission history, oldest first.

    Optional filters (used by the map view):
      - risk: only this risk bucket
      - crop: exact crop name
      - mappable: only entries that carry valid coordinates
    """
    subs = store.list()
    if risk:
        subs = [s for s in subs if s.riskLevel == risk]
    if crop:
        subs = [s for s in subs if s.crop == crop]
    if mappable:
        subs = [s for s in subs if s.coordinates is not None]
    return [s.model_dump(mode="json") for s in subs]


@router.post("", status_code=201)
def create_submission(payload: SubmissionInput, store: SubmissionStore = Depends(get_store)):
    logger.info("New submission request: %s / %s", payload.crop, payload.location)
    try:
        sub = store.append(payload)
    except StoreError:
        logger.exception("Error saving submission")
        raise HTTPException(status_code=500, detail="Failed to save submission")
    return sub.model_dump(mode="json")


@router.patch("/{submission_id}/choice")
def update_choice(submission_id: str, body: ChoiceUpdate, store: SubmissionStore = Depends(get_store)):
    try:
        sub = store.update_choice(submission_id, body.choice)
    except SubmissionNotFound:
        raise HTTPException(status_code=404, detail="Submission not found")
    except StoreError:
        logger.exception("Error updating choice for %s", submission_id)
        raise HTTPException(status_code=500, detail="Failed to update choice")
    return sub.model_dump(mode="json")


@router.delete("")
def clear_submissions(store: SubmissionStore = Depends(get_store)):
    try:
        store.clear()
    except StoreError:
        logger.exception("Error clearing history")
        raise HTTPException(status_code=500, detail="Failed to clear history")
    return {"message": "History cleared"}
