from __future__ import annotations

from fastapi import HTTPException


def require(condition: bool, msg: str = "Bad request", status_code: int = 400) -> None:
    """Small helper used across routers.

    Defaults to 400. For not-found cases pass `status_code=404`.
    """
    if not condition:
        raise HTTPException(status_code=status_code, detail=msg)


def error_body(message: str) -> dict:
    return {"error": str(message)}
