from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional

import requests

logger = logging.getLogger("crop_advisory.client")


class ApiError(Exception):
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class AdvisoryApiClient:
    """HTTP client for the advisory API.

    Only the history fetch is retried; writes that change or destroy state are
    user-initiated and fail visibly on the first error.
    """

    def __init__(
        self,
        base_url: str,
        session: Optional[requests.Session] = None,
        *,
        timeout: float = 30.0,
        analysis_timeout: float = 120.0,
        fetch_retries: int = 3,
        initial_delay: float = 0.5,
        max_delay: float = 4.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout
        self.analysis_timeout = analysis_timeout
        self.fetch_retries = fetch_retries
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self._sleep = sleep

    # ------------------------------------------------------------- history

    def fetch_submissions(self, **filters: Any) -> list[dict]:
        """Submission history; [] after retries are exhausted (never raises)."""
        params = {k: v for k, v in filters.items() if v not in (None, "", False)}
        delay = self.initial_delay
        for attempt in range(1, self.fetch_retries + 2):
            try:
                resp = self.session.get(self._url("/api/submissions"), params=params or None, timeout=self.timeout)
                if resp.status_code < 500:
                    resp.raise_for_status()
                    data = resp.json()
                    return data if isinstance(data, list) else []
                logger.warning("Fetch submissions: HTTP %s (attempt %d)", resp.status_code, attempt)
            except requests.HTTPError as exc:
                # 4xx will not get better on retry.
                logger.error("Failed to fetch submissions: %s", exc)
                return []
            except (requests.RequestException, ValueError) as exc:
                logger.warning("Fetch submissions failed (attempt %d): %s", attempt, exc)

            if attempt > self.fetch_retries:
                break
            self._sleep(delay)
            delay = min(delay * 2, self.max_delay)

        logger.error("Giving up fetching submissions after %d attempts", self.fetch_retries + 1)
        return []

    def create_submission(self, payload: dict) -> dict:
        return self._request("POST", "/api/submissions", json=payload)

    def record_choice(self, submission_id: str, choice: str | None) -> dict:
        return self._request("PATCH", f"/api/submissions/{submission_id}/choice", json={"choice": choice})

    def clear_history(self) -> dict:
        return self._request("DELETE", "/api/submissions")

    def admin_stats(self) -> dict:
        return self._request("GET", "/api/admin/stats")

    def health(self) -> dict:
        return self._request("GET", "/api/health")

    # ------------------------------------------------------------- gateway

    def analyze(self, crop: str, location: str, date: str, language: str) -> dict:
        body = {"crop": crop, "location": location, "date": date, "language": language}
        return self._request("POST", "/api/analyze", json=body, timeout=self.analysis_timeout)

    def extract_fields(self, transcript: str, language: str) -> dict:
        return self._request("POST", "/api/extract", json={"transcript": transcript, "language": language})

    def follow_up(self, question: str, context: dict, language: str) -> str:
        data = self._request(
            "POST",
            "/api/follow-up",
            json={"question": question, "context": context, "language": language},
            timeout=self.analysis_timeout,
        )
        return str(data.get("answer") or "")

    def speak(self, text: str, language: str) -> Optional[bytes]:
        try:
            resp = self.session.post(
                self._url("/api/speak"), json={"text": text, "language": language}, timeout=self.analysis_timeout
            )
        except requests.RequestException as exc:
            raise ApiError(f"Speech request failed: {exc}") from exc
        if resp.status_code == 204:
            return None
        if resp.status_code != 200:
            raise ApiError(_error_message(resp), resp.status_code)
        return resp.content

    # ----------------------------------------------------------- internals

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _request(self, method: str, path: str, *, timeout: float | None = None, **kwargs) -> Any:
        try:
            resp = self.session.request(method, self._url(path), timeout=timeout or self.timeout, **kwargs)
        except requests.RequestException as exc:
            raise ApiError(f"{method} {path} failed: {exc}") from exc
        if resp.status_code >= 400:
            raise ApiError(_error_message(resp), resp.status_code)
        try:
            return resp.json()
        except ValueError as exc:
            raise ApiError(f"{method} {path} returned invalid JSON", resp.status_code) from exc


def _error_message(resp: requests.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return f"HTTP {resp.status_code}"
