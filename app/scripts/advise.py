"""Run one advisory round against a running server.

Run:
  python -m app.scripts.advise --crop Mango --location Hyderabad --date 2026-03-01
  python -m app.scripts.advise ... --choice A
"""

from __future__ import annotations

import argparse
import json
import logging

from app.client.api import AdvisoryApiClient, ApiError
from app.client.session import AdvisorySession
from app.core.languages import LANGUAGE_NAMES


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Crop bloom/pollination risk advisory")
    p.add_argument("--server", default="http://127.0.0.1:8000")
    p.add_argument("--crop", required=True)
    p.add_argument("--location", required=True)
    p.add_argument("--date", required=True, help="target date, YYYY-MM-DD")
    p.add_argument("--language", default="en", choices=sorted(LANGUAGE_NAMES))
    p.add_argument("--choice", choices=["A", "B"], help="record a decision after the analysis")
    p.add_argument("--json", action="store_true", help="print the full analysis as JSON")
    return p


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.WARNING)

    session = AdvisorySession(AdvisoryApiClient(args.server), language=args.language, auto_speak=False)
    session.crop, session.location, session.date = args.crop, args.location, args.date

    result = session.analyze()
    if result is None:
        print(session.error)
        return 1

    if args.json:
        print(json.dumps(result, ensure_ascii=False, indent=2))
    else:
        print(session.advisory_text())

    if args.choice:
        if not session.current_submission_id:
            print("Submission was not saved; choice not recorded")
            return 1
        try:
            session.choose(args.choice)
        except ApiError as exc:
            print(f"Could not record choice: {exc}")
            return 1
        print(f"Recorded choice {args.choice} for submission {session.current_submission_id}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
