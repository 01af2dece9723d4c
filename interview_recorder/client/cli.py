"""Replay pre-recorded answers through the upload sequencer.

    interview-replay answers/Q1.webm answers/Q2.webm --user-name "Alice Smith"
"""
from __future__ import annotations

import argparse
import logging
import sys

import requests

from interview_recorder.client.api import InterviewClient
from interview_recorder.client.recorder import FileRecorder
from interview_recorder.client.sequencer import State, UploadSequencer


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Upload recorded interview answers one question at a time.",
    )
    parser.add_argument("answers", nargs="+", help="Answer files in question order (webm)")
    parser.add_argument("--base-url", default="http://localhost:3000", help="Server URL")
    parser.add_argument("--token", default="12345", help="Shared access token")
    parser.add_argument("--user-name", default="guest", help="Interviewee name")
    parser.add_argument("--manual-retries", type=int, default=1,
                        help="Retry runs to start after a failed upload (default: 1)")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(message)s",
    )

    client = InterviewClient(args.base_url, args.token)
    sequencer = UploadSequencer(client, FileRecorder(args.answers), len(args.answers))

    try:
        folder = sequencer.start(args.user_name)
    except requests.RequestException as exc:
        print(f"Cannot begin session: {exc}", file=sys.stderr)
        return 1
    print(f"Session folder: {folder}")

    while sequencer.state is not State.FINISHED:
        state = sequencer.next()
        retries_left = args.manual_retries
        while state is State.FAILED and retries_left > 0:
            retries_left -= 1
            state = sequencer.retry()
        if state is State.FAILED:
            print(f"Giving up on question {sequencer.snapshot.question}", file=sys.stderr)
            return 1

    try:
        urls = sequencer.finish()
    except requests.RequestException as exc:
        print(f"Finish failed: {exc}", file=sys.stderr)
        return 1

    for i, url in enumerate(urls, start=1):
        print(f"Q{i}: {url}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
