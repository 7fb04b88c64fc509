#!/usr/bin/env python3
"""
vitalscan – replay a recorded scan and report vitals.

Usage
-----
    python main.py --video scan.mp4 --landmarks scan.json [OPTIONS]

Options
-------
    --video PATH          Recorded video of the subject
    --landmarks PATH      Landmark track produced by the face tracker
    --profile NAME        Scan profile: standard, heart_rate, extended
    --history PATH        History file used for percentile ranking
    --wellness INT        Wellness index (1-100) from the analysis service
    --age-bucket STR      Age bucket to rank against
    --estimated-age STR   Age estimate (e.g. "25-30"), mapped to a bucket
    --json                Print the analysis biometrics block as JSON
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from vitalscan.analysis import age_bucket, build_analysis_payload
from vitalscan.config import PROFILES, get_profile
from vitalscan.frame_source import RecordedFrameSource
from vitalscan.history import HistoryStore, PercentileRanker
from vitalscan.models import ScanState
from vitalscan.session import ScanSession

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s – %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("vitalscan")


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Estimate vital signs from a recorded face scan",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--video", type=Path, required=True,
                        help="Recorded video file")
    parser.add_argument("--landmarks", type=Path, required=True,
                        help="JSON landmark track for the video")
    parser.add_argument("--profile", default="standard", choices=sorted(PROFILES),
                        help="Scan profile")
    parser.add_argument("--history", type=Path, default=Path("history.json"),
                        help="History file for percentile ranking")
    parser.add_argument("--wellness", type=int, default=None,
                        help="Wellness index (1-100); enables percentile ranking")
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--age-bucket", default=None,
                       help="Age bucket to rank against")
    group.add_argument("--estimated-age", default=None,
                       help="Age estimate such as '25-30'")
    parser.add_argument("--json", action="store_true",
                        help="Print the analysis biometrics block as JSON")
    return parser.parse_args(argv)


# ---------------------------------------------------------------------------
# Main loop
# ---------------------------------------------------------------------------

def run(args: argparse.Namespace) -> int:
    if args.wellness is not None and not 1 <= args.wellness <= 100:
        logger.error("--wellness must be within 1-100, got %d.", args.wellness)
        return 1

    session = ScanSession(profile=get_profile(args.profile))

    try:
        with RecordedFrameSource(args.video, args.landmarks) as source:
            for timestamp_ms, landmarks, sampler in source.frames():
                session.process_frame(timestamp_ms, landmarks, sampler)
                if session.state is ScanState.COMPLETED:
                    break
    except (OSError, ValueError, RuntimeError) as exc:
        logger.error("Replay failed: %s", exc)
        return 1

    vitals = session.result
    if vitals is None:
        logger.error(
            "Recording ended before the %d ms window completed (state=%s, %.0f%%).",
            session.profile.window_ms, session.state.value,
            100 * session.elapsed_fraction,
        )
        return 2

    print(f"HR={vitals.heart_rate_bpm} BPM  RR={vitals.respiration_rate_brpm} br/min  "
          f"blinks={vitals.blink_rate_per_min}/min  HRV={vitals.hrv_ms:.1f} ms")
    if args.json:
        print(json.dumps(build_analysis_payload(vitals)))

    if args.wellness is not None:
        bucket = args.age_bucket or age_bucket(args.estimated_age)
        ranker = PercentileRanker(HistoryStore(args.history))
        ranked = ranker.rank_and_record(bucket, args.wellness)
        print(f"Wellness {args.wellness} – percentile {ranked.percentile} "
              f"in age bucket {bucket}")

    return 0


def main(argv: list[str] | None = None) -> int:
    return run(parse_args(argv))


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    sys.exit(main())
