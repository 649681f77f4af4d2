#!/usr/bin/env python3
"""
PPG heart-rate scan – command-line replay of a recording.

Usage
-----
    python main.py RECORDING [OPTIONS]

RECORDING is either a CSV file with columns
``timestamp_ms,red,green,blue[,brightness]`` or a video file of a finger
covering the camera lens.

Options
-------
    --fps FLOAT          Sample rate of the recording (default: 30)
    --duration FLOAT     Scan duration in seconds (default: 60)
    --attempts INT       Analysis attempts before giving up (default: 5)
    --roi FLOAT          Video ROI size as fraction of the frame (default: 0.25)
    --quiet              Do not print live estimates
    -v / --verbose       Debug logging
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from ppg_heartrate.results import ErrorKind, HeartRateResult
from ppg_heartrate.rhythm import assess_rhythm
from ppg_heartrate.scan_controller import ScanConfig, ScanController, ScanState
from ppg_heartrate.sources import IterableSource, VideoFileSource, load_samples_csv

logger = logging.getLogger("ppg_heartrate")

_HINTS = {
    ErrorKind.INSUFFICIENT_COVERAGE: "Cover the camera lens and flash completely with your fingertip.",
    ErrorKind.INSUFFICIENT_PEAKS: "Not enough heartbeats detected – hold still and press gently.",
    ErrorKind.LOW_CONFIDENCE: "Signal too noisy – keep your finger still and try again.",
    ErrorKind.PHYSIOLOGICALLY_IMPLAUSIBLE: "Reading out of range – please repeat the scan.",
}


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Estimate heart rate from a finger-on-lens PPG recording",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("recording", type=Path,
                        help="CSV sample recording or video file")
    parser.add_argument("--fps", type=float, default=30.0,
                        help="Sample rate of the recording in Hz")
    parser.add_argument("--duration", type=float, default=60.0,
                        help="Scan duration in seconds")
    parser.add_argument("--attempts", type=int, default=5,
                        help="Analysis attempts before the scan fails")
    parser.add_argument("--roi", type=float, default=0.25,
                        help="Video ROI side as a fraction of the shorter frame side")
    parser.add_argument("--quiet", action="store_true",
                        help="Do not print live BPM estimates")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Enable debug logging")
    return parser.parse_args(argv)


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def run(args: argparse.Namespace) -> int:
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s – %(message)s",
        datefmt="%H:%M:%S",
    )

    if not args.recording.exists():
        logger.error("Recording not found: %s", args.recording)
        return 1

    try:
        config = ScanConfig(
            sample_rate=args.fps,
            scan_duration_s=args.duration,
            max_attempts=args.attempts,
        )
    except ValueError as exc:
        logger.error("Invalid configuration: %s", exc)
        return 1

    if args.recording.suffix.lower() == ".csv":
        try:
            source = IterableSource(load_samples_csv(args.recording))
        except ValueError as exc:
            logger.error("Cannot read %s: %s", args.recording, exc)
            return 1
    else:
        source = VideoFileSource(args.recording, roi_fraction=args.roi, fallback_fps=args.fps)

    def on_realtime(bpm: int, coverage: float) -> None:
        if not args.quiet:
            print(f"  live ~{bpm} BPM  coverage={coverage:.0%}")

    def on_complete(result: HeartRateResult) -> None:
        print(f"Heart rate: {result}")
        for alert in sorted(assess_rhythm(result), key=lambda a: a.name):
            print(f"  ! {alert.name.lower()}")

    def on_failed(kind: ErrorKind) -> None:
        print(f"Scan failed ({kind.name.lower()}): {_HINTS[kind]}")

    controller = ScanController(
        source,
        on_realtime_estimate=on_realtime,
        on_complete=on_complete,
        on_failed=on_failed,
    )
    controller.start(config)

    try:
        pushed = source.run()
    except RuntimeError as exc:
        logger.error("%s", exc)
        controller.stop()
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted.")
        controller.stop()
        return 130

    logger.info("Replayed %d samples.", pushed)
    if controller.state is ScanState.COLLECTING:
        print(
            f"Recording ended before the scan finished "
            f"({controller.progress:.0%} of {config.scan_duration_s:.0f}s, "
            f"coverage {controller.coverage:.0%})."
        )
        controller.stop()
        return 2
    return 0 if controller.state is ScanState.COMPLETE else 2


def main(argv: list[str] | None = None) -> int:
    return run(parse_args(argv))


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    sys.exit(main())
