#!/usr/bin/env python3
"""
Session Soak Script
===================

Standalone script to run the overlay pipeline headless against a camera
or a video file.

This script:
    1. Builds a session from config.yaml (or --config)
    2. Streams from the first configured camera, or --device
    3. Logs session and scheduler counters every report interval
    4. Reports a final summary

Prerequisites:
    - A camera at the configured device index, or a readable video file
    - Install the package: pip install -e .

Usage:
    python scripts/soak_session.py --duration 60
    python scripts/soak_session.py --device clip.mp4 --engine mock
"""

import argparse
import asyncio
import logging
import sys
import time

from pose_overlay.config import load_config
from pose_overlay.errors import SessionStartError
from pose_overlay.main import create_session


logger = logging.getLogger(__name__)


async def run_soak(config, duration: int, report_interval: int) -> dict:
    """
    Run the session for `duration` seconds.

    Args:
        config: Loaded settings
        duration: Run time in seconds
        report_interval: Seconds between progress reports

    Returns:
        Final metrics dict
    """
    logger.info("=" * 60)
    logger.info("Pose Overlay Session Soak")
    logger.info("=" * 60)
    logger.info(f"Platform: {config.session.platform.value}")
    logger.info(f"Engine: {config.engine.backend}")
    logger.info(f"Camera: {config.cameras[0].name} (device={config.cameras[0].device!r})")
    logger.info(f"Duration: {duration} seconds")
    logger.info("=" * 60)

    session = create_session(config)
    try:
        session.start(asyncio.get_running_loop())
    except SessionStartError as e:
        logger.error(f"Session failed to start: {e}")
        session.close()
        return {"duration": 0.0, "results_published": 0, "start_error": str(e)}

    start_time = time.time()
    last_report_time = start_time
    last_published = 0

    try:
        while session.running:
            elapsed = time.time() - start_time
            if elapsed >= duration:
                logger.info(f"Soak duration ({duration}s) reached")
                break

            time_since_report = time.time() - last_report_time
            if time_since_report >= report_interval:
                metrics = session.metrics
                scheduler = session.scheduler.metrics()
                published = metrics.results_published - last_published
                rate = published / time_since_report if time_since_report > 0 else 0

                logger.info("-" * 40)
                logger.info(f"Progress Report (elapsed: {elapsed:.0f}s)")
                logger.info(f"  Frames received: {metrics.frames_received}")
                logger.info(f"  Results/s: {rate:.1f}")
                logger.info(f"  Estimation failures: {metrics.estimation_failures}")
                logger.info(f"  Busy drops: {scheduler['dropped_busy']}")
                logger.info(f"  Throttled drops: {scheduler['dropped_throttled']}")

                last_report_time = time.time()
                last_published = metrics.results_published

            await asyncio.sleep(0.5)

    except asyncio.CancelledError:
        logger.info("Soak interrupted")
    finally:
        await asyncio.to_thread(session.close)

    total_time = time.time() - start_time
    metrics = session.metrics
    status = session.status()

    logger.info("=" * 60)
    logger.info("FINAL SUMMARY")
    logger.info("=" * 60)
    logger.info(f"Total runtime: {total_time:.1f} seconds")
    logger.info(f"Frames received: {metrics.frames_received}")
    logger.info(f"Results published: {metrics.results_published}")
    logger.info(f"Results discarded: {metrics.results_discarded}")
    logger.info(f"Estimation failures: {metrics.estimation_failures}")
    logger.info(f"Normalizer: {status['normalizer']}")
    logger.info(f"Scheduler: {status['scheduler']}")
    logger.info("=" * 60)

    if metrics.results_published > 0:
        logger.info("SOAK PASSED - overlay results published")
    else:
        logger.error("SOAK FAILED - no overlay results published")

    return {
        "duration": total_time,
        **metrics.to_dict(),
    }


def main():
    parser = argparse.ArgumentParser(
        description="Headless soak run of the pose overlay session"
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to config.yaml",
    )
    parser.add_argument(
        "--device",
        type=str,
        default=None,
        help="Camera index or video path (overrides the first camera)",
    )
    parser.add_argument(
        "--engine",
        choices=["mock", "mediapipe"],
        default=None,
        help="Pose estimation backend",
    )
    parser.add_argument(
        "--duration",
        type=int,
        default=60,
        help="Run time in seconds (default: 60)",
    )
    parser.add_argument(
        "--report-interval",
        type=int,
        default=10,
        help="Seconds between progress reports (default: 10)",
    )

    args = parser.parse_args()

    config = load_config(args.config)
    if args.device is not None:
        config.cameras[0].device = int(args.device) if args.device.isdigit() else args.device
    if args.engine:
        config.engine.backend = args.engine

    result = asyncio.run(run_soak(
        config,
        duration=args.duration,
        report_interval=args.report_interval,
    ))

    sys.exit(0 if result["results_published"] > 0 else 1)


if __name__ == "__main__":
    main()
