"""
PoseOverlay — Real-Time OpenCV Preview
======================================

Architecture:
    Thread 1 (daemon)  : Camera capture       → packs frames as NV21 / BGRA
    Thread 2 (daemon)  : asyncio event loop   → runs pose estimation
    Main thread        : cv2.imshow render loop, owns the overlay surface

The preview shows the camera frame the way a handset would: rotated
upright (ANDROID) and mirrored for front cameras when the mirror policy
applies. The skeleton is drawn by the session onto the same canvas.

Usage:  python viewer.py [--config config.yaml] [--platform ios] [--engine mediapipe]
Controls: q/ESC quit, f flip camera, m mirror policy, r rotate device, s status
"""

import argparse
import asyncio
import threading
import time
from typing import Optional

import cv2
import numpy as np

from pose_overlay.config import Settings, load_config, settings
from pose_overlay.errors import SessionStartError, UnsupportedOrientation
from pose_overlay.main import create_session
from pose_overlay.models.orientation import (
    DeviceOrientation,
    DeviceOrientationState,
    ImageRotation,
    Platform,
    Size,
)
from pose_overlay.rendering.canvas import OpenCVSurface
from pose_overlay.rendering.mapper import MirrorPolicy, should_mirror
from pose_overlay.session import PoseOverlaySession
from pose_overlay.stream.image_decoder import rotate_upright
from pose_overlay.stream.rotation import resolve_rotation


ORIENTATION_CYCLE = (
    DeviceOrientation.PORTRAIT_UP,
    DeviceOrientation.LANDSCAPE_LEFT,
    DeviceOrientation.PORTRAIT_DOWN,
    DeviceOrientation.LANDSCAPE_RIGHT,
)


# =============================================================================
# Thread 2 — Estimation event loop
# =============================================================================

def event_loop_thread(loop: asyncio.AbstractEventLoop) -> None:
    asyncio.set_event_loop(loop)
    loop.run_forever()


# =============================================================================
# Preview frame
# =============================================================================

def _preview_rotation(state: DeviceOrientationState, platform: Platform) -> ImageRotation:
    try:
        return resolve_rotation(
            state.sensor_orientation,
            state.device_orientation,
            state.facing,
            platform,
        )
    except UnsupportedOrientation:
        return ImageRotation.DEG_0


def build_preview(session: PoseOverlaySession, bgr: np.ndarray) -> np.ndarray:
    """Camera frame as it appears behind the overlay."""
    source = session.source
    if source is None:
        return bgr

    state = source.orientation()
    preview = bgr
    if session.platform == Platform.ANDROID:
        preview = rotate_upright(preview, _preview_rotation(state, session.platform))
    if should_mirror(state.facing, session.mirror_policy):
        preview = cv2.flip(preview, 1)
    return np.ascontiguousarray(preview)


# =============================================================================
# Drawing — Status Panel
# =============================================================================

def draw_status(canvas: np.ndarray, session: PoseOverlaySession, drawn: int) -> np.ndarray:
    """Compact status HUD at top-left."""
    camera = session.active_camera
    source = session.source
    orientation = source.orientation().device_orientation.value if source else "-"
    scheduler = session.scheduler.metrics()
    snapshot = session.latest

    lines = [
        f"cam: {camera.name if camera else '-'} ({camera.facing.value if camera else '-'})",
        f"orientation: {orientation}",
        f"rotation: {snapshot.rotation.value if snapshot else '-'}",
        f"mirror: {session.mirror_policy.value}",
        f"poses: {len(snapshot.pose_set) if snapshot else 0}  prims: {drawn}",
        f"accepted: {scheduler['accepted']}  busy drops: {scheduler['dropped_busy']}",
    ]

    panel_h = 8 + 14 * len(lines)
    overlay = canvas.copy()
    cv2.rectangle(overlay, (4, 4), (250, 4 + panel_h), (10, 10, 10), -1)
    cv2.addWeighted(overlay, 0.7, canvas, 0.3, 0, canvas)

    y = 18
    for text in lines:
        cv2.putText(canvas, text, (10, y), cv2.FONT_HERSHEY_SIMPLEX, 0.38,
                    (220, 220, 220), 1, cv2.LINE_AA)
        y += 14
    return canvas


# =============================================================================
# Main render loop
# =============================================================================

def run(config: Settings) -> None:
    print("=" * 60)
    print("PoseOverlay Real-Time Preview")
    print("=" * 60)
    print(f"  Platform: {config.session.platform.value}")
    print(f"  Engine:   {config.engine.backend}")
    print(f"  Cameras:  {', '.join(c.name for c in config.cameras)}")
    print()
    print("  Controls:")
    print("    q/ESC  — quit")
    print("    f      — flip camera")
    print("    m      — toggle mirror policy")
    print("    r      — rotate device orientation")
    print("    s      — print session status")
    print("=" * 60)

    # ── Start estimation loop ────────────────────────────────────────────
    loop = asyncio.new_event_loop()
    t1 = threading.Thread(target=event_loop_thread, args=(loop,), daemon=True)
    t1.start()

    session = create_session(config)
    try:
        session.start(loop)
    except SessionStartError as e:
        print(f"[viewer] Cannot start session: {e}")
        session.close()
        loop.call_soon_threadsafe(loop.stop)
        return

    surface: Optional[OpenCVSurface] = None
    orientation_index = ORIENTATION_CYCLE.index(config.session.device_orientation) \
        if config.session.device_orientation in ORIENTATION_CYCLE else 0
    frame_interval_ms = max(1, int(1000 / max(config.capture.max_fps, 1.0)))

    window_name = "PoseOverlay Preview"
    cv2.namedWindow(window_name, cv2.WINDOW_NORMAL)

    try:
        while True:
            source = session.source
            bgr = source.latest_bgr() if source is not None else None

            if bgr is not None:
                preview = build_preview(session, bgr)
                h, w = preview.shape[:2]
                if surface is None or (surface.width, surface.height) != (w, h):
                    surface = OpenCVSurface(w, h)
                    cv2.resizeWindow(window_name, w, h)

                surface.set_background(preview)
                drawn = session.render(surface, Size(w, h))
                display_frame = draw_status(surface.image.copy(), session, drawn)
                cv2.imshow(window_name, display_frame)
            else:
                blank = np.full((480, 640, 3), 30, dtype=np.uint8)
                cv2.putText(blank, "Waiting for camera...", (180, 240),
                            cv2.FONT_HERSHEY_SIMPLEX, 0.8, (100, 100, 100), 2)
                cv2.imshow(window_name, blank)

            # Keyboard
            key = cv2.waitKey(frame_interval_ms) & 0xFF
            if key == ord('q') or key == 27:
                break
            elif key == ord('f'):
                try:
                    camera = session.flip_camera()
                    print(f"[flip] camera: {camera.name if camera else '-'}")
                except SessionStartError as e:
                    print(f"[flip] failed: {e}")
                    break
            elif key == ord('m'):
                session.mirror_policy = (
                    MirrorPolicy.NEVER
                    if session.mirror_policy == MirrorPolicy.FRONT_CAMERA
                    else MirrorPolicy.FRONT_CAMERA
                )
                print(f"[toggle] mirror policy: {session.mirror_policy.value}")
            elif key == ord('r'):
                orientation_index = (orientation_index + 1) % len(ORIENTATION_CYCLE)
                orientation = ORIENTATION_CYCLE[orientation_index]
                if source is not None and hasattr(source, "set_device_orientation"):
                    source.set_device_orientation(orientation)
                print(f"[rotate] device orientation: {orientation.value}")
            elif key == ord('s'):
                print(f"[status] {session.status()}")
    finally:
        session.close()
        loop.call_soon_threadsafe(loop.stop)
        # Give in-flight estimation a moment to settle before exit
        time.sleep(0.05)
        cv2.destroyAllWindows()
        print("\n[viewer] Shutdown.")


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Live camera preview with pose skeleton overlay"
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to config.yaml (default: POSE_OVERLAY_CONFIG or ./config.yaml)",
    )
    parser.add_argument(
        "--platform",
        choices=[p.value for p in Platform],
        default=None,
        help="Camera stack convention to simulate",
    )
    parser.add_argument(
        "--engine",
        choices=["mock", "mediapipe"],
        default=None,
        help="Pose estimation backend",
    )
    parser.add_argument(
        "--mirror",
        choices=[m.value for m in MirrorPolicy],
        default=None,
        help="Overlay mirroring policy",
    )

    args = parser.parse_args()

    config = load_config(args.config) if args.config else settings.model_copy(deep=True)
    if args.platform:
        config.session.platform = Platform(args.platform)
    if args.engine:
        config.engine.backend = args.engine
    if args.mirror:
        config.session.mirror_policy = MirrorPolicy(args.mirror)

    run(config)


if __name__ == "__main__":
    main()
