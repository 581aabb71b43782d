"""
Pose Overlay Service
====================

FastAPI entry point exposing the live skeleton overlay.

The service runs one PoseOverlaySession: a camera source pushes frames
from its capture thread, estimation runs on this event loop, and clients
fetch the latest overlay already mapped to their canvas size.

Endpoints:
    GET  /             - Service information
    GET  /health       - Liveness probe (is process alive?)
    GET  /ready        - Readiness probe (camera streaming?)
    GET  /metrics      - Session, scheduler and normalizer counters
    GET  /overlay      - Latest overlay as draw commands (?width=&height=)
    POST /camera/flip  - Switch to the next configured camera
    WS   /ws/overlay   - Real-time overlay stream
"""

import asyncio
import logging
import os
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional, Union

from fastapi import FastAPI, Query, WebSocket
from fastapi.responses import JSONResponse

from pose_overlay.config import Settings, settings
from pose_overlay.errors import SessionStartError
from pose_overlay.models.orientation import Size
from pose_overlay.perception import MediaPipePoseEngine, MockPoseEngine
from pose_overlay.rendering.skeleton import SkeletonRenderer
from pose_overlay.session import PoseOverlaySession
from pose_overlay.stream import CameraDescription, FrameScheduler, OpenCVCameraSource


logger = logging.getLogger(__name__)


# =============================================================================
# Global State
# =============================================================================

_session: Optional[PoseOverlaySession] = None
_startup_time: float = 0.0
_start_error: Optional[str] = None
_shutdown_flag: bool = False


def get_session() -> Optional[PoseOverlaySession]:
    return _session


# =============================================================================
# Factories
# =============================================================================

def create_pose_engine(config: Settings) -> Union[MockPoseEngine, MediaPipePoseEngine]:
    """
    Create pose engine based on config.

    Fails fast if the mediapipe backend is requested but unavailable.
    """
    backend = config.engine.backend
    platform = config.session.platform

    if backend == "mock":
        logger.info("Using MockPoseEngine")
        return MockPoseEngine(
            platform=platform,
            pose_count=config.engine.mock.pose_count,
            latency=config.engine.mock.latency_ms / 1000.0,
            fail_every=config.engine.mock.fail_every,
        )

    elif backend == "mediapipe":
        try:
            return MediaPipePoseEngine(
                platform=platform,
                model_complexity=config.engine.model_complexity,
                min_detection_confidence=config.engine.min_detection_confidence,
                min_tracking_confidence=config.engine.min_tracking_confidence,
            )
        except ImportError as e:
            raise SessionStartError(str(e))

    else:
        raise SessionStartError(f"Unknown engine backend: {backend}")


def create_session(config: Settings) -> PoseOverlaySession:
    """Build a session (not started) from config."""
    platform = config.session.platform
    cameras = [
        CameraDescription(
            name=camera.name,
            device=camera.device,
            facing=camera.facing,
            sensor_orientation=camera.sensor_orientation,
        )
        for camera in config.cameras
    ]

    def camera_factory(description: CameraDescription) -> OpenCVCameraSource:
        return OpenCVCameraSource(
            description,
            platform=platform,
            device_orientation=config.session.device_orientation,
            max_fps=config.capture.max_fps,
            frame_width=config.capture.frame_width,
            frame_height=config.capture.frame_height,
        )

    return PoseOverlaySession(
        cameras=cameras,
        engine=create_pose_engine(config),
        platform=platform,
        camera_factory=camera_factory,
        scheduler=FrameScheduler(min_interval=config.scheduler.min_interval_ms / 1000.0),
        renderer=SkeletonRenderer(style=config.rendering.to_style()),
        mirror_policy=config.session.mirror_policy,
    )


# =============================================================================
# Lifespan Management
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager with graceful shutdown."""
    global _session, _startup_time, _start_error, _shutdown_flag

    _startup_time = time.time()
    _start_error = None
    _shutdown_flag = False
    logger.info(f"Starting {settings.session.name} {settings.session.version}")

    # Start-up failures leave the service up in a non-functional state
    try:
        _session = create_session(settings)
        _session.start(asyncio.get_running_loop())
    except SessionStartError as e:
        _start_error = str(e)
        logger.error(f"Overlay session failed to start: {e}")

    yield

    logger.info("Shutting down gracefully...")
    _shutdown_flag = True

    if _session is not None:
        await asyncio.to_thread(_session.close)
        _session = None

    logger.info("Shutdown complete")


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="PoseOverlay",
    description="Real-time pose skeleton overlay for live camera feeds",
    version=settings.session.version,
    lifespan=lifespan,
)


# =============================================================================
# HTTP Endpoints
# =============================================================================

@app.get("/")
async def root() -> JSONResponse:
    """Service information endpoint."""
    return JSONResponse({
        "service": "PoseOverlay",
        "version": settings.session.version,
        "name": settings.session.name,
        "status": "running",
        "platform": settings.session.platform.value,
        "engine_backend": settings.engine.backend,
    })


@app.get("/health")
async def health() -> JSONResponse:
    """
    Liveness probe - is the process alive?

    Always returns 200 if the service is running.
    """
    return JSONResponse({
        "status": "healthy",
        "uptime_seconds": round(time.time() - _startup_time, 1),
    })


@app.get("/ready")
async def ready() -> JSONResponse:
    """
    Readiness probe - is a camera streaming into the pipeline?

    Returns 503 with the start-up error when the session is not running.
    """
    session = get_session()
    streaming = session.running if session else False

    if streaming:
        return JSONResponse({
            "status": "ready",
            "camera": session.active_camera.name,
            "results_published": session.metrics.results_published,
        })

    return JSONResponse(
        {
            "status": "not_ready",
            "error": _start_error,
        },
        status_code=503,
    )


@app.get("/metrics")
async def metrics() -> JSONResponse:
    """Detailed metrics for observability."""
    session = get_session()
    payload = {
        "uptime_seconds": round(time.time() - _startup_time, 1),
        "engine_backend": settings.engine.backend,
        "start_error": _start_error,
    }
    if session is not None:
        payload.update(session.status())
        source = session.source
        source_metrics = getattr(source, "metrics", None)
        if source_metrics is not None:
            payload["camera"] = source_metrics.to_dict()
    return JSONResponse(payload)


@app.get("/overlay")
async def overlay(
    width: float = Query(..., ge=0, description="Canvas width"),
    height: float = Query(..., ge=0, description="Canvas height"),
) -> JSONResponse:
    """Latest overlay mapped to a width x height canvas."""
    session = get_session()
    output = session.overlay_output(Size(width, height)) if session else None

    if output is None:
        return JSONResponse(
            {"error": "No overlay available yet"},
            status_code=503,
        )

    return JSONResponse(output.model_dump(mode="json"))


@app.post("/camera/flip")
async def flip_camera() -> JSONResponse:
    """Switch to the next configured camera."""
    session = get_session()
    if session is None:
        return JSONResponse({"error": "Session not available"}, status_code=503)

    try:
        camera = await asyncio.to_thread(session.flip_camera)
    except SessionStartError as e:
        logger.error(f"Camera flip failed: {e}")
        return JSONResponse({"error": str(e)}, status_code=503)

    return JSONResponse({
        "camera_index": session.camera_index,
        "camera": camera.name if camera else None,
    })


# =============================================================================
# WebSocket Endpoints
# =============================================================================

@app.websocket("/ws/overlay")
async def overlay_stream(
    websocket: WebSocket,
    width: float = 640.0,
    height: float = 480.0,
) -> None:
    """WebSocket endpoint streaming each new overlay."""
    await websocket.accept()
    logger.info("Client connected to /ws/overlay")

    last_timestamp: Optional[float] = None
    try:
        while not _shutdown_flag:
            session = get_session()
            output = session.overlay_output(Size(width, height)) if session else None
            if output is not None and output.timestamp != last_timestamp:
                last_timestamp = output.timestamp
                await websocket.send_json(output.model_dump(mode="json"))
            await asyncio.sleep(1.0 / 30)

    except Exception as e:
        logger.warning(f"WebSocket error: {e}")
    finally:
        logger.info("Client disconnected from /ws/overlay")


# =============================================================================
# Main Entry Point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    port = int(os.environ.get("PORT", settings.server.port))

    uvicorn.run(
        "pose_overlay.main:app",
        host=settings.server.host,
        port=port,
        reload=False,
    )
