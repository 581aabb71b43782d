"""
Pose Overlay Configuration
==========================

This module handles configuration loading for the pose overlay pipeline.

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. config.yaml file
    3. Default values (lowest priority)

Environment Variable Mapping:
    POSE_OVERLAY_PLATFORM          -> session.platform
    POSE_OVERLAY_MIRROR_POLICY     -> session.mirror_policy
    POSE_OVERLAY_ORIENTATION       -> session.device_orientation
    POSE_OVERLAY_CAMERA_DEVICE     -> cameras[0].device
    POSE_OVERLAY_MIN_INTERVAL_MS   -> scheduler.min_interval_ms
    POSE_OVERLAY_ENGINE            -> engine.backend
    POSE_OVERLAY_PORT              -> server.port
    POSE_OVERLAY_LOG_LEVEL         -> logging.level
    PORT                           -> server.port

Example:
    from pose_overlay.config import settings

    print(settings.session.platform)
    print(settings.scheduler.min_interval_ms)
"""

import os
import logging
from pathlib import Path
from typing import List, Optional, Tuple, Union

import yaml
from pydantic import BaseModel, Field

from pose_overlay.models.orientation import CameraFacing, DeviceOrientation, Platform
from pose_overlay.rendering.mapper import MirrorPolicy
from pose_overlay.rendering.skeleton import SkeletonStyle


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class SessionConfig(BaseModel):
    """Session-wide pipeline configuration."""

    name: str = Field(default="pose-overlay", description="Service name")
    version: str = Field(default="v0.1.0", description="Service version")
    platform: Platform = Field(
        default=Platform.ANDROID,
        description="Camera stack convention: 'android' or 'ios'",
    )
    mirror_policy: MirrorPolicy = Field(
        default=MirrorPolicy.FRONT_CAMERA,
        description="Overlay mirroring: 'front_camera' or 'never'",
    )
    device_orientation: DeviceOrientation = Field(
        default=DeviceOrientation.PORTRAIT_UP,
        description="Initial device orientation reported with frames",
    )


class CameraConfig(BaseModel):
    """Single camera description."""

    name: str = Field(default="back", description="Camera name")
    device: Union[int, str] = Field(
        default=0,
        description="cv2.VideoCapture device index or video path",
    )
    facing: CameraFacing = Field(default=CameraFacing.BACK, description="Lens direction")
    sensor_orientation: int = Field(
        default=0,
        ge=0,
        lt=360,
        description="Sensor mounting angle in degrees",
    )


class CaptureConfig(BaseModel):
    """Capture loop configuration."""

    frame_width: Optional[int] = Field(default=640, ge=1, description="Requested width")
    frame_height: Optional[int] = Field(default=480, ge=1, description="Requested height")
    max_fps: float = Field(
        default=30.0,
        ge=0,
        description="Upper bound on the read loop rate (0 = unbounded)",
    )


class SchedulerConfig(BaseModel):
    """Frame admission configuration."""

    min_interval_ms: float = Field(
        default=0.0,
        ge=0,
        description="Minimum milliseconds between accepted frames (0 = no throttle)",
    )


class MockEngineConfig(BaseModel):
    """Mock engine configuration."""

    pose_count: int = Field(default=1, ge=0, description="Bodies per frame")
    latency_ms: float = Field(default=20.0, ge=0, description="Simulated latency")
    fail_every: int = Field(default=0, ge=0, description="Inject a failure every N calls")


class EngineConfig(BaseModel):
    """Pose estimation engine configuration."""

    backend: str = Field(
        default="mock",
        description="Engine backend: 'mock' or 'mediapipe'",
    )
    model_complexity: int = Field(default=1, ge=0, le=2, description="MediaPipe complexity")
    min_detection_confidence: float = Field(default=0.5, ge=0, le=1.0)
    min_tracking_confidence: float = Field(default=0.5, ge=0, le=1.0)
    mock: MockEngineConfig = Field(default_factory=MockEngineConfig)


class RenderingConfig(BaseModel):
    """Skeleton style configuration. Colors are RGB."""

    landmark_radius: float = Field(default=1.0, gt=0)
    landmark_color: Tuple[int, int, int] = Field(default=(0, 255, 0))
    center_width: float = Field(default=4.0, gt=0)
    center_color: Tuple[int, int, int] = Field(default=(0, 255, 0))
    side_width: float = Field(default=3.0, gt=0)
    left_color: Tuple[int, int, int] = Field(default=(255, 235, 59))
    right_color: Tuple[int, int, int] = Field(default=(68, 138, 255))
    min_confidence: float = Field(
        default=0.0,
        ge=0,
        le=1.0,
        description="Landmarks below this confidence are not drawn",
    )

    def to_style(self) -> SkeletonStyle:
        """Build the renderer style."""
        return SkeletonStyle(**self.model_dump())


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = Field(default="0.0.0.0", description="Bind host")
    port: int = Field(default=8002, ge=1, le=65535, description="Bind port")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="text", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for the pose overlay pipeline.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    session: SessionConfig = Field(default_factory=SessionConfig)
    cameras: List[CameraConfig] = Field(default_factory=lambda: [CameraConfig()])
    capture: CaptureConfig = Field(default_factory=CaptureConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    engine: EngineConfig = Field(default_factory=EngineConfig)
    rendering: RenderingConfig = Field(default_factory=RenderingConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Load configuration from YAML file and environment variables.

    Priority (highest to lowest):
        1. Environment variables
        2. YAML config file
        3. Default values

    Args:
        config_path: Path to config.yaml. If None, searches common locations.

    Returns:
        Settings: Loaded configuration
    """
    if config_path is None:
        config_path = os.environ.get("POSE_OVERLAY_CONFIG")

    if config_path is None:
        search_paths = [
            Path("config.yaml"),
            Path("config.yml"),
            Path(__file__).parent.parent.parent / "config.yaml",
        ]
        for path in search_paths:
            if path.exists():
                config_path = str(path)
                break

    config_data = {}
    if config_path and Path(config_path).exists():
        logger.info(f"Loading config from: {config_path}")
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}
    else:
        logger.warning("No config file found, using defaults and environment variables")

    _apply_env_overrides(config_data)

    return Settings.model_validate(config_data)


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    # Session settings
    if env_platform := os.environ.get("POSE_OVERLAY_PLATFORM"):
        config_data.setdefault("session", {})["platform"] = env_platform.lower()
    if env_mirror := os.environ.get("POSE_OVERLAY_MIRROR_POLICY"):
        config_data.setdefault("session", {})["mirror_policy"] = env_mirror.lower()
    if env_orientation := os.environ.get("POSE_OVERLAY_ORIENTATION"):
        config_data.setdefault("session", {})["device_orientation"] = env_orientation.lower()

    # Camera settings (first camera only)
    if env_device := os.environ.get("POSE_OVERLAY_CAMERA_DEVICE"):
        cameras = config_data.get("cameras") or [{}]
        cameras[0]["device"] = int(env_device) if env_device.isdigit() else env_device
        config_data["cameras"] = cameras

    # Scheduler settings
    if env_interval := os.environ.get("POSE_OVERLAY_MIN_INTERVAL_MS"):
        config_data.setdefault("scheduler", {})["min_interval_ms"] = float(env_interval)

    # Engine settings
    if env_engine := os.environ.get("POSE_OVERLAY_ENGINE"):
        config_data.setdefault("engine", {})["backend"] = env_engine

    # Server settings
    if env_port := os.environ.get("PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)
    elif env_port := os.environ.get("POSE_OVERLAY_PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)

    # Logging settings
    if env_log := os.environ.get("POSE_OVERLAY_LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = env_log


def setup_logging(settings: Settings) -> None:
    """Configure logging based on settings."""
    log_level = getattr(logging, settings.logging.level.upper(), logging.INFO)

    if settings.logging.format == "json":
        log_format = '{"time": "%(asctime)s", "level": "%(levelname)s", "module": "%(name)s", "message": "%(message)s"}'
    else:
        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=log_level,
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
    )


# =============================================================================
# Global Settings Instance
# =============================================================================

# Global settings instance - loaded on import
settings = load_config()
setup_logging(settings)
