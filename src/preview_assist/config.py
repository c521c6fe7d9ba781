"""
PreviewAssist Configuration
===========================

This module handles configuration loading for the analysis pipeline.

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. preview_assist.yaml / config.yaml file
    3. Default values (lowest priority)

Environment Variable Mapping:
    PREVIEW_ASSIST_HISTOGRAM_ENABLED    -> analyzers.histogram.enabled
    PREVIEW_ASSIST_HISTOGRAM_INTERVAL   -> analyzers.histogram.interval
    PREVIEW_ASSIST_ZEBRA_ENABLED        -> analyzers.overexposure.enabled
    PREVIEW_ASSIST_ZEBRA_INTERVAL       -> analyzers.overexposure.interval
    PREVIEW_ASSIST_ZEBRA_THRESHOLD      -> analyzers.overexposure.threshold_percent
    PREVIEW_ASSIST_PEAKING_ENABLED      -> analyzers.focus_peaking.enabled
    PREVIEW_ASSIST_PEAKING_INTERVAL     -> analyzers.focus_peaking.interval
    PREVIEW_ASSIST_PEAKING_SENSITIVITY  -> analyzers.focus_peaking.sensitivity
    PREVIEW_ASSIST_LOG_LEVEL            -> logging.level

Analyzer configs are frozen. Changing a value means building a new config
and handing it to ``AnalysisDispatcher.reconfigure``.

Example:
    from preview_assist.config import load_config, setup_logging

    settings = load_config()
    setup_logging(settings)
    print(settings.analyzers.overexposure.threshold_percent)
"""

import os
import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field


logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """Raised when a config file cannot be parsed."""
    pass


# =============================================================================
# Configuration Models
# =============================================================================

class HistogramConfig(BaseModel):
    """Luminance histogram analyzer configuration."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = Field(default=True, description="Run the histogram analyzer")
    interval: int = Field(
        default=5,
        ge=1,
        description="Analyze every Nth frame",
    )
    sample_step: int = Field(
        default=4,
        ge=1,
        description="Row and column stride of the sampling grid",
    )


class OverexposureConfig(BaseModel):
    """Zebra (overexposed block) analyzer configuration."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = Field(default=False, description="Run the zebra analyzer")
    interval: int = Field(
        default=10,
        ge=1,
        description="Analyze every Nth frame",
    )
    block_size: int = Field(
        default=32,
        ge=1,
        description="Side of the square analysis block in pixels",
    )
    threshold_percent: int = Field(
        default=95,
        ge=0,
        le=100,
        description="Overexposure cutoff as a percent of the 0-255 range",
    )


class FocusPeakingConfig(BaseModel):
    """Focus peaking analyzer configuration."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = Field(default=False, description="Run the focus peaking analyzer")
    interval: int = Field(
        default=8,
        ge=1,
        description="Analyze every Nth frame",
    )
    sample_step: int = Field(
        default=8,
        ge=1,
        description="Grid stride and gradient neighbour distance in pixels",
    )
    sensitivity: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        description="Higher sensitivity lowers the gradient threshold",
    )


class AnalyzersConfig(BaseModel):
    """All analyzer configurations."""

    model_config = ConfigDict(frozen=True)

    histogram: HistogramConfig = Field(default_factory=HistogramConfig)
    overexposure: OverexposureConfig = Field(default_factory=OverexposureConfig)
    focus_peaking: FocusPeakingConfig = Field(default_factory=FocusPeakingConfig)


class WorkerConfig(BaseModel):
    """Analysis worker configuration."""

    poll_timeout_sec: float = Field(
        default=0.1,
        gt=0,
        description="How long the worker waits for a frame before rechecking stop",
    )
    log_every_n_frames: int = Field(
        default=100,
        ge=1,
        description="Log a pipeline summary every N dispatched frames",
    )


class SourceConfig(BaseModel):
    """Frame source used by the command line runner."""

    kind: str = Field(
        default="synthetic",
        description="Frame source: 'synthetic' or 'video'",
    )
    video_path: Optional[str] = Field(
        default=None,
        description="Video file read when kind is 'video'",
    )
    pattern: str = Field(
        default="vertical_edge",
        description="Synthetic pattern: uniform, vertical_edge, gradient, highlights",
    )
    width: int = Field(default=640, ge=1, description="Analysis frame width")
    height: int = Field(default=480, ge=1, description="Analysis frame height")
    fps: float = Field(default=30.0, gt=0, description="Delivery rate")
    row_padding: int = Field(
        default=0,
        ge=0,
        description="Extra bytes per luma row (row stride = width + padding)",
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="text", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for PreviewAssist.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    analyzers: AnalyzersConfig = Field(default_factory=AnalyzersConfig)
    worker: WorkerConfig = Field(default_factory=WorkerConfig)
    source: SourceConfig = Field(default_factory=SourceConfig)
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
        config_path: Path to a YAML file. If None, searches common locations.

    Returns:
        Settings: Loaded configuration

    Raises:
        ConfigurationError: If the YAML file is malformed
    """
    if config_path is None:
        search_paths = [
            Path("preview_assist.yaml"),
            Path("config.yaml"),
        ]
        for path in search_paths:
            if path.exists():
                config_path = str(path)
                break

    config_data = {}
    if config_path and Path(config_path).exists():
        logger.info(f"Loading config from: {config_path}")
        with open(config_path, "r") as f:
            try:
                config_data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e
        if not isinstance(config_data, dict):
            raise ConfigurationError(
                f"Config file {config_path} must contain a mapping"
            )
    else:
        logger.debug("No config file found, using defaults and environment variables")

    _apply_env_overrides(config_data)

    return Settings.model_validate(config_data)


def _env_flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    def analyzer(name: str) -> dict:
        return config_data.setdefault("analyzers", {}).setdefault(name, {})

    # Histogram
    if env_on := os.environ.get("PREVIEW_ASSIST_HISTOGRAM_ENABLED"):
        analyzer("histogram")["enabled"] = _env_flag(env_on)
    if env_every := os.environ.get("PREVIEW_ASSIST_HISTOGRAM_INTERVAL"):
        analyzer("histogram")["interval"] = int(env_every)

    # Zebra
    if env_on := os.environ.get("PREVIEW_ASSIST_ZEBRA_ENABLED"):
        analyzer("overexposure")["enabled"] = _env_flag(env_on)
    if env_every := os.environ.get("PREVIEW_ASSIST_ZEBRA_INTERVAL"):
        analyzer("overexposure")["interval"] = int(env_every)
    if env_threshold := os.environ.get("PREVIEW_ASSIST_ZEBRA_THRESHOLD"):
        analyzer("overexposure")["threshold_percent"] = int(env_threshold)

    # Focus peaking
    if env_on := os.environ.get("PREVIEW_ASSIST_PEAKING_ENABLED"):
        analyzer("focus_peaking")["enabled"] = _env_flag(env_on)
    if env_every := os.environ.get("PREVIEW_ASSIST_PEAKING_INTERVAL"):
        analyzer("focus_peaking")["interval"] = int(env_every)
    if env_sens := os.environ.get("PREVIEW_ASSIST_PEAKING_SENSITIVITY"):
        analyzer("focus_peaking")["sensitivity"] = float(env_sens)

    # Logging
    if env_log := os.environ.get("PREVIEW_ASSIST_LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = env_log


def setup_logging(settings: Settings) -> None:
    """Configure logging based on settings."""
    log_level = getattr(logging, settings.logging.level.upper(), logging.INFO)

    if settings.logging.format == "json":
        log_format = '{"time": "%(asctime)s", "level": "%(levelname)s", "module": "%(name)s", "thread": "%(threadName)s", "message": "%(message)s"}'
    else:
        log_format = "%(asctime)s - %(name)s - [%(threadName)s] - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=log_level,
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
    )
