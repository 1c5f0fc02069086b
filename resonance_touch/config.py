#!/usr/bin/env python3
"""
Configuration module for the Resonance Touch Interface.

Provides Pydantic models for the four configuration sections (hardware,
software, privacy, performance), range validation that reports every
violation at once, and command-line parsing for the runtime options.
"""

import argparse
from typing import Any, Dict, List, Literal, Mapping, Optional, Tuple

from pydantic import BaseModel, Field, ValidationError

from resonance_touch.constants import PERFORMANCE_LIMITS
from resonance_touch.errors import ConfigValidationError


class HardwareConfig(BaseModel):
    """Force-touch sensor settings."""

    sensors: List[Literal["Force-Touch", "Pulse", "Thermal"]] = Field(
        default_factory=lambda: ["Force-Touch", "Thermal"],
        description="Available sensor types",
    )
    input_surface: Literal[
        "Haptic-Responsive Glass", "Flexible Display", "Standard Trackpad"
    ] = Field(default="Standard Trackpad", description="Input surface type")
    pressure_sensitivity: float = Field(
        default=0.5,
        allow_inf_nan=False,
        description="Pressure sensitivity (0.0 to 1.0)",
    )
    sampling_rate: int = Field(default=1000, description="Sampling rate in Hz")


class SoftwareConfig(BaseModel):
    """Emotional processing settings."""

    emotion_decoder: Literal["GenesisEmotionCore", "HerResonanceAI", "Custom"] = Field(
        default="GenesisEmotionCore", description="Emotion decoder engine"
    )
    resonance_engine: Literal["HerResonanceAI", "QuantumResonance", "Custom"] = Field(
        default="HerResonanceAI", description="Resonance engine implementation"
    )
    real_time_processing: bool = Field(
        default=True, description="Enable real-time processing"
    )
    confidence_threshold: float = Field(
        default=0.7,
        allow_inf_nan=False,
        description="Emotional recognition confidence threshold",
    )


class PrivacySettings(BaseModel):
    """Data handling settings."""

    local_processing_only: bool = Field(
        default=True, description="Process emotional data locally only"
    )
    encrypt_data: bool = Field(default=True, description="Encrypt stored profiles")
    data_retention_days: int = Field(default=30, description="Data retention in days")
    allow_anonymous_sharing: bool = Field(
        default=False, description="Allow anonymous data sharing"
    )


class PerformanceConfig(BaseModel):
    """Latency, memory and learning settings."""

    max_latency: float = Field(
        default=10, allow_inf_nan=False, description="Maximum latency in ms"
    )
    enable_caching: bool = Field(
        default=True, description="Enable caching for emotional patterns"
    )
    memory_limit: float = Field(
        default=50, allow_inf_nan=False, description="Memory usage limit in MB"
    )
    adaptive_learning: bool = Field(default=True, description="Enable adaptive learning")


class RTIConfig(BaseModel):
    """Complete interface configuration."""

    hardware: HardwareConfig = Field(default_factory=HardwareConfig)
    software: SoftwareConfig = Field(default_factory=SoftwareConfig)
    privacy: PrivacySettings = Field(default_factory=PrivacySettings)
    performance: PerformanceConfig = Field(default_factory=PerformanceConfig)


SECTIONS = ("hardware", "software", "privacy", "performance")


def _format_error(section: str, err: Dict[str, Any]) -> str:
    loc = ".".join(str(part) for part in (section, *err["loc"]))
    return f"{loc}: {err['msg']}"


def _merge_sections(
    base: RTIConfig, overrides: Optional[Mapping[str, Any]]
) -> Tuple[RTIConfig, List[str]]:
    """Apply overrides field by field, keeping every value that parses.

    Returns the merged configuration together with the structural and type
    errors found along the way. Fields that failed to parse keep their base
    value so range checks can still run over the rest.
    """
    merged = base.model_dump()
    errors: List[str] = []

    for section, values in (overrides or {}).items():
        if section not in SECTIONS:
            errors.append(f"Unknown configuration section: {section}")
            continue
        if isinstance(values, BaseModel):
            values = values.model_dump(exclude_unset=True)
        if not isinstance(values, Mapping):
            errors.append(f"Configuration section {section} must be a mapping")
            continue

        model = RTIConfig.model_fields[section].annotation
        accepted = dict(merged[section])
        for key, value in values.items():
            try:
                model.model_validate({**accepted, key: value})
            except ValidationError as e:
                errors.extend(_format_error(section, err) for err in e.errors())
                continue
            accepted[key] = value
        merged[section] = accepted

    return RTIConfig.model_validate(merged), errors


def merge_config(
    base: RTIConfig, overrides: Optional[Mapping[str, Mapping[str, Any]]] = None
) -> RTIConfig:
    """Merge per-section overrides into a copy of the base configuration.

    Args:
        base: Configuration to start from
        overrides: Mapping of section name to partial section values

    Returns:
        A new RTIConfig; the base is left untouched

    Raises:
        ConfigValidationError: If a section is unknown or a value has the wrong type
    """
    config, errors = _merge_sections(base, overrides)
    if errors:
        raise ConfigValidationError(errors)
    return config


def validate_config(config: RTIConfig) -> List[str]:
    """Check configuration values against the performance limits.

    Every violation is collected; the check never stops at the first one.

    Returns:
        List of human readable violations, empty when the config is valid
    """
    errors: List[str] = []
    limits = PERFORMANCE_LIMITS

    if config.hardware.sampling_rate < limits["MIN_SAMPLING_RATE_HZ"]:
        errors.append(
            f"Sampling rate must be at least {limits['MIN_SAMPLING_RATE_HZ']} Hz"
        )
    if config.hardware.sampling_rate > limits["MAX_SAMPLING_RATE_HZ"]:
        errors.append(
            f"Sampling rate must not exceed {limits['MAX_SAMPLING_RATE_HZ']} Hz"
        )

    if not 0.0 <= config.hardware.pressure_sensitivity <= 1.0:
        errors.append("Pressure sensitivity must be between 0.0 and 1.0")

    if config.software.confidence_threshold < limits["MIN_CONFIDENCE_THRESHOLD"]:
        errors.append(
            f"Confidence threshold must be at least {limits['MIN_CONFIDENCE_THRESHOLD']}"
        )
    if config.software.confidence_threshold > limits["MAX_CONFIDENCE_THRESHOLD"]:
        errors.append(
            f"Confidence threshold must not exceed {limits['MAX_CONFIDENCE_THRESHOLD']}"
        )

    if config.performance.max_latency > limits["MAX_LATENCY_MS"]:
        errors.append(
            f"Maximum latency must not exceed {limits['MAX_LATENCY_MS']} ms"
        )
    if config.performance.memory_limit > limits["MAX_MEMORY_USAGE_MB"]:
        errors.append(
            f"Memory limit must not exceed {limits['MAX_MEMORY_USAGE_MB']} MB"
        )

    return errors


def load_config(
    overrides: Optional[Mapping[str, Mapping[str, Any]]] = None,
    base: Optional[RTIConfig] = None,
) -> RTIConfig:
    """Build a validated configuration from defaults and overrides.

    Raises:
        ConfigValidationError: With every violation if the result is invalid
    """
    config, errors = _merge_sections(base or RTIConfig(), overrides)
    errors.extend(validate_config(config))
    if errors:
        raise ConfigValidationError(errors)
    return config


class AppConfig(BaseModel):
    """Runtime parameters for the service process."""

    # Server Config
    host: str = Field(default="0.0.0.0", description="Host interface to bind server to")
    port: int = Field(default=8000, description="Port to run server on")

    # Logging Config
    log_level: str = Field(default="info", description="Logging level")
    log_file: Optional[str] = Field(default=None, description="Path to log file")

    # Profile Config
    user_id: str = Field(default="local-user", description="Profile owner identifier")
    storage_path: Optional[str] = Field(
        default="data/profiles.db",
        description="SQLite file for profiles (None keeps profiles in memory)",
    )
    encryption_key: Optional[str] = Field(
        default=None, description="Fernet key used when privacy.encrypt_data is set"
    )

    # Monitoring Config
    monitor_interval_sec: float = Field(
        default=1.0, description="Interval in seconds between metric updates"
    )
    application: str = Field(
        default="unknown", description="Application name attached to resonance events"
    )

    rti: RTIConfig = Field(default_factory=RTIConfig)


def parse_arguments(argv: Optional[List[str]] = None) -> AppConfig:
    """Parse command line arguments and create application configuration.

    Only exposes the most commonly adjusted settings as command-line arguments,
    while using Pydantic defaults for the rest.

    Returns:
        AppConfig: Application configuration based on command line arguments

    Raises:
        ConfigValidationError: If the interface settings violate the limits
    """
    parser = argparse.ArgumentParser(
        description="Resonance Touch Interface Server",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    # Server Config
    parser.add_argument("--host", type=str, help="Host interface to bind to")
    parser.add_argument("--port", type=int, help="Port to run server on")

    # Profile Config
    parser.add_argument("--user-id", type=str, help="Profile owner identifier")
    parser.add_argument(
        "--storage-path", type=str, help="SQLite file used for profile storage"
    )
    parser.add_argument(
        "--encryption-key", type=str, help="Fernet key used to encrypt stored profiles"
    )
    parser.add_argument(
        "--application", type=str, help="Application name attached to resonance events"
    )
    parser.add_argument(
        "--monitor-interval",
        dest="monitor_interval_sec",
        type=float,
        help="Seconds between performance metric updates",
    )

    # Interface Config
    parser.add_argument("--sampling-rate", type=int, help="Sensor sampling rate in Hz")
    parser.add_argument(
        "--confidence-threshold",
        type=float,
        help="Emotional recognition confidence threshold",
    )
    parser.add_argument(
        "--max-latency", type=float, help="Maximum processing latency in ms"
    )

    # Logging Config
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["debug", "info", "warning", "error", "critical"],
        help="Logging level",
    )
    parser.add_argument("--log-file", type=str, help="Path to log file")

    args = parser.parse_args(argv)

    # Prepare a config dict with only specified arguments (ignoring None values)
    config_dict: Dict[str, Any] = {}

    for name in (
        "host",
        "port",
        "user_id",
        "storage_path",
        "encryption_key",
        "application",
        "monitor_interval_sec",
        "log_level",
        "log_file",
    ):
        value = getattr(args, name)
        if value is not None:
            config_dict[name] = value

    overrides: Dict[str, Dict[str, Any]] = {}
    if args.sampling_rate is not None:
        overrides.setdefault("hardware", {})["sampling_rate"] = args.sampling_rate
    if args.confidence_threshold is not None:
        overrides.setdefault("software", {})[
            "confidence_threshold"
        ] = args.confidence_threshold
    if args.max_latency is not None:
        overrides.setdefault("performance", {})["max_latency"] = args.max_latency

    config_dict["rti"] = load_config(overrides)

    # Create and validate config with Pydantic (using defaults for unspecified values)
    return AppConfig(**config_dict)
