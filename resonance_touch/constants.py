"""
Constants for the Resonance Touch Interface.

Emotion tags, interaction modes, form types, pressure thresholds,
performance limits, error codes and event/status names shared by all
modules.
"""

from enum import Enum


class EmotionType(str, Enum):
    """Emotional states the classifier may report."""

    # Positive
    JOY = "joy"
    CALM = "calm"
    LOVE = "love"
    EXCITEMENT = "excitement"
    GRATITUDE = "gratitude"
    COMPASSION = "compassion"

    # Focused
    FOCUS = "focus"
    DETERMINATION = "determination"
    CONCENTRATION = "concentration"
    DISCIPLINE = "discipline"

    # Negative
    ANGER = "anger"
    FRUSTRATION = "frustration"
    ANXIETY = "anxiety"
    SADNESS = "sadness"
    FEAR = "fear"

    # Complex
    CURIOSITY = "curiosity"
    WONDER = "wonder"
    CONTEMPLATION = "contemplation"
    INSPIRATION = "inspiration"


class InteractionMode(str, Enum):
    """The four interaction modes a resonance action can take."""

    CREATION = "creation"
    ALTERATION = "alteration"
    DESTRUCTION = "destruction"
    BLESSING = "blessing"


class FormType(str, Enum):
    """Visual character of the form produced by a resonance action."""

    # Organic
    ORGANIC = "organic"
    FLUID = "fluid"
    NATURAL = "natural"
    GROWING = "growing"

    # Geometric
    GEOMETRIC = "geometric"
    CRYSTALLINE = "crystalline"
    PRECISE = "precise"
    STRUCTURED = "structured"

    # Dynamic
    ANIMATED = "animated"
    RESPONSIVE = "responsive"
    INTERACTIVE = "interactive"

    # Ethereal
    ETHEREAL = "ethereal"
    GLOWING = "glowing"
    TRANSLUCENT = "translucent"
    IMMATERIAL = "immaterial"


class SystemStatus(str, Enum):
    """Lifecycle states of the orchestrator."""

    INITIALIZING = "initializing"
    READY = "ready"
    PROCESSING = "processing"
    ERROR = "error"
    DISABLED = "disabled"


class EventType(str, Enum):
    """Event names published on the orchestrator's channel."""

    TOUCH = "touch"
    EMOTION = "emotion"
    RESONANCE = "resonance"
    ERROR = "error"
    STATUS_CHANGE = "status_change"
    PERFORMANCE_UPDATE = "performance_update"


class ProfileEventType(str, Enum):
    """Event names published by the personalization store after a save."""

    PATTERN_ADDED = "pattern_added"
    PATTERN_UPDATED = "pattern_updated"
    PATTERN_REMOVED = "pattern_removed"
    PATTERNS_REINFORCED = "patterns_reinforced"
    PREFERENCES_UPDATED = "preferences_updated"
    PRIVACY_UPDATED = "privacy_updated"
    LEARNING_ADJUSTED = "learning_adjusted"
    ACCURACY_UPDATED = "accuracy_updated"
    RETENTION_APPLIED = "retention_applied"
    PROFILE_IMPORTED = "profile_imported"
    PROFILE_CLEARED = "profile_cleared"


class ErrorCode(str, Enum):
    """Error codes used across the system."""

    # Hardware
    HARDWARE_NOT_SUPPORTED = "HARDWARE_NOT_SUPPORTED"
    SENSOR_DISCONNECTED = "SENSOR_DISCONNECTED"
    PRESSURE_SENSOR_ERROR = "PRESSURE_SENSOR_ERROR"
    THERMAL_SENSOR_ERROR = "THERMAL_SENSOR_ERROR"

    # Processing
    EMOTION_DECODER_ERROR = "EMOTION_DECODER_ERROR"
    RESONANCE_ENGINE_ERROR = "RESONANCE_ENGINE_ERROR"
    DIMENSIONAL_TRANSLATOR_ERROR = "DIMENSIONAL_TRANSLATOR_ERROR"
    PERSONALIZATION_ERROR = "PERSONALIZATION_ERROR"
    SAMPLE_REJECTED = "SAMPLE_REJECTED"

    # Configuration
    INVALID_CONFIG = "INVALID_CONFIG"
    MISSING_REQUIRED_SENSOR = "MISSING_REQUIRED_SENSOR"
    INVALID_SAMPLING_RATE = "INVALID_SAMPLING_RATE"

    # Performance
    LATENCY_EXCEEDED = "LATENCY_EXCEEDED"
    MEMORY_LIMIT_EXCEEDED = "MEMORY_LIMIT_EXCEEDED"
    CPU_LIMIT_EXCEEDED = "CPU_LIMIT_EXCEEDED"
    PERFORMANCE_DEGRADED = "PERFORMANCE_DEGRADED"

    # Privacy
    ENCRYPTION_FAILED = "ENCRYPTION_FAILED"
    DATA_ACCESS_DENIED = "DATA_ACCESS_DENIED"
    PRIVACY_VIOLATION = "PRIVACY_VIOLATION"
    PROFILE_LOAD_ERROR = "PROFILE_LOAD_ERROR"
    PROFILE_SAVE_ERROR = "PROFILE_SAVE_ERROR"

    # Lifecycle
    INITIALIZATION_ERROR = "INITIALIZATION_ERROR"


# Pressure thresholds; each value from LIGHT upwards is the floor of its band
PRESSURE_THRESHOLDS = {
    "VERY_LIGHT": 0.05,
    "LIGHT": 0.2,
    "MEDIUM": 0.5,
    "HEAVY": 0.7,
    "VERY_HEAVY": 0.9,
    "MAXIMUM": 1.0,
}

PERFORMANCE_LIMITS = {
    "MAX_LATENCY_MS": 10,
    "MIN_SAMPLING_RATE_HZ": 100,
    "MAX_SAMPLING_RATE_HZ": 2000,
    "MAX_MEMORY_USAGE_MB": 100,
    "MAX_CPU_USAGE_PERCENT": 20,
    "MIN_CONFIDENCE_THRESHOLD": 0.5,
    "MAX_CONFIDENCE_THRESHOLD": 0.95,
}

# Sliding window size for latency samples
LATENCY_WINDOW_SIZE = 100

# Smoothing factor for the recognition accuracy EMA
ACCURACY_EMA_ALPHA = 0.1

# Maximum distance for pressure/thermal pattern matching
PATTERN_MATCH_EPSILON = 0.2

# Confidence above which personalized responses switch to "fast"
FAST_RESPONSE_CONFIDENCE = 0.8

PROFILE_VERSION = "1.0.0"
