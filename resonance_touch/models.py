"""
Data types passed through the touch processing pipeline.

Samples, emotional states and resonance actions are immutable values;
the event records wrap them with the context the orchestrator adds
before publishing.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional, Tuple

# Type aliases
Timestamp = float


@dataclass(frozen=True)
class TouchSample:
    """A single physical touch delivered by the hardware layer."""

    x: float
    y: float
    pressure: float  # normalized 0.0 - 1.0
    duration: float  # milliseconds
    area: float  # square pixels
    timestamp: Timestamp = field(default_factory=time.time)
    thermal: Optional[float] = None  # normalized 0.0 - 1.0
    pulse: Optional[float] = None  # normalized 0.0 - 1.0

    @property
    def position(self) -> Tuple[float, float]:
        return (self.x, self.y)


@dataclass(frozen=True)
class EmotionalState:
    """Emotional estimate produced by the classifier for one sample."""

    primary: str
    intensity: float
    confidence: float
    timestamp: Timestamp = field(default_factory=time.time)
    secondary: Optional[str] = None


@dataclass(frozen=True)
class ResonanceAction:
    """Interaction derived from an emotional state and a pressure band."""

    mode: str
    form: str
    intensity: float
    characteristics: Tuple[str, ...] = ()


@dataclass
class ErrorEvent:
    """Normalized description of a component failure."""

    code: str
    message: str
    severity: str  # low | medium | high | critical
    timestamp: Timestamp = field(default_factory=time.time)
    context: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class EmotionEvent:
    """Classified emotional state with the sensor readings behind it."""

    emotional_state: EmotionalState
    sensor_data: Dict[str, Optional[float]]
    timestamp: Timestamp = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ResonanceEvent:
    """Resonance action enriched with session, application and device context."""

    action: ResonanceAction
    emotional_state: EmotionalState
    confidence: float
    context: Dict[str, str]
    personalization: Optional[Dict[str, Any]] = None
    timestamp: Timestamp = field(default_factory=time.time)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def to_payload(value: Any) -> Any:
    """Convert an event payload into JSON-friendly data."""
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if hasattr(value, "__dataclass_fields__"):
        return asdict(value)
    if hasattr(value, "model_dump"):
        return value.model_dump(mode="json")
    return value
