"""
Emotional State Classification for the Resonance Touch Interface

This module:
- Defines the classifier interface the orchestrator depends on
- Provides a deterministic heuristic classifier based on pressure band,
  touch duration and contact area
- Tracks recent touch timestamps to flag rapid repeated touches

The heuristic is a baseline so the pipeline runs end to end; a learned
emotion model plugs in through the same interface.
"""

import logging
from collections import deque
from typing import Deque, Dict, Optional, Protocol, Tuple

from resonance_touch.config import RTIConfig
from resonance_touch.constants import EmotionType
from resonance_touch.models import EmotionalState, TouchSample
from resonance_touch.modules.resonance_mapper import PressureBand, band_for_pressure
from resonance_touch.modules.utils import calculate_emotional_intensity, clamp

logger = logging.getLogger("resonance_touch.emotional_state")


class EmotionClassifier(Protocol):
    """Turns a touch sample into an emotional state estimate."""

    async def classify(self, sample: TouchSample) -> EmotionalState:
        ...


# (short touch, long touch) emotion per band
_BAND_EMOTIONS: Dict[PressureBand, Tuple[EmotionType, EmotionType]] = {
    PressureBand.VERY_LIGHT: (EmotionType.COMPASSION, EmotionType.LOVE),
    PressureBand.LIGHT: (EmotionType.JOY, EmotionType.GRATITUDE),
    PressureBand.MEDIUM: (EmotionType.FOCUS, EmotionType.CONCENTRATION),
    PressureBand.HEAVY: (EmotionType.ANXIETY, EmotionType.ANGER),
    PressureBand.VERY_HEAVY: (EmotionType.FRUSTRATION, EmotionType.ANGER),
}


class TouchHeuristicClassifier:
    """Rule-based classifier for touch samples."""

    def __init__(
        self,
        long_touch_ms: float = 500.0,
        rapid_window_sec: float = 1.0,
        rapid_touch_count: int = 3,
        buffer_max_size: int = 50,
        default_thermal: float = 0.5,
        pressure_sensitivity: float = 0.5,
    ) -> None:
        """Initialize the classifier.

        Args:
            long_touch_ms: Duration at which a touch counts as sustained
            rapid_window_sec: Window used to detect rapid repeated touches
            rapid_touch_count: Touches inside the window that mark excitement
            buffer_max_size: Maximum number of remembered touch timestamps
            default_thermal: Thermal value assumed when the sample has none
            pressure_sensitivity: Sensor sensitivity; 0.5 reads pressure as
                reported, higher values amplify it and lower values damp it
        """
        self.long_touch_ms = long_touch_ms
        self.rapid_window_sec = rapid_window_sec
        self.rapid_touch_count = rapid_touch_count
        self.default_thermal = default_thermal
        self.pressure_sensitivity = pressure_sensitivity
        self.touch_buffer: Deque[float] = deque(maxlen=buffer_max_size)

    def configure(self, config: RTIConfig) -> None:
        """Adopt the hardware settings of the interface configuration."""
        self.pressure_sensitivity = config.hardware.pressure_sensitivity

    async def classify(self, sample: TouchSample) -> EmotionalState:
        """Classify a sample into an emotional state."""
        thermal = sample.thermal if sample.thermal is not None else self.default_thermal
        pressure = clamp(sample.pressure * (0.5 + self.pressure_sensitivity))
        band = band_for_pressure(pressure)

        short_emotion, long_emotion = _BAND_EMOTIONS[band]
        sustained = sample.duration >= self.long_touch_ms
        primary = long_emotion if sustained else short_emotion

        secondary = self._secondary_emotion(sample.timestamp)
        if secondary is None and band == PressureBand.VERY_HEAVY:
            secondary = EmotionType.FRUSTRATION.value

        state = EmotionalState(
            primary=primary.value,
            secondary=secondary,
            intensity=calculate_emotional_intensity(pressure, thermal, sample.pulse),
            confidence=self._confidence(sample),
            timestamp=sample.timestamp,
        )
        logger.debug(
            f"Classified touch (pressure={pressure:.2f}, band={band.value}) "
            f"as {state.primary}"
        )
        return state

    def _secondary_emotion(self, timestamp: float) -> Optional[str]:
        """Record the touch and flag excitement on rapid repeated touches."""
        self.touch_buffer.append(timestamp)
        cutoff = timestamp - self.rapid_window_sec
        recent = sum(1 for t in self.touch_buffer if t >= cutoff)
        if recent >= self.rapid_touch_count:
            return EmotionType.EXCITEMENT.value
        return None

    def _confidence(self, sample: TouchSample) -> float:
        # Longer and broader contact carries more signal
        duration_factor = min(1.0, max(0.0, sample.duration) / 1000.0)
        area_factor = min(1.0, max(0.0, sample.area) / 1000.0)
        return clamp(0.5 + 0.3 * duration_factor + 0.2 * area_factor)
