"""
Resonance Mapper for the Resonance Touch Interface

This module:
- Splits the pressure domain into named, non-overlapping bands
- Holds the rule table mapping (emotion, band) to an interaction
- Resolves an emotional state and a pressure into a ResonanceAction

Bands are half-open: every threshold from LIGHT upwards is the inclusive
floor of its band, and VERY_LIGHT also covers readings under its own 0.05
detection floor. VERY_HEAVY is closed at 1.0.
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Iterable, List, Optional, Sequence, Tuple

from resonance_touch.constants import (
    PRESSURE_THRESHOLDS,
    EmotionType,
    FormType,
    InteractionMode,
)
from resonance_touch.models import EmotionalState, ResonanceAction
from resonance_touch.modules.utils import clamp

logger = logging.getLogger("resonance_touch.resonance_mapper")


class PressureBand(str, Enum):
    """Named pressure ranges, ordered from lightest to heaviest."""

    VERY_LIGHT = "VERY_LIGHT"
    LIGHT = "LIGHT"
    MEDIUM = "MEDIUM"
    HEAVY = "HEAVY"
    VERY_HEAVY = "VERY_HEAVY"


# (band, inclusive lower bound), heaviest first
_BAND_FLOORS: Tuple[Tuple[PressureBand, float], ...] = (
    (PressureBand.VERY_HEAVY, PRESSURE_THRESHOLDS["VERY_HEAVY"]),
    (PressureBand.HEAVY, PRESSURE_THRESHOLDS["HEAVY"]),
    (PressureBand.MEDIUM, PRESSURE_THRESHOLDS["MEDIUM"]),
    (PressureBand.LIGHT, PRESSURE_THRESHOLDS["LIGHT"]),
    (PressureBand.VERY_LIGHT, 0.0),
)


def band_for_pressure(pressure: float) -> PressureBand:
    """
    Return the pressure band containing a reading.

    Args:
        pressure: Normalized pressure; values outside [0, 1] are clamped

    Raises:
        ValueError: If pressure is NaN
    """
    if math.isnan(pressure):
        raise ValueError("Pressure must be a number, got NaN")

    pressure = clamp(pressure)
    for band, floor in _BAND_FLOORS:
        if pressure >= floor:
            return band
    return PressureBand.VERY_LIGHT


@dataclass(frozen=True)
class ResonanceRule:
    """Structured predicate over an emotional state and a pressure band."""

    emotions: FrozenSet[str]
    band: PressureBand
    mode: InteractionMode
    form: FormType
    characteristics: Tuple[str, ...] = ()
    secondary: Optional[str] = None

    @property
    def specificity(self) -> int:
        """Number of emotions the rule names; higher is more specific."""
        return len(self.emotions) + (1 if self.secondary else 0)

    def matches(self, state: EmotionalState, band: PressureBand) -> bool:
        if band != self.band or state.primary not in self.emotions:
            return False
        return self.secondary is None or state.secondary == self.secondary


def rule(
    emotions: Iterable[EmotionType],
    band: PressureBand,
    mode: InteractionMode,
    form: FormType,
    characteristics: Sequence[str],
    secondary: Optional[EmotionType] = None,
) -> ResonanceRule:
    """Build a rule from enum members."""
    return ResonanceRule(
        emotions=frozenset(e.value for e in emotions),
        band=band,
        mode=mode,
        form=form,
        characteristics=tuple(characteristics),
        secondary=secondary.value if secondary else None,
    )


DEFAULT_RULES: Tuple[ResonanceRule, ...] = (
    # Creation
    rule(
        [EmotionType.JOY, EmotionType.CALM],
        PressureBand.LIGHT,
        InteractionMode.CREATION,
        FormType.ORGANIC,
        ["flowing", "natural", "smooth"],
    ),
    rule(
        [EmotionType.LOVE],
        PressureBand.VERY_LIGHT,
        InteractionMode.CREATION,
        FormType.GROWING,
        ["gentle", "nurturing", "expanding"],
    ),
    # Alteration
    rule(
        [EmotionType.FOCUS, EmotionType.DETERMINATION],
        PressureBand.MEDIUM,
        InteractionMode.ALTERATION,
        FormType.PRECISE,
        ["refined", "accurate", "controlled"],
    ),
    rule(
        [EmotionType.CONCENTRATION],
        PressureBand.MEDIUM,
        InteractionMode.ALTERATION,
        FormType.STRUCTURED,
        ["organized", "systematic", "ordered"],
    ),
    # Destruction
    rule(
        [EmotionType.ANGER, EmotionType.FRUSTRATION],
        PressureBand.HEAVY,
        InteractionMode.DESTRUCTION,
        FormType.GEOMETRIC,
        ["sharp", "fractured", "broken"],
    ),
    rule(
        [EmotionType.ANXIETY],
        PressureBand.HEAVY,
        InteractionMode.DESTRUCTION,
        FormType.CRYSTALLINE,
        ["fragile", "shattered", "dispersed"],
    ),
    # Blessing
    rule(
        [EmotionType.COMPASSION],
        PressureBand.VERY_LIGHT,
        InteractionMode.BLESSING,
        FormType.ETHEREAL,
        ["glowing", "radiant", "transcendent"],
    ),
    rule(
        [EmotionType.GRATITUDE],
        PressureBand.LIGHT,
        InteractionMode.BLESSING,
        FormType.GLOWING,
        ["warm", "luminous", "harmonious"],
    ),
)


class ResonanceMapper:
    """Maps emotional states and pressure to resonance actions."""

    FALLBACK_MODE = InteractionMode.ALTERATION
    FALLBACK_FORM = FormType.STRUCTURED

    def __init__(self, rules: Optional[Iterable[ResonanceRule]] = None) -> None:
        """Initialize the mapper.

        Args:
            rules: Rule table to use instead of DEFAULT_RULES. Rules are
                evaluated most specific first; declaration order breaks ties.
        """
        declared = list(DEFAULT_RULES if rules is None else rules)
        # sorted() is stable, so equal specificity keeps declaration order
        self.rules: List[ResonanceRule] = sorted(
            declared, key=lambda r: r.specificity, reverse=True
        )

    def find_rule(
        self, state: EmotionalState, pressure: float
    ) -> Optional[ResonanceRule]:
        """Return the first rule matching the state and pressure, if any."""
        band = band_for_pressure(pressure)
        for candidate in self.rules:
            if candidate.matches(state, band):
                return candidate
        return None

    def map(self, state: EmotionalState, pressure: float) -> ResonanceAction:
        """
        Resolve an emotional state and pressure into a resonance action.

        Returns the neutral fallback (alteration / structured, no
        characteristics) when no rule matches.

        Raises:
            ValueError: If pressure is NaN
        """
        intensity = clamp(state.intensity)
        matched = self.find_rule(state, pressure)

        if matched is None:
            logger.debug(
                f"No resonance rule for {state.primary} at pressure {pressure:.3f}, "
                "using fallback"
            )
            return ResonanceAction(
                mode=self.FALLBACK_MODE.value,
                form=self.FALLBACK_FORM.value,
                intensity=intensity,
                characteristics=(),
            )

        return ResonanceAction(
            mode=matched.mode.value,
            form=matched.form.value,
            intensity=intensity,
            characteristics=matched.characteristics,
        )
