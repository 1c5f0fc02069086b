"""Unit tests for the resonance mapper."""

import math

import pytest

from resonance_touch.constants import EmotionType, FormType, InteractionMode
from resonance_touch.models import EmotionalState
from resonance_touch.modules.resonance_mapper import (
    DEFAULT_RULES,
    PressureBand,
    ResonanceMapper,
    band_for_pressure,
    rule,
)

PRESSURES = [
    -1.0, 0.0, 0.04, 0.05, 0.15, 0.19, 0.2, 0.35, 0.49,
    0.5, 0.6, 0.69, 0.7, 0.8, 0.89, 0.9, 1.0, 3.0,
]


def state(primary: str, intensity: float = 0.5, secondary=None) -> EmotionalState:
    return EmotionalState(
        primary=primary,
        intensity=intensity,
        confidence=0.8,
        timestamp=0.0,
        secondary=secondary,
    )


class TestPressureBands:
    """Test pressure band boundaries."""

    @pytest.mark.parametrize(
        "pressure,expected",
        [
            (0.0, PressureBand.VERY_LIGHT),
            (0.04, PressureBand.VERY_LIGHT),
            (0.19, PressureBand.VERY_LIGHT),
            (0.2, PressureBand.LIGHT),
            (0.49, PressureBand.LIGHT),
            (0.5, PressureBand.MEDIUM),
            (0.69, PressureBand.MEDIUM),
            (0.7, PressureBand.HEAVY),
            (0.89, PressureBand.HEAVY),
            (0.9, PressureBand.VERY_HEAVY),
            (1.0, PressureBand.VERY_HEAVY),
        ],
    )
    def test_band_floors_are_inclusive(self, pressure, expected):
        assert band_for_pressure(pressure) == expected

    def test_out_of_range_values_are_clamped(self):
        assert band_for_pressure(-0.5) == PressureBand.VERY_LIGHT
        assert band_for_pressure(7.0) == PressureBand.VERY_HEAVY

    def test_nan_is_rejected(self):
        with pytest.raises(ValueError):
            band_for_pressure(math.nan)


class TestResonanceMapper:
    """Test mapping emotional states to resonance actions."""

    def test_love_light_touch_creates_growing_form(self):
        """A very light loving touch produces a growing creation."""
        action = ResonanceMapper().map(state("love", intensity=0.4), 0.15)

        assert action.mode == "creation"
        assert action.form == "growing"
        assert action.characteristics == ("gentle", "nurturing", "expanding")
        assert action.intensity == pytest.approx(0.4)

    def test_anger_heavy_touch_destroys_geometric_form(self):
        action = ResonanceMapper().map(state("anger", intensity=0.9), 0.8)

        assert action.mode == "destruction"
        assert action.form == "geometric"
        assert action.characteristics == ("sharp", "fractured", "broken")

    def test_unmatched_state_uses_fallback(self):
        action = ResonanceMapper().map(state("surprise"), 0.95)

        assert action.mode == "alteration"
        assert action.form == "structured"
        assert action.characteristics == ()

    @pytest.mark.parametrize("emotion", [e.value for e in EmotionType])
    def test_every_emotion_and_pressure_maps(self, emotion):
        """Mapping is total over emotions and pressures."""
        mapper = ResonanceMapper()
        for pressure in PRESSURES:
            action = mapper.map(state(emotion), pressure)
            assert action.mode in {m.value for m in InteractionMode}
            assert action.form in {f.value for f in FormType}
            assert 0.0 <= action.intensity <= 1.0

    def test_mapping_is_deterministic(self):
        mapper = ResonanceMapper()
        first = mapper.map(state("joy"), 0.3)
        second = mapper.map(state("joy"), 0.3)
        assert first == second

    def test_intensity_is_clamped(self):
        action = ResonanceMapper().map(state("joy", intensity=1.7), 0.3)
        assert action.intensity == 1.0

    def test_nan_pressure_raises(self):
        with pytest.raises(ValueError):
            ResonanceMapper().map(state("joy"), math.nan)

    def test_default_rules_sorted_by_specificity(self):
        mapper = ResonanceMapper()
        specificities = [r.specificity for r in mapper.rules]
        assert specificities == sorted(specificities, reverse=True)
        assert len(mapper.rules) == len(DEFAULT_RULES)


class TestRuleOrdering:
    """Test specificity and declaration order."""

    def test_two_emotion_rule_wins_over_one_emotion_rule(self):
        single = rule(
            [EmotionType.JOY],
            PressureBand.LIGHT,
            InteractionMode.BLESSING,
            FormType.GLOWING,
            ["single"],
        )
        double = rule(
            [EmotionType.JOY, EmotionType.CALM],
            PressureBand.LIGHT,
            InteractionMode.CREATION,
            FormType.ORGANIC,
            ["double"],
        )
        mapper = ResonanceMapper([single, double])

        assert mapper.map(state("joy"), 0.3).characteristics == ("double",)

    def test_declaration_order_breaks_ties(self):
        first = rule(
            [EmotionType.JOY],
            PressureBand.LIGHT,
            InteractionMode.BLESSING,
            FormType.GLOWING,
            ["first"],
        )
        second = rule(
            [EmotionType.JOY],
            PressureBand.LIGHT,
            InteractionMode.CREATION,
            FormType.FLUID,
            ["second"],
        )
        mapper = ResonanceMapper([first, second])

        assert mapper.map(state("joy"), 0.3).characteristics == ("first",)

    def test_secondary_constraint_must_match(self):
        excited = rule(
            [EmotionType.JOY],
            PressureBand.LIGHT,
            InteractionMode.CREATION,
            FormType.FLUID,
            ["excited"],
            secondary=EmotionType.EXCITEMENT,
        )
        mapper = ResonanceMapper([excited])

        assert mapper.map(state("joy", secondary="excitement"), 0.3).characteristics == (
            "excited",
        )
        assert mapper.map(state("joy"), 0.3).form == "structured"
