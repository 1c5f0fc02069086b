"""Unit tests for the touch heuristic classifier."""

import pytest

from conftest import make_sample
from resonance_touch.config import load_config
from resonance_touch.modules.emotional_state import TouchHeuristicClassifier


class TestTouchHeuristicClassifier:
    """Test band, duration and rhythm based classification."""

    @pytest.mark.parametrize(
        "pressure,duration,expected",
        [
            (0.1, 100, "compassion"),
            (0.1, 800, "love"),
            (0.3, 100, "joy"),
            (0.3, 800, "gratitude"),
            (0.6, 100, "focus"),
            (0.6, 800, "concentration"),
            (0.8, 100, "anxiety"),
            (0.8, 800, "anger"),
            (0.95, 100, "frustration"),
        ],
    )
    async def test_primary_emotion(self, pressure, duration, expected):
        classifier = TouchHeuristicClassifier()
        state = await classifier.classify(make_sample(pressure=pressure, duration=duration))
        assert state.primary == expected

    async def test_confidence_grows_with_duration_and_area(self):
        classifier = TouchHeuristicClassifier()

        brief = await classifier.classify(make_sample(duration=0, area=0, timestamp=0.0))
        full = await classifier.classify(
            make_sample(duration=1000, area=1000, timestamp=100.0)
        )

        assert brief.confidence == pytest.approx(0.5)
        assert full.confidence == pytest.approx(1.0)

    async def test_rapid_touches_flag_excitement(self):
        classifier = TouchHeuristicClassifier()

        states = [
            await classifier.classify(make_sample(timestamp=10.0 + i * 0.2))
            for i in range(3)
        ]

        assert [s.secondary for s in states] == [None, None, "excitement"]

    async def test_very_heavy_touch_flags_frustration(self):
        classifier = TouchHeuristicClassifier()
        state = await classifier.classify(make_sample(pressure=0.95))
        assert state.secondary == "frustration"

    async def test_intensity_uses_default_thermal(self):
        classifier = TouchHeuristicClassifier(default_thermal=0.5)
        state = await classifier.classify(make_sample(pressure=0.5, thermal=None))
        assert state.intensity == pytest.approx(0.45)

    async def test_configure_adopts_pressure_sensitivity(self):
        classifier = TouchHeuristicClassifier()
        classifier.configure(load_config({"hardware": {"pressure_sensitivity": 0.0}}))

        # 0.3 damped to 0.15 falls back into the very light band
        state = await classifier.classify(make_sample(pressure=0.3, duration=100))

        assert classifier.pressure_sensitivity == 0.0
        assert state.primary == "compassion"
