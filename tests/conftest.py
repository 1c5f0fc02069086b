"""Shared fixtures for the resonance touch tests."""

import asyncio
from typing import List, Optional

import pytest

from resonance_touch.models import EmotionalState, TouchSample
from resonance_touch.modules.orchestrator import ResonanceTouchInterface
from resonance_touch.modules.personalization import PersonalizationStore
from resonance_touch.modules.storage import MemoryStorage


class ManualClock:
    """Deterministic clock; time only moves when advanced or slept."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.start = start
        self.elapsed = 0.0
        self.sleeps: List[float] = []

    def time(self) -> float:
        return self.start + self.elapsed

    def monotonic(self) -> float:
        return self.elapsed

    def advance(self, seconds: float) -> None:
        self.elapsed += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.advance(seconds)
        await asyncio.sleep(0)


class FixedClassifier:
    """Returns the same emotional state for every sample."""

    def __init__(
        self,
        primary: str = "joy",
        intensity: float = 0.6,
        confidence: float = 0.8,
        secondary: Optional[str] = None,
    ) -> None:
        self.primary = primary
        self.intensity = intensity
        self.confidence = confidence
        self.secondary = secondary
        self.calls = 0

    async def classify(self, sample: TouchSample) -> EmotionalState:
        self.calls += 1
        return EmotionalState(
            primary=self.primary,
            intensity=self.intensity,
            confidence=self.confidence,
            timestamp=sample.timestamp,
            secondary=self.secondary,
        )


class SlowClassifier(FixedClassifier):
    """Advances the manual clock while classifying."""

    def __init__(self, clock: ManualClock, delay_sec: float, **kwargs) -> None:
        super().__init__(**kwargs)
        self.clock = clock
        self.delay_sec = delay_sec

    async def classify(self, sample: TouchSample) -> EmotionalState:
        self.clock.advance(self.delay_sec)
        return await super().classify(sample)


class FailingClassifier:
    async def classify(self, sample: TouchSample) -> EmotionalState:
        raise RuntimeError("decoder offline")


class GatedClassifier(FixedClassifier):
    """Blocks classification until released."""

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self.entered = asyncio.Event()
        self.gate = asyncio.Event()

    async def classify(self, sample: TouchSample) -> EmotionalState:
        self.entered.set()
        await self.gate.wait()
        return await super().classify(sample)


class FlakyStorage(MemoryStorage):
    """Fails a fixed number of writes before succeeding."""

    def __init__(self, failures: int) -> None:
        super().__init__()
        self.failures = failures
        self.attempts = 0

    async def set(self, key: str, value: str) -> None:
        self.attempts += 1
        if self.attempts <= self.failures:
            raise ConnectionError("storage unavailable")
        await super().set(key, value)


class EventRecorder:
    """Wildcard subscriber keeping (event_type, payload) pairs."""

    def __init__(self) -> None:
        self.events = []

    def __call__(self, event_type, payload) -> None:
        self.events.append((event_type.value, payload))

    @property
    def types(self) -> List[str]:
        return [event_type for event_type, _ in self.events]

    def of_type(self, event_type: str) -> list:
        return [payload for kind, payload in self.events if kind == event_type]


def make_sample(
    pressure: float = 0.3,
    duration: float = 300.0,
    area: float = 400.0,
    timestamp: float = 1_700_000_000.0,
    thermal: Optional[float] = 0.5,
    pulse: Optional[float] = None,
) -> TouchSample:
    return TouchSample(
        x=10.0,
        y=20.0,
        pressure=pressure,
        duration=duration,
        area=area,
        timestamp=timestamp,
        thermal=thermal,
        pulse=pulse,
    )


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def store(clock, storage) -> PersonalizationStore:
    return PersonalizationStore(
        "user-1234567890", storage=storage, clock=clock, retry_base_delay=0.01
    )


@pytest.fixture
def recorder() -> EventRecorder:
    return EventRecorder()


@pytest.fixture
def build_interface(clock, store, recorder):
    """Factory creating an interface wired to the manual clock and recorder."""

    def build(classifier=None, profile=store, **kwargs) -> ResonanceTouchInterface:
        interface = ResonanceTouchInterface(
            classifier=classifier or FixedClassifier(),
            profile=profile,
            clock=clock,
            application="tests",
            device="test-device",
            **kwargs,
        )
        interface.events.subscribe_all(recorder)
        return interface

    return build
