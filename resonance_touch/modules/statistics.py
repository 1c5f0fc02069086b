"""
Statistics for the Resonance Touch Interface

This module:
- Keeps a sliding window of the most recent processing latencies
- Smooths recognition confidence into an accuracy EMA
- Maintains ranked usage tables for modes and emotions
- Produces snapshot models of the running statistics
"""

from collections import deque
from typing import Deque, Dict, List, Optional

from pydantic import BaseModel

from resonance_touch.constants import ACCURACY_EMA_ALPHA, LATENCY_WINDOW_SIZE


class PerformanceWindow:
    """Bounded ring buffer of latency samples in milliseconds."""

    def __init__(self, size: int = LATENCY_WINDOW_SIZE) -> None:
        self.size = size
        self.samples: Deque[float] = deque(maxlen=size)
        self.last_latency = 0.0
        self.average = 0.0

    def push(self, latency_ms: float) -> float:
        """Add a sample and return the new window average."""
        self.last_latency = latency_ms
        self.samples.append(latency_ms)
        self.average = sum(self.samples) / len(self.samples)
        return self.average

    def reset(self) -> None:
        self.samples.clear()
        self.last_latency = 0.0
        self.average = 0.0

    def __len__(self) -> int:
        return len(self.samples)


def update_ema(current: float, value: float, alpha: float = ACCURACY_EMA_ALPHA) -> float:
    """Return the exponential moving average after observing value."""
    return (1 - alpha) * current + alpha * value


class UsageEntry(BaseModel):
    """One row of a ranked usage table."""

    name: str
    count: int
    percentage: float


class UsageTable:
    """Counts occurrences and keeps them ranked by count, highest first."""

    def __init__(self) -> None:
        self._entries: List[UsageEntry] = []

    def record(self, name: str) -> None:
        """Increment the count for name and recompute every percentage."""
        for entry in self._entries:
            if entry.name == name:
                entry.count += 1
                break
        else:
            self._entries.append(UsageEntry(name=name, count=1, percentage=0.0))

        total = sum(entry.count for entry in self._entries)
        for entry in self._entries:
            entry.percentage = entry.count / total * 100

        # Stable sort keeps first-seen order among equal counts
        self._entries.sort(key=lambda entry: entry.count, reverse=True)

    def entries(self) -> List[UsageEntry]:
        return [entry.model_copy() for entry in self._entries]

    def counts(self) -> Dict[str, int]:
        return {entry.name: entry.count for entry in self._entries}

    @property
    def total(self) -> int:
        return sum(entry.count for entry in self._entries)

    def clear(self) -> None:
        self._entries.clear()


class ModeUsage(BaseModel):
    """Row of the mode usage table in a statistics snapshot."""

    mode: str
    count: int
    percentage: float


class EmotionUsage(BaseModel):
    emotion: str
    count: int
    percentage: float


class PerformanceMetrics(BaseModel):
    """Performance section of the status snapshot."""

    latency: float = 0.0
    throughput: float = 0.0
    memory_usage: float = 0.0
    cpu_usage: float = 0.0


class UsageStatistics(BaseModel):
    """Snapshot of the cumulative usage statistics."""

    total_touches: int = 0
    total_emotions: int = 0
    total_resonances: int = 0
    average_latency: float = 0.0
    recognition_accuracy: float = 0.0
    top_emotions: List[EmotionUsage] = []
    top_modes: List[ModeUsage] = []
    session_duration: float = 0.0  # milliseconds
    uptime: float = 0.0  # milliseconds


class SystemStatusSnapshot(BaseModel):
    """Snapshot of the orchestrator status."""

    status: str
    performance: PerformanceMetrics
    error: Optional[Dict[str, object]] = None
