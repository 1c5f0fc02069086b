"""
Resonance Touch Interface.

Turns physical touch samples into emotional-state estimates, maps them to
resonance actions, personalizes the result from a per-user profile and
publishes every stage as an event.
"""

from resonance_touch.config import RTIConfig, load_config
from resonance_touch.modules.orchestrator import ResonanceTouchInterface
from resonance_touch.modules.personalization import PersonalizationStore

__version__ = "1.0.0"

__all__ = [
    "PersonalizationStore",
    "RTIConfig",
    "ResonanceTouchInterface",
    "load_config",
]
