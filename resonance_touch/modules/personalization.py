"""
Personalization Store for the Resonance Touch Interface

This module:
- Holds one user's emotional fingerprint (historical pattern records)
- Matches new observations against stored patterns
- Derives personalized resonance settings from the best matching pattern
- Tracks adaptive-learning adjustments and accuracy
- Exports and imports profiles according to the privacy settings
- Persists the profile as one JSON blob through a storage backend
- Tracks unsaved changes and publishes profile events once they are saved

Encryption of the stored blob is the storage backend's job (see
EncryptedStorage); the store only ever sees plain JSON.
"""

import json
import logging
import uuid
from typing import Any, Dict, List, Literal, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, Field, ValidationError, field_validator

from resonance_touch.constants import (
    FAST_RESPONSE_CONFIDENCE,
    PATTERN_MATCH_EPSILON,
    PROFILE_VERSION,
    ErrorCode,
    ProfileEventType,
)
from resonance_touch.errors import PrivacyError
from resonance_touch.modules.events import EventChannel
from resonance_touch.modules.storage import MemoryStorage, StorageBackend
from resonance_touch.modules.utils import SystemClock, retry_with_backoff

logger = logging.getLogger("resonance_touch.personalization")

SECONDS_PER_DAY = 86400


class PatternCharacteristics(BaseModel):
    """Emotional signature of a stored pattern."""

    primary: str
    secondary: Optional[str] = None
    intensity_range: Tuple[float, float] = (0.0, 1.0)
    pressure_sensitivity: float = 0.5
    thermal_signature: float = 0.5
    pulse_correlation: Optional[float] = None

    @field_validator("intensity_range")
    @classmethod
    def _ordered_range(cls, value: Tuple[float, float]) -> Tuple[float, float]:
        low, high = value
        if low > high:
            raise ValueError("intensity_range lower bound exceeds upper bound")
        return value


class EmotionalPattern(BaseModel):
    """A historical emotional record belonging to one profile."""

    id: str = ""
    name: str = ""
    characteristics: PatternCharacteristics
    frequency: int = Field(default=0, ge=0)
    confidence: float = Field(default=0.0, ge=0.0)
    last_observed: float = 0.0
    created_at: float = 0.0


class Sensitivity(BaseModel):
    pressure: float = 0.5
    thermal: float = 0.5
    pulse: float = 0.5


class ResonanceSettings(BaseModel):
    """Personal resonance preferences."""

    preferred_modes: List[str] = Field(default_factory=lambda: ["creation", "alteration"])
    form_preferences: List[str] = Field(default_factory=lambda: ["organic", "fluid"])
    sensitivity: Sensitivity = Field(default_factory=Sensitivity)
    response_speed: Literal["slow", "normal", "fast"] = "normal"
    haptic_feedback: bool = True


class PrivacyConfig(BaseModel):
    """Privacy settings governing export and retention."""

    local_processing_only: bool = True
    encrypt_data: bool = True
    retention_days: int = Field(default=30, ge=0)
    allow_anonymous_sharing: bool = False
    share_patterns: bool = False
    share_preferences: bool = False


class LearningAdjustment(BaseModel):
    type: str
    value: float
    timestamp: float


class AdaptiveLearningState(BaseModel):
    """Adaptive learning statistics; the adjustment log is append-only."""

    learning_rate: float = 0.1
    accuracy: float = 0.0
    training_samples: int = 0
    last_training: float = 0.0
    adjustments: List[LearningAdjustment] = Field(default_factory=list)


class UserProfile(BaseModel):
    """Everything stored for one user."""

    user_id: str
    display_name: str
    emotional_fingerprint: List[EmotionalPattern] = Field(default_factory=list)
    resonance_preferences: ResonanceSettings = Field(default_factory=ResonanceSettings)
    privacy_settings: PrivacyConfig = Field(default_factory=PrivacyConfig)
    learning_data: AdaptiveLearningState = Field(default_factory=AdaptiveLearningState)
    created_at: float = 0.0
    updated_at: float = 0.0
    version: str = PROFILE_VERSION


class PersonalizationStore:
    """Manages one user's profile, patterns and preferences."""

    def __init__(
        self,
        user_id: str,
        storage: Optional[StorageBackend] = None,
        clock: Optional[Any] = None,
        save_attempts: int = 3,
        retry_base_delay: float = 0.1,
        privacy_defaults: Optional[Mapping[str, Any]] = None,
        caching: bool = True,
    ) -> None:
        """Initialize the store with a default profile.

        Args:
            user_id: Identifier of the profile owner
            storage: Backend for persistence; defaults to in-memory storage
            clock: Time source with time() and sleep(); defaults to SystemClock
            save_attempts: Attempts for save and delete before giving up
            retry_base_delay: First backoff delay in seconds
            privacy_defaults: PrivacyConfig values for profiles created here;
                a loaded profile keeps its own settings
            caching: Cache personalized resonance per emotion until the
                profile changes
        """
        self.storage: StorageBackend = storage if storage is not None else MemoryStorage()
        self.clock = clock or SystemClock()
        self.save_attempts = save_attempts
        self.retry_base_delay = retry_base_delay
        self.privacy_defaults = dict(privacy_defaults or {})
        self.caching = caching
        self.events = EventChannel(ProfileEventType)

        self._dirty = False
        self._pending: List[Tuple[ProfileEventType, Dict[str, Any]]] = []
        self._resonance_cache: Dict[str, ResonanceSettings] = {}

        self.profile = self._create_default_profile(user_id)

    @property
    def user_id(self) -> str:
        return self.profile.user_id

    @property
    def storage_key(self) -> str:
        return f"profile_{self.profile.user_id}"

    @property
    def patterns(self) -> List[EmotionalPattern]:
        return self.profile.emotional_fingerprint

    @property
    def resonance_preferences(self) -> ResonanceSettings:
        return self.profile.resonance_preferences

    @property
    def privacy_settings(self) -> PrivacyConfig:
        return self.profile.privacy_settings

    @property
    def learning_data(self) -> AdaptiveLearningState:
        return self.profile.learning_data

    @property
    def dirty(self) -> bool:
        """True while the profile has changes that were not saved yet."""
        return self._dirty

    def _create_default_profile(self, user_id: str) -> UserProfile:
        now = self.clock.time()
        return UserProfile(
            user_id=user_id,
            display_name=f"User_{user_id[:8]}",
            privacy_settings=PrivacyConfig.model_validate(self.privacy_defaults),
            learning_data=AdaptiveLearningState(last_training=now),
            created_at=now,
            updated_at=now,
        )

    def _changed(
        self,
        event_type: ProfileEventType,
        payload: Optional[Dict[str, Any]] = None,
        invalidate: bool = True,
    ) -> None:
        """Mark the profile dirty and queue an event for the next save."""
        self._dirty = True
        if invalidate:
            self._resonance_cache.clear()
        self._pending.append((event_type, {"user_id": self.user_id, **(payload or {})}))

    def get_profile(self) -> UserProfile:
        """Return a deep copy of the current profile."""
        return self.profile.model_copy(deep=True)

    # Patterns

    def add_pattern(
        self, pattern: Union[EmotionalPattern, Mapping[str, Any]]
    ) -> EmotionalPattern:
        """
        Add a pattern to the fingerprint.

        A new id and creation timestamp are always assigned.

        Returns:
            The stored pattern
        """
        data = (
            pattern.model_dump() if isinstance(pattern, EmotionalPattern) else dict(pattern)
        )
        now = self.clock.time()
        data["id"] = str(uuid.uuid4())
        data["created_at"] = now
        if not data.get("last_observed"):
            data["last_observed"] = now

        stored = EmotionalPattern.model_validate(data)
        self.profile.emotional_fingerprint.append(stored)
        self._changed(ProfileEventType.PATTERN_ADDED, {"pattern_id": stored.id})
        logger.info(
            f"Added pattern {stored.id} ({stored.characteristics.primary}) "
            f"for user {self.user_id}"
        )
        return stored

    def get_pattern(self, pattern_id: str) -> Optional[EmotionalPattern]:
        for pattern in self.profile.emotional_fingerprint:
            if pattern.id == pattern_id:
                return pattern
        return None

    def update_pattern(
        self, pattern_id: str, updates: Mapping[str, Any]
    ) -> Optional[EmotionalPattern]:
        """
        Merge updates into a stored pattern and stamp last_observed.

        Characteristics updates are merged field by field. The pattern id
        and creation time cannot be changed.

        Returns:
            The updated pattern, or None if no pattern has that id
        """
        for index, pattern in enumerate(self.profile.emotional_fingerprint):
            if pattern.id != pattern_id:
                continue

            data = pattern.model_dump()
            for key, value in updates.items():
                if key in ("id", "created_at"):
                    continue
                if key == "characteristics" and isinstance(value, Mapping):
                    data["characteristics"].update(value)
                else:
                    data[key] = value
            data["last_observed"] = self.clock.time()

            updated = EmotionalPattern.model_validate(data)
            self.profile.emotional_fingerprint[index] = updated
            self._changed(ProfileEventType.PATTERN_UPDATED, {"pattern_id": pattern_id})
            return updated

        logger.debug(f"Pattern {pattern_id} not found, update skipped")
        return None

    def remove_pattern(self, pattern_id: str) -> Optional[EmotionalPattern]:
        """Remove a pattern; returns the removed record or None."""
        for index, pattern in enumerate(self.profile.emotional_fingerprint):
            if pattern.id == pattern_id:
                removed = self.profile.emotional_fingerprint.pop(index)
                self._changed(
                    ProfileEventType.PATTERN_REMOVED, {"pattern_id": pattern_id}
                )
                logger.info(f"Removed pattern {pattern_id} for user {self.user_id}")
                return removed
        return None

    def find_matching_patterns(
        self, primary: str, intensity: float, pressure: float, thermal: float
    ) -> List[EmotionalPattern]:
        """
        Find stored patterns matching an observation.

        A pattern matches when the primary emotion is identical, the
        intensity lies within its range (inclusive), and both pressure and
        thermal readings are closer than PATTERN_MATCH_EPSILON to the
        stored values.

        Returns:
            Matching patterns, highest confidence first; ties keep insertion order
        """
        matches = []
        for pattern in self.profile.emotional_fingerprint:
            traits = pattern.characteristics
            low, high = traits.intensity_range
            if (
                traits.primary == primary
                and low <= intensity <= high
                and abs(traits.pressure_sensitivity - pressure) < PATTERN_MATCH_EPSILON
                and abs(traits.thermal_signature - thermal) < PATTERN_MATCH_EPSILON
            ):
                matches.append(pattern)

        return sorted(matches, key=lambda p: p.confidence, reverse=True)

    def reinforce(
        self, primary: str, intensity: float, pressure: float, thermal: float
    ) -> List[EmotionalPattern]:
        """
        Count an observation towards every matching pattern.

        Returns:
            The reinforced patterns
        """
        matches = self.find_matching_patterns(primary, intensity, pressure, thermal)
        now = self.clock.time()
        for pattern in matches:
            pattern.frequency += 1
            pattern.last_observed = now
        if matches:
            self._changed(
                ProfileEventType.PATTERNS_REINFORCED,
                {"pattern_ids": [p.id for p in matches]},
                invalidate=False,
            )
        return matches

    def get_personalized_resonance(self, emotion: str) -> ResonanceSettings:
        """
        Personalize resonance settings for an emotion.

        Probes the fingerprint with mid-range values. Without a match the
        base preferences are returned unchanged; otherwise the sensitivity
        comes from the most confident pattern and the response speed is
        "fast" when that pattern's confidence exceeds 0.8.
        """
        if self.caching and emotion in self._resonance_cache:
            return self._resonance_cache[emotion].model_copy(deep=True)

        settings = self._personalize(emotion)
        if self.caching:
            self._resonance_cache[emotion] = settings.model_copy(deep=True)
        return settings

    def _personalize(self, emotion: str) -> ResonanceSettings:
        matches = self.find_matching_patterns(emotion, 0.5, 0.5, 0.5)
        base = self.profile.resonance_preferences.model_copy(deep=True)
        if not matches:
            return base

        top = matches[0]
        traits = top.characteristics
        return base.model_copy(
            update={
                "sensitivity": Sensitivity(
                    pressure=traits.pressure_sensitivity,
                    thermal=traits.thermal_signature,
                    pulse=(
                        traits.pulse_correlation
                        if traits.pulse_correlation is not None
                        else 0.5
                    ),
                ),
                "response_speed": (
                    "fast" if top.confidence > FAST_RESPONSE_CONFIDENCE else "normal"
                ),
            }
        )

    def apply_retention(self) -> int:
        """
        Drop patterns not observed within the retention period.

        Returns:
            Number of removed patterns
        """
        cutoff = self.clock.time() - self.privacy_settings.retention_days * SECONDS_PER_DAY
        kept = [p for p in self.profile.emotional_fingerprint if p.last_observed >= cutoff]
        removed = len(self.profile.emotional_fingerprint) - len(kept)
        if removed:
            self.profile.emotional_fingerprint = kept
            self._changed(ProfileEventType.RETENTION_APPLIED, {"removed": removed})
            logger.info(f"Retention removed {removed} patterns for user {self.user_id}")
        return removed

    # Preferences and learning

    def update_resonance_preferences(self, preferences: Mapping[str, Any]) -> ResonanceSettings:
        data = self.profile.resonance_preferences.model_dump()
        data.update(preferences)
        self.profile.resonance_preferences = ResonanceSettings.model_validate(data)
        self._changed(
            ProfileEventType.PREFERENCES_UPDATED, {"fields": sorted(preferences)}
        )
        return self.profile.resonance_preferences

    def update_privacy_settings(self, settings: Mapping[str, Any]) -> PrivacyConfig:
        data = self.profile.privacy_settings.model_dump()
        data.update(settings)
        self.profile.privacy_settings = PrivacyConfig.model_validate(data)
        self._changed(
            ProfileEventType.PRIVACY_UPDATED, {"fields": sorted(settings)}
        )
        return self.profile.privacy_settings

    def record_learning_adjustment(self, adjustment_type: str, value: float) -> None:
        """Append to the adjustment log and count a training sample."""
        now = self.clock.time()
        learning = self.profile.learning_data
        learning.adjustments.append(
            LearningAdjustment(type=adjustment_type, value=value, timestamp=now)
        )
        learning.training_samples += 1
        learning.last_training = now
        self._changed(
            ProfileEventType.LEARNING_ADJUSTED,
            {"type": adjustment_type, "value": value},
            invalidate=False,
        )

    def update_learning_accuracy(self, accuracy: float) -> None:
        self.profile.learning_data.accuracy = accuracy
        self._changed(
            ProfileEventType.ACCURACY_UPDATED, {"accuracy": accuracy}, invalidate=False
        )

    # Export and import

    def export_profile(self, include_private: bool = False) -> Dict[str, Any]:
        """
        Export the profile as a dictionary.

        Identity, display name, version and timestamps are always included.
        Patterns and preferences follow the share flags unless
        include_private is set; privacy and learning data require it.
        """
        profile = self.profile
        privacy = profile.privacy_settings
        exported: Dict[str, Any] = {
            "user_id": profile.user_id,
            "display_name": profile.display_name,
            "version": profile.version,
            "created_at": profile.created_at,
            "updated_at": profile.updated_at,
        }

        if include_private or privacy.share_patterns:
            exported["emotional_fingerprint"] = [
                p.model_dump(mode="json") for p in profile.emotional_fingerprint
            ]
        if include_private or privacy.share_preferences:
            exported["resonance_preferences"] = profile.resonance_preferences.model_dump(
                mode="json"
            )
        if include_private:
            exported["privacy_settings"] = privacy.model_dump(mode="json")
            exported["learning_data"] = profile.learning_data.model_dump(mode="json")

        return exported

    def import_profile(self, data: Mapping[str, Any], merge: bool = False) -> UserProfile:
        """
        Import profile data.

        Args:
            data: Top-level profile fields to apply
            merge: Overlay onto the current profile keeping its identity and
                creation time; otherwise start from a fresh default profile
                for the same user

        Raises:
            pydantic.ValidationError: If the resulting profile is invalid
        """
        user_id = self.profile.user_id
        if merge:
            merged = self.profile.model_dump()
            merged.update(data)
            merged["created_at"] = self.profile.created_at
        else:
            merged = self._create_default_profile(user_id).model_dump()
            merged.update(data)
        merged["user_id"] = user_id

        self.profile = UserProfile.model_validate(merged)
        self._changed(ProfileEventType.PROFILE_IMPORTED, {"merge": merge})
        logger.info(f"Imported profile for user {user_id} (merge={merge})")
        return self.profile

    def clear_profile(self) -> None:
        self.profile = self._create_default_profile(self.profile.user_id)
        self._changed(ProfileEventType.PROFILE_CLEARED)
        logger.info(f"Cleared profile for user {self.user_id}")

    # Persistence

    async def load(self) -> bool:
        """
        Load the stored profile, overlaying it on the current one.

        Returns:
            True if a stored profile was found

        Raises:
            PrivacyError: If the stored blob cannot be decoded
        """
        stored = await self.storage.get(self.storage_key)
        if stored is None:
            return False

        try:
            data = json.loads(stored)
            merged = self.profile.model_dump()
            merged.update(data)
            merged["user_id"] = self.profile.user_id
            self.profile = UserProfile.model_validate(merged)
        except (json.JSONDecodeError, ValidationError, TypeError) as e:
            raise PrivacyError(
                f"Failed to load profile for {self.user_id}",
                code=ErrorCode.PROFILE_LOAD_ERROR,
            ) from e

        self._resonance_cache.clear()
        logger.info(f"Loaded profile for user {self.user_id}")
        return True

    async def save(self) -> None:
        """
        Persist the profile, retrying transient failures with backoff.

        Once the write succeeds the events queued by the changes it
        contains are published in the order the changes were made. If
        every attempt fails the changes stay pending for the next save.
        """
        self.profile.updated_at = self.clock.time()
        blob = self.profile.model_dump_json()
        pending, self._pending = self._pending, []
        self._dirty = False

        async def write() -> None:
            await self.storage.set(self.storage_key, blob)

        try:
            await retry_with_backoff(
                write,
                max_attempts=self.save_attempts,
                base_delay=self.retry_base_delay,
                sleep=self.clock.sleep,
            )
        except Exception:
            self._pending = pending + self._pending
            self._dirty = True
            raise
        logger.debug(f"Saved profile for user {self.user_id}")

        for event_type, payload in pending:
            await self.events.emit(event_type, payload)

    async def flush(self) -> bool:
        """
        Save the profile if it has unsaved changes.

        Returns:
            True if a save was performed
        """
        if not self._dirty:
            return False
        await self.save()
        return True

    async def delete(self) -> None:
        """Delete the stored profile and reset to defaults."""

        async def remove() -> None:
            await self.storage.delete(self.storage_key)

        await retry_with_backoff(
            remove,
            max_attempts=self.save_attempts,
            base_delay=self.retry_base_delay,
            sleep=self.clock.sleep,
        )
        self.profile = self._create_default_profile(self.profile.user_id)
        self._resonance_cache.clear()
        self._pending = []
        self._dirty = False
        logger.info(f"Deleted stored profile for user {self.user_id}")
        await self.events.emit(ProfileEventType.PROFILE_CLEARED, {"user_id": self.user_id})
