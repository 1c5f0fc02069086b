"""
Orchestrator for the Resonance Touch Interface

This module:
- Admits touch samples and runs them through classification, mapping
  and personalization
- Publishes touch, emotion, resonance, error, status and performance
  events on the instance's own event channel
- Maintains the status state machine, the latency window, the accuracy
  EMA and the mode/emotion usage tables
- Normalizes component failures into error events and escalates
  critical ones to the error status
"""

import asyncio
import logging
import platform
import threading
import uuid
from typing import Any, Dict, Mapping, Optional, Set, Union

import psutil

from resonance_touch.config import RTIConfig, load_config
from resonance_touch.constants import ErrorCode, EventType, SystemStatus
from resonance_touch.errors import (
    ConfigurationError,
    ConfigValidationError,
    SampleRejectedError,
    normalize_error,
)
from resonance_touch.models import (
    EmotionalState,
    EmotionEvent,
    ErrorEvent,
    ResonanceAction,
    ResonanceEvent,
    TouchSample,
)
from resonance_touch.modules.emotional_state import (
    EmotionClassifier,
    TouchHeuristicClassifier,
)
from resonance_touch.modules.events import EventChannel, Subscriber
from resonance_touch.modules.personalization import PersonalizationStore
from resonance_touch.modules.resonance_mapper import ResonanceMapper
from resonance_touch.modules.statistics import (
    EmotionUsage,
    ModeUsage,
    PerformanceMetrics,
    PerformanceWindow,
    SystemStatusSnapshot,
    UsageStatistics,
    UsageTable,
    update_ema,
)
from resonance_touch.modules.utils import SystemClock

logger = logging.getLogger("resonance_touch.orchestrator")

# Allowed status transitions
VALID_TRANSITIONS: Dict[SystemStatus, Set[SystemStatus]] = {
    SystemStatus.INITIALIZING: {
        SystemStatus.READY,  # Components ready
        SystemStatus.ERROR,  # Initialization failed
        SystemStatus.DISABLED,  # Disabled before becoming ready
    },
    SystemStatus.READY: {
        SystemStatus.PROCESSING,  # Sample admitted
        SystemStatus.ERROR,  # Critical failure
        SystemStatus.DISABLED,  # Explicit disable
        SystemStatus.INITIALIZING,  # Re-initialization after config change
    },
    SystemStatus.PROCESSING: {
        SystemStatus.READY,  # Pipeline drained
        SystemStatus.ERROR,  # Critical failure
        SystemStatus.DISABLED,  # Explicit disable
    },
    SystemStatus.ERROR: {
        SystemStatus.INITIALIZING,  # Explicit re-initialization
    },
    SystemStatus.DISABLED: {
        SystemStatus.INITIALIZING,  # Explicit enable
    },
}

HALTED_STATUSES = frozenset({SystemStatus.ERROR, SystemStatus.DISABLED})


class ResonanceTouchInterface:
    """Central hub sequencing the emotional touch pipeline."""

    def __init__(
        self,
        config: Optional[Union[RTIConfig, Mapping[str, Mapping[str, Any]]]] = None,
        classifier: Optional[EmotionClassifier] = None,
        mapper: Optional[ResonanceMapper] = None,
        profile: Optional[PersonalizationStore] = None,
        clock: Optional[Any] = None,
        application: str = "unknown",
        device: Optional[str] = None,
        monitor_interval: float = 1.0,
    ) -> None:
        """Initialize the interface.

        Args:
            config: Validated RTIConfig, or section overrides applied to the
                defaults (rejected wholesale if invalid)
            classifier: Emotion classifier; defaults to the touch heuristic
            mapper: Resonance mapper; defaults to the built-in rule table
            profile: Personalization store for the current user, if any
            clock: Time source with time(), monotonic() and sleep()
            application: Application name attached to resonance events
            device: Device name attached to resonance events
            monitor_interval: Seconds between periodic metric updates

        Raises:
            ConfigValidationError: If the configuration is invalid
        """
        if isinstance(config, RTIConfig):
            self.config = load_config(base=config)
        else:
            self.config = load_config(config)

        self.classifier: EmotionClassifier = classifier or TouchHeuristicClassifier()
        self.mapper = mapper or ResonanceMapper()
        self.profile = profile
        self.clock = clock or SystemClock()
        self.application = application
        self.device = device or platform.system() or "unknown"
        self.monitor_interval = monitor_interval

        self.events = EventChannel()

        self._status = SystemStatus.INITIALIZING
        self._accepting = True
        self._in_flight = 0
        self._idle = asyncio.Event()
        self._idle.set()
        self._last_error: Optional[ErrorEvent] = None

        # Statistics; every mutation happens under this lock
        self._stats_lock = threading.Lock()
        self._window = PerformanceWindow()
        self._performance = PerformanceMetrics()
        self._mode_usage = UsageTable()
        self._emotion_usage = UsageTable()
        self._total_touches = 0
        self._total_emotions = 0
        self._total_resonances = 0
        self._accuracy = 0.0
        self._session_duration = 0.0
        self._uptime = 0.0
        self._memory_exceeded = False

        self._system_start = self.clock.monotonic()
        self._start_session()

        self._process = psutil.Process()
        self._monitor_task: Optional[asyncio.Task] = None
        self._monitor_running = False

        logger.info(
            f"Resonance touch interface created (session {self.session_id}, "
            f"device {self.device})"
        )

    # Properties

    @property
    def status(self) -> SystemStatus:
        return self._status

    @property
    def accepting(self) -> bool:
        """True while new samples are admitted."""
        return self._accepting and self._status not in HALTED_STATUSES

    @property
    def latency_window(self) -> PerformanceWindow:
        return self._window

    @property
    def in_flight(self) -> int:
        return self._in_flight

    # Subscriptions

    def subscribe(self, event_type: Union[EventType, str], callback: Subscriber) -> None:
        self.events.subscribe(event_type, callback)

    def unsubscribe(self, event_type: Union[EventType, str], callback: Subscriber) -> None:
        self.events.unsubscribe(event_type, callback)

    # Lifecycle

    async def initialize(self) -> bool:
        """
        Prepare components and move to the ready state.

        Called once after construction, and again to recover from the
        error or disabled states. Re-initialization stops admission until
        the interface is ready again and resets the latency window.

        Returns:
            True if the interface is ready, False if initialization failed
        """
        if self._status != SystemStatus.INITIALIZING:
            accepting, self._accepting = self._accepting, False
            await self._drain()
            if not await self._transition(SystemStatus.INITIALIZING):
                self._accepting = accepting
                return False
            with self._stats_lock:
                self._window.reset()
                self._performance.latency = 0.0
            self._last_error = None

        try:
            self._apply_config()
            initialize = getattr(self.classifier, "initialize", None)
            if initialize is not None:
                result = initialize()
                if asyncio.iscoroutine(result):
                    await result
        except Exception as e:
            await self.handle_error(
                ErrorCode.INITIALIZATION_ERROR, "Failed to initialize classifier", e
            )
            await self._transition(SystemStatus.ERROR)
            return False

        if self.profile is not None:
            try:
                await self.profile.load()
            except Exception as e:
                await self.handle_error(
                    ErrorCode.PROFILE_LOAD_ERROR, "Failed to load user profile", e
                )

        self._accepting = True
        await self._transition(SystemStatus.READY)
        logger.info("Resonance touch interface ready")
        return True

    def _apply_config(self) -> None:
        """Push the current settings into the classifier and profile store."""
        configure = getattr(self.classifier, "configure", None)
        if configure is not None:
            configure(self.config)
        if self.profile is not None:
            self.profile.caching = self.config.performance.enable_caching

    async def set_enabled(self, enabled: bool) -> None:
        """
        Enable or disable sample processing.

        Disabling stops admission immediately, lets samples already admitted
        finish their pipeline, then moves to the disabled state. Enabling
        from the disabled state re-runs initialization.
        """
        if enabled:
            if self._status == SystemStatus.DISABLED:
                self._start_session()
                await self.initialize()
            return

        self._accepting = False
        await self._drain()
        if self._status == SystemStatus.DISABLED:
            return
        if not await self._transition(SystemStatus.DISABLED):
            logger.warning(f"Cannot disable from status {self._status.value}")

    async def update_config(self, overrides: Mapping[str, Mapping[str, Any]]) -> RTIConfig:
        """
        Apply configuration overrides.

        The new configuration is validated as a whole and only applied if
        valid. Hardware or software changes re-initialize the interface.

        Raises:
            ConfigValidationError: With every violation found
            ConfigurationError: If the re-initialization that followed failed
        """
        try:
            new_config = load_config(overrides, base=self.config)
        except ConfigValidationError as e:
            await self.handle_error(ErrorCode.INVALID_CONFIG, "Rejected configuration", e)
            raise

        self.config = new_config
        logger.info(f"Configuration updated: {sorted(overrides)}")

        if ("hardware" in overrides or "software" in overrides) and (
            self._status == SystemStatus.READY or self._status == SystemStatus.PROCESSING
        ):
            if not await self.initialize():
                raise ConfigurationError(
                    "Configuration applied but re-initialization failed",
                    code=ErrorCode.INITIALIZATION_ERROR,
                    context={"status": self._status.value},
                )
        else:
            self._apply_config()
        return self.get_config()

    async def destroy(self) -> None:
        """Stop monitoring, drain the pipeline and drop all subscribers."""
        await self.stop_monitoring()
        if self._status not in HALTED_STATUSES:
            await self.set_enabled(False)
        self._accepting = False
        self.events.clear()
        logger.info("Resonance touch interface destroyed")

    # Pipeline

    async def process_touch(self, sample: TouchSample) -> Optional[ResonanceEvent]:
        """
        Run one touch sample through the pipeline.

        Returns:
            The emitted resonance event, or None if a stage failed (the
            failure is published as an error event)

        Raises:
            SampleRejectedError: If the interface is disabled, disabling, or
                in the error state
        """
        if not self.accepting:
            logger.warning(f"Touch sample rejected in status {self._status.value}")
            raise SampleRejectedError(
                f"Sample rejected: interface is {self._status.value}",
                context={"status": self._status.value},
            )

        self._in_flight += 1
        self._idle.clear()
        try:
            if self._status == SystemStatus.READY:
                await self._transition(SystemStatus.PROCESSING)
            return await self._run_pipeline(sample)
        finally:
            self._in_flight -= 1
            if self._in_flight == 0:
                if self._status == SystemStatus.PROCESSING:
                    await self._transition(SystemStatus.READY)
                self._idle.set()

    async def _run_pipeline(self, sample: TouchSample) -> Optional[ResonanceEvent]:
        admitted_at = self.clock.monotonic()

        with self._stats_lock:
            self._total_touches += 1
        await self.events.emit(EventType.TOUCH, sample)

        try:
            state = await self.classifier.classify(sample)
        except Exception as e:
            await self.handle_error(
                ErrorCode.EMOTION_DECODER_ERROR, "Failed to classify touch sample", e
            )
            return None

        latency_ms = (self.clock.monotonic() - admitted_at) * 1000
        await self._record_latency(latency_ms)

        await self._handle_emotion(state, sample)

        try:
            action = self.mapper.map(state, sample.pressure)
        except Exception as e:
            await self.handle_error(
                ErrorCode.RESONANCE_ENGINE_ERROR, "Failed to map emotional state", e
            )
            return None

        personalization = await self._personalize(state, sample)
        return await self._handle_resonance(action, state, personalization)

    async def _record_latency(self, latency_ms: float) -> None:
        with self._stats_lock:
            average = self._window.push(latency_ms)
            elapsed = self.clock.monotonic() - self._session_start
            throughput = self._total_touches / elapsed if elapsed > 0 else 0.0
            self._performance.latency = average
            self._performance.throughput = throughput

        await self.events.emit(
            EventType.PERFORMANCE_UPDATE,
            {
                "latency": average,
                "last_latency": latency_ms,
                "throughput": throughput,
                "timestamp": self.clock.time(),
            },
        )

        max_latency = self.config.performance.max_latency
        if latency_ms > max_latency:
            await self.handle_error(
                ErrorCode.LATENCY_EXCEEDED,
                f"Classification took {latency_ms:.2f} ms (limit {max_latency} ms)",
                context={"latency_ms": latency_ms, "max_latency_ms": max_latency},
            )

    async def _handle_emotion(self, state: EmotionalState, sample: TouchSample) -> None:
        with self._stats_lock:
            self._total_emotions += 1
            self._accuracy = update_ema(self._accuracy, state.confidence)
            self._emotion_usage.record(state.primary)

        await self.events.emit(
            EventType.EMOTION,
            EmotionEvent(
                emotional_state=state,
                sensor_data={
                    "pressure": sample.pressure,
                    "thermal": sample.thermal,
                    "pulse": sample.pulse,
                },
                timestamp=self.clock.time(),
            ),
        )

    async def _personalize(
        self, state: EmotionalState, sample: TouchSample
    ) -> Optional[Dict[str, Any]]:
        if self.profile is None:
            return None

        try:
            settings = self.profile.get_personalized_resonance(state.primary)
            # Only confident estimates train the profile
            if state.confidence >= self.config.software.confidence_threshold:
                thermal = sample.thermal if sample.thermal is not None else 0.5
                self.profile.reinforce(
                    state.primary, state.intensity, sample.pressure, thermal
                )
                if self.config.performance.adaptive_learning:
                    self.profile.update_learning_accuracy(self._accuracy)
        except Exception as e:
            await self.handle_error(
                ErrorCode.PERSONALIZATION_ERROR, "Failed to personalize resonance", e
            )
            return None

        await self._save_profile()
        return settings.model_dump(mode="json")

    async def _save_profile(self) -> None:
        """Persist unsaved profile changes; a failure is published, not raised."""
        if self.profile is None:
            return
        try:
            await self.profile.flush()
        except Exception as e:
            await self.handle_error(
                ErrorCode.PROFILE_SAVE_ERROR, "Failed to save user profile", e
            )

    async def _handle_resonance(
        self,
        action: ResonanceAction,
        state: EmotionalState,
        personalization: Optional[Dict[str, Any]],
    ) -> ResonanceEvent:
        with self._stats_lock:
            self._total_resonances += 1

        event = ResonanceEvent(
            action=action,
            emotional_state=state,
            confidence=state.confidence,
            context={
                "application": self.application,
                "session_id": self.session_id,
                "device": self.device,
            },
            personalization=personalization,
            timestamp=self.clock.time(),
        )
        await self.events.emit(EventType.RESONANCE, event)

        with self._stats_lock:
            self._mode_usage.record(action.mode)
        return event

    # Errors and status

    async def handle_error(
        self,
        code: Union[ErrorCode, str],
        message: str,
        error: Optional[BaseException] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> ErrorEvent:
        """
        Normalize a failure, publish it and escalate critical severity.

        Returns:
            The published error event
        """
        event = normalize_error(code, message, error, context)
        event.timestamp = self.clock.time()
        self._last_error = event

        log = logger.error if event.severity in ("high", "critical") else logger.warning
        log(f"{event.code} ({event.severity}): {message}" + (f": {error}" if error else ""))

        await self.events.emit(EventType.ERROR, event)

        if event.severity == "critical" and self._status != SystemStatus.ERROR:
            await self._transition(SystemStatus.ERROR)
        return event

    async def _transition(self, new_status: SystemStatus) -> bool:
        previous = self._status
        if new_status not in VALID_TRANSITIONS[previous]:
            logger.warning(
                f"Invalid status transition {previous.value} -> {new_status.value}"
            )
            return False

        self._status = new_status
        logger.info(f"Status changed from {previous.value} to {new_status.value}")
        await self.events.emit(
            EventType.STATUS_CHANGE,
            {
                "status": new_status.value,
                "previous": previous.value,
                "timestamp": self.clock.time(),
            },
        )
        return True

    async def _drain(self) -> None:
        """Wait until every admitted sample has finished its pipeline."""
        if self._in_flight:
            logger.info(f"Waiting for {self._in_flight} in-flight samples")
            await self._idle.wait()

    def _start_session(self) -> None:
        self.session_id = str(uuid.uuid4())
        self._session_start = self.clock.monotonic()

    # Monitoring

    def start_monitoring(self) -> None:
        """Start the periodic metrics task."""
        if self._monitor_running:
            return
        self._monitor_running = True
        self._monitor_task = asyncio.create_task(self._monitor_loop())
        logger.info("Performance monitoring started")

    async def stop_monitoring(self) -> None:
        self._monitor_running = False
        if self._monitor_task:
            self._monitor_task.cancel()
            try:
                await self._monitor_task
            except asyncio.CancelledError:
                pass
            self._monitor_task = None
            logger.info("Performance monitoring stopped")

    async def _monitor_loop(self) -> None:
        """Background task updating uptime and memory metrics."""
        while self._monitor_running:
            try:
                await self.clock.sleep(self.monitor_interval)
                await self.tick()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Error in monitoring loop: {e}")

    async def tick(self) -> None:
        """
        Update session duration, uptime and process resource usage once.

        Also saves profile changes made outside the pipeline.
        """
        now = self.clock.monotonic()
        try:
            memory_mb = self._process.memory_info().rss / 1024 / 1024
            cpu_percent = self._process.cpu_percent(interval=None)
        except (psutil.NoSuchProcess, psutil.AccessDenied, OSError) as e:
            logger.warning(f"Could not read process metrics: {e}")
            memory_mb = self._performance.memory_usage
            cpu_percent = self._performance.cpu_usage

        with self._stats_lock:
            self._session_duration = (now - self._session_start) * 1000
            self._uptime = (now - self._system_start) * 1000
            self._performance.memory_usage = memory_mb
            self._performance.cpu_usage = cpu_percent

        limit = self.config.performance.memory_limit
        if memory_mb > limit and not self._memory_exceeded:
            self._memory_exceeded = True
            await self.handle_error(
                ErrorCode.MEMORY_LIMIT_EXCEEDED,
                f"Memory usage {memory_mb:.1f} MB exceeds limit {limit} MB",
                context={"memory_mb": memory_mb, "limit_mb": limit},
            )
        elif memory_mb <= limit:
            self._memory_exceeded = False

        await self._save_profile()

    # Snapshots

    def get_status(self) -> SystemStatusSnapshot:
        with self._stats_lock:
            performance = self._performance.model_copy()
        error = None
        if self._last_error is not None:
            error = {
                "code": self._last_error.code,
                "message": self._last_error.message,
                "timestamp": self._last_error.timestamp,
            }
        return SystemStatusSnapshot(
            status=self._status.value, performance=performance, error=error
        )

    def get_stats(self) -> UsageStatistics:
        with self._stats_lock:
            return UsageStatistics(
                total_touches=self._total_touches,
                total_emotions=self._total_emotions,
                total_resonances=self._total_resonances,
                average_latency=self._window.average,
                recognition_accuracy=self._accuracy,
                top_emotions=[
                    EmotionUsage(emotion=e.name, count=e.count, percentage=e.percentage)
                    for e in self._emotion_usage.entries()
                ],
                top_modes=[
                    ModeUsage(mode=e.name, count=e.count, percentage=e.percentage)
                    for e in self._mode_usage.entries()
                ],
                session_duration=self._session_duration,
                uptime=self._uptime,
            )

    def get_config(self) -> RTIConfig:
        return self.config.model_copy(deep=True)
