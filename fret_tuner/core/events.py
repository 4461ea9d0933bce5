"""Event system for Fret Tuner components."""

import asyncio
import itertools
from collections import defaultdict, deque
from enum import Enum
from typing import Any, Callable, Deque, Dict, List, Optional, Tuple

from ..logging_config import get_logger

logger = get_logger(__name__)


class BackendEventType(str, Enum):
    """Events pushed by the detection backend."""

    FREQUENCY = "frequency"
    RAW_FREQUENCY = "raw_frequency"
    INPUT_LEVEL = "input_level"
    RESET = "reset"


class ContextEventType(str, Enum):
    """Events emitted by the synchronizer when its context changes."""

    CHANGED = "changed"


def is_numeric(payload: Any) -> bool:
    return isinstance(payload, (int, float)) and not isinstance(payload, bool)


class EventEmitter:
    """Synchronous listener registry keyed by event type.

    A listener registered twice for the same type is called once. Exceptions
    raised by a listener are logged and do not reach the emitter or the other
    listeners.
    """

    def __init__(self):
        self._listeners: Dict[Any, List[Callable]] = defaultdict(list)

    def on(self, event_type: Any, callback: Callable) -> None:
        listeners = self._listeners[event_type]
        if callback not in listeners:
            listeners.append(callback)
            logger.debug(f"Listening for {event_type}")

    def emit(self, event_type: Any, *args: Any) -> None:
        for callback in tuple(self._listeners.get(event_type, ())):
            try:
                callback(*args)
            except Exception as e:
                logger.error(f"Listener for {event_type} failed: {e}")


class BackendEvents:
    """Bounded per-kind channels for backend events, drained by one dispatcher.

    ``publish`` is the sink handed to the backend. Numeric payloads for the value
    events are queued; anything else is dropped. Each kind keeps at most
    ``queue_size`` pending values and discards the oldest when full, so a slow
    consumer still ends up with the latest value. The dispatcher delivers pending
    events in arrival order across kinds, so a reset published after a frequency
    clears it and a frequency published after a reset survives.
    """

    VALUE_EVENTS = (
        BackendEventType.FREQUENCY,
        BackendEventType.RAW_FREQUENCY,
        BackendEventType.INPUT_LEVEL,
    )

    def __init__(self, queue_size: int = 16):
        self._queues: Dict[BackendEventType, Deque[Tuple[int, Any]]] = {
            kind: deque(maxlen=queue_size) for kind in BackendEventType
        }
        self._sequence = itertools.count()
        self._emitter = EventEmitter()
        self._pending: Optional[asyncio.Event] = None
        self._task: Optional[asyncio.Task] = None

    def on(self, kind: BackendEventType, callback: Callable[[Any], None]) -> None:
        self._emitter.on(kind, callback)

    def publish(self, kind, payload: Any = None) -> None:
        """Queue one backend event; must be called on the event loop thread."""
        try:
            kind = BackendEventType(kind)
        except ValueError:
            logger.debug(f"Ignoring unknown backend event {kind!r}")
            return

        if kind in self.VALUE_EVENTS and not is_numeric(payload):
            logger.debug(f"Dropping non-numeric {kind.value} payload: {payload!r}")
            return

        self._queues[kind].append((next(self._sequence), payload))
        if self._pending is not None:
            self._pending.set()

    def pending_count(self) -> int:
        return sum(len(queue) for queue in self._queues.values())

    def dispatch_pending(self) -> int:
        """Deliver every queued event to its listeners, oldest first.

        Returns:
            Number of events delivered
        """
        batch = []
        for kind, queue in self._queues.items():
            while queue:
                seq, payload = queue.popleft()
                batch.append((seq, kind, payload))
        batch.sort(key=lambda item: item[0])

        for _, kind, payload in batch:
            if kind is BackendEventType.RESET:
                self._emitter.emit(kind)
            else:
                self._emitter.emit(kind, payload)
        return len(batch)

    async def run(self) -> None:
        """Dispatcher loop; runs until cancelled."""
        self._pending = asyncio.Event()
        if self.pending_count():
            self._pending.set()
        while True:
            await self._pending.wait()
            self._pending.clear()
            self.dispatch_pending()

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.get_running_loop().create_task(self.run())
            logger.debug("Backend event dispatcher started")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        self._pending = None
        # Deliver what arrived before shutdown
        self.dispatch_pending()
        logger.debug("Backend event dispatcher stopped")
