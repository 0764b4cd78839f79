from __future__ import annotations

import logging
import threading
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Optional, Union

from telemetry import TelemetryError, TelemetryPayload
from time_range import TimeRange

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Pending:
    pass


@dataclass(frozen=True)
class Success:
    payload: TelemetryPayload


@dataclass(frozen=True)
class Error:
    reason: str
    kind: str = "TelemetryError"


CacheState = Union[Pending, Success, Error]
Fetcher = Callable[[TimeRange], TelemetryPayload]
Listener = Callable[[TimeRange, CacheState], None]

PENDING = Pending()


class TelemetryCache:
    """
    Key-addressed asynchronous cache of collector responses.

    One request per distinct TimeRange; while a key is Pending further `get` calls
    reuse the in-flight request. Each key goes Pending -> Success | Error once and
    terminal states are served from the cache until `refresh` is called. Entries
    live for the lifetime of the cache.
    """

    def __init__(self, fetcher: Fetcher, executor: Optional[Executor] = None, max_workers: int = 4):
        self._fetcher = fetcher
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="telemetry-fetch"
        )
        self._entries: dict[TimeRange, CacheState] = {}
        self._lock = threading.Lock()
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _unsubscribe

    def get(self, key: TimeRange) -> CacheState:
        with self._lock:
            state = self._entries.get(key)
            if state is not None:
                return state
            self._entries[key] = PENDING
        self._submit(key)
        return PENDING

    def peek(self, key: TimeRange) -> Optional[CacheState]:
        with self._lock:
            return self._entries.get(key)

    def refresh(self, key: TimeRange) -> CacheState:
        """Re-request a key that already reached a terminal state."""
        with self._lock:
            state = self._entries.get(key)
            if isinstance(state, Pending):
                return state
            self._entries[key] = PENDING
        self._submit(key)
        return PENDING

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: TimeRange) -> bool:
        with self._lock:
            return key in self._entries

    def shutdown(self, wait: bool = False) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=wait)

    def _submit(self, key: TimeRange) -> None:
        logger.debug("Requesting telemetry for %s", key)
        self._executor.submit(self._resolve, key)

    def _resolve(self, key: TimeRange) -> None:
        try:
            state: CacheState = Success(self._fetcher(key))
        except TelemetryError as ex:
            logger.warning("Telemetry request for %s failed (%s): %s", key, type(ex).__name__, ex)
            state = Error(reason=str(ex), kind=type(ex).__name__)
        except Exception as ex:
            logger.exception("Unexpected error while fetching telemetry for %s", key)
            state = Error(reason=str(ex), kind=type(ex).__name__)

        with self._lock:
            if not isinstance(self._entries.get(key), Pending):
                logger.debug("Dropping resolution for %s, entry is no longer pending", key)
                return
            self._entries[key] = state
            listeners = list(self._listeners)
        logger.debug("Telemetry for %s resolved as %s", key, type(state).__name__)

        for listener in listeners:
            try:
                listener(key, state)
            except Exception:
                logger.exception("Listener %r failed for %s", listener, key)
