"""
Persistence collaborators for a tank session.

Provides the tank store abstraction (per user, per tank documents with
merge-on-write), a debounced writer with two explicit write paths, and the
local device cache holding the display snapshot and preview reference.

Write paths:
    request(payload)  debounced: every call resets the quiet period and only
                      the newest payload is written once it elapses
    flush(payload)    immediate: cancels any pending timer and writes now;
                      used for confirmed user actions and leaving the screen

Writes never raise into the mutation flow. Failures are logged, kept as
`last_error` and forwarded to `on_error`; the next write carries the latest
state.
"""

import asyncio
import copy
import functools
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Tuple

import yaml

from .constants import (
    DEBOUNCE_SECONDS,
    DEFAULT_TANK_NAME,
    PREVIEW_CACHE_KEY,
    SNAPSHOT_CACHE_KEY,
)
from .data_types import TankSettings, TankSnapshot
from .snapshot import strip_none_deep

logger = logging.getLogger(__name__)


class PersistenceError(Exception):
    """Raised when the tank store cannot complete a call"""
    pass


class NotSignedInError(PersistenceError):
    """Raised when a store call is made without an authenticated user"""
    pass


@dataclass(frozen=True)
class SessionKey:
    """Addresses one tank document: users/{user_id}/tanks/{tank_id}"""
    user_id: Optional[str]
    tank_id: str

    def require_user(self) -> str:
        if not self.user_id:
            raise NotSignedInError("Not signed in")
        return self.user_id


def new_tank_id(clock: Callable[[], float] = time.time) -> str:
    return f"tank_{int(clock() * 1000)}"


def default_tank_document(name: str = DEFAULT_TANK_NAME,
                          settings: Optional[TankSettings] = None) -> Dict[str, Any]:
    """Document written when a tank is created"""
    return {
        'name': name,
        'fish': [],
        'plants': [],
        'settings': (settings or TankSettings()).to_dict(),
        'previewUri': None,
    }


# ============================================================================
# Tank Store
# ============================================================================

class TankStore(ABC):
    """
    Document store for tanks, keyed per authenticated user and per tank.

    `write` has merge semantics: top-level fields present in the partial
    replace the stored ones, fields absent from it are left untouched.
    Calls without a user fail fast with NotSignedInError.
    """

    @abstractmethod
    async def read(self, key: SessionKey) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    async def write(self, key: SessionKey, partial: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    async def create(self, user_id: Optional[str], name: str = DEFAULT_TANK_NAME) -> str:
        ...

    @abstractmethod
    async def delete(self, key: SessionKey) -> None:
        ...

    @abstractmethod
    async def list_tanks(self, user_id: Optional[str]) -> List[Dict[str, Any]]:
        ...


class InMemoryTankStore(TankStore):
    """Reference store holding documents in a dict; reads and writes deep-copy"""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._docs: Dict[Tuple[str, str], Dict[str, Any]] = {}
        self._clock = clock

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    async def read(self, key: SessionKey) -> Optional[Dict[str, Any]]:
        doc = self._docs.get((key.require_user(), key.tank_id))
        return copy.deepcopy(doc) if doc is not None else None

    async def write(self, key: SessionKey, partial: Dict[str, Any]) -> None:
        doc_key = (key.require_user(), key.tank_id)
        doc = self._docs.setdefault(doc_key, {})
        doc.update(copy.deepcopy(partial))
        doc['updatedAt'] = self._now_ms()

    async def create(self, user_id: Optional[str], name: str = DEFAULT_TANK_NAME) -> str:
        key = SessionKey(user_id, new_tank_id(self._clock))
        doc = default_tank_document(name)
        doc['createdAt'] = doc['updatedAt'] = self._now_ms()
        self._docs[(key.require_user(), key.tank_id)] = doc
        return key.tank_id

    async def delete(self, key: SessionKey) -> None:
        self._docs.pop((key.require_user(), key.tank_id), None)

    async def list_tanks(self, user_id: Optional[str]) -> List[Dict[str, Any]]:
        user = SessionKey(user_id, '').require_user()
        return [
            {'tankId': tank_id, **copy.deepcopy(doc)}
            for (owner, tank_id), doc in self._docs.items()
            if owner == user
        ]


# ============================================================================
# Scheduling
# ============================================================================

class Scheduler(ABC):
    """Timer abstraction so debounce behaviour is testable without wall-clock delays"""

    @abstractmethod
    def call_later(self, delay: float, callback: Callable[[], None]) -> Any:
        """Run callback after delay seconds; the returned handle has cancel()"""
        ...


class AsyncioScheduler(Scheduler):
    """Schedules on the running event loop"""

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return asyncio.get_running_loop().call_later(delay, callback)


class DebouncedWriter:
    """
    Coalesces rapid writes into one after a quiet period, with an
    unconditional flush path for save-points.

    Writes run one at a time in request order; a write that is still queued
    when a newer one is started is skipped, so the last committed payload
    is always the last one written.
    """

    def __init__(
        self,
        write_fn: Callable[[Dict[str, Any]], Awaitable[None]],
        delay: float = DEBOUNCE_SECONDS,
        scheduler: Optional[Scheduler] = None,
        on_error: Optional[Callable[[Exception], None]] = None
    ):
        """
        Args:
            write_fn: Coroutine function persisting one payload
            delay: Quiet period in seconds before a debounced write fires
            scheduler: Timer source (defaults to the running asyncio loop)
            on_error: Called with the exception of every failed write
        """
        self._write_fn = write_fn
        self._delay = delay
        self._scheduler = scheduler or AsyncioScheduler()
        self._on_error = on_error
        self._handle = None
        self._tasks: Set[asyncio.Task] = set()
        self._lock = asyncio.Lock()
        self._sequence = 0
        self.last_error: Optional[Exception] = None
        self.write_count = 0

    @property
    def pending(self) -> bool:
        """True while a debounced write is waiting for its quiet period"""
        return self._handle is not None

    def request(self, payload: Dict[str, Any]) -> None:
        """Schedule a debounced write; supersedes any write still waiting"""
        self.cancel()
        self._handle = self._scheduler.call_later(
            self._delay, functools.partial(self._fire, payload)
        )
        logger.debug(f"Debounced write scheduled in {self._delay:.3f}s")

    def flush(self, payload: Dict[str, Any]) -> asyncio.Task:
        """Write now, bypassing (and cancelling) any pending debounced write"""
        self.cancel()
        return self._start(payload)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    async def drain(self) -> None:
        """Wait until every started write has finished"""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    def report(self, error: Exception) -> None:
        """Record a persistence failure and pass it to on_error; never raises"""
        self.last_error = error
        if self._on_error is None:
            return
        try:
            self._on_error(error)
        except Exception as e:
            logger.error(f"on_error callback failed: {e}", exc_info=True)

    def _fire(self, payload: Dict[str, Any]) -> None:
        self._handle = None
        self._start(payload)

    def _start(self, payload: Dict[str, Any]) -> asyncio.Task:
        self._sequence += 1
        task = asyncio.get_running_loop().create_task(
            self._write_safely(strip_none_deep(payload), self._sequence)
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _write_safely(self, payload: Dict[str, Any], sequence: int) -> bool:
        async with self._lock:
            if sequence < self._sequence:
                logger.debug(f"Write {sequence} superseded by {self._sequence}")
                return False
            try:
                await self._write_fn(payload)
            except Exception as e:
                logger.warning(f"Tank write {sequence} failed: {e}", exc_info=True)
                self.report(e)
                return False
            self.last_error = None
            self.write_count += 1
            logger.debug(f"Tank write {sequence} completed")
            return True


# ============================================================================
# Local Device Cache
# ============================================================================

class SnapshotCache:
    """
    Lightweight device cache for the overview card.

    Holds the last TankSnapshot and the last preview reference in a small
    YAML file so an overview renders before the full session loads.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        with open(self.path, 'r') as f:
            data = yaml.safe_load(f)
        return data if isinstance(data, dict) else {}

    def _store(self, key: str, value: Any) -> None:
        try:
            data = self._load()
            data[key] = value
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, 'w') as f:
                yaml.safe_dump(data, f, sort_keys=True)
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Failed saving {key} to {self.path}: {e}")

    def save_snapshot(self, snapshot: TankSnapshot) -> None:
        self._store(SNAPSHOT_CACHE_KEY, snapshot.to_dict())

    def load_snapshot(self) -> Optional[TankSnapshot]:
        try:
            data = self._load().get(SNAPSHOT_CACHE_KEY)
            return TankSnapshot.from_dict(data) if data else None
        except (OSError, yaml.YAMLError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Ignoring unreadable snapshot in {self.path}: {e}")
            return None

    def save_preview_uri(self, uri: str) -> None:
        self._store(PREVIEW_CACHE_KEY, uri)

    def load_preview_uri(self) -> Optional[str]:
        try:
            uri = self._load().get(PREVIEW_CACHE_KEY)
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Ignoring unreadable preview reference in {self.path}: {e}")
            return None
        return uri if isinstance(uri, str) else None
