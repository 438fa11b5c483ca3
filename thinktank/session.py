"""
Tank session.

The session holds one tank open: it owns the occupant collection and the
environment settings, runs the engine's pure transitions on them and hands
every committed state to the persistence collaborators. Collaborators are
injected (catalog source, tank store, device cache, scheduler); the session
never reaches for module-level handles.

Persistence policy:
    - continuous changes (move while dragging, control sliders, environment
      and background switches) go through the debounced write path
    - confirmed actions (placement, drop, rename, delete, closing the
      controls, leaving the screen) flush immediately
"""

import dataclasses
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Tuple

from . import mutations
from .compatibility import (
    detailed_conflicts,
    items_affected_by_env_switch,
    quick_compat,
    species_for_environment,
)
from .constants import OXY_CONTROL_RANGE, TEMP_CONTROL_RANGE
from .data_types import (
    Compat,
    EngineConfig,
    MoveResult,
    PendingPlacement,
    Placement,
    Species,
    TankItem,
    TankSettings,
    TankSnapshot,
    TankSummary,
    WaterType,
)
from .environment import (
    oxygen_hint,
    recommend_oxygen,
    recommend_temperature,
    summarize,
    temperature_hint,
)
from .geometry import Bounds, TankRect, clamp
from .normalize import normalize_catalog
from .persistence import (
    DebouncedWriter,
    Scheduler,
    SessionKey,
    SnapshotCache,
    TankStore,
)
from .rng import new_instance_id
from .snapshot import build_display_snapshot, build_persist_payload, hydrate

logger = logging.getLogger(__name__)


class TankSession:
    """
    One open tank.

    Attributes:
        items: Current occupant collection (replaced, never edited in place)
        settings: Current environment controls
        catalog: Normalized species from the last catalog refresh
        pending: Fish waiting for a nickname, if any
        preview_uri: Last preview reference of the tank view
    """

    def __init__(
        self,
        store: TankStore,
        key: SessionKey,
        catalog_source: Callable[[], Awaitable[Iterable[Any]]],
        rect: TankRect,
        cache: Optional[SnapshotCache] = None,
        config: Optional[EngineConfig] = None,
        scheduler: Optional[Scheduler] = None,
        id_factory: Callable[[str], str] = new_instance_id,
        clock: Callable[[], float] = time.time,
        on_error: Optional[Callable[[Exception], None]] = None
    ):
        """
        Args:
            store: Tank document store
            key: User and tank addressed by this session
            catalog_source: Coroutine function returning raw species records
            rect: Tank view rectangle in screen coordinates
            cache: Device cache for the overview snapshot (optional)
            config: Engine tunables (defaults from constants.py)
            scheduler: Timer source for debounced writes (defaults to asyncio)
            id_factory: Instance id generator
            clock: Time source in seconds since epoch
            on_error: Called with every failed store read or write
        """
        self.config = config or EngineConfig()
        self.store = store
        self.key = key
        self.rect = rect
        self.cache = cache

        self.items: Tuple[TankItem, ...] = ()
        self.settings: TankSettings = self.config.default_settings
        self.catalog: List[Species] = []
        self.pending: Optional[PendingPlacement] = None
        self.preview_uri: Optional[str] = None

        self._catalog_source = catalog_source
        self._id_factory = id_factory
        self._clock = clock
        self._hydrated = False
        self._writer = DebouncedWriter(
            self._write,
            delay=self.config.debounce_seconds,
            scheduler=scheduler,
            on_error=on_error,
        )

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def refresh_catalog(self) -> List[Species]:
        """Re-read and normalize the species catalog; keeps the old one on failure"""
        try:
            records = await self._catalog_source()
        except Exception as e:
            logger.warning(f"Failed to refresh species catalog: {e}", exc_info=True)
            return self.catalog

        self.catalog = normalize_catalog(records)
        logger.info(f"Catalog refreshed: {len(self.catalog)} species")
        return self.catalog

    async def hydrate(self) -> bool:
        """
        Populate the session from the stored tank, once per session.

        Later calls are no-ops so a refocus never overwrites local state.
        A failed read (including NotSignedInError) is logged, kept as
        `last_error` and passed to `on_error`; the session keeps its defaults.

        Returns:
            True if a stored tank was loaded
        """
        if self._hydrated:
            return False
        self._hydrated = True

        try:
            doc = await self.store.read(self.key)
        except Exception as e:
            logger.warning(f"Failed to load saved tank {self.key.tank_id}: {e}", exc_info=True)
            self._writer.report(e)
            return False
        if not doc:
            return False

        tank = hydrate(doc, catalog=self.catalog, id_factory=self._id_factory)
        self.settings = tank.settings
        self.items = tank.items
        self.preview_uri = tank.preview_uri
        logger.info(f"Hydrated tank {self.key.tank_id} with {len(self.items)} items")
        return True

    # ------------------------------------------------------------------
    # Read surface
    # ------------------------------------------------------------------

    @property
    def bounds(self) -> Bounds:
        return self.rect.item_bounds(self.config.sprite_width, self.config.sprite_height)

    @property
    def last_error(self) -> Optional[Exception]:
        return self._writer.last_error

    @property
    def write_pending(self) -> bool:
        return self._writer.pending

    def visible_species(self) -> List[Species]:
        return species_for_environment(self.catalog, self.settings.env)

    def compat_for(self, species: Species) -> Compat:
        return quick_compat(species, self.items, self.config.self_avoid)

    def conflicts_for(self, species: Species) -> List[str]:
        return detailed_conflicts(species, self.items, self.settings.env, self.config.self_avoid)

    def temperature_hint(self) -> str:
        return temperature_hint(recommend_temperature(self.items), self.settings.temp)

    def oxygen_hint(self) -> str:
        return oxygen_hint(recommend_oxygen(self.items, self.config.oxygen_bands), self.settings.oxy)

    def summary(self) -> TankSummary:
        return summarize(self.items)

    def display_snapshot(self) -> TankSnapshot:
        return build_display_snapshot(
            self.items, self.settings.env, self.settings.temp, self.settings.oxy, clock=self._clock
        )

    def payload(self) -> Dict[str, Any]:
        return build_persist_payload(self.items, self.settings)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def place(self, species: Species, x: float, y: float) -> Placement:
        """Place a catalog species at tank-local (x, y); fish wait for a nickname"""
        result = mutations.place(self.items, species, x, y, self.bounds, self._id_factory)
        if result.state == mutations.PENDING_NAME:
            self.pending = result.pending
        else:
            self._commit(result.items, immediate=True)
        return result

    def confirm_placement(self, nickname: Optional[str] = None) -> Optional[TankItem]:
        if self.pending is None:
            return None
        result = mutations.confirm_placement(self.items, self.pending, nickname, self._id_factory)
        self.pending = None
        self._commit(result.items, immediate=True)
        return result.item

    def cancel_placement(self) -> None:
        self.pending = None

    def move(self, instance_id: str, x: float, y: float) -> None:
        self._commit(mutations.move(self.items, instance_id, x, y, self.bounds), immediate=False)

    def drop(self, instance_id: str, page_x: float, page_y: float) -> MoveResult:
        """End of a drag: move to the drop point, or snap back when outside the tank"""
        result = mutations.drop(
            self.items, instance_id, page_x, page_y, self.rect,
            self.config.sprite_width, self.config.sprite_height,
        )
        self._commit(result.items, immediate=True)
        return result

    def rename(self, instance_id: str, nickname: Optional[str]) -> None:
        self._commit(mutations.rename(self.items, instance_id, nickname), immediate=True)

    def remove(self, instance_id: str) -> None:
        self._commit(mutations.remove(self.items, instance_id), immediate=True)

    def switch_environment(self, env: WaterType) -> List[TankItem]:
        """
        Switch the water type.

        Returns:
            Occupants whose water type mismatches the new environment
        """
        env = WaterType(env)
        if env == self.settings.env:
            return []
        affected = items_affected_by_env_switch(self.items, env)
        self._update_settings(env=env)
        return affected

    def set_controls(self, temp: Optional[float] = None, oxy: Optional[float] = None) -> None:
        """Slider movement; clamped to the control ranges and debounced"""
        changes = {}
        if temp is not None:
            changes['temp'] = clamp(temp, *TEMP_CONTROL_RANGE)
        if oxy is not None:
            changes['oxy'] = clamp(oxy, *OXY_CONTROL_RANGE)
        if changes:
            self._update_settings(**changes)

    def commit_controls(self) -> None:
        """Controls closed: persist the settings now"""
        self._flush()

    def cycle_background(self, step: int = 1) -> str:
        keys = self.config.background_keys
        current = keys.index(self.settings.background_key) if self.settings.background_key in keys else 0
        key = keys[(current + step) % len(keys)]
        self._update_settings(background_key=key)
        return key

    async def close(self, preview_uri: Optional[str] = None) -> None:
        """Leaving the screen: save everything now and wait for the write to land"""
        if preview_uri:
            self.preview_uri = preview_uri
            if self.cache is not None:
                self.cache.save_preview_uri(preview_uri)
        self._save_snapshot()
        self._flush()
        await self.drain()

    async def drain(self) -> None:
        """Wait for every write already started to land (or fail)"""
        await self._writer.drain()

    # ------------------------------------------------------------------
    # Persistence plumbing
    # ------------------------------------------------------------------

    async def _write(self, payload: Dict[str, Any]) -> None:
        await self.store.write(self.key, payload)

    def _update_settings(self, **changes: Any) -> None:
        self.settings = dataclasses.replace(self.settings, **changes)
        self._save_snapshot()
        self._writer.request(self.payload())

    def _commit(self, items: Tuple[TankItem, ...], immediate: bool) -> None:
        self.items = items
        self._save_snapshot()
        if immediate:
            self._flush()
        else:
            self._writer.request(self.payload())

    def _flush(self) -> None:
        payload = self.payload()
        if self.preview_uri:
            payload['previewUri'] = self.preview_uri
        self._writer.flush(payload)

    def _save_snapshot(self) -> None:
        if self.cache is not None:
            self.cache.save_snapshot(self.display_snapshot())
