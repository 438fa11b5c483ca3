"""
Shared fixtures: catalog data, a deterministic id factory and a manual
scheduler so debounce timing is driven by the test instead of the clock.
"""

from pathlib import Path

import pytest

from thinktank.data_types import PendingPlacement
from thinktank.geometry import TankRect
from thinktank.mutations import confirm_placement
from thinktank.normalize import normalize_catalog
from thinktank.persistence import InMemoryTankStore, Scheduler, SessionKey

DATA_ROOT = Path(__file__).parent.parent.parent / "data"


class ManualHandle:
    def __init__(self, due, callback):
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualScheduler(Scheduler):
    """Fires callbacks only when advance() moves time past their due point"""

    def __init__(self):
        self.now = 0.0
        self.handles = []

    def call_later(self, delay, callback):
        handle = ManualHandle(self.now + delay, callback)
        self.handles.append(handle)
        return handle

    @property
    def active(self):
        return [h for h in self.handles if not h.cancelled]

    def advance(self, seconds):
        self.now += seconds
        due = [h for h in self.active if h.due <= self.now]
        for handle in sorted(due, key=lambda h: h.due):
            handle.cancelled = True
            handle.callback()


class CountingIds:
    """Deterministic instance ids: "{species}-1", "{species}-2", ..."""

    def __init__(self):
        self.count = 0

    def __call__(self, species_id):
        self.count += 1
        return f"{species_id}-{self.count}"


RAW_CATALOG = [
    {'id': 'betta', 'name': 'Betta', 'kind': 'fish', 'type': 'Freshwater',
     'ph': [6.5, 7.5], 'temp': [24, 28], 'oxygenNeed': 'low',
     'incompatibleWith': 'Guppy; Tiger Barb'},
    {'id': 'guppy', 'name': 'Guppy', 'kind': 'fish', 'type': 'freshwater',
     'pH': {'min': 6.8, 'max': 7.8}, 'temp': [26, 30], 'oxygenNeed': 'medium'},
    {'id': 'java-fern', 'name': 'Java Fern', 'kind': 'plant',
     'ph': [6, 7.5], 'temp': [20, 28], 'oxygenNeed': 'low'},
    {'id': 'clownfish', 'name': 'Clownfish', 'kind': 'fish', 'type': 'Saltwater',
     'ph': [8.1, 8.4], 'temp': [24, 27], 'oxygenNeed': 'high'},
]


@pytest.fixture
def data_root():
    return DATA_ROOT


@pytest.fixture
def raw_catalog():
    return [dict(r) for r in RAW_CATALOG]


@pytest.fixture
def catalog():
    return {s.id: s for s in normalize_catalog(RAW_CATALOG)}


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def ids():
    return CountingIds()


@pytest.fixture
def rect():
    # 160x110 sprites leave a 640x490 band for the top-left corner
    return TankRect(x=100.0, y=50.0, w=800.0, h=600.0)


@pytest.fixture
def store():
    return InMemoryTankStore(clock=lambda: 1700000000.0)


@pytest.fixture
def key():
    return SessionKey(user_id='user-1', tank_id='tank_1')


@pytest.fixture
def make_item(ids):
    """Build a placed occupant from a catalog species"""
    def _make(species, nickname=None, x=0.0, y=0.0):
        placement = confirm_placement((), PendingPlacement(species, x, y), nickname, ids)
        return placement.item

    return _make
