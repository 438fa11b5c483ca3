"""
Data types for species, placed occupants, tank settings and derived views.

Species are produced by normalize.py from raw catalog records; the other
types are produced by the engine modules. All records are frozen: every
transition builds new values instead of editing existing ones.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Optional, Tuple
from enum import Enum

from .constants import (
    SELF_AVOID_SPECIES,
    OXYGEN_BANDS,
    DEBOUNCE_SECONDS,
    DEFAULT_TEMP_C,
    DEFAULT_OXY_PCT,
    DEFAULT_BACKGROUND_KEY,
    BACKGROUND_KEYS,
    SPRITE_WIDTH,
    SPRITE_HEIGHT,
    NO_DATA_TEXT,
    NO_PH_DATA_TEXT,
)


# ============================================================================
# Enumerations
# ============================================================================

class Kind(str, Enum):
    """Catalog entry kind. Fish are named and subject to self-avoidance."""
    FISH = 'fish'
    PLANT = 'plant'


class WaterType(str, Enum):
    FRESHWATER = 'freshwater'
    SALTWATER = 'saltwater'


class OxygenNeed(str, Enum):
    LOW = 'low'
    MEDIUM = 'medium'
    HIGH = 'high'


class Compat(str, Enum):
    """Two-state label shown while browsing the catalog"""
    GOOD = 'Good'
    AVOID = 'Avoid'


# ============================================================================
# Species Definition
# ============================================================================

@dataclass(frozen=True)
class Range:
    """Closed numeric interval [min, max]"""
    min: float
    max: float

    @property
    def midpoint(self) -> float:
        return (self.min + self.max) / 2.0


@dataclass(frozen=True)
class Species:
    """
    Canonical catalog entry.

    Attributes:
        id: Catalog identifier (document id)
        name: Display name
        kind: fish or plant, None when the catalog did not say
        water_type: freshwater or saltwater (never None after normalization)
        ph_range: Tolerated pH interval, None when unknown
        temp_range: Tolerated temperature interval in Celsius, None when unknown
        oxygen_need: Categorical oxygen need, None when unknown
        asset_key: Canonical slug used for image and identity matching
        image_url: Remote image fallback (opaque to the engine)
        incompatible_with: Canonical ids this species never shares a tank with
        extra: Remaining raw catalog fields, carried but never interpreted
    """
    id: str
    name: str
    kind: Optional[Kind] = None
    water_type: WaterType = WaterType.FRESHWATER
    ph_range: Optional[Range] = None
    temp_range: Optional[Range] = None
    oxygen_need: Optional[OxygenNeed] = None
    asset_key: Optional[str] = None
    image_url: Optional[str] = None
    incompatible_with: Tuple[str, ...] = ()
    extra: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @property
    def is_fish(self) -> bool:
        return self.kind == Kind.FISH


@dataclass(frozen=True)
class TankItem(Species):
    """
    Placed occupant of a tank.

    Attributes:
        instance_id: Unique per placement, never reused
        species_id: Originating catalog id (kept even when `id` is composite)
        x: Horizontal position in tank-local coordinates
        y: Vertical position in tank-local coordinates
        nickname: User-assigned label
    """
    instance_id: str = ''
    species_id: Optional[str] = None
    x: float = 0.0
    y: float = 0.0
    nickname: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.nickname or self.name


# ============================================================================
# Tank Settings & Derived Views
# ============================================================================

@dataclass(frozen=True)
class TankSettings:
    """Environment controls of a tank"""
    env: WaterType = WaterType.FRESHWATER
    temp: float = DEFAULT_TEMP_C
    oxy: float = DEFAULT_OXY_PCT
    background_key: str = DEFAULT_BACKGROUND_KEY

    def to_dict(self) -> Dict[str, Any]:
        return {
            'env': self.env.value,
            'temp': float(self.temp),
            'oxy': float(self.oxy),
            'backgroundKey': self.background_key,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'TankSettings':
        """Restore settings from a stored document, keeping defaults for bad fields"""
        defaults = cls()
        if not isinstance(data, dict):
            return defaults

        env = defaults.env
        if data.get('env') in (WaterType.FRESHWATER.value, WaterType.SALTWATER.value):
            env = WaterType(data['env'])

        temp = data.get('temp')
        oxy = data.get('oxy')
        background_key = data.get('backgroundKey')

        return cls(
            env=env,
            temp=float(temp) if _is_number(temp) else defaults.temp,
            oxy=float(oxy) if _is_number(oxy) else defaults.oxy,
            background_key=background_key if isinstance(background_key, str) and background_key
            else defaults.background_key,
        )


@dataclass(frozen=True)
class TankSummary:
    """Aggregate statistics over the occupant set"""
    species_count: int
    avg_temp: Optional[float]
    avg_ph: Optional[float]
    oxygen_status: str  # low, medium, high, conflict

    @property
    def avg_temp_text(self) -> str:
        return NO_DATA_TEXT if self.avg_temp is None else f"{self.avg_temp:.1f}"

    @property
    def avg_ph_text(self) -> str:
        return NO_PH_DATA_TEXT if self.avg_ph is None else f"{self.avg_ph:.2f}"

    def lines(self) -> Tuple[Tuple[str, str], ...]:
        """(label, value) rows for the stats panel"""
        return (
            ('Species Count', str(self.species_count)),
            ('Avg Temp (°C)', self.avg_temp_text),
            ('Avg pH', self.avg_ph_text),
            ('Oxygen Need', self.oxygen_status),
        )


@dataclass(frozen=True)
class TankSnapshot:
    """Small read-only summary cached on the device for the overview card"""
    species_count: int
    env: WaterType
    temp: float
    oxy: float
    avg_ph_text: str
    timestamp: int  # milliseconds since epoch

    def to_dict(self) -> Dict[str, Any]:
        return {
            'speciesCount': self.species_count,
            'env': self.env.value,
            'temp': float(self.temp),
            'oxy': float(self.oxy),
            'avgPhText': self.avg_ph_text,
            'timestamp': int(self.timestamp),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TankSnapshot':
        return cls(
            species_count=int(data['speciesCount']),
            env=WaterType(data['env']),
            temp=float(data['temp']),
            oxy=float(data['oxy']),
            avg_ph_text=str(data['avgPhText']),
            timestamp=int(data['timestamp']),
        )


@dataclass(frozen=True)
class TemperatureRecommendation:
    """Admissible temperature range across all occupants"""
    min: float
    max: float
    conflict: bool


@dataclass(frozen=True)
class OxygenRecommendation:
    """Oxygen label from the categorical vote; range is None on conflict"""
    label: str  # low, medium, high, conflict
    range: Optional[Tuple[float, float]]

    @property
    def conflict(self) -> bool:
        return self.range is None


# ============================================================================
# Mutation Results
# ============================================================================

@dataclass(frozen=True)
class PendingPlacement:
    """Fish dropped into the tank, waiting for a nickname"""
    species: Species
    x: float
    y: float


@dataclass(frozen=True)
class Placement:
    """Outcome of a place() call"""
    state: str  # pending-name, placed
    items: Tuple[TankItem, ...]
    pending: Optional[PendingPlacement] = None
    item: Optional[TankItem] = None


@dataclass(frozen=True)
class MoveResult:
    """Outcome of a drop() call"""
    state: str  # placed, reverted
    items: Tuple[TankItem, ...]


# ============================================================================
# Engine Configuration
# ============================================================================

@dataclass(frozen=True)
class EngineConfig:
    """Tunables shared by the engine and the session; defaults mirror constants.py"""
    self_avoid: FrozenSet[str] = SELF_AVOID_SPECIES
    oxygen_bands: Dict[str, Tuple[float, float]] = field(
        default_factory=lambda: dict(OXYGEN_BANDS), hash=False
    )
    debounce_seconds: float = DEBOUNCE_SECONDS
    default_settings: TankSettings = field(default_factory=TankSettings)
    sprite_width: float = SPRITE_WIDTH
    sprite_height: float = SPRITE_HEIGHT
    background_keys: Tuple[str, ...] = BACKGROUND_KEYS


# ============================================================================
# Stored Tank
# ============================================================================

@dataclass(frozen=True)
class HydratedTank:
    """Tank state rebuilt from a stored document"""
    settings: TankSettings
    items: Tuple[TankItem, ...]
    preview_uri: Optional[str] = None


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)
