"""
Species normalization.

Maps loosely-typed catalog records (numeric or pair ranges, inconsistent
field casing, list/string/object forms of "incompatible with") into the
canonical Species dataclass. Normalization is total: malformed fields
degrade to documented defaults and nothing here raises.
"""

import logging
import math
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from .constants import UNKNOWN_SPECIES_ID, UNKNOWN_SPECIES_NAME
from .data_types import Kind, OxygenNeed, Range, Species, WaterType
from .slug import canonicalize

logger = logging.getLogger(__name__)

# Field aliases, first non-null match wins
PH_KEYS = ('ph', 'pH', 'Ph', 'PH', 'phRange', 'ph_range')
TEMP_KEYS = ('temp', 'tempRange', 'temp_range', 'temperature')
WATER_KEYS = ('type', 'waterType', 'water_type')
OXYGEN_KEYS = ('oxygenNeed', 'oxygen_need', 'oxygen')
INCOMPAT_KEYS = ('incompatibleWith', 'incompatible_with')
ASSET_KEYS = ('assetKey', 'asset_key')
IMAGE_KEYS = ('imageURL', 'imageUrl', 'image_url')

_CONSUMED_KEYS = frozenset(
    ('id', 'name', 'kind') + TEMP_KEYS + WATER_KEYS + OXYGEN_KEYS
    + INCOMPAT_KEYS + ASSET_KEYS + IMAGE_KEYS
)

_INCOMPAT_DELIMITERS = re.compile(r'[,;\n]')
_RANGE_TEXT_JUNK = re.compile(r'[^0-9.\-]')


def _first_present(raw: Mapping[str, Any], keys: Iterable[str]) -> Any:
    for key in keys:
        value = raw.get(key)
        if value is not None:
            return value
    return None


def _to_float(value: Any) -> Optional[float]:
    """Coerce a scalar to float, None if it is not a finite number"""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def _parse_range_text(text: str) -> Optional[Range]:
    """Parse "6.5-7.5", "22-28 C" or "7" into a Range"""
    cleaned = _RANGE_TEXT_JUNK.sub('', text)
    if not cleaned:
        return None

    single = _to_float(cleaned)
    if single is not None:
        return Range(single, single)

    parts = cleaned.split('-')
    if len(parts) != 2:
        return None
    low, high = _to_float(parts[0]), _to_float(parts[1])
    if low is None or high is None:
        return None
    return Range(low, high)


def coerce_range(value: Any) -> Optional[Range]:
    """
    Coerce any range-like value into a Range.

    Accepts a bare number (min = max), a two-element ordered pair,
    a {min, max} mapping, an existing Range, or range text. Anything
    else yields None rather than zero.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Range):
        return value
    if isinstance(value, (int, float)):
        number = _to_float(value)
        return Range(number, number) if number is not None else None
    if isinstance(value, str):
        return _parse_range_text(value)
    if isinstance(value, (list, tuple)):
        if len(value) == 1:
            return coerce_range(value[0])
        if len(value) == 2:
            low, high = _to_float(value[0]), _to_float(value[1])
            if low is not None and high is not None:
                return Range(low, high)
        return None
    if isinstance(value, Mapping):
        low = _to_float(value.get('min'))
        high = _to_float(value.get('max'))
        if low is None and high is None:
            return None
        if low is None:
            low = high
        if high is None:
            high = low
        return Range(low, high)
    return None


def coerce_incompatible(value: Any) -> Tuple[str, ...]:
    """
    Normalize an "incompatible with" field into de-duplicated canonical slugs.

    Lists pass through, strings split on comma/semicolon/newline, mappings
    contribute their values. Empty slugs are dropped; first occurrence wins.
    """
    if value is None:
        entries: List[Any] = []
    elif isinstance(value, str):
        entries = _INCOMPAT_DELIMITERS.split(value)
    elif isinstance(value, (list, tuple, set, frozenset)):
        entries = list(value)
    elif isinstance(value, Mapping):
        entries = list(value.values())
    else:
        logger.debug(f"Ignoring incompatibleWith of type {type(value).__name__}")
        entries = []

    seen = []
    for entry in entries:
        if entry is None:
            continue
        slug = canonicalize(entry)
        if slug and slug not in seen:
            seen.append(slug)
    return tuple(seen)


def coerce_water_type(value: Any) -> WaterType:
    """Strings starting with "salt" or "marine" are saltwater, all else freshwater"""
    if isinstance(value, WaterType):
        return value
    text = re.sub(r'\s+', '', str(value if value is not None else '')).lower()
    if text.startswith('salt') or text.startswith('marine'):
        return WaterType.SALTWATER
    return WaterType.FRESHWATER


def coerce_oxygen_need(value: Any) -> Optional[OxygenNeed]:
    if isinstance(value, OxygenNeed):
        return value
    if not isinstance(value, str):
        return None
    try:
        return OxygenNeed(value.strip().lower())
    except ValueError:
        return None


def coerce_kind(value: Any) -> Optional[Kind]:
    if isinstance(value, Kind):
        return value
    if not isinstance(value, str):
        return None
    try:
        return Kind(value.strip().lower())
    except ValueError:
        return None


def _ph_value(raw: Mapping[str, Any]) -> Any:
    value = _first_present(raw, PH_KEYS)
    if value is not None:
        return value
    # Any other casing of "ph"
    for key, candidate in raw.items():
        if isinstance(key, str) and key.lower() == 'ph' and candidate is not None:
            return candidate
    return None


def _text(value: Any) -> str:
    if value is None:
        return ''
    return str(value).strip()


def normalize_species(raw: Any) -> Species:
    """
    Build a canonical Species from a raw catalog record.

    Defaults: water type freshwater, ranges None, kind None, asset key
    derived from name or id. The result always has a non-empty canonical
    identifier and an incompatibility list of slugs.
    """
    if isinstance(raw, Species):
        return raw
    if not isinstance(raw, Mapping):
        logger.debug(f"Normalizing non-mapping species record of type {type(raw).__name__}")
        raw = {}

    species_id = _text(raw.get('id'))
    name = _text(raw.get('name'))
    if not name:
        name = species_id or UNKNOWN_SPECIES_NAME
    if not species_id:
        species_id = canonicalize(name) or UNKNOWN_SPECIES_ID

    asset_key = canonicalize(_first_present(raw, ASSET_KEYS))
    if not asset_key:
        asset_key = canonicalize(name) or canonicalize(species_id) or UNKNOWN_SPECIES_ID

    image_url = _first_present(raw, IMAGE_KEYS)

    extra: Dict[str, Any] = {
        key: value for key, value in raw.items()
        if key not in _CONSUMED_KEYS and not (isinstance(key, str) and key.lower() in ('ph', 'phrange', 'ph_range'))
    }

    return Species(
        id=species_id,
        name=name,
        kind=coerce_kind(raw.get('kind')),
        water_type=coerce_water_type(_first_present(raw, WATER_KEYS)),
        ph_range=coerce_range(_ph_value(raw)),
        temp_range=coerce_range(_first_present(raw, TEMP_KEYS)),
        oxygen_need=coerce_oxygen_need(_first_present(raw, OXYGEN_KEYS)),
        asset_key=asset_key,
        image_url=str(image_url) if image_url else None,
        incompatible_with=coerce_incompatible(_first_present(raw, INCOMPAT_KEYS)),
        extra=extra,
    )


def normalize_catalog(records: Iterable[Any]) -> List[Species]:
    """Normalize every raw record of a catalog fetch"""
    return [normalize_species(record) for record in records]
