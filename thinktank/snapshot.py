"""
Tank snapshot building.

Turns the occupant collection and settings into (a) the persistable
document written to the tank store and (b) the small display snapshot
cached on the device, and rebuilds occupants from stored documents.

Stored document layout:
    {
      settings: {env, temp, oxy, backgroundKey},
      fish:   [item, ...],
      plants: [item, ...],
      items:  {instanceId: item},
      previewUri?: str
    }
`items` is authoritative on read; `fish`/`plants` are kept for older
readers and are rebuilt from the same occupants on every write.
"""

import time
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from .constants import (
    COMPOSITE_ID_SEP,
    NO_DATA_TEXT,
    UNKNOWN_SPECIES_NAME,
    LEGACY_X_BASE,
    LEGACY_X_STEP,
    LEGACY_X_WRAP,
    LEGACY_Y_BASE,
    LEGACY_Y_STEP,
    LEGACY_Y_WRAP,
)
from .data_types import (
    HydratedTank,
    Kind,
    Species,
    TankItem,
    TankSettings,
    TankSnapshot,
    WaterType,
)
from .environment import summarize
from .normalize import coerce_kind, coerce_water_type
from .rng import new_instance_id


def strip_none_deep(value: Any) -> Any:
    """
    Remove every None from a nested structure.

    Mapping keys whose value is None are dropped, None list entries are
    removed, tuples become lists. Everything else, including array order,
    is preserved. The store rejects payloads that contain None.
    """
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        cleaned = (strip_none_deep(v) for v in value)
        return [v for v in cleaned if v is not None]
    if isinstance(value, Mapping):
        out = {}
        for key, v in value.items():
            cleaned = strip_none_deep(v)
            if cleaned is not None:
                out[key] = cleaned
        return out
    return value


def serialize_item(item: TankItem) -> Dict[str, Any]:
    """Minimal persisted record of an occupant (identity, position, naming, asset)"""
    return strip_none_deep({
        'instanceId': item.instance_id,
        'id': item.id,
        'name': item.name,
        'kind': item.kind.value if item.kind is not None else None,
        'type': item.water_type.value,
        'x': float(item.x),
        'y': float(item.y),
        'nickname': item.nickname,
        'assetKey': item.asset_key,
        'imageURL': item.image_url,
        'speciesId': item.species_id,
    })


def build_persist_payload(items: Sequence[TankItem], settings: TankSettings) -> Dict[str, Any]:
    """
    Full persistable document for the tank store.

    `items` is keyed by instanceId so concurrent partial updates commute
    and the store never has to merge arrays.
    """
    records = [serialize_item(item) for item in items]
    payload = {
        'settings': settings.to_dict(),
        'fish': [r for item, r in zip(items, records) if item.is_fish],
        'plants': [r for item, r in zip(items, records) if not item.is_fish],
        'items': {r['instanceId']: r for r in records},
    }
    return strip_none_deep(payload)


def build_display_snapshot(
    items: Sequence[Species],
    env: WaterType,
    temp: float,
    oxy: float,
    clock: Callable[[], float] = time.time
) -> TankSnapshot:
    """Summary plus live environment controls, timestamped at creation"""
    summary = summarize(items)
    return TankSnapshot(
        species_count=summary.species_count,
        env=WaterType(env),
        temp=float(temp),
        oxy=float(oxy),
        avg_ph_text=summary.avg_ph_text if items else NO_DATA_TEXT,
        timestamp=int(clock() * 1000),
    )


# ============================================================================
# Hydration
# ============================================================================

def split_composite_id(raw_id: str):
    """Split "speciesId::instanceId" into its parts; (raw_id, None) when not composite"""
    if COMPOSITE_ID_SEP in raw_id:
        species_id, instance_id = raw_id.split(COMPOSITE_ID_SEP, 1)
        return species_id, instance_id or None
    return raw_id, None


def resolve_species_id(item: Any) -> Optional[str]:
    """
    Catalog id behind an occupant or stored record.

    Prefers the explicit back-reference; falls back to the species half
    of a composite id, then the id itself.
    """
    if isinstance(item, Mapping):
        species_id, raw_id = item.get('speciesId'), item.get('id')
    else:
        species_id, raw_id = getattr(item, 'species_id', None), getattr(item, 'id', None)
    if species_id:
        return str(species_id)
    if not raw_id:
        return None
    return split_composite_id(str(raw_id))[0]


def _as_records(value: Any) -> List[Mapping[str, Any]]:
    if isinstance(value, Mapping):
        value = list(value.values())
    if not isinstance(value, (list, tuple)):
        return []
    return [v for v in value if isinstance(v, Mapping)]


def _stored_records(doc: Mapping[str, Any]) -> List[Mapping[str, Any]]:
    """Prefer the keyed `items` map; older documents only have fish/plants"""
    keyed = doc.get('items')
    if isinstance(keyed, Mapping) and keyed:
        return _as_records(keyed)
    return _as_records(doc.get('fish')) + _as_records(doc.get('plants'))


def _coord(value: Any, index: int, base: float, step: float, wrap: float) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    return base + (index * step) % wrap


def hydrate_item(
    record: Mapping[str, Any],
    index: int,
    catalog: Optional[Mapping[str, Species]] = None,
    id_factory: Callable[[str], str] = new_instance_id
) -> TankItem:
    """
    Rebuild one occupant from a stored record.

    Missing fields fall back to the catalog entry (when one is known) and
    then to legacy defaults: name "Unknown", kind fish, type freshwater,
    a staggered position and a freshly generated instanceId.
    """
    raw_id = str(record.get('id') or f"item-{index}")
    composite_species, composite_instance = split_composite_id(raw_id)
    species_id = str(record.get('speciesId') or composite_species)
    instance_id = str(record.get('instanceId') or composite_instance or id_factory(species_id))

    base = catalog.get(species_id) if catalog else None

    kind = coerce_kind(record.get('kind')) or (base.kind if base else None) or Kind.FISH
    if record.get('type') is not None:
        water_type = coerce_water_type(record.get('type'))
    else:
        water_type = base.water_type if base else WaterType.FRESHWATER

    return TankItem(
        id=raw_id,
        name=str(record.get('name') or (base.name if base else UNKNOWN_SPECIES_NAME)),
        kind=kind,
        water_type=water_type,
        ph_range=base.ph_range if base else None,
        temp_range=base.temp_range if base else None,
        oxygen_need=base.oxygen_need if base else None,
        asset_key=record.get('assetKey') or (base.asset_key if base else None),
        image_url=record.get('imageURL') or (base.image_url if base else None),
        incompatible_with=base.incompatible_with if base else (),
        extra=dict(base.extra) if base else {},
        instance_id=instance_id,
        species_id=species_id,
        x=_coord(record.get('x'), index, LEGACY_X_BASE, LEGACY_X_STEP, LEGACY_X_WRAP),
        y=_coord(record.get('y'), index, LEGACY_Y_BASE, LEGACY_Y_STEP, LEGACY_Y_WRAP),
        nickname=record.get('nickname') or None,
    )


def hydrate(
    doc: Optional[Mapping[str, Any]],
    catalog: Optional[Iterable[Species]] = None,
    id_factory: Callable[[str], str] = new_instance_id
) -> HydratedTank:
    """
    Rebuild settings and occupants from a stored tank document.

    Args:
        doc: Stored document (None for a tank that does not exist yet)
        catalog: Normalized species; when given, ranges, oxygen needs and
            incompatibilities are re-attached by speciesId
        id_factory: Instance id generator for legacy records without one

    Returns:
        HydratedTank with settings, occupants in stored order and preview uri
    """
    if not doc:
        return HydratedTank(settings=TankSettings(), items=())

    by_id = {species.id: species for species in catalog} if catalog is not None else None
    items = tuple(
        hydrate_item(record, i, by_id, id_factory)
        for i, record in enumerate(_stored_records(doc))
    )
    preview_uri = doc.get('previewUri')
    return HydratedTank(
        settings=TankSettings.from_dict(doc.get('settings')),
        items=items,
        preview_uri=preview_uri if isinstance(preview_uri, str) else None,
    )
