"""
Tank mutation transitions.

Each transition takes the current occupant collection (a tuple) and returns
the next one; nothing is edited in place, so a reader holding the previous
tuple never observes a half-applied change. Positions are clamped into the
caller-supplied bounds before they are committed.

States of a placement:
    place()             -> pending-name (fish) | placed (everything else)
    confirm_placement() -> placed
    drop()              -> placed | reverted (drop point outside the tank)
"""

import dataclasses
import logging
from typing import Callable, Optional, Sequence, Tuple

from .constants import COMPOSITE_ID_SEP, DEFAULT_FISH_NICKNAME
from .data_types import (
    Kind,
    MoveResult,
    PendingPlacement,
    Placement,
    Species,
    TankItem,
)
from .geometry import Bounds, TankRect
from .rng import new_instance_id
from .snapshot import resolve_species_id

logger = logging.getLogger(__name__)

PENDING_NAME = 'pending-name'
PLACED = 'placed'
REVERTED = 'reverted'

Items = Tuple[TankItem, ...]

_SPECIES_FIELDS = tuple(f.name for f in dataclasses.fields(Species))


class UnknownItemError(KeyError):
    """Raised when a transition targets an instanceId that is not in the tank"""
    pass


def default_nickname(species: Species) -> str:
    return species.name if species.name else DEFAULT_FISH_NICKNAME


def _index_of(items: Sequence[TankItem], instance_id: str) -> int:
    for i, item in enumerate(items):
        if item.instance_id == instance_id:
            return i
    raise UnknownItemError(instance_id)


def _replace_at(items: Sequence[TankItem], index: int, item: TankItem) -> Items:
    return tuple(items[:index]) + (item,) + tuple(items[index + 1:])


def _fresh_instance_id(items: Sequence[TankItem], species_id: str,
                       id_factory: Callable[[str], str]) -> str:
    taken = {item.instance_id for item in items}
    instance_id = id_factory(species_id)
    while instance_id in taken:
        instance_id = id_factory(species_id)
    return instance_id


def _commit_new(
    items: Sequence[TankItem],
    species: Species,
    x: float,
    y: float,
    kind: Kind,
    nickname: str,
    id_factory: Callable[[str], str]
) -> Tuple[Items, TankItem]:
    species_id = resolve_species_id(species) or species.id
    instance_id = _fresh_instance_id(items, species_id, id_factory)
    base = {name: getattr(species, name) for name in _SPECIES_FIELDS}
    base.update(
        id=f"{species_id}{COMPOSITE_ID_SEP}{instance_id}",
        kind=kind,
    )
    item = TankItem(
        **base,
        instance_id=instance_id,
        species_id=species_id,
        x=x,
        y=y,
        nickname=nickname,
    )
    return tuple(items) + (item,), item


def place(
    items: Sequence[TankItem],
    species: Species,
    x: float,
    y: float,
    bounds: Bounds,
    id_factory: Callable[[str], str] = new_instance_id
) -> Placement:
    """
    Drop a catalog species into the tank at (x, y).

    Fish wait for a nickname (state pending-name, collection unchanged);
    everything else is committed immediately, named after its species.
    """
    x, y = bounds.clamp_point(x, y)

    if species.is_fish:
        return Placement(
            state=PENDING_NAME,
            items=tuple(items),
            pending=PendingPlacement(species=species, x=x, y=y),
        )

    next_items, item = _commit_new(
        items, species, x, y,
        kind=species.kind or Kind.PLANT,
        nickname=default_nickname(species),
        id_factory=id_factory,
    )
    return Placement(state=PLACED, items=next_items, item=item)


def confirm_placement(
    items: Sequence[TankItem],
    pending: PendingPlacement,
    nickname: Optional[str] = None,
    id_factory: Callable[[str], str] = new_instance_id
) -> Placement:
    """Commit a pending fish with its nickname (species name when blank)"""
    species = pending.species
    next_items, item = _commit_new(
        items, species, pending.x, pending.y,
        kind=species.kind or Kind.FISH,
        nickname=(nickname or '').strip() or default_nickname(species),
        id_factory=id_factory,
    )
    return Placement(state=PLACED, items=next_items, item=item)


def move(items: Sequence[TankItem], instance_id: str, x: float, y: float, bounds: Bounds) -> Items:
    """Reposition an occupant, clamped into bounds; identity and nickname are kept"""
    index = _index_of(items, instance_id)
    x, y = bounds.clamp_point(x, y)
    return _replace_at(items, index, dataclasses.replace(items[index], x=x, y=y))


def move_outside_bounds(items: Sequence[TankItem], instance_id: str) -> MoveResult:
    """A move whose target lies outside the tank: the occupant keeps its position"""
    _index_of(items, instance_id)
    return MoveResult(state=REVERTED, items=tuple(items))


def drop(
    items: Sequence[TankItem],
    instance_id: str,
    page_x: float,
    page_y: float,
    rect: TankRect,
    sprite_w: float,
    sprite_h: float
) -> MoveResult:
    """
    Resolve the end of a drag of an existing occupant.

    Inside the tank rectangle the sprite is centred on the drop point and
    clamped; outside it the occupant snaps back to where it was.
    """
    point = rect.drop_point(page_x, page_y, sprite_w, sprite_h)
    if point is None:
        return move_outside_bounds(items, instance_id)
    bounds = rect.item_bounds(sprite_w, sprite_h)
    return MoveResult(state=PLACED, items=move(items, instance_id, point[0], point[1], bounds))


def rename(items: Sequence[TankItem], instance_id: str, nickname: Optional[str]) -> Items:
    """
    Rename an occupant.

    A blank nickname keeps the existing one, then falls back to the
    species name, so an occupant is never left nameless.
    """
    index = _index_of(items, instance_id)
    item = items[index]
    new_name = (nickname or '').strip() or item.nickname or default_nickname(item)
    return _replace_at(items, index, dataclasses.replace(item, nickname=new_name))


def remove(items: Sequence[TankItem], instance_id: str) -> Items:
    """Delete an occupant. Removing an absent instance is a no-op."""
    remaining = tuple(item for item in items if item.instance_id != instance_id)
    if len(remaining) == len(items):
        logger.debug(f"remove: {instance_id} not in tank")
    return remaining
