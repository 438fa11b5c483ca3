"""
Compatibility evaluation between a candidate species and tank occupants.

Only declared hard rules are honored: explicit incompatibilities (declared
by either party), self-avoidance for species aggressive toward their own
kind, and water-type mismatch. Results are advisory; placement is never
blocked here.
"""

from typing import Iterable, List, Sequence

from .constants import SELF_AVOID_SPECIES
from .data_types import Compat, Species, TankItem, WaterType
from .slug import canonical_id


def is_explicitly_incompatible(a: Species, b: Species) -> bool:
    """True if either species lists the other's canonical id"""
    a_id = canonical_id(a)
    b_id = canonical_id(b)
    return b_id in a.incompatible_with or a_id in b.incompatible_with


def _label(occupant: Species) -> str:
    return occupant.display_name if isinstance(occupant, TankItem) else occupant.name


def quick_compat(
    candidate: Species,
    occupants: Sequence[Species],
    self_avoid: Iterable[str] = SELF_AVOID_SPECIES
) -> Compat:
    """
    Two-state compatibility label for catalog browsing.

    Avoid when the candidate is self-avoiding and a conspecific is present,
    or when any occupant is explicitly incompatible in either direction.
    """
    if not occupants:
        return Compat.GOOD

    candidate_id = canonical_id(candidate)
    if candidate_id in frozenset(self_avoid):
        if any(canonical_id(o) == candidate_id for o in occupants):
            return Compat.AVOID

    for occupant in occupants:
        if is_explicitly_incompatible(candidate, occupant):
            return Compat.AVOID

    return Compat.GOOD


def detailed_conflicts(
    candidate: Species,
    occupants: Sequence[Species],
    target_env: WaterType,
    self_avoid: Iterable[str] = SELF_AVOID_SPECIES
) -> List[str]:
    """
    Human-readable conflicts for the placement confirmation prompt.

    Order: self-avoidance clashes (one per conspecific occupant), explicit
    incompatibilities (one per occupant), then a water-type mismatch.
    An empty list means no objection.
    """
    messages = []
    candidate_id = canonical_id(candidate)

    if candidate_id in frozenset(self_avoid):
        for occupant in occupants:
            if canonical_id(occupant) == candidate_id:
                messages.append(
                    f"{_label(occupant)}: another {candidate.name} is already in the tank"
                )

    for occupant in occupants:
        if is_explicitly_incompatible(candidate, occupant):
            messages.append(f"{_label(occupant)}: incompatible with {candidate.name}")

    if candidate.water_type != WaterType(target_env):
        messages.append(
            f"{candidate.name}: is {candidate.water_type.value} "
            f"while environment is {WaterType(target_env).value}"
        )

    return messages


def items_affected_by_env_switch(items: Sequence[TankItem], next_env: WaterType) -> List[TankItem]:
    """Occupants whose water type would mismatch the prospective environment"""
    next_env = WaterType(next_env)
    return [item for item in items if item.water_type != next_env]


def species_for_environment(catalog: Iterable[Species], env: WaterType) -> List[Species]:
    """Catalog entries that live in the given water type"""
    env = WaterType(env)
    return [species for species in catalog if species.water_type == env]
