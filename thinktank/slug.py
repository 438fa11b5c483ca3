"""
Identifier canonicalization.

Free-text names, catalog ids and asset keys all reduce to the same
lowercase-dash slug so that "Neon Tetra", "neonTetra" and "neon-tetra"
compare equal. Functions here are total and hold no state.
"""
import re
from typing import Any

_CAMEL_BOUNDARY = re.compile(r'([a-z])([A-Z])')
_NON_ALNUM_RUN = re.compile(r'[^a-z0-9]+')


def canonicalize(text: Any) -> str:
    """
    Convert arbitrary text into a stable slug.

    Splits camel-case boundaries, lowercases, collapses every run of
    non-alphanumeric characters into a single dash and strips leading
    and trailing dashes. None and non-strings are accepted.

    Examples:
        canonicalize("Neon Tetra")   -> "neon-tetra"
        canonicalize("bristlenosePleco") -> "bristlenose-pleco"
        canonicalize("  --BETTA-- ") -> "betta"
    """
    if text is None:
        return ''
    s = str(text).strip()
    # Camel split must run before lowercasing or the boundary is lost
    s = _CAMEL_BOUNDARY.sub(r'\1-\2', s)
    s = _NON_ALNUM_RUN.sub('-', s.lower())
    return s.strip('-')


def canonical_id(entity: Any) -> str:
    """
    Canonical identifier of a species or placed occupant.

    Priority: asset key > species back-reference > primary id > display name.
    Multiple placed instances of one catalog species and legacy records with
    missing fields all resolve to the same slug through this order.

    Accepts dataclasses (Species, TankItem) and raw mappings alike.
    """
    for attr, key in (('asset_key', 'assetKey'), ('species_id', 'speciesId'),
                      ('id', 'id'), ('name', 'name')):
        if isinstance(entity, dict):
            value = entity.get(key)
        else:
            value = getattr(entity, attr, None)
        if value:
            return canonicalize(value)
    return ''
