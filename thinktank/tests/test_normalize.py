"""
Species normalization

Loosely-typed catalog records become canonical Species without raising.
"""

from thinktank.data_types import Kind, OxygenNeed, Range, WaterType
from thinktank.normalize import (
    coerce_incompatible,
    coerce_range,
    coerce_water_type,
    normalize_catalog,
    normalize_species,
)


def test_normalize_mixed_record():
    """Pair ranges, capitalized keys and string incompatibilities"""
    species = normalize_species({
        'id': 'betta',
        'name': 'Betta',
        'pH': [6.5, 7.5],
        'temp': 26,
        'type': 'Salt water',
        'incompatibleWith': 'Guppy; Tiger Barb',
    })

    assert species.ph_range == Range(6.5, 7.5)
    assert species.temp_range == Range(26.0, 26.0)
    assert species.water_type == WaterType.SALTWATER
    assert species.incompatible_with == ('guppy', 'tiger-barb')
    assert species.asset_key == 'betta'


def test_normalize_defaults():
    species = normalize_species({'name': 'Mystery Snail'})

    assert species.id == 'mystery-snail'
    assert species.kind is None
    assert species.water_type == WaterType.FRESHWATER
    assert species.ph_range is None
    assert species.temp_range is None
    assert species.oxygen_need is None
    assert species.incompatible_with == ()


def test_normalize_never_raises_on_garbage():
    for raw in [None, 42, "betta", {}, {'temp': 'warm', 'ph': {'low': 1}}]:
        species = normalize_species(raw)
        assert species.id
        assert species.asset_key
        assert species.temp_range is None


def test_normalize_asset_key_is_canonical():
    assert normalize_species({'id': 'x', 'name': 'Neon Tetra'}).asset_key == 'neon-tetra'
    assert normalize_species({'id': 'x', 'assetKey': 'NeonTetra'}).asset_key == 'neon-tetra'


def test_normalize_keeps_unknown_fields_as_extra():
    species = normalize_species({'id': 'betta', 'name': 'Betta', 'care': 'easy', 'ph': 7})
    assert species.extra == {'care': 'easy'}


def test_normalize_enums():
    species = normalize_species({'id': 'g', 'kind': ' Fish ', 'oxygenNeed': 'HIGH'})
    assert species.kind == Kind.FISH
    assert species.oxygen_need == OxygenNeed.HIGH
    assert normalize_species({'id': 'g', 'oxygenNeed': 'lots'}).oxygen_need is None


def test_coerce_range_forms():
    assert coerce_range(7) == Range(7.0, 7.0)
    assert coerce_range([6, 8]) == Range(6.0, 8.0)
    assert coerce_range([7]) == Range(7.0, 7.0)
    assert coerce_range({'min': 22, 'max': 28}) == Range(22.0, 28.0)
    assert coerce_range({'max': 28}) == Range(28.0, 28.0)
    assert coerce_range("6.5-7.5") == Range(6.5, 7.5)
    assert coerce_range("22-28 C") == Range(22.0, 28.0)


def test_coerce_range_rejects_malformed():
    """Malformed ranges are unknown, never zero"""
    for value in [None, True, [], [1, 2, 3], ['a', 'b'], {}, "warm", float('nan')]:
        assert coerce_range(value) is None


def test_coerce_incompatible_forms():
    assert coerce_incompatible(['Oscar', 'Tiger Barb']) == ('oscar', 'tiger-barb')
    assert coerce_incompatible("Oscar, Tiger Barb\nGuppy") == ('oscar', 'tiger-barb', 'guppy')
    assert coerce_incompatible({'a': 'Oscar', 'b': 'Guppy'}) == ('oscar', 'guppy')
    assert coerce_incompatible(None) == ()
    assert coerce_incompatible(17) == ()


def test_coerce_incompatible_drops_empty_and_duplicates():
    assert coerce_incompatible("Oscar;; ,oscar, OSCAR") == ('oscar',)


def test_coerce_water_type():
    assert coerce_water_type('Saltwater') == WaterType.SALTWATER
    assert coerce_water_type('marine reef') == WaterType.SALTWATER
    assert coerce_water_type('brackish') == WaterType.FRESHWATER
    assert coerce_water_type(None) == WaterType.FRESHWATER


def test_normalize_catalog_preserves_order():
    catalog = normalize_catalog([{'id': 'b'}, {'id': 'a'}])
    assert [s.id for s in catalog] == ['b', 'a']


def test_normalize_minimal_fish_record():
    species = normalize_species({
        'ph': [6, 7.5],
        'temp': 6,
        'oxygenNeed': 'Low',
        'incompatibleWith': 'Betta; Guppy',
    })

    assert species.ph_range == Range(6.0, 7.5)
    assert species.temp_range == Range(6.0, 6.0)
    assert species.oxygen_need == OxygenNeed.LOW
    assert species.incompatible_with == ('betta', 'guppy')
    assert species.water_type == WaterType.FRESHWATER
