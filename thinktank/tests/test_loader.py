"""
Test data loading system

Verifies YAML catalog and config files load, validate and normalize.
"""

import pytest

from thinktank.data_types import Kind, Range, WaterType
from thinktank.loader import (
    DataLoadError,
    catalog_source,
    load_engine_config,
    load_species_catalog,
    load_species_file,
    load_species_records,
)


def test_load_species_file(data_root):
    """Single-species file with string incompatibilities"""
    species = load_species_file(data_root / "species" / "betta.yaml", data_root / "schemas")

    assert len(species) == 1
    betta = species[0]
    assert betta.id == 'betta'
    assert betta.kind == Kind.FISH
    assert betta.ph_range == Range(6.5, 7.5)
    assert betta.incompatible_with == ('guppy', 'tiger-barb')
    assert 'description' in betta.extra


def test_load_species_list_file(data_root):
    """A file with a `species:` list yields every entry in order"""
    plants = load_species_file(data_root / "species" / "plants.yaml", data_root / "schemas")

    assert [p.id for p in plants] == ['java-fern', 'anubias', 'chaetomorpha']
    assert all(p.kind == Kind.PLANT for p in plants)
    assert plants[1].ph_range == Range(7.0, 7.0)
    assert plants[2].water_type == WaterType.SALTWATER


def test_load_species_catalog(data_root):
    catalog = load_species_catalog(data_root / "species", data_root / "schemas")
    by_id = {s.id: s for s in catalog}

    assert len(catalog) == 7
    assert by_id['neonTetra'].asset_key == 'neon-tetra'
    assert by_id['neonTetra'].temp_range == Range(20.0, 26.0)
    assert by_id['ocellaris-clownfish'].ph_range == Range(8.1, 8.4)
    assert by_id['ocellaris-clownfish'].incompatible_with == ('royal-gramma',)


def test_record_without_id_takes_file_stem(tmp_path):
    (tmp_path / "zebra-danio.yaml").write_text("name: Zebra Danio\nkind: fish\n")

    records = load_species_records(tmp_path / "zebra-danio.yaml")
    assert records[0]['id'] == 'zebra-danio'


def test_schema_rejects_structurally_invalid_record(tmp_path, data_root):
    (tmp_path / "bad.yaml").write_text("id: bad\ntemp: [1, 2, 3]\n")

    with pytest.raises(DataLoadError, match="Validation error"):
        load_species_file(tmp_path / "bad.yaml", data_root / "schemas")


def test_missing_file_and_directory(tmp_path):
    with pytest.raises(DataLoadError, match="File not found"):
        load_species_file(tmp_path / "nope.yaml")
    with pytest.raises(DataLoadError, match="not found"):
        load_species_catalog(tmp_path / "nope")
    with pytest.raises(DataLoadError, match="No species files"):
        load_species_catalog(tmp_path)


def test_yaml_parse_error(tmp_path):
    (tmp_path / "broken.yaml").write_text("id: [unclosed\n")

    with pytest.raises(DataLoadError, match="YAML parse error"):
        load_species_file(tmp_path / "broken.yaml")


@pytest.mark.asyncio
async def test_catalog_source_rereads_directory(tmp_path):
    """The session's catalog source sees files added after it was created"""
    (tmp_path / "a.yaml").write_text("id: a\nname: A\n")
    fetch = catalog_source(tmp_path)

    assert [r['id'] for r in await fetch()] == ['a']

    (tmp_path / "b.yaml").write_text("id: b\nname: B\n")
    assert [r['id'] for r in await fetch()] == ['a', 'b']


def test_load_engine_config(data_root):
    config = load_engine_config(data_root / "config" / "engine.yaml", data_root / "schemas")

    assert config.self_avoid == frozenset({'betta'})
    assert config.oxygen_bands['low'] == (30.0, 55.0)
    assert config.debounce_seconds == pytest.approx(0.6)
    assert config.default_settings.env == WaterType.FRESHWATER
    assert config.default_settings.background_key == 'default'
    assert config.sprite_width == 160.0
    assert config.background_keys == ('default', 'reef', 'plants', 'rocks')


def test_engine_config_partial_file_keeps_defaults(tmp_path, data_root):
    path = tmp_path / "engine.yaml"
    path.write_text("self_avoid: [Siamese Fighting Fish]\ndebounce_ms: 250\n")

    config = load_engine_config(path, data_root / "schemas")

    assert config.self_avoid == frozenset({'siamese-fighting-fish'})
    assert config.debounce_seconds == pytest.approx(0.25)
    assert config.oxygen_bands['high'] == (65.0, 90.0)
    assert config.sprite_height == 110.0


def test_engine_config_rejects_unknown_keys(tmp_path, data_root):
    path = tmp_path / "engine.yaml"
    path.write_text("debounce: 5\n")

    with pytest.raises(DataLoadError):
        load_engine_config(path, data_root / "schemas")


def test_missing_schema(tmp_path, data_root):
    with pytest.raises(DataLoadError, match="Schema not found"):
        load_species_file(data_root / "species" / "betta.yaml", tmp_path)
