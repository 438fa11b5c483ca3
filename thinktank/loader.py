"""
YAML data loader with schema validation.

Loads species catalog records and engine configuration from YAML files
and validates them against JSON schemas. Species records are passed
through the normalizer, so loosely-typed catalog files are accepted as
long as they are structurally valid.
"""

import yaml
import json
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional
import jsonschema

from .data_types import EngineConfig, Species, TankSettings
from .normalize import normalize_species
from .slug import canonicalize

logger = logging.getLogger(__name__)


class DataLoadError(Exception):
    """Raised when data loading or validation fails"""
    pass


def load_yaml(file_path: Path) -> Any:
    """Load YAML file and return parsed data"""
    if not file_path.exists():
        raise DataLoadError(f"File not found: {file_path}")

    try:
        with open(file_path, 'r') as f:
            return yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise DataLoadError(f"YAML parse error in {file_path}: {e}")


def validate_against_schema(data: Any, schema_path: Path, data_path: Path):
    """Validate data against JSON schema"""
    if not schema_path.exists():
        raise DataLoadError(f"Schema not found: {schema_path}")

    try:
        with open(schema_path, 'r') as f:
            schema = json.load(f)
        jsonschema.validate(instance=data, schema=schema)
    except jsonschema.ValidationError as e:
        raise DataLoadError(f"Validation error in {data_path}: {e.message}")
    except jsonschema.SchemaError as e:
        raise DataLoadError(f"Invalid JSON schema {schema_path}: {e.message}")
    except json.JSONDecodeError as e:
        raise DataLoadError(f"Invalid JSON schema {schema_path}: {e}")


# ============================================================================
# Species Catalog
# ============================================================================

def load_species_records(file_path: Path, schema_dir: Optional[Path] = None) -> List[Dict[str, Any]]:
    """
    Load raw species records from one YAML file.

    The file holds either a single species mapping or a mapping with a
    `species` list. Records without an id get the file stem as id.
    """
    file_path = Path(file_path)
    data = load_yaml(file_path)

    if not isinstance(data, dict):
        raise DataLoadError(f"Expected a mapping in {file_path}")

    records = data['species'] if 'species' in data else [data]
    if not isinstance(records, list):
        raise DataLoadError(f"'species' must be a list in {file_path}")

    if schema_dir:
        schema_path = Path(schema_dir) / "species.schema.json"
        for record in records:
            validate_against_schema(record, schema_path, file_path)

    if len(records) == 1 and isinstance(records[0], dict) and 'id' not in records[0]:
        records = [{'id': file_path.stem, **records[0]}]

    return records


def load_species_file(file_path: Path, schema_dir: Optional[Path] = None) -> List[Species]:
    """Load and normalize species from one YAML file"""
    return [normalize_species(r) for r in load_species_records(file_path, schema_dir)]


def _species_files(species_dir: Path) -> List[Path]:
    species_dir = Path(species_dir)
    if not species_dir.exists():
        raise DataLoadError(f"Species directory not found: {species_dir}")

    files = sorted(species_dir.glob("*.yaml"))
    if not files:
        raise DataLoadError(f"No species files found in {species_dir}")
    return files


def load_species_catalog(species_dir: Path, schema_dir: Optional[Path] = None) -> List[Species]:
    """Load all species from directory, in file name order"""
    catalog = []
    for yaml_file in _species_files(species_dir):
        catalog.extend(load_species_file(yaml_file, schema_dir))
    logger.info(f"Loaded {len(catalog)} species from {species_dir}")
    return catalog


def catalog_source(
    species_dir: Path,
    schema_dir: Optional[Path] = None
) -> Callable[[], Awaitable[List[Dict[str, Any]]]]:
    """
    Catalog source for a tank session.

    Returns a coroutine function yielding raw records; the directory is
    re-read on every call so edits show up on the next session focus.
    """
    async def fetch() -> List[Dict[str, Any]]:
        records = []
        for yaml_file in _species_files(species_dir):
            records.extend(load_species_records(yaml_file, schema_dir))
        return records

    return fetch


# ============================================================================
# Engine Configuration
# ============================================================================

def load_engine_config(file_path: Path, schema_dir: Optional[Path] = None) -> EngineConfig:
    """
    Load engine tunables from YAML.

    Keys absent from the file keep the defaults from constants.py.
    """
    file_path = Path(file_path)
    data = load_yaml(file_path) or {}

    # Validate if schema available
    if schema_dir:
        schema_path = Path(schema_dir) / "engine.schema.json"
        validate_against_schema(data, schema_path, file_path)

    defaults = EngineConfig()

    bands = dict(defaults.oxygen_bands)
    for label, band in data.get('oxygen_bands', {}).items():
        bands[label] = (float(band[0]), float(band[1]))

    settings_data = data.get('default_settings')
    default_settings = defaults.default_settings
    if settings_data:
        default_settings = TankSettings.from_dict({
            'env': settings_data.get('env', default_settings.env.value),
            'temp': settings_data.get('temp', default_settings.temp),
            'oxy': settings_data.get('oxy', default_settings.oxy),
            'backgroundKey': settings_data.get('background_key', default_settings.background_key),
        })

    sprite = data.get('sprite', {})

    return EngineConfig(
        self_avoid=frozenset(canonicalize(s) for s in data.get('self_avoid', defaults.self_avoid)),
        oxygen_bands=bands,
        debounce_seconds=data['debounce_ms'] / 1000.0 if 'debounce_ms' in data else defaults.debounce_seconds,
        default_settings=default_settings,
        sprite_width=float(sprite.get('width', defaults.sprite_width)),
        sprite_height=float(sprite.get('height', defaults.sprite_height)),
        background_keys=tuple(data.get('background_keys', defaults.background_keys)),
    )
