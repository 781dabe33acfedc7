"""
World configuration and rank persistence.

World files are YAML, checked against schemas/world.schema.json with
jsonschema and turned into the dataclasses of data_types.py. The genome
rank is written back as plain YAML so a later run can seed from it.
Every failure surfaces as DataLoadError.
"""

import yaml
import json
from pathlib import Path
from typing import Optional
import jsonschema

from .cell_rank import CellRank
from .constants import WORLD_SIZE_DEFAULT
from .data_types import WorldConfig, PhysicsConfig, SimulationConfig, EvolutionConfig

WORLD_SCHEMA = "world.schema.json"


class DataLoadError(Exception):
    """Raised when a data file cannot be read, parsed or validated"""
    pass


def load_yaml(file_path: Path) -> dict:
    """Parse a YAML mapping file."""
    file_path = Path(file_path)
    if not file_path.is_file():
        raise DataLoadError(f"File not found: {file_path}")

    try:
        with open(file_path, 'r') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise DataLoadError(f"YAML parse error in {file_path}: {e}")

    if not isinstance(data, dict):
        raise DataLoadError(f"Expected a mapping at the top of {file_path}")
    return data


def validate_against_schema(data: dict, schema_path: Path, data_path: Path):
    """
    Check data against a JSON schema file.

    A schema file that is not shipped disables the check.
    """
    if not schema_path.exists():
        return

    try:
        with open(schema_path, 'r') as f:
            schema = json.load(f)
    except json.JSONDecodeError as e:
        raise DataLoadError(f"Invalid JSON schema {schema_path}: {e}")

    try:
        jsonschema.validate(instance=data, schema=schema)
    except jsonschema.ValidationError as e:
        location = "/".join(str(part) for part in e.absolute_path) or "<root>"
        raise DataLoadError(f"Validation error in {data_path} at {location}: {e.message}")


def load_world(file_path: Path, schema_dir: Optional[Path] = None) -> WorldConfig:
    """Load world configuration from YAML"""
    file_path = Path(file_path)
    data = load_yaml(file_path)

    # Validate if schema available
    if schema_dir:
        schema_path = Path(schema_dir) / WORLD_SCHEMA
        validate_against_schema(data, schema_path, file_path)

    try:
        physics = PhysicsConfig(**data.get('physics', {}))
        simulation = SimulationConfig(**data.get('simulation', {}))
        evolution = EvolutionConfig(**data.get('evolution', {}))
        world = WorldConfig(
            world_id=data['world_id'],
            name=data['name'],
            size=[float(v) for v in data.get('size', WORLD_SIZE_DEFAULT)],
            seed=int(data.get('seed', 0)),
            physics=physics,
            simulation=simulation,
            evolution=evolution,
            description=data.get('description')
        )
    except (KeyError, TypeError, ValueError) as e:
        raise DataLoadError(f"Invalid world configuration in {file_path}: {e}")

    if len(world.size) != 2 or min(world.size) <= 0:
        raise DataLoadError(f"World size must be two positive numbers in {file_path}: {world.size}")

    # Same bounds as world.schema.json, enforced when no schema is available
    try:
        checks = [
            ('physics.sub_steps', world.physics.sub_steps, world.physics.sub_steps >= 1),
            ('physics.response_coef', world.physics.response_coef,
             0.0 < world.physics.response_coef <= 1.0),
            ('simulation.tick_delta_seconds', world.simulation.tick_delta_seconds,
             world.simulation.tick_delta_seconds > 0.0),
            ('simulation.num_initial_cells', world.simulation.num_initial_cells,
             world.simulation.num_initial_cells >= 0),
            ('simulation.max_ticks', world.simulation.max_ticks,
             world.simulation.max_ticks is None or world.simulation.max_ticks >= 0),
            ('evolution.rank_size', world.evolution.rank_size, world.evolution.rank_size >= 1),
            ('evolution.min_population', world.evolution.min_population,
             world.evolution.min_population >= 0),
            ('evolution.num_mutations', world.evolution.num_mutations,
             world.evolution.num_mutations >= 0),
            ('evolution.mutation_probability', world.evolution.mutation_probability,
             0.0 <= world.evolution.mutation_probability <= 1.0),
            ('evolution.mutation_scale', world.evolution.mutation_scale,
             world.evolution.mutation_scale >= 0.0),
        ]
    except TypeError as e:
        raise DataLoadError(f"Invalid world configuration in {file_path}: {e}")

    for name, value, valid in checks:
        if not valid:
            raise DataLoadError(f"Out of range {name} in {file_path}: {value}")

    return world


def save_rank(file_path: Path, rank: CellRank):
    """Write rank genomes to YAML"""
    file_path = Path(file_path)
    try:
        file_path.parent.mkdir(parents=True, exist_ok=True)
        with open(file_path, 'w') as f:
            yaml.safe_dump(rank.to_dict(), f, sort_keys=False)
    except OSError as e:
        raise DataLoadError(f"Cannot write rank to {file_path}: {e}")


def load_rank(file_path: Path) -> CellRank:
    """Load rank genomes written by save_rank()"""
    file_path = Path(file_path)
    data = load_yaml(file_path)
    try:
        return CellRank.from_dict(data)
    except (KeyError, TypeError, ValueError) as e:
        raise DataLoadError(f"Invalid rank file {file_path}: {e}")
