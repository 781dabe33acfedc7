"""
Data types mirroring YAML schema structures.

These dataclasses are populated by loader.py from YAML files.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from .constants import (
    SUB_STEPS,
    RESPONSE_COEF,
    USE_CKDTREE,
    DEFAULT_DELTA,
    NUM_INITIAL_CELLS,
    USE_EVOLUTION,
    RANK_SIZE_DEFAULT,
    NUM_MUTATIONS_DEFAULT,
    MUTATION_PROBABILITY_DEFAULT,
    MUTATION_SCALE_DEFAULT,
    WORLD_SIZE_DEFAULT,
)


@dataclass
class PhysicsConfig:
    """Circle-world physics parameters"""
    sub_steps: int = SUB_STEPS
    response_coef: float = RESPONSE_COEF
    use_ckdtree: bool = USE_CKDTREE


@dataclass
class SimulationConfig:
    """Simulation global defaults"""
    tick_delta_seconds: float = DEFAULT_DELTA
    num_initial_cells: int = NUM_INITIAL_CELLS
    max_ticks: Optional[int] = None  # None = run until stopped (CLI default applies)


@dataclass
class EvolutionConfig:
    """Refill of the population from ranked genomes"""
    enabled: bool = USE_EVOLUTION
    rank_size: int = RANK_SIZE_DEFAULT
    min_population: int = 0  # 0 = keep the initial cell count
    num_mutations: int = NUM_MUTATIONS_DEFAULT
    mutation_probability: float = MUTATION_PROBABILITY_DEFAULT
    mutation_scale: float = MUTATION_SCALE_DEFAULT


@dataclass
class WorldConfig:
    """World configuration"""
    world_id: str
    name: str
    size: List[float] = field(default_factory=lambda: list(WORLD_SIZE_DEFAULT))  # [width, height]
    seed: int = 0
    physics: PhysicsConfig = field(default_factory=PhysicsConfig)
    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    evolution: EvolutionConfig = field(default_factory=EvolutionConfig)
    description: Optional[str] = None
