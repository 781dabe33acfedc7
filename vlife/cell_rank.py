"""
Ranking of scored genomes used as the breeding pool.

Only the genome of a ranked cell is kept; the cell itself can be
discarded once it dies.
"""

import bisect
import math
import numpy as np
from typing import List, Optional, Tuple

from .genome import Genome, build_genome_of


class CellRank:
    """
    Best max_size genomes ordered by score (ascending).

    Equal scores keep insertion order. When over capacity the lowest
    entry (oldest among equal scores) is evicted.
    """

    def __init__(self, max_size: int):
        if max_size < 1:
            raise ValueError(f"Rank size must be positive, got {max_size}")
        self.max_size = max_size
        self._keys: List[Tuple[float, int]] = []
        self._genomes: List[Genome] = []
        self._next_seq = 0

    def __len__(self) -> int:
        return len(self._genomes)

    def insert(self, score: float, cell_or_genome) -> bool:
        """
        Rank a cell (its genome is built now) or a genome.

        Args:
            score: Ranking score, higher is better
            cell_or_genome: Genome or object exposing build_genome()

        Returns:
            True if the entry is still ranked after eviction

        Raises:
            ValueError: If score is NaN
        """
        score = float(score)
        if math.isnan(score):
            raise ValueError("Rank score must not be NaN")

        if isinstance(cell_or_genome, Genome):
            genome = cell_or_genome.copy()
        else:
            genome = build_genome_of(cell_or_genome)

        key = (score, self._next_seq)
        self._next_seq += 1
        index = bisect.bisect_right(self._keys, key)
        self._keys.insert(index, key)
        self._genomes.insert(index, genome)

        if len(self._genomes) > self.max_size:
            evicted = self._keys.pop(0)
            self._genomes.pop(0)
            return evicted != key
        return True

    def choose_random_genome(self, rng: np.random.Generator) -> Optional[Genome]:
        """Uniformly chosen ranked genome (a copy), or None when empty."""
        if not self._genomes:
            return None
        index = int(rng.integers(len(self._genomes)))
        return self._genomes[index].copy()

    def best(self) -> Optional[Tuple[float, Genome]]:
        if not self._genomes:
            return None
        return self._keys[-1][0], self._genomes[-1].copy()

    def scores(self) -> List[float]:
        return [score for score, _ in self._keys]

    def to_dict(self) -> dict:
        return {
            'max_size': self.max_size,
            'entries': [
                {'score': score, 'genome': genome.to_dict()}
                for (score, _), genome in zip(self._keys, self._genomes)
            ]
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'CellRank':
        rank = cls(int(data['max_size']))
        for entry in data.get('entries', []):
            rank.insert(entry['score'], Genome.from_dict(entry['genome']))
        return rank
