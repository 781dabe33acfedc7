"""
Genome representation for V-Life cells.

A genome is a flat, key-ordered mapping of gene paths to scalar values.
Paths mirror the structure of the object the genome was built from:
nested structures prefix their genes with their name, and matrices use
zero-padded row/column indices ("neurons/layer1/weights/003/011").

Objects take part in evolution through two methods:
    build_genome(builder)  - register their heritable values
    apply_genome(genome)   - read them back into a fresh instance
"""

import numpy as np
from dataclasses import dataclass
from typing import Dict, List, Optional


@dataclass
class Gene:
    """Single heritable scalar"""
    value: float


def gene_id(path: Optional[str], name: str) -> str:
    """Build the flat key for gene name under path."""
    if path:
        return f"{path}/{name}"
    return name


def index_name(index: int) -> str:
    return f"{index:03d}"


class Genome:
    """Ordered set of genes keyed by path."""

    def __init__(self, genes: Optional[Dict[str, Gene]] = None):
        genes = genes or {}
        self.genes: Dict[str, Gene] = {key: genes[key] for key in sorted(genes)}

    def get(self, path: Optional[str], name: str) -> Optional[Gene]:
        return self.genes.get(gene_id(path, name))

    def value(self, key: str, default: Optional[float] = None) -> Optional[float]:
        gene = self.genes.get(key)
        return default if gene is None else gene.value

    def keys(self) -> List[str]:
        return list(self.genes.keys())

    def __len__(self) -> int:
        return len(self.genes)

    def __contains__(self, key: str) -> bool:
        return key in self.genes

    def __eq__(self, other) -> bool:
        if not isinstance(other, Genome):
            return NotImplemented
        return self.genes == other.genes

    def copy(self) -> 'Genome':
        return Genome({key: Gene(gene.value) for key, gene in self.genes.items()})

    def cross(self, other: 'Genome', rng: np.random.Generator) -> 'Genome':
        """
        Single-point crossover.

        Keys of both parents are merged and sorted. Genes before the cut
        come from self, genes after it from other; a parent missing a key
        is covered by the other one.

        Args:
            other: Second parent
            rng: numpy Generator

        Returns:
            Child genome
        """
        keys = sorted(set(self.genes) | set(other.genes))
        num_genes = len(keys)
        if num_genes < 3:
            return self.copy()

        cross_index = int(rng.integers(1, num_genes - 1))

        genes = {}
        for key in keys[:cross_index]:
            gene = self.genes.get(key) or other.genes[key]
            genes[key] = Gene(gene.value)
        for key in keys[cross_index:]:
            gene = other.genes.get(key) or self.genes[key]
            genes[key] = Gene(gene.value)

        return Genome(genes)

    def mutate(
        self,
        num_mutations: int,
        probability: float,
        rng: np.random.Generator,
        scale: float = 0.1
    ) -> int:
        """
        Perturb genes in place.

        Picks num_mutations distinct genes; each one mutates with the given
        probability by adding N(0, scale * max(|value|, 1)).

        Returns:
            Number of genes changed
        """
        if not self.genes or num_mutations <= 0 or probability <= 0.0:
            return 0

        keys = self.keys()
        count = min(num_mutations, len(keys))
        chosen = rng.choice(len(keys), size=count, replace=False)

        changed = 0
        for index in sorted(int(i) for i in chosen):
            if rng.random() >= probability:
                continue
            gene = self.genes[keys[index]]
            sigma = scale * max(abs(gene.value), 1.0)
            gene.value = float(gene.value + rng.normal(0.0, sigma))
            changed += 1

        return changed

    def to_dict(self) -> Dict[str, float]:
        return {key: float(gene.value) for key, gene in self.genes.items()}

    @classmethod
    def from_dict(cls, data: Dict[str, float]) -> 'Genome':
        return cls({str(key): Gene(float(value)) for key, value in data.items()})


class GenomeBuilder:
    """
    Collects genes while an object walks its heritable fields.

    Nested builders share the same store and only extend the path.
    """

    def __init__(self, path: Optional[str] = None, genes: Optional[Dict[str, Gene]] = None):
        self.path = path
        self._genes: Dict[str, Gene] = {} if genes is None else genes

    def nested(self, name: str) -> 'GenomeBuilder':
        return GenomeBuilder(gene_id(self.path, name), self._genes)

    def add(self, name: str, gene: Gene):
        self._genes[gene_id(self.path, name)] = gene

    def add_value(self, name: str, value: float):
        self.add(name, Gene(float(value)))

    def add_vector(self, name: str, vector: np.ndarray):
        nested = self.nested(name)
        for index, value in enumerate(np.asarray(vector).ravel()):
            nested.add_value(index_name(index), value)

    def add_matrix(self, name: str, matrix: np.ndarray):
        nested = self.nested(name)
        for row_index, row in enumerate(np.asarray(matrix)):
            row_builder = nested.nested(index_name(row_index))
            for col_index, value in enumerate(row):
                row_builder.add_value(index_name(col_index), value)

    def build(self) -> Genome:
        return Genome(dict(self._genes))


class GenomeReader:
    """Path-aware view used by apply_genome() to read values back."""

    def __init__(self, genome: Genome, path: Optional[str] = None):
        self.genome = genome
        self.path = path

    def nested(self, name: str) -> 'GenomeReader':
        return GenomeReader(self.genome, gene_id(self.path, name))

    def value(self, name: str, default: float) -> float:
        gene = self.genome.get(self.path, name)
        return default if gene is None else gene.value

    def vector(self, name: str, current: np.ndarray) -> np.ndarray:
        """Return a copy of current with any genes present overlaid."""
        result = np.array(current, dtype=np.float64)
        nested = self.nested(name)
        for index in range(result.size):
            result.flat[index] = nested.value(index_name(index), result.flat[index])
        return result

    def matrix(self, name: str, current: np.ndarray) -> np.ndarray:
        result = np.array(current, dtype=np.float64)
        nested = self.nested(name)
        rows, cols = result.shape
        for row_index in range(rows):
            row_reader = nested.nested(index_name(row_index))
            for col_index in range(cols):
                result[row_index, col_index] = row_reader.value(
                    index_name(col_index), result[row_index, col_index]
                )
        return result


def build_genome_of(obj) -> Genome:
    """Build the genome of any object exposing build_genome(builder)."""
    builder = GenomeBuilder()
    obj.build_genome(builder)
    return builder.build()
