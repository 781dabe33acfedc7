"""
Seeded random streams for the V-Life simulation.

Every consumer draws from its own numpy Generator(PCG64) whose seed is
derived from a tuple of labels such as (world_seed, "cell", cell_id).
Streams are independent of creation order, so adding a consumer never
shifts the numbers seen by another one.
"""

import hashlib
import numpy as np
from typing import Any, Sequence


def make_seed(*components: Any) -> int:
    """
    Derive a 64-bit seed from labels.

    The labels are joined with ':' and hashed with SHA-256; the first eight
    bytes (big-endian) become the seed.

    Example:
        make_seed(42, "cell", 7)  # seed of the rng used by cell 7
    """
    label = ":".join(str(c) for c in components)
    digest = hashlib.sha256(label.encode('utf-8')).digest()
    return int.from_bytes(digest[:8], byteorder='big')


def make_rng(*components: Any) -> np.random.Generator:
    """
    Build a PCG64 generator seeded from hierarchical components.

    Args:
        *components: Seed components, see make_seed()

    Returns:
        numpy Generator
    """
    return np.random.Generator(np.random.PCG64(make_seed(*components)))


def random_position_in_box(rng: np.random.Generator, size: Sequence[float], margin: float = 0.0) -> np.ndarray:
    """
    Generate random position uniformly distributed within an axis-aligned box.

    The box spans [0, size] on every axis, shrunk by margin on each side.
    Axes narrower than two margins collapse to their centre.

    Args:
        rng: numpy Generator
        size: Box size [w, h]
        margin: Distance kept from every wall

    Returns:
        Random position as numpy array [x, y]
    """
    size = np.asarray(size, dtype=np.float64)
    low = np.full_like(size, margin)
    high = size - margin

    # Degenerate axes: use the centre
    collapsed = high <= low
    low = np.where(collapsed, 0.5 * size, low)
    high = np.where(collapsed, 0.5 * size, high)

    return low + rng.random(len(size)) * (high - low)
