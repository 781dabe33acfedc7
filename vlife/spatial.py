"""
Plane vector helpers shared by the physics world and the cells.

Angles follow screen coordinates: y points down, so a positive angle
turns clockwise on screen.
"""

import math
import numpy as np
from typing import Tuple

TWO_PI = 2.0 * math.pi


def distance_2d(pos_a: np.ndarray, pos_b: np.ndarray) -> float:
    """Euclidean distance between two points [x, y]."""
    return math.hypot(float(pos_a[0]) - float(pos_b[0]), float(pos_a[1]) - float(pos_b[1]))


def normalize(vec: np.ndarray) -> Tuple[np.ndarray, float]:
    """
    Split a vector into direction and length.

    A (near) zero vector yields the x axis and length 0.
    """
    vec = np.asarray(vec, dtype=np.float64)
    length = math.hypot(vec[0], vec[1])
    if length < 1e-12:
        return np.array([1.0, 0.0], dtype=np.float64), 0.0
    return vec / length, length


def clamp_speed(velocity: np.ndarray, max_speed: float) -> np.ndarray:
    """Velocity scaled down to max_speed when faster, otherwise unchanged."""
    direction, speed = normalize(velocity)
    if speed <= max_speed:
        return velocity
    return direction * max_speed


def wrap_angle(angle: float) -> float:
    """Wrap angle (radians) into [0, 2*pi)."""
    wrapped = math.fmod(angle, TWO_PI)
    if wrapped < 0.0:
        wrapped += TWO_PI
    return wrapped


def direction_vector(angle: float, magnitude: float = 1.0) -> np.ndarray:
    """
    Rotate the x axis by -angle and scale it.

    Angles grow clockwise in screen coordinates (y pointing down).

    Args:
        angle: Direction in radians
        magnitude: Length of the resulting vector

    Returns:
        [cos(angle), -sin(angle)] * magnitude
    """
    return np.array([math.cos(angle), -math.sin(angle)], dtype=np.float64) * magnitude
