"""
Geometry helper utilities for collision detection in the plane.

This module provides small, focused types and functions with no simulation
state. All helpers operate on float64 numpy arrays of shape (2,).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional

import numpy as np


def closest_point_on_segment(p: np.ndarray, a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """
    Return the closest point on the line segment AB to point P.

    Handles degenerate segments (A == B) by returning A.
    """
    p = np.asarray(p, dtype=np.float64)
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)

    ab = b - a
    denom = float(np.dot(ab, ab))
    if denom == 0.0:
        return a.copy()

    t = float(np.dot(p - a, ab)) / denom
    t = 0.0 if t < 0.0 else (1.0 if t > 1.0 else t)
    return a + t * ab


def point_to_segment_distance(p: np.ndarray, a: np.ndarray, b: np.ndarray) -> float:
    """Euclidean distance from point P to the line segment AB."""
    c = closest_point_on_segment(p, a, b)
    return float(np.linalg.norm(np.asarray(p, dtype=np.float64) - c))


@dataclass
class AxisAlignedBoundingBox:
    """Axis-aligned box stored as centre and full size."""
    center: np.ndarray = field(default_factory=lambda: np.zeros(2))
    size: np.ndarray = field(default_factory=lambda: np.zeros(2))

    def __post_init__(self):
        self.center = np.asarray(self.center, dtype=np.float64)
        self.size = np.asarray(self.size, dtype=np.float64)

    @classmethod
    def empty(cls) -> 'AxisAlignedBoundingBox':
        return cls()

    @classmethod
    def from_min_max(cls, min_point: np.ndarray, max_point: np.ndarray) -> 'AxisAlignedBoundingBox':
        min_point = np.asarray(min_point, dtype=np.float64)
        max_point = np.asarray(max_point, dtype=np.float64)
        return cls(center=0.5 * (min_point + max_point), size=max_point - min_point)

    @classmethod
    def from_points(cls, points: Iterable[np.ndarray]) -> 'AxisAlignedBoundingBox':
        """Tightest box around points (zero box at the origin when empty)."""
        array = np.asarray(list(points), dtype=np.float64)
        if len(array) == 0:
            return cls.empty()
        return cls.from_min_max(array.min(axis=0), array.max(axis=0))

    @property
    def min(self) -> np.ndarray:
        return self.center - 0.5 * self.size

    @property
    def max(self) -> np.ndarray:
        return self.center + 0.5 * self.size

    def intersects(self, other: 'AxisAlignedBoundingBox') -> bool:
        """Strict overlap test (touching boxes do not intersect)."""
        two_times_distance = np.abs(other.center - self.center) * 2.0
        total_size = other.size + self.size
        return bool(np.all(two_times_distance < total_size))

    def contains_point(self, point: np.ndarray) -> bool:
        """Inclusive containment test."""
        point = np.asarray(point, dtype=np.float64)
        return bool(np.all(point >= self.min) and np.all(point <= self.max))


@dataclass
class ClosestSegment:
    """Polygon edge closest to a probe point"""
    index1: int
    index2: int
    point1: np.ndarray
    point2: np.ndarray
    depth: float   # Perpendicular distance from the probe point to the edge
    ratio: float   # Projection of the probe point along point1 -> point2, in [0, 1]


class ClosedPolygon:
    """
    Closed polygon over an ordered list of vertices.

    The edge from the last vertex back to the first is implied. Vertex
    order is preserved so edges can be mapped back to particle handles.
    """

    def __init__(self, points: Optional[Iterable[np.ndarray]] = None):
        self._points: np.ndarray = np.empty((0, 2), dtype=np.float64)
        self._bounding_box = AxisAlignedBoundingBox.empty()
        if points is not None:
            self.update(points)

    @classmethod
    def empty(cls) -> 'ClosedPolygon':
        return cls()

    def update(self, points: Iterable[np.ndarray]):
        """Replace vertices and refresh the bounding box."""
        array = np.asarray(list(points), dtype=np.float64)
        self._points = array.reshape(-1, 2)
        self._bounding_box = AxisAlignedBoundingBox.from_points(self._points)

    def points(self) -> np.ndarray:
        return self._points

    def bounding_box(self) -> AxisAlignedBoundingBox:
        return self._bounding_box

    def __len__(self) -> int:
        return len(self._points)

    def has_point_inside(self, point: np.ndarray) -> bool:
        """Even-odd ray casting towards +x."""
        px, py = float(point[0]), float(point[1])
        inside = False
        n = len(self._points)
        for i in range(n):
            ax, ay = self._points[i]
            bx, by = self._points[(i + 1) % n]
            if (py < ay) != (py < by):
                x_cross = ax + (py - ay) / (by - ay) * (bx - ax)
                if px < x_cross:
                    inside = not inside
        return inside

    def closest_segment_within_bounding_box(
        self,
        point: np.ndarray,
        bounding_box: AxisAlignedBoundingBox
    ) -> Optional[ClosestSegment]:
        """
        Find the edge closest to point among edges near bounding_box.

        Only edges with at least one endpoint inside bounding_box and onto
        which the point projects (ratio in [0, 1]) are candidates. Ties keep
        the lowest edge index.

        Args:
            point: Probe point [x, y]
            bounding_box: Region of interest (usually the other body's box)

        Returns:
            ClosestSegment, or None when no edge qualifies
        """
        point = np.asarray(point, dtype=np.float64)
        closest = None
        n = len(self._points)
        for index1 in range(n):
            index2 = (index1 + 1) % n
            point1 = self._points[index1]
            point2 = self._points[index2]
            if not (bounding_box.contains_point(point1) or bounding_box.contains_point(point2)):
                continue

            candidate = _distance_to_segment(point, point1, point2)
            if candidate is None:
                continue

            depth, ratio = candidate
            if closest is None or depth < closest.depth:
                closest = ClosestSegment(
                    index1=index1,
                    index2=index2,
                    point1=point1.copy(),
                    point2=point2.copy(),
                    depth=depth,
                    ratio=ratio
                )

        return closest


def _distance_to_segment(point: np.ndarray, a: np.ndarray, b: np.ndarray):
    """
    Perpendicular distance from point to segment AB, with projection ratio.

    Returns (distance, ratio), or None when the projection falls outside
    the segment or the segment is degenerate.
    """
    ab = b - a
    length_sq = float(np.dot(ab, ab))
    if length_sq == 0.0:
        return None

    ratio = float(np.dot(point - a, ab)) / length_sq
    if ratio < 0.0 or ratio > 1.0:
        return None

    cross = ab[0] * (a[1] - point[1]) - (a[0] - point[0]) * ab[1]
    distance = abs(float(cross)) / float(np.sqrt(length_sq))
    return distance, ratio


def polygon_area(points: List[np.ndarray]) -> float:
    """Signed shoelace area (positive for counter-clockwise vertex order)."""
    array = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    if len(array) < 3:
        return 0.0
    x = array[:, 0]
    y = array[:, 1]
    return 0.5 * float(np.dot(x, np.roll(y, -1)) - np.dot(y, np.roll(x, -1)))
