"""
Перспективная проекция и маппинг во viewport (пиксельные координаты).

1) Перспективное деление: x' = (x / -z) * n,  y' = (y / -z) * n
2) Viewport: x'' = ((x' - l) / (r - l)) * width,  y'' = ((y' - b) / (t - b)) * height
3) z не меняется: это исходная глубина в пространстве камеры, ключ для Z-теста.

Отсечения нет: вершины с z >= 0 (за камерой или в её плоскости) не
отбрасываются, при z == 0 получаются inf/nan — их «съедают» проверки растеризатора.
"""
from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from geometry import Triangle, Vec3


@dataclass(frozen=True)
class Frustum:
    """Пирамида видимости: границы l, r, b, t на ближней плоскости и расстояние n.

    far хранится, но в формулах проекции не участвует (клиппинга нет).
    """
    left: float = -0.1
    right: float = 0.1
    bottom: float = -0.1
    top: float = 0.1
    near: float = -0.1
    far: float = -1000.0

    def validate(self):
        if self.right == self.left:
            raise ValueError("Frustum: left и right совпадают")
        if self.top == self.bottom:
            raise ValueError("Frustum: bottom и top совпадают")
        return self


def triangles_to_array(triangles) -> np.ndarray:
    """Список треугольников -> массив (N, 3, 3): [треугольник, вершина, xyz]."""
    triangles = list(triangles)
    if not triangles:
        return np.zeros((0, 3, 3), dtype=float)
    return np.array([t.vertices for t in triangles], dtype=float)


def array_to_triangles(arr) -> list:
    return [Triangle(*(Vec3(*map(float, v)) for v in tri)) for tri in arr]


def project_array(V, frustum: Frustum, width, height):
    """Проецирует массив вершин (..., 3) и возвращает новый массив той же формы."""
    V = np.asarray(V, dtype=float)
    l, r, b, t, n = frustum.left, frustum.right, frustum.bottom, frustum.top, frustum.near
    x, y, z = V[..., 0], V[..., 1], V[..., 2]

    with np.errstate(divide='ignore', invalid='ignore'):
        # Перспективное деление
        xp = (x / -z) * n
        yp = (y / -z) * n

        # Маппинг во viewport
        xs = ((xp - l) / (r - l)) * width
        ys = ((yp - b) / (t - b)) * height
    return np.stack([xs, ys, z], axis=-1)


def project_vertex(v, frustum: Frustum, width, height) -> Vec3:
    """Проецирует одну вершину."""
    x, y, z = project_array(np.asarray(v, dtype=float), frustum, width, height)
    return Vec3(float(x), float(y), float(z))


def project_triangle(tri: Triangle, frustum: Frustum, width, height) -> Triangle:
    return Triangle(*(project_vertex(v, frustum, width, height) for v in tri.vertices))


def project_triangles(triangles, frustum: Frustum, width, height) -> list:
    """Проецирует все треугольники; исходный список не изменяется, ни один треугольник не отбрасывается."""
    frustum.validate()
    return array_to_triangles(project_array(triangles_to_array(triangles), frustum, width, height))


def count_behind_camera(triangles) -> int:
    """Сколько треугольников (в пространстве камеры) имеют вершину с z >= 0."""
    arr = triangles_to_array(triangles)
    return int(np.count_nonzero((arr[..., 2] >= 0).any(axis=1)))
