"""
Источник геометрии для растеризатора: треугольники в пространстве камеры.

Камера находится в начале координат и смотрит вдоль -Z (правая система).
Все типы неизменяемые: стадии конвейера возвращают новые коллекции, а не
правят вершины на месте, поэтому одну и ту же геометрию можно
перепроецировать с другими параметрами камеры.

Генераторы:
- uv_sphere — UV-сфера (полосы по широте × сектора по долготе);
- quad — четырёхугольник, разбитый на два треугольника;
- load_obj — треугольники из OBJ файла (многоугольники разбиваются «веером»).
"""
from __future__ import annotations

from dataclasses import dataclass
from math import cos, sin, pi
from typing import NamedTuple


class Vec3(NamedTuple):
    """Точка (x, y, z). До проекции — пространство камеры, после — пиксели + исходная z."""
    x: float
    y: float
    z: float


@dataclass(frozen=True)
class Triangle:
    """Треугольник из трёх вершин. Порядок вершин влияет только на знак знаменателя."""
    v0: Vec3
    v1: Vec3
    v2: Vec3

    @property
    def vertices(self):
        return (self.v0, self.v1, self.v2)


# --------------------
# Конфигурация сферы
# --------------------

@dataclass
class SphereConfig:
    """Параметры тесселяции UV-сферы.

    stacks: число полос по широте φ ∈ [0, π]
    slices: число секторов по долготе θ ∈ [0, 2π)
    radius: радиус сферы
    z_offset: смещение по Z, чтобы сфера оказалась перед камерой (z < 0)
    """
    stacks: int = 20
    slices: int = 40
    radius: float = 2.0
    z_offset: float = -7.0

    def validate(self):
        if int(self.stacks) != self.stacks or self.stacks <= 0:
            raise ValueError(f"stacks должно быть целым > 0, получено {self.stacks!r}")
        if int(self.slices) != self.slices or self.slices <= 0:
            raise ValueError(f"slices должно быть целым > 0, получено {self.slices!r}")
        if not self.radius > 0:
            raise ValueError(f"radius должен быть > 0, получено {self.radius!r}")
        return self


def sphere_point(radius, phi, theta, z_offset=0.0):
    """Точка сферы по сферическим координатам (φ от +Z, θ от +X)."""
    return Vec3(
        radius * sin(phi) * cos(theta),
        radius * sin(phi) * sin(theta),
        radius * cos(phi) + z_offset,
    )


def uv_sphere(config: SphereConfig | None = None, triangles: list | None = None) -> list:
    """Тесселирует сферу в список треугольников.

    Для каждой пары (полоса i, сектор j) берутся углы патча
    v0=(φ1,θ1), v1=(φ2,θ1), v2=(φ2,θ2), v3=(φ1,θ2) и добавляются
    треугольники (v0, v1, v2) и (v0, v2, v3). Итого 2·stacks·slices штук.

    Если передан список triangles — треугольники дописываются в его конец,
    существующие элементы не трогаются.
    """
    config = (config or SphereConfig()).validate()
    out = triangles if triangles is not None else []
    r, dz = config.radius, config.z_offset
    for i in range(config.stacks):
        phi1 = pi * i / config.stacks
        phi2 = pi * (i + 1) / config.stacks
        for j in range(config.slices):
            theta1 = 2 * pi * j / config.slices
            theta2 = 2 * pi * (j + 1) / config.slices

            v0 = sphere_point(r, phi1, theta1, dz)
            v1 = sphere_point(r, phi2, theta1, dz)
            v2 = sphere_point(r, phi2, theta2, dz)
            v3 = sphere_point(r, phi1, theta2, dz)

            out.append(Triangle(v0, v1, v2))
            out.append(Triangle(v0, v2, v3))
    return out


def quad(corners) -> list:
    """Четырёхугольник c0..c3 -> [(c0, c1, c2), (c0, c2, c3)]."""
    if len(corners) != 4:
        raise ValueError(f"Четырёхугольник задаётся 4 вершинами, получено {len(corners)}")
    c0, c1, c2, c3 = (Vec3(*map(float, c)) for c in corners)
    return [Triangle(c0, c1, c2), Triangle(c0, c2, c3)]


# --------------------
# OBJ файлы
# --------------------

def fan_triangulate(indices):
    """Разбивает многоугольник (список индексов) на треугольники «веером» от первой вершины."""
    return [(indices[0], indices[i], indices[i + 1]) for i in range(1, len(indices) - 1)]


def load_obj(filename) -> list:
    """Загружает треугольники из OBJ файла.

    Поддерживаются записи 'v' и 'f' (формат вершины грани v, v/vt, v/vt/vn, v//vn),
    индексы 1-based; отрицательные индексы считаются от конца списка вершин.
    Остальные записи игнорируются. Некорректный файл -> ValueError.
    """
    vertices = []
    faces = []

    with open(filename, 'r') as file:
        for lineno, line in enumerate(file, start=1):
            line = line.strip()
            if not line or line.startswith('#'):
                continue

            parts = line.split()
            try:
                if parts[0] == 'v':  # вершина
                    if len(parts) < 4:
                        raise ValueError("у вершины меньше трёх координат")
                    vertices.append(Vec3(float(parts[1]), float(parts[2]), float(parts[3])))

                elif parts[0] == 'f':  # грань
                    face = []
                    for part in parts[1:]:
                        # Обработка формата vertex/texture/normal
                        index = int(part.split('/')[0])
                        face.append(index - 1 if index > 0 else len(vertices) + index)
                    if len(face) >= 3:
                        faces.append(face)
            except ValueError as e:
                raise ValueError(f"{filename}:{lineno}: некорректная запись {line!r}: {e}") from e

    triangles = []
    for face in faces:
        if not all(0 <= i < len(vertices) for i in face):
            raise ValueError(f"{filename}: грань {face} ссылается на несуществующую вершину")
        for i0, i1, i2 in fan_triangulate(face):
            triangles.append(Triangle(vertices[i0], vertices[i1], vertices[i2]))
    return triangles
