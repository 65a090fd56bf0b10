"""
Программный растеризатор треугольников с Z-буфером (NumPy).

Конвейер рендеринга (high-level):
- Геометрия — список треугольников в пространстве камеры (geometry.py).
- Проекция — перспективное деление и маппинг во viewport (projection.py);
  глубина z остаётся исходной координатой камеры, без нормализации.
- Растеризация — для каждого треугольника обходим пиксели его bounding box,
  считаем барицентрические координаты центра пикселя и выполняем Z-тест.
- Буферы кадра и глубины принадлежат объекту FrameStore, а не модулю.

Алгоритм Z-буфера (соответствие по коду):
1) FrameStore.clear: буфер цвета — чёрный, Z-буфер — +∞.
2) rasterize: треугольники обрабатываются в порядке выдачи генератора.
3) draw_triangle: bounding box [floor(min), ceil(max)], обрезанный по границам кадра.
4) барицентрические координаты центра пикселя (x+0.5, y+0.5); пиксель покрыт,
   если α, β, γ >= 0 (границы включительно — общие рёбра закрашиваются дважды).
5) z = α·z0 + β·z1 + γ·z2 — линейная интерполяция в экранном пространстве.
6) если z строго меньше Z-буфера — обновляем глубину и цвет вместе.
7) иначе пиксель не меняется (при равной глубине побеждает первый треугольник).

Ошибок нет — есть «тихая деградация»: вырожденный треугольник (знаменатель 0)
даёт inf/nan, сравнения с нулём ложны, и он не покрывает ни одного пикселя.
Количество таких треугольников только логируется.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from math import ceil, floor

import numpy as np

from geometry import SphereConfig, uv_sphere
from projection import Frustum, count_behind_camera, project_triangles

logger = logging.getLogger(__name__)

BLACK = (0, 0, 0)
WHITE = (255, 255, 255)


def clear_buffers(width, height):
    """Создаёт новые цветовой и Z-буферы заданного размера.

    Форматы:
    - color_buffer: (H, W, 3) uint8, RGB, чёрный
    - z_buffer: (H, W) float32, +inf, сравнение идёт на «меньше»
    """
    color_buffer = np.zeros((height, width, 3), dtype=np.uint8)
    z_buffer = np.full((height, width), np.inf, dtype=np.float32)
    return color_buffer, z_buffer


class FrameStore:
    """Буфер кадра и Z-буфер одного размера, индексация [y, x], строка 0 — первая."""

    def __init__(self, width, height):
        if int(width) <= 0 or int(height) <= 0:
            raise ValueError(f"Размер кадра должен быть положительным, получено {width}x{height}")
        self.width = int(width)
        self.height = int(height)
        self.color_buffer, self.z_buffer = clear_buffers(self.width, self.height)

    def clear(self):
        """Сбрасывает весь кадр: цвет -> чёрный, глубина -> +inf."""
        self.color_buffer[...] = BLACK
        self.z_buffer[...] = np.inf

    def rows(self):
        """Буфер цвета (H, W, 3) в порядке строк для внешнего отображения (без переворота)."""
        return self.color_buffer

    def to_ppm(self) -> bytes:
        """Кадр в бинарном формате PPM (P6): width*height троек RGB, строка 0 первой."""
        header = f'P6\n{self.width} {self.height}\n255\n'.encode()
        return header + self.color_buffer.tobytes()

    def save_ppm(self, filename):
        with open(filename, 'wb') as file:
            file.write(self.to_ppm())
        logger.info("Кадр %dx%d сохранён в %s", self.width, self.height, filename)


@dataclass
class RenderStats:
    """Диагностика одного прохода рендеринга."""
    triangles: int = 0
    degenerate: int = 0
    behind_camera: int = 0
    pixels_written: int = 0


def barycentric(p0, p1, p2, px, py):
    """Возвращает барицентрические координаты (α, β, γ) точки (px, py) в треугольнике (p0, p1, p2).

    den = (y1 - y2)(x0 - x2) + (x2 - x1)(y0 - y2), γ = 1 - α - β.
    px, py могут быть скалярами или массивами NumPy.
    При вырожденном треугольнике (den == 0) получаются inf/nan без исключения.
    """
    x0, y0 = float(p0[0]), float(p0[1])
    x1, y1 = float(p1[0]), float(p1[1])
    x2, y2 = float(p2[0]), float(p2[1])
    px = np.asarray(px, dtype=np.float64)
    py = np.asarray(py, dtype=np.float64)

    den = np.float64((y1 - y2) * (x0 - x2) + (x2 - x1) * (y0 - y2))
    with np.errstate(divide='ignore', invalid='ignore'):
        alpha = ((y1 - y2) * (px - x2) + (x2 - x1) * (py - y2)) / den
        beta = ((y2 - y0) * (px - x2) + (x0 - x2) * (py - y2)) / den
        gamma = 1.0 - alpha - beta
    return alpha, beta, gamma


def is_degenerate(tri) -> bool:
    """Треугольник вырожден в экранном пространстве (нулевая площадь или нечисловые координаты)."""
    v0, v1, v2 = tri.vertices
    coords = np.array([v0.x, v0.y, v1.x, v1.y, v2.x, v2.y], dtype=np.float64)
    if not np.isfinite(coords).all():
        return True
    den = (v1.y - v2.y) * (v0.x - v2.x) + (v2.x - v1.x) * (v0.y - v2.y)
    return den == 0


def flat_shader(color=WHITE):
    """Шейдер с постоянным цветом.

    Контракт шейдера: shader(triangle, alpha, beta, gamma) -> цвет, где веса —
    массивы по закрашиваемым пикселям, а результат — RGB тройка или массив (k, 3).
    """
    rgb = np.asarray(color, dtype=np.uint8)

    def shade(tri, alpha, beta, gamma):
        return rgb
    return shade


def draw_triangle(tri, frame: FrameStore, shader=None) -> int:
    """Растеризует один спроецированный треугольник в frame. Возвращает число записанных пикселей."""
    shader = shader or flat_shader()
    v0, v1, v2 = tri.vertices
    xs = (v0.x, v1.x, v2.x)
    ys = (v0.y, v1.y, v2.y)
    # inf/nan после проекции: bounding box не определён, пикселей нет
    if not np.isfinite(xs + ys).all():
        return 0

    # Bounding box, обрезанный по кадру
    min_x = max(int(floor(min(xs))), 0)
    max_x = min(int(ceil(max(xs))), frame.width - 1)
    min_y = max(int(floor(min(ys))), 0)
    max_y = min(int(ceil(max(ys))), frame.height - 1)
    if min_x > max_x or min_y > max_y:
        return 0

    # Центры пикселей bounding box
    cx, cy = np.meshgrid(np.arange(min_x, max_x + 1) + 0.5, np.arange(min_y, max_y + 1) + 0.5)
    alpha, beta, gamma = barycentric(v0, v1, v2, cx, cy)
    covered = (alpha >= 0) & (beta >= 0) & (gamma >= 0)
    if not covered.any():
        return 0

    rows, cols = np.nonzero(covered)
    py = rows + min_y
    px = cols + min_x
    a, b, g = alpha[covered], beta[covered], gamma[covered]
    z = (a * v0.z + b * v1.z + g * v2.z).astype(np.float32)

    # Z-тест: строго ближе
    passed = z < frame.z_buffer[py, px]
    if not passed.any():
        return 0
    py, px = py[passed], px[passed]
    frame.z_buffer[py, px] = z[passed]
    frame.color_buffer[py, px] = shader(tri, a[passed], b[passed], g[passed])
    return int(passed.sum())


def rasterize(triangles, frame: FrameStore, shader=None) -> RenderStats:
    """Растеризует треугольники в порядке следования; буферы не очищаются."""
    triangles = list(triangles)
    shader = shader or flat_shader()
    stats = RenderStats(triangles=len(triangles))
    for tri in triangles:
        if is_degenerate(tri):
            stats.degenerate += 1
        stats.pixels_written += draw_triangle(tri, frame, shader)
    return stats


def render(triangles, width, height, frustum: Frustum | None = None, shader=None,
           frame: FrameStore | None = None):
    """Полный проход: очистка -> проекция -> растеризация.

    triangles — любая конечная последовательность или итератор; исходные
    треугольники (в пространстве камеры) не изменяются.
    Если передан frame, он переиспользуется (размеры должны совпадать).
    Возвращает (frame, stats).
    """
    triangles = list(triangles)
    frustum = (frustum or Frustum()).validate()
    if frame is None:
        frame = FrameStore(width, height)
    elif (frame.width, frame.height) != (width, height):
        raise ValueError(
            f"Размер FrameStore {frame.width}x{frame.height} не совпадает с {width}x{height}"
        )
    frame.clear()

    behind = count_behind_camera(triangles)
    projected = project_triangles(triangles, frustum, width, height)
    stats = rasterize(projected, frame, shader)
    stats.behind_camera = behind

    if behind:
        logger.warning("%d из %d треугольников имеют вершины за камерой (z >= 0)",
                       behind, stats.triangles)
    logger.info("Проход %dx%d: треугольников %d, вырожденных %d, пикселей записано %d",
                width, height, stats.triangles, stats.degenerate, stats.pixels_written)
    return frame, stats


def render_scene(sphere: SphereConfig | None = None, frustum: Frustum | None = None,
                 width=512, height=512, color=WHITE, frame: FrameStore | None = None):
    """Исходная сцена: белая UV-сфера перед камерой."""
    triangles = uv_sphere(sphere)
    return render(triangles, width, height, frustum, shader=flat_shader(color), frame=frame)
