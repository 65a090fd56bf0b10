import numpy as np
import pytest

from geometry import Triangle, Vec3
from zbuffer import (
    FrameStore, barycentric, clear_buffers, draw_triangle, flat_shader, is_degenerate, rasterize,
)

RED = (255, 0, 0)
GREEN = (0, 255, 0)


def tri(*pts):
    return Triangle(*(Vec3(*map(float, p)) for p in pts))


def snapshot(frame):
    return frame.color_buffer.copy(), frame.z_buffer.copy()


def test_clear_buffers_shapes():
    color, depth = clear_buffers(5, 3)
    assert color.shape == (3, 5, 3) and color.dtype == np.uint8
    assert depth.shape == (3, 5)
    assert np.isposinf(depth).all()


def test_clear_resets_every_cell():
    frame = FrameStore(7, 4)
    frame.color_buffer[...] = 200
    frame.z_buffer[...] = -3.0
    frame.clear()
    assert (frame.color_buffer == 0).all()
    assert np.isposinf(frame.z_buffer).all()
    assert frame.color_buffer.shape[:2] == frame.z_buffer.shape


@pytest.mark.parametrize("size", [(0, 4), (4, 0), (-1, -1)])
def test_frame_store_rejects_empty(size):
    with pytest.raises(ValueError):
        FrameStore(*size)


def test_barycentric_containment():
    a, b, c = (0, 0, 1), (10, 0, 2), (0, 10, 3)
    alpha, beta, gamma = barycentric(a, b, c, 2.0, 2.0)
    for w in (alpha, beta, gamma):
        assert 0.0 <= w <= 1.0
    assert alpha + beta + gamma == pytest.approx(1.0)
    assert (alpha, beta, gamma) == pytest.approx((0.6, 0.2, 0.2))


def test_barycentric_degenerate_has_no_coverage():
    alpha, beta, gamma = barycentric((0, 0), (1, 0), (2, 0), 0.5, 0.0)
    assert not (alpha >= 0 and beta >= 0 and gamma >= 0)


def test_pixel_covered_and_depth_interpolated():
    frame = FrameStore(16, 16)
    written = draw_triangle(tri((0, 0, 1), (10, 0, 1), (0, 10, 1)), frame)
    assert written > 0
    assert frame.z_buffer[1, 1] == pytest.approx(1.0)
    assert tuple(frame.color_buffer[1, 1]) == (255, 255, 255)
    assert np.isposinf(frame.z_buffer[15, 15])


@pytest.mark.parametrize("near_first", [True, False])
def test_depth_order_independent(near_first):
    near = tri((0, 0, 1), (10, 0, 1), (0, 10, 1))
    far = tri((0, 0, 2), (10, 0, 2), (0, 10, 2))
    frame = FrameStore(12, 12)
    order = [(near, RED), (far, GREEN)] if near_first else [(far, GREEN), (near, RED)]
    for t, color in order:
        draw_triangle(t, frame, flat_shader(color))
    assert frame.z_buffer[2, 2] == pytest.approx(1.0)
    assert tuple(frame.color_buffer[2, 2]) == RED


def test_equal_depth_first_triangle_wins():
    frame = FrameStore(12, 12)
    t = tri((0, 0, 1), (10, 0, 1), (0, 10, 1))
    draw_triangle(t, frame, flat_shader(RED))
    assert draw_triangle(t, frame, flat_shader(GREEN)) == 0
    assert tuple(frame.color_buffer[2, 2]) == RED


def test_degenerate_triangle_leaves_buffers_unchanged():
    frame = FrameStore(8, 8)
    degenerate = tri((0, 0, 1), (1, 0, 1), (2, 0, 1))
    before = snapshot(frame)
    stats = rasterize([degenerate], frame)
    after = snapshot(frame)
    assert np.array_equal(before[0], after[0])
    assert np.array_equal(before[1], after[1])
    assert is_degenerate(degenerate)
    assert stats.degenerate == 1
    assert stats.pixels_written == 0


def test_non_finite_triangle_draws_nothing():
    frame = FrameStore(8, 8)
    nan = float('nan')
    inf = float('inf')
    assert draw_triangle(tri((nan, 0, 1), (4, 0, 1), (0, 4, 1)), frame) == 0
    assert draw_triangle(tri((inf, 0, 1), (4, 0, 1), (0, 4, 1)), frame) == 0
    assert np.isposinf(frame.z_buffer).all()


def test_bounding_box_clamped_to_frame():
    frame = FrameStore(8, 8)
    t = tri((-4, 2, 1), (4, 2, 1), (-4, 10, 1))
    draw_triangle(t, frame)

    ys, xs = np.mgrid[0:8, 0:8]
    cx, cy = xs + 0.5, ys + 0.5
    # полуплоскости: x >= -4, y >= 2, x + y <= 6
    expected = (cx >= -4) & (cy >= 2) & (cx + cy <= 6)
    assert np.array_equal(np.isfinite(frame.z_buffer), expected)


def test_triangle_outside_frame_writes_nothing():
    frame = FrameStore(8, 8)
    assert draw_triangle(tri((-10, -10, 1), (-5, -10, 1), (-10, -5, 1)), frame) == 0
    assert draw_triangle(tri((20, 20, 1), (30, 20, 1), (20, 30, 1)), frame) == 0
    assert np.isposinf(frame.z_buffer).all()
    assert (frame.color_buffer == 0).all()


def test_shared_edge_is_shaded_by_both_triangles():
    frame = FrameStore(4, 4)
    lower = tri((0, 0, 2), (4, 0, 2), (0, 4, 2))
    upper = tri((4, 0, 1), (4, 4, 1), (0, 4, 1))
    draw_triangle(lower, frame, flat_shader(RED))
    # центр (1.5, 2.5) лежит на общей диагонали x + y = 4
    assert frame.z_buffer[2, 1] == pytest.approx(2.0)
    draw_triangle(upper, frame, flat_shader(GREEN))
    assert frame.z_buffer[2, 1] == pytest.approx(1.0)
    assert tuple(frame.color_buffer[2, 1]) == GREEN


def test_shader_receives_barycentric_weights():
    seen = []

    def shader(t, alpha, beta, gamma):
        seen.append(alpha + beta + gamma)
        return np.stack([alpha * 255, beta * 255, gamma * 255], axis=-1)

    frame = FrameStore(16, 16)
    written = draw_triangle(tri((0, 0, 1), (10, 0, 1), (0, 10, 1)), frame, shader)
    assert len(seen) == 1 and len(seen[0]) == written
    assert np.allclose(seen[0], 1.0)
    # у вершины v0 (0, 0) преобладает α
    r, g, b = frame.color_buffer[0, 0]
    assert r > g and r > b


def test_rasterize_stats():
    frame = FrameStore(16, 16)
    tris = [tri((0, 0, 1), (10, 0, 1), (0, 10, 1)), tri((0, 0, 1), (1, 1, 1), (2, 2, 1))]
    stats = rasterize(tris, frame)
    assert stats.triangles == 2
    assert stats.degenerate == 1
    assert stats.pixels_written == int(np.isfinite(frame.z_buffer).sum())


def test_ppm_export(tmp_path):
    frame = FrameStore(3, 2)
    frame.color_buffer[0, 0] = RED
    data = frame.to_ppm()
    header = b'P6\n3 2\n255\n'
    assert data.startswith(header)
    assert len(data) == len(header) + 3 * 2 * 3
    assert data[len(header):len(header) + 3] == bytes(RED)

    path = tmp_path / "frame.ppm"
    frame.save_ppm(path)
    assert path.read_bytes() == data
