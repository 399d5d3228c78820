import pytest
from shapely import affinity
from shapely.geometry import LineString, Polygon

from valorizacao.geo.metrics import (area_m2, bounding_box, buffer_m, centroid,
                                     nearest_point_on_line,
                                     point_to_line_distance_m)


def test_area_is_positive_and_in_square_meters(rect):
    a = area_m2(rect)
    # ~306 m x ~199 m
    assert a == pytest.approx(61_000, rel=0.02)
    assert area_m2(Polygon(list(rect.exterior.coords)[::-1])) == pytest.approx(a)


def test_area_scales_quadratically(rect):
    c = rect.centroid
    doubled = affinity.scale(rect, xfact=2.0, yfact=2.0, origin=c)
    assert area_m2(doubled) == pytest.approx(4 * area_m2(rect), rel=1e-3)


def test_area_ignores_holes():
    shell = [(0, 0), (0.01, 0), (0.01, 0.01), (0, 0.01), (0, 0)]
    hole = [(0.004, 0.004), (0.006, 0.004), (0.006, 0.006), (0.004, 0.006), (0.004, 0.004)]
    assert area_m2(Polygon(shell, [hole])) == pytest.approx(area_m2(Polygon(shell)))


def test_area_of_nothing_is_zero():
    assert area_m2(None) == 0.0
    assert area_m2(Polygon()) == 0.0


def test_bounding_box_order(rect):
    assert bounding_box(rect) == pytest.approx((-46.6340, -23.5510, -46.6310, -23.5492))
    assert bounding_box(None) is None


def test_buffer_grows_monotonically(rect):
    areas = [area_m2(buffer_m(rect, r)) for r in (0, 10, 100, 300)]
    assert areas == sorted(areas)
    assert areas[0] == pytest.approx(area_m2(rect), rel=1e-6)
    assert areas[-1] > areas[0]


def test_buffer_distance_is_in_meters(rect):
    buffered = buffer_m(rect, 100)
    minx, miny, _, _ = buffered.bounds
    # 100 m ao sul do lado sul
    assert point_to_line_distance_m((-46.6325, miny), LineString(
        [(-46.6340, -23.5510), (-46.6310, -23.5510)])) == pytest.approx(100, rel=1e-2)
    assert minx < -46.6340


@pytest.mark.parametrize("radius", [-1, float("nan"), "abc", None])
def test_buffer_invalid_radius_returns_none(rect, radius):
    assert buffer_m(rect, radius) is None


def test_buffer_of_nothing_returns_none():
    assert buffer_m(None, 10) is None
    assert buffer_m(Polygon(), 10) is None


def test_point_to_line_uses_segment_interior():
    line = LineString([(0.001, -0.001), (0.001, 0.001)])
    d = point_to_line_distance_m((0.0, 0.0), line)
    # 0.001° de longitude no equador ~ 111.3 m; o vértice mais próximo estaria a ~157 m
    assert d == pytest.approx(111.32, rel=1e-2)


def test_nearest_point_on_line():
    line = LineString([(0.001, -0.001), (0.001, 0.001)])
    (lon, lat), d = nearest_point_on_line((0.0, 0.0), line)
    assert lon == pytest.approx(0.001, abs=1e-7)
    assert lat == pytest.approx(0.0, abs=1e-7)
    assert d == pytest.approx(point_to_line_distance_m((0.0, 0.0), line))


def test_centroid(unit_square):
    assert centroid(unit_square) == pytest.approx((0.5, 0.5))
