import math

import pytest
from shapely.geometry import LineString

from valorizacao.geo.grid import generate_grid
from valorizacao.geo.valuation import ramp_color, summarize, valuate


def _rgb(hex_color):
    return tuple(int(hex_color[i:i + 2], 16) for i in (1, 3, 5))


@pytest.fixture
def cells(rect):
    return generate_grid(rect, 50)


def test_linear_values_in_range(cells, south_road):
    valued = valuate(cells, south_road, "linear")
    assert len(valued) == len(cells)
    assert all(0.0 <= v.value <= 1.0 for v in valued)


def test_linear_closest_is_max_and_farthest_is_zero(cells, south_road):
    valued = valuate(cells, south_road, "linear")
    closest = min(valued, key=lambda v: v.distance_m)
    farthest = max(valued, key=lambda v: v.distance_m)
    assert closest.value == max(v.value for v in valued)
    assert farthest.value == 0.0


def test_same_order_as_input(cells, south_road):
    valued = valuate(cells, south_road, "linear")
    assert [v.cell for v in valued] == cells


def test_exponential_strictly_decreasing(cells, south_road):
    valued = sorted(valuate(cells, south_road, "exponential", decay_k=0.01),
                    key=lambda v: v.distance_m)
    for a, b in zip(valued, valued[1:]):
        if b.distance_m - a.distance_m > 1e-6:
            assert b.value < a.value
    d = valued[0].distance_m
    assert valued[0].value == pytest.approx(math.exp(-0.01 * d))


def test_max_distance_override(cells, south_road):
    valued = valuate(cells, south_road, "linear", max_distance_override=100)
    for v in valued:
        assert v.value == pytest.approx(max(0.0, 1 - v.distance_m / 100))
    assert any(v.value == 0.0 for v in valued)


def test_max_distance_floor_of_one_meter(rect):
    # via curta passando pelo centróide: distância < 1 m, então max_dist = 1
    c = rect.centroid
    road = LineString([(c.x - 1e-5, c.y), (c.x + 1e-5, c.y)])
    valued = valuate([rect], road, "linear")
    d = valued[0].distance_m
    assert d < 1.0
    assert valued[0].value == pytest.approx(1.0 - d)
    assert valued[0].value > 0.9


def test_negative_override_is_used(cells, south_road):
    valued = valuate(cells, south_road, "linear", max_distance_override=-100)
    for v in valued:
        assert v.value == pytest.approx(1 + v.distance_m / 100)


def test_zero_override_falls_back_to_observed_max(cells, south_road):
    valued = valuate(cells, south_road, "linear", max_distance_override=0)
    assert max(valued, key=lambda v: v.distance_m).value == 0.0


def test_negative_decay_k_stays_finite(cells, south_road):
    valued = valuate(cells, south_road, "exponential", decay_k=-5.0)
    assert all(math.isfinite(v.value) for v in valued)
    closest = min(valued, key=lambda v: v.distance_m)
    farthest = max(valued, key=lambda v: v.distance_m)
    assert farthest.value >= closest.value >= 1.0
    assert farthest.value == pytest.approx(math.exp(709.0))
    assert math.isfinite(summarize(valued)["max_value"])


def test_huge_decay_k_gives_zero(cells, south_road):
    valued = valuate(cells, south_road, "exponential", decay_k=1e6)
    assert all(v.value == 0.0 for v in valued)


def test_single_cell_linear_value_is_zero(unit_square):
    # única célula: distance == max_dist, então 1 - 1 = 0
    cells = generate_grid(unit_square, 200_000)
    valued = valuate(cells, LineString([(2, 0), (2, 1)]), "linear")
    assert len(valued) == 1
    assert valued[0].value == 0.0
    assert valued[0].distance_m > 1


def test_colors_run_from_warm_to_cool(cells, south_road):
    valued = valuate(cells, south_road, "linear")
    closest = min(valued, key=lambda v: v.distance_m)
    farthest = max(valued, key=lambda v: v.distance_m)
    r0, _, b0 = _rgb(closest.color)
    r1, _, b1 = _rgb(farthest.color)
    assert r0 > b0
    assert b1 > r1


def test_ramp_endpoints_are_distinct():
    warm, cool = ramp_color(0.0), ramp_color(1.0)
    assert warm != cool
    assert _rgb(warm)[0] > _rgb(warm)[2]
    assert _rgb(cool)[2] > _rgb(cool)[0]
    # fora de [0, 1] é limitado às pontas
    assert ramp_color(-3) == warm
    assert ramp_color(7) == cool


def test_empty_inputs(south_road, cells):
    assert valuate([], south_road) == []
    assert valuate(cells, None) == []


def test_unknown_mode(cells, south_road):
    with pytest.raises(ValueError):
        valuate(cells, south_road, "quadratic")


def test_summary_and_feature(cells, south_road):
    valued = valuate(cells, south_road, "linear")
    stats = summarize(valued)
    assert stats["n_cells"] == len(cells)
    assert stats["min_value"] == 0.0
    assert stats["min_distance_m"] < stats["max_distance_m"]
    feat = valued[0].to_feature()
    assert feat["properties"]["tooltip"].startswith("Dist: ")
    assert feat["geometry"]["type"] == "Polygon"
    assert summarize([]) is None
