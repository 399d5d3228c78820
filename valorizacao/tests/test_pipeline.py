import pytest
from shapely.geometry import LineString, MultiPolygon, mapping

from valorizacao.geo.pipeline import GradientPipeline, compute_gradient


@pytest.fixture
def pipeline(rect, south_road):
    p = GradientPipeline(cell_size_m=50, buffer_m=300)
    p.set_boundary(rect)
    p.set_roads([LineString([(-46.70, -23.60), (-46.69, -23.60)]), south_road])
    return p


def test_stages_are_computed_and_cached(pipeline):
    grid = pipeline.grid
    assert pipeline.grid is grid
    assert pipeline.closest.road_index == 1
    assert len(pipeline.valued) == len(grid)
    assert pipeline.valued is pipeline.valued


def test_cell_size_change_keeps_upstream(pipeline):
    closest = pipeline.closest
    search = pipeline.search_area
    grid = pipeline.grid
    valued = pipeline.valued

    pipeline.set_cell_size_m(50)  # mesmo valor: nada é descartado
    assert pipeline.grid is grid

    pipeline.set_cell_size_m(25)
    assert pipeline.closest is closest
    assert pipeline.search_area is search
    assert pipeline.grid is not grid
    assert pipeline.valued is not valued
    assert len(pipeline.grid) > len(grid)


def test_valuation_change_only_redoes_valuation(pipeline):
    grid = pipeline.grid
    linear = pipeline.valued
    pipeline.set_valuation("exponential", 0.01)
    assert pipeline.grid is grid
    assert pipeline.valued is not linear


def test_roads_change_keeps_grid(pipeline, south_road):
    grid = pipeline.grid
    pipeline.set_roads([south_road])
    assert pipeline.grid is grid
    assert pipeline.closest.road_index == 0


def test_boundary_change_invalidates_everything(pipeline, u_shape):
    grid = pipeline.grid
    closest = pipeline.closest
    pipeline.set_boundary(u_shape)
    assert pipeline.grid is not grid
    assert pipeline.closest is not closest


def test_search_area(pipeline, rect):
    buffered, bbox = pipeline.search_area
    assert buffered.contains(rect)
    assert bbox[0] < rect.bounds[0] and bbox[3] > rect.bounds[3]


def test_set_boundary_normalizes(multipolygon_3_10_1):
    p = GradientPipeline()
    poly = p.set_boundary(mapping(multipolygon_3_10_1))
    assert poly.equals(multipolygon_3_10_1.geoms[1])
    assert p.set_boundary({"type": "Point", "coordinates": [0, 0]}) is None
    assert p.grid == []
    assert p.closest is None


def test_compute_gradient_payload(rect, south_road):
    out = compute_gradient(boundary=rect, roads=[south_road], cell_size_m=100)
    assert out["closest"]["road_index"] == 0
    assert out["area_m2"] > 0
    assert len(out["bbox"]) == 4
    n = len(out["grid"]["features"])
    assert n > 0
    assert len(out["valuation"]["features"]) == n
    assert out["stats"]["n_cells"] == n


def test_compute_gradient_without_roads(rect):
    out = compute_gradient(boundary=rect, roads=[], cell_size_m=100)
    assert out["closest"] is None
    assert out["grid"]["features"]
    assert out["valuation"]["features"] == []
    assert out["stats"] is None


def test_multipolygon_is_never_a_pipeline_boundary(multipolygon_3_10_1):
    p = GradientPipeline()
    p.set_boundary(multipolygon_3_10_1)
    assert not isinstance(p.boundary, MultiPolygon)


def test_buffer_change_only_redoes_search_area(pipeline):
    search = pipeline.search_area
    closest = pipeline.closest
    grid = pipeline.grid
    valued = pipeline.valued

    pipeline.set_buffer_m(600)
    assert pipeline.closest is closest
    assert pipeline.grid is grid
    assert pipeline.valued is valued
    assert pipeline.search_area is not search
    assert pipeline.search_area[0].contains(search[0])


def test_max_cells_change_redoes_grid(pipeline):
    grid = pipeline.grid
    closest = pipeline.closest
    pipeline.set_max_cells(5)
    assert pipeline.closest is closest
    assert pipeline.grid == []
    assert pipeline.valued == []
    pipeline.set_max_cells(None)
    assert len(pipeline.grid) == len(grid)
