import pytest
from shapely.geometry import LineString, MultiPolygon, Polygon

# área de teste perto do centro de São Paulo
LON0, LAT0 = -46.6340, -23.5510
U = 0.001


def _shift(coords, dx=0.0, dy=0.0):
    return [(LON0 + dx + x * U, LAT0 + dy + y * U) for x, y in coords]


@pytest.fixture
def unit_square():
    return Polygon([(0, 0), (1, 0), (1, 1), (0, 1), (0, 0)])


@pytest.fixture
def rect():
    # ~300 m x 200 m
    return Polygon([
        (-46.6340, -23.5510), (-46.6310, -23.5510), (-46.6310, -23.5492),
        (-46.6340, -23.5492), (-46.6340, -23.5510),
    ])


@pytest.fixture
def u_shape():
    return Polygon(_shift([(0, 0), (3, 0), (3, 3), (2, 3), (2, 1), (1, 1), (1, 3), (0, 3), (0, 0)]))


@pytest.fixture
def south_road():
    # paralela ao lado sul do `rect`, ~55 m abaixo
    return LineString([(-46.6345, -23.5515), (-46.6305, -23.5515)])


@pytest.fixture
def multipolygon_3_10_1():
    # partes com áreas proporcionais a 3, 10 e 1
    a = Polygon(_shift([(0, 0), (3, 0), (3, 1), (0, 1), (0, 0)]))
    b = Polygon(_shift([(0, 0), (10, 0), (10, 1), (0, 1), (0, 0)], dy=5 * U))
    c = Polygon(_shift([(0, 0), (1, 0), (1, 1), (0, 1), (0, 0)], dy=10 * U))
    return MultiPolygon([a, b, c])
