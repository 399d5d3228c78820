from __future__ import annotations

import logging
import math
from typing import List, Optional, Sequence, Tuple

from shapely.errors import GEOSException
from shapely.geometry import LineString, Point, Polygon
from shapely.geometry.base import BaseGeometry

from .geometry import (local_transformers, normalize_polygon,
                       outer_ring_area_m2, transform_geom)

logger = logging.getLogger(__name__)

# Tudo que entra ou sai daqui está em metros (ou m²); as coordenadas
# projetadas ficam dentro de cada função.

Coordinate = Tuple[float, float]


def _as_point(p) -> Point:
    if isinstance(p, Point):
        return p
    return Point(float(p[0]), float(p[1]))


def area_m2(polygon: Optional[BaseGeometry]) -> float:
    """
    Área em m² do anel externo. Buracos NÃO são descontados; é o número
    exibido ao usuário e a aproximação é aceita.
    """
    if polygon is None:
        return 0.0
    return outer_ring_area_m2(polygon)


def bounding_box(polygon: Optional[BaseGeometry]) -> Optional[Tuple[float, float, float, float]]:
    """(min_lon, min_lat, max_lon, max_lat)"""
    if polygon is None or polygon.is_empty:
        return None
    minx, miny, maxx, maxy = polygon.bounds
    return (float(minx), float(miny), float(maxx), float(maxy))


def buffer_m(polygon: Optional[BaseGeometry], radius_m: float, resolution: int = 16) -> Optional[Polygon]:
    """
    Expande o polígono `radius_m` metros para fora.

    Devolve None quando o buffer não pode ser gerado (raio inválido,
    resultado vazio/inválido ou erro do GEOS).
    """
    if polygon is None or polygon.is_empty:
        return None
    try:
        radius = float(radius_m)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(radius) or radius < 0:
        return None

    tf = local_transformers(polygon)
    try:
        poly_m = transform_geom(polygon, tf.wgs_to_m)
        buf_m = poly_m.buffer(radius, resolution)
        if buf_m.is_empty or not buf_m.is_valid:
            logger.warning("[BUFFER] resultado vazio/inválido para raio %.1f m", radius)
            return None
        buf = transform_geom(buf_m, tf.m_to_wgs)
    except (GEOSException, ValueError) as e:
        logger.warning("[BUFFER] falha ao gerar buffer de %.1f m: %s", radius, e)
        return None

    return normalize_polygon(buf)


def centroid(polygon: BaseGeometry) -> Coordinate:
    c = polygon.centroid
    return (float(c.x), float(c.y))


def nearest_on_projected(pt_m: Point, line_m: BaseGeometry) -> Tuple[Point, float]:
    """Ponto mais próximo em `line_m` e a distância, ambos no plano projetado."""
    near = line_m.interpolate(line_m.project(pt_m))
    return near, float(pt_m.distance(near))


def nearest_point_on_line(point, line: LineString, tf=None) -> Tuple[Coordinate, float]:
    """
    Ponto da linha mais próximo de `point` (qualquer segmento, não só
    vértices) e a distância em metros.
    """
    pt = _as_point(point)
    tf = tf or local_transformers(pt, line)
    pt_m = transform_geom(pt, tf.wgs_to_m)
    line_m = transform_geom(line, tf.wgs_to_m)
    near_m, dist = nearest_on_projected(pt_m, line_m)
    lon, lat = tf.m_to_wgs(near_m.x, near_m.y)
    return (float(lon), float(lat)), dist


def point_to_line_distance_m(point, line: LineString, tf=None) -> float:
    pt = _as_point(point)
    tf = tf or local_transformers(pt, line)
    pt_m = transform_geom(pt, tf.wgs_to_m)
    line_m = transform_geom(line, tf.wgs_to_m)
    return float(pt_m.distance(line_m))


def distances_to_line_m(points: Sequence, line: LineString, tf=None) -> List[float]:
    """Versão em lote de point_to_line_distance_m (projeta a linha uma vez só)."""
    pts: List[Point] = [_as_point(p) for p in points]
    if not pts:
        return []
    tf = tf or local_transformers(line, *pts)
    line_m = transform_geom(line, tf.wgs_to_m)
    out: List[float] = []
    for pt in pts:
        x, y = tf.wgs_to_m(pt.x, pt.y)
        out.append(float(Point(x, y).distance(line_m)))
    return out
