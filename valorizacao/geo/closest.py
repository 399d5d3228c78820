from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from shapely.geometry import LineString, Point
from shapely.geometry.base import BaseGeometry

from .geometry import local_transformers, outer_ring, transform_geom
from .metrics import nearest_on_projected

logger = logging.getLogger(__name__)

Coordinate = Tuple[float, float]


@dataclass
class ClosestRoadResult:
    road_index: int
    distance_m: float
    # [ponto no contorno, ponto na via], ambos (lon, lat)
    connection: List[Coordinate] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "road_index": self.road_index,
            "distance_m": self.distance_m,
            "connection": [list(p) for p in self.connection],
        }

    def connection_feature(self) -> Dict[str, Any]:
        return {
            "type": "Feature",
            "geometry": {"type": "LineString", "coordinates": [list(p) for p in self.connection]},
            "properties": {"road_index": self.road_index, "distance_m": self.distance_m},
        }


def _closest_samples(ring, ring_m, road, road_m, m_to_wgs):
    """
    Amostragem por vértices nos dois sentidos:
      A. vértices do contorno -> ponto mais próximo na via
      B. vértices da via -> ponto mais próximo no contorno
    Um candidato só substitui o atual se for estritamente menor.
    """
    best = math.inf
    conn: Optional[List[Coordinate]] = None

    for xy, xy_m in zip(ring.coords, ring_m.coords):
        near_m, d = nearest_on_projected(Point(xy_m[0], xy_m[1]), road_m)
        if d < best:
            best = d
            conn = [(float(xy[0]), float(xy[1])), _back(near_m, m_to_wgs)]

    for xy, xy_m in zip(road.coords, road_m.coords):
        near_m, d = nearest_on_projected(Point(xy_m[0], xy_m[1]), ring_m)
        if d < best:
            best = d
            conn = [_back(near_m, m_to_wgs), (float(xy[0]), float(xy[1]))]

    return best, conn


def _back(p_m: Point, m_to_wgs) -> Coordinate:
    lon, lat = m_to_wgs(p_m.x, p_m.y)
    return (float(lon), float(lat))


def find_closest_road(
    boundary: Optional[BaseGeometry],
    roads: Sequence[LineString],
) -> Optional[ClosestRoadResult]:
    """
    Via mais próxima do contorno e o segmento que liga os dois.

    Empate fica com o menor índice. Sem vias (ou sem anel externo)
    devolve None: "ainda não há resultado", não erro.
    """
    if boundary is None or not roads:
        return None
    ring = outer_ring(boundary)
    if ring is None:
        return None

    tf = local_transformers(boundary)
    ring_m = transform_geom(ring, tf.wgs_to_m)
    ring_env = ring_m.envelope

    best_index = -1
    best_dist = math.inf
    best_conn: List[Coordinate] = []
    skipped = 0

    for index, road in enumerate(roads):
        if road is None or road.is_empty or len(road.coords) < 2:
            continue
        road_m = transform_geom(road, tf.wgs_to_m)

        # pré-filtro por envelope: a distância amostrada nunca é menor que ele
        if best_index != -1 and ring_env.distance(road_m.envelope) > best_dist:
            skipped += 1
            continue

        d, conn = _closest_samples(ring, ring_m, road, road_m, tf.m_to_wgs)
        if d < best_dist:
            best_dist = d
            best_index = index
            best_conn = conn

    if best_index == -1:
        return None

    logger.debug(
        "[CLOSEST] via=%d dist=%.2f m (%d vias, %d descartadas pelo envelope)",
        best_index, best_dist, len(roads), skipped,
    )
    return ClosestRoadResult(road_index=best_index, distance_m=float(best_dist), connection=best_conn)
