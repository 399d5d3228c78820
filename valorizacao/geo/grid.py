from __future__ import annotations

import logging
import math
from typing import List, Optional

from shapely.errors import GEOSException
from shapely.geometry import Polygon
from shapely.geometry.base import BaseGeometry
from shapely.prepared import prep

from .geometry import local_transformers, polygon_parts, transform_geom

logger = logging.getLogger(__name__)

# folga para a contagem de colunas/linhas não ganhar uma célula extra por arredondamento
EPS = 1e-9


def _n_tiles(extent: float, size: float) -> int:
    return max(1, int(math.ceil(extent / size - EPS)))


def clip_cell(tile: Polygon, boundary: BaseGeometry, prepared=None) -> Optional[List[Polygon]]:
    """
    Recorta uma célula pelo contorno.

    None = célula descartada por falha do GEOS; lista vazia = sem área
    em comum; caso contrário uma lista de polígonos simples (MultiPolygon
    é quebrado em partes).
    """
    try:
        hit = prepared.intersects(tile) if prepared is not None else tile.intersects(boundary)
        if not hit:
            return []
        clipped = tile.intersection(boundary)
    except (GEOSException, ValueError) as e:
        logger.debug("[GRID] recorte falhou para a célula %s: %s", tile.bounds, e)
        return None
    return polygon_parts(clipped)


def generate_grid(
    boundary: Optional[BaseGeometry],
    cell_size_m: float,
    max_cells: Optional[int] = None,
) -> List[Polygon]:
    """
    Malha de quadrados de `cell_size_m` metros recortada pelo contorno.

    As células cobrem o bbox do contorno (centralizadas nele) e a saída
    segue a ordem linha a linha, de sul para norte e de oeste para leste.
    Contorno vazio ou tamanho <= 0 devolve lista vazia.
    """
    if boundary is None or boundary.is_empty:
        return []
    try:
        size = float(cell_size_m)
    except (TypeError, ValueError):
        return []
    if not math.isfinite(size) or size <= 0:
        return []

    tf = local_transformers(boundary)
    minx, miny, maxx, maxy = transform_geom(boundary, tf.wgs_to_m).bounds
    width = maxx - minx
    height = maxy - miny

    n_cols = _n_tiles(width, size)
    n_rows = _n_tiles(height, size)
    if max_cells and n_cols * n_rows > int(max_cells):
        logger.warning(
            "[GRID] %dx%d células excede o limite de %d (cell_size_m=%.1f)",
            n_cols, n_rows, int(max_cells), size,
        )
        return []

    # bloco de células centralizado no bbox
    x0 = minx - (n_cols * size - width) / 2.0
    y0 = miny - (n_rows * size - height) / 2.0

    # vértices compartilhados entre células vizinhas (convertidos uma vez)
    xs: List[float] = []
    ys: List[float] = []
    for r in range(n_rows + 1):
        for c in range(n_cols + 1):
            xs.append(x0 + c * size)
            ys.append(y0 + r * size)
    lons, lats = tf.m_to_wgs(xs, ys)

    def corner(r: int, c: int):
        i = r * (n_cols + 1) + c
        return (float(lons[i]), float(lats[i]))

    prepared = prep(boundary)
    cells: List[Polygon] = []
    skipped = 0
    for r in range(n_rows):
        for c in range(n_cols):
            tile = Polygon([corner(r, c), corner(r, c + 1), corner(r + 1, c + 1),
                            corner(r + 1, c), corner(r, c)])
            parts = clip_cell(tile, boundary, prepared)
            if parts is None:
                skipped += 1
                continue
            cells.extend(parts)

    logger.info(
        "[GRID] %d células (%dx%d tiles, %.1f m, %d descartadas por erro)",
        len(cells), n_cols, n_rows, size, skipped,
    )
    return cells
