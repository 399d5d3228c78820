from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from branca.colormap import LinearColormap
from shapely.geometry import LineString, Polygon

from .geometry import local_transformers, to_feature
from .metrics import centroid, distances_to_line_m

logger = logging.getLogger(__name__)

MODES = ("linear", "exponential")
DEFAULT_DECAY_K = 0.005
# maior expoente que math.exp aceita sem OverflowError
MAX_EXPONENT = 709.0

# ColorBrewer RdYlBu (11 classes): 0 = vermelho (quente), 1 = azul (frio)
RDYLBU = [
    "#a50026", "#d73027", "#f46d43", "#fdae61", "#fee090", "#ffffbf",
    "#e0f3f8", "#abd9e9", "#74add1", "#4575b4", "#313695",
]
COLOR_RAMP = LinearColormap(colors=RDYLBU, vmin=0.0, vmax=1.0, caption="Valor da terra")


def ramp_color(t: float) -> str:
    t = min(1.0, max(0.0, float(t)))
    return COLOR_RAMP.rgb_hex_str(t)


@dataclass
class ValuedCell:
    cell: Polygon
    distance_m: float
    value: float
    color: str

    @property
    def tooltip(self) -> str:
        return f"Dist: {round(self.distance_m)}m, Val: {self.value:.2f}"

    def to_feature(self) -> Dict[str, Any]:
        return to_feature(self.cell, {
            "distance_m": self.distance_m,
            "value": self.value,
            "color": self.color,
            "tooltip": self.tooltip,
        })


def score(distance_m: float, max_dist: float, mode: str, decay_k: float) -> float:
    if mode == "linear":
        return max(0.0, 1.0 - distance_m / max_dist)
    # decay_k negativo faz o valor crescer com a distância; limitado para continuar finito
    return math.exp(min(-decay_k * distance_m, MAX_EXPONENT))


def valuate(
    cells: Sequence[Polygon],
    road: Optional[LineString],
    mode: str = "linear",
    decay_k: float = DEFAULT_DECAY_K,
    max_distance_override: Optional[float] = None,
) -> List[ValuedCell]:
    """
    Valor de cada célula pela distância do centróide até a via.

      linear:      max(0, 1 - d / max_dist)
      exponential: exp(-k * d)

    max_dist = override (quando informado e diferente de 0, negativos
    inclusive) ou a maior distância observada, nunca menor que 1. A cor usa t = 1 - valor na rampa RdYlBu.
    """
    if not cells or road is None or road.is_empty:
        return []
    if mode not in MODES:
        raise ValueError(f"modo de valoração desconhecido: {mode!r}")

    tf = local_transformers(road, *cells)
    distances = distances_to_line_m([centroid(c) for c in cells], road, tf=tf)

    if max_distance_override:
        max_dist = float(max_distance_override)
    else:
        max_dist = max(max(distances), 1.0)

    out: List[ValuedCell] = []
    for cell, d in zip(cells, distances):
        v = score(d, max_dist, mode, decay_k)
        out.append(ValuedCell(cell=cell, distance_m=d, value=v, color=ramp_color(1.0 - v)))

    logger.debug("[VALUATION] %d células, modo=%s, max_dist=%.1f m", len(out), mode, max_dist)
    return out


def summarize(valued: Sequence[ValuedCell]) -> Optional[Dict[str, Any]]:
    if not valued:
        return None
    dists = [v.distance_m for v in valued]
    vals = [v.value for v in valued]
    return {
        "n_cells": len(valued),
        "min_distance_m": min(dists),
        "max_distance_m": max(dists),
        "min_value": min(vals),
        "max_value": max(vals),
    }
