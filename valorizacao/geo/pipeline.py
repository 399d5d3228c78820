from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from shapely.geometry import LineString, Polygon

from .closest import ClosestRoadResult, find_closest_road
from .geometry import normalize_polygon, to_fc, to_feature
from .grid import generate_grid
from .metrics import area_m2, bounding_box, buffer_m
from .valuation import DEFAULT_DECAY_K, ValuedCell, summarize, valuate

_UNSET = object()

# entrada -> etapas que precisam ser recalculadas quando ela muda
DEPENDENCIES: Dict[str, Tuple[str, ...]] = {
    "boundary": ("search_area", "closest", "grid", "valued"),
    "buffer_m": ("search_area",),
    "roads": ("closest", "valued"),
    "cell_size_m": ("grid", "valued"),
    "max_cells": ("grid", "valued"),
    "valuation": ("valued",),
}


class GradientPipeline:
    """
    Etapas: contorno -> buffer/bbox -> vias -> via mais próxima -> malha -> valoração.

    Cada etapa fica em cache até uma das entradas de que depende mudar;
    mudar o tamanho da célula, por exemplo, descarta malha e valoração
    mas mantém a via mais próxima.
    """

    def __init__(
        self,
        *,
        buffer_m: float = 300.0,
        cell_size_m: float = 50.0,
        mode: str = "linear",
        decay_k: float = DEFAULT_DECAY_K,
        max_distance_override: Optional[float] = None,
        max_cells: Optional[int] = None,
    ):
        self._inputs: Dict[str, Any] = {
            "boundary": None,
            "roads": [],
            "buffer_m": float(buffer_m),
            "cell_size_m": float(cell_size_m),
            "max_cells": max_cells,
            "valuation": (mode, float(decay_k), max_distance_override),
        }
        self._cache: Dict[str, Any] = {}

    # ---------- entradas

    def _set(self, name: str, value: Any) -> None:
        if self._inputs.get(name, _UNSET) == value:
            return
        self._inputs[name] = value
        for stage in DEPENDENCIES[name]:
            self._cache.pop(stage, None)

    def set_boundary(self, raw: Any) -> Optional[Polygon]:
        poly = normalize_polygon(raw)
        self._set("boundary", poly)
        return poly

    def set_roads(self, roads: Sequence[LineString]) -> None:
        self._set("roads", list(roads or []))

    def set_buffer_m(self, radius_m: float) -> None:
        self._set("buffer_m", float(radius_m))

    def set_cell_size_m(self, cell_size_m: float) -> None:
        self._set("cell_size_m", float(cell_size_m))

    def set_max_cells(self, max_cells: Optional[int]) -> None:
        self._set("max_cells", max_cells)

    def set_valuation(
        self,
        mode: str = "linear",
        decay_k: float = DEFAULT_DECAY_K,
        max_distance_override: Optional[float] = None,
    ) -> None:
        self._set("valuation", (mode, float(decay_k), max_distance_override))

    # ---------- etapas

    def _cached(self, stage: str, fn: Callable[[], Any]) -> Any:
        if stage not in self._cache:
            self._cache[stage] = fn()
        return self._cache[stage]

    @property
    def boundary(self) -> Optional[Polygon]:
        return self._inputs["boundary"]

    @property
    def roads(self) -> List[LineString]:
        return self._inputs["roads"]

    @property
    def area_m2(self) -> float:
        return area_m2(self.boundary)

    @property
    def search_area(self) -> Tuple[Optional[Polygon], Optional[Tuple[float, float, float, float]]]:
        """Buffer do contorno e o bbox usado para buscar as vias."""
        def _run():
            buffered = buffer_m(self.boundary, self._inputs["buffer_m"])
            return buffered, bounding_box(buffered)
        return self._cached("search_area", _run)

    @property
    def closest(self) -> Optional[ClosestRoadResult]:
        return self._cached("closest", lambda: find_closest_road(self.boundary, self.roads))

    @property
    def selected_road(self) -> Optional[LineString]:
        res = self.closest
        if res is None:
            return None
        return self.roads[res.road_index]

    @property
    def grid(self) -> List[Polygon]:
        return self._cached("grid", lambda: generate_grid(
            self.boundary, self._inputs["cell_size_m"], max_cells=self._inputs["max_cells"]))

    @property
    def valued(self) -> List[ValuedCell]:
        mode, decay_k, override = self._inputs["valuation"]
        return self._cached("valued", lambda: valuate(
            self.grid, self.selected_road, mode, decay_k, override))

    def as_dict(self) -> Dict[str, Any]:
        buffered, bbox = self.search_area
        closest = self.closest
        valued = self.valued
        return {
            "boundary": to_feature(self.boundary, {}) if self.boundary is not None else None,
            "area_m2": self.area_m2,
            "search_area": to_feature(buffered, {"buffer_m": self._inputs["buffer_m"]}) if buffered is not None else None,
            "bbox": list(bbox) if bbox else None,
            "closest": closest.to_dict() if closest else None,
            "connection": closest.connection_feature() if closest else None,
            "grid": to_fc([to_feature(c, {"index": i}) for i, c in enumerate(self.grid)]),
            "valuation": to_fc([v.to_feature() for v in valued]),
            "stats": summarize(valued),
        }


def compute_gradient(
    *,
    boundary: Any,
    roads: Sequence[LineString],
    cell_size_m: float,
    mode: str = "linear",
    decay_k: float = DEFAULT_DECAY_K,
    max_distance_override: Optional[float] = None,
    buffer_radius_m: float = 300.0,
    max_cells: Optional[int] = None,
) -> Dict[str, Any]:
    """Roda todas as etapas de uma vez e devolve o resultado pronto para JSON."""
    p = GradientPipeline(
        buffer_m=buffer_radius_m,
        cell_size_m=cell_size_m,
        mode=mode,
        decay_k=decay_k,
        max_distance_override=max_distance_override,
        max_cells=max_cells,
    )
    p.set_boundary(boundary)
    p.set_roads(roads)
    return p.as_dict()
