# valorizacao/views.py
from __future__ import annotations

import logging

from django.conf import settings
from rest_framework import permissions, status
from rest_framework.response import Response
from rest_framework.views import APIView

from .geo.closest import find_closest_road
from .geo.geometry import (features_of, lines_from_features, normalize_polygon,
                           polygon_from_path, polygon_parts, to_fc, to_feature,
                           to_shapely)
from .geo.grid import generate_grid
from .geo.metrics import area_m2, bounding_box, buffer_m
from .geo.pipeline import compute_gradient
from .geo.valuation import summarize, valuate
from .osm import (OsmServiceError, boundary_from_search_result,
                  fetch_boundary, fetch_roads, search_places)
from .serializers import (BoundaryRequestSerializer, BufferRequestSerializer,
                          ClosestRoadRequestSerializer,
                          GradientRequestSerializer, GridRequestSerializer,
                          RoadsRequestSerializer, ValuationRequestSerializer)

logger = logging.getLogger(__name__)


def _bad_request(msg: str) -> Response:
    return Response({"detail": msg}, status=status.HTTP_400_BAD_REQUEST)


def _no_boundary() -> Response:
    return Response(
        {"detail": "Nenhum contorno poligonal utilizável."},
        status=status.HTTP_422_UNPROCESSABLE_ENTITY,
    )


def _service_error(e: OsmServiceError) -> Response:
    return Response({"detail": str(e)}, status=status.HTTP_502_BAD_GATEWAY)


def _boundary_or_none(obj):
    # aceita Feature, Geometry ou FeatureCollection (primeira feature poligonal)
    for f in features_of(obj):
        poly = normalize_polygon(f)
        if poly is not None:
            return poly
    return None


def _cells_from(obj):
    cells = []
    for f in features_of(obj):
        try:
            cells.extend(polygon_parts(to_shapely(f)))
        except ValueError:
            continue
    return cells


def _boundary_payload(poly):
    return {
        "boundary": to_feature(poly, {}),
        "area_m2": area_m2(poly),
        "bbox": list(bounding_box(poly)),
    }


# ---------------------------
# Proxies OSM
# ---------------------------

class OsmSearchView(APIView):
    """GET /api/osm/search/?q=<lugar>"""
    permission_classes = [permissions.AllowAny]

    def get(self, request, *args, **kwargs):
        q = request.query_params.get("q")
        if not q:
            return _bad_request('Parâmetro "q" é obrigatório.')
        try:
            return Response(search_places(q))
        except OsmServiceError as e:
            return _service_error(e)


class OsmBoundaryView(APIView):
    """GET /api/osm/boundary/?osm_id=<id>&osm_type=relation|way"""
    permission_classes = [permissions.AllowAny]

    def get(self, request, *args, **kwargs):
        osm_id = request.query_params.get("osm_id")
        osm_type = request.query_params.get("osm_type")
        if not osm_id or not osm_type:
            return _bad_request("osm_id e osm_type são obrigatórios.")
        try:
            return Response(fetch_boundary(osm_id, osm_type))
        except ValueError as e:
            return _bad_request(str(e))
        except OsmServiceError as e:
            return _service_error(e)


class OsmRoadsView(APIView):
    """POST /api/osm/roads/ {bbox: [min_lon, min_lat, max_lon, max_lat], types: [...]}"""
    permission_classes = [permissions.AllowAny]

    def post(self, request, *args, **kwargs):
        req = RoadsRequestSerializer(data=request.data)
        req.is_valid(raise_exception=True)
        try:
            fc = fetch_roads(req.validated_data["bbox"], req.validated_data["types"])
        except ValueError as e:
            return _bad_request(str(e))
        except OsmServiceError as e:
            return _service_error(e)
        return Response(fc)


# ---------------------------
# Etapas do gradiente
# ---------------------------

class BoundaryView(APIView):
    """
    /api/valorizacao/boundary/
    Normaliza o contorno (MultiPolygon -> maior parte) e devolve área e bbox.
    """
    permission_classes = [permissions.AllowAny]

    def post(self, request, *args, **kwargs):
        req = BoundaryRequestSerializer(data=request.data)
        req.is_valid(raise_exception=True)
        data = req.validated_data

        try:
            if data.get("path"):
                poly = normalize_polygon(polygon_from_path(data["path"]))
            elif data.get("search_result"):
                poly = boundary_from_search_result(data["search_result"])
            else:
                poly = _boundary_or_none(data["geometry"])
        except ValueError as e:
            return _bad_request(str(e))
        except OsmServiceError as e:
            return _service_error(e)

        if poly is None:
            return _no_boundary()
        return Response(_boundary_payload(poly))


class BufferView(APIView):
    """
    /api/valorizacao/buffer/
    Buffer em metros + bbox usado na busca de vias. `buffer: null`
    quando o buffer não pôde ser gerado.
    """
    permission_classes = [permissions.AllowAny]

    def post(self, request, *args, **kwargs):
        req = BufferRequestSerializer(data=request.data)
        req.is_valid(raise_exception=True)
        poly = _boundary_or_none(req.validated_data["boundary"])
        if poly is None:
            return _no_boundary()

        radius = req.validated_data.get("radius_m")
        if radius is None:
            radius = settings.VALORIZACAO_BUFFER_M

        buffered = buffer_m(poly, radius)
        if buffered is None:
            logger.warning("[BUFFER] indisponível para raio %.1f m", radius)
        return Response({
            "radius_m": radius,
            "buffer": to_feature(buffered, {"radius_m": radius}) if buffered is not None else None,
            "bbox": list(bounding_box(buffered)) if buffered is not None else None,
        })


class ClosestRoadView(APIView):
    """/api/valorizacao/closest-road/"""
    permission_classes = [permissions.AllowAny]

    def post(self, request, *args, **kwargs):
        req = ClosestRoadRequestSerializer(data=request.data)
        req.is_valid(raise_exception=True)
        poly = _boundary_or_none(req.validated_data["boundary"])
        if poly is None:
            return _no_boundary()

        roads = lines_from_features(req.validated_data["roads"])
        res = find_closest_road(poly, roads)
        if res is None:
            return Response({"result": None, "n_roads": len(roads)})

        return Response({
            "result": res.to_dict(),
            "road": to_feature(roads[res.road_index], {"road_index": res.road_index}),
            "connection": res.connection_feature(),
            "n_roads": len(roads),
        })


class GridView(APIView):
    """/api/valorizacao/grid/"""
    permission_classes = [permissions.AllowAny]

    def post(self, request, *args, **kwargs):
        req = GridRequestSerializer(data=request.data)
        req.is_valid(raise_exception=True)
        poly = _boundary_or_none(req.validated_data["boundary"])
        if poly is None:
            return _no_boundary()

        cell_size = req.validated_data.get("cell_size_m") or settings.VALORIZACAO_CELL_SIZE_M
        cells = generate_grid(poly, cell_size, max_cells=settings.VALORIZACAO_MAX_GRID_CELLS)
        return Response({
            "cell_size_m": cell_size,
            "count": len(cells),
            "cells": to_fc([to_feature(c, {"index": i}) for i, c in enumerate(cells)]),
        })


class ValuationView(APIView):
    """/api/valorizacao/valuation/"""
    permission_classes = [permissions.AllowAny]

    def post(self, request, *args, **kwargs):
        req = ValuationRequestSerializer(data=request.data)
        req.is_valid(raise_exception=True)
        data = req.validated_data

        roads = lines_from_features(data["road"])
        if not roads:
            return _bad_request("road deve ser uma LineString.")

        decay_k = data.get("decay_k")
        if decay_k is None:
            decay_k = settings.VALORIZACAO_DECAY_K

        valued = valuate(_cells_from(data["cells"]), roads[0], data["mode"],
                         decay_k, data.get("max_distance_m"))
        return Response({
            "mode": data["mode"],
            "decay_k": decay_k,
            "cells": to_fc([v.to_feature() for v in valued]),
            "stats": summarize(valued),
        })


class GradientView(APIView):
    """
    /api/valorizacao/gradiente/
    Tudo de uma vez: contorno + vias já buscadas -> via mais próxima,
    malha e valoração.
    """
    permission_classes = [permissions.AllowAny]

    def post(self, request, *args, **kwargs):
        req = GradientRequestSerializer(data=request.data)
        req.is_valid(raise_exception=True)
        data = req.validated_data

        poly = _boundary_or_none(data["boundary"])
        if poly is None:
            return _no_boundary()
        roads = lines_from_features(data["roads"])

        decay_k = data.get("decay_k")
        if decay_k is None:
            decay_k = settings.VALORIZACAO_DECAY_K
        buffer_radius = data.get("buffer_m")
        if buffer_radius is None:
            buffer_radius = settings.VALORIZACAO_BUFFER_M

        logger.info("[GRADIENTE IN] vias=%d cell_size_m=%s modo=%s",
                    len(roads), data.get("cell_size_m"), data["mode"])
        out = compute_gradient(
            boundary=poly,
            roads=roads,
            cell_size_m=data.get("cell_size_m") or settings.VALORIZACAO_CELL_SIZE_M,
            mode=data["mode"],
            decay_k=decay_k,
            max_distance_override=data.get("max_distance_m"),
            buffer_radius_m=buffer_radius,
            max_cells=settings.VALORIZACAO_MAX_GRID_CELLS,
        )
        logger.info("[GRADIENTE OUT] células=%d via=%s",
                    len(out["valuation"]["features"]),
                    (out["closest"] or {}).get("road_index"))
        return Response(out)
