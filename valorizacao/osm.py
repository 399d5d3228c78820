# valorizacao/osm.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

import requests
from django.conf import settings
from shapely.errors import GEOSException
from shapely.geometry import LineString, Polygon
from shapely.ops import polygonize, unary_union

from .geo.geometry import normalize_polygon, to_fc, to_feature

logger = logging.getLogger(__name__)

# tags que fazem uma way fechada virar área
AREA_KEYS = ("boundary", "building", "landuse", "place", "leisure",
             "natural", "amenity", "area")


class OsmServiceError(Exception):
    """Falha ao consultar Nominatim/Overpass."""


def _request_json(method: str, url: str, **kwargs) -> Any:
    headers = {"User-Agent": settings.OSM_USER_AGENT}
    try:
        resp = requests.request(method, url, headers=headers,
                                timeout=settings.OSM_TIMEOUT, **kwargs)
        resp.raise_for_status()
        return resp.json()
    except requests.RequestException as e:
        logger.warning("[OSM] %s %s falhou: %s", method, url, e)
        raise OsmServiceError(str(e)) from e
    except ValueError as e:
        logger.warning("[OSM] resposta inválida de %s: %s", url, e)
        raise OsmServiceError(f"Resposta inválida do serviço: {e}") from e


# ---------- Overpass JSON -> GeoJSON


def _coords(points) -> List[tuple]:
    # relações podem trazer null para nós fora do recorte
    return [(float(p["lon"]), float(p["lat"])) for p in (points or []) if p]


def _is_area(tags: Dict[str, Any]) -> bool:
    if tags.get("area") == "no":
        return False
    if "highway" in tags:
        return tags.get("area") == "yes"
    return any(k in tags for k in AREA_KEYS)


def _way_geometry(el: Dict[str, Any]):
    coords = _coords(el.get("geometry"))
    if len(coords) < 2:
        return None
    tags = el.get("tags") or {}
    if len(coords) >= 4 and coords[0] == coords[-1] and _is_area(tags):
        return Polygon(coords)
    return LineString(coords)


def _relation_geometry(el: Dict[str, Any]):
    tags = el.get("tags") or {}
    if tags.get("type") not in ("multipolygon", "boundary"):
        return None

    outer: List[LineString] = []
    inner: List[LineString] = []
    for m in el.get("members") or []:
        if not isinstance(m, dict) or m.get("type") != "way":
            continue
        coords = _coords(m.get("geometry"))
        if len(coords) < 2:
            continue
        (inner if m.get("role") == "inner" else outer).append(LineString(coords))

    if not outer:
        return None
    try:
        shells = list(polygonize(unary_union(outer)))
        if not shells:
            return None
        geom = unary_union(shells)
        if inner:
            holes = list(polygonize(unary_union(inner)))
            if holes:
                geom = geom.difference(unary_union(holes))
    except (GEOSException, ValueError) as e:
        logger.warning("[OSM] relação %s não pôde ser montada: %s", el.get("id"), e)
        return None

    if geom.is_empty or geom.geom_type not in ("Polygon", "MultiPolygon"):
        return None
    return geom


def overpass_to_geojson(data: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Converte a saída `out geom;` do Overpass em FeatureCollection.
    Ways viram LineString (ou Polygon, se fechadas e de área);
    relações multipolygon/boundary viram Polygon/MultiPolygon.
    """
    features = []
    for el in (data or {}).get("elements") or []:
        kind = el.get("type")
        if kind == "way":
            geom = _way_geometry(el)
        elif kind == "relation":
            geom = _relation_geometry(el)
        else:
            continue
        if geom is None or geom.is_empty:
            continue
        props = {"id": f"{kind}/{el.get('id')}", "osm_type": kind, "osm_id": el.get("id")}
        props.update(el.get("tags") or {})
        features.append(to_feature(geom, props))
    return to_fc(features)


def _overpass(query: str) -> Dict[str, Any]:
    data = _request_json("POST", settings.OVERPASS_URL, data={"data": query})
    return overpass_to_geojson(data)


# ---------- serviços


def search_places(q: str, limit: int = 5) -> List[Dict[str, Any]]:
    """Nominatim: nome do lugar -> candidatos (com polygon_geojson)."""
    q = (q or "").strip()
    if not q:
        raise ValueError("Parâmetro 'q' é obrigatório.")
    params = {
        "q": q,
        "format": "json",
        "polygon_geojson": "1",
        "addressdetails": "1",
        "limit": str(int(limit)),
    }
    data = _request_json("GET", settings.NOMINATIM_URL, params=params)
    if not isinstance(data, list):
        raise OsmServiceError("Resposta inesperada do Nominatim.")
    logger.info("[OSM] busca '%s' -> %d resultados", q, len(data))
    return data


def fetch_boundary(osm_id: Any, osm_type: str) -> Dict[str, Any]:
    type_short = {"relation": "rel", "way": "way"}.get(osm_type or "")
    if not type_short:
        raise ValueError("osm_type inválido. Use relation ou way.")
    try:
        osm_id = int(osm_id)
    except (TypeError, ValueError) as e:
        raise ValueError("osm_id inválido.") from e

    query = f"[out:json]; {type_short}({osm_id}); out geom;"
    return _overpass(query)


def build_roads_query(bbox: Sequence[float], types: Sequence[str]) -> str:
    if not bbox or len(bbox) != 4:
        raise ValueError("BBox [min_lon, min_lat, max_lon, max_lat] é obrigatório.")
    if not types:
        raise ValueError("Informe ao menos um tipo de via.")
    min_x, min_y, max_x, max_y = [float(v) for v in bbox]
    type_regex = "|".join(str(t).strip() for t in types)
    # Overpass usa (sul, oeste, norte, leste)
    overpass_bbox = f"{min_y},{min_x},{max_y},{max_x}"
    return (
        "[out:json][timeout:25];\n"
        "(\n"
        f'  way["highway"~"^({type_regex})$"]({overpass_bbox});\n'
        ");\n"
        "out geom;"
    )


def fetch_roads(bbox: Sequence[float], types: Sequence[str]) -> Dict[str, Any]:
    query = build_roads_query(bbox, types)
    fc = _overpass(query)
    logger.info("[OSM] vias %s em %s -> %d features", list(types), list(bbox), len(fc["features"]))
    return fc


def boundary_from_search_result(result: Dict[str, Any]) -> Optional[Polygon]:
    """
    Usa o geojson do Nominatim quando já é polígono; senão busca
    o contorno no Overpass pelo osm_id/osm_type.
    """
    result = result or {}
    geo = result.get("geojson")
    if isinstance(geo, dict) and geo.get("type") in ("Polygon", "MultiPolygon"):
        return normalize_polygon(geo)

    fc = fetch_boundary(result.get("osm_id"), result.get("osm_type"))
    for f in fc.get("features") or []:
        poly = normalize_polygon(f)
        if poly is not None:
            return poly
    return None
