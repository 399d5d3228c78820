from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from pyproj import CRS, Geod, Transformer
from shapely.errors import GEOSException
from shapely.geometry import (GeometryCollection, LineString, MultiPolygon,
                              Polygon, mapping, shape)
from shapely.geometry.base import BaseGeometry
from shapely.ops import transform

WGS84 = "EPSG:4326"
GEOD = Geod(ellps="WGS84")

POLYGON_TYPES = ("Polygon", "MultiPolygon")


def _geometry_dict(geojson_geom_or_feature: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    if geojson_geom_or_feature.get("type") == "Feature":
        return geojson_geom_or_feature.get("geometry")
    return geojson_geom_or_feature


def to_shapely(geojson_geom_or_feature: Any) -> BaseGeometry:
    """
    Aceita:
      - Feature {"type":"Feature","geometry":{...}}
      - Geometry {...}
      - geometria shapely (devolvida como está)
    """
    if isinstance(geojson_geom_or_feature, BaseGeometry):
        return geojson_geom_or_feature
    if not geojson_geom_or_feature:
        raise ValueError("GeoJSON vazio")
    if not isinstance(geojson_geom_or_feature, dict):
        raise ValueError("GeoJSON deve ser um objeto")

    geom = _geometry_dict(geojson_geom_or_feature)
    if not geom:
        raise ValueError("GeoJSON sem geometry")
    try:
        return shape(geom)
    except (GEOSException, TypeError, IndexError, KeyError, AttributeError) as e:
        raise ValueError(f"GeoJSON inválido: {e}") from e


def outer_ring_area_m2(poly: BaseGeometry) -> float:
    # área geodésica só do anel externo (buracos não são descontados)
    if poly is None or poly.is_empty:
        return 0.0
    if poly.geom_type == "MultiPolygon":
        return sum(outer_ring_area_m2(p) for p in poly.geoms)
    if poly.geom_type != "Polygon":
        return 0.0
    area, _ = GEOD.geometry_area_perimeter(Polygon(poly.exterior))
    return abs(float(area))


def normalize_polygon(raw: Any) -> Optional[Polygon]:
    """
    Reduz a entrada a um único Polygon.

    Polygon passa direto; MultiPolygon vira a parte de maior área
    (empate fica com a primeira). Qualquer outro tipo devolve None,
    que significa "sem contorno utilizável", não erro.
    """
    if raw is None:
        return None

    if isinstance(raw, BaseGeometry):
        g = raw
    else:
        if not isinstance(raw, dict):
            return None
        geom = _geometry_dict(raw)
        if not isinstance(geom, dict) or geom.get("type") not in POLYGON_TYPES:
            return None
        try:
            g = to_shapely(geom)
        except ValueError:
            return None

    if g.is_empty:
        return None
    if g.geom_type == "Polygon":
        return g
    if g.geom_type != "MultiPolygon":
        return None

    best = None
    best_area = -1.0
    for part in g.geoms:
        a = outer_ring_area_m2(part)
        if a > best_area:
            best_area = a
            best = part
    return best


def outer_ring(g: BaseGeometry) -> Optional[LineString]:
    """Anel externo (índice 0) como LineString; em MultiPolygon usa a primeira parte."""
    if g is None or g.is_empty:
        return None
    if g.geom_type == "MultiPolygon":
        g = g.geoms[0]
    if g.geom_type != "Polygon":
        return None
    coords = list(g.exterior.coords)
    if len(coords) < 2:
        return None
    return LineString(coords)


def polygon_from_path(path: Sequence[Any]) -> Polygon:
    """
    Polígono desenhado pelo usuário no mapa.

    Aceita pontos {"lat":..,"lng":..} ou pares (lon, lat); fecha o anel
    quando o primeiro ponto difere do último.
    """
    if not path or len(path) < 3:
        raise ValueError("Polígono precisa de pelo menos 3 pontos")

    ring: List[Tuple[float, float]] = []
    for p in path:
        if isinstance(p, dict):
            try:
                ring.append((float(p["lng"]), float(p["lat"])))
            except (KeyError, TypeError, ValueError) as e:
                raise ValueError(f"Ponto inválido: {p!r}") from e
        else:
            try:
                ring.append((float(p[0]), float(p[1])))
            except (IndexError, TypeError, ValueError) as e:
                raise ValueError(f"Ponto inválido: {p!r}") from e

    if ring[0] != ring[-1]:
        ring.append(ring[0])
    return Polygon(ring)


def lines_from_features(features: Any) -> List[LineString]:
    """
    Extrai as LineStrings de uma FeatureCollection (ou lista de features).
    Outros tipos são ignorados, então o índice é relativo à lista devolvida.
    """
    if isinstance(features, dict):
        if features.get("type") == "FeatureCollection":
            features = features.get("features") or []
        else:
            features = [features]

    lines: List[LineString] = []
    for f in features or []:
        if isinstance(f, BaseGeometry):
            g = f
        else:
            if not isinstance(f, dict):
                continue
            geom = _geometry_dict(f)
            if not isinstance(geom, dict) or geom.get("type") != "LineString":
                continue
            try:
                g = to_shapely(geom)
            except ValueError:
                continue
        if g.geom_type == "LineString" and not g.is_empty and len(g.coords) >= 2:
            lines.append(g)
    return lines


def polygon_parts(g: Optional[BaseGeometry]) -> List[Polygon]:
    """Partes poligonais de um resultado de recorte (descarta pontos/linhas)."""
    if g is None or g.is_empty:
        return []
    if isinstance(g, Polygon):
        return [g]
    if isinstance(g, (MultiPolygon, GeometryCollection)):
        parts: List[Polygon] = []
        for part in g.geoms:
            parts.extend(polygon_parts(part))
        return parts
    return []


def _bounds_center(geoms: Iterable[BaseGeometry]) -> Tuple[float, float]:
    minx = miny = float("inf")
    maxx = maxy = float("-inf")
    for g in geoms:
        if g is None or g.is_empty:
            continue
        x0, y0, x1, y1 = g.bounds
        minx, miny = min(minx, x0), min(miny, y0)
        maxx, maxy = max(maxx, x1), max(maxy, y1)
    if minx == float("inf"):
        return (0.0, 0.0)
    return ((minx + maxx) / 2.0, (miny + maxy) / 2.0)


def make_transformers(origin: Optional[Tuple[float, float]] = None):
    """
    Par de funções WGS84 <-> metros numa projeção azimutal equidistante
    centrada em `origin` (lon, lat), que mantém distâncias em metros na
    escala de uma cidade.
    """
    lon0, lat0 = origin or (0.0, 0.0)
    crs_m = CRS.from_proj4(
        f"+proj=aeqd +lat_0={lat0} +lon_0={lon0} +datum=WGS84 +units=m +no_defs")
    wgs_to_m = Transformer.from_crs(WGS84, crs_m, always_xy=True).transform
    m_to_wgs = Transformer.from_crs(crs_m, WGS84, always_xy=True).transform
    return type("TF", (), {"wgs_to_m": wgs_to_m, "m_to_wgs": m_to_wgs})


def local_transformers(*geoms: BaseGeometry):
    return make_transformers(_bounds_center(geoms))


def transform_geom(g: BaseGeometry, fn) -> BaseGeometry:
    return transform(fn, g)


def to_feature(geom: BaseGeometry, props: Dict[str, Any]) -> Dict[str, Any]:
    return {"type": "Feature", "geometry": mapping(geom), "properties": props or {}}


def to_fc(features):
    return {"type": "FeatureCollection", "features": features or []}


def features_of(fc: Any) -> List[Any]:
    if isinstance(fc, dict):
        if fc.get("type") == "FeatureCollection":
            return list(fc.get("features") or [])
        return [fc]
    if isinstance(fc, (list, tuple)):
        return list(fc)
    return []

