"""ESRI JSON <-> GeoJSON conversion.

Handles the geometry shapes returned by ArcGIS REST services (TIGERweb
included): points, multipoints, polylines and polygons, wrapped either as bare
geometries, features (``attributes`` + ``geometry``) or feature sets.

ESRI polygons list outer rings clockwise and holes counter-clockwise. GeoJSON
(RFC 7946) wants the opposite winding, so rings are re-oriented both ways.
"""

from __future__ import annotations

from typing import Any

from shapely.errors import ShapelyError
from shapely.geometry import (
    LinearRing,
    LineString,
    MultiLineString,
    MultiPoint,
    MultiPolygon,
    Point,
    Polygon,
    mapping,
    shape,
)
from shapely.geometry.polygon import orient

WGS84 = {"wkid": 4326}

_SUPPORTED_GEOJSON_TYPES = {"Point", "MultiPoint", "LineString", "MultiLineString", "Polygon", "MultiPolygon"}


class GeometryConversionError(ValueError):
    pass


def _as_lists(value: Any) -> Any:
    # shapely's mapping() returns nested tuples.
    if isinstance(value, (list, tuple)):
        return [_as_lists(item) for item in value]
    return value


def _to_geojson(geom) -> dict[str, Any]:
    geojson = dict(mapping(geom))
    geojson["coordinates"] = _as_lists(geojson["coordinates"])
    return geojson


def _coords(geom) -> list[list[float]]:
    return [list(position) for position in geom.coords]


def _esri_rings_to_geom(rings: list[list[list[float]]]):
    outers: list[tuple[LinearRing, list[LinearRing]]] = []
    holes: list[LinearRing] = []

    for raw in rings:
        if len(raw) < 3:
            continue
        ring = LinearRing(raw)
        if ring.is_ccw:
            holes.append(ring)
        else:
            outers.append((ring, []))

    for hole in holes:
        inside = Polygon(hole).representative_point()
        owner = next((entry for entry in outers if Polygon(entry[0]).contains(inside)), None)
        if owner is None:
            # A hole with no enclosing ring is kept as its own polygon.
            outers.append((hole, []))
        else:
            owner[1].append(hole)

    if not outers:
        raise GeometryConversionError("ESRI polygon has no valid rings.")

    polygons = [orient(Polygon(shell, interiors), sign=1.0) for shell, interiors in outers]
    if len(polygons) == 1:
        return polygons[0]
    return MultiPolygon(polygons)


def _esri_geometry_to_geo(geometry: dict[str, Any]) -> dict[str, Any]:
    if "x" in geometry and "y" in geometry:
        if geometry.get("z") is not None:
            return _to_geojson(Point(geometry["x"], geometry["y"], geometry["z"]))
        return _to_geojson(Point(geometry["x"], geometry["y"]))

    if "points" in geometry:
        if not geometry["points"]:
            raise GeometryConversionError("ESRI multipoint has no points.")
        return _to_geojson(MultiPoint(geometry["points"]))

    if "paths" in geometry:
        paths = [path for path in geometry["paths"] if len(path) >= 2]
        if not paths:
            raise GeometryConversionError("ESRI polyline has no valid paths.")
        if len(paths) == 1:
            return _to_geojson(LineString(paths[0]))
        return _to_geojson(MultiLineString(paths))

    if "rings" in geometry:
        return _to_geojson(_esri_rings_to_geom(geometry["rings"]))

    raise GeometryConversionError(f"Unsupported ESRI geometry with keys: {sorted(geometry)}")


def _esri_feature_to_geo(feature: dict[str, Any], id_attribute: str) -> dict[str, Any]:
    geometry = feature.get("geometry")
    attributes = feature.get("attributes") or {}
    out: dict[str, Any] = {
        "type": "Feature",
        "geometry": _esri_geometry_to_geo(geometry) if geometry else None,
        "properties": dict(attributes),
    }
    if id_attribute in attributes:
        out["id"] = attributes[id_attribute]
    return out


def esri_to_geo(esri: dict[str, Any], *, id_attribute: str = "OBJECTID") -> dict[str, Any]:
    if not isinstance(esri, dict):
        raise GeometryConversionError("ESRI input must be a JSON object.")
    try:
        return _esri_to_geo(esri, id_attribute)
    except GeometryConversionError:
        raise
    except (KeyError, IndexError, TypeError, ValueError, AttributeError, ShapelyError) as exc:
        raise GeometryConversionError(f"Malformed ESRI JSON: {exc!s}") from exc


def _esri_to_geo(esri: dict[str, Any], id_attribute: str) -> dict[str, Any]:
    if isinstance(esri.get("features"), list):
        return {
            "type": "FeatureCollection",
            "features": [_esri_feature_to_geo(f, id_attribute) for f in esri["features"]],
        }
    if "attributes" in esri or "geometry" in esri:
        return _esri_feature_to_geo(esri, id_attribute)
    return _esri_geometry_to_geo(esri)


def _polygon_rings(polygon: Polygon) -> list[list[list[float]]]:
    # Outer ring clockwise, holes counter-clockwise.
    oriented = orient(polygon, sign=-1.0)
    return [_coords(oriented.exterior)] + [_coords(ring) for ring in oriented.interiors]


def _geo_geometry_to_esri(geometry: dict[str, Any]) -> dict[str, Any]:
    geo_type = geometry.get("type")
    if geo_type not in _SUPPORTED_GEOJSON_TYPES:
        raise GeometryConversionError(f"Unsupported GeoJSON geometry type: {geo_type!r}")
    if geometry.get("coordinates") is None:
        raise GeometryConversionError(f"GeoJSON {geo_type} has no coordinates.")

    geom = shape(geometry)
    if geom.is_empty:
        raise GeometryConversionError(f"GeoJSON {geo_type} is empty.")

    if geo_type == "Point":
        out: dict[str, Any] = {"x": geom.x, "y": geom.y}
        if geom.has_z:
            out["z"] = geom.z
    elif geo_type == "MultiPoint":
        out = {"points": [_coords(point)[0] for point in geom.geoms]}
    elif geo_type == "LineString":
        out = {"paths": [_coords(geom)]}
    elif geo_type == "MultiLineString":
        out = {"paths": [_coords(line) for line in geom.geoms]}
    else:
        polygons = [geom] if geo_type == "Polygon" else list(geom.geoms)
        out = {"rings": [ring for polygon in polygons for ring in _polygon_rings(polygon)]}

    out["spatialReference"] = dict(WGS84)
    return out


def _geo_feature_to_esri(feature: dict[str, Any], id_attribute: str) -> dict[str, Any]:
    attributes = dict(feature.get("properties") or {})
    if feature.get("id") is not None:
        attributes.setdefault(id_attribute, feature["id"])
    out: dict[str, Any] = {"attributes": attributes}
    if feature.get("geometry"):
        out["geometry"] = _geo_geometry_to_esri(feature["geometry"])
    return out


def geo_to_esri(geojson: dict[str, Any], *, id_attribute: str = "OBJECTID") -> dict[str, Any]:
    if not isinstance(geojson, dict):
        raise GeometryConversionError("GeoJSON input must be a JSON object.")
    try:
        return _geo_to_esri(geojson, id_attribute)
    except GeometryConversionError:
        raise
    except (KeyError, IndexError, TypeError, ValueError, AttributeError, ShapelyError) as exc:
        raise GeometryConversionError(f"Malformed GeoJSON: {exc!s}") from exc


def _geo_to_esri(geojson: dict[str, Any], id_attribute: str) -> dict[str, Any]:
    geo_type = geojson.get("type")
    if geo_type == "FeatureCollection":
        return {
            "features": [_geo_feature_to_esri(f, id_attribute) for f in geojson.get("features", [])],
            "spatialReference": dict(WGS84),
        }
    if geo_type == "Feature":
        return _geo_feature_to_esri(geojson, id_attribute)
    return _geo_geometry_to_esri(geojson)
