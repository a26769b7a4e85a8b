from __future__ import annotations

import pytest

from citygeo.app import request_utils
from citygeo.app.geometry import GeometryConversionError, esri_to_geo, geo_to_esri

# Clockwise outer ring with a counter-clockwise hole, as ArcGIS returns them.
_OUTER_CW = [[0, 0], [0, 10], [10, 10], [10, 0], [0, 0]]
_HOLE_CCW = [[2, 2], [4, 2], [4, 4], [2, 4], [2, 2]]
_SECOND_OUTER_CW = [[20, 20], [20, 30], [30, 30], [30, 20], [20, 20]]


def _is_ccw(ring):
    area = sum((x2 - x1) * (y2 + y1) for (x1, y1), (x2, y2) in zip(ring, ring[1:]))
    return area < 0


def test_esri_point():
    assert esri_to_geo({"x": -89.38, "y": 43.07, "spatialReference": {"wkid": 4326}}) == {
        "type": "Point",
        "coordinates": [-89.38, 43.07],
    }


def test_esri_multipoint_and_polyline():
    assert esri_to_geo({"points": [[1, 2], [3, 4]]})["type"] == "MultiPoint"
    assert esri_to_geo({"paths": [[[1, 2], [3, 4]]]}) == {
        "type": "LineString",
        "coordinates": [[1, 2], [3, 4]],
    }
    assert esri_to_geo({"paths": [[[1, 2], [3, 4]], [[5, 6], [7, 8]]]})["type"] == "MultiLineString"


def test_esri_polygon_with_hole():
    result = esri_to_geo({"rings": [_OUTER_CW, _HOLE_CCW]})

    assert result["type"] == "Polygon"
    outer, hole = result["coordinates"]
    assert _is_ccw(outer)
    assert not _is_ccw(hole)


def test_esri_two_outer_rings_become_multipolygon():
    result = esri_to_geo({"rings": [_OUTER_CW, _SECOND_OUTER_CW, _HOLE_CCW]})

    assert result["type"] == "MultiPolygon"
    assert len(result["coordinates"]) == 2
    assert len(result["coordinates"][0]) == 2
    assert len(result["coordinates"][1]) == 1


def test_esri_feature_set():
    feature_set = {
        "features": [
            {
                "attributes": {"OBJECTID": 7, "GEOID": "55025001704"},
                "geometry": {"rings": [_OUTER_CW]},
            }
        ]
    }

    result = esri_to_geo(feature_set)

    assert result["type"] == "FeatureCollection"
    feature = result["features"][0]
    assert feature["id"] == 7
    assert feature["properties"]["GEOID"] == "55025001704"
    assert feature["geometry"]["type"] == "Polygon"


def test_geojson_polygon_to_esri_rings_clockwise():
    ccw_outer = list(reversed(_OUTER_CW))

    result = geo_to_esri({"type": "Polygon", "coordinates": [ccw_outer, list(reversed(_HOLE_CCW))]})

    outer, hole = result["rings"]
    assert not _is_ccw(outer)
    assert _is_ccw(hole)
    assert result["spatialReference"] == {"wkid": 4326}


def test_geojson_feature_to_esri_keeps_id():
    feature = {
        "type": "Feature",
        "id": 3,
        "geometry": {"type": "Point", "coordinates": [-89.38, 43.07]},
        "properties": {"name": "Capitol"},
    }

    result = geo_to_esri(feature)

    assert result["attributes"] == {"name": "Capitol", "OBJECTID": 3}
    assert result["geometry"]["x"] == -89.38


def test_polygon_survives_both_directions():
    esri = {"rings": [_OUTER_CW, _HOLE_CCW]}
    assert geo_to_esri(esri_to_geo(esri))["rings"] == [_OUTER_CW, _HOLE_CCW]


@pytest.mark.parametrize(
    "payload",
    [{"type": "GeometryCollection", "geometries": []}, {"type": "Point", "coordinates": None}],
)
def test_unsupported_geojson_raises(payload):
    with pytest.raises(GeometryConversionError):
        geo_to_esri(payload)


def test_unsupported_esri_raises():
    with pytest.raises(GeometryConversionError):
        esri_to_geo({"curveRings": []})


def test_request_utils_delegates():
    assert request_utils.esri_to_geo({"x": 1, "y": 2}) == esri_to_geo({"x": 1, "y": 2})
    point = {"type": "Point", "coordinates": [1, 2]}
    assert request_utils.geo_to_esri(point) == geo_to_esri(point)


@pytest.mark.parametrize(
    "esri",
    [
        {"rings": []},
        {"rings": [[[0, 0], [1, 1]]]},
        {"paths": []},
        {"points": []},
    ],
)
def test_esri_without_usable_parts_raises(esri):
    with pytest.raises(GeometryConversionError):
        esri_to_geo(esri)


def test_esri_degenerate_ring_is_skipped():
    result = esri_to_geo({"rings": [[[5, 5], [6, 6]], _OUTER_CW]})
    assert result["type"] == "Polygon"
    assert len(result["coordinates"]) == 1
