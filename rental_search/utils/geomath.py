# rental_search/utils/geomath.py

"""Great-circle distance and slippy-map pixel projection helpers.

The projection functions follow the Web-Mercator tile scheme used by
Google Maps and OpenStreetMap: the world is ``2**zoom`` tiles of 256
pixels on each side.  They are only meaningful for latitudes strictly
inside (-85, 85) degrees.
"""

import math

EARTH_RADIUS_KM = 6371.0
TILE_SIZE = 256


def haversine(
    lat1: float, lon1: float, lat2: float, lon2: float,
) -> float:
    """Return the great-circle distance between two points in km."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)

    a = (
        math.sin(d_lat / 2) ** 2
        + math.sin(d_lon / 2) ** 2
        * math.cos(phi1)
        * math.cos(phi2)
    )
    # Rounding can push ``a`` a hair past 1 for antipodal points
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(min(a, 1.0)))


def coordinate_to_pixel(
    lat: float, lon: float, zoom: float,
) -> tuple[float, float]:
    """Project a coordinate to absolute world-pixel space at ``zoom``."""
    scale = 2 ** zoom
    lat_rad = math.radians(lat)

    tile_x = (lon + 180.0) / 360.0 * scale
    tile_y = (
        (1.0 - math.log(math.tan(lat_rad) + 1.0 / math.cos(lat_rad)) / math.pi)
        / 2.0
        * scale
    )
    return tile_x * TILE_SIZE, tile_y * TILE_SIZE


def pixel_to_coordinate(
    x: float, y: float, zoom: float,
) -> tuple[float, float]:
    """Invert :func:`coordinate_to_pixel`."""
    scale = 2 ** zoom
    tile_x = x / TILE_SIZE
    tile_y = y / TILE_SIZE

    lon = tile_x / scale * 360.0 - 180.0
    lat_rad = math.atan(math.sinh(math.pi * (1.0 - 2.0 * tile_y / scale)))
    return math.degrees(lat_rad), lon


def pixel_offset_to_coordinate(
    offset_x: float,
    offset_y: float,
    center_lat: float,
    center_lon: float,
    zoom: float,
) -> tuple[float, float]:
    """Recover the coordinate of a point drawn ``offset`` px from a map center.

    Positive ``offset_x`` is east and positive ``offset_y`` is south,
    matching CSS ``left``/``top`` offsets on a rendered map.
    """
    center_x, center_y = coordinate_to_pixel(center_lat, center_lon, zoom)
    return pixel_to_coordinate(
        center_x + offset_x, center_y + offset_y, zoom
    )
