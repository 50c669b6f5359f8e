import math

EARTH_RADIUS_METERS = 6371000


def haversine_meters(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance between two WGS84 points, in meters."""
    lat1_rad, lat2_rad = math.radians(lat1), math.radians(lat2)
    dlat = lat2_rad - lat1_rad
    dlng = math.radians(lng2 - lng1)

    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlng / 2) ** 2
    )
    return EARTH_RADIUS_METERS * 2 * math.asin(math.sqrt(a))


def is_within_radius(
    center_lat: float,
    center_lng: float,
    radius_meters: float,
    lat: float,
    lng: float,
) -> bool:
    return haversine_meters(center_lat, center_lng, lat, lng) <= radius_meters
