"""
Campsite Inventory - Read side of the campsite table for duplicate matching.

records_near() narrows the table with a lat/lng bounding box (served by
ix_campsites_lat_lng); the matcher then applies the exact haversine radius.
A box that crosses the antimeridian is queried as two longitude ranges.
"""
from math import cos, radians
from typing import List, Tuple

from sqlalchemy import or_

from models.campsite import Campsite
from models.database import db
from services.duplicate_matcher import InventoryRecord


METERS_PER_DEGREE_LAT = 111320.0


def bounding_box(lat: float, lng: float, radius_meters: float):
    """Return (min_lat, max_lat, min_lng, max_lng) enclosing the radius.

    Longitudes are not wrapped; see longitude_ranges().
    """
    lat_delta = radius_meters / METERS_PER_DEGREE_LAT
    cos_lat = max(abs(cos(radians(lat))), 1e-6)
    lng_delta = min(180.0, radius_meters / (METERS_PER_DEGREE_LAT * cos_lat))
    return lat - lat_delta, lat + lat_delta, lng - lng_delta, lng + lng_delta


def longitude_ranges(min_lng: float, max_lng: float) -> List[Tuple[float, float]]:
    """
    Split an unwrapped longitude span into ranges inside [-180, 180].

    (179.9, 180.1) -> [(179.9, 180.0), (-180.0, -179.9)]
    """
    if max_lng - min_lng >= 360.0:
        return [(-180.0, 180.0)]
    if min_lng < -180.0:
        return [(-180.0, max_lng), (min_lng + 360.0, 180.0)]
    if max_lng > 180.0:
        return [(min_lng, 180.0), (-180.0, max_lng - 360.0)]
    return [(min_lng, max_lng)]


def to_inventory_record(campsite: Campsite) -> InventoryRecord:
    return InventoryRecord(
        id=campsite.id,
        name=campsite.name,
        latitude=campsite.latitude,
        longitude=campsite.longitude,
        phone=campsite.phone,
        website=campsite.website,
    )


def records_near(lat: float, lng: float, radius_meters: float, session=None) -> List[InventoryRecord]:
    """
    Active campsites inside the bounding box around (lat, lng).

    The box is a superset of the radius; callers must still filter by
    haversine distance (find_duplicates does).
    """
    session = session or db.session
    min_lat, max_lat, min_lng, max_lng = bounding_box(lat, lng, radius_meters)
    lng_filter = or_(*[
        Campsite.longitude.between(lo, hi)
        for lo, hi in longitude_ranges(min_lng, max_lng)
    ])

    rows = (
        session.query(Campsite)
        .filter(
            Campsite.is_active.is_(True),
            Campsite.latitude.between(min_lat, max_lat),
            lng_filter,
        )
        .order_by(Campsite.id)
        .all()
    )
    return [to_inventory_record(row) for row in rows]
