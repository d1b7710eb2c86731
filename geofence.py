from dataclasses import dataclass

from haversine import Unit, haversine

import constants


@dataclass(frozen=True)
class GeofenceResult:
    within: bool
    distance_meters: float
    radius_meters: float

    @property
    def distance_to_boundary_meters(self) -> float:
        return max(0.0, self.distance_meters - self.radius_meters)


def check_geofence(latitude: float, longitude: float, center=None, radius_meters: float = None) -> GeofenceResult:
    """Is (latitude, longitude) inside the campus circle? Distance is great-circle, in meters."""
    if not -90 <= latitude <= 90 or not -180 <= longitude <= 180:
        raise ValueError("Coordinates out of range")
    center = center or (constants.CAMPUS_LATITUDE, constants.CAMPUS_LONGITUDE)
    radius = constants.CAMPUS_RADIUS_METERS if radius_meters is None else radius_meters
    distance = haversine(center, (latitude, longitude), unit=Unit.METERS)
    return GeofenceResult(within=distance <= radius, distance_meters=round(distance, 2), radius_meters=radius)
