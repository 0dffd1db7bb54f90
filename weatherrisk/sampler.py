"""
Route sampler: turns a RoutePlan into timed points along the route.

ETA model is linear: point i of n is reached at
    departure + duration * i / (n - 1)
and sits at distance
    distance * i / (n - 1)
from the start. Variable speed per road segment is not modelled.
"""

import logging
from datetime import timedelta
from typing import List, Optional

from . import config
from .errors import InvalidRouteError
from .geo import cumulative_lengths, interpolate_along
from .models import Coordinate, RoutePlan, TimelinePoint

logger = logging.getLogger(__name__)


def validate_route(route: RoutePlan) -> None:
    if len(route.coordinates) < 2:
        raise InvalidRouteError(
            f"Route needs at least 2 coordinates, got {len(route.coordinates)}"
        )
    if route.duration_s <= 0:
        raise InvalidRouteError(f"Route duration must be positive, got {route.duration_s}")
    if route.distance_m <= 0:
        raise InvalidRouteError(f"Route distance must be positive, got {route.distance_m}")


def default_point_count(route: RoutePlan, max_points: Optional[int] = None) -> int:
    """One point per geometry vertex, capped at max_points and never below 2."""
    cap = max_points if max_points is not None else config.MAX_TIMELINE_POINTS
    return max(2, min(len(route.coordinates), cap))


def sample(route: RoutePlan, point_count: Optional[int] = None) -> List[TimelinePoint]:
    validate_route(route)
    n = point_count if point_count is not None else default_point_count(route)
    if n < 2:
        raise InvalidRouteError(f"point_count must be at least 2, got {n}")
    if n > config.MAX_TIMELINE_POINTS:
        raise InvalidRouteError(
            f"point_count must be at most {config.MAX_TIMELINE_POINTS}, got {n}"
        )

    vertices = [c.as_tuple() for c in route.coordinates]
    lengths = cumulative_lengths(vertices)

    points: List[TimelinePoint] = []
    for i in range(n):
        fraction = i / (n - 1)
        lat, lon = interpolate_along(vertices, lengths, fraction)
        points.append(
            TimelinePoint(
                index=i,
                coordinate=Coordinate(lat=lat, lon=lon),
                estimated_time=route.departure_time + timedelta(seconds=route.duration_s * fraction),
                distance_from_start=route.distance_m * fraction,
            )
        )

    logger.debug(
        f"Sampled {n} points over {route.distance_m:.0f} m / {route.duration_s:.0f} s"
    )
    return points
