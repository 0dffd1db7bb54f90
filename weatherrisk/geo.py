import math
from typing import List, Sequence, Tuple

EARTH_RADIUS_M = 6371000.0


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in meters between two lat/lon points."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def decode_polyline(polyline_str: str, precision: int = 5) -> List[Tuple[float, float]]:
    """
    Decode a polyline string (encoded by Google's polyline algorithm).
    Returns list of (lat, lon) tuples.
    """
    inv = 1.0 / (10 ** precision)
    decoded = []
    previous = [0, 0]
    i = 0

    while i < len(polyline_str):
        ll = [0, 0]
        for j in [0, 1]:
            shift = 0
            result = 0
            while True:
                if i >= len(polyline_str):
                    raise ValueError("Truncated polyline string")
                byte_val = ord(polyline_str[i]) - 63
                i += 1
                result |= (byte_val & 0x1f) << shift
                shift += 5
                if not (byte_val & 0x20):
                    break

            if result & 1:
                ll[j] = previous[j] + ~(result >> 1)
            else:
                ll[j] = previous[j] + (result >> 1)
            previous[j] = ll[j]

        decoded.append((ll[0] * inv, ll[1] * inv))

    return decoded


def cumulative_lengths(points: Sequence[Tuple[float, float]]) -> List[float]:
    """Running great-circle length (meters) at every vertex; first entry is 0."""
    lengths = [0.0]
    for (lat1, lon1), (lat2, lon2) in zip(points, points[1:]):
        lengths.append(lengths[-1] + haversine_m(lat1, lon1, lat2, lon2))
    return lengths


def interpolate_along(
    points: Sequence[Tuple[float, float]],
    lengths: Sequence[float],
    fraction: float,
) -> Tuple[float, float]:
    """
    Position at `fraction` (0..1) of the polyline's length.

    Interpolation inside a segment is linear in lat/lon, which is fine for the
    short segments a routing engine returns. Degenerate polylines (zero total
    length) are walked by vertex index instead.
    """
    fraction = min(max(fraction, 0.0), 1.0)
    if fraction >= 1.0:
        return points[-1]
    total = lengths[-1]
    if total <= 0:
        idx = int(round(fraction * (len(points) - 1)))
        return points[idx]

    target = fraction * total
    for k in range(1, len(points)):
        if lengths[k] >= target:
            seg = lengths[k] - lengths[k - 1]
            t = 0.0 if seg <= 0 else (target - lengths[k - 1]) / seg
            lat1, lon1 = points[k - 1]
            lat2, lon2 = points[k]
            return (lat1 + (lat2 - lat1) * t, lon1 + (lon2 - lon1) * t)
    return points[-1]
