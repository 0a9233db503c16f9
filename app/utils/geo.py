# app/utils/geo.py
import math
from typing import Optional, Dict

EARTH_RADIUS_KM = 6371

def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """두 좌표 사이의 대원 거리(km)를 Haversine 공식으로 계산합니다."""
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (math.sin(d_lat / 2) ** 2
         + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c

def distance_between(a: Optional[Dict[str, float]], b: Optional[Dict[str, float]]) -> Optional[float]:
    """{'lat', 'lng'} 형식의 두 위치 사이 거리. 어느 한쪽이라도 없으면 None."""
    if not a or not b:
        return None
    try:
        return haversine_km(float(a['lat']), float(a['lng']), float(b['lat']), float(b['lng']))
    except (KeyError, TypeError, ValueError):
        return None

def is_within_radius(a: Optional[Dict[str, float]], b: Optional[Dict[str, float]], radius_km: float) -> bool:
    distance = distance_between(a, b)
    return distance is not None and distance <= radius_km
