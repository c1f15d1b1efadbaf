"""
Distance-based delivery fee.

The fee is a base amount plus a per-kilometre rate on the haversine
distance between restaurant and drop-off, never below the minimum fee.
When either end has no coordinates the base fee applies.
"""
import math
from decimal import Decimal, ROUND_HALF_UP
from django.conf import settings

from core.exceptions import InvalidInput
from core.utils.money import CENTS
from delivery.assignment import calculate_distance
from delivery.services import parse_coordinate


def _money_setting(name, default):
    return Decimal(str(getattr(settings, name, default)))


def calculate_delivery_fee(distance_km):
    base = _money_setting('DELIVERY_BASE_FEE', 15)
    per_km = _money_setting('DELIVERY_FEE_PER_KM', 5)
    minimum = _money_setting('DELIVERY_MIN_FEE', 10)

    fee = base + Decimal(str(distance_km)) * per_km
    return max(fee, minimum).quantize(CENTS, rounding=ROUND_HALF_UP)


def estimate_delivery_minutes(distance_km):
    speed = float(getattr(settings, 'DELIVERY_AVERAGE_SPEED_KMH', 25))
    return math.ceil(float(distance_km) / speed * 60)


def quote_delivery(restaurant, latitude=None, longitude=None):
    """
    Returns {'distance_km', 'delivery_fee', 'estimated_minutes'} for a
    delivery from restaurant to (latitude, longitude). distance_km and
    estimated_minutes are None when the distance cannot be measured.
    """
    if latitude is None and longitude is None:
        origin = None
    elif latitude is None or longitude is None:
        raise InvalidInput('Both delivery latitude and longitude are required')
    else:
        latitude = parse_coordinate(latitude, 'latitude', 90)
        longitude = parse_coordinate(longitude, 'longitude', 180)
        origin = restaurant.get_coordinates()

    if origin is None:
        return {
            'distance_km': None,
            'delivery_fee': calculate_delivery_fee(0),
            'estimated_minutes': None,
        }

    distance = round(calculate_distance(origin[0], origin[1], latitude, longitude), 2)
    return {
        'distance_km': Decimal(str(distance)).quantize(CENTS),
        'delivery_fee': calculate_delivery_fee(distance),
        'estimated_minutes': estimate_delivery_minutes(distance),
    }
