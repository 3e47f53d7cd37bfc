"""Fixed rate table for order pricing"""

from dataclasses import dataclass

from ...config import MAX_WATER_QUANTITY, SEPTIC_PRICE_PER_TRIP, WATER_PRICE_PER_CUBIC_METER
from ...constants import SEPTIC, WATER
from ...errors import ValidationError


@dataclass(frozen=True)
class RateTable:
    water_per_cubic_meter: int = 1300
    septic_per_trip: int = 4000
    max_water_quantity: int = 20

    @classmethod
    def from_config(cls) -> "RateTable":
        return cls(
            water_per_cubic_meter=WATER_PRICE_PER_CUBIC_METER,
            septic_per_trip=SEPTIC_PRICE_PER_TRIP,
            max_water_quantity=MAX_WATER_QUANTITY,
        )


def normalize_quantity(service_type: str, quantity, rates: RateTable) -> int:
    """Water is sold per cubic metre; septic is always a single trip"""
    if service_type == SEPTIC:
        return 1
    if service_type != WATER:
        raise ValidationError(f"Unknown service type: {service_type}")
    if quantity is None:
        raise ValidationError("Quantity is required")
    if isinstance(quantity, bool) or int(quantity) != quantity or quantity < 1:
        raise ValidationError("Quantity must be a positive whole number")
    if quantity > rates.max_water_quantity:
        raise ValidationError(f"Quantity cannot exceed {rates.max_water_quantity} m³")
    return int(quantity)


def compute_price(service_type: str, quantity: int, rates: RateTable) -> int:
    if service_type == WATER:
        return rates.water_per_cubic_meter * quantity
    if service_type == SEPTIC:
        return rates.septic_per_trip
    raise ValidationError(f"Unknown service type: {service_type}")
