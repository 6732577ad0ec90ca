"""Vehicle profiles and their speed encoding."""

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class VehicleProfile:
    """Per-vehicle speed limits.

    Speeds are stored in ``speed_bits`` bits with a step of ``speed_factor``
    kph, which bounds the largest speed an edge can carry.

    Attributes:
        name: Vehicle class name (e.g. "car", "taxi")
        max_speed_kph: Configured top speed of the vehicle class
        speed_bits: Bits available to store a speed
        speed_factor: Speed resolution in kph
    """

    name: str
    max_speed_kph: float
    speed_bits: int = 5
    speed_factor: float = 5.0

    @property
    def max_storable_speed_kph(self) -> float:
        return ((1 << self.speed_bits) - 1) * self.speed_factor

    def next_storable_speed(self, speed_kph: float) -> float:
        """Smallest storable speed that is >= ``speed_kph``."""
        steps = math.ceil(speed_kph / self.speed_factor)
        return min(steps * self.speed_factor, self.max_storable_speed_kph)

    def store_speed(self, speed_kph: float) -> float:
        """Round a speed to the encoding resolution, clamped to the storable range."""
        if speed_kph <= 0:
            return 0.0
        stored = round(speed_kph / self.speed_factor) * self.speed_factor
        return min(max(stored, self.speed_factor), self.max_storable_speed_kph)

    @property
    def speed_cap_kph(self) -> float:
        """Highest speed an edge may be assigned for this vehicle."""
        return min(self.next_storable_speed(self.max_speed_kph), self.max_storable_speed_kph)


CAR = VehicleProfile(name="car", max_speed_kph=140.0)
TAXI = VehicleProfile(name="taxi", max_speed_kph=100.0)

PROFILES: dict[str, VehicleProfile] = {profile.name: profile for profile in (CAR, TAXI)}


def get_profile(name: str) -> VehicleProfile:
    """Look up a profile by vehicle name.

    Raises:
        ValueError: If the vehicle is unknown
    """
    try:
        return PROFILES[name]
    except KeyError:
        raise ValueError(f"Unknown vehicle: {name}") from None
