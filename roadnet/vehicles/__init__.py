"""Vehicle profiles and access policies."""

from roadnet.vehicles.access import (
    AccessDecision,
    AccessPolicy,
    AccessPolicyError,
    CarAccessPolicy,
    WayClassification,
)
from roadnet.vehicles.profiles import CAR, TAXI, VehicleProfile, get_profile
from roadnet.vehicles.taxi import TaxiAccessPolicy


def create_policy(vehicle: str) -> AccessPolicy:
    """Build the access policy for a vehicle name.

    Raises:
        ValueError: If the vehicle is unknown
    """
    if vehicle == TAXI.name:
        return TaxiAccessPolicy()
    if vehicle == CAR.name:
        return CarAccessPolicy()
    raise ValueError(f"Unknown vehicle: {vehicle}")


__all__ = [
    "CAR",
    "TAXI",
    "AccessDecision",
    "AccessPolicy",
    "AccessPolicyError",
    "CarAccessPolicy",
    "TaxiAccessPolicy",
    "VehicleProfile",
    "WayClassification",
    "create_policy",
    "get_profile",
]
