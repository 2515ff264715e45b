"""Coordinate transformations.

This sub-module provides functions for converting between the coordinate
representations used by the propagator:

- **Keplerian**: orbital elements ``[a, e, i, ω, Ω, θ]`` ↔ inertial Cartesian
- **Spherical**: ``[r, colatitude, longitude]`` ↔ Cartesian, and the
  spherical-to-Cartesian component rotation
"""

from .keplerian import (
    state_eci_to_koe,
    state_koe_to_eci,
)
from .spherical import (
    position_cartesian_to_spherical,
    position_spherical_to_cartesian,
    rotation_spherical_to_cartesian,
)

__all__ = [
    "state_koe_to_eci",
    "state_eci_to_koe",
    "position_cartesian_to_spherical",
    "position_spherical_to_cartesian",
    "rotation_spherical_to_cartesian",
]
