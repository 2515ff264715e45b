"""Orbit dynamics force models.

Provides the gravitational force models and equations of motion used for
orbit propagation:

- **Gravity**: point-mass and J2 zonal-harmonic accelerations
- **Equations of motion**: first-order state derivative and the
  ``dynamics(t, state)`` factory consumed by the integrators
"""

from .factory import create_orbit_dynamics, orbit_derivative
from .gravity import (
    GravityModel,
    accel_field,
    accel_j2,
    accel_j2_cartesian,
    accel_point_mass,
)

__all__ = [
    # Gravity
    "GravityModel",
    "accel_point_mass",
    "accel_j2",
    "accel_j2_cartesian",
    "accel_field",
    # Equations of motion
    "orbit_derivative",
    "create_orbit_dynamics",
]
