"""Keplerian orbital mechanics functions.

This sub-module provides functions for:

- **Orbital period and mean motion**: computing period from semi-major
  axis or state vectors.
- **Integrals of motion**: specific orbital energy and specific angular
  momentum of a Cartesian state.
"""

from .keplerian import (
    mean_motion,
    orbital_period,
    orbital_period_from_state,
    specific_angular_momentum,
    specific_orbital_energy,
)

__all__ = [
    "orbital_period",
    "orbital_period_from_state",
    "mean_motion",
    "specific_orbital_energy",
    "specific_angular_momentum",
]
