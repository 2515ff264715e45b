"""
j2prop propagates orbits under two-body gravity with the J2 oblateness perturbation, implemented in JAX.
"""

from .constants import (
    DEG2RAD,
    RAD2DEG,
    GM_EARTH,
    R_EARTH_MEAN,
    J2_EARTH,
    DEFAULT_ABS_TOL,
    SINGULAR_RADIUS_FRACTION,
)

from .config import set_dtype, get_dtype

from .coordinates import (
    state_koe_to_eci,
    state_eci_to_koe,
    position_cartesian_to_spherical,
    position_spherical_to_cartesian,
    rotation_spherical_to_cartesian,
)

from .orbits import (
    orbital_period,
    orbital_period_from_state,
    mean_motion,
    specific_orbital_energy,
    specific_angular_momentum,
)

from .orbit_dynamics import (
    GravityModel,
    accel_point_mass,
    accel_j2,
    accel_j2_cartesian,
    accel_field,
    orbit_derivative,
    create_orbit_dynamics,
)

from .integrators import (
    StepResult,
    AdaptiveConfig,
    IntegrationResult,
    IntegrationStatus,
    dp54_step,
    integrate,
    check_integration,
)

from .propagator import PropagationResult, propagate

__all__ = [
    # Constants
    "DEG2RAD",
    "RAD2DEG",
    "GM_EARTH",
    "R_EARTH_MEAN",
    "J2_EARTH",
    "DEFAULT_ABS_TOL",
    "SINGULAR_RADIUS_FRACTION",
    # Config
    "set_dtype",
    "get_dtype",
    # Coordinates
    "state_koe_to_eci",
    "state_eci_to_koe",
    "position_cartesian_to_spherical",
    "position_spherical_to_cartesian",
    "rotation_spherical_to_cartesian",
    # Orbits
    "orbital_period",
    "orbital_period_from_state",
    "mean_motion",
    "specific_orbital_energy",
    "specific_angular_momentum",
    # Orbit Dynamics
    "GravityModel",
    "accel_point_mass",
    "accel_j2",
    "accel_j2_cartesian",
    "accel_field",
    "orbit_derivative",
    "create_orbit_dynamics",
    # Integrators
    "StepResult",
    "AdaptiveConfig",
    "IntegrationResult",
    "IntegrationStatus",
    "dp54_step",
    "integrate",
    "check_integration",
    # Propagation
    "PropagationResult",
    "propagate",
]
