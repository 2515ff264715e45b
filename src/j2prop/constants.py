"""
The `constants` module defines the mathematical and physical constants used by the J2 propagation model.
"""

from jax.numpy import pi as PI

# Mathematical Constants
"""
Constant to convert degrees to radians. Equal to 2pi/360. Units: *rad/deg*
"""
DEG2RAD = 2.0 * PI / 360.0

"""
Constant to convert radians to degrees. Equal to 360/2pi. Units: *deg/rad*
"""
RAD2DEG = 360.0 / (PI * 2.0)

# Earth Constants
"""
Earth's gravitational parameter. [m^3/s^2]

References:

1. NIMA Technical Report TR8350.2 (WGS84, EGM96 value)
"""
GM_EARTH = 3.986004418e14  # [m^3/s^2]

"""
Earth's mean radius, used as the reference radius of the J2 potential. [m]

References:

1. IUGG mean Earth radius
"""
R_EARTH_MEAN = 6371900.0  # [m]

"""
Earth's second zonal harmonic (oblateness). [dimensionless]
"""
J2_EARTH = 1.082629e-3  # []

# Integration Constants
"""
Absolute error tolerance applied to every state component during orbit
propagation. Units: *m* for position, *m/s* for velocity.
"""
DEFAULT_ABS_TOL = 1e-8

# Dynamics Constants
"""
Fraction of the gravity model's reference radius inside which the orbit
equations of motion treat the state as a collision with the centre of
attraction and return a non-finite derivative. [dimensionless]
"""
SINGULAR_RADIUS_FRACTION = 1e-3  # []
