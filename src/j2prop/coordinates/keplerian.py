"""Keplerian orbital element ↔ inertial Cartesian state vector conversions.

Converts between osculating Keplerian orbital elements
``[a, e, i, omega, RAAN, theta]`` and inertial Cartesian state vectors
``[x, y, z, vx, vy, vz]``.

Element ordering:

| Index | Element                        | Units         |
|-------|--------------------------------|---------------|
| 0     | *a*: semi-major axis           | m             |
| 1     | *e*: eccentricity              | dimensionless |
| 2     | *i*: inclination               | rad           |
| 3     | *ω*: argument of perigee       | rad           |
| 4     | *Ω*: right ascension (RAAN)    | rad           |
| 5     | *θ*: true anomaly              | rad           |

Angles are in radians unless ``use_degrees=True``.  Only elliptical orbits
(``0 <= e < 1``, ``a > 0``) are supported; other inputs are not validated.

Degenerate geometries follow the usual conventions: for equatorial orbits
the RAAN is set to zero and the node line is the x-axis, and for circular
orbits the argument of perigee is set to zero so the true anomaly becomes
the argument of latitude (or true longitude when also equatorial).

References:
    1. O. Montenbruck and E. Gill, *Satellite Orbits: Models, Methods
       and Applications*, Springer, 2012, Sec. 2.2.
    2. H. D. Curtis, *Orbital Mechanics for Engineering Students*,
       2014, Algorithms 4.2 and 4.5.
"""

from __future__ import annotations

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from j2prop.config import get_dtype
from j2prop.constants import GM_EARTH

# Below these thresholds the orbit is treated as circular / equatorial.
_CIRCULAR_TOL = 1e-11
_EQUATORIAL_TOL = 1e-11


def state_koe_to_eci(
    x_oe: ArrayLike,
    gm: float = GM_EARTH,
    use_degrees: bool = False,
) -> Array:
    """Convert Keplerian orbital elements to an inertial Cartesian state.

    Builds the position and velocity in the perifocal frame from the true
    anomaly and rotates them with the perifocal P and Q unit vectors
    (Montenbruck & Gill Eq. 2.43).

    Args:
        x_oe: Orbital elements ``[a, e, i, omega, RAAN, theta]``.
            Semi-major axis in *m*, angles in *rad* (or *deg* if
            ``use_degrees=True``).
        gm: Gravitational parameter of the central body [m^3/s^2].
        use_degrees: If ``True``, interpret angular elements as degrees.

    Returns:
        Inertial state ``[x, y, z, vx, vy, vz]`` in *m* and *m/s*.

    Examples:
        ```python
        import jax.numpy as jnp
        from j2prop.coordinates import state_koe_to_eci
        oe = jnp.array([7000e3, 0.0, 0.0, 0.0, 0.0, 0.0])
        state = state_koe_to_eci(oe)
        state.shape
        ```
    """
    x_oe = jnp.asarray(x_oe, dtype=get_dtype())

    a = x_oe[0]
    e = x_oe[1]
    i = x_oe[2]
    omega = x_oe[3]
    raan = x_oe[4]
    theta = x_oe[5]

    if use_degrees:
        i = jnp.deg2rad(i)
        omega = jnp.deg2rad(omega)
        raan = jnp.deg2rad(raan)
        theta = jnp.deg2rad(theta)

    # Perifocal unit vectors (Montenbruck & Gill Eq. 2.43)
    cos_o = jnp.cos(omega)
    sin_o = jnp.sin(omega)
    cos_R = jnp.cos(raan)
    sin_R = jnp.sin(raan)
    cos_i = jnp.cos(i)
    sin_i = jnp.sin(i)

    P = jnp.array(
        [
            cos_o * cos_R - sin_o * cos_i * sin_R,
            cos_o * sin_R + sin_o * cos_i * cos_R,
            sin_o * sin_i,
        ]
    )

    Q = jnp.array(
        [
            -sin_o * cos_R - cos_o * cos_i * sin_R,
            -sin_o * sin_R + cos_o * cos_i * cos_R,
            cos_o * sin_i,
        ]
    )

    # Semi-latus rectum and orbital radius from the conic equation
    p = a * (1.0 - e * e)
    cos_t = jnp.cos(theta)
    sin_t = jnp.sin(theta)
    r_mag = p / (1.0 + e * cos_t)

    r_vec = r_mag * (cos_t * P + sin_t * Q)
    v_vec = jnp.sqrt(gm / p) * (-sin_t * P + (e + cos_t) * Q)

    return jnp.concatenate([r_vec, v_vec])


def state_eci_to_koe(
    x_cart: ArrayLike,
    gm: float = GM_EARTH,
    use_degrees: bool = False,
) -> Array:
    """Convert an inertial Cartesian state to Keplerian orbital elements.

    Derives the osculating elements from the angular momentum, node, and
    eccentricity vectors.  Angles are measured in the orbital plane from
    the ascending node, which makes the result well defined for circular
    and equatorial orbits.

    Args:
        x_cart: Inertial state ``[x, y, z, vx, vy, vz]`` in *m* and *m/s*.
        gm: Gravitational parameter of the central body [m^3/s^2].
        use_degrees: If ``True``, return angular elements in degrees.

    Returns:
        Orbital elements ``[a, e, i, omega, RAAN, theta]``.
            Semi-major axis in *m*, angles in *rad* (or *deg*) in
            ``[0, 2pi)`` (``[0, 360)``), inclination in ``[0, pi]``.

    Examples:
        ```python
        import jax.numpy as jnp
        from j2prop.constants import GM_EARTH
        from j2prop.coordinates import state_eci_to_koe
        sma = 7000e3
        v_circ = jnp.sqrt(GM_EARTH / sma)
        state = jnp.array([sma, 0.0, 0.0, 0.0, v_circ, 0.0])
        oe = state_eci_to_koe(state)
        ```
    """
    x_cart = jnp.asarray(x_cart, dtype=get_dtype())

    r = x_cart[:3]
    v = x_cart[3:6]

    r_mag = jnp.linalg.norm(r)
    v_mag = jnp.linalg.norm(v)

    # Angular momentum
    h = jnp.cross(r, v)
    h_mag = jnp.linalg.norm(h)
    W = h / h_mag

    # Inclination
    sin_i = jnp.sqrt(W[0] * W[0] + W[1] * W[1])
    i = jnp.arctan2(sin_i, W[2])

    # Right ascension of ascending node, zero for equatorial orbits
    equatorial = sin_i < _EQUATORIAL_TOL
    raan = jnp.where(equatorial, 0.0, jnp.arctan2(W[0], -W[1]))

    # In-plane reference axes: node line N and its in-plane normal W x N
    N = jnp.array([jnp.cos(raan), jnp.sin(raan), 0.0])
    M = jnp.cross(W, N)

    # Semi-major axis (vis-viva)
    a = 1.0 / (2.0 / r_mag - v_mag * v_mag / gm)

    # Eccentricity vector
    e_vec = ((v_mag * v_mag - gm / r_mag) * r - jnp.dot(r, v) * v) / gm
    ecc = jnp.linalg.norm(e_vec)

    # Argument of perigee, zero for circular orbits
    circular = ecc < _CIRCULAR_TOL
    omega = jnp.where(
        circular, 0.0, jnp.arctan2(jnp.dot(e_vec, M), jnp.dot(e_vec, N))
    )

    # Argument of latitude and true anomaly
    u = jnp.arctan2(jnp.dot(r, M), jnp.dot(r, N))
    theta = u - omega

    # Normalize angles to [0, 2pi)
    two_pi = 2.0 * jnp.pi
    raan = jnp.mod(raan, two_pi)
    omega = jnp.mod(omega, two_pi)
    theta = jnp.mod(theta, two_pi)

    if use_degrees:
        i = jnp.rad2deg(i)
        omega = jnp.rad2deg(omega)
        raan = jnp.rad2deg(raan)
        theta = jnp.rad2deg(theta)

    return jnp.array([a, ecc, i, omega, raan, theta])
