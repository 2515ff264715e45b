"""Keplerian orbital quantities.

Orbital period and mean motion from the semi-major axis, plus the
two-body integrals of motion (specific orbital energy and specific
angular momentum) used to check propagation quality.

All functions use JAX operations and are compatible with ``jax.jit``,
``jax.vmap``, and ``jax.grad``. Inputs are coerced to the configured
float dtype (see :func:`j2prop.config.set_dtype`).
"""

from __future__ import annotations

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from j2prop.config import get_dtype
from j2prop.constants import GM_EARTH

# ──────────────────────────────────────────────
# Orbital period and mean motion
# ──────────────────────────────────────────────


def orbital_period(a: ArrayLike, gm: float = GM_EARTH) -> Array:
    """Compute the orbital period ``T = 2 pi sqrt(a^3 / gm)``.

    Args:
        a: Semi-major axis. Units: *m*
        gm: Gravitational parameter of the central body. Units: *m^3/s^2*

    Returns:
        Orbital period. Units: *s*

    Examples:
        ```python
        from j2prop.orbits import orbital_period
        T = orbital_period(7000e3)
        ```
    """
    a = jnp.asarray(a, dtype=get_dtype())
    return 2.0 * jnp.pi * jnp.sqrt(a**3 / gm)


def orbital_period_from_state(state_eci: ArrayLike, gm: float = GM_EARTH) -> Array:
    """Compute orbital period from a Cartesian state using the vis-viva equation.

    Args:
        state_eci: State vector ``[x, y, z, vx, vy, vz]``.
            Units: *m* and *m/s*
        gm: Gravitational parameter of the central body. Units: *m^3/s^2*

    Returns:
        Orbital period. Units: *s*
    """
    state_eci = jnp.asarray(state_eci, dtype=get_dtype())
    r = jnp.linalg.norm(state_eci[:3])
    v_sq = jnp.sum(state_eci[3:6] ** 2)
    a = 1.0 / (2.0 / r - v_sq / gm)
    return orbital_period(a, gm)


def mean_motion(a: ArrayLike, gm: float = GM_EARTH, use_degrees: bool = False) -> Array:
    """Compute the mean motion ``n = sqrt(gm / a^3)``.

    Args:
        a: Semi-major axis. Units: *m*
        gm: Gravitational parameter of the central body. Units: *m^3/s^2*
        use_degrees: If ``True``, return mean motion in degrees per second.

    Returns:
        Mean motion. Units: *rad/s* or *deg/s*
    """
    a = jnp.asarray(a, dtype=get_dtype())
    n = jnp.sqrt(gm / a**3)
    if use_degrees:
        n = jnp.rad2deg(n)
    return n


# ──────────────────────────────────────────────
# Integrals of motion
# ──────────────────────────────────────────────


def specific_orbital_energy(state_eci: ArrayLike, gm: float = GM_EARTH) -> Array:
    """Specific two-body orbital energy ``v^2/2 - gm/r``.

    Constant along an unperturbed Keplerian trajectory.

    Args:
        state_eci: State vector ``[x, y, z, vx, vy, vz]``.
            Units: *m* and *m/s*
        gm: Gravitational parameter of the central body. Units: *m^3/s^2*

    Returns:
        Specific orbital energy. Units: *m^2/s^2*
    """
    state_eci = jnp.asarray(state_eci, dtype=get_dtype())
    r = jnp.linalg.norm(state_eci[:3])
    v_sq = jnp.sum(state_eci[3:6] ** 2)
    return 0.5 * v_sq - gm / r


def specific_angular_momentum(state_eci: ArrayLike) -> Array:
    """Specific angular momentum vector ``h = r x v``.

    Args:
        state_eci: State vector ``[x, y, z, vx, vy, vz]``.
            Units: *m* and *m/s*

    Returns:
        Angular momentum vector, shape ``(3,)``. Units: *m^2/s*
    """
    state_eci = jnp.asarray(state_eci, dtype=get_dtype())
    return jnp.cross(state_eci[:3], state_eci[3:6])
