"""Orbit equations of motion.

Turns the second-order equation ``r'' = a(r)`` into the first-order system
``[r, v]' = [v, a(r)]`` and packages it as a ``dynamics(t, state)``
closure compatible with all j2prop integrators.

The closure captures the gravitational parameter and the immutable
:class:`~j2prop.orbit_dynamics.gravity.GravityModel` at Python trace
time, so ``jax.jit`` compiles a single graph per model.
"""

from __future__ import annotations

from collections.abc import Callable
from functools import lru_cache

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from j2prop.config import get_dtype
from j2prop.constants import SINGULAR_RADIUS_FRACTION
from j2prop.orbit_dynamics.gravity import GravityModel, accel_j2


def orbit_derivative(
    t: ArrayLike,
    state: ArrayLike,
    gm: float,
    model: GravityModel | None = None,
) -> Array:
    """Time derivative of a Cartesian orbit state.

    The system is autonomous; *t* is accepted for integrator compatibility
    and ignored.

    A position closer to the origin than
    :data:`~j2prop.constants.SINGULAR_RADIUS_FRACTION` times the model radius
    is a collision with the centre of attraction.  The acceleration is then
    NaN, which the integrators report as a non-finite state.

    Args:
        t: Time [s] (unused).
        state: ``[x, y, z, vx, vy, vz]`` [m, m/s].
        gm: Gravitational parameter of the central body [m^3/s^2].
        model: Gravity model constants.  Defaults to
            :meth:`GravityModel.earth`.

    Returns:
        jax.Array: ``[vx, vy, vz, ax, ay, az]`` [m/s, m/s^2].
    """
    if model is None:
        model = GravityModel.earth()

    state = jnp.asarray(state, dtype=get_dtype())
    accel = accel_j2(state[:3], gm, model)
    collided = jnp.linalg.norm(state[:3]) < SINGULAR_RADIUS_FRACTION * model.radius
    accel = jnp.where(collided, jnp.nan, accel)
    return jnp.concatenate([state[3:6], accel])


@lru_cache(maxsize=32)
def create_orbit_dynamics(
    gm: float,
    model: GravityModel | None = None,
) -> Callable[[ArrayLike, ArrayLike], Array]:
    """Create the orbit dynamics function for a central body.

    Calls with the same arguments return the same function object, which
    lets JIT-compiled integrations be reused across propagations.  *gm*
    must therefore be a hashable Python float.

    Args:
        gm: Gravitational parameter of the central body [m^3/s^2].
        model: Gravity model constants.  Defaults to
            :meth:`GravityModel.earth`.

    Returns:
        A callable ``dynamics(t, state) -> derivative`` where:

        - *t*: time [s] (unused, the dynamics are autonomous).
        - *state*: ``[x, y, z, vx, vy, vz]`` [m, m/s].
        - *derivative*: ``[vx, vy, vz, ax, ay, az]`` [m/s, m/s^2].

    Examples:
        ```python
        import jax.numpy as jnp
        from j2prop.constants import GM_EARTH
        from j2prop.orbit_dynamics import create_orbit_dynamics
        from j2prop.integrators import dp54_step
        dynamics = create_orbit_dynamics(GM_EARTH)
        x0 = jnp.array([7000e3, 0.0, 0.0, 0.0, 7546.0, 0.0])
        result = dp54_step(dynamics, 0.0, x0, 60.0)
        ```
    """
    if model is None:
        model = GravityModel.earth()

    _gm = gm
    _model = model

    def dynamics(t: ArrayLike, state: ArrayLike) -> Array:
        return orbit_derivative(t, state, _gm, _model)

    return dynamics
