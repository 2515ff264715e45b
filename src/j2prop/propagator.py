"""J2 orbit propagation.

Propagates an initial set of Keplerian elements on a time grid under
point-mass gravity plus the J2 oblateness term:

1. Elements (angles in radians) are converted to a Cartesian state.
2. The Cartesian state is integrated with the adaptive DP54 integrator,
   sampled at every entry of the time grid.
3. Every sample is converted back to Keplerian elements, **with angles in
   degrees**.

The radian-in / degree-out asymmetry of the element trajectories is part
of the interface.
"""

from __future__ import annotations

import logging
from typing import NamedTuple, Optional

import jax
import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from j2prop.config import get_dtype, is_double_precision
from j2prop.constants import DEFAULT_ABS_TOL
from j2prop.coordinates.keplerian import state_eci_to_koe, state_koe_to_eci
from j2prop.integrators import AdaptiveConfig, check_integration, integrate
from j2prop.orbit_dynamics.factory import create_orbit_dynamics
from j2prop.orbit_dynamics.gravity import GravityModel

logger = logging.getLogger(__name__)


class PropagationResult(NamedTuple):
    """Trajectory returned by :func:`propagate`.

    Unpacks as ``t, oe, state``.

    Attributes:
        t: The requested time grid, returned as passed in.
        oe: Keplerian elements at every grid entry, shape ``(N, 6)``,
            ordered ``[a, e, i, omega, RAAN, theta]`` with *a* in *m* and
            **angles in degrees**.
        state: Cartesian states at every grid entry, shape ``(N, 6)``,
            ``[x, y, z, vx, vy, vz]`` in *m* and *m/s*.
    """

    t: ArrayLike
    oe: Array
    state: Array


def propagate(
    oe0: ArrayLike,
    t_eval: ArrayLike,
    gm: float,
    rel_tol: float,
    model: Optional[GravityModel] = None,
    abs_tol: float = DEFAULT_ABS_TOL,
    config: Optional[AdaptiveConfig] = None,
) -> PropagationResult:
    """Propagate Keplerian elements under J2-perturbed two-body dynamics.

    Args:
        oe0: Initial elements ``[a, e, i, omega, RAAN, theta]`` at
            ``t_eval[0]``, semi-major axis in *m*, **angles in radians**.
            Elements are not validated; ``a > 0`` and ``0 <= e < 1`` are
            expected.
        t_eval: Strictly monotonic time grid [s] with at least two entries.
            A decreasing grid propagates backward.
        gm: Gravitational parameter of the central body [m^3/s^2].
        rel_tol: Relative error tolerance of the integrator.
        model: Gravity model constants.  Defaults to
            :meth:`GravityModel.earth`.
        abs_tol: Absolute error tolerance of the integrator [m, m/s].
        config: Base step-size configuration; its tolerances are replaced by
            *rel_tol* and *abs_tol*.

    Returns:
        PropagationResult: ``(t, oe, state)`` with exactly ``len(t_eval)``
            rows in the order of ``t_eval``.  Element angles are in
            **degrees**.

    Raises:
        ValueError: If the time grid is invalid, or a singular state (zero
            position norm) is met.
        RuntimeError: If the integrator cannot meet the tolerance within
            its step-size limits or step budget.

    Examples:
        ```python
        import jax.numpy as jnp
        from j2prop import propagate, set_dtype
        from j2prop.constants import GM_EARTH
        set_dtype(jnp.float64)
        oe0 = jnp.array([7000e3, 0.001, 0.9, 0.0, 0.0, 0.0])
        t, oe, state = propagate(oe0, jnp.linspace(0.0, 5800.0, 11), GM_EARTH, 1e-10)
        oe.shape  # (11, 6)
        ```
    """
    if model is None:
        model = GravityModel.earth()
    if config is None:
        config = AdaptiveConfig()
    config = config._replace(rel_tol=float(rel_tol), abs_tol=float(abs_tol))
    gm = float(gm)

    if not is_double_precision():
        logger.warning(
            "Propagating with dtype %s; use set_dtype(jnp.float64) for "
            "tolerances near the absolute tolerance %g",
            jnp.dtype(get_dtype()).name,
            config.abs_tol,
        )

    logger.debug(
        "Propagating with model %s (rel_tol=%g, abs_tol=%g)",
        model.name,
        config.rel_tol,
        config.abs_tol,
    )

    x0 = state_koe_to_eci(oe0, gm=gm)

    dynamics = create_orbit_dynamics(gm, model)
    result = check_integration(integrate(dynamics, t_eval, x0, config))

    logger.debug(
        "Integrated %d samples in %d accepted steps",
        result.states.shape[0],
        int(result.n_steps),
    )

    oe = jax.vmap(lambda s: state_eci_to_koe(s, gm=gm, use_degrees=True))(result.states)

    return PropagationResult(t=t_eval, oe=oe, state=result.states)
