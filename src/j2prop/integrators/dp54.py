"""Dormand-Prince 5(4) adaptive integrator (DP54).

Implements the Dormand-Prince embedded Runge-Kutta method with a 5th-order
solution for propagation and a 4th-order solution for error estimation,
the same pair used by MATLAB's ``ode45`` and SciPy's ``RK45``.  The method
uses 7 stages per step.

Steps that exceed the tolerance are rejected and retried with a smaller
timestep using ``jax.lax.while_loop`` for JIT compatibility.

The Butcher tableau coefficients are the standard Dormand-Prince values:

- Nodes (c): [0, 1/5, 3/10, 4/5, 8/9, 1, 1]
- 5th-order weights (b_high): [35/384, 0, 500/1113, 125/192, -2187/6784, 11/84, 0]
- 4th-order weights (b_low): [5179/57600, 0, 7571/16695, 393/640, -92097/339200,
  187/2100, 1/40]
"""

from __future__ import annotations

from typing import Callable, Optional

import jax
import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from j2prop.config import get_dtype
from j2prop.integrators._adaptive import compute_error_norm, compute_next_step_size
from j2prop.integrators._types import AdaptiveConfig, StepResult

# Order of the embedded error estimator
ERROR_ORDER = 4.0

_C = (0.0, 1.0 / 5.0, 3.0 / 10.0, 4.0 / 5.0, 8.0 / 9.0, 1.0, 1.0)

# Coupling coefficients, one row per stage after the first
_A = (
    (1.0 / 5.0,),
    (3.0 / 40.0, 9.0 / 40.0),
    (44.0 / 45.0, -56.0 / 15.0, 32.0 / 9.0),
    (19372.0 / 6561.0, -25360.0 / 2187.0, 64448.0 / 6561.0, -212.0 / 729.0),
    (9017.0 / 3168.0, -355.0 / 33.0, 46732.0 / 5247.0, 49.0 / 176.0, -5103.0 / 18656.0),
    (35.0 / 384.0, 0.0, 500.0 / 1113.0, 125.0 / 192.0, -2187.0 / 6784.0, 11.0 / 84.0),
)

_B_HIGH = (35.0 / 384.0, 0.0, 500.0 / 1113.0, 125.0 / 192.0, -2187.0 / 6784.0, 11.0 / 84.0, 0.0)

_B_LOW = (
    5179.0 / 57600.0,
    0.0,
    7571.0 / 16695.0,
    393.0 / 640.0,
    -92097.0 / 339200.0,
    187.0 / 2100.0,
    1.0 / 40.0,
)

# High minus low weights: the error estimate in a single weighted sum
_B_ERR = tuple(bh - bl for bh, bl in zip(_B_HIGH, _B_LOW))


def _weighted_sum(weights, ks):
    """Sum ``w * k`` over the stages with non-zero weight."""
    return sum(w * k for w, k in zip(weights, ks) if w != 0.0)


def dp54_trial(
    dynamics: Callable[[ArrayLike, ArrayLike], Array],
    t: ArrayLike,
    state: ArrayLike,
    h: ArrayLike,
) -> tuple[Array, Array]:
    """Compute one DP54 trial step without error control.

    Args:
        dynamics: ODE right-hand side function ``f(t, x) -> dx/dt``.
        t: Current time.
        state: Current state vector.
        h: Step size (may be negative).

    Returns:
        tuple: ``(state_high, error_vec)``, the 5th-order solution at
            ``t + h`` and its difference from the 4th-order solution.
    """
    ks = [dynamics(t, state)]
    for c, row in zip(_C[1:], _A):
        ks.append(dynamics(t + c * h, state + h * _weighted_sum(row, ks)))

    state_high = state + h * _weighted_sum(_B_HIGH, ks)
    error_vec = h * _weighted_sum(_B_ERR, ks)
    return state_high, error_vec


def dp54_step(
    dynamics: Callable[[ArrayLike, ArrayLike], Array],
    t: ArrayLike,
    state: ArrayLike,
    dt: ArrayLike,
    config: Optional[AdaptiveConfig] = None,
) -> StepResult:
    """Perform a single adaptive DP54 integration step.

    Advances the state from time ``t`` by up to ``dt`` using the
    Dormand-Prince 5(4) method.  If the error exceeds the tolerance, the
    step is rejected and retried with a smaller timestep, up to
    ``config.max_step_attempts`` trials.  A trial at ``config.min_step``
    that still fails ends the loop.

    Compatible with ``jax.jit`` and ``jax.vmap``.

    Args:
        dynamics: ODE right-hand side function ``f(t, x) -> dx/dt``.
        t: Current time.
        state: Current state vector.
        dt: Requested timestep. May be negative for backward integration.
        config: Adaptive step-size configuration. Uses default
            :class:`AdaptiveConfig` if ``None``.

    Returns:
        StepResult: Named tuple with fields ``state``, ``dt_used``,
            ``error_estimate``, ``dt_next`` and ``accepted``.

    Examples:
        ```python
        import jax.numpy as jnp
        from j2prop.integrators import dp54_step
        def harmonic(t, x):
            return jnp.array([x[1], -x[0]])
        result = dp54_step(harmonic, 0.0, jnp.array([1.0, 0.0]), 0.1)
        result.state  # ~[cos(0.1), -sin(0.1)]
        ```
    """
    if config is None:
        config = AdaptiveConfig()

    dtype = get_dtype()
    t = jnp.asarray(t, dtype=dtype)
    state = jnp.asarray(state, dtype=dtype)
    dt = jnp.asarray(dt, dtype=dtype)

    def _attempt(h):
        state_high, error_vec = dp54_trial(dynamics, t, state, h)
        error = compute_error_norm(
            error_vec, state_high, state, config.abs_tol, config.rel_tol
        )
        return state_high, error

    # Carry: (h_try, h_used, attempts, accepted, at_min_step, state_out, error_out)
    def cond_fn(carry):
        _h, _h_used, attempts, accepted, at_min_step, _state_out, _error_out = carry
        return (~accepted) & (~at_min_step) & (attempts < config.max_step_attempts)

    def body_fn(carry):
        h, _h_used, attempts, _accepted, _at_min, _state_out, _error_out = carry
        state_new, error = _attempt(h)

        step_accepted = error <= 1.0
        at_min_step = jnp.abs(h) <= config.min_step

        h_reduced = compute_next_step_size(error, h, ERROR_ORDER, config)

        return (h_reduced, h, attempts + 1, step_accepted, at_min_step, state_new, error)

    init_carry = (
        dt,
        dt,
        jnp.asarray(0, dtype=jnp.int32),
        jnp.asarray(False),
        jnp.asarray(False),
        state,
        jnp.asarray(jnp.inf, dtype=dtype),
    )

    _h, h_used, _attempts, accepted, _at_min, state_out, error_out = jax.lax.while_loop(
        cond_fn, body_fn, init_carry
    )

    dt_next = compute_next_step_size(error_out, h_used, ERROR_ORDER, config)

    return StepResult(
        state=state_out,
        dt_used=h_used,
        error_estimate=error_out,
        dt_next=dt_next,
        accepted=accepted,
    )
