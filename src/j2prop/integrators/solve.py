"""Adaptive integration over a requested time grid.

Advances an initial state through every entry of a monotonic time grid
with the DP54 adaptive integrator and reports the state at each entry.
Steps are clipped so that each grid entry is hit exactly, so no
interpolation is involved and every reported sample carries the local
error guarantee of an accepted step.

The whole integration runs as one ``jax.jit``-compiled program: a
``lax.scan`` over the grid intervals with a ``lax.while_loop`` of adaptive
steps inside each interval.  Failures cannot raise inside traced code, so
they are reported through :class:`~j2prop.integrators.IntegrationStatus`
and turned into exceptions by :func:`check_integration`.
"""

from __future__ import annotations

from functools import partial
from typing import Callable, Optional

import jax
import jax.numpy as jnp
import numpy as np
from jax import Array
from jax.typing import ArrayLike

from j2prop.config import get_dtype
from j2prop.integrators._adaptive import initial_step_size
from j2prop.integrators._types import (
    AdaptiveConfig,
    IntegrationResult,
    IntegrationStatus,
    StepResult,
)
from j2prop.integrators.dp54 import ERROR_ORDER, dp54_step

# Plain ints for use inside traced code
_SUCCESS = int(IntegrationStatus.SUCCESS)
_STEP_SIZE_UNDERFLOW = int(IntegrationStatus.STEP_SIZE_UNDERFLOW)
_MAX_STEPS_EXCEEDED = int(IntegrationStatus.MAX_STEPS_EXCEEDED)
_NON_FINITE_STATE = int(IntegrationStatus.NON_FINITE_STATE)


def validate_time_grid(t_eval: ArrayLike) -> np.ndarray:
    """Check that a time grid is one-dimensional and strictly monotonic.

    Args:
        t_eval: Requested output times.

    Returns:
        numpy.ndarray: The grid as a float array.

    Raises:
        ValueError: If the grid is not 1-D, has fewer than two entries,
            contains non-finite values, or is not strictly increasing or
            strictly decreasing.
    """
    t = np.asarray(t_eval, dtype=float)
    if t.ndim != 1:
        raise ValueError(f"Time grid must be one-dimensional, got shape {t.shape}")
    if t.size < 2:
        raise ValueError(f"Time grid needs at least 2 entries, got {t.size}")
    if not np.all(np.isfinite(t)):
        raise ValueError("Time grid contains non-finite values")

    dt = np.diff(t)
    if not (np.all(dt > 0.0) or np.all(dt < 0.0)):
        raise ValueError("Time grid must be strictly increasing or strictly decreasing")
    return t


def _carry_step_size(
    h: Array,
    h_try: Array,
    clipped: Array,
    step: StepResult,
    direction: Array,
) -> Array:
    """Step size for the next trial of the grid driver.

    A trial shortened to land on a grid entry and accepted on its first
    attempt leaves the controller's previous step untested, so that step
    is resumed.  In every other case the controller's suggestion stands.
    """
    resume = step.accepted & clipped & (step.dt_used == h_try)
    return jnp.where(
        resume,
        direction * jnp.maximum(jnp.abs(h), jnp.abs(step.dt_next)),
        step.dt_next,
    )


@partial(jax.jit, static_argnums=(0, 3))
def _integrate_grid(
    dynamics: Callable[[ArrayLike, ArrayLike], Array],
    t_eval: Array,
    x0: Array,
    config: AdaptiveConfig,
) -> IntegrationResult:
    t0 = t_eval[0]
    direction = jnp.sign(t_eval[-1] - t0)

    f0 = dynamics(t0, x0)
    start_ok = jnp.all(jnp.isfinite(x0)) & jnp.all(jnp.isfinite(f0))
    status0 = jnp.where(start_ok, _SUCCESS, _NON_FINITE_STATE).astype(jnp.int32)
    h0 = initial_step_size(dynamics, t0, x0, f0, direction, ERROR_ORDER, config)

    def interval(carry, t_target):
        def cond_fn(c):
            t, _x, _h, status, n_steps = c
            return (
                (status == _SUCCESS)
                & (direction * (t_target - t) > 0.0)
                & (n_steps < config.max_steps)
            )

        def body_fn(c):
            t, x, h, status, n_steps = c
            remaining = t_target - t
            clipped = jnp.abs(h) >= jnp.abs(remaining)
            h_try = jnp.where(clipped, remaining, h)

            step = dp54_step(dynamics, t, x, h_try, config)

            lands = step.accepted & (jnp.abs(step.dt_used) >= jnp.abs(remaining))
            t_new = jnp.where(lands, t_target, t + step.dt_used)
            h_new = _carry_step_size(h, h_try, clipped, step, direction)

            stalled = (~step.accepted) & (jnp.abs(step.dt_used) <= config.min_step)
            singular = ~jnp.isfinite(step.error_estimate) | ~jnp.all(
                jnp.isfinite(step.state)
            )
            status = jnp.where(
                stalled,
                jnp.where(singular, _NON_FINITE_STATE, _STEP_SIZE_UNDERFLOW),
                status,
            ).astype(jnp.int32)

            return (
                jnp.where(step.accepted, t_new, t),
                jnp.where(step.accepted, step.state, x),
                h_new,
                status,
                n_steps + step.accepted.astype(jnp.int32),
            )

        t, x, h, status, n_steps = jax.lax.while_loop(cond_fn, body_fn, carry)

        exhausted = (status == _SUCCESS) & (direction * (t_target - t) > 0.0)
        status = jnp.where(exhausted, _MAX_STEPS_EXCEEDED, status).astype(jnp.int32)

        return (t, x, h, status, n_steps), x

    init_carry = (t0, x0, h0, status0, jnp.asarray(0, dtype=jnp.int32))
    (_t, _x, _h, status, n_steps), xs = jax.lax.scan(interval, init_carry, t_eval[1:])

    states = jnp.concatenate([x0[None, :], xs], axis=0)
    return IntegrationResult(t=t_eval, states=states, status=status, n_steps=n_steps)


def integrate(
    dynamics: Callable[[ArrayLike, ArrayLike], Array],
    t_eval: ArrayLike,
    x0: ArrayLike,
    config: Optional[AdaptiveConfig] = None,
) -> IntegrationResult:
    """Integrate an ODE and report the solution at every grid entry.

    Starts from ``x0`` at ``t_eval[0]`` and advances in the direction of
    the grid (backward integration when the grid is decreasing).  The
    number of internal steps is chosen by the adaptive controller; output
    rows correspond one-to-one and in order with ``t_eval``.

    The compiled program is cached per ``(dynamics, config)`` pair, so
    reuse the same dynamics callable across calls to avoid recompiling.

    Args:
        dynamics: ODE right-hand side function ``f(t, x) -> dx/dt``.
        t_eval: Strictly monotonic time grid with at least two entries.
        x0: State at ``t_eval[0]``.
        config: Adaptive step-size configuration.  Uses default
            :class:`AdaptiveConfig` if ``None``.

    Returns:
        IntegrationResult: Time grid, states of shape ``(N, n)``, exit
            status and accepted step count.  The status is not checked;
            see :func:`check_integration`.

    Raises:
        ValueError: If ``t_eval`` is not a valid time grid or ``x0`` is
            not a 1-D state vector.

    Examples:
        ```python
        import jax.numpy as jnp
        from j2prop.integrators import integrate, check_integration
        def decay(t, x):
            return -x
        result = check_integration(integrate(decay, jnp.linspace(0.0, 1.0, 5), jnp.array([1.0])))
        result.states[-1]  # ~exp(-1)
        ```
    """
    if config is None:
        config = AdaptiveConfig()

    dtype = get_dtype()
    t_grid = jnp.asarray(validate_time_grid(t_eval), dtype=dtype)
    x0 = jnp.asarray(x0, dtype=dtype)
    if x0.ndim != 1:
        raise ValueError(f"Initial state must be one-dimensional, got shape {x0.shape}")

    return _integrate_grid(dynamics, t_grid, x0, config)


def check_integration(result: IntegrationResult) -> IntegrationResult:
    """Raise if an integration did not complete.

    Args:
        result: Output of :func:`integrate`.

    Returns:
        IntegrationResult: *result* unchanged when it succeeded.

    Raises:
        ValueError: If a non-finite state or derivative was met at the
            start or could not be stepped around at ``min_step`` (singular
            geometry such as a collision with the origin).
        RuntimeError: If the step size fell to ``min_step`` without meeting
            the tolerance, or the step budget ran out.
    """
    status = IntegrationStatus(int(result.status))
    if status == IntegrationStatus.SUCCESS:
        return result
    if status == IntegrationStatus.NON_FINITE_STATE:
        raise ValueError(
            "Integration met a non-finite state or derivative (singular geometry)"
        )
    if status == IntegrationStatus.STEP_SIZE_UNDERFLOW:
        raise RuntimeError(
            "Integration failed: step size fell below the minimum without "
            f"meeting the tolerance after {int(result.n_steps)} steps"
        )
    raise RuntimeError(
        f"Integration failed: step budget exhausted after {int(result.n_steps)} steps"
    )
