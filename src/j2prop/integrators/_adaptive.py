"""Adaptive step-size control utilities for embedded Runge-Kutta methods.

The algorithms follow the standard embedded Runge-Kutta error control
approach:

1. Compute a normalized error using mixed absolute/relative tolerances.
2. Accept the step if the normalized error is <= 1.0.
3. Predict the next step size using the error and the method order.

The starting step size is estimated from the local derivative scale
(Hairer, Nørsett & Wanner, *Solving Ordinary Differential Equations I*,
Sec. II.4).
"""

from __future__ import annotations

from typing import Callable

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from j2prop.config import get_dtype
from j2prop.integrators._types import AdaptiveConfig


def compute_error_norm(
    error_vec: ArrayLike,
    state_new: ArrayLike,
    state_old: ArrayLike,
    abs_tol: float,
    rel_tol: float,
) -> Array:
    """Compute the normalized error norm for adaptive step-size control.

    Uses a mixed absolute/relative tolerance per component with the
    infinity norm (maximum over components), so every component of the
    accepted step meets its own tolerance.

    .. math::

        \\text{tol}_i = \\text{abs\\_tol} + \\text{rel\\_tol}
            \\cdot \\max(|y^{\\text{new}}_i|, |y^{\\text{old}}_i|)

    A non-finite error (a trial step that overflowed) is reported as
    ``inf`` so the step is rejected and shrunk.

    Args:
        error_vec: Difference between high-order and low-order solutions.
        state_new: High-order solution.
        state_old: State at the beginning of the step.
        abs_tol: Absolute error tolerance.
        rel_tol: Relative error tolerance.

    Returns:
        jax.Array: Scalar normalized error. Step is accepted if <= 1.0.
    """
    error_vec = jnp.asarray(error_vec, dtype=get_dtype())
    state_new = jnp.asarray(state_new, dtype=get_dtype())
    state_old = jnp.asarray(state_old, dtype=get_dtype())

    scale = abs_tol + rel_tol * jnp.maximum(jnp.abs(state_new), jnp.abs(state_old))
    error = jnp.max(jnp.abs(error_vec) / scale)
    return jnp.where(jnp.isfinite(error), error, jnp.inf)


def compute_next_step_size(
    error: ArrayLike,
    h: ArrayLike,
    order: float,
    config: AdaptiveConfig,
) -> Array:
    """Compute the next step size based on the current error estimate.

    Uses the standard optimal step-size formula:

    .. math::

        h_{\\text{next}} = |h| \\cdot S \\cdot
            \\left(\\frac{1}{\\text{error}}\\right)^{1/(p+1)}

    where *S* is the safety factor and *p* is the method order. The result
    is clamped by the scale-factor bounds and the absolute step-size
    bounds of *config*; a rejected step (``error > 1``) is never allowed
    to grow.  The sign of ``h`` is preserved for backward integration.

    Args:
        error: Normalized error from :func:`compute_error_norm`.
        h: Current step size (may be negative for backward integration).
        order: Order of the error estimator (4.0 for DP54).
        config: Adaptive step-size configuration.

    Returns:
        jax.Array: Suggested next step size with same sign as ``h``.
    """
    error = jnp.asarray(error, dtype=get_dtype())
    h = jnp.asarray(h, dtype=get_dtype())

    abs_h = jnp.abs(h)
    sign_h = jnp.where(h < 0.0, -1.0, 1.0)

    exponent = 1.0 / (order + 1.0)
    raw_scale = jnp.where(
        error > 0.0, jnp.power(1.0 / error, exponent), config.max_scale_factor
    )
    scale = jnp.clip(
        config.safety_factor * raw_scale,
        config.min_scale_factor,
        config.max_scale_factor,
    )
    scale = jnp.where(error > 1.0, jnp.minimum(scale, 1.0), scale)

    abs_h_next = jnp.clip(abs_h * scale, config.min_step, config.max_step)

    return sign_h * abs_h_next


def initial_step_size(
    dynamics: Callable[[ArrayLike, ArrayLike], Array],
    t0: ArrayLike,
    x0: ArrayLike,
    f0: ArrayLike,
    direction: ArrayLike,
    order: float,
    config: AdaptiveConfig,
) -> Array:
    """Estimate a starting step size for an adaptive integration.

    Takes an explicit Euler trial step of size ``h0 = 0.01 * |x0| / |f0|``
    (in tolerance-scaled norms), measures the change in the derivative over
    it, and picks the step whose leading error term is about 1% of the
    tolerance.

    Args:
        dynamics: ODE right-hand side function ``f(t, x) -> dx/dt``.
        t0: Initial time.
        x0: Initial state.
        f0: Derivative ``dynamics(t0, x0)``.
        direction: ``+1.0`` for forward, ``-1.0`` for backward integration.
        order: Order of the error estimator.
        config: Adaptive step-size configuration.

    Returns:
        jax.Array: Signed starting step size, within
            ``[min_step, max_step]`` in magnitude.
    """
    _float = get_dtype()
    x0 = jnp.asarray(x0, dtype=_float)
    f0 = jnp.asarray(f0, dtype=_float)

    scale = config.abs_tol + config.rel_tol * jnp.abs(x0)

    def _rms(v):
        return jnp.sqrt(jnp.mean((v / scale) ** 2))

    d0 = _rms(x0)
    d1 = _rms(f0)
    h0 = jnp.where((d0 < 1e-5) | (d1 < 1e-5), 1e-6, 0.01 * d0 / d1)

    x1 = x0 + direction * h0 * f0
    f1 = jnp.asarray(dynamics(t0 + direction * h0, x1), dtype=_float)
    d2 = _rms(f1 - f0) / h0

    d_max = jnp.maximum(d1, d2)
    h1 = jnp.where(
        d_max <= 1e-15,
        jnp.maximum(1e-6, h0 * 1e-3),
        jnp.power(0.01 / d_max, 1.0 / (order + 1.0)),
    )

    h = jnp.clip(jnp.minimum(100.0 * h0, h1), config.min_step, config.max_step)
    return direction * h
