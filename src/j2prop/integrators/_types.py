"""Type definitions for numerical integrators.

Provides the core data types used across the integrator implementations:

- :class:`StepResult`: Output of a single adaptive step, containing the new
  state, actual timestep used, error estimate, suggested next timestep,
  and whether the step met the tolerance.
- :class:`AdaptiveConfig`: Configuration for adaptive step-size control.
- :class:`IntegrationStatus`: Exit codes of the time-grid driver.
- :class:`IntegrationResult`: Output of the time-grid driver.

The named tuples are pytrees, so they work with ``jax.jit``,
``jax.vmap``, and ``jax.lax`` control flow primitives.
"""

from __future__ import annotations

import enum
from typing import NamedTuple

from jax import Array

from j2prop.constants import DEFAULT_ABS_TOL


class StepResult(NamedTuple):
    """Result of a single adaptive integrator step.

    Attributes:
        state: State vector at time ``t + dt_used``.  Only meaningful when
            ``accepted`` is true.
        dt_used: Actual timestep taken.  May be smaller than the requested
            ``dt`` if trial steps were rejected and retried.
        error_estimate: Normalized error estimate.  A value <= 1.0 means the
            step met the tolerance.
        dt_next: Suggested timestep for the next step.
        accepted: Whether the returned step met the tolerance.  False when
            the retry budget ran out or the step size reached ``min_step``
            without meeting the tolerance.
    """

    state: Array
    dt_used: Array
    error_estimate: Array
    dt_next: Array
    accepted: Array


class AdaptiveConfig(NamedTuple):
    """Configuration for adaptive step-size control.

    Default values are tuned for orbit propagation in SI units.  The
    instance is hashable and is passed to JIT-compiled code as a static
    argument.

    Attributes:
        abs_tol: Absolute error tolerance per component. Components with
            magnitude near zero are controlled by this tolerance.
        rel_tol: Relative error tolerance per component. Components with
            large magnitude are controlled by this tolerance.
        safety_factor: Multiplicative safety factor applied to step-size
            predictions. Values < 1.0 produce conservative step sizes.
        min_scale_factor: Minimum allowed ratio ``dt_next / dt_used``.
        max_scale_factor: Maximum allowed ratio ``dt_next / dt_used``.
        min_step: Absolute minimum allowed step size.  A step that fails
            the tolerance at this size ends the integration.
        max_step: Absolute maximum allowed step size.
        max_step_attempts: Maximum number of trial steps per call to a
            step function before it returns an unaccepted result.
        max_steps: Maximum number of accepted steps over a whole
            time-grid integration.
    """

    abs_tol: float = DEFAULT_ABS_TOL
    rel_tol: float = 1e-6
    safety_factor: float = 0.9
    min_scale_factor: float = 0.2
    max_scale_factor: float = 10.0
    min_step: float = 1e-12
    max_step: float = float("inf")
    max_step_attempts: int = 10
    max_steps: int = 100_000


class IntegrationStatus(enum.IntEnum):
    """Exit status of :func:`~j2prop.integrators.integrate`."""

    SUCCESS = 0
    STEP_SIZE_UNDERFLOW = 1
    MAX_STEPS_EXCEEDED = 2
    NON_FINITE_STATE = 3


class IntegrationResult(NamedTuple):
    """Result of integrating over a time grid.

    Attributes:
        t: Requested time grid, shape ``(N,)``.
        states: State at every grid entry, shape ``(N, n)``.  Row 0 is the
            initial state.  Rows past a failure are not meaningful.
        status: :class:`IntegrationStatus` code (scalar integer array).
        n_steps: Number of accepted steps.
    """

    t: Array
    states: Array
    status: Array
    n_steps: Array
