"""Numerical ODE integration for orbit propagation.

Provides an adaptive Dormand-Prince 5(4) integrator implemented in JAX for
compatibility with ``jax.jit`` and ``jax.vmap``, and a driver that reports
the solution on a requested time grid.

- :func:`dp54_step` -- one adaptive Dormand-Prince 5(4) step
- :func:`integrate` -- adaptive integration sampled at every grid entry
- :func:`check_integration` -- turn a failed integration status into an
  exception

Step functions share the interface::

    result = step_fn(dynamics, t, state, dt)

where ``dynamics(t, x) -> dx`` defines the ODE right-hand side, and the
result is a :class:`StepResult` named tuple.
"""

from j2prop.integrators._adaptive import initial_step_size
from j2prop.integrators._types import (
    AdaptiveConfig,
    IntegrationResult,
    IntegrationStatus,
    StepResult,
)
from j2prop.integrators.dp54 import dp54_step, dp54_trial
from j2prop.integrators.solve import check_integration, integrate, validate_time_grid

__all__ = [
    "AdaptiveConfig",
    "StepResult",
    "IntegrationResult",
    "IntegrationStatus",
    "dp54_step",
    "dp54_trial",
    "initial_step_size",
    "integrate",
    "check_integration",
    "validate_time_grid",
]
