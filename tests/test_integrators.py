"""Tests for the j2prop.integrators module.

Tests cover:
- Exponential decay with known solution
- Harmonic oscillator accuracy
- Two-body orbital mechanics
- Backward integration
- Adaptive step-size behavior (DP54) and its control utilities
- Time-grid integration: output layout, exact grid landing, failure status
- JIT and vmap compatibility
"""

import jax
import jax.numpy as jnp
import numpy as np
import pytest

from j2prop.constants import GM_EARTH
from j2prop.integrators import (
    AdaptiveConfig,
    IntegrationResult,
    IntegrationStatus,
    StepResult,
    check_integration,
    dp54_step,
    initial_step_size,
    integrate,
    validate_time_grid,
)
from j2prop.integrators._adaptive import compute_error_norm, compute_next_step_size
from j2prop.integrators.solve import _carry_step_size
from j2prop.orbit_dynamics import GravityModel, create_orbit_dynamics

# Tolerances
_ADAPTIVE_TOL = 1e-6
_GRID_TOL = 1e-5


# ──────────────────────────────────────────────
# Helper dynamics functions
# ──────────────────────────────────────────────

def _exponential_decay(t, x):
    """dx/dt = -x. Solution: x(t) = x0 * exp(-t)."""
    return -x


def _harmonic_oscillator(t, x):
    """d^2q/dt^2 = -q. State: [q, dq/dt]. Solution: [cos(t), -sin(t)]."""
    return jnp.array([x[1], -x[0]])


def _decay_until_half(t, x):
    """dx/dt = -x, undefined from t = 0.5 onwards."""
    return jnp.where(t < 0.5, -x, jnp.nan)


def _two_body(t, state):
    """Two-body gravitational dynamics. State: [rx, ry, rz, vx, vy, vz]."""
    r = state[:3]
    v = state[3:]
    r_norm = jnp.linalg.norm(r)
    a = -GM_EARTH * r / r_norm**3
    return jnp.concatenate([v, a])


def _circular_orbit_state(sma):
    """Create a circular equatorial orbit state [x, y, z, vx, vy, vz]."""
    v_circ = jnp.sqrt(GM_EARTH / sma)
    return jnp.array([sma, 0.0, 0.0, 0.0, v_circ, 0.0])


# ──────────────────────────────────────────────
# StepResult and AdaptiveConfig tests
# ──────────────────────────────────────────────

class TestTypes:
    def test_step_result_fields(self):
        """StepResult has the expected fields."""
        result = StepResult(
            state=jnp.array([1.0]),
            dt_used=jnp.array(0.1),
            error_estimate=jnp.array(0.0),
            dt_next=jnp.array(0.1),
            accepted=jnp.array(True),
        )
        assert result.state.shape == (1,)
        assert float(result.dt_used) == pytest.approx(0.1)
        assert float(result.error_estimate) == pytest.approx(0.0)
        assert float(result.dt_next) == pytest.approx(0.1)
        assert bool(result.accepted)

    def test_adaptive_config_defaults(self):
        """AdaptiveConfig has defaults suited to orbit propagation."""
        config = AdaptiveConfig()
        assert config.abs_tol == 1e-8
        assert config.rel_tol == 1e-6
        assert config.safety_factor == 0.9
        assert config.max_step_attempts == 10
        assert config.max_steps == 100_000

    def test_adaptive_config_custom(self):
        """AdaptiveConfig accepts custom values."""
        config = AdaptiveConfig(abs_tol=1e-10, rel_tol=1e-8)
        assert config.abs_tol == 1e-10
        assert config.rel_tol == 1e-8

    def test_adaptive_config_hashable(self):
        assert hash(AdaptiveConfig()) == hash(AdaptiveConfig())

    def test_status_codes(self):
        assert IntegrationStatus.SUCCESS == 0
        assert IntegrationStatus.STEP_SIZE_UNDERFLOW == 1
        assert IntegrationStatus.MAX_STEPS_EXCEEDED == 2
        assert IntegrationStatus.NON_FINITE_STATE == 3


# ──────────────────────────────────────────────
# Step-size control
# ──────────────────────────────────────────────

class TestAdaptiveControl:
    def test_error_norm_is_max_norm(self):
        """The worst component sets the error."""
        error = compute_error_norm(
            jnp.array([1e-6, 4e-6]), jnp.array([1.0, 1.0]), jnp.array([1.0, 1.0]),
            abs_tol=0.0, rel_tol=1e-6,
        )
        assert float(error) == pytest.approx(4.0)

    def test_error_norm_non_finite_is_inf(self):
        error = compute_error_norm(
            jnp.array([jnp.nan, 0.0]), jnp.array([1.0, 1.0]), jnp.array([1.0, 1.0]),
            abs_tol=1e-8, rel_tol=1e-6,
        )
        assert jnp.isinf(error)

    def test_rejected_step_never_grows(self):
        config = AdaptiveConfig()
        h_next = compute_next_step_size(jnp.array(1.0001), jnp.array(10.0), 4.0, config)
        assert float(h_next) <= 10.0

    def test_small_error_grows_step(self):
        config = AdaptiveConfig()
        h_next = compute_next_step_size(jnp.array(1e-6), jnp.array(10.0), 4.0, config)
        assert float(h_next) == pytest.approx(10.0 * config.max_scale_factor)

    def test_sign_preserved(self):
        config = AdaptiveConfig()
        h_next = compute_next_step_size(jnp.array(0.5), jnp.array(-10.0), 4.0, config)
        assert float(h_next) < 0.0

    def test_step_bounds(self):
        config = AdaptiveConfig(min_step=1.0, max_step=50.0)
        assert float(compute_next_step_size(jnp.array(1e3), jnp.array(2.0), 4.0, config)) == 1.0
        assert float(compute_next_step_size(jnp.array(0.0), jnp.array(40.0), 4.0, config)) == 50.0

    def test_initial_step_size_direction(self):
        """The starting step carries the integration direction."""
        config = AdaptiveConfig()
        x0 = _circular_orbit_state(7000e3)
        f0 = _two_body(0.0, x0)
        h_fwd = initial_step_size(_two_body, 0.0, x0, f0, 1.0, 4.0, config)
        h_bwd = initial_step_size(_two_body, 0.0, x0, f0, -1.0, 4.0, config)

        assert float(h_fwd) > 0.0
        assert float(h_bwd) < 0.0
        assert float(h_fwd) == pytest.approx(-float(h_bwd))

    def test_initial_step_size_respects_bounds(self):
        config = AdaptiveConfig(min_step=5.0, max_step=7.0)
        x0 = jnp.array([1.0, 0.0])
        h = initial_step_size(
            _harmonic_oscillator, 0.0, x0, _harmonic_oscillator(0.0, x0), 1.0, 4.0, config
        )
        assert 5.0 <= float(h) <= 7.0


# ──────────────────────────────────────────────
# DP54 tests
# ──────────────────────────────────────────────

class TestDP54:
    def test_exponential_decay(self):
        """DP54 approximates exponential decay accurately."""
        x0 = jnp.array([1.0])
        dt = 0.5
        result = dp54_step(_exponential_decay, 0.0, x0, dt)
        expected = jnp.exp(-result.dt_used)
        assert jnp.allclose(result.state, jnp.array([expected]), atol=1e-7)

    def test_harmonic_oscillator(self):
        """DP54 approximates harmonic oscillator."""
        x0 = jnp.array([1.0, 0.0])
        dt = 0.1
        result = dp54_step(_harmonic_oscillator, 0.0, x0, dt)
        expected = jnp.array([jnp.cos(dt), -jnp.sin(dt)])
        assert jnp.allclose(result.state, expected, atol=_ADAPTIVE_TOL)

    def test_error_estimate_finite(self):
        """DP54 produces a finite error estimate."""
        x0 = jnp.array([1.0, 0.0])
        result = dp54_step(_harmonic_oscillator, 0.0, x0, 0.1)
        assert jnp.isfinite(result.error_estimate)

    def test_dt_next_positive(self):
        """DP54 suggests a positive next step size."""
        x0 = jnp.array([1.0, 0.0])
        result = dp54_step(_harmonic_oscillator, 0.0, x0, 0.1)
        assert float(result.dt_next) > 0.0

    def test_step_acceptance(self):
        """DP54 accepts steps when error is within tolerance."""
        x0 = jnp.array([1.0, 0.0])
        config = AdaptiveConfig(abs_tol=1e-4, rel_tol=1e-2)
        result = dp54_step(_harmonic_oscillator, 0.0, x0, 0.01, config=config)
        assert float(result.error_estimate) <= 1.0
        assert bool(result.accepted)
        assert float(result.dt_used) == pytest.approx(0.01)

    def test_custom_config(self):
        """DP54 respects tighter tolerances with AdaptiveConfig."""
        x0 = jnp.array([1.0, 0.0])
        dt = 1.0
        config_loose = AdaptiveConfig(abs_tol=1e-2, rel_tol=1e-1)
        result_loose = dp54_step(_harmonic_oscillator, 0.0, x0, dt, config=config_loose)
        config_tight = AdaptiveConfig(abs_tol=1e-10, rel_tol=1e-10)
        result_tight = dp54_step(_harmonic_oscillator, 0.0, x0, dt, config=config_tight)
        assert float(jnp.abs(result_tight.dt_used)) < float(jnp.abs(result_loose.dt_used))
        assert bool(result_tight.accepted)

    def test_rejected_step_reports_trial_size(self):
        """dt_used is the size of the trial that produced the returned state."""
        x0 = jnp.array([1.0, 0.0])
        config = AdaptiveConfig(abs_tol=1e-10, rel_tol=1e-10)
        result = dp54_step(_harmonic_oscillator, 0.0, x0, 1.0, config=config)
        t1 = float(result.dt_used)
        expected = jnp.array([jnp.cos(t1), -jnp.sin(t1)])
        assert jnp.allclose(result.state, expected, atol=1e-9)

    def test_attempts_exhausted_not_accepted(self):
        """Running out of retries returns an unaccepted step."""
        x0 = jnp.array([1.0, 0.0])
        config = AdaptiveConfig(abs_tol=1e-12, rel_tol=1e-12, max_step_attempts=1)
        result = dp54_step(_harmonic_oscillator, 0.0, x0, 2.0, config=config)
        assert not bool(result.accepted)
        assert float(result.error_estimate) > 1.0

    def test_backward_integration(self):
        """DP54 supports negative dt for backward integration."""
        x0 = jnp.array([1.0])
        dt = 0.5
        result_fwd = dp54_step(_exponential_decay, 0.0, x0, dt)
        t1 = result_fwd.dt_used
        result_bwd = dp54_step(_exponential_decay, t1, result_fwd.state, -t1)
        expected = jnp.exp(-(t1 + result_bwd.dt_used))
        assert jnp.allclose(result_bwd.state, jnp.array([expected]), atol=1e-6)
        assert float(result_bwd.dt_used) < 0.0

    def test_two_body_circular_orbit(self):
        """DP54 preserves circular orbit radius."""
        sma = 7000e3
        state0 = _circular_orbit_state(sma)
        dt = 60.0
        result = dp54_step(_two_body, 0.0, state0, dt)
        r_final = jnp.linalg.norm(result.state[:3])
        assert jnp.abs(r_final - sma) / sma < 1e-6


# ──────────────────────────────────────────────
# Time-grid integration
# ──────────────────────────────────────────────

class TestValidateTimeGrid:
    def test_valid_increasing(self):
        t = validate_time_grid([0.0, 1.0, 5.0])
        assert isinstance(t, np.ndarray)
        assert t.shape == (3,)

    def test_valid_decreasing(self):
        assert validate_time_grid(jnp.array([5.0, 1.0, 0.0])).shape == (3,)

    @pytest.mark.parametrize(
        "t_eval",
        [
            [0.0],
            [],
            [[0.0, 1.0], [2.0, 3.0]],
            [0.0, 1.0, 1.0, 2.0],
            [0.0, 2.0, 1.0],
            [0.0, float("nan"), 2.0],
            [0.0, float("inf")],
        ],
    )
    def test_invalid(self, t_eval):
        with pytest.raises(ValueError):
            validate_time_grid(t_eval)


class TestIntegrate:
    def test_exponential_decay_on_grid(self):
        """Every grid entry matches the analytic solution."""
        t_eval = jnp.linspace(0.0, 5.0, 11)
        result = check_integration(integrate(_exponential_decay, t_eval, jnp.array([1.0])))

        assert isinstance(result, IntegrationResult)
        assert result.states.shape == (11, 1)
        assert jnp.max(jnp.abs(result.states[:, 0] - jnp.exp(-t_eval))) < _GRID_TOL

    def test_t_echoed(self):
        t_eval = jnp.array([0.0, 0.25, 1.0, 3.5])
        result = integrate(_exponential_decay, t_eval, jnp.array([1.0]))
        assert jnp.all(result.t == t_eval)

    def test_initial_row_is_x0(self):
        x0 = jnp.array([0.3, -0.7])
        result = integrate(_harmonic_oscillator, jnp.array([0.0, 1.0, 2.0]), x0)
        assert jnp.all(result.states[0] == x0)

    def test_uneven_grid_hit_exactly(self):
        """Irregular and very short intervals are reported at the requested times."""
        t_eval = jnp.array([0.0, 1e-9, 0.3, 0.7, 1.9, 2.0, 6.0])
        x0 = jnp.array([1.0, 0.0])
        result = check_integration(integrate(_harmonic_oscillator, t_eval, x0))
        expected = jnp.stack([jnp.cos(t_eval), -jnp.sin(t_eval)], axis=1)

        assert result.states.shape == (7, 2)
        assert jnp.max(jnp.abs(result.states - expected)) < _GRID_TOL

    def test_sampling_does_not_change_solution(self):
        """A dense grid and a two-point grid end in the same state."""
        x0 = jnp.array([1.0, 0.0])
        coarse = integrate(_harmonic_oscillator, jnp.array([0.0, 10.0]), x0)
        dense = integrate(_harmonic_oscillator, jnp.linspace(0.0, 10.0, 101), x0)
        assert jnp.max(jnp.abs(coarse.states[-1] - dense.states[-1])) < 1e-4

    def test_backward_grid(self):
        """A decreasing grid integrates backward."""
        t_eval = jnp.linspace(5.0, 0.0, 6)
        x0 = jnp.array([jnp.exp(-5.0)])
        result = check_integration(integrate(_exponential_decay, t_eval, x0))
        assert jnp.max(jnp.abs(result.states[:, 0] - jnp.exp(-t_eval))) < _GRID_TOL

    def test_two_body_period(self):
        """A circular orbit returns to its start after one period."""
        sma = 7000e3
        period = 2.0 * jnp.pi * jnp.sqrt(sma**3 / GM_EARTH)
        x0 = _circular_orbit_state(sma)
        config = AdaptiveConfig(abs_tol=1e-8, rel_tol=1e-11)
        result = check_integration(
            integrate(_two_body, jnp.array([0.0, float(period)]), x0, config)
        )
        assert jnp.max(jnp.abs(result.states[-1, :3] - x0[:3])) < 1.0
        assert jnp.max(jnp.abs(result.states[-1, 3:] - x0[3:])) < 1e-3

    def test_tighter_tolerance_takes_more_steps(self):
        x0 = jnp.array([1.0, 0.0])
        t_eval = jnp.array([0.0, 20.0])
        loose = integrate(_harmonic_oscillator, t_eval, x0, AdaptiveConfig(rel_tol=1e-4))
        tight = integrate(_harmonic_oscillator, t_eval, x0, AdaptiveConfig(rel_tol=1e-10))
        assert int(tight.n_steps) > int(loose.n_steps) > 0

    def test_invalid_grid_raises(self):
        with pytest.raises(ValueError):
            integrate(_exponential_decay, jnp.array([0.0, 0.0]), jnp.array([1.0]))

    def test_invalid_state_shape_raises(self):
        with pytest.raises(ValueError, match="one-dimensional"):
            integrate(_exponential_decay, jnp.array([0.0, 1.0]), jnp.ones((2, 2)))


class TestIntegrationFailures:
    def test_non_finite_start(self):
        result = integrate(_exponential_decay, jnp.array([0.0, 1.0]), jnp.array([jnp.nan]))
        assert int(result.status) == IntegrationStatus.NON_FINITE_STATE
        with pytest.raises(ValueError, match="non-finite"):
            check_integration(result)

    def test_non_finite_mid_integration(self):
        """Dynamics that become undefined partway are a domain error, not underflow."""
        result = integrate(_decay_until_half, jnp.array([0.0, 0.25, 1.0]), jnp.array([1.0]))
        assert int(result.status) == IntegrationStatus.NON_FINITE_STATE
        assert jnp.abs(result.states[1, 0] - jnp.exp(-0.25)) < _GRID_TOL
        with pytest.raises(ValueError, match="non-finite"):
            check_integration(result)

    def test_radial_infall_collision(self):
        """A body dropped from rest falls into the origin within 100 s."""
        dynamics = create_orbit_dynamics(GM_EARTH, GravityModel.earth())
        x0 = jnp.array([1e6, 0.0, 0.0, 0.0, 0.0, 0.0])
        result = integrate(dynamics, jnp.array([0.0, 100.0]), x0)
        assert int(result.status) == IntegrationStatus.NON_FINITE_STATE
        with pytest.raises(ValueError, match="non-finite"):
            check_integration(result)

    def test_radial_infall_before_collision_succeeds(self):
        """The free-fall time from 1000 km is about 56 s."""
        dynamics = create_orbit_dynamics(GM_EARTH, GravityModel.earth())
        x0 = jnp.array([1e6, 0.0, 0.0, 0.0, 0.0, 0.0])
        result = check_integration(integrate(dynamics, jnp.array([0.0, 30.0]), x0))
        assert 0.0 < result.states[-1, 0] < 1e6
        assert result.states[-1, 3] < 0.0

    def test_max_steps_exceeded(self):
        config = AdaptiveConfig(max_steps=2)
        result = integrate(
            _harmonic_oscillator, jnp.array([0.0, 50.0, 100.0]), jnp.array([1.0, 0.0]), config
        )
        assert int(result.status) == IntegrationStatus.MAX_STEPS_EXCEEDED
        assert int(result.n_steps) == 2
        with pytest.raises(RuntimeError, match="budget"):
            check_integration(result)

    def test_step_size_underflow(self):
        """A tolerance unreachable at the minimum step size ends the integration."""
        config = AdaptiveConfig(abs_tol=1e-14, rel_tol=1e-14, min_step=1.0)
        result = integrate(
            _harmonic_oscillator, jnp.array([0.0, 10.0]), jnp.array([1.0, 0.0]), config
        )
        assert int(result.status) == IntegrationStatus.STEP_SIZE_UNDERFLOW
        with pytest.raises(RuntimeError, match="minimum"):
            check_integration(result)

    def test_success_passthrough(self):
        result = integrate(_exponential_decay, jnp.array([0.0, 1.0]), jnp.array([1.0]))
        assert int(result.status) == IntegrationStatus.SUCCESS
        assert check_integration(result) is result


def _step(dt_used, dt_next, accepted=True):
    return StepResult(
        state=jnp.array([1.0]),
        dt_used=jnp.array(dt_used),
        error_estimate=jnp.array(0.5),
        dt_next=jnp.array(dt_next),
        accepted=jnp.array(accepted),
    )


class TestCarryStepSize:
    def test_unclipped_uses_controller(self):
        h = _carry_step_size(
            jnp.array(10.0), jnp.array(10.0), jnp.array(False), _step(10.0, 12.0), 1.0
        )
        assert float(h) == pytest.approx(12.0)

    def test_clipped_first_attempt_resumes_step(self):
        """A short landing step does not shrink the following steps."""
        h = _carry_step_size(
            jnp.array(10.0), jnp.array(2.0), jnp.array(True), _step(2.0, 3.0), 1.0
        )
        assert float(h) == pytest.approx(10.0)

    def test_clipped_then_rejected_keeps_reduction(self):
        """A landing step that had to be shrunk leaves the smaller step in place."""
        h = _carry_step_size(
            jnp.array(10.0), jnp.array(2.0), jnp.array(True), _step(0.5, 0.8), 1.0
        )
        assert float(h) == pytest.approx(0.8)

    def test_backward_resumes_step(self):
        h = _carry_step_size(
            jnp.array(-10.0), jnp.array(-2.0), jnp.array(True), _step(-2.0, -3.0), -1.0
        )
        assert float(h) == pytest.approx(-10.0)

    def test_rejected_step_uses_controller(self):
        h = _carry_step_size(
            jnp.array(10.0),
            jnp.array(2.0),
            jnp.array(True),
            _step(0.4, 0.3, accepted=False),
            1.0,
        )
        assert float(h) == pytest.approx(0.3)


# ──────────────────────────────────────────────
# JAX compatibility tests
# ──────────────────────────────────────────────

class TestJAXCompatibility:
    def test_jit_dp54(self):
        """dp54_step is JIT-compilable."""
        x0 = jnp.array([1.0, 0.0])

        @jax.jit
        def step(t, x, dt):
            return dp54_step(_harmonic_oscillator, t, x, dt)

        result = step(0.0, x0, 0.1)
        assert jnp.all(jnp.isfinite(result.state))

    def test_vmap_dp54(self):
        """dp54_step works with vmap over a batch of initial conditions."""
        x0_batch = jnp.array([
            [1.0, 0.0],
            [0.0, 1.0],
        ])

        def step(x0):
            return dp54_step(_harmonic_oscillator, 0.0, x0, 0.1).state

        results = jax.vmap(step)(x0_batch)
        assert results.shape == (2, 2)
        assert jnp.allclose(results[0], jnp.array([jnp.cos(0.1), -jnp.sin(0.1)]), atol=1e-6)

    def test_lax_scan_dp54(self):
        """dp54_step works inside jax.lax.scan."""
        x0 = jnp.array([1.0, 0.0])

        def scan_fn(carry, _):
            t, x = carry
            result = dp54_step(_harmonic_oscillator, t, x, 0.1)
            return (t + result.dt_used, result.state), result.state

        (t_final, _), states = jax.lax.scan(scan_fn, (jnp.array(0.0), x0), None, length=10)
        assert states.shape == (10, 2)
        assert jnp.allclose(states[-1], jnp.array([jnp.cos(t_final), -jnp.sin(t_final)]), atol=1e-6)

    def test_integrate_reuses_compilation(self):
        """Repeated calls with the same dynamics give identical results."""
        x0 = jnp.array([1.0, 0.0])
        t_eval = jnp.linspace(0.0, 3.0, 4)
        first = integrate(_harmonic_oscillator, t_eval, x0)
        second = integrate(_harmonic_oscillator, t_eval, x0)
        assert jnp.all(first.states == second.states)
