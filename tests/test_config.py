"""Tests for the j2prop.config module."""

import logging

import jax
import jax.numpy as jnp
import pytest

from j2prop.config import get_dtype, is_double_precision, set_dtype
from j2prop.constants import GM_EARTH
from j2prop.coordinates import state_koe_to_eci
from j2prop.orbit_dynamics import accel_j2
from j2prop.orbits import orbital_period
from j2prop.propagator import propagate

pytestmark = pytest.mark.order("first")


@pytest.fixture(autouse=True)
def reset_dtype():
    """Reset dtype to float32 before and after each test."""
    set_dtype(jnp.float32)
    yield
    set_dtype(jnp.float32)


class TestGetSetDtype:
    def test_default_dtype(self):
        assert get_dtype() == jnp.float32

    def test_set_float64(self):
        set_dtype(jnp.float64)
        assert get_dtype() == jnp.float64
        assert is_double_precision()

    def test_set_float32(self):
        set_dtype(jnp.float64)
        set_dtype(jnp.float32)
        assert get_dtype() == jnp.float32
        assert not is_double_precision()

    def test_roundtrip(self):
        for dtype in (jnp.float16, jnp.bfloat16, jnp.float32, jnp.float64):
            set_dtype(dtype)
            assert get_dtype() == dtype

    def test_float64_enables_x64(self):
        set_dtype(jnp.float64)
        assert jax.config.jax_enable_x64

    def test_invalid_dtype_raises(self):
        with pytest.raises(ValueError, match="Unsupported dtype"):
            set_dtype(jnp.int32)

    def test_invalid_dtype_string_raises(self):
        with pytest.raises(ValueError, match="Unsupported dtype"):
            set_dtype("float32")


class TestDtypePropagation:
    """Outputs follow the configured dtype."""

    def test_koe_to_eci_float32(self):
        state = state_koe_to_eci(jnp.array([7000e3, 0.01, 0.5, 0.0, 0.0, 0.0]))
        assert state.dtype == jnp.float32

    def test_koe_to_eci_float64(self):
        set_dtype(jnp.float64)
        state = state_koe_to_eci(jnp.array([7000e3, 0.01, 0.5, 0.0, 0.0, 0.0]))
        assert state.dtype == jnp.float64

    def test_accel_float64(self):
        set_dtype(jnp.float64)
        a = accel_j2(jnp.array([7000e3, 0.0, 1000e3]), GM_EARTH)
        assert a.dtype == jnp.float64

    def test_orbital_period_float64(self):
        set_dtype(jnp.float64)
        assert orbital_period(7000e3).dtype == jnp.float64

    def test_propagate_warns_in_single_precision(self, caplog):
        oe0 = jnp.array([7000e3, 0.01, 0.5, 0.0, 0.0, 0.0])
        with caplog.at_level(logging.WARNING, logger="j2prop.propagator"):
            propagate(oe0, jnp.array([0.0, 60.0]), GM_EARTH, 1e-6, abs_tol=1e-2)
        assert any("float32" in record.getMessage() for record in caplog.records)
