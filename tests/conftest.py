import jax.numpy as jnp
import pytest

from j2prop.config import set_dtype


@pytest.fixture(autouse=True)
def _ensure_float64():
    """Set float64 precision before every test.

    Propagation tolerances are far below float32 resolution at orbital
    distances, so all tests run in float64 unless they explicitly override
    it (e.g. test_config.py has its own autouse fixture that sets float32).
    """
    set_dtype(jnp.float64)
