"""Gravity force models: point-mass and J2 zonal harmonic.

The J2 field is the gradient of the central-body potential truncated after
the second zonal term,

.. math::

    U(r, \\phi) = \\frac{\\mu}{r}\\left(1 - \\frac{J_2}{2}
        \\left(\\frac{R}{r}\\right)^2 P_2\\right),
    \\qquad P_2 = 3\\cos^2\\phi - 1,

with *phi* the colatitude.  The radial and colatitude components of
``grad U`` are evaluated analytically and rotated to Cartesian; the
longitude component vanishes because the field is axisymmetric.

All inputs and outputs use SI base units (metres, metres/second squared).

References:
    1. O. Montenbruck and E. Gill, *Satellite Orbits: Models, Methods
       and Applications*, 2012, p. 56-68.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from j2prop.config import get_dtype
from j2prop.constants import J2_EARTH, R_EARTH_MEAN
from j2prop.coordinates.spherical import (
    position_cartesian_to_spherical,
    rotation_spherical_to_cartesian,
)


# ---------------------------------------------------------------------------
# Gravity model constants
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class GravityModel:
    """Zonal gravity field constants of the central body.

    The gravitational parameter is supplied per call; the model only
    fixes the shape of the field.  Instances are immutable and hashable,
    so they can be closed over by JIT-compiled dynamics.

    Args:
        name: Human-readable name of the model.
        radius: Reference radius *R* of the harmonic expansion [m].
        j2: Second zonal harmonic coefficient [dimensionless].

    Examples:
        ```python
        from j2prop.orbit_dynamics import GravityModel
        model = GravityModel.earth()
        model.j2
        ```
    """

    name: str = "EARTH_J2"
    radius: float = R_EARTH_MEAN
    j2: float = J2_EARTH

    def __post_init__(self) -> None:
        if not self.radius > 0.0:
            raise ValueError(f"radius must be positive, got {self.radius}")

    @staticmethod
    def earth() -> GravityModel:
        """Preset: Earth mean radius with the J2 oblateness term."""
        return GravityModel()

    @staticmethod
    def point_mass(radius: float = R_EARTH_MEAN) -> GravityModel:
        """Preset: J2 disabled, the field reduces to inverse-square attraction."""
        return GravityModel(name="POINT_MASS", radius=radius, j2=0.0)


# ---------------------------------------------------------------------------
# Accelerations
# ---------------------------------------------------------------------------


def accel_point_mass(r_object: ArrayLike, gm: float) -> Array:
    """Acceleration due to point-mass gravity of a body at the origin.

    Args:
        r_object: Position of the object [m].  Shape ``(3,)`` or ``(6,)``
            (only first 3 elements used).
        gm: Gravitational parameter of the central body [m^3/s^2].

    Returns:
        Acceleration vector ``-gm * r / |r|^3`` [m/s^2], shape ``(3,)``.
    """
    r_obj = jnp.asarray(r_object, dtype=get_dtype())[:3]
    r_norm = jnp.linalg.norm(r_obj)
    return -gm * r_obj / r_norm**3


def accel_j2(
    r_object: ArrayLike,
    gm: float,
    model: GravityModel | None = None,
) -> Array:
    """Acceleration of the J2-truncated gravity field.

    Computes the spherical coordinates of the position, evaluates the
    radial and colatitude components of the potential gradient,

    .. math::

        a_r = \\frac{\\mu}{2r^4}\\left(9 J_2 R^2 \\cos^2\\phi
              - 3 J_2 R^2 - 2 r^2\\right), \\qquad
        a_\\phi = \\frac{3 \\mu J_2 R^2 \\sin\\phi \\cos\\phi}{r^4},

    and rotates ``[a_r, a_phi, 0]`` to Cartesian with
    :func:`~j2prop.coordinates.spherical.rotation_spherical_to_cartesian`.

    Traceable under ``jax.jit``/``jax.vmap``.  A zero position is not
    checked here and produces non-finite output; use :func:`accel_field`
    for a checked evaluation.

    Args:
        r_object: Position of the object [m].  Shape ``(3,)`` or ``(6,)``
            (only first 3 elements used).
        gm: Gravitational parameter of the central body [m^3/s^2].
        model: Gravity model constants.  Defaults to
            :meth:`GravityModel.earth`.

    Returns:
        Acceleration vector [m/s^2], shape ``(3,)``.
    """
    if model is None:
        model = GravityModel.earth()

    x_sph = position_cartesian_to_spherical(r_object)
    r = x_sph[0]
    phi = x_sph[1]
    theta = x_sph[2]

    sp = jnp.sin(phi)
    cp = jnp.cos(phi)
    jr2 = model.j2 * model.radius**2
    r4 = r**4

    accel_rad = gm / 2.0 / r4 * (9.0 * jr2 * cp**2 - 3.0 * jr2 - 2.0 * r**2)
    accel_col = 3.0 * gm * jr2 * sp * cp / r4

    a_sph = jnp.array([accel_rad, accel_col, jnp.zeros_like(r)])

    return rotation_spherical_to_cartesian(phi, theta) @ a_sph


def accel_j2_cartesian(
    r_object: ArrayLike,
    gm: float,
    model: GravityModel | None = None,
) -> Array:
    """Closed-form Cartesian J2 acceleration.

    Same field as :func:`accel_j2`, written directly in Cartesian
    components:

    .. math::

        \\mathbf{a} = -\\frac{\\mu}{r^3}\\mathbf{r}
            + \\frac{3}{2}\\frac{J_2 \\mu R^2}{r^4}
            \\begin{bmatrix}
                \\frac{x}{r}(5 z^2/r^2 - 1) \\\\
                \\frac{y}{r}(5 z^2/r^2 - 1) \\\\
                \\frac{z}{r}(5 z^2/r^2 - 3)
            \\end{bmatrix}

    Args:
        r_object: Position of the object [m].  Shape ``(3,)`` or ``(6,)``.
        gm: Gravitational parameter of the central body [m^3/s^2].
        model: Gravity model constants.  Defaults to
            :meth:`GravityModel.earth`.

    Returns:
        Acceleration vector [m/s^2], shape ``(3,)``.
    """
    if model is None:
        model = GravityModel.earth()

    r_obj = jnp.asarray(r_object, dtype=get_dtype())[:3]
    r = jnp.linalg.norm(r_obj)
    z2_r2 = r_obj[2] ** 2 / r**2

    coeff = 1.5 * model.j2 * gm * model.radius**2 / r**4
    perturbation = coeff * (r_obj / r) * jnp.array(
        [5.0 * z2_r2 - 1.0, 5.0 * z2_r2 - 1.0, 5.0 * z2_r2 - 3.0]
    )

    return accel_point_mass(r_obj, gm) + perturbation


def accel_field(
    r_object: ArrayLike,
    gm: float,
    model: GravityModel | None = None,
) -> Array:
    """Checked evaluation of the J2 acceleration field.

    Wraps :func:`accel_j2` with a guard on the position norm.  The check
    needs a concrete value, so call this eagerly; inside ``jax.jit`` use
    :func:`accel_j2` directly.

    Args:
        r_object: Position of the object [m].  Shape ``(3,)`` or ``(6,)``
            (only first 3 elements used).
        gm: Gravitational parameter of the central body [m^3/s^2].
        model: Gravity model constants.  Defaults to
            :meth:`GravityModel.earth`.

    Returns:
        Acceleration vector [m/s^2], shape ``(3,)``.

    Raises:
        ValueError: If the position norm is zero or not finite, where the
            spherical angles of the field are undefined.

    Examples:
        ```python
        import jax.numpy as jnp
        from j2prop.constants import GM_EARTH
        from j2prop.orbit_dynamics import accel_field
        a = accel_field(jnp.array([7000e3, 0.0, 0.0]), GM_EARTH)
        ```
    """
    r_obj = jnp.asarray(r_object, dtype=get_dtype())[:3]
    r_norm = float(jnp.linalg.norm(r_obj))
    if r_norm == 0.0 or not math.isfinite(r_norm):
        raise ValueError(
            f"Acceleration field is undefined at position {r_obj.tolist()} "
            f"(norm {r_norm})"
        )
    return accel_j2(r_obj, gm, model)
