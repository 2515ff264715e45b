"""Spherical (radius, colatitude, longitude) coordinate transformations.

Converts between Cartesian positions ``[x, y, z]`` and spherical
coordinates ``[r, phi, theta]`` where *phi* is the colatitude measured
from the +z (polar) axis and *theta* is the longitude measured from the
+x axis in the equatorial plane.  Also provides the rotation that maps
vector components expressed along the local spherical unit vectors
``(e_r, e_phi, e_theta)`` onto the Cartesian axes.

All inputs and outputs use SI base units (metres, radians).
"""

from __future__ import annotations

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from j2prop.config import get_dtype


def position_cartesian_to_spherical(
    x_cart: ArrayLike,
    use_degrees: bool = False,
) -> Array:
    """Convert a Cartesian position to spherical coordinates.

    Args:
        x_cart: Cartesian position ``[x, y, z]`` in *m*.  A 6-element
            state is also accepted (only the first 3 elements are used).
        use_degrees: If ``True``, return the angles in degrees.

    Returns:
        jax.Array: ``[r, phi, theta]`` with radius in *m*, colatitude
            ``phi = atan2(rho, z)`` in ``[0, pi]`` and longitude
            ``theta = atan2(y, x)`` in ``(-pi, pi]``.

    Examples:
        ```python
        import jax.numpy as jnp
        from j2prop.coordinates import position_cartesian_to_spherical
        position_cartesian_to_spherical(jnp.array([0.0, 0.0, 7000e3]))
        ```
    """
    x_cart = jnp.asarray(x_cart, dtype=get_dtype())[:3]

    r = jnp.linalg.norm(x_cart)
    rho = jnp.sqrt(x_cart[0] * x_cart[0] + x_cart[1] * x_cart[1])
    phi = jnp.arctan2(rho, x_cart[2])
    theta = jnp.arctan2(x_cart[1], x_cart[0])

    if use_degrees:
        phi = jnp.rad2deg(phi)
        theta = jnp.rad2deg(theta)

    return jnp.array([r, phi, theta])


def position_spherical_to_cartesian(
    x_sph: ArrayLike,
    use_degrees: bool = False,
) -> Array:
    """Convert spherical coordinates to a Cartesian position.

    Args:
        x_sph: ``[r, phi, theta]`` with radius in *m*, colatitude and
            longitude in *rad* (or *deg* if ``use_degrees=True``).
        use_degrees: If ``True``, interpret the angles as degrees.

    Returns:
        jax.Array: Cartesian position ``[x, y, z]`` in *m*.
    """
    x_sph = jnp.asarray(x_sph, dtype=get_dtype())

    r = x_sph[0]
    phi = x_sph[1]
    theta = x_sph[2]

    if use_degrees:
        phi = jnp.deg2rad(phi)
        theta = jnp.deg2rad(theta)

    sin_p = jnp.sin(phi)
    return r * jnp.array(
        [sin_p * jnp.cos(theta), sin_p * jnp.sin(theta), jnp.cos(phi)]
    )


def rotation_spherical_to_cartesian(phi: ArrayLike, theta: ArrayLike) -> Array:
    """Rotation from local spherical components to Cartesian components.

    The first two columns are the unit vectors ``e_r`` and ``e_phi``.  The
    third column carries ``e_theta`` in its first two rows and a literal
    ``1`` in the z row; a pure rotation would have ``0`` there.  It only
    ever multiplies the longitude component of an axisymmetric field,
    which is identically zero, so the product is unaffected.

    Args:
        phi: Colatitude [rad].
        theta: Longitude [rad].

    Returns:
        jax.Array: Matrix of shape ``(3, 3)``.
    """
    _float = get_dtype()
    phi = jnp.asarray(phi, dtype=_float)
    theta = jnp.asarray(theta, dtype=_float)

    sp = jnp.sin(phi)
    cp = jnp.cos(phi)
    st = jnp.sin(theta)
    ct = jnp.cos(theta)

    return jnp.array(
        [
            [sp * ct, cp * ct, -st],
            [sp * st, cp * st, ct],
            [cp, -sp, jnp.ones_like(cp)],
        ]
    )
