"""
Numeric helpers shared by the bulk and functional contributions.

Everything here is written against jax.numpy, so the same code accepts floats, numpy arrays and jax tracers
(derivative-carrying values). Densities are either 1d arrays indexed by segment group, or arrays indexed as
rho[<segment idx>][<grid idx>] when evaluated on a DFT grid.
"""
import jax
import jax.numpy as jnp
from gcsaft.errors import DimensionMismatch


def as_density_vector(rho, expected, what='segment densities'):
    """Utility
    Convert to a jax array and check the length of the leading axis.

    Raises:
        DimensionMismatch : If the leading axis does not have `expected` entries
    """
    rho = jnp.asarray(rho, dtype=float)
    got = rho.shape[0] if rho.ndim > 0 else 1
    if rho.ndim == 0 or got != expected:
        raise DimensionMismatch(expected, got, what)
    return rho


def expand(x, ndim):
    """Utility
    Append `ndim` trailing axes to x, such that per-segment parameters broadcast against grid arrays.
    """
    x = jnp.asarray(x)
    return jnp.reshape(x, x.shape + (1,) * ndim)


def zeta(m, d, rho, k):
    r"""Weighted density
    Moments $\zeta_k = \pi / 6 \sum_\alpha \rho_\alpha m_\alpha d_\alpha^k$ of the segment densities.
    """
    return jnp.tensordot(jnp.pi / 6 * m * d ** k, rho, axes=(0, 0))


def non_negative(n):
    """Utility
    Clean negative or exactly zero weighted densities before they are passed to a logarithm.
    """
    tiny = jnp.finfo(jnp.result_type(n, float)).smallest_normal
    return jnp.abs(n) + tiny


def contact_value(dd, zeta2, zeta3):
    """Utility
    Hard-sphere pair correlation function at contact for a pair with dd = d_i d_j / (d_i + d_j).
    """
    z3i = 1 / (1 - zeta3)
    return z3i + 3 * dd * zeta2 * z3i ** 2 + 2 * (dd * zeta2) ** 2 * z3i ** 3


def concrete_value(x):
    """Utility
    The value of a scalar as a float, or None when it is abstract, as when traced by `jax.jit` or `jax.vmap`.
    """
    try:
        return float(x)
    except jax.errors.ConcretizationTypeError:
        return None
