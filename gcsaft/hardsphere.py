"""
Hard-sphere contribution.

The bulk term is the Boublik-Mansoori-Carnahan-Starling-Leland (BMCSL) expression, the functional is the White Bear
version of fundamental measure theory, which reduces to BMCSL for a uniform density.
"""
from enum import IntEnum
import numpy as np
import jax.numpy as jnp
from gcsaft.numeric import zeta
from gcsaft.WeightFunction import get_FMT_weights


class FMTVersion(IntEnum):
    WhiteBear = 1
    AntiSymWhiteBear = 2


def bulk_helmholtz_energy_density(parameters, T, rho, d=None):
    """Helmholtz contribution
    Reduced hard-sphere Helmholtz energy density (BMCSL).

    Args:
        parameters (ParameterSet) : Model parameters
        T (float) : Temperature [K]
        rho (1d array) : Segment group densities [particles / Å^3]
        d (1d array, optional) : Hard-sphere diameters [Å], computed from T if not supplied

    Returns:
        float : Reduced Helmholtz energy density [1 / Å^3]
    """
    if d is None:
        d = parameters.hs_diameter(T)
    m = parameters.m
    z0, z1, z2, z3 = (zeta(m, d, rho, k) for k in range(4))
    frac = 1 - z3
    return 6 / np.pi * (3 * z1 * z2 / frac + z2 ** 3 / (z3 * frac ** 2) + (z2 ** 3 / z3 ** 2 - z0) * jnp.log(frac))


def get_weights(parameters, T):
    """Weights
    FMT weights w[<wt idx>][<segment idx>], radius d / 2 and prefactor m, ordered as n0, n1, n2, n3, nv1, nv2.
    """
    R = 0.5 * parameters.hs_diameter(T)
    return get_FMT_weights(R, parameters.m)


def fmt_helmholtz_energy_density(n, version=FMTVersion.WhiteBear):
    """Helmholtz contribution
    White Bear FMT, see Roth, J. Phys.: Condens. Matter 22 (2010) 063102. The anti-symmetrised version
    replaces the tensorial term with the form suggested by Rosenfeld and Tarazona, which is better behaved close
    to walls. Both give the BMCSL free energy when the vector weighted densities vanish.

    Args:
        n (list) : Weighted densities n0, n1, n2, n3, nv1, nv2 (scalars or grid arrays), vector weighted densities
                    are the projection on the symmetry axis.
        version (FMTVersion) : Which functional to use

    Returns:
        Reduced Helmholtz energy density [1 / Å^3]
    """
    n0, n1, n2, n3, nv1, nv2 = n
    frac = 1 - n3
    phi1 = - n0 * jnp.log(frac)
    phi2 = (n1 * n2 - nv1 * nv2) / frac
    if version == FMTVersion.WhiteBear:
        phi3_num = n2 ** 3 - 3 * n2 * nv2 * nv2
    elif version == FMTVersion.AntiSymWhiteBear:
        xi2 = (nv2 / n2) ** 2
        phi3_num = n2 ** 3 * (1 - xi2) ** 3
    else:
        raise ValueError(f'Unknown FMT version {version}')
    phi3 = phi3_num * (n3 + frac ** 2 * jnp.log(frac)) / (36 * np.pi * n3 ** 2 * frac ** 2)
    return phi1 + phi2 + phi3
