"""
Chain contribution for heterosegmented molecules.

Every bond between the segment groups a and b contributes - count * rho * ln g_ab, where g_ab is the hard-sphere
contact value of the bonded pair. The functional is the heterosegmented form of the Sauer & Gross (2017) chain
functional, where the bonded partner density is averaged over a shell with radius equal to the bond length.
"""
import numpy as np
import jax.numpy as jnp
from gcsaft.numeric import zeta, contact_value, non_negative
from gcsaft.WeightFunction import LocalDensity, Delta, NormTheta


def _dd(d, a, b):
    return d[a] * d[b] / (d[a] + d[b])


def bulk_helmholtz_energy_density(parameters, T, rho, d=None):
    """Helmholtz contribution
    Reduced chain Helmholtz energy density.

    Args:
        parameters (ParameterSet) : Model parameters
        T (float) : Temperature [K]
        rho (1d array) : Segment group densities [particles / Å^3]
        d (1d array, optional) : Hard-sphere diameters [Å]

    Returns:
        float : Reduced Helmholtz energy density [1 / Å^3]
    """
    if not parameters.bonds:
        return 0.0
    if d is None:
        d = parameters.hs_diameter(T)
    z2 = zeta(parameters.m, d, rho, 2)
    z3 = zeta(parameters.m, d, rho, 3)
    rho_pos = non_negative(rho)
    phi = 0.0
    for (a, b), count in parameters.bonds:
        g = contact_value(_dd(d, a, b), z2, z3)
        # Bonding penalty, vanishes together with its first derivatives when rho[a] == rho[b]
        mismatch = 0.5 * (rho_pos[a] - rho_pos[b]) * jnp.log(rho_pos[a] / rho_pos[b])
        phi = phi + count * (mismatch - 0.5 * (rho[a] + rho[b]) * jnp.log(g))
    return phi


def bond_lengths(parameters, T):
    """Utility
    Length of every bond, (d_a + d_b) / 2, as {(a, b) : length}.
    """
    d = parameters.hs_diameter(T)
    return {(a, b): 0.5 * (d[a] + d[b]) for (a, b), _ in parameters.bonds}


def get_weights(parameters, T):
    """Weights
    Weights for the chain functional, indexed as w[<wt idx>][<segment idx>]. The weighted densities are

        * the local density of every segment group,
        * for every bond (a, b): the density of b on a shell around a, and the density of a on a shell around b,
          both normalised and with radius equal to the bond length,
        * zeta_2 and zeta_3, averaged over a sphere with radius equal to the segment diameter.
    """
    nseg = parameters.nsegments
    d = parameters.hs_diameter(T)
    m = parameters.m
    w = []
    for a in range(nseg):
        row = [0 for _ in range(nseg)]
        row[a] = LocalDensity()
        w.append(row)

    for (a, b), _ in parameters.bonds:
        r_ab = 0.5 * (d[a] + d[b])
        for partner in (b, a):
            row = [0 for _ in range(nseg)]
            row[partner] = Delta(r_ab) / (4 * np.pi * r_ab ** 2)
            w.append(row)

    for k in (2, 3):
        w.append([NormTheta(d[s]) * ((np.pi / 6) * m[s] * d[s] ** k) for s in range(nseg)])
    return w


def n_weights(parameters):
    return parameters.nsegments + 2 * len(parameters.bonds) + 2


def functional_helmholtz_energy_density(parameters, T, n, d=None):
    """Helmholtz contribution
    Local chain Helmholtz energy density from the weighted densities produced by `get_weights`.

    Args:
        parameters (ParameterSet) : Model parameters
        T (float) : Temperature [K]
        n (array) : Weighted densities, indexed as n[<wt idx>] or n[<wt idx>][<grid idx>]
        d (1d array, optional) : Hard-sphere diameters [Å]

    Returns:
        Reduced Helmholtz energy density [1 / Å^3]
    """
    if not parameters.bonds:
        return 0.0
    if d is None:
        d = parameters.hs_diameter(T)
    nseg = parameters.nsegments
    nbonds = len(parameters.bonds)
    rho = non_negative(n[:nseg])
    lamb = non_negative(n[nseg: nseg + 2 * nbonds])
    z2, z3 = n[nseg + 2 * nbonds], n[nseg + 2 * nbonds + 1]

    phi = 0.0
    for bi, ((a, b), count) in enumerate(parameters.bonds):
        lny = jnp.log(contact_value(_dd(d, a, b), z2, z3))
        lamb_a, lamb_b = lamb[2 * bi], lamb[2 * bi + 1]
        phi = phi + 0.5 * count * (rho[a] * (jnp.log(rho[a] / lamb_a) - lny)
                                   + rho[b] * (jnp.log(rho[b] / lamb_b) - lny))
    return phi
