"""
PC-SAFT dispersion contribution (Gross & Sadowski, Ind. Eng. Chem. Res. 40 (2001) 1244), written for
heterosegmented molecules. The functional evaluates the same expression at densities averaged over a sphere of
radius psi * d (Sauer & Gross, Ind. Eng. Chem. Res. 56 (2017) 4119).
"""
import numpy as np
import jax.numpy as jnp
from gcsaft.numeric import zeta, expand, non_negative
from gcsaft.WeightFunction import NormTheta

A0 = np.array([0.91056314451539, 0.63612814494991, 2.68613478913903, -26.5473624914884, 97.7592087835073,
               -159.591540865600, 91.2977740839123])
A1 = np.array([-0.30840169182720, 0.18605311591713, -2.50300472586548, 21.4197936296668, -65.2558853303492,
               83.3186804808856, -33.7469229297323])
A2 = np.array([-0.09061483509767, 0.45278428063920, 0.59627007280101, -1.72418291311787, -4.13021125311661,
               13.7766318697211, -8.67284703679646])
B0 = np.array([0.72409469413165, 2.23827918609380, -4.00258494846342, -21.00357681484648, 26.85564136266150,
               206.55133840661881, -355.60235612207947])
B1 = np.array([-0.57554980753450, 0.69950955214436, 3.89256733895307, -17.21547164777212, 192.67226446524950,
               -161.82646164876479, -165.20769345556070])
B2 = np.array([0.09768831158356, -0.25575749816100, -9.15585615297321, 20.64207597439724, -38.80443005206285,
               93.62677407701460, -29.66690558514725])


def helmholtz_energy_density(parameters, T, rho, d):
    """Helmholtz contribution
    Dispersion energy density for segment group densities rho, indexed as rho[<segment idx>] or
    rho[<segment idx>][<grid idx>]. The mean segment number is computed from the molecule densities, see
    `ParameterSet.molecule_densities`.
    """
    m = parameters.m
    nd = rho.ndim - 1
    eta = zeta(m, d, rho, 3)
    rho_mol = jnp.tensordot(parameters.molecule_matrix, rho, axes=(1, 0))
    m_bar = jnp.tensordot(m, rho, axes=(0, 0)) / jnp.sum(rho_mol, axis=0)
    m1 = (m_bar - 1) / m_bar
    m2 = m1 * (m_bar - 2) / m_bar

    i1, i2 = 0.0, 0.0
    for i in range(7):
        i1 = i1 + (A0[i] + m1 * A1[i] + m2 * A2[i]) * eta ** i
        i2 = i2 + (B0[i] + m1 * B1[i] + m2 * B2[i]) * eta ** i
    c1 = 1 / (1 + m_bar * (8 * eta - 2 * eta ** 2) / (1 - eta) ** 4
              + (1 - m_bar) * (20 * eta - 27 * eta ** 2 + 12 * eta ** 3 - 2 * eta ** 4)
              / ((1 - eta) * (2 - eta)) ** 2)

    rho_m = rho * expand(m, nd)
    e = parameters.epsilon_k_ij / T
    s3 = parameters.sigma_ij ** 3
    rho1 = jnp.einsum('i...,ij,j...->...', rho_m, e * s3, rho_m)
    rho2 = jnp.einsum('i...,ij,j...->...', rho_m, e ** 2 * s3, rho_m)
    return - np.pi * (2 * rho1 * i1 + rho2 * m_bar * c1 * i2)


def bulk_helmholtz_energy_density(parameters, T, rho, d=None):
    """Helmholtz contribution
    Reduced dispersion Helmholtz energy density.

    Args:
        parameters (ParameterSet) : Model parameters
        T (float) : Temperature [K]
        rho (1d array) : Segment group densities [particles / Å^3]
        d (1d array, optional) : Hard-sphere diameters [Å]

    Returns:
        float : Reduced Helmholtz energy density [1 / Å^3]
    """
    if d is None:
        d = parameters.hs_diameter(T)
    return helmholtz_energy_density(parameters, T, rho, d)


def get_weights(parameters, T):
    """Weights
    One normalised theta weight per segment group, radius psi * d.
    """
    nseg = parameters.nsegments
    d = parameters.hs_diameter(T)
    w = [[0 for _ in range(nseg)] for _ in range(nseg)]
    for s in range(nseg):
        w[s][s] = NormTheta(parameters.psi_dft[s] * d[s])
    return w


def functional_helmholtz_energy_density(parameters, T, n, d=None):
    if d is None:
        d = parameters.hs_diameter(T)
    return helmholtz_energy_density(parameters, T, non_negative(n), d)
