"""
Ideal gas contribution from the Joback group contribution method (Joback & Reid, Chem. Eng. Commun. 57 (1987) 233).

The heat capacity polynomial of a molecule is the sum of its group contributions plus a constant correction. The
ideal gas reference state is T0 = 298.15 K and p0 = 1 bar.
"""
import numpy as np
import jax.numpy as jnp
from jax.scipy.special import xlogy
from scipy.constants import Avogadro, Boltzmann

T0 = 298.15
P0 = 1e5
GAS_CONSTANT = Avogadro * Boltzmann
# Added to the group sums of (a, b, c, d, e)
JOBACK_CORRECTION = (-37.93, 0.21, -3.91e-4, 2.06e-7, 0.0)


class JobackRecord:

    def __init__(self, a, b, c, d, e=0.0):
        """Constructor
        Coefficients of the ideal gas heat capacity cp = a + b T + c T^2 + d T^3 + e T^4 [J / mol K], either of one
        group or, after `from_groups`, of a molecule.
        """
        self.a = a
        self.b = b
        self.c = c
        self.d = d
        self.e = e

    def __repr__(self):
        return f'JobackRecord(a={self.a}, b={self.b}, c={self.c}, d={self.d}, e={self.e})'

    def __eq__(self, other):
        return isinstance(other, JobackRecord) and self.coefficients() == other.coefficients()

    def coefficients(self):
        return self.a, self.b, self.c, self.d, self.e

    @classmethod
    def from_groups(cls, group_counts):
        """Constructor
        Molecule record from (group record, count) pairs.
        """
        coeffs = [sum(c * rec.coefficients()[k] for rec, c in group_counts) + JOBACK_CORRECTION[k]
                  for k in range(5)]
        return cls(*coeffs)

    def heat_capacity(self, T):
        return self.a + T * (self.b + T * (self.c + T * (self.d + T * self.e)))

    def enthalpy(self, T):
        """Ideal gas enthalpy relative to T0 [J / mol]"""
        def h(t):
            return t * (self.a + t * (self.b / 2 + t * (self.c / 3 + t * (self.d / 4 + t * self.e / 5))))
        return h(T) - h(T0)

    def entropy(self, T):
        """Ideal gas entropy at p0 relative to T0 [J / mol K]"""
        def s(t):
            return t * (self.b + t * (self.c / 2 + t * (self.d / 3 + t * self.e / 4)))
        return self.a * jnp.log(T / T0) + s(T) - s(T0)

    def ln_lambda3(self, T):
        """
        Logarithm of the thermal volume Lambda^3 [Å^3], such that the ideal gas chemical potential is
        mu / kT = ln(rho Lambda^3) with rho in particles / Å^3.
        """
        return (self.enthalpy(T) - T * self.entropy(T)) / (GAS_CONSTANT * T) + jnp.log(Boltzmann * T / P0 * 1e30)


def helmholtz_energy_density(records, T, rho):
    """Helmholtz contribution
    Reduced ideal gas Helmholtz energy density, sum_i rho_i (ln(rho_i Lambda_i^3) - 1).

    Args:
        records (tuple[JobackRecord]) : One record per molecule
        T (float) : Temperature [K]
        rho (1d array) : Molecular densities [particles / Å^3]

    Returns:
        float : Reduced Helmholtz energy density [1 / Å^3]
    """
    ln_lambda3 = jnp.stack([jnp.asarray(rec.ln_lambda3(T), dtype=float) for rec in records])
    return jnp.sum(xlogy(rho, rho) + rho * (ln_lambda3 - 1))


def heat_capacity(records, T):
    return np.array([float(rec.heat_capacity(T)) for rec in records])
