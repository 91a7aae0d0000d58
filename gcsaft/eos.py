"""
Bulk gc-PC-SAFT model: the residual Helmholtz energy density as the sum of the hard-sphere, chain, dispersion and
association contributions, and the properties following from its derivatives.

All derivatives are computed by jax. Internally everything is in Å, particles / Å^3 and K, the methods ending in
_tv take SI inputs (K, m^3, mol) and return SI outputs.
"""
import warnings
import numpy as np
import jax
import jax.numpy as jnp
from scipy.constants import Avogadro, Boltzmann
from gcsaft import hardsphere, chain, dispersion, association, ideal_gas
from gcsaft.association import ASSOCIATION_METHODS
from gcsaft.errors import MissingParameter
from gcsaft.numeric import as_density_vector, zeta

CONTRIBUTIONS = ('hard_sphere', 'chain', 'dispersion', 'association')


def validate_contributions(contributions):
    """Utility
    Contributions to evaluate, in canonical order. None means all.

    Raises:
        ValueError : For unknown contribution names
    """
    if contributions is None:
        return CONTRIBUTIONS
    if isinstance(contributions, str):
        contributions = (contributions,)
    for c in contributions:
        if c not in CONTRIBUTIONS:
            raise ValueError(f"Unknown contribution '{c}', valid contributions are {CONTRIBUTIONS}")
    return tuple(c for c in CONTRIBUTIONS if c in contributions)


class GcPcSaft:

    def __init__(self, parameters, contributions=None, max_eta=0.5, max_iter_cross_assoc=50, tol_cross_assoc=1e-10,
                 assoc_method='newton', assoc_mixing=0.5, initial_site_fraction=1.0):
        """Constructor
        Heterosegmented group contribution PC-SAFT for bulk phases.

        Args:
            parameters (ParameterSet) : Model parameters
            contributions (tuple[str], optional) : Subset of 'hard_sphere', 'chain', 'dispersion' and 'association'
                                                    to evaluate. Default is all.
            max_eta (float) : Packing fraction limit used by `max_density`
            max_iter_cross_assoc (int) : Iteration budget for the association site fractions
            tol_cross_assoc (float) : Tolerance for the association site fractions
            assoc_method (str) : 'newton' or 'substitution', the update used for the association site fractions
            assoc_mixing (float) : Weight of the new iterate for successive substitution, in (0, 1]
            initial_site_fraction (float) : Initial guess for all site fractions
        """
        if not (0 < assoc_mixing <= 1):
            raise ValueError(f'assoc_mixing must be in (0, 1], got {assoc_mixing}')
        if assoc_method not in ASSOCIATION_METHODS:
            raise ValueError(f"Unknown association method '{assoc_method}', valid methods are {ASSOCIATION_METHODS}")
        self.parameters = parameters
        self.contributions = validate_contributions(contributions)
        self.max_eta = max_eta
        self.max_iter_cross_assoc = max_iter_cross_assoc
        self.tol_cross_assoc = tol_cross_assoc
        self.assoc_method = assoc_method
        self.assoc_mixing = assoc_mixing
        self.initial_site_fraction = initial_site_fraction

    def __repr__(self):
        return f'GcPcSaft for {", ".join(g.name for g in self.parameters.molecules)}\n' \
               f'\tcontributions : {", ".join(self.contributions)}\n' \
               f'\tassociation : {self.assoc_method}, max_iter = {self.max_iter_cross_assoc}, ' \
               f'tol = {self.tol_cross_assoc}'

    def options(self):
        return {'contributions': self.contributions, 'max_eta': self.max_eta,
                'max_iter_cross_assoc': self.max_iter_cross_assoc, 'tol_cross_assoc': self.tol_cross_assoc,
                'assoc_method': self.assoc_method, 'assoc_mixing': self.assoc_mixing,
                'initial_site_fraction': self.initial_site_fraction}

    def with_options(self, **kwargs):
        """Utility
        A new model with the same parameters and some options replaced, e.g. a looser association tolerance.
        """
        options = self.options()
        options.update(kwargs)
        return GcPcSaft(self.parameters, **options)

    def association_options(self):
        return {'max_iter': self.max_iter_cross_assoc, 'tol': self.tol_cross_assoc, 'mixing': self.assoc_mixing,
                'x0': self.initial_site_fraction, 'method': self.assoc_method}

    def validate_densities(self, rho):
        return as_density_vector(rho, self.parameters.nsegments)

    # ----------------------------------------------------------------------------------------------------------
    # Reduced properties: T [K], rho [particles / Å^3] indexed by segment group
    # ----------------------------------------------------------------------------------------------------------
    def helmholtz_energy_contributions(self, T, rho):
        """Helmholtz contribution
        Reduced residual Helmholtz energy density of every active contribution.

        Args:
            T (float) : Temperature [K]
            rho (1d array) : Segment group densities [particles / Å^3]

        Returns:
            dict[str, float] : Reduced Helmholtz energy densities [1 / Å^3]

        Raises:
            DimensionMismatch : If rho does not have one entry per segment group
            AssociationNotConverged : If the association site fractions do not converge
        """
        rho = self.validate_densities(rho)
        p = self.parameters
        d = p.hs_diameter(T)
        contribs = {}
        for name in self.contributions:
            if name == 'hard_sphere':
                contribs[name] = hardsphere.bulk_helmholtz_energy_density(p, T, rho, d)
            elif name == 'chain':
                contribs[name] = chain.bulk_helmholtz_energy_density(p, T, rho, d)
            elif name == 'dispersion':
                contribs[name] = dispersion.bulk_helmholtz_energy_density(p, T, rho, d)
            elif name == 'association':
                contribs[name] = association.bulk_helmholtz_energy_density(p, T, rho, d,
                                                                           **self.association_options())
        return contribs

    def reduced_helmholtz_energy_density(self, T, rho):
        """Helmholtz contribution
        Reduced residual Helmholtz energy density, phi = beta A_res / V.

        Args:
            T (float) : Temperature [K]
            rho (1d array) : Segment group densities [particles / Å^3]

        Returns:
            float : phi [1 / Å^3]
        """
        return sum(self.helmholtz_energy_contributions(T, rho).values(), 0.0)

    def reduced_helmholtz_energy_density_gradient(self, T, rho):
        """Bulk Property
        Derivatives of phi wrt. the segment group densities.

        Returns:
            1d array : d phi / d rho_a [-]
        """
        rho = self.validate_densities(rho)
        return jax.grad(lambda r: self.reduced_helmholtz_energy_density(T, r))(rho)

    def reduced_helmholtz_energy_density_hessian(self, T, rho):
        """Bulk Property
        Second derivatives of phi wrt. the segment group densities.

        Only contractions along molecule directions, H_mol = incidence^T H incidence, are thermodynamic
        quantities. Segment densities of one molecule that are varied independently change the chain
        contribution through the bond mismatch term, which adds roughly 1 / rho_a to the diagonal of H.

        Returns:
            2d array : d^2 phi / d rho_a d rho_b [Å^3]

        Raises:
            AssociationNotConverged : If the association site fractions do not converge
        """
        rho = self.validate_densities(rho)
        # jax.hessian batches its tangents, so convergence is checked on a plain evaluation
        self.reduced_helmholtz_energy_density(T, rho)
        return jax.hessian(lambda r: self.reduced_helmholtz_energy_density(T, r))(rho)

    def reduced_residual_pressure(self, T, rho):
        """Bulk Property
        beta p_res = sum_a rho_a d phi / d rho_a - phi

        Returns:
            float : beta p_res [1 / Å^3]
        """
        rho = self.validate_densities(rho)
        phi, dphidrho = jax.value_and_grad(lambda r: self.reduced_helmholtz_energy_density(T, r))(rho)
        return jnp.dot(rho, dphidrho) - phi

    def reduced_residual_chemical_potential(self, T, rho):
        """Bulk Property
        Residual chemical potential of every molecule, the sum of d phi / d rho_a over its segment groups.

        Returns:
            1d array : beta mu_res [-]
        """
        return jnp.asarray(self.parameters.incidence).T @ self.reduced_helmholtz_energy_density_gradient(T, rho)

    def reduced_residual_entropy_density(self, T, rho):
        """Bulk Property
        s_res / k_B = - d(T phi) / dT at constant densities.

        Returns:
            float : Reduced residual entropy density [1 / Å^3]
        """
        rho = self.validate_densities(rho)
        return - jax.grad(lambda t: t * self.reduced_helmholtz_energy_density(t, rho))(float(T))

    def compressibility_factor(self, T, rho):
        """Bulk Property
        Z = p / (rho k_B T), including the ideal gas part.
        """
        rho = self.validate_densities(rho)
        rho_mol = jnp.sum(self.parameters.molecule_densities(rho))
        return 1 + self.reduced_residual_pressure(T, rho) / rho_mol

    # ----------------------------------------------------------------------------------------------------------
    # Ideal gas (Joback)
    # ----------------------------------------------------------------------------------------------------------
    def joback_records(self):
        """Utility
        Joback record of every molecule.

        Raises:
            MissingParameter : If a group of any molecule has no Joback record
        """
        for graph, rec in zip(self.parameters.molecules, self.parameters.joback):
            if rec is None:
                raise MissingParameter(graph.name, 'not all groups of this molecule have a Joback record')
        return self.parameters.joback

    def ideal_gas_heat_capacity(self, T):
        """Bulk Property
        Isobaric ideal gas heat capacity of every molecule [J / mol K].
        """
        return ideal_gas.heat_capacity(self.joback_records(), T)

    def reduced_ideal_helmholtz_energy_density(self, T, rho):
        """Helmholtz contribution
        Reduced ideal gas Helmholtz energy density, with the molecular densities following from the segment
        group densities.

        Args:
            T (float) : Temperature [K]
            rho (1d array) : Segment group densities [particles / Å^3]

        Returns:
            float : Reduced Helmholtz energy density [1 / Å^3]
        """
        rho = self.validate_densities(rho)
        return ideal_gas.helmholtz_energy_density(self.joback_records(), T, self.parameters.molecule_densities(rho))

    def max_density(self, molefracs=None):
        """Bulk Property
        Molecular density at which the packing fraction (computed with sigma) reaches max_eta [particles / Å^3].
        """
        return self.parameters.max_density(molefracs, self.max_eta)

    # ----------------------------------------------------------------------------------------------------------
    # SI interface: T [K], V [m^3], n [mol]
    # ----------------------------------------------------------------------------------------------------------
    def _segment_densities_tv(self, V, n):
        n = as_density_vector(n, self.parameters.ncomps, 'mole numbers')
        return self.parameters.segment_densities(n * Avogadro / (V * 1e30))

    def check_packing(self, T, rho):
        """Utility
        Warn if the packing fraction of a state exceeds max_eta.
        """
        p = self.parameters
        eta = float(zeta(p.m, p.hs_diameter(T), jnp.asarray(rho), 3))
        if eta > self.max_eta:
            warnings.warn(f'Packing fraction {eta:.4f} at T = {T} K exceeds max_eta = {self.max_eta}',
                          RuntimeWarning, stacklevel=3)

    def residual_helmholtz_energy_tv(self, T, V, n):
        """Bulk Property
        Residual Helmholtz energy.

        Args:
            T (float) : Temperature [K]
            V (float) : Volume [m^3]
            n (1d array) : Mole numbers [mol]

        Returns:
            float : A_res [J]
        """
        rho = self._segment_densities_tv(V, n)
        self.check_packing(T, rho)
        return Boltzmann * T * V * 1e30 * self.reduced_helmholtz_energy_density(T, rho)

    def pressure_tv(self, T, V, n, property_flag='IR'):
        """Bulk Property
        Pressure, computed as - dA / dV at constant temperature and mole numbers.

        Args:
            T (float) : Temperature [K]
            V (float) : Volume [m^3]
            n (1d array) : Mole numbers [mol]
            property_flag (str) : 'I' (ideal), 'R' (residual) or 'IR' (total)

        Returns:
            float : Pressure [Pa]
        """
        if property_flag not in ('I', 'R', 'IR'):
            raise ValueError(f"property_flag must be 'I', 'R' or 'IR', got {property_flag}")
        n = as_density_vector(n, self.parameters.ncomps, 'mole numbers')
        p = 0.0
        if 'I' in property_flag:
            p += float(jnp.sum(n)) * Avogadro * Boltzmann * T / V
        if 'R' in property_flag:
            self.check_packing(T, self._segment_densities_tv(V, n))
            A_res = lambda v: Boltzmann * T * v * 1e30 * self.reduced_helmholtz_energy_density(
                T, self._segment_densities_tv(v, n))
            p += - float(jax.grad(A_res)(float(V)))
        return p

    def chemical_potential_tv(self, T, V, n):
        """Bulk Property
        Residual chemical potential, dA_res / dn_i at constant temperature and volume.

        Args:
            T (float) : Temperature [K]
            V (float) : Volume [m^3]
            n (1d array) : Mole numbers [mol]

        Returns:
            1d array : mu_res [J / mol]
        """
        rho = self._segment_densities_tv(V, n)
        self.check_packing(T, rho)
        return np.asarray(self.reduced_residual_chemical_potential(T, rho)) * Boltzmann * T * Avogadro
