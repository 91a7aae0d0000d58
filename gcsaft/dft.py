"""
Helmholtz energy functional for gc-PC-SAFT.

The weighted densities of all active contributions are stacked in a single array, in the order hard-sphere,
chain, dispersion, association. `weighted_density_layout` gives the slice belonging to each contribution.
"""
from gcsaft import hardsphere, chain, dispersion, association
from gcsaft.Functional import Functional
from gcsaft.eos import validate_contributions
from gcsaft.hardsphere import FMTVersion


class GcPcSaftFunctional(Functional):

    def __init__(self, parameters, fmt_version=FMTVersion.WhiteBear, contributions=None, max_iter_cross_assoc=50,
                 tol_cross_assoc=1e-10, assoc_method='newton', assoc_mixing=0.5, initial_site_fraction=1.0):
        """Constructor
        Initialises the functional.

        Args:
            parameters (ParameterSet) : Model parameters, built with resolution='instance' for one density profile
                                        per segment instance
            fmt_version (FMTVersion) : Hard-sphere functional. Default is White Bear.
            contributions (tuple[str], optional) : Subset of 'hard_sphere', 'chain', 'dispersion' and 'association'
            max_iter_cross_assoc (int) : Iteration budget for the association site fractions
            tol_cross_assoc (float) : Tolerance for the association site fractions
            assoc_method (str) : 'newton' or 'substitution', the update used for the association site fractions
            assoc_mixing (float) : Weight of the new iterate for successive substitution
            initial_site_fraction (float) : Initial guess for all site fractions
        """
        super().__init__(parameters.nsegments)
        self.parameters = parameters
        self.fmt_version = FMTVersion(fmt_version)
        self.contributions = validate_contributions(contributions)
        self.max_iter_cross_assoc = max_iter_cross_assoc
        self.tol_cross_assoc = tol_cross_assoc
        self.assoc_method = assoc_method
        self.assoc_mixing = assoc_mixing
        self.initial_site_fraction = initial_site_fraction

    def __repr__(self):
        return f'gc-PC-SAFT functional for {", ".join(g.name for g in self.parameters.molecules)}\n' \
               f'\tcontributions : {", ".join(self.contributions)}\n' \
               f'\thard sphere : {self.fmt_version.name}'

    def get_characteristic_lengths(self):
        return self.parameters.sigma

    def bond_lengths(self, T):
        """Utility
        Bond lengths [Å] of the bonded segment group pairs, as {(a, b) : length}.
        """
        return chain.bond_lengths(self.parameters, T)

    def _n_weights(self, name):
        p = self.parameters
        if name == 'hard_sphere':
            return 6
        if name == 'chain':
            return chain.n_weights(p) if p.bonds else 0
        if name == 'dispersion':
            return p.nsegments
        return association.n_weights(p)

    def weighted_density_layout(self):
        """Utility
        Position of the weighted densities of every active contribution.

        Returns:
            dict[str, slice] : {contribution : slice into the weighted density array}
        """
        layout = {}
        start = 0
        for name in self.contributions:
            stop = start + self._n_weights(name)
            layout[name] = slice(start, stop)
            start = stop
        return layout

    def n_weighted_densities(self, T=None):
        return sum(self._n_weights(name) for name in self.contributions)

    def get_weights(self, T):
        """Weights
        All weights used for weighted densities in a 2D list, indexed as weight[<wt idx>][<segment idx>].

        Args:
            T (float) : Temperature [K], used to get hard sphere diameters

        Return:
            list[list[Analytical]] : Weight functions
        """
        p = self.parameters
        weights = []
        for name in self.contributions:
            if name == 'hard_sphere':
                weights.extend(hardsphere.get_weights(p, T))
            elif name == 'chain' and p.bonds:
                weights.extend(chain.get_weights(p, T))
            elif name == 'dispersion':
                weights.extend(dispersion.get_weights(p, T))
            elif name == 'association' and p.has_association:
                weights.extend(association.get_weights(p, T))
        return weights

    def local_helmholtz_contributions(self, T, n):
        """Helmholtz contribution
        Local reduced Helmholtz energy density of every active contribution.

        Args:
            T (float) : Temperature [K]
            n (array) : Weighted densities, indexed as n[<wt idx>] or n[<wt idx>][<grid idx>]

        Returns:
            dict[str, array] : Reduced Helmholtz energy densities [1 / Å^3]

        Raises:
            DimensionMismatch : If n does not hold the expected number of weighted densities
            AssociationNotConverged : If the association site fractions do not converge
        """
        n = self.validate_weighted_densities(T, n)
        p = self.parameters
        d = p.hs_diameter(T)
        contribs = {}
        for name, sl in self.weighted_density_layout().items():
            if name == 'hard_sphere':
                contribs[name] = hardsphere.fmt_helmholtz_energy_density(n[sl], self.fmt_version)
            elif name == 'chain':
                contribs[name] = chain.functional_helmholtz_energy_density(p, T, n[sl], d)
            elif name == 'dispersion':
                contribs[name] = dispersion.functional_helmholtz_energy_density(p, T, n[sl], d)
            elif name == 'association':
                contribs[name] = association.functional_helmholtz_energy_density(
                    p, T, n[sl], d, max_iter=self.max_iter_cross_assoc, tol=self.tol_cross_assoc,
                    mixing=self.assoc_mixing, x0=self.initial_site_fraction, method=self.assoc_method)
        return contribs

    def local_helmholtz_density(self, T, n):
        """Helmholtz contribution
        Local reduced Helmholtz energy density, the sum over active contributions.
        """
        return sum(self.local_helmholtz_contributions(T, n).values(), 0.0)

    def bulk_helmholtz_contributions(self, T, rho):
        return self.local_helmholtz_contributions(T, self.get_weighted_densities(T, rho))
