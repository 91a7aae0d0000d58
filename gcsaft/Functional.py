import abc
import jax
import jax.numpy as jnp
from gcsaft.numeric import as_density_vector


class Functional(metaclass=abc.ABCMeta):
    """
    Parent class for Helmholtz energy functionals evaluated by an external DFT solver.

    A functional defines its weights, indexed as weights[<wt idx>][<segment idx>], and a local Helmholtz energy
    density as a function of the weighted densities
        n[<wt idx>] = sum_<segment idx> (weights[<wt idx>][<segment idx>] * rho[<segment idx>])
    where * is a convolution. The convolutions belong to the solver. For a uniform density the convolution reduces
    to multiplication with the real-space integral of the weight, which is what the bulk methods here use.
    """

    def __init__(self, nsegments):
        """Constructor

        Args:
            nsegments (int) : Number of density profiles (segment groups) the functional takes.
        """
        self.nsegments = nsegments

    @abc.abstractmethod
    def __repr__(self):
        pass

    @abc.abstractmethod
    def get_weights(self, T):
        """Weights
        Weight functions, indexed as weights[<wt idx>][<segment idx>]. Unused entries are 0.

        Args:
            T (float) : Temperature [K]

        Returns:
            list[list[Analytical]] : The weight functions
        """

    @abc.abstractmethod
    def local_helmholtz_density(self, T, n):
        """Helmholtz contribution
        Reduced Helmholtz energy density at every grid point.

        Args:
            T (float) : Temperature [K]
            n (array) : Weighted densities, indexed as n[<wt idx>] or n[<wt idx>][<grid idx>]

        Returns:
            float or 1d array : Reduced Helmholtz energy density [1 / Å^3]
        """

    @abc.abstractmethod
    def get_characteristic_lengths(self):
        pass

    def n_weighted_densities(self, T):
        return len(self.get_weights(T))

    def validate_weighted_densities(self, T, n):
        return as_density_vector(n, self.n_weighted_densities(T), 'weighted densities')

    def get_weighted_densities(self, T, rho):
        """Weighted density
        Weighted densities of a uniform density.

        Args:
            T (float) : Temperature [K]
            rho (1d array) : Segment group densities [particles / Å^3]

        Returns:
            1d array : Weighted densities, indexed as n[<wt idx>]
        """
        rho = as_density_vector(rho, self.nsegments)
        weights = self.get_weights(T)
        n = []
        for weight in weights:
            n_w = 0.0
            for si, w in enumerate(weight):
                # Vector weighted densities vanish for a uniform density
                if w != 0 and not w.is_odd():
                    n_w = n_w + rho[si] * w.real_integral()
            n.append(n_w)
        return jnp.stack([jnp.asarray(n_w, dtype=float) for n_w in n])

    def local_helmholtz_derivatives(self, T, n):
        """Helmholtz contribution
        Local Helmholtz energy density, and its derivatives wrt. the weighted densities at every grid point. The
        functional derivative wrt. rho_s is the sum over weights of (dphi / dn_w) convolved with the
        (mirrored) weight w[w][s].

        Args:
            T (float) : Temperature [K]
            n (array) : Weighted densities, indexed as n[<wt idx>] or n[<wt idx>][<grid idx>]

        Returns:
            tuple : phi (shaped as a single weighted density) and dphidn (shaped as n)
        """
        n = self.validate_weighted_densities(T, n)
        phi, vjp = jax.vjp(lambda n_: self.local_helmholtz_density(T, n_), n)
        dphidn, = vjp(jnp.ones_like(phi))
        return phi, dphidn

    def bulk_reduced_helmholtz_energy_density(self, T, rho):
        return self.local_helmholtz_density(T, self.get_weighted_densities(T, rho))

    def bulk_functional_derivative(self, T, rho):
        """Bulk Property
        Functional derivative of the Helmholtz energy wrt. the segment group densities, for a uniform density.

        Args:
            T (float) : Temperature [K]
            rho (1d array) : Segment group densities [particles / Å^3]

        Returns:
            1d array : dphi / drho_s [-]
        """
        n = self.get_weighted_densities(T, rho)
        _, dphidn = self.local_helmholtz_derivatives(T, n)
        weights = self.get_weights(T)
        dphidrho = [0.0 for _ in range(self.nsegments)]
        for wi, weight in enumerate(weights):
            for si, w in enumerate(weight):
                if w != 0 and not w.is_odd():
                    dphidrho[si] = dphidrho[si] + dphidn[wi] * w.real_integral()
        return jnp.stack([jnp.asarray(x, dtype=float) for x in dphidrho])
