"""
Wertheim association (first-order thermodynamic perturbation theory) between donor and acceptor sites.

The fraction of non-bonded sites is found by iterating the mass action equations, with Newton steps by default.
Derivatives are not propagated through the iterations, they follow from Newton steps on the converged
solution. The functional follows Yu & Wu, J. Chem. Phys. 116 (2002) 7094.
"""
from functools import partial
import numpy as np
from jax import lax
import jax.numpy as jnp
from gcsaft.errors import AssociationNotConverged
from gcsaft.numeric import zeta, expand, non_negative, concrete_value
from gcsaft.WeightFunction import Delta, Heaviside, DeltaVec

ASSOCIATION_METHODS = ('newton', 'substitution')


def association_strength(parameters, T, n2, n3, d, xi=1.0):
    """Helmholtz contribution
    Association strength between all pairs of associating segment groups,
    indexed as delta[<assoc idx>][<assoc idx>] (+ grid axes).

    Args:
        parameters (ParameterSet) : Model parameters
        T (float) : Temperature [K]
        n2 (float or array) : Surface weighted density [1 / Å]
        n3 (float or array) : Packing fraction
        d (1d array) : Hard-sphere diameters [Å]
        xi (float or array) : Vector correction 1 - nv2^2 / n2^2, unity in bulk
    """
    nd = jnp.ndim(n2)
    da = d[parameters.assoc_segment]
    dd = da[:, None] * da[None, :] / (da[:, None] + da[None, :])
    n3i = 1 / (1 - n3)
    k = expand(dd, nd) * n2 * xi * n3i
    return n3i * (k * (k / 18 + 0.5) + 1) * expand(parameters.sigma3_kappa_aibj, nd) \
        * expand(jnp.expm1(parameters.epsilon_k_aibj / T), nd)


def _substitution_step(x, d, na, nb, mixing):
    nassoc = d.shape[-1]
    xd, xa = x[:, :nassoc], x[:, nassoc:]
    xd_new = 1 / (1 + jnp.sum(d * (nb * xa)[:, None, :], axis=-1))
    xa_new = 1 / (1 + jnp.sum(d * (na * xd)[:, None, :], axis=-1))
    return (1 - mixing) * x + mixing * jnp.concatenate([xd_new, xa_new], axis=1)


def _newton_step(x, d, na, nb):
    # Michelsen, Ind. Eng. Chem. Res. 45 (2006) 8449, with the step limited to a reduction by a factor 5
    nassoc = d.shape[-1]
    xd, xa = x[:, :nassoc], x[:, nassoc:]
    dnx_d = 1 + jnp.sum(d * (nb * xa)[:, None, :], axis=-1)
    dnx_a = 1 + jnp.sum(d * (na * xd)[:, None, :], axis=-1)
    g = jnp.concatenate([1 / xd - dnx_d, 1 / xa - dnx_a], axis=1)
    eye = jnp.eye(nassoc)
    h = jnp.concatenate([jnp.concatenate([- eye * (dnx_d / xd)[:, None, :], - d * nb], axis=2),
                         jnp.concatenate([- d * na, - eye * (dnx_a / xa)[:, None, :]], axis=2)], axis=1)
    dx = jnp.linalg.solve(h, g[..., None])[..., 0]
    return jnp.maximum(x - dx, 0.2 * x)


def _iterate(step, x, d, na, nb, max_iter, tol):
    def proceed(state):
        it, _, change = state
        return (it < max_iter) & (change >= tol) & jnp.isfinite(change)

    def advance(state):
        it, x, _ = state
        x_new = step(x, d, na, nb)
        return it + 1, x_new, jnp.max(jnp.abs(x_new - x) / x_new)

    return lax.while_loop(proceed, advance, (jnp.array(0, dtype=jnp.int32), x, jnp.array(jnp.inf, dtype=x.dtype)))


def site_fractions(delta, rho, na, nb, max_iter=50, tol=1e-10, mixing=0.5, x0=1.0, method='newton'):
    """Solver
    Solve the mass action equations

        XD_a = 1 / (1 + sum_b delta_ab rho_b nb_b XA_b)
        XA_a = 1 / (1 + sum_b delta_ab rho_b na_b XD_b)

    for the fractions of non-bonded donor (XD) and acceptor (XA) sites. Every iteration recomputes all site
    fractions from the current estimate, either by a Newton step on the mass action equations, or by successive
    substitution where the update is mixed with the previous iterate. Newton steps are limited such that no site
    fraction is reduced by more than a factor 5.

    The iteration runs in a `lax.while_loop` on values with their derivatives stripped. Two Newton steps on the
    original inputs are appended to the converged solution. The Newton matrix is exact at the solution, so the
    first step carries exact first derivatives and the second exact second derivatives, while the value is
    unchanged to within the tolerance.

    Args:
        delta (array) : Association strength [Å^3], indexed as delta[<assoc idx>][<assoc idx>] (+ grid axes)
        rho (array) : Density of the associating segment groups [particles / Å^3]
        na (1d array) : Number of donor sites per segment group
        nb (1d array) : Number of acceptor sites per segment group
        max_iter (int) : Iteration budget
        tol (float) : Convergence criterion on the largest relative change of any site fraction
        mixing (float) : Weight of the new iterate for successive substitution, in (0, 1]
        x0 (float) : Initial guess for all site fractions, 1 corresponds to no bonded sites
        method (str) : 'newton' or 'substitution'

    Returns:
        tuple(array, array) : Donor and acceptor site fractions, shaped as rho

    Raises:
        AssociationNotConverged : If the iteration diverges or exhausts `max_iter`. The check needs concrete
            values, and is skipped when the solver is traced under `jax.jit` or `jax.vmap`.
        ValueError : For an unknown method
    """
    if method not in ASSOCIATION_METHODS:
        raise ValueError(f"Unknown association method '{method}', valid methods are {ASSOCIATION_METHODS}")
    shape = jnp.shape(rho)
    nassoc = shape[0]
    # Grid points are solved as a batch, indexed as [<grid idx>][<assoc idx>]
    rho = jnp.reshape(rho, (nassoc, -1)).T
    delta = jnp.moveaxis(jnp.reshape(delta, (nassoc, nassoc, -1)), -1, 0)
    d = delta * rho[:, None, :]
    na = jnp.asarray(na, dtype=float)
    nb = jnp.asarray(nb, dtype=float)
    if method == 'newton':
        step = _newton_step
    else:
        step = partial(_substitution_step, mixing=mixing)

    x = jnp.ones((rho.shape[0], 2 * nassoc)) * x0
    it, x, change = _iterate(step, x, lax.stop_gradient(d), na, nb, max_iter, tol)
    change = concrete_value(change)
    if change is not None and not change < tol:
        raise AssociationNotConverged(int(it), change)

    for _ in range(2):
        x = _newton_step(x, d, na, nb)
    return jnp.reshape(x[:, :nassoc].T, shape), jnp.reshape(x[:, nassoc:].T, shape)


def helmholtz_from_fractions(rho, na, nb, xd, xa):
    nd = rho.ndim - 1
    f = expand(na, nd) * (jnp.log(xd) - 0.5 * xd + 0.5) + expand(nb, nd) * (jnp.log(xa) - 0.5 * xa + 0.5)
    return jnp.sum(rho * f, axis=0)


def bulk_helmholtz_energy_density(parameters, T, rho, d=None, max_iter=50, tol=1e-10, mixing=0.5, x0=1.0,
                                  method='newton'):
    """Helmholtz contribution
    Reduced association Helmholtz energy density. Exactly zero, without iterating, when no molecule carries
    association sites.

    Args:
        parameters (ParameterSet) : Model parameters
        T (float) : Temperature [K]
        rho (1d array) : Segment group densities [particles / Å^3]
        d (1d array, optional) : Hard-sphere diameters [Å]
        max_iter, tol, mixing, x0, method : See `site_fractions`

    Returns:
        float : Reduced Helmholtz energy density [1 / Å^3]
    """
    if not parameters.has_association:
        return 0.0
    if d is None:
        d = parameters.hs_diameter(T)
    n2 = 6 * zeta(parameters.m, d, rho, 2)
    n3 = zeta(parameters.m, d, rho, 3)
    delta = association_strength(parameters, T, n2, n3, d)
    rho_site = rho[parameters.assoc_segment]
    xd, xa = site_fractions(delta, rho_site, parameters.na, parameters.nb, max_iter, tol, mixing, x0, method)
    return helmholtz_from_fractions(rho_site, parameters.na, parameters.nb, xd, xa)


def get_weights(parameters, T):
    """Weights
    One normalised shell weight per associating segment group, followed by n2, n3 and nv2 summed over all
    segment groups, all with radius d / 2.
    """
    nseg = parameters.nsegments
    R = 0.5 * parameters.hs_diameter(T)
    m = parameters.m
    w = []
    for a in parameters.assoc_segment:
        row = [0 for _ in range(nseg)]
        row[a] = Delta(R[a]) / (4 * np.pi * R[a] ** 2)
        w.append(row)
    w.append([Delta(R[s]) * m[s] for s in range(nseg)])
    w.append([Heaviside(R[s]) * m[s] for s in range(nseg)])
    w.append([DeltaVec(R[s]) * m[s] for s in range(nseg)])
    return w


def n_weights(parameters):
    return len(parameters.assoc_segment) + 3 if parameters.has_association else 0


def functional_helmholtz_energy_density(parameters, T, n, d=None, max_iter=50, tol=1e-10, mixing=0.5, x0=1.0,
                                        method='newton'):
    """Helmholtz contribution
    Local association energy density from the weighted densities produced by `get_weights`.
    """
    if not parameters.has_association:
        return 0.0
    if d is None:
        d = parameters.hs_diameter(T)
    nassoc = len(parameters.assoc_segment)
    n0 = non_negative(n[:nassoc])
    n2, n3, nv2 = non_negative(n[nassoc]), n[nassoc + 1], n[nassoc + 2]
    xi = 1 - (nv2 / n2) ** 2
    delta = association_strength(parameters, T, n2, n3, d, xi)
    rho_site = n0 * xi
    xd, xa = site_fractions(delta, rho_site, parameters.na, parameters.nb, max_iter, tol, mixing, x0, method)
    return helmholtz_from_fractions(rho_site, parameters.na, parameters.nb, xd, xa)
