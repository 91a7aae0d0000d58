import numpy as np
import pytest
from pytest import approx
from gcsaft import GcPcSaft, GcPcSaftFunctional, FMTVersion, DimensionMismatch, build_parameters
from gcsaft.WeightFunction import LocalDensity
from tools import (propane_parameters, propanol_parameters, ethanol_propanol_parameters, gc_groups, alcohol,
                   propane)

models = {'propane': propane_parameters, 'propanol': propanol_parameters,
          'ethanol_propanol': lambda: ethanol_propanol_parameters(binary=True, composition=[0.4, 0.6])}


@pytest.mark.parametrize('model', list(models))
@pytest.mark.parametrize('version', [FMTVersion.WhiteBear, FMTVersion.AntiSymWhiteBear])
@pytest.mark.parametrize('inpt', [{'T': 280.0, 'rho': 1e-5}, {'T': 350.0, 'rho': 6e-3}])
def test_uniform_profile_equals_bulk(model, version, inpt):
    p = models[model]()
    T = inpt['T']
    rho = p.segment_densities(p.composition * inpt['rho'])
    eos = GcPcSaft(p)
    dft = GcPcSaftFunctional(p, fmt_version=version)

    bulk = eos.helmholtz_energy_contributions(T, rho)
    local = dft.bulk_helmholtz_contributions(T, rho)
    assert list(local.keys()) == list(bulk.keys())
    for name in bulk:
        assert float(local[name]) == approx(float(bulk[name]), rel=1e-9, abs=1e-18)
    assert float(dft.bulk_reduced_helmholtz_energy_density(T, rho)) \
           == approx(float(eos.reduced_helmholtz_energy_density(T, rho)), rel=1e-9)


def test_uniform_equivalence_for_unequal_segment_densities():
    p = ethanol_propanol_parameters()
    rho = np.array([1e-3, 2e-3, 1.5e-3, 3e-3, 2.5e-3, 3.5e-3])
    T = 320.0
    bulk = GcPcSaft(p).reduced_helmholtz_energy_density(T, rho)
    local = GcPcSaftFunctional(p).bulk_reduced_helmholtz_energy_density(T, rho)
    assert float(local) == approx(float(bulk), rel=1e-9)


def test_functional_derivative_equals_bulk_gradient():
    p = ethanol_propanol_parameters(composition=[0.4, 0.6])
    rho = p.segment_densities([2e-3, 3e-3])
    T = 300.0
    grad = GcPcSaft(p).reduced_helmholtz_energy_density_gradient(T, rho)
    dphidrho = GcPcSaftFunctional(p).bulk_functional_derivative(T, rho)
    assert np.asarray(dphidrho) == approx(np.asarray(grad), rel=1e-8)


def test_grid_evaluation():
    p = propanol_parameters()
    T = 300.0
    dft = GcPcSaftFunctional(p)
    densities = [1e-5, 1e-3, 8e-3]
    n = np.stack([np.asarray(dft.get_weighted_densities(T, p.segment_densities([r]))) for r in densities], axis=1)
    phi_grid = dft.local_helmholtz_density(T, n)
    assert phi_grid.shape == (3,)
    eos = GcPcSaft(p)
    for i, r in enumerate(densities):
        assert float(phi_grid[i]) == approx(float(eos.reduced_helmholtz_energy_density(T, p.segment_densities([r]))),
                                            rel=1e-9)
    phi, dphidn = dft.local_helmholtz_derivatives(T, n)
    assert dphidn.shape == n.shape
    assert np.asarray(phi) == approx(np.asarray(phi_grid))


def test_weights_and_layout():
    p = ethanol_propanol_parameters()
    T = 300.0
    dft = GcPcSaftFunctional(p)
    weights = dft.get_weights(T)
    layout = dft.weighted_density_layout()
    nbonds = len(p.bonds)
    assert layout['hard_sphere'] == slice(0, 6)
    assert layout['chain'] == slice(6, 6 + p.nsegments + 2 * nbonds + 2)
    assert layout['dispersion'].stop - layout['dispersion'].start == p.nsegments
    assert layout['association'].stop == len(weights) == dft.n_weighted_densities(T)
    assert all(len(w) == p.nsegments for w in weights)
    assert isinstance(weights[layout['chain'].start][0], LocalDensity)

    lengths = dft.bond_lengths(T)
    d = np.asarray(p.hs_diameter(T))
    assert len(lengths) == nbonds
    for (a, b), length in lengths.items():
        assert float(length) == approx(0.5 * (d[a] + d[b]))
    assert np.all(dft.get_characteristic_lengths() == p.sigma)


def test_no_chain_no_association():
    from gcsaft import GroupTable, SegmentRecord, MoleculeGraph, build_parameters
    groups = GroupTable([SegmentRecord('CH4', 1.0, 3.7039, 150.03)])
    p = build_parameters([MoleculeGraph('methane', ['CH4'])], groups)
    dft = GcPcSaftFunctional(p)
    layout = dft.weighted_density_layout()
    assert layout['chain'] == slice(6, 6)
    assert layout['association'] == slice(7, 7)
    contribs = dft.bulk_helmholtz_contributions(150.0, [1e-2])
    assert contribs['chain'] == 0.0 and contribs['association'] == 0.0


def test_dimension_mismatch():
    p = propanol_parameters()
    dft = GcPcSaftFunctional(p)
    with pytest.raises(DimensionMismatch):
        dft.local_helmholtz_density(300.0, np.ones(3))
    with pytest.raises(DimensionMismatch):
        dft.get_weighted_densities(300.0, [1e-3])


def test_instance_resolution_bonds():
    groups = gc_groups()
    T = 300.0
    dft = GcPcSaftFunctional(build_parameters([propane()], groups, resolution='instance'))
    assert dft.nsegments == 3
    assert list(dft.bond_lengths(T)) == [(0, 1), (1, 2)]
    propanol = build_parameters([alcohol('1-propanol', 2, groups)], groups, resolution='instance')
    lengths = GcPcSaftFunctional(propanol).bond_lengths(T)
    assert list(lengths) == [(0, 1), (1, 2), (2, 3)]
    assert float(lengths[(1, 2)]) == approx(float(propanol.hs_diameter(T)[1]))


@pytest.mark.parametrize('version', [FMTVersion.WhiteBear, FMTVersion.AntiSymWhiteBear])
def test_instance_resolution_uniform_equals_bulk(version):
    T = 300.0
    grouped = ethanol_propanol_parameters(binary=True, composition=[0.4, 0.6])
    instances = build_parameters(grouped.molecules, grouped.groups, grouped.composition, resolution='instance')
    assert instances.nsegments == 7
    rho_mol = np.array([2e-3, 3e-3])
    bulk = GcPcSaft(grouped).helmholtz_energy_contributions(T, grouped.segment_densities(rho_mol))
    dft = GcPcSaftFunctional(instances, fmt_version=version)
    local = dft.bulk_helmholtz_contributions(T, instances.segment_densities(rho_mol))
    for name in bulk:
        assert float(local[name]) == approx(float(bulk[name]), rel=1e-9)
    mu = GcPcSaft(grouped).reduced_residual_chemical_potential(T, grouped.segment_densities(rho_mol))
    dphidrho = dft.bulk_functional_derivative(T, instances.segment_densities(rho_mol))
    assert np.asarray(instances.incidence).T @ np.asarray(dphidrho) == approx(np.asarray(mu), rel=1e-8)
