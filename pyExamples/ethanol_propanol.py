import numpy as np
from gcsaft import GroupTable, SegmentRecord, BinaryRecord, MoleculeGraph, build_parameters
from gcsaft import GcPcSaft, GcPcSaftFunctional

groups = GroupTable([SegmentRecord('CH3', 0.77247, 3.6937, 181.49, molarweight=15.035),
                     SegmentRecord('CH2', 0.7912, 3.0207, 157.23, molarweight=14.027),
                     SegmentRecord('OH', 1.0231, 2.7702, 334.29, molarweight=17.007,
                                   kappa_ab=0.009583, epsilon_k_ab=2575.9)],
                    [BinaryRecord('CH3', 'OH', k_ij=-0.0087)])

ethanol = groups.attach_sites(MoleculeGraph.chain('ethanol', ['CH3', 'CH2', 'OH']))
propanol = groups.attach_sites(MoleculeGraph.chain('1-propanol', ['CH3', 'CH2', 'CH2', 'OH']))
params = build_parameters([ethanol, propanol], groups, composition=[0.4, 0.6])
print(params.to_markdown())

eos = GcPcSaft(params)
T = 300 # K
n = np.array([0.4, 0.6]) # mol
for V in [1e-1, 1e-3, 1e-4]: # m^3
    print(f'V = {V} m^3 : p = {eos.pressure_tv(T, V, n) * 1e-5:.5f} bar, '
          f'mu_res = {eos.chemical_potential_tv(T, V, n)} J / mol')

rho = params.segment_densities(params.composition * 8e-3) # Liquid-like density [1 / Å^3]
for name, phi in eos.helmholtz_energy_contributions(T, rho).items():
    print(f'{name:>12} : {float(phi):.6e} 1 / Å^3')

# What a DFT solver needs: the weights, the layout of the weighted densities, and the local energy density
dft = GcPcSaftFunctional(params)
print(dft)
print(dft.weighted_density_layout())
n_bulk = dft.get_weighted_densities(T, rho) # Weighted densities of the uniform fluid, used far from the interface
phi, dphidn = dft.local_helmholtz_derivatives(T, n_bulk)
print(f'phi = {float(phi):.6e} 1 / Å^3 (bulk: {float(eos.reduced_helmholtz_energy_density(T, rho)):.6e} 1 / Å^3)')
