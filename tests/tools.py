"""Group parameters and molecules shared by the tests."""
import numpy as np
from scipy.constants import Avogadro
from gcsaft import GroupTable, SegmentRecord, BinaryRecord, JobackRecord, MoleculeGraph, build_parameters

FLTEPS = 1e-10


def is_equal(a, b):
    return abs(a - b) < FLTEPS


def is_equal_arr(a, b):
    return all(abs(np.asarray(a) - np.asarray(b)) < FLTEPS)


def gc_groups(binary=False):
    """CH3, CH2 and OH groups (Sauer et al., Ind. Eng. Chem. Res. 53 (2014) 14854), with Joback heat capacities"""
    groups = GroupTable([SegmentRecord('CH3', 0.77247, 3.6937, 181.49, molarweight=15.035,
                                       joback=JobackRecord(19.5, -0.00808, 1.53e-4, -9.67e-8)),
                         SegmentRecord('CH2', 0.7912, 3.0207, 157.23, molarweight=14.027,
                                       joback=JobackRecord(-0.909, 0.095, -5.44e-5, 1.19e-8)),
                         SegmentRecord('OH', 1.0231, 2.7702, 334.29, molarweight=17.007,
                                       kappa_ab=0.009583, epsilon_k_ab=2575.9,
                                       joback=JobackRecord(25.7, -0.0691, 1.77e-4, -9.88e-8))])
    if binary:
        groups.add_binary(BinaryRecord('CH3', 'OH', k_ij=-0.0087))
    return groups


def alcohol(name, n_ch2, groups):
    graph = MoleculeGraph.chain(name, ['CH3'] + ['CH2'] * n_ch2 + ['OH'])
    return groups.attach_sites(graph)


def propane():
    return MoleculeGraph.chain('propane', ['CH3', 'CH2', 'CH3'])


def propanol_parameters():
    groups = gc_groups()
    return build_parameters([alcohol('1-propanol', 2, groups)], groups)


def ethanol_propanol_parameters(binary=False, composition=None):
    groups = gc_groups(binary)
    return build_parameters([alcohol('ethanol', 1, groups), alcohol('1-propanol', 2, groups)], groups, composition)


def propane_parameters():
    return build_parameters([propane()], gc_groups())


def molar_to_segment(parameters, moles, volume=1.0):
    """Segment group densities [1 / Å^3] for mole numbers [mol] in a volume [m^3]"""
    return parameters.segment_densities(np.asarray(moles) * Avogadro / (volume * 1e30))
