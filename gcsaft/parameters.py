"""
Group parameters and their aggregation into an immutable ParameterSet.

By default, segments of the same group type within one molecule are lumped into a single *segment group*,
carrying the multiplicity of the group in the molecule. With resolution='instance' every segment instance of a
graph is its own segment group and every bond of the graph is kept, which is what a DFT solver propagating chain
connectivity needs. All arrays of a ParameterSet are indexed by segment group, and every density vector passed to
the models holds one entry per segment group.
"""
import warnings
import numpy as np
import jax.numpy as jnp
from gcsaft.errors import MissingParameter
from gcsaft.molecule import MoleculeGraph, AssociationSite, SiteType
from gcsaft.ideal_gas import JobackRecord

DEFAULT_PSI_DFT = 1.3862  # Dispersion weight width, in units of the hard-sphere diameter
RESOLUTIONS = ('group', 'instance')


class SegmentRecord:

    def __init__(self, identifier, m, sigma, epsilon_k, molarweight=0.0, kappa_ab=None, epsilon_k_ab=None,
                 na=None, nb=None, psi_dft=DEFAULT_PSI_DFT, joback=None):
        """Constructor
        Parameters of a single group (segment type).

        Args:
            identifier (str) : Group identifier, e.g. 'CH3'
            m (float) : Segment number contribution of one group
            sigma (float) : Segment diameter [Å]
            epsilon_k (float) : Dispersion energy [K]
            molarweight (float) : Molar weight [g / mol]
            kappa_ab (float, optional) : Association volume
            epsilon_k_ab (float, optional) : Association energy [K]
            na (int, optional) : Default number of donor sites, used by GroupTable.attach_sites. Defaults to 1 for
                                 associating groups, 0 otherwise
            nb (int, optional) : Default number of acceptor sites, see na
            psi_dft (float) : Width of the dispersion weight function, in units of the hard-sphere diameter
            joback (JobackRecord, optional) : Ideal gas heat capacity contribution of the group
        """
        if m <= 0 or sigma <= 0:
            raise ValueError(f"Segment '{identifier}' must have positive m and sigma (got m = {m}, sigma = {sigma})")
        self.identifier = identifier
        self.m = m
        self.sigma = sigma
        self.epsilon_k = epsilon_k
        self.molarweight = molarweight
        self.kappa_ab = kappa_ab
        self.epsilon_k_ab = epsilon_k_ab
        default_sites = 1 if self.is_associating() else 0
        self.na = default_sites if na is None else na
        self.nb = default_sites if nb is None else nb
        self.psi_dft = psi_dft
        self.joback = joback

    def is_associating(self):
        return (self.kappa_ab is not None) and (self.epsilon_k_ab is not None)

    def __repr__(self):
        ostr = f'SegmentRecord({self.identifier!r}, m={self.m}, sigma={self.sigma}, epsilon_k={self.epsilon_k}'
        if self.is_associating():
            ostr += f', kappa_ab={self.kappa_ab}, epsilon_k_ab={self.epsilon_k_ab}, na={self.na}, nb={self.nb}'
        return ostr + ')'


class BinaryRecord:

    def __init__(self, id1, id2, k_ij=0.0, sigma_ij=None, epsilon_k_ij=None):
        """Constructor
        Binary interaction between two groups located on different molecules.

        Args:
            id1, id2 (str) : Group identifiers
            k_ij (float) : Correction to the geometric mean of the dispersion energies
            sigma_ij (float, optional) : Explicit cross diameter [Å], replaces the arithmetic mean
            epsilon_k_ij (float, optional) : Explicit cross dispersion energy [K], replaces the geometric mean
        """
        if (epsilon_k_ij is not None) and (k_ij != 0):
            raise ValueError(f'Binary record {id1}-{id2}: k_ij and epsilon_k_ij can not both be given.')
        self.id1 = id1
        self.id2 = id2
        self.k_ij = k_ij
        self.sigma_ij = sigma_ij
        self.epsilon_k_ij = epsilon_k_ij

    @property
    def key(self):
        return frozenset((self.id1, self.id2))

    def __repr__(self):
        return f'BinaryRecord({self.id1!r}, {self.id2!r}, k_ij={self.k_ij}, sigma_ij={self.sigma_ij}, ' \
               f'epsilon_k_ij={self.epsilon_k_ij})'


class GroupTable:
    """
    Registry of group parameters, filled by whatever reads the parameter files.
    """

    def __init__(self, records=(), binary_records=()):
        self._records = {}
        self._binary = {}
        for r in records:
            self.add(r)
        for r in binary_records:
            self.add_binary(r)

    def add(self, record):
        self._records[record.identifier] = record

    def add_binary(self, record):
        self._binary[record.key] = record

    def __getitem__(self, identifier):
        try:
            return self._records[identifier]
        except KeyError:
            raise MissingParameter(identifier) from None

    def __contains__(self, identifier):
        return identifier in self._records

    def __len__(self):
        return len(self._records)

    def records(self):
        return list(self._records.values())

    def binary_records(self):
        return list(self._binary.values())

    def binary(self, id1, id2):
        """Utility
        The binary record for a pair of groups, or None if there is none.
        """
        return self._binary.get(frozenset((id1, id2)))

    def attach_sites(self, graph):
        """Utility
        Decorate every segment instance of an associating group with the default donor/acceptor sites of its
        record. Instances already carrying sites are left as they are.

        Args:
            graph (MoleculeGraph) : Molecule without (or with partial) site information

        Returns:
            MoleculeGraph : New graph with the default sites added
        """
        decorated = {site.segment for site in graph.sites}
        sites = []
        for h, group in enumerate(graph.segments):
            rec = self[group]
            if h in decorated or not rec.is_associating():
                continue
            sites.extend(AssociationSite(h, SiteType.DONOR, f'{group}{h}:D{k}') for k in range(rec.na))
            sites.extend(AssociationSite(h, SiteType.ACCEPTOR, f'{group}{h}:A{k}') for k in range(rec.nb))
        return graph.with_sites(sites)


def _readonly(arr, dtype=float):
    arr = np.array(arr, dtype=dtype)
    arr.flags.writeable = False
    return arr


def validate_composition(x, ncomps):
    """Utility
    Check that a composition has one mole fraction per molecule, and that the fractions sum to unity.

    Raises:
        IndexError : If the composition has the wrong length
        ValueError : If the fractions are negative or do not sum to unity
    """
    if x is None:
        return np.ones(ncomps) / ncomps
    x = np.array(x, dtype=float).flatten()
    if len(x) != ncomps:
        raise IndexError(f'Composition has {len(x)} entries, but the mixture has {ncomps} molecules!')
    if any(x < 0):
        raise ValueError(f'Mole fractions must be non-negative, got {x}')
    if abs(sum(x) - 1) > 1e-10:
        raise ValueError(f'Mole fractions must sum to unity, got {x} (sum = {sum(x)})')
    return x


def build_parameters(graphs, groups, composition=None, resolution='group'):
    """Utility
    Validate a set of molecule graphs, resolve their groups and aggregate everything the models need.

    Args:
        graphs (MoleculeGraph or list[MoleculeGraph]) : The molecules of the mixture
        groups (GroupTable) : Registered group parameters
        composition (list[float], optional) : Mole fractions, defaults to equimolar
        resolution (str) : 'group' lumps the segments of one group type in a molecule, 'instance' keeps one
                            segment group per segment instance of the graph

    Returns:
        ParameterSet : Immutable parameters

    Raises:
        InvalidGraph : If any graph is invalid
        MissingParameter : If a group, or the association parameters of a group carrying sites, is not registered
        ValueError : For an unknown resolution
    """
    if resolution not in RESOLUTIONS:
        raise ValueError(f"Unknown resolution '{resolution}', valid resolutions are {RESOLUTIONS}")
    if isinstance(graphs, MoleculeGraph):
        graphs = [graphs]
    graphs = tuple(graphs)
    for graph in graphs:
        graph.validate()
    x = validate_composition(composition, len(graphs))

    snapshot = GroupTable()
    for graph in graphs:
        for group in graph.group_counts():
            snapshot.add(groups[group])

    for rec in groups.binary_records():
        unknown = [i for i in (rec.id1, rec.id2) if i not in groups]
        if unknown:
            warnings.warn(f'Binary record {rec.id1}-{rec.id2} references unregistered group(s) {unknown}, '
                          f'the record is ignored.', RuntimeWarning, stacklevel=2)
        elif rec.id1 in snapshot and rec.id2 in snapshot:
            snapshot.add_binary(rec)

    return ParameterSet(graphs, snapshot, x, resolution)


def _segment_groups(graph, resolution):
    """Utility
    Segment groups of one graph as {key : (group, count)}, bonds as {(key, key) : count} and association sites as
    {key : (n_donor, n_acceptor)}. Keys are group identifiers or segment handles, depending on the resolution.
    """
    if resolution == 'group':
        return ({g: (g, c) for g, c in graph.group_counts().items()}, graph.group_bond_counts(),
                graph.group_site_counts())
    return ({h: (g, 1) for h, g in enumerate(graph.segments)}, {bond: 1 for bond in graph.bonds},
            graph.instance_site_counts())


def _molecule_joback(graph, groups):
    records = [(groups[g].joback, c) for g, c in graph.group_counts().items()]
    if any(rec is None for rec, _ in records):
        return None
    return JobackRecord.from_groups(records)


class ParameterSet:

    def __init__(self, molecules, groups, composition, resolution='group'):
        """Constructor
        Use `build_parameters` rather than calling this directly, it validates the graphs and resolves the groups.

        Args:
            molecules (tuple[MoleculeGraph]) : Validated molecule graphs
            groups (GroupTable) : Table holding (at least) all groups used by the molecules
            composition (1d array) : Mole fractions
            resolution (str) : 'group' or 'instance', see `build_parameters`
        """
        component_index, identifiers, multiplicity, keys = [], [], [], []
        seg_index = {}
        topology = [_segment_groups(graph, resolution) for graph in molecules]
        for i, (units, _, _) in enumerate(topology):
            for key, (group, count) in units.items():
                seg_index[(i, key)] = len(identifiers)
                component_index.append(i)
                identifiers.append(group)
                multiplicity.append(count)
                keys.append(key)
        records = [groups[g] for g in identifiers]
        nseg = len(identifiers)
        ncomps = len(molecules)

        m = np.array([r.m * c for r, c in zip(records, multiplicity)])
        sigma = np.array([r.sigma for r in records])
        epsilon_k = np.array([r.epsilon_k for r in records])

        bonds = {}
        for i, (_, unit_bonds, _) in enumerate(topology):
            for (ka, kb), count in unit_bonds.items():
                key = tuple(sorted((seg_index[(i, ka)], seg_index[(i, kb)])))
                bonds[key] = bonds.get(key, 0) + count

        assoc_segment, na, nb = [], [], []
        for i, (graph, (_, _, unit_sites)) in enumerate(zip(molecules, topology)):
            for key, (n_donor, n_acceptor) in unit_sites.items():
                a = seg_index[(i, key)]
                if not records[a].is_associating():
                    raise MissingParameter(identifiers[a], f"molecule '{graph.name}' has association sites on this "
                                                           f"group, but kappa_ab/epsilon_k_ab are not registered")
                assoc_segment.append(a)
                na.append(n_donor)
                nb.append(n_acceptor)
        kappa_ab = np.array([records[a].kappa_ab for a in assoc_segment], dtype=float)
        epsilon_k_ab = np.array([records[a].epsilon_k_ab for a in assoc_segment], dtype=float)

        # Combining rules, binary records only act between different molecules
        k_ij = np.zeros((nseg, nseg))
        sigma_ij = 0.5 * (sigma[:, None] + sigma[None, :])
        epsilon_k_ij = np.sqrt(np.outer(epsilon_k, epsilon_k))
        for a in range(nseg):
            for b in range(nseg):
                if component_index[a] == component_index[b]:
                    continue
                rec = groups.binary(identifiers[a], identifiers[b])
                if rec is None:
                    continue
                k_ij[a, b] = rec.k_ij
                if rec.sigma_ij is not None:
                    sigma_ij[a, b] = rec.sigma_ij
                if rec.epsilon_k_ij is not None:
                    epsilon_k_ij[a, b] = rec.epsilon_k_ij
                else:
                    epsilon_k_ij[a, b] *= 1 - rec.k_ij

        sigma_assoc = sigma[assoc_segment]
        sigma3_kappa_aibj = (np.outer(sigma_assoc, sigma_assoc)) ** 1.5 * np.sqrt(np.outer(kappa_ab, kappa_ab))
        epsilon_k_aibj = 0.5 * (epsilon_k_ab[:, None] + epsilon_k_ab[None, :])

        # molecule_matrix @ rho_segment = rho_molecule, incidence @ rho_molecule = rho_segment
        incidence = np.zeros((nseg, ncomps))
        incidence[np.arange(nseg), component_index] = 1
        m_mol = incidence.T @ m
        molecule_matrix = incidence.T * m[None, :] / m_mol[:, None]

        self.molecules = tuple(molecules)
        self.groups = groups
        self.ncomps = ncomps
        self.nsegments = nseg
        self.composition = _readonly(composition)
        self.component_index = _readonly(component_index, dtype=int)
        self.resolution = resolution
        self.identifiers = tuple(identifiers)
        self.segment_keys = tuple(keys)
        self.multiplicity = _readonly(multiplicity, dtype=int)
        self.m = _readonly(m)
        self.sigma = _readonly(sigma)
        self.epsilon_k = _readonly(epsilon_k)
        self.psi_dft = _readonly([r.psi_dft for r in records])
        self.molarweight = _readonly([sum(groups[g].molarweight * c for g, c in graph.group_counts().items())
                                      for graph in molecules])
        self.joback = tuple(_molecule_joback(graph, groups) for graph in molecules)
        self.m_molecule = _readonly(m_mol)
        self.incidence = _readonly(incidence)
        self.molecule_matrix = _readonly(molecule_matrix)
        self.bonds = tuple(sorted(bonds.items()))
        self.assoc_segment = _readonly(assoc_segment, dtype=int)
        self.kappa_ab = _readonly(kappa_ab)
        self.epsilon_k_ab = _readonly(epsilon_k_ab)
        self.na = _readonly(na)
        self.nb = _readonly(nb)
        self.k_ij = _readonly(k_ij)
        self.sigma_ij = _readonly(sigma_ij)
        self.epsilon_k_ij = _readonly(epsilon_k_ij)
        self.sigma3_kappa_aibj = _readonly(sigma3_kappa_aibj)
        self.epsilon_k_aibj = _readonly(epsilon_k_aibj)
        self._frozen = True

    def __setattr__(self, key, value):
        if getattr(self, '_frozen', False):
            raise AttributeError(f'ParameterSet is immutable, can not set {key}')
        super().__setattr__(key, value)

    def __delattr__(self, item):
        raise AttributeError(f'ParameterSet is immutable, can not delete {item}')

    def __repr__(self):
        ostr = f'ParameterSet for {", ".join(g.name for g in self.molecules)} ' \
               f'({self.nsegments} segment groups, {self.resolution} resolution)\n'
        for a in range(self.nsegments):
            ostr += f'\t{self.molecules[self.component_index[a]].name} {self.identifiers[a]} ' \
                    f'x{self.multiplicity[a]} : m = {self.m[a]}, sigma = {self.sigma[a]}, ' \
                    f'epsilon_k = {self.epsilon_k[a]}\n'
        return ostr

    @property
    def has_association(self):
        return len(self.assoc_segment) > 0

    @property
    def segment_fractions(self):
        """Bulk Property
        Segment fractions x_a m_a / sum(x m) at the composition of the parameter set.
        """
        xm = self.composition[self.component_index] * self.m
        return xm / sum(xm)

    def hs_diameter(self, T):
        """Utility
        Temperature dependent hard-sphere diameter of every segment group.

        Args:
            T (float) : Temperature [K]

        Returns:
            1d array : Diameters [Å]
        """
        return self.sigma * (1 - 0.12 * jnp.exp(-3 * self.epsilon_k / T))

    def segment_densities(self, molecule_densities):
        """Utility
        Segment group densities from molecular number densities.

        Args:
            molecule_densities (1d array) : Molecular densities [particles / Å^3]

        Returns:
            1d array : Segment group densities [particles / Å^3]
        """
        return jnp.tensordot(self.incidence, jnp.asarray(molecule_densities), axes=(1, 0))

    def molecule_densities(self, segment_densities):
        """Utility
        Molecular densities as the m-weighted average of the segment group densities of every molecule.
        """
        return jnp.tensordot(self.molecule_matrix, jnp.asarray(segment_densities), axes=(1, 0))

    def max_density(self, molefracs=None, max_eta=0.5):
        """Bulk Property
        Molecular density at which the packing fraction computed from sigma reaches `max_eta`.

        Args:
            molefracs (1d array, optional) : Mole fractions, defaults to the composition of the parameter set
            max_eta (float) : Maximum packing fraction

        Returns:
            float : Density [particles / Å^3]
        """
        x = self.composition if molefracs is None else validate_composition(molefracs, self.ncomps)
        v_seg = np.pi / 6 * self.m * self.sigma ** 3 * x[self.component_index]
        return max_eta / sum(v_seg)

    def subset(self, components):
        """Utility
        Parameters for a subset of the molecules at the same resolution, the composition is renormalised.

        Args:
            components (list[int]) : Molecule indices to keep
        """
        x = np.array([self.composition[i] for i in components])
        x = x / sum(x) if sum(x) > 0 else None
        return build_parameters([self.molecules[i] for i in components], self.groups, x, self.resolution)

    def to_markdown(self):
        """Utility
        Markdown table of the segment parameters and the bond counts.
        """
        ostr = '|component|molarweight|segment|count|$m$|$\\sigma$|$\\varepsilon$|' \
               '$\\kappa_{AB}$|$\\varepsilon_{AB}$|$N_A$|$N_B$|\n'
        ostr += '|-|-|-|-|-|-|-|-|-|-|-|\n'
        assoc = {a: k for k, a in enumerate(self.assoc_segment)}
        for a in range(self.nsegments):
            i = self.component_index[a]
            first = (a == 0) or (self.component_index[a - 1] != i)
            name, mw = (self.molecules[i].name, f'{self.molarweight[i]}') if first else ('', '')
            ostr += f'|{name}|{mw}|{self.identifiers[a]}|{self.multiplicity[a]}|{self.m[a]}|{self.sigma[a]}|' \
                    f'{self.epsilon_k[a]}|'
            if a in assoc:
                k = assoc[a]
                ostr += f'{self.kappa_ab[k]}|{self.epsilon_k_ab[k]}|{self.na[k]:g}|{self.nb[k]:g}|\n'
            else:
                ostr += '||||\n'

        ostr += '\n|segment 1|segment 2|count|\n|-|-|-|\n'
        for (a, b), count in self.bonds:
            ostr += f'|{self.identifiers[a]}|{self.identifiers[b]}|{count}|\n'
        return ostr
