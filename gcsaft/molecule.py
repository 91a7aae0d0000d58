"""
Molecules as graphs of segment instances.

A molecule is stored as an arena: segment instances are addressed by integer handles (their position in
`segments`), bonds are pairs of handles and association sites point at the handle of the segment carrying them.
A graph is validated when it is constructed, and is read-only afterwards.
"""
from enum import IntEnum
from numbers import Integral
from collections import Counter, deque
from gcsaft.errors import InvalidGraph


class SiteType(IntEnum):
    DONOR = 0
    ACCEPTOR = 1


class AssociationSite:
    """
    An association site on a segment instance.

    Args:
        segment (int) : Handle of the segment instance carrying the site
        kind (SiteType) : Donor or acceptor
        identifier (str) : Unique (within the molecule) site identifier
    """
    __slots__ = ('segment', 'kind', 'identifier')

    def __init__(self, segment, kind, identifier):
        self.segment = segment
        self.kind = SiteType(kind)
        self.identifier = identifier

    def __repr__(self):
        return f'AssociationSite({self.segment}, {self.kind.name}, {self.identifier!r})'

    def __eq__(self, other):
        if not isinstance(other, AssociationSite):
            return NotImplemented
        return (self.segment, self.kind, self.identifier) == (other.segment, other.kind, other.identifier)

    def __hash__(self):
        return hash((self.segment, self.kind, self.identifier))


class MoleculeGraph:

    def __init__(self, name, segments, bonds=(), sites=()):
        """Constructor
        Build and validate the graph of a molecule.

        Args:
            name (str) : Molecule name, used in messages and tables
            segments (list[str]) : Group identifier of every segment instance, the handle of an instance is its index
            bonds (list[tuple[int, int]]) : Bonded pairs of segment handles
            sites (list[AssociationSite]) : Association sites

        Raises:
            InvalidGraph : If the graph is empty, disconnected, or has dangling/duplicate bonds or sites.
        """
        self.name = name
        self.segments = tuple(segments)
        self.bonds = tuple(tuple(sorted(b)) for b in bonds)
        self.sites = tuple(sites)
        self.validate()

    @classmethod
    def chain(cls, name, segments, sites=()):
        """Constructor
        Linear chain where segment i is bonded to segment i + 1.
        """
        bonds = [(i, i + 1) for i in range(len(segments) - 1)]
        return cls(name, segments, bonds, sites)

    @classmethod
    def from_labels(cls, name, segments, bonds=(), sites=()):
        """Constructor
        Build a graph from labelled segment instances, e.g.

            MoleculeGraph.from_labels('ethanol',
                                      [('C1', 'CH3'), ('C2', 'CH2'), ('O', 'OH')],
                                      bonds=[('C1', 'C2'), ('C2', 'O')],
                                      sites=[('O', SiteType.DONOR, 'H'), ('O', SiteType.ACCEPTOR, 'e')])

        Args:
            segments (list[tuple[str, str]]) : (label, group identifier) per segment instance
            bonds (list[tuple[str, str]]) : Bonded pairs of labels
            sites (list[tuple[str, SiteType, str]]) : (label, site type, site identifier)
        """
        handles = {}
        groups = []
        for label, group in segments:
            if label in handles:
                raise InvalidGraph(name, f"duplicate segment identifier '{label}'")
            handles[label] = len(groups)
            groups.append(group)

        def handle(label):
            try:
                return handles[label]
            except KeyError:
                raise InvalidGraph(name, f"reference to nonexistent segment '{label}'") from None

        return cls(name, groups,
                   [(handle(a), handle(b)) for a, b in bonds],
                   [AssociationSite(handle(label), kind, ident) for label, kind, ident in sites])

    def __repr__(self):
        return f'MoleculeGraph({self.name!r}, segments={list(self.segments)}, bonds={list(self.bonds)}, ' \
               f'sites={list(self.sites)})'

    def __len__(self):
        return len(self.segments)

    def validate(self):
        """Utility
        Check the arena invariants: all bond and site handles exist, bonds and site identifiers are unique and
        the graph is connected.

        Raises:
            InvalidGraph
        """
        n = len(self.segments)
        if n == 0:
            raise InvalidGraph(self.name, 'molecule has no segments')

        seen = set()
        for a, b in self.bonds:
            for h in (a, b):
                if not isinstance(h, Integral) or not (0 <= h < n):
                    raise InvalidGraph(self.name, f'bond {(a, b)} references nonexistent segment {h}')
            if a == b:
                raise InvalidGraph(self.name, f'segment {a} is bonded to itself')
            if (a, b) in seen:
                raise InvalidGraph(self.name, f'duplicate bond {(a, b)}')
            seen.add((a, b))

        identifiers = set()
        for site in self.sites:
            if not isinstance(site.segment, Integral) or not (0 <= site.segment < n):
                raise InvalidGraph(self.name, f"site '{site.identifier}' is attached to nonexistent segment "
                                              f"{site.segment}")
            if site.identifier in identifiers:
                raise InvalidGraph(self.name, f"duplicate site identifier '{site.identifier}'")
            identifiers.add(site.identifier)

        if not self.is_connected():
            raise InvalidGraph(self.name, 'graph is not connected')

    def adjacency(self):
        """Utility
        Neighbour handles of every segment instance, indexed as adj[<handle>].
        """
        adj = [[] for _ in self.segments]
        for a, b in self.bonds:
            adj[a].append(b)
            adj[b].append(a)
        return adj

    def is_connected(self):
        adj = self.adjacency()
        visited = {0}
        queue = deque([0])
        while queue:
            for nb in adj[queue.popleft()]:
                if nb not in visited:
                    visited.add(nb)
                    queue.append(nb)
        return len(visited) == len(self.segments)

    def group_counts(self):
        """Utility
        Multiplicity of every group type in the molecule, in order of first appearance.

        Returns:
            dict[str, int] : {group identifier : count}
        """
        return dict(Counter(self.segments))

    def group_bond_counts(self):
        """Utility
        Number of bonds between each pair of group types. The pair is ordered by first appearance of the groups.

        Returns:
            dict[tuple[str, str], int] : {(group_a, group_b) : count}
        """
        order = {g: i for i, g in enumerate(self.group_counts())}
        counts = {}
        for a, b in self.bonds:
            ga, gb = sorted((self.segments[a], self.segments[b]), key=order.get)
            counts[(ga, gb)] = counts.get((ga, gb), 0) + 1
        return counts

    def instance_site_counts(self):
        """Utility
        Number of donor and acceptor sites carried by each segment instance.

        Returns:
            dict[int, tuple[int, int]] : {handle : (n_donor, n_acceptor)}, only segments carrying sites.
        """
        counts = {}
        for site in self.sites:
            na, nb = counts.get(site.segment, (0, 0))
            counts[site.segment] = (na + 1, nb) if site.kind == SiteType.DONOR else (na, nb + 1)
        return dict(sorted(counts.items()))

    def group_site_counts(self):
        """Utility
        Number of donor and acceptor sites carried by each group type.

        Returns:
            dict[str, tuple[int, int]] : {group identifier : (n_donor, n_acceptor)}, only groups carrying sites.
        """
        counts = {}
        for h, (na, nb) in self.instance_site_counts().items():
            group = self.segments[h]
            na_g, nb_g = counts.get(group, (0, 0))
            counts[group] = (na_g + na, nb_g + nb)
        return {g: counts[g] for g in self.group_counts() if g in counts}

    def with_sites(self, sites):
        """Utility
        New graph with the same segments and bonds, and additional association sites.
        """
        return MoleculeGraph(self.name, self.segments, self.bonds, self.sites + tuple(sites))
