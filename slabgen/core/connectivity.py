"""
Periodic bond graph of a crystal and the molecules it is made of.
"""
import logging
from collections import deque, namedtuple

import numpy as np
import networkx as nx
from networkx.utils import UnionFind
from ase.data import covalent_radii, atomic_numbers

from slabgen.data.constants import BOND_TOLERANCE
from slabgen.geometry import get_neighbour_cells, expand_pbc

logger = logging.getLogger(__name__)

Bond = namedtuple("Bond", ["i", "j", "image", "distance"])
Bond.__doc__ = """A bond from atom i in the home cell to atom j in the cell
translated by the integer vector image."""


class CutoffPolicy(object):
    """Decides the maximum bonding distance between two species.

    Pairs present in the explicit table use the tabulated distance, other
    pairs use the sum of the covalent radii multiplied by a tolerance factor.
    """
    def __init__(self, table=None, tolerance=BOND_TOLERANCE):
        """
        Args:
            table(dict): Mapping from a pair of chemical symbols to a maximum
                bonding distance in angstrom. The order within the pair does
                not matter.
            tolerance(float): Multiplier for the covalent radius sum.
        """
        self._tolerance = tolerance
        self._table = {}
        if table is not None:
            for (a, b), distance in table.items():
                self._table[tuple(sorted((a, b)))] = float(distance)

    @property
    def tolerance(self):
        return self._tolerance

    def get_cutoff(self, a, b):
        """Returns the maximum bonding distance between the species a and b.
        """
        key = tuple(sorted((a, b)))
        if key in self._table:
            return self._table[key]
        radii_sum = covalent_radii[atomic_numbers[a]] + covalent_radii[atomic_numbers[b]]
        return radii_sum*self._tolerance

    def get_cutoff_matrix(self, symbols):
        """Returns the pairwise cutoffs for the given list of symbols as a
        square matrix.
        """
        species = sorted(set(symbols))
        index = {s: i for i, s in enumerate(species)}
        species_cutoffs = np.zeros((len(species), len(species)))
        for i, a in enumerate(species):
            for j, b in enumerate(species):
                species_cutoffs[i, j] = self.get_cutoff(a, b)
        idx = np.array([index[s] for s in symbols], dtype=int)
        return species_cutoffs[np.ix_(idx, idx)]


class Molecule(object):
    """A connected component of the bond graph.

    Attributes:
        indices(tuple): The atom indices, sorted.
        images(np.ndarray): For each atom the integer cell translation that
            places it into one connected copy of the molecule.
        dimensionality(int): Number of independent lattice directions in
            which the molecule connects to its own periodic copies. Zero for
            a finite molecule, three for a framework.
    """
    def __init__(self, indices, images, dimensionality):
        self.indices = tuple(indices)
        self.images = np.array(images, dtype=int).reshape((-1, 3))
        self.dimensionality = dimensionality

    @property
    def is_periodic(self):
        return self.dimensionality > 0

    def __len__(self):
        return len(self.indices)

    def __repr__(self):
        return "Molecule(natoms={}, dimensionality={})".format(len(self.indices), self.dimensionality)


class BondGraph(object):
    """Bonds of a crystal, each annotated with the periodic image across
    which it connects. The graph is never modified after creation and may be
    shared between slab generations from the same crystal.
    """
    def __init__(self, n_atoms, bonds):
        self._n_atoms = n_atoms
        self._bonds = tuple(bonds)
        self._molecules = None
        self._neighbours = None

    @property
    def n_atoms(self):
        return self._n_atoms

    @property
    def bonds(self):
        return self._bonds

    def __len__(self):
        return len(self._bonds)

    def _get_neighbour_lists(self):
        if self._neighbours is None:
            neighbours = [[] for _ in range(self._n_atoms)]
            for bond in self._bonds:
                image = np.array(bond.image, dtype=int)
                neighbours[bond.i].append((bond.j, image))
                neighbours[bond.j].append((bond.i, -image))
            self._neighbours = neighbours
        return self._neighbours

    def get_neighbours(self, i):
        """Returns the neighbours of atom i as a list of (index, image)
        pairs, where image is the cell of the neighbour relative to the cell
        of atom i.
        """
        return list(self._get_neighbour_lists()[i])

    def get_coordination_numbers(self):
        return np.array([len(x) for x in self._get_neighbour_lists()], dtype=int)

    def get_molecules(self):
        """Returns the molecules of the crystal.

        Atoms are first grouped with union-find. Each group is then unwrapped
        by a breadth-first search over (atom, image) pairs: reaching an atom
        that already has an image through a different translation reveals a
        lattice cycle, and the rank of these cycles is the dimensionality of
        the molecule. An infinite network therefore results in one molecule.

        Returns:
            list of Molecule: Sorted by their smallest atom index.
        """
        if self._molecules is not None:
            return self._molecules

        union = UnionFind(range(self._n_atoms))
        for bond in self._bonds:
            union.union(bond.i, bond.j)
        groups = sorted(
            (sorted(group) for group in union.to_sets()),
            key=lambda x: x[0]
        )

        neighbours = self._get_neighbour_lists()
        molecules = []
        for group in groups:
            root = group[0]
            images = {root: np.zeros(3, dtype=int)}
            cycles = []
            queue = deque([root])
            while queue:
                i = queue.popleft()
                for j, image in neighbours[i]:
                    target = images[i] + image
                    if j not in images:
                        images[j] = target
                        queue.append(j)
                    else:
                        cycle = target - images[j]
                        if np.any(cycle != 0):
                            cycles.append(cycle)
            dimensionality = int(np.linalg.matrix_rank(np.array(cycles))) if cycles else 0
            molecules.append(Molecule(group, [images[i] for i in group], dimensionality))

        self._molecules = molecules
        return molecules

    def to_networkx(self):
        """Returns the bond graph as a networkx.MultiGraph. Every bond is an
        edge with the attributes 'image' and 'distance'.
        """
        graph = nx.MultiGraph()
        graph.add_nodes_from(range(self._n_atoms))
        for bond in self._bonds:
            graph.add_edge(bond.i, bond.j, image=bond.image, distance=bond.distance)
        return graph


def _is_positive_image(image):
    for value in image:
        if value != 0:
            return value > 0
    return False


def build_bonds(crystal, cutoff_policy=None, pbc=True):
    """Builds the periodic bond graph of a crystal.

    Every atom is connected to every periodic image of every other atom
    closer than the cutoff given by the policy. The images that need to be
    searched are determined from the largest cutoff, so cells that are small
    compared to the cutoff are handled correctly. A bond is stored once per
    unordered atom pair and translation; a bond between an atom and its own
    image is stored only for the positive one of the two translations.

    Args:
        crystal(Crystal): The crystal.
        cutoff_policy(CutoffPolicy): The bonding distances. Defaults to the
            covalent radius heuristic.
        pbc(bool or sequence of bools): The periodic directions. Slabs use
            non-periodic normal directions.

    Returns:
        BondGraph: The bonds. A crystal without bonds is valid.
    """
    policy = cutoff_policy if cutoff_policy is not None else CutoffPolicy()
    n_atoms = len(crystal)
    if n_atoms == 0:
        return BondGraph(0, [])

    pbc = expand_pbc(pbc)
    cell = crystal.lattice.matrix
    cutoffs = policy.get_cutoff_matrix(crystal.get_chemical_symbols())
    max_cutoff = float(cutoffs.max())

    scaled = crystal.get_scaled_positions()
    diff = scaled[None, :, :] - scaled[:, None, :]
    base_image = -np.rint(diff).astype(int)*pbc.astype(int)
    diff = diff + base_image

    same_atom = np.eye(n_atoms, dtype=bool)
    upper = np.triu(np.ones((n_atoms, n_atoms), dtype=bool), k=1)

    bonds = []
    for cell_offset in get_neighbour_cells(cell, max_cutoff, pbc, padding=0.5):
        vectors = np.dot(diff + cell_offset, cell)
        distances = np.linalg.norm(vectors, axis=2)
        candidates = np.argwhere((distances < cutoffs) & (upper | same_atom))
        for i, j in candidates:
            image = base_image[i, j] + cell_offset
            if i == j and not _is_positive_image(image):
                continue
            bonds.append(Bond(int(i), int(j), tuple(int(x) for x in image), float(distances[i, j])))

    bonds.sort(key=lambda x: (x.i, x.j, x.image))
    logger.debug("Found %d bonds between %d atoms.", len(bonds), n_atoms)
    return BondGraph(n_atoms, bonds)
