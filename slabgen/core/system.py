from collections import Counter
from enum import Enum

import numpy as np
from ase import Atoms
from ase.data import atomic_numbers

from slabgen.core.lattice import Lattice
from slabgen.geometry import get_wrapped_positions


class Role(Enum):
    """Structural role of an atom in a framework material."""
    NODE = "node"
    LINKER = "linker"
    UNKNOWN = "unknown"


class Atom(object):
    """A single atom of a crystal. The scaled position is always wrapped
    into [0, 1) relative to the lattice of the owning crystal.
    """
    def __init__(self, symbol, scaled_position, charge=None, role=Role.UNKNOWN):
        if symbol not in atomic_numbers:
            raise ValueError("Unknown chemical symbol '{}'.".format(symbol))
        position = np.array(scaled_position, dtype=np.float64).reshape(3)
        if not np.all(np.isfinite(position)):
            raise ValueError("The scaled position of an atom must be finite.")
        position = get_wrapped_positions(position)
        position.flags.writeable = False
        self._symbol = symbol
        self._position = position
        self._charge = None if charge is None else float(charge)
        self._role = Role(role)

    @property
    def symbol(self):
        return self._symbol

    @property
    def number(self):
        return atomic_numbers[self._symbol]

    @property
    def scaled_position(self):
        return self._position

    @property
    def charge(self):
        return self._charge

    @property
    def role(self):
        return self._role

    def copy(self, **kwargs):
        """Returns a new atom where the given attributes have been replaced.
        """
        args = {
            "symbol": self._symbol,
            "scaled_position": self._position,
            "charge": self._charge,
            "role": self._role,
        }
        args.update(kwargs)
        return Atom(**args)

    def __repr__(self):
        return "Atom('{}', [{:.5f}, {:.5f}, {:.5f}], charge={}, role={})".format(
            self._symbol, *self._position, self._charge, self._role.value
        )


class Crystal(object):
    """A lattice together with an ordered sequence of atoms.

    The order of the atoms is kept stable so that the output of every stage
    is reproducible. A crystal is never modified after creation, variants are
    created with the methods returning new crystals.
    """
    def __init__(self, lattice, atoms):
        """
        Args:
            lattice(Lattice or 3x3 array): The lattice vectors as rows.
            atoms(sequence of Atom): The atoms of the crystal.
        """
        if not isinstance(lattice, Lattice):
            lattice = Lattice(lattice)
        self._lattice = lattice
        self._atoms = tuple(atoms)
        for atom in self._atoms:
            if not isinstance(atom, Atom):
                raise ValueError("A crystal can only contain Atom instances.")

    @staticmethod
    def from_atoms(atoms):
        """Creates a crystal from an ase.Atoms object.

        Args:
            atoms(ase.Atoms): The original system. The initial charges are
                used as formal charges if any of them is nonzero.

        Returns:
            Crystal: The crystal corresponding to the given Atoms.
        """
        lattice = Lattice(atoms.get_cell()[:])
        scaled = atoms.get_scaled_positions(wrap=False)
        charges = atoms.get_initial_charges()
        has_charges = bool(np.any(charges != 0))
        crystal_atoms = []
        for symbol, position, charge in zip(atoms.get_chemical_symbols(), scaled, charges):
            crystal_atoms.append(Atom(
                symbol,
                position,
                charge=charge if has_charges else None,
            ))
        return Crystal(lattice, crystal_atoms)

    def to_atoms(self):
        """Returns an ase.Atoms object corresponding to this crystal.
        """
        atoms = Atoms(
            symbols=self.get_chemical_symbols(),
            scaled_positions=self.get_scaled_positions(),
            cell=self._lattice.matrix,
            pbc=True,
        )
        if self.has_charges():
            atoms.set_initial_charges(self.get_charges())
        return atoms

    @property
    def lattice(self):
        return self._lattice

    @property
    def atoms(self):
        return self._atoms

    def __len__(self):
        return len(self._atoms)

    def __iter__(self):
        return iter(self._atoms)

    def __getitem__(self, i):
        return self._atoms[i]

    def get_chemical_symbols(self):
        return [atom.symbol for atom in self._atoms]

    def get_scaled_positions(self):
        if len(self._atoms) == 0:
            return np.zeros((0, 3))
        return np.array([atom.scaled_position for atom in self._atoms])

    def get_positions(self):
        return self._lattice.get_cartesian_coords(self.get_scaled_positions())

    def get_charges(self):
        """Returns the formal charges. Atoms without a charge count as zero."""
        return np.array(
            [0.0 if atom.charge is None else atom.charge for atom in self._atoms],
            dtype=np.float64
        )

    def has_charges(self):
        """Whether any of the atoms carries a formal charge."""
        return any(atom.charge is not None for atom in self._atoms)

    def get_roles(self):
        """Returns a dictionary mapping the atom index to its Role."""
        return {i: atom.role for i, atom in enumerate(self._atoms)}

    def get_composition(self):
        return Counter(self.get_chemical_symbols())

    def _create(self, atoms):
        return Crystal(self._lattice, atoms)

    def with_roles(self, roles):
        """Returns a copy of this crystal where the roles have been assigned
        from the given mapping of atom index to Role. Atoms that are not in
        the mapping keep their role.
        """
        atoms = []
        for i, atom in enumerate(self._atoms):
            if i in roles:
                atom = atom.copy(role=roles[i])
            atoms.append(atom)
        return self._create(atoms)

    def with_charges(self, charges):
        """Returns a copy of this crystal with the given per-atom charges."""
        if len(charges) != len(self._atoms):
            raise ValueError("Exactly one charge per atom is required.")
        return self._create([
            atom.copy(charge=charge) for atom, charge in zip(self._atoms, charges)
        ])

    def translated(self, shift):
        """Returns a copy of this crystal with all atoms translated by the
        given scaled vector.
        """
        shift = np.asarray(shift, dtype=np.float64)
        return self._create([
            atom.copy(scaled_position=atom.scaled_position + shift)
            for atom in self._atoms
        ])

    def __repr__(self):
        formula = "".join(
            "{}{}".format(symbol, count if count > 1 else "")
            for symbol, count in sorted(self.get_composition().items())
        )
        return "{}({}, natoms={})".format(type(self).__name__, formula, len(self))


class SlabCrystal(Crystal):
    """A crystal expressed in the frame of a surface slab cell. The vacuum
    is unoccupied cell volume along the third cell vector.
    """
    def __init__(self, lattice, atoms, cell=None, offset=None):
        """
        Args:
            lattice(Lattice): The lattice of the slab cell.
            atoms(sequence of Atom): Atoms in the slab frame.
            cell(SlabCell): The slab cell the crystal was built in.
            offset(float): The cut offset used when populating the slab.
        """
        super().__init__(lattice, atoms)
        self._cell = cell
        self._offset = offset

    @property
    def cell(self):
        return self._cell

    @property
    def offset(self):
        return self._offset

    def _create(self, atoms):
        return SlabCrystal(self._lattice, atoms, cell=self._cell, offset=self._offset)

    def repeat(self, na, nb):
        """Returns an in-plane supercell of this slab.

        Args:
            na, nb(int): Number of repetitions along the first and second
                in-plane vector.
        """
        na, nb = int(na), int(nb)
        if na < 1 or nb < 1:
            raise ValueError("In-plane repetitions must be positive integers.")
        if self._cell is not None:
            cell = self._cell.repeated(na, nb)
            lattice = cell.lattice
        else:
            cell = None
            matrix = self._lattice.matrix
            matrix[0] *= na
            matrix[1] *= nb
            lattice = Lattice(matrix)
        atoms = []
        for i in range(na):
            for j in range(nb):
                for atom in self._atoms:
                    pos = atom.scaled_position
                    new_pos = [(pos[0] + i) / na, (pos[1] + j) / nb, pos[2]]
                    atoms.append(atom.copy(scaled_position=new_pos))
        return SlabCrystal(lattice, atoms, cell=cell, offset=self._offset)

    def to_atoms(self):
        atoms = super().to_atoms()
        if self._offset is not None:
            atoms.info["slab_offset"] = float(self._offset)
        return atoms
