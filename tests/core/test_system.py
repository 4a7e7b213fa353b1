import pytest
import numpy as np
import ase.build

from slabgen.core.lattice import Lattice
from slabgen.core.system import Atom, Crystal, Role
from conftest import create_nacl


def test_atom_position_is_wrapped():
    atom = Atom("H", [1.25, -0.25, 0.9999999])
    assert np.allclose(atom.scaled_position, [0.25, 0.75, 0])


def test_atom_is_read_only():
    atom = Atom("H", [0.1, 0.2, 0.3])
    with pytest.raises(ValueError):
        atom.scaled_position[0] = 0.5


def test_unknown_symbol():
    with pytest.raises(ValueError):
        Atom("Xx", [0, 0, 0])


def test_from_atoms_keeps_charges():
    crystal = create_nacl()
    assert crystal.has_charges()
    assert sorted(crystal.get_charges()) == [-1, 1]
    assert crystal.get_composition() == {"Na": 1, "Cl": 1}


def test_from_atoms_without_charges():
    crystal = Crystal.from_atoms(ase.build.bulk("Cu", "fcc", a=3.6))
    assert not crystal.has_charges()
    assert np.allclose(crystal.get_charges(), 0)


def test_to_atoms_roundtrip_positions():
    atoms = ase.build.bulk("NaCl", "rocksalt", a=5.64, cubic=True)
    crystal = Crystal.from_atoms(atoms)
    assert np.allclose(crystal.to_atoms().get_positions(), atoms.get_positions())


def test_with_roles_creates_new_crystal():
    crystal = create_nacl()
    tagged = crystal.with_roles({0: Role.NODE})
    assert tagged.get_roles()[0] == Role.NODE
    assert tagged.get_roles()[1] == Role.UNKNOWN
    assert crystal.get_roles()[0] == Role.UNKNOWN


def test_translated():
    crystal = Crystal(Lattice(np.eye(3)), [Atom("H", [0.9, 0, 0])])
    moved = crystal.translated([0.2, 0, 0])
    assert np.allclose(moved.get_scaled_positions(), [[0.1, 0, 0]])
