import numpy as np
import ase.build

from slabgen.core.lattice import Lattice
from slabgen.core.system import Atom, Crystal


def create_cubic(a=4.0, symbol="Cu"):
    """Simple cubic crystal with one neutral atom at the origin."""
    return Crystal(Lattice(np.eye(3)*a), [Atom(symbol, [0, 0, 0], charge=0)])


def create_nacl(cubic=False):
    system = ase.build.bulk(
        'NaCl',
        crystalstructure='rocksalt',
        a=5.64,
        cubic=cubic,
    )
    system.set_initial_charges([1 if s == "Na" else -1 for s in system.get_chemical_symbols()])
    return Crystal.from_atoms(system)


def create_n2(a=5.0, bond=1.1, center=0.5):
    """Cubic crystal of N2 molecules oriented along x."""
    half = bond/a/2
    return Crystal(Lattice(np.eye(3)*a), [
        Atom("N", [center - half, 0.5, 0.5]),
        Atom("N", [center + half, 0.5, 0.5]),
    ])


def create_dense_carbon(a=1.5):
    """Simple cubic carbon where every atom bonds to its six images."""
    return Crystal(Lattice(np.eye(3)*a), [Atom("C", [0, 0, 0])])


def create_layered(a=6.0):
    """Cubic cell with a zinc layer at z=0 and a carbon layer at z=0.5."""
    return Crystal(Lattice(np.eye(3)*a), [
        Atom("Zn", [0, 0, 0]),
        Atom("C", [0, 0, 0.5]),
    ])


def create_triclinic():
    lattice = Lattice.from_parameters(4.1, 5.3, 6.2, 78.0, 95.0, 103.0)
    return Crystal(lattice, [
        Atom("Si", [0.1, 0.2, 0.3]),
        Atom("O", [0.6, 0.7, 0.1]),
    ])
