import pytest
import numpy as np

from slabgen.core.connectivity import CutoffPolicy, build_bonds
from conftest import create_cubic, create_nacl, create_n2, create_dense_carbon


def test_isolated_atoms():
    graph = build_bonds(create_cubic())
    assert len(graph.bonds) == 0
    molecules = graph.get_molecules()
    assert len(molecules) == 1
    assert molecules[0].indices == (0,)
    assert molecules[0].dimensionality == 0


def test_molecular_crystal():
    graph = build_bonds(create_n2())
    assert len(graph.bonds) == 1
    bond = graph.bonds[0]
    assert (bond.i, bond.j, bond.image) == (0, 1, (0, 0, 0))
    assert bond.distance == pytest.approx(1.1)
    molecules = graph.get_molecules()
    assert len(molecules) == 1
    assert molecules[0].dimensionality == 0


def test_molecule_across_boundary():
    graph = build_bonds(create_n2(center=0.0))
    assert len(graph.bonds) == 1
    bond = graph.bonds[0]
    assert bond.distance == pytest.approx(1.1)
    molecule = graph.get_molecules()[0]
    assert molecule.dimensionality == 0

    # The unwrapped copy is connected
    crystal = create_n2(center=0.0)
    scaled = crystal.get_scaled_positions() + molecule.images
    cart = crystal.lattice.get_cartesian_coords(scaled)
    assert np.linalg.norm(cart[0] - cart[1]) == pytest.approx(1.1)


def test_self_image_bonds_stored_once():
    graph = build_bonds(create_dense_carbon())
    images = sorted(bond.image for bond in graph.bonds)
    assert images == [(0, 0, 1), (0, 1, 0), (1, 0, 0)]
    assert graph.get_coordination_numbers().tolist() == [6]
    molecules = graph.get_molecules()
    assert len(molecules) == 1
    assert molecules[0].dimensionality == 3


def test_framework_is_one_molecule():
    graph = build_bonds(create_nacl())
    assert graph.get_coordination_numbers().tolist() == [6, 6]
    molecules = graph.get_molecules()
    assert len(molecules) == 1
    assert molecules[0].dimensionality == 3


def test_explicit_table():
    policy = CutoffPolicy(table={("N", "N"): 0.5})
    graph = build_bonds(create_n2(), policy)
    assert len(graph.bonds) == 0
    assert len(graph.get_molecules()) == 2


def test_default_heuristic():
    policy = CutoffPolicy(tolerance=1.0)
    assert policy.get_cutoff("N", "N") == pytest.approx(2*0.71)
    assert policy.get_cutoff("Na", "Cl") == policy.get_cutoff("Cl", "Na")


def test_small_cell_reaches_far_images():
    # The cutoff is longer than two cell lengths
    policy = CutoffPolicy(table={("C", "C"): 3.2})
    graph = build_bonds(create_dense_carbon(a=1.5), policy)
    assert (2, 0, 0) in {bond.image for bond in graph.bonds}


def test_non_periodic_direction():
    graph = build_bonds(create_dense_carbon(), pbc=[True, True, False])
    images = sorted(bond.image for bond in graph.bonds)
    assert images == [(0, 1, 0), (1, 0, 0)]


@pytest.mark.parametrize("crystal", [
    pytest.param(create_nacl(), id="NaCl"),
    pytest.param(create_nacl(cubic=True), id="NaCl conventional"),
    pytest.param(create_n2(), id="N2"),
])
@pytest.mark.parametrize("shift", [(0.5, 0, 0), (0.13, 0.77, 0.41)])
def test_translation_invariance(crystal, shift):
    original = build_bonds(crystal)
    shifted = build_bonds(crystal.translated(shift))
    assert len(original.bonds) == len(shifted.bonds)
    sizes = sorted(len(m) for m in original.get_molecules())
    shifted_sizes = sorted(len(m) for m in shifted.get_molecules())
    assert sizes == shifted_sizes


def test_to_networkx():
    graph = build_bonds(create_nacl())
    nx_graph = graph.to_networkx()
    assert nx_graph.number_of_nodes() == 2
    assert nx_graph.number_of_edges() == len(graph.bonds)
