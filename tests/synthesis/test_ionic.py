import pytest
import numpy as np

from slabgen.core.basis import find_surface_basis
from slabgen.exceptions import NonStoichiometricResult
from slabgen.synthesis.builder import build_slab_cell
from slabgen.synthesis.ionic import (
    ReconstructionStrategy,
    get_dipole_moment,
    get_normal_heights,
    reconstruct,
)
from slabgen.synthesis.population import populate
from conftest import create_cubic, create_nacl


def polar_slab(repeat=(1, 1)):
    """Two Cl/Na bilayers of NaCl(111) with a Cl bottom and a Na top."""
    crystal = create_nacl()
    basis = find_surface_basis(crystal.lattice, (1, 1, 1))
    cell = build_slab_cell(crystal.lattice, basis, 6.0, 10.0)
    slab = populate(crystal, cell, 0.25)
    if repeat != (1, 1):
        slab = slab.repeat(*repeat)
    return slab


def test_polar_slab_dipole():
    slab = polar_slab()
    d = slab.cell.interplanar_spacing
    assert len(slab) == 4
    assert get_dipole_moment(slab) == pytest.approx(d)


def test_nonpolar_slab():
    crystal = create_cubic()
    basis = find_surface_basis(crystal.lattice, (1, 0, 0))
    slab = populate(crystal, build_slab_cell(crystal.lattice, basis, 8.0, 10.0), 0.5)
    result, report = reconstruct(slab)
    assert result is slab
    assert report.final_dipole == 0
    assert not report.advisories


def test_transfer_not_possible_in_small_cell():
    slab = polar_slab()
    d = slab.cell.interplanar_spacing
    result, report = reconstruct(slab, strategy=ReconstructionStrategy.TRANSFER_IONS)
    assert report.moved == []
    assert len(report.advisories) == 1
    advisory = report.advisories[0]
    assert isinstance(advisory, NonStoichiometricResult)
    assert advisory.value == pytest.approx(d)


def test_transfer_ions():
    slab = polar_slab(repeat=(2, 1))
    result, report = reconstruct(slab, strategy=ReconstructionStrategy.TRANSFER_IONS)
    assert len(report.moved) == 1
    assert slab[report.moved[0]].symbol == "Na"
    assert report.final_dipole == pytest.approx(0, abs=1e-8)
    assert get_dipole_moment(result) == pytest.approx(0, abs=1e-8)
    assert not report.advisories

    # Charge and composition are conserved
    assert result.get_charges().sum() == pytest.approx(slab.get_charges().sum())
    assert result.get_composition() == slab.get_composition()

    # The ion now sits one stacking vector below its old site
    heights_before = get_normal_heights(slab)
    heights_after = get_normal_heights(result)
    i = report.moved[0]
    others = [x for x in range(len(slab)) if x != i]
    shift = heights_after[others[0]] - heights_before[others[0]]
    step = slab.cell.thickness
    assert heights_after[i] == pytest.approx(heights_before[i] - step + shift)
    assert heights_after.min() >= -1e-9


def test_scale_layer_charge():
    slab = polar_slab()
    d = slab.cell.interplanar_spacing
    result, report = reconstruct(slab, strategy=ReconstructionStrategy.SCALE_LAYER_CHARGE)
    assert get_dipole_moment(result) == pytest.approx(0, abs=1e-8)
    assert result.get_charges().sum() == pytest.approx(slab.get_charges().sum())
    assert report.charge_shift == pytest.approx(d/(1.5*d))
    assert not report.advisories
    # Atoms do not move
    assert np.allclose(result.get_positions(), slab.get_positions())


def test_no_correction_strategy():
    slab = polar_slab()
    result, report = reconstruct(slab, strategy=ReconstructionStrategy.NONE)
    assert result is slab
    assert report.final_dipole == report.initial_dipole


def test_without_charges():
    slab = polar_slab()
    uncharged = slab.with_charges([None]*len(slab))
    result, report = reconstruct(uncharged)
    assert result is uncharged
    assert "No formal charges" in report.message


def test_guess_charges():
    slab = polar_slab(repeat=(2, 1))
    uncharged = slab.with_charges([None]*len(slab))
    result, report = reconstruct(uncharged, guess_charges=True)
    assert report.charges_guessed
    assert report.initial_dipole == pytest.approx(get_dipole_moment(slab))
    assert len(report.moved) == 1
