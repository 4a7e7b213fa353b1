"""
Filling a slab cell with the atoms of the bulk crystal.
"""
import logging

import numpy as np

from slabgen.core.system import SlabCrystal
from slabgen.data.constants import PACK_THRESHOLD, POSITION_THRESHOLD
from slabgen.geometry import cartesian

logger = logging.getLogger(__name__)


def get_translations(supercell, offset_vector):
    """Returns the integer translations of the bulk cell needed to cover
    the given supercell whose origin has been shifted by offset_vector.

    Args:
        supercell(np.ndarray): Supercell vectors as rows, in scaled
            coordinates of the bulk cell.
        offset_vector(np.ndarray): Origin of the supercell in scaled
            coordinates of the bulk cell.
    """
    corners = np.array([
        offset_vector + i*supercell[0] + j*supercell[1] + k*supercell[2]
        for i in (0, 1) for j in (0, 1) for k in (0, 1)
    ])
    lower = np.floor(corners.min(axis=0)).astype(int) - 1
    upper = np.ceil(corners.max(axis=0)).astype(int) + 1
    ranges = [np.arange(lo, hi + 1) for lo, hi in zip(lower, upper)]
    return cartesian(ranges)


def populate(crystal, slab_cell, offset, repeat_count=None,
             pack_threshold=PACK_THRESHOLD, position_threshold=POSITION_THRESHOLD):
    """Populates the slab cell with the atoms of the bulk crystal.

    The bulk cell is translated so that the cut plane at the given offset
    becomes the bottom of the slab. An atom is kept when its in-plane
    coordinates fall inside the half-open unit window and its normal
    coordinate falls inside the occupied thickness. As the offset is assumed
    to be safe, no molecule crosses the cut and atoms can be kept one by one.

    Args:
        crystal(Crystal): The bulk crystal.
        slab_cell(SlabCell): The target cell.
        offset(float): The cut offset as a fraction of the interplanar
            spacing.
        repeat_count(int): Number of transverse steps. Defaults to the one
            of the slab cell.

    Returns:
        SlabCrystal: The atoms of the slab, ordered by source translation and
        then by original atom index.
    """
    if repeat_count is not None and int(repeat_count) != slab_cell.repeat_count:
        slab_cell = slab_cell.with_repeat_count(int(repeat_count))
    n = slab_cell.repeat_count
    offset = float(offset) % 1.0
    basis = slab_cell.surface_basis
    u, v = basis.reduced
    w = basis.transverse
    na, nb = slab_cell.in_plane_repeats

    supercell = np.array([na*u, nb*v, n*w], dtype=np.float64)
    inv_supercell = np.linalg.inv(supercell)
    translations = get_translations(supercell, offset*w)

    bulk_cart = slab_cell.bulk_lattice.matrix
    step_cart = np.dot(np.array([na*u, nb*v, w], dtype=np.float64), bulk_cart)
    step_slab = slab_cell.to_slab_frame(step_cart)
    inv_slab = slab_cell.lattice.inv_matrix
    slab_matrix = slab_cell.matrix

    scaled = crystal.get_scaled_positions()
    atoms = []
    kept = np.empty((len(translations)*len(crystal), 3))
    n_kept = 0
    tol = pack_threshold
    for translation in translations:
        y = np.dot(scaled + translation, inv_supercell)
        normal = y[:, 2]*n - offset
        mask = (
            (y[:, 0] >= -tol) & (y[:, 0] < 1 - tol) &
            (y[:, 1] >= -tol) & (y[:, 1] < 1 - tol) &
            (normal >= -tol*n) & (normal < n - tol*n)
        )
        for i in np.where(mask)[0]:
            coefficients = np.array([y[i, 0], y[i, 1], normal[i]])
            position = np.dot(np.dot(coefficients, step_slab), inv_slab)
            if n_kept:
                delta = kept[:n_kept] - position
                delta -= np.rint(delta)
                distances = np.linalg.norm(np.dot(delta, slab_matrix), axis=1)
                if np.any(distances < position_threshold):
                    continue
            kept[n_kept] = position
            n_kept += 1
            atoms.append(crystal[i].copy(scaled_position=position))

    logger.info(
        "Populated slab %s with %d atoms at offset %.4f.",
        basis.miller, len(atoms), offset
    )
    return SlabCrystal(slab_cell.lattice, atoms, cell=slab_cell, offset=offset)


def center_slab(slab):
    """Returns a copy of the slab moved along the third cell vector so that
    the occupied region is in the middle of the cell.
    """
    if len(slab) == 0:
        return slab
    c = slab.get_scaled_positions()[:, 2]
    shift = 0.5 - (c.min() + c.max())/2
    return slab.translated([0.0, 0.0, shift])
