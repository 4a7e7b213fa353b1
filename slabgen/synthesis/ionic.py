"""
Dipole correction of polar slabs (Tasker type III reconstruction).
"""
import logging
from enum import Enum

import numpy as np

from slabgen.core.connectivity import build_bonds
from slabgen.core.system import SlabCrystal
from slabgen.data.constants import LAYER_TOLERANCE, DIPOLE_TOLERANCE, COMMON_OXIDATION_STATES
from slabgen.exceptions import NonStoichiometricResult
from slabgen.geometry import get_plane_normal

logger = logging.getLogger(__name__)


class ReconstructionStrategy(Enum):
    """How the surface dipole of a polar slab is cancelled.

    NONE: The dipole is only measured.
    TRANSFER_IONS: Whole terminal ions are moved from one face to the
        equivalent lattice site on the opposite face.
    SCALE_LAYER_CHARGE: Fractional charge is moved from one terminal layer
        to the other.
    """
    NONE = "none"
    TRANSFER_IONS = "transfer"
    SCALE_LAYER_CHARGE = "scale"


class ReconstructionReport(object):
    """Outcome of a reconstruction.

    Attributes:
        strategy(ReconstructionStrategy): The strategy that was used.
        initial_dipole(float): Dipole before the reconstruction in e*A.
        final_dipole(float): Dipole after the reconstruction in e*A.
        moved(list): Indices of the transferred ions.
        charge_shift(float): Charge moved between the terminal layers.
        charges_guessed(bool): Whether formal charges were assigned from the
            oxidation state table.
        advisories(list): Recoverable conditions, e.g.
            NonStoichiometricResult.
        message(str): Human readable summary.
    """
    def __init__(self, strategy):
        self.strategy = strategy
        self.initial_dipole = 0.0
        self.final_dipole = 0.0
        self.moved = []
        self.charge_shift = 0.0
        self.charges_guessed = False
        self.advisories = []
        self.message = ""

    @property
    def applied(self):
        return bool(self.moved) or self.charge_shift != 0.0

    def __repr__(self):
        return "ReconstructionReport({}, {:.4f} -> {:.4f})".format(
            self.strategy.value, self.initial_dipole, self.final_dipole
        )


def get_normal_heights(slab, axis=2):
    """Returns the height of every atom along the normal of the slab."""
    normal = get_plane_normal(slab.lattice.matrix, axis)
    return np.dot(slab.get_positions(), normal)


def _dipole(charges, heights):
    if len(heights) == 0:
        return 0.0
    center = (heights.min() + heights.max())/2
    return float(np.sum(charges*(heights - center)))


def get_dipole_moment(slab, axis=2):
    """Returns the dipole moment of the slab along its normal.

    Heights are measured from the middle of the occupied region, so the
    value does not depend on where the slab sits inside the cell.
    """
    return _dipole(slab.get_charges(), get_normal_heights(slab, axis))


def get_terminal_layers(heights, tolerance=LAYER_TOLERANCE):
    """Returns the indices of the atoms in the bottom and in the top layer.
    """
    bottom = np.where(heights <= heights.min() + tolerance)[0]
    top = np.where(heights >= heights.max() - tolerance)[0]
    return bottom, top


def assign_formal_charges(crystal, table=None):
    """Returns a copy of the crystal with formal charges taken from the
    common oxidation states. Unknown species are given no charge.
    """
    table = COMMON_OXIDATION_STATES if table is None else table
    unknown = sorted(set(s for s in crystal.get_chemical_symbols() if s not in table))
    if unknown:
        logger.warning("No common oxidation state known for %s.", ", ".join(unknown))
    return crystal.with_charges([table.get(atom.symbol, 0) for atom in crystal])


def _get_coordination(slab, axis, cutoff_policy):
    pbc = [True, True, True]
    pbc[axis] = False
    return build_bonds(slab, cutoff_policy, pbc=pbc).get_coordination_numbers()


def _transfer_ions(slab, axis, heights, charges, dipole, cutoff_policy, layer_tolerance):
    """Finds the set of terminal ions whose transfer to the opposite face
    gives the smallest residual dipole.

    Returns:
        tuple: (indices, direction, residual), where direction is -1 for
        ions moved from the top face down and +1 for the opposite.
    """
    stacking = slab.cell.stacking_vector
    normal = get_plane_normal(slab.lattice.matrix, axis)
    step = float(np.dot(stacking, normal))
    coordination = _get_coordination(slab, axis, cutoff_policy)
    bottom, top = get_terminal_layers(heights, layer_tolerance)

    # A single ion lowers |D| when it moves charge against the dipole.
    faces = [
        (-1, [i for i in top if charges[i]*dipole > 0]),
        (+1, [i for i in bottom if charges[i]*dipole < 0]),
    ]

    best = ([], -1, dipole)
    for direction, eligible in faces:
        eligible = sorted(eligible, key=lambda i: (coordination[i], i))
        for k in range(1, len(eligible) + 1):
            chosen = eligible[:k]
            trial = np.array(heights)
            trial[chosen] += direction*step
            residual = _dipole(charges, trial)
            if abs(residual) < abs(best[2]) - 1e-9 or (
                    abs(abs(residual) - abs(best[2])) <= 1e-9 and k < len(best[0])):
                best = (chosen, direction, residual)
    return best


def reconstruct(
        slab,
        axis=2,
        strategy=ReconstructionStrategy.TRANSFER_IONS,
        cutoff_policy=None,
        layer_tolerance=LAYER_TOLERANCE,
        dipole_tolerance=DIPOLE_TOLERANCE,
        guess_charges=False):
    """Cancels the dipole of a polar slab.

    With TRANSFER_IONS, terminal ions are removed from one face and inserted
    at the lattice-equivalent site one stacking vector away on the other
    face. Only ions whose transfer lowers the dipole are candidates. They
    are taken in order of lowest coordination and then smallest index, and
    the face and number of ions giving the smallest residual dipole is
    applied; ties prefer fewer ions and then the top face.

    With SCALE_LAYER_CHARGE, the charge D / (z_top - z_bottom) is moved from
    the top terminal layer to the bottom terminal layer, spread evenly over
    the atoms of each layer. This cancels the dipole exactly.

    Both strategies conserve the total charge of the slab.

    Args:
        slab(SlabCrystal): The slab.
        axis(int): The cell axis along which the slab is finite.
        strategy(ReconstructionStrategy): The correction to apply.
        cutoff_policy(CutoffPolicy): Used for the coordination numbers.
        layer_tolerance(float): Thickness of a terminal layer in angstrom.
        dipole_tolerance(float): Residual dipole accepted without advisory.
        guess_charges(bool): Assign charges from common oxidation states if
            the slab has none.

    Returns:
        tuple: (SlabCrystal, ReconstructionReport)
    """
    strategy = ReconstructionStrategy(strategy)
    report = ReconstructionReport(strategy)

    if len(slab) == 0:
        report.message = "Empty slab, nothing to reconstruct."
        return slab, report
    if not slab.has_charges():
        if not guess_charges:
            report.message = "No formal charges, dipole correction skipped."
            logger.info(report.message)
            return slab, report
        slab = assign_formal_charges(slab)
        report.charges_guessed = True

    charges = slab.get_charges()
    heights = get_normal_heights(slab, axis)
    dipole = _dipole(charges, heights)
    report.initial_dipole = dipole
    report.final_dipole = dipole

    if strategy is ReconstructionStrategy.NONE or abs(dipole) <= dipole_tolerance:
        report.message = "Dipole {:.4f} e*A, no correction applied.".format(dipole)
        logger.info(report.message)
        return slab, report

    if strategy is ReconstructionStrategy.TRANSFER_IONS:
        if slab.cell is None:
            raise ValueError("Transferring ions requires a slab with a SlabCell.")
        chosen, direction, residual = _transfer_ions(
            slab, axis, heights, charges, dipole, cutoff_policy, layer_tolerance
        )
        if chosen:
            positions = slab.get_positions()
            positions[chosen] += direction*slab.cell.stacking_vector
            normal = get_plane_normal(slab.lattice.matrix, axis)
            lowest = np.dot(positions, normal).min()
            if lowest < 0:
                positions -= lowest*normal
            scaled = slab.lattice.get_fractional_coords(positions)
            atoms = [atom.copy(scaled_position=pos) for atom, pos in zip(slab, scaled)]
            slab = SlabCrystal(slab.lattice, atoms, cell=slab.cell, offset=slab.offset)
        report.moved = [int(i) for i in chosen]
        report.final_dipole = get_dipole_moment(slab, axis) if chosen else dipole
        report.message = "Transferred {} ion(s) from the {} face.".format(
            len(chosen), "top" if direction < 0 else "bottom"
        )
    elif strategy is ReconstructionStrategy.SCALE_LAYER_CHARGE:
        bottom, top = get_terminal_layers(heights, layer_tolerance)
        overlap = set(bottom.tolist()) & set(top.tolist())
        span = heights[top].mean() - heights[bottom].mean()
        if overlap or span <= 0:
            report.message = "The slab has only one layer, charge cannot be moved."
        else:
            delta = dipole/span
            new_charges = np.array(charges)
            new_charges[top] -= delta/len(top)
            new_charges[bottom] += delta/len(bottom)
            slab = slab.with_charges(new_charges)
            report.charge_shift = float(delta)
            report.final_dipole = get_dipole_moment(slab, axis)
            report.message = "Moved a charge of {:.4f} e from the top to the bottom layer.".format(delta)

    logger.info(
        "Dipole %.4f e*A -> %.4f e*A (%s).",
        report.initial_dipole, report.final_dipole, strategy.value
    )
    if abs(report.final_dipole) > dipole_tolerance:
        advisory = NonStoichiometricResult(
            "The residual dipole {:.4f} e*A exceeds the tolerance {:.4f} e*A."
            .format(report.final_dipole, dipole_tolerance),
            value=report.final_dipole
        )
        logger.warning(str(advisory))
        report.advisories.append(advisory)
    return slab, report
