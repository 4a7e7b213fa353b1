"""
Search for cut offsets along a plane normal that do not break any bond.

Positions along the normal are measured with the normal coordinate
s = x . hkl of a scaled position x. One unit of s is one interplanar
spacing d_hkl and the coordinate is periodic with period one, so cut offsets
are fractions of the transverse step of the surface cell.
"""
import logging
from collections import namedtuple

import numpy as np

from slabgen.core.basis import MillerIndices
from slabgen.core.system import Role
from slabgen.data.constants import ATOM_CLEARANCE, BOND_CLEARANCE, MIN_GAP, SHELL_WIDTH
from slabgen.exceptions import UnsafeOffset
from slabgen.geometry import Intervals

logger = logging.getLogger(__name__)

CutOffset = namedtuple("CutOffset", ["value", "gap", "clearance", "score"])
CutOffset.__doc__ = """A safe cut offset.

value: Position of the cut as a fraction of the interplanar spacing, in [0, 1).
gap: Width of the free region around the cut, as a fraction.
clearance: Distance from the cut to the closest forbidden region in angstrom.
score: Fraction of preferred-role atoms just above the cut, zero when no
    chemistry bias is applied.
"""


def get_normal_coordinates(crystal, miller):
    """Returns the normal coordinate s = x . hkl of every atom."""
    miller = MillerIndices(miller)
    return np.dot(crystal.get_scaled_positions(), miller.as_array().astype(np.float64))


def get_forbidden_intervals(
        crystal,
        bond_graph,
        miller,
        atom_clearance=ATOM_CLEARANCE,
        bond_clearance=BOND_CLEARANCE):
    """Returns the parts of the normal axis that a cut must avoid.

    Each atom forbids a small interval around its normal coordinate and each
    bond forbids the span between the normal coordinates of its two ends,
    widened by a clearance. Bonds spanning at least one full period forbid
    the whole axis.

    Args:
        crystal(Crystal): The bulk crystal.
        bond_graph(BondGraph): The bonds of the crystal.
        miller(MillerIndices): The plane.
        atom_clearance(float): Half width around atoms in angstrom.
        bond_clearance(float): Widening of bond spans in angstrom.

    Returns:
        Intervals: The forbidden intervals on a periodic axis of period one.
    """
    miller = MillerIndices(miller)
    hkl = miller.as_array()
    d = crystal.lattice.d_hkl(hkl)
    s = get_normal_coordinates(crystal, miller)

    intervals = Intervals(period=1.0)
    atom_width = atom_clearance/d
    for value in s:
        intervals.add_interval(value - atom_width, value + atom_width)

    bond_width = bond_clearance/d
    for bond in bond_graph.bonds:
        start = s[bond.i]
        end = s[bond.j] + float(np.dot(bond.image, hkl))
        intervals.add_interval(min(start, end) - bond_width, max(start, end) + bond_width)
    return intervals


def validate_offset(offset, intervals):
    """Checks that the given offset is not inside a forbidden interval.

    Raises:
        UnsafeOffset: With the offending interval as value.
    """
    hit = intervals.covers(offset % 1.0, strict=True)
    if hit is not None:
        raise UnsafeOffset(
            "The cut offset {:.4f} lies inside the forbidden interval "
            "[{:.4f}, {:.4f}] and breaks bonds.".format(offset, hit[0], hit[1]),
            value=hit
        )


def get_exposure_score(normal_coordinates, roles, offset, preferred_role, shell):
    """Returns the fraction of atoms with the preferred role among the atoms
    within a shell just above the offset.

    Args:
        normal_coordinates(np.ndarray): Normal coordinate of each atom.
        roles(dict): Mapping of atom index to Role.
        offset(float): The cut offset.
        preferred_role(Role): The role that should be exposed.
        shell(float): Thickness of the shell as a fraction of the period.
            Capped at half a period.
    """
    shell = min(shell, 0.5)
    above = (normal_coordinates - offset) % 1.0
    in_shell = np.where(above <= shell)[0]
    if len(in_shell) == 0:
        return 0.0
    n_preferred = sum(1 for i in in_shell if roles.get(int(i), Role.UNKNOWN) == preferred_role)
    return n_preferred/len(in_shell)


class SafeOffsets(object):
    """Ordered, finite sequence of safe cut offsets.

    The candidates are computed on first use. Every iteration starts again
    from the most preferred offset.
    """
    def __init__(self, crystal, bond_graph, miller, candidate_count=None, roles=None,
                 preferred_role=None, atom_clearance=ATOM_CLEARANCE,
                 bond_clearance=BOND_CLEARANCE, min_gap=MIN_GAP, shell_width=SHELL_WIDTH):
        self._crystal = crystal
        self._bond_graph = bond_graph
        self._miller = MillerIndices(miller)
        self._candidate_count = candidate_count
        self._roles = roles
        self._preferred_role = None if preferred_role is None else Role(preferred_role)
        self._atom_clearance = atom_clearance
        self._bond_clearance = bond_clearance
        self._min_gap = min_gap
        self._shell_width = shell_width
        self._forbidden = None
        self._candidates = None

    @property
    def miller(self):
        return self._miller

    @property
    def forbidden(self):
        """The forbidden intervals of the normal axis."""
        if self._forbidden is None:
            self._forbidden = get_forbidden_intervals(
                self._crystal,
                self._bond_graph,
                self._miller,
                self._atom_clearance,
                self._bond_clearance,
            )
        return self._forbidden

    def _get_candidates(self):
        if self._candidates is not None:
            return self._candidates

        d = self._crystal.lattice.d_hkl(self._miller.as_array())
        min_gap = self._min_gap/d
        candidates = []
        for start, end in self.forbidden.get_gaps():
            width = end - start
            if width < min_gap:
                continue
            value = ((start + end)/2) % 1.0
            if value > 1.0 - 1e-12:
                value = 0.0
            candidates.append(CutOffset(value, width, width*d/2, 0.0))
        candidates.sort(key=lambda x: (-round(x.gap, 9), x.value))

        if self._roles and self._preferred_role is not None:
            s = get_normal_coordinates(self._crystal, self._miller)
            shell = self._shell_width/d
            candidates = [
                x._replace(score=get_exposure_score(s, self._roles, x.value, self._preferred_role, shell))
                for x in candidates
            ]
            candidates.sort(key=lambda x: -x.score)
            if len(set(x.score for x in candidates)) == 1 and len(candidates) > 1:
                logger.debug(
                    "All offsets of %s expose the same fraction of %s atoms; "
                    "the role bias has no effect.",
                    self._miller, self._preferred_role.name
                )

        if self._candidate_count is not None:
            candidates = candidates[:self._candidate_count]
        logger.debug(
            "Safe offsets for %s: %s",
            self._miller,
            ", ".join("{:.4f}".format(x.value) for x in candidates) or "none"
        )
        self._candidates = tuple(candidates)
        return self._candidates

    def __iter__(self):
        for candidate in self._get_candidates():
            yield candidate

    def __len__(self):
        return len(self._get_candidates())

    def __getitem__(self, i):
        return self._get_candidates()[i]

    def __bool__(self):
        return len(self) > 0

    def __repr__(self):
        return "SafeOffsets({}, n={})".format(self._miller, len(self))


def find_safe_offsets(
        crystal,
        bond_graph,
        normal_axis,
        candidate_count=None,
        roles=None,
        preferred_role=None,
        atom_clearance=ATOM_CLEARANCE,
        bond_clearance=BOND_CLEARANCE,
        min_gap=MIN_GAP,
        shell_width=SHELL_WIDTH):
    """Finds the cut offsets along the normal of a lattice plane that do not
    cross any bond.

    The candidates are the midpoints of the gaps between the forbidden
    intervals, the widest gap first and equally wide gaps in order of
    position. When roles and a preferred role are given, the candidates are
    re-ranked with a stable sort by the fraction of preferred-role atoms
    directly above the cut; the set of candidates does not change.

    Args:
        crystal(Crystal): The bulk crystal.
        bond_graph(BondGraph): The bonds of the crystal.
        normal_axis(MillerIndices or sequence of ints): The plane whose
            normal is crawled.
        candidate_count(int): Maximum number of candidates. All by default.
        roles(dict): Optional mapping of atom index to Role.
        preferred_role(Role): The role that should be exposed at the cut.

    Returns:
        SafeOffsets: The candidates, possibly empty.
    """
    return SafeOffsets(
        crystal,
        bond_graph,
        normal_axis,
        candidate_count=candidate_count,
        roles=roles,
        preferred_role=preferred_role,
        atom_clearance=atom_clearance,
        bond_clearance=bond_clearance,
        min_gap=min_gap,
        shell_width=shell_width,
    )
