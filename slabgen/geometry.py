"""
Set of geometry related tools shared by the different stages of the slab
generation.
"""
import numpy as np


def get_wrapped_positions(scaled_pos, precision=1E-5):
    """Wrap the given relative positions so that each element in the array
    is within the half-closed interval [0, 1)

    By wrapping values near 1 to 0 we will have a consistent way of
    presenting systems.
    """
    scaled_pos = np.array(scaled_pos, dtype=np.float64)
    scaled_pos %= 1

    abs_zero = np.absolute(scaled_pos)
    abs_unity = np.absolute(abs_zero-1)

    near_zero = np.where(abs_zero < precision)
    near_unity = np.where(abs_unity < precision)

    scaled_pos[near_unity] = 0
    scaled_pos[near_zero] = 0

    return scaled_pos


def expand_pbc(pbc):
    """Used to expand a pbc definition into an array of three booleans.

    Args:
        pbc(boolean or a list of booleans): The periodicity of the cell. This
            can be any of the values that is also supprted by ASE, namely: a
            boolean or a list of three booleans.

    Returns:
        np.ndarray of booleans: The periodicity expanded as an explicit list of
        three boolean values.
    """
    if pbc is True:
        new_pbc = [True, True, True]
    elif pbc is False:
        new_pbc = [False, False, False]
    elif len(pbc) == 3:
        new_pbc = [bool(x) for x in pbc]
    else:
        raise ValueError(
            "Could not interpret the given periodic boundary conditions: '{}'"
            .format(pbc)
        )

    return np.array(new_pbc)


def get_neighbour_cells(cell, cutoff, pbc, padding=0.0):
    """Given a cell and a cutoff, returns the indices of the copies of the cell
    which have to be searched in order to reach atom within the cutoff
    distance.

    The number of neighboring images to search in each direction is equal to
    the ceiling of the cutoff distance divided by the length of the
    projection of the lattice vector onto its corresponding surface normal.
    a's surface normal vector is e.g.  b x c / (|b| |c|), so this projection is
    (a . (b x c)) / (|b| |c|).  The numerator is just the lattice volume, so
    this can be simplified to V / (|b| |c|). This is rewritten as V |a| / (|a|
    |b| |c|) for vectorization purposes.

    Args:
        cell(np.ndarray): Lattice vectors as rows.
        cutoff(float): The search radius.
        pbc(bool or sequence of bools): Only periodic directions are searched.
        padding(float): Additional number of cells added to each direction
            before taking the ceiling. A padding of 0.5 covers displacements
            that have already been reduced to the interval [-0.5, 0.5].

    Returns:
        np.ndarray: The integer cell offsets as rows.
    """
    pbc = expand_pbc(pbc)
    latt_len = np.linalg.norm(cell, axis=1)
    V = abs(np.linalg.det(cell))
    mic_copies = pbc * np.array(np.ceil(cutoff * np.prod(latt_len) /
                            (V * latt_len) + padding), dtype=int)
    n0 = range(-mic_copies[0], mic_copies[0] + 1)
    n1 = range(-mic_copies[1], mic_copies[1] + 1)
    n2 = range(-mic_copies[2], mic_copies[2] + 1)

    factors = cartesian((n0, n1, n2))

    return factors


def get_plane_normal(cell, axis):
    """Returns the unit normal of the plane spanned by the two cell vectors
    other than the given axis. The normal points to the same side as the
    cell vector of the given axis.
    """
    cell = np.asarray(cell, dtype=np.float64)
    i, j = [x for x in range(3) if x != axis]
    normal = np.cross(cell[i], cell[j])
    normal /= np.linalg.norm(normal)
    if np.dot(normal, cell[axis]) < 0:
        normal = -normal
    return normal


def cartesian(arrays, out=None):
    """
    Generate a cartesian product of input arrays.

    Args:
        arrays(sequence of arrays): The arrays from which the product is
            created.
        out(ndarray): Array to place the cartesian product in.

    Returns:
        ndarray: 2-D array of shape (M, len(arrays)) containing cartesian
        products formed of input arrays.

    Example:
    --------
    >>> cartesian(([1, 2], [4, 5]))
    array([[1, 4],
           [1, 5],
           [2, 4],
           [2, 5]])
    """
    arrays = [np.asarray(x) for x in arrays]
    dtype = arrays[0].dtype

    n = np.prod([x.size for x in arrays])
    if out is None:
        out = np.zeros([n, len(arrays)], dtype=dtype)

    m = int(n / arrays[0].size)
    out[:, 0] = np.repeat(arrays[0], m)
    if arrays[1:]:
        cartesian(arrays[1:], out=out[0:m, 1:])
        for j in range(1, arrays[0].size):
            out[j*m:(j+1)*m, 1:] = out[0:m, 1:]
    return out


class Intervals(object):
    """Handles list of intervals.

    This class allows sorting and adding up of intervals and taking into
    account if they overlap. When a period is given, the intervals live on a
    circle of that circumference: intervals crossing the boundary are split
    in two and the gap between the last and the first interval wraps around.
    """
    def __init__(self, intervals=None, period=None):
        """Args:
            intervals: List of intervals that are added.
            period(float): The period of the axis, or None for an open axis.
        """
        self._period = period
        self._intervals = []
        self._merged_intervals = []
        self._merged_intervals_need_update = True
        if intervals is not None:
            self.add_intervals(intervals)

    @property
    def period(self):
        return self._period

    def _add_up(self, intervals):
        """Add up the length of intervals.

        Argument:
            intervals: List of intervals that are added up.

        Returns:
            Result of addition.
        """
        if len(intervals) < 1:
            return None
        result = 0.
        for interval in intervals:
            result += abs(interval[1] - interval[0])
        return result

    def add_interval(self, a, b):
        """Add one interval.

        Args:
            a, b: Start and end of interval. The order does not matter.
        """
        start, end = min(a, b), max(a, b)
        self._merged_intervals_need_update = True
        if self._period is None:
            self._intervals.append((start, end))
            return

        period = self._period
        if end - start >= period:
            self._intervals.append((0.0, period))
            return
        length = end - start
        start = start % period
        end = start + length
        if end <= period:
            self._intervals.append((start, end))
        else:
            self._intervals.append((start, period))
            self._intervals.append((0.0, end - period))

    def add_intervals(self, intervals):
        """Add list of intervals.

        Args:
            intervals: List of intervals that are added.
        """
        for interval in intervals:
            if len(interval) == 2:
                self.add_interval(interval[0], interval[1])
            else:
                raise ValueError("Intervals must be tuples of length 2!")

    def get_intervals(self):
        """Returns the intervals.
        """
        return self._intervals

    def get_intervals_sorted_by_start(self):
        """Returns list with intervals ordered by their start.
        """
        return sorted(self._intervals, key=lambda x: x[0])

    def get_merged_intervals(self):
        """Returns list of merged intervals so that they do not overlap anymore.
        """
        if self._merged_intervals_need_update:
            if len(self._intervals) < 1:
                self._merged_intervals = []
                self._merged_intervals_need_update = False
                return self._merged_intervals
            sorted_by_start = self.get_intervals_sorted_by_start()
            merged = [sorted_by_start[0]]
            for current in sorted_by_start[1:]:
                previous = merged[-1]
                if previous[1] < current[0]:
                    merged.append(current)
                elif previous[1] < current[1]:
                    merged[-1] = (previous[0], current[1])
            self._merged_intervals = merged
            self._merged_intervals_need_update = False
        return self._merged_intervals

    def get_gaps(self):
        """Returns the uncovered parts of the axis as (start, end) pairs.

        On a periodic axis the gap between the last and the first interval
        is included and its end may exceed the period. An empty periodic
        axis is one gap covering the whole period.
        """
        merged = self.get_merged_intervals()
        gaps = []
        for i in range(len(merged) - 1):
            gaps.append((merged[i][1], merged[i + 1][0]))
        if self._period is not None:
            if len(merged) == 0:
                return [(0.0, self._period)]
            wrap_start = merged[-1][1]
            wrap_end = merged[0][0] + self._period
            if wrap_end > wrap_start:
                gaps.append((wrap_start, wrap_end))
        return [gap for gap in gaps if gap[1] > gap[0]]

    def covers(self, value, strict=True):
        """Returns the merged interval that contains the given value, or None.

        Args:
            value(float): The value to check.
            strict(bool): Whether the end points are considered to be
                outside of the intervals.
        """
        if self._period is not None:
            value = value % self._period
        for start, end in self.get_merged_intervals():
            if strict and start < value < end:
                return (start, end)
            if not strict and start <= value <= end:
                return (start, end)
        if self._period is not None and strict:
            # An interval touching the period boundary continues on the
            # other side.
            merged = self.get_merged_intervals()
            if merged and value == 0.0 and merged[0][0] == 0.0 and merged[-1][1] == self._period:
                return (merged[-1][0], merged[0][1] + self._period)
        return None

    def add_up_merged_intervals(self):
        """Returns the added up lengths of merged intervals in order to account for overlap.
        """
        return self._add_up(self.get_merged_intervals())
