# Lattices with an absolute determinant below this are considered degenerate.
DET_THRESHOLD = 1e-6  # unit: angstrom^3

# Two atoms are bonded if their distance is below the sum of their covalent
# radii multiplied by this factor.
BOND_TOLERANCE = 1.15

# Half width of the forbidden interval placed around each atom and around the
# normal span of each bond when searching for safe cut offsets.
ATOM_CLEARANCE = 0.1  # unit: angstrom
BOND_CLEARANCE = 0.1  # unit: angstrom

# Gaps between forbidden intervals narrower than this are not usable cuts.
MIN_GAP = 0.01  # unit: angstrom

# Thickness of the shell above a cut that is inspected when ranking offsets by
# the exposed chemistry.
SHELL_WIDTH = 2.0  # unit: angstrom

# Tolerance for the half-open windows used when populating a slab. Given in
# fractional coordinates of the slab cell.
PACK_THRESHOLD = 1e-6

# Atoms closer than this after population are considered duplicates.
POSITION_THRESHOLD = 0.01  # unit: angstrom

# Atoms within this distance of the outermost atom along the normal belong to
# the terminal layer of a slab face.
LAYER_TOLERANCE = 0.25  # unit: angstrom

# Dipoles below this are considered zero after reconstruction.
DIPOLE_TOLERANCE = 0.5  # unit: e*angstrom

# A warning is issued for surface cells whose longest in-plane vector is
# more than this many times the shortest one.
MAX_ASPECT_RATIO = 5.0

# Maximum distance between a fragment atom and a crystal atom for the role of
# the fragment to be assigned to the crystal atom.
TAG_TOLERANCE = 0.5  # unit: angstrom

# Maximum run time of the external tagging tool.
TAGGER_TIMEOUT = 300  # unit: seconds

DEFAULT_THICKNESS = 15.0  # unit: angstrom
DEFAULT_VACUUM = 15.0  # unit: angstrom

# Formal charges used when a slab without charges is reconstructed with
# charge guessing enabled.
COMMON_OXIDATION_STATES = {
    "H": 1, "Li": 1, "Na": 1, "K": 1, "Rb": 1, "Cs": 1, "Ag": 1,
    "Be": 2, "Mg": 2, "Ca": 2, "Sr": 2, "Ba": 2, "Zn": 2, "Fe": 2,
    "Ni": 2, "Cu": 2, "Co": 2, "Mn": 2, "Cd": 2,
    "Al": 3, "Ga": 3, "Sc": 3, "Y": 3, "La": 3,
    "Ti": 4, "Zr": 4, "Si": 4, "Sn": 4, "Ce": 4,
    "F": -1, "Cl": -1, "Br": -1, "I": -1,
    "O": -2, "S": -2, "Se": -2,
    "N": -3, "P": -3,
}
