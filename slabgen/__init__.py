from slabgen.core.lattice import Lattice
from slabgen.core.system import Atom, Crystal, SlabCrystal, Role
from slabgen.core.basis import MillerIndices, SurfaceBasis, find_surface_basis
from slabgen.core.connectivity import CutoffPolicy, BondGraph, build_bonds
from slabgen.analysis.voidcrawler import CutOffset, find_safe_offsets
from slabgen.synthesis.builder import SlabCell, build_slab_cell
from slabgen.synthesis.population import populate
from slabgen.synthesis.ionic import ReconstructionStrategy, reconstruct
from slabgen.tools.surfacegenerator import SurfaceGenerator, SurfaceResult
from slabgen import geometry
