import logging
import math
import threading
import time
from dataclasses import dataclass

import numpy as np
from numba import njit, prange

from world.noise_tables import PERM, grad3

# Fast 3D Simplex Noise compatible with Numba
# Based on Stefan Gustavson's public domain reference construction

logger = logging.getLogger(__name__)

# Skew / unskew factors for 3D
F3 = 1.0 / 3.0
G3 = 1.0 / 6.0

# Squared radius of each corner's falloff kernel
CORNER_RADIUS_SQ = 0.6

# Largest raw corner sum; dividing by it maps the result to roughly [-1, 1]
NOISE_NORMALIZER = 0.030555466710745972

# Intermediate corner steps (i1, j1, k1), (i2, j2, k2) keyed by
# 4 * (x0 >= y0) + 2 * (y0 >= z0) + (x0 >= z0).
# Keys 1 and 6 cannot occur for ordered reals; they hold the same rows
# as keys 0 and 7, matching the nested comparison tree on ties.
SIMPLEX_STEPS = np.array([
    [[0, 0, 1], [0, 1, 1]],  # z > y > x
    [[0, 0, 1], [0, 1, 1]],
    [[0, 1, 0], [0, 1, 1]],  # y >= z > x
    [[0, 1, 0], [1, 1, 0]],  # y > x >= z
    [[0, 0, 1], [1, 0, 1]],  # z > x >= y
    [[1, 0, 0], [1, 0, 1]],  # x >= z > y
    [[1, 0, 0], [1, 1, 0]],
    [[1, 0, 0], [1, 1, 0]],  # x >= y >= z
], dtype=np.int64)
SIMPLEX_STEPS.flags.writeable = False


@njit
def skew_to_cell(x, y, z):
    """Find the base lattice cell of a point and the point's offset from the cell origin"""
    s = (x + y + z) * F3
    i = int(math.floor(x + s))
    j = int(math.floor(y + s))
    k = int(math.floor(z + s))

    # Unskew the cell origin back to (x, y, z) space
    t = (i + j + k) * G3
    x0 = x - (i - t)
    y0 = y - (j - t)
    z0 = z - (k - t)
    return i, j, k, x0, y0, z0


@njit
def simplex_steps(x0, y0, z0):
    """Lattice steps to the second and third corners of the containing tetrahedron"""
    key = 0
    if x0 >= y0:
        key += 4
    if y0 >= z0:
        key += 2
    if x0 >= z0:
        key += 1
    step = SIMPLEX_STEPS[key]
    return step[0, 0], step[0, 1], step[0, 2], step[1, 0], step[1, 1], step[1, 2]


@njit
def lattice_hash(i, j, k):
    """Gradient hash of a lattice point; i, j, k must lie in 0..256"""
    return PERM[i + PERM[j + PERM[k]]]


@njit
def corner_contribution(x, y, z, gi):
    t = CORNER_RADIUS_SQ - x*x - y*y - z*z
    if t < 0.0:
        return 0.0
    t *= t
    return t * t * grad3(gi, x, y, z)


@njit
def snoise3(x, y, z, seed):
    """
    3D Simplex Noise in roughly [-1, 1]; the seed shifts the x axis only.
    Inputs must be finite: NaN or infinite coordinates give an undefined result.
    """
    x = x + seed

    i, j, k, x0, y0, z0 = skew_to_cell(x, y, z)
    i1, j1, k1, i2, j2, k2 = simplex_steps(x0, y0, z0)

    x1 = x0 - i1 + G3
    y1 = y0 - j1 + G3
    z1 = z0 - k1 + G3

    x2 = x0 - i2 + 2.0*G3
    y2 = y0 - j2 + 2.0*G3
    z2 = z0 - k2 + 2.0*G3

    x3 = x0 - 1.0 + 3.0*G3
    y3 = y0 - 1.0 + 3.0*G3
    z3 = z0 - 1.0 + 3.0*G3

    # Wrap cell indices into the table for either sign
    ii = i % 256
    jj = j % 256
    kk = k % 256

    n0 = corner_contribution(x0, y0, z0, lattice_hash(ii, jj, kk))
    n1 = corner_contribution(x1, y1, z1, lattice_hash(ii + i1, jj + j1, kk + k1))
    n2 = corner_contribution(x2, y2, z2, lattice_hash(ii + i2, jj + j2, kk + k2))
    n3 = corner_contribution(x3, y3, z3, lattice_hash(ii + 1, jj + 1, kk + 1))

    return (n0 + n1 + n2 + n3) / NOISE_NORMALIZER


@njit(parallel=True)
def snoise3_many(xs, ys, zs, seed):
    """Sample equal-length 1D coordinate arrays in parallel"""
    n = xs.shape[0]
    out = np.empty(n, dtype=np.float64)
    for idx in prange(n):
        out[idx] = snoise3(xs[idx], ys[idx], zs[idx], seed)
    return out


@dataclass(frozen=True)
class NoiseContext:
    """Immutable sampling configuration; currently just the seed offset"""
    seed: float = 0.0

    def sample(self, x, y, z):
        return snoise3(float(x), float(y), float(z), float(self.seed))

    def sample_many(self, xs, ys, zs):
        """Sample broadcastable coordinate arrays, returning the broadcast shape"""
        xs, ys, zs = np.broadcast_arrays(
            np.asarray(xs, dtype=np.float64),
            np.asarray(ys, dtype=np.float64),
            np.asarray(zs, dtype=np.float64),
        )
        shape = xs.shape
        out = snoise3_many(
            np.ascontiguousarray(xs).ravel(),
            np.ascontiguousarray(ys).ravel(),
            np.ascontiguousarray(zs).ravel(),
            float(self.seed),
        )
        return out.reshape(shape)


# Process-wide default context. Readers take the reference once per call;
# writers swap it under the lock.
_context = NoiseContext()
_context_lock = threading.Lock()


def get_context():
    """Return the current process-wide noise context"""
    return _context


def set_seed(seed):
    """Replace the process-wide seed. Call at startup or between frames."""
    global _context
    seed = float(seed)
    with _context_lock:
        previous = _context.seed
        _context = NoiseContext(seed)
    logger.info("Noise seed changed: %s -> %s", previous, seed)
    return _context


def snoise(x, y, z):
    """Sample noise with the process-wide seed"""
    return _context.sample(x, y, z)


def warmup():
    """Compile the noise kernels up front so the first real sample doesn't stall"""
    start = time.perf_counter()
    snoise3(0.0, 0.0, 0.0, 0.0)
    probe = np.zeros(4, dtype=np.float64)
    snoise3_many(probe, probe, probe, 0.0)
    logger.info("Noise JIT ready in %.2fs", time.perf_counter() - start)
