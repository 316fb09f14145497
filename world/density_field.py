"""
Voxel density queries built on 3D simplex noise.
A chunk is a cube of CHUNK_SIZE^3 voxels; each voxel's density is the
noise value at its world position scaled by the field frequency.
Densities above the threshold count as solid (cave style volume).
"""

import logging
import math

import numpy as np
from numba import njit

from world.fast_noise import NoiseContext, snoise3

logger = logging.getLogger(__name__)

# Chunk constants
CHUNK_SIZE = 16

# Density generation settings
DENSITY_FREQUENCY = 0.09
SOLID_THRESHOLD = 0.0

# Voxel states
EMPTY = 0
SOLID = 1


@njit
def fill_density_chunk(chunk_x, chunk_y, chunk_z, size, frequency, seed, out):
    """
    Fill out[size, size, size] with noise densities for one chunk (JIT compiled)
    """
    for lx in range(size):
        wx = (chunk_x * size + lx) * frequency
        for ly in range(size):
            wy = (chunk_y * size + ly) * frequency
            for lz in range(size):
                wz = (chunk_z * size + lz) * frequency
                out[lx, ly, lz] = snoise3(wx, wy, wz, seed)


class DensityField:
    """
    Samples a noise density volume in world space
    """

    def __init__(self, context=None, frequency=DENSITY_FREQUENCY,
                 chunk_size=CHUNK_SIZE, threshold=SOLID_THRESHOLD):
        self.context = context if context is not None else NoiseContext()
        self.frequency = float(frequency)
        self.chunk_size = int(chunk_size)
        self.threshold = float(threshold)

    @classmethod
    def from_config(cls, config):
        return cls(config.context(), config.frequency, config.chunk_size, config.threshold)

    def chunk_of(self, position):
        """Chunk coordinates containing a world position"""
        size = self.chunk_size
        return (int(math.floor(position[0] / size)),
                int(math.floor(position[1] / size)),
                int(math.floor(position[2] / size)))

    def generate_chunk(self, chunk_x, chunk_y, chunk_z):
        """Density values for every voxel in a chunk as a float32 array"""
        size = self.chunk_size
        out = np.empty((size, size, size), dtype=np.float64)
        fill_density_chunk(chunk_x, chunk_y, chunk_z, size,
                           self.frequency, float(self.context.seed), out)
        logger.debug("Generated density chunk (%d, %d, %d)", chunk_x, chunk_y, chunk_z)
        return out.astype(np.float32)

    def solid_mask(self, density):
        """1 where density is above the threshold, 0 elsewhere"""
        return np.where(density > self.threshold, SOLID, EMPTY).astype(np.uint8)

    def density_at(self, position):
        """Density at a single world position (x, y, z)"""
        f = self.frequency
        return self.context.sample(position[0] * f, position[1] * f, position[2] * f)

    def is_solid(self, position):
        return self.density_at(position) > self.threshold

    def sample_at_camera(self, camera):
        """Density at the camera's current position"""
        return self.density_at(camera.get_position())
