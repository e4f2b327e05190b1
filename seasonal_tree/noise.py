"""
Seeded 1-D coherent noise.

Hash-based lattice values blended with a smoothstep, summed over a few
octaves. Vectorised with numpy so a whole ground silhouette, or every falling
leaf's collision test, is one call.
"""

from __future__ import annotations

import numpy as np

# the hash only ever looks at the low 31 bits
HASH_MASK = 0x7FFFFFFF


def _smoothstep(t):
    return t * t * (3.0 - 2.0 * t)


def _lattice(xi: np.ndarray, seed: int, octave: int) -> np.ndarray:
    """Pseudo-random value in [0, 1] for each integer lattice coordinate."""
    # operands reduced to 31 bits so the products stay inside int64
    h = (xi & HASH_MASK) * 374761393 + ((seed + octave) & HASH_MASK) * 1274126177
    h = h & HASH_MASK
    h = ((h ^ (h >> 13)) * 1274126177) & HASH_MASK
    h = h ^ (h >> 16)
    return (h & 0xFFFFFF).astype(np.float64) / 0xFFFFFF


def fbm_noise_1d(x, seed: int = 0, octaves: int = 4, persistence: float = 0.5) -> np.ndarray:
    """Multi-octave smooth value noise, normalised to [0, 1]."""
    x = np.asarray(x, dtype=np.float64)
    seed = int(seed) & HASH_MASK
    total = np.zeros_like(x)
    amplitude = 1.0
    frequency = 1.0
    max_value = 0.0

    for octave in range(octaves):
        fx = x * frequency
        x0 = np.floor(fx)
        t = _smoothstep(fx - x0)
        xi = x0.astype(np.int64)
        a = _lattice(xi, seed, octave)
        b = _lattice(xi + 1, seed, octave)

        total += (a + (b - a) * t) * amplitude
        max_value += amplitude
        amplitude *= persistence
        frequency *= 2.0

    return total / max_value if max_value > 0 else total
