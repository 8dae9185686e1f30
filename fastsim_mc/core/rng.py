"""
Random source helpers.

A random source is any zero-argument callable returning a uniform float in
[0, 1). The caller owns it; the samplers advance it once per draw and never
buffer or reorder draws.
"""

import math
from typing import Callable, Optional

import numpy as np

UniformSource = Callable[[], float]

# Smallest positive double, substituted for an exact 0 before taking a log
TINY = np.finfo(np.float64).tiny


def make_uniform_source(seed: Optional[int] = None) -> UniformSource:
    """
    Create a seeded uniform source backed by numpy's PCG64 generator.

    Each thread should own its own source.
    """
    return np.random.default_rng(seed).random


def unit_normal(rng: UniformSource) -> float:
    """Standard normal variate from two uniforms (Box-Muller, cosine branch)."""
    u1 = max(rng(), TINY)
    u2 = rng()
    return math.sqrt(-2.0 * math.log(u1)) * math.cos(2.0 * math.pi * u2)
