"""
Statistical summaries of sampled output.

Used by the command-line driver and by the statistical tests.
"""

from typing import Dict, Iterable, Tuple

import numpy as np
from scipy import stats

from fastsim_mc.physics.parametrization import SpeciesParameters


def species_composition(pdgs: Iterable[int]) -> Dict[int, int]:
    """Count secondaries per species code."""
    codes, counts = np.unique(np.asarray(list(pdgs), dtype=np.int64), return_counts=True)
    return {int(c): int(n) for c, n in zip(codes, counts)}


def expected_species_fractions(params: SpeciesParameters) -> Dict[int, float]:
    """
    Per-species probabilities implied by a secondary CDF.

    The rounding gap between the last cumulative value and 1 belongs to the
    last entry, matching the sampler.
    """
    fractions: Dict[int, float] = {}
    previous = 0.0
    for i, (cumulative, pdg) in enumerate(params.secondary_cdf):
        upper = 1.0 if i == len(params.secondary_cdf) - 1 else cumulative
        fractions[pdg] = fractions.get(pdg, 0.0) + upper - previous
        previous = cumulative
    return fractions


def species_chisquare(pdgs: Iterable[int], params: SpeciesParameters) -> Tuple[float, float]:
    """
    Pearson chi-square test of sampled species against the fitted CDF.

    Returns:
        (statistic, p_value)

    Raises:
        ValueError: if the sample contains species the CDF cannot produce,
            or is empty
    """
    observed = species_composition(pdgs)
    expected = expected_species_fractions(params)
    unexpected = set(observed) - set(expected)
    if unexpected:
        raise ValueError(f"Species {sorted(unexpected)} not in the CDF of {params.pdg}")
    total = sum(observed.values())
    if total == 0:
        raise ValueError("Empty sample")
    codes = sorted(expected)
    f_obs = np.array([observed.get(c, 0) for c in codes], dtype=np.float64)
    f_exp = np.array([expected[c] * total for c in codes], dtype=np.float64)
    # Normalise away float rounding so both sums agree exactly
    f_exp *= f_obs.sum() / f_exp.sum()
    result = stats.chisquare(f_obs, f_exp)
    return float(result.statistic), float(result.pvalue)


def angle_summary(angles: Iterable[float]) -> dict:
    """Mean, RMS, median, 95% quantile and excess kurtosis of |angles|."""
    values = np.abs(np.asarray(list(angles), dtype=np.float64))
    if values.size == 0:
        raise ValueError("Empty sample")
    return {
        'n': int(values.size),
        'mean': float(np.mean(values)),
        'rms': float(np.sqrt(np.mean(values**2))),
        'median': float(np.median(values)),
        'q95': float(np.quantile(values, 0.95)),
        'kurtosis': float(stats.kurtosis(values)) if values.size > 3 else 0.0,
    }
