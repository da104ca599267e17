"""Allele counting and the allele frequency consistency test."""

import numpy as np
from scipy.stats import binomtest  # type: ignore

from prscore.prs.impute import DosageVector


def tally_alleles(dosages: DosageVector) -> tuple[float, float, float]:
    """
    Tally the alleles in a vector of raw dosages.

    Returns
    -------
    tuple[float, float, float]
        The number of samples with a genotype, the number of samples missing a genotype,
        and the total count of the effect allele in the genotyped samples.
    """
    n_missing = float(np.count_nonzero(dosages.missing))
    n_genotyped = float(len(dosages)) - n_missing
    n_effect_allele = float(np.sum(dosages.values[~dosages.missing]))
    return n_genotyped, n_missing, n_effect_allele


def binom_test(x: int, n: int, p: float) -> float:
    """
    Two-sided exact binomial test.

    The p-value is the total probability, under Binomial(n, p), of every outcome no more
    likely than observing `x` successes (the same definition as R's binom.test).

    Parameters
    ----------
    x : int
        Number of successes.
    n : int
        Number of trials.
    p : float
        Success probability under the null hypothesis.

    Returns
    -------
    float
        The p-value, in [0, 1].
    """
    if n < 0:
        raise ValueError(f"n must be non-negative, got {n}")
    if not 0 <= x <= n:
        raise ValueError(f"x must be in [0, {n}], got {x}")
    if not 0.0 <= p <= 1.0:
        raise ValueError(f"p must be in [0, 1], got {p}")

    # Degenerate nulls: only one outcome is possible
    if n == 0:
        return 1.0
    if p == 0.0:
        return 1.0 if x == 0 else 0.0
    if p == 1.0:
        return 1.0 if x == n else 0.0

    return float(binomtest(int(x), int(n), p, alternative="two-sided").pvalue)
