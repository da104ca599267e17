"""
    Dosage vectors and the two imputation policies applied to them.

    Locus imputation replaces every dosage at a locus (the locus failed QC or was never
    genotyped), while sample imputation only fills the samples missing a genotype at an
    otherwise acceptable locus.

    Imputation methods:
    ps        Impute with the dosage expected from the polygenic score effect allele frequency.
    homref    Impute to the homozygous reference genotype.
    fail      Do not impute; affected samples end with a missing (nan) score.
    int_ps    Impute with the effect allele frequency of the genotyped cohort samples. At least
              `min_internal_genotyped` genotyped samples are required, else falls back to ps.
    int_fail  As int_ps, but falls back to fail.
"""

import math
from enum import Enum

import numpy as np
from numpy.typing import NDArray

from prscore.io.score_file import ScoreEntry

MISSING_DOSAGE = math.nan


class StrEnum(str, Enum):
    def __str__(self):
        return self.value


class LocusImputeMethod(StrEnum):
    PS = "ps"
    HOMREF = "homref"
    FAIL = "fail"


class SampleImputeMethod(StrEnum):
    PS = "ps"
    HOMREF = "homref"
    FAIL = "fail"
    INT_PS = "int_ps"
    INT_FAIL = "int_fail"


class DosageVector:
    """
    Per-sample effect allele dosages at one locus.

    Dosages are held as a float array of values plus a boolean mask of samples with no
    usable genotype; the value stored under a masked entry carries no meaning.

    Parameters
    ----------
    values : NDArray[np.float64]
        Dosage of the effect allele per sample, in genotype store sample order.
    missing : NDArray[np.bool_], optional
        True for samples without a dosage. Defaults to no missing samples.
    """

    def __init__(self, values: NDArray[np.float64], missing: NDArray[np.bool_] | None = None):
        self.values = np.asarray(values, dtype=np.float64)
        if missing is None:
            missing = np.zeros(self.values.shape, dtype=bool)
        self.missing = np.asarray(missing, dtype=bool)

        if self.values.ndim != 1:
            raise ValueError(f"Dosages must be one dimensional, got shape {self.values.shape}")
        if self.missing.shape != self.values.shape:
            raise ValueError(
                f"Missing mask shape {self.missing.shape} does not match "
                f"dosages {self.values.shape}"
            )

    @classmethod
    def empty(cls, n_samples: int) -> "DosageVector":
        """All samples missing."""
        return cls(np.zeros(n_samples, dtype=np.float64), np.ones(n_samples, dtype=bool))

    @classmethod
    def from_floats(cls, dosages) -> "DosageVector":
        """Build from floats where nan marks a missing dosage."""
        values = np.asarray(dosages, dtype=np.float64)
        missing = np.isnan(values)
        return cls(np.where(missing, 0.0, values), missing)

    def __len__(self) -> int:
        return len(self.values)

    def fill(self, value: float) -> None:
        """Set every sample to `value`; a nan value marks every sample missing."""
        if math.isnan(value):
            self.missing[:] = True
            self.values[:] = 0.0
        else:
            self.missing[:] = False
            self.values[:] = value

    def fill_missing(self, value: float) -> None:
        """Set only the missing samples to `value`; a nan value leaves them missing."""
        if math.isnan(value):
            return
        self.values[self.missing] = value
        self.missing[:] = False

    def to_floats(self) -> NDArray[np.float64]:
        """The dosages with missing samples as nan."""
        return np.where(self.missing, MISSING_DOSAGE, self.values)

    def __repr__(self):
        return f"DosageVector({self.to_floats().tolist()})"


def _population_dosage(score_entry: ScoreEntry) -> float:
    return score_entry.aaf * 2.0


def locus_imputed_dosage(score_entry: ScoreEntry, method: LocusImputeMethod) -> float:
    """The dosage assigned to every sample of a failed locus; nan for `fail`."""
    method = LocusImputeMethod(method)
    if method is LocusImputeMethod.PS:
        return _population_dosage(score_entry)
    if method is LocusImputeMethod.HOMREF:
        return 0.0
    if method is LocusImputeMethod.FAIL:
        return MISSING_DOSAGE
    raise ValueError(f"Unknown locus imputation method: {method}")


def sample_imputed_dosage(
    score_entry: ScoreEntry,
    n_effect_allele: float,
    n_genotyped: float,
    min_internal_genotyped: int,
    method: SampleImputeMethod,
) -> float:
    """The dosage for samples missing a genotype at an accepted locus; nan for no imputation."""
    method = SampleImputeMethod(method)
    if method is SampleImputeMethod.PS:
        return _population_dosage(score_entry)
    if method is SampleImputeMethod.HOMREF:
        return 0.0
    if method is SampleImputeMethod.FAIL:
        return MISSING_DOSAGE
    if method in (SampleImputeMethod.INT_PS, SampleImputeMethod.INT_FAIL):
        if n_genotyped > 0 and n_genotyped >= min_internal_genotyped:
            return n_effect_allele / (2.0 * n_genotyped)
        if method is SampleImputeMethod.INT_PS:
            return _population_dosage(score_entry)
        return MISSING_DOSAGE
    raise ValueError(f"Unknown sample imputation method: {method}")


def impute_locus_dosages(
    dosages: DosageVector, score_entry: ScoreEntry, method: LocusImputeMethod
) -> float:
    """
    Impute all dosages at a locus, overwriting genotyped samples too.

    Returns
    -------
    float
        The imputed dosage, nan if the samples were left missing.
    """
    imputed_dosage = locus_imputed_dosage(score_entry, method)
    dosages.fill(imputed_dosage)
    return imputed_dosage


def impute_sample_dosages(
    dosages: DosageVector,
    score_entry: ScoreEntry,
    n_effect_allele: float,
    n_genotyped: float,
    min_internal_genotyped: int,
    method: SampleImputeMethod,
) -> float:
    """
    Impute the missing dosages at a locus, leaving genotyped samples untouched.

    Parameters
    ----------
    dosages : DosageVector
        Raw dosages for the locus; updated in place.
    score_entry : ScoreEntry
        The polygenic score entry for this locus.
    n_effect_allele : float
        Total effect allele count over the genotyped samples.
    n_genotyped : float
        Number of samples with a genotype.
    min_internal_genotyped : int
        Minimum genotyped samples for the int_* methods to use the cohort frequency.
    method : SampleImputeMethod
        Imputation method.

    Returns
    -------
    float
        The imputed dosage, nan if missing samples were left missing.
    """
    imputed_dosage = sample_imputed_dosage(
        score_entry, n_effect_allele, n_genotyped, min_internal_genotyped, method
    )
    dosages.fill_missing(imputed_dosage)
    return imputed_dosage
