"""Data types for polygenic scoring with locus and sample imputation."""

from msgspec import Struct

from prscore.prs.impute import LocusImputeMethod, SampleImputeMethod, StrEnum

DEFAULT_MAX_MISSING_RATE = 0.05
DEFAULT_MIN_INTERNAL_GENOTYPED = 100
DEFAULT_AF_MISMATCH_P_THRESHOLD = 0.001


class ScoringParams(Struct, frozen=True, forbid_unknown_fields=True, kw_only=True):
    """
    Quality control and imputation settings for a scoring run.

    Parameters
    ----------
    impute_locus : LocusImputeMethod
        Imputation for whole loci that are not covered, are FILTERed, or have too many
        samples missing a genotype.
    impute_sample : SampleImputeMethod
        Imputation for single samples missing a genotype at a locus that passes QC.
    max_missing_rate : float
        Loci with more than this fraction of samples missing a genotype fail QC.
    min_internal_genotyped : int
        Minimum number of genotyped samples at a locus for int_* sample imputation to use
        the cohort allele frequency.
    af_mismatch_p_threshold : float
        p-value below which a mismatch between cohort and score allele frequencies is logged.
    """

    impute_locus: LocusImputeMethod = LocusImputeMethod.PS
    impute_sample: SampleImputeMethod = SampleImputeMethod.INT_PS
    max_missing_rate: float = DEFAULT_MAX_MISSING_RATE
    min_internal_genotyped: int = DEFAULT_MIN_INTERNAL_GENOTYPED
    af_mismatch_p_threshold: float = DEFAULT_AF_MISMATCH_P_THRESHOLD

    def __post_init__(self):
        if not 0.0 <= self.max_missing_rate <= 1.0:
            raise ValueError(f"max_missing_rate must be in [0, 1], got {self.max_missing_rate}")
        if self.min_internal_genotyped < 0:
            raise ValueError(
                f"min_internal_genotyped must be non-negative, got {self.min_internal_genotyped}"
            )
        if not 0.0 <= self.af_mismatch_p_threshold <= 1.0:
            raise ValueError(
                f"af_mismatch_p_threshold must be in [0, 1], got {self.af_mismatch_p_threshold}"
            )


class LocusStatus(StrEnum):
    """How the dosages of a scored locus were resolved."""

    NOT_COVERED = "not_covered"
    ABSENT = "absent"
    FILTERED = "filtered"
    HIGH_MISSINGNESS = "high_missingness"
    GENOTYPED = "genotyped"


class LocusReport(Struct, frozen=True, kw_only=True):
    """
    The QC outcome of one scored locus.

    `cohort_aaf` and `aaf_pvalue` are None when the locus was not compared against the
    cohort; `imputed_value` is None when no imputation was needed, nan for a `fail` fill.
    """

    locus_id: str
    status: LocusStatus
    n_genotyped: int = 0
    n_missing: int = 0
    missing_rate: float = 0.0
    cohort_aaf: float | None = None
    aaf_pvalue: float | None = None
    imputed_value: float | None = None
