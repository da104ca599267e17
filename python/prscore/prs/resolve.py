"""
    Resolve the dosages of one polygenic score locus in a genotyped cohort.

    Per locus, in order:
        1. not covered by the genotyping          -> impute the whole locus
        2. variant not in the genotype store      -> all samples homozygous reference
        3. variant has a non-passing FILTER       -> impute the whole locus
        4. fetch raw dosages and tally them
        5. too many samples missing a genotype    -> impute the whole locus
        6. cohort allele frequency implausible    -> warn only
        7. impute samples missing a genotype
"""

import logging

import numpy as np

from prscore.io.coverage import Coverage
from prscore.io.genotypes import GenotypeStore
from prscore.io.score_file import ScoreEntry
from prscore.prs.impute import DosageVector, impute_locus_dosages, impute_sample_dosages
from prscore.prs.prs_types import LocusReport, LocusStatus, ScoringParams
from prscore.prs.stats import binom_test, tally_alleles

logger = logging.getLogger(__name__)


def _impute_failed_locus(
    score_entry: ScoreEntry,
    n_samples: int,
    params: ScoringParams,
    status: LocusStatus,
    **report_fields,
) -> tuple[DosageVector, LocusReport]:
    dosages = DosageVector.empty(n_samples)
    imputed_value = impute_locus_dosages(dosages, score_entry, params.impute_locus)
    report = LocusReport(
        locus_id=score_entry.locus_id, status=status, imputed_value=imputed_value, **report_fields
    )
    return dosages, report


def get_imputed_dosages(
    score_entry: ScoreEntry,
    genotypes: GenotypeStore,
    coverage: Coverage,
    params: ScoringParams,
    logger: logging.Logger = logger,
) -> tuple[DosageVector, LocusReport]:
    """
    Fetch the dosages of a score's effect allele in every sample, imputing where needed.

    Parameters
    ----------
    score_entry : ScoreEntry
        The polygenic score entry for this locus.
    genotypes : GenotypeStore
        The genotyped cohort.
    coverage : Coverage
        Genome regions which have been well called by the genotyping method.
    params : ScoringParams
        Imputation methods and QC thresholds.
    logger : logging.Logger, optional
        Destination for QC warnings. Defaults to this module's logger.

    Returns
    -------
    tuple[DosageVector, LocusReport]
        Resolved dosages, one per sample in store order, and the QC outcome of the locus.
        Samples remain missing only when the chosen imputation method is fail.
    """
    n_samples = genotypes.n_samples

    if not coverage.is_covered(score_entry.contig, score_entry.pos, score_entry.ref):
        logger.warning(
            "Locus %s is not covered by the sequence coverage BED. "
            "Imputing all dosages at this locus.",
            score_entry.region,
        )
        return _impute_failed_locus(score_entry, n_samples, params, LocusStatus.NOT_COVERED)

    variant = genotypes.find_variant(
        score_entry.contig, score_entry.pos, score_entry.ref, score_entry.alt
    )

    if variant is None:
        pvalue = binom_test(0, n_samples * 2, score_entry.aaf)
        if pvalue < params.af_mismatch_p_threshold:
            logger.warning(
                "Variant %s cohort AAF is 0 in %s samples. This is highly unlikely "
                "given polygenic score AAF of %s",
                score_entry.locus_id,
                n_samples,
                score_entry.aaf,
            )
        # Absence from the store means no sample carries the effect allele
        dosages = DosageVector(np.zeros(n_samples, dtype=np.float64))
        report = LocusReport(
            locus_id=score_entry.locus_id,
            status=LocusStatus.ABSENT,
            n_genotyped=n_samples,
            cohort_aaf=0.0,
            aaf_pvalue=pvalue,
        )
        return dosages, report

    if not variant.passes_filter:
        logger.warning(
            'Variant %s has a FILTER flag set (value "%s"). Imputing all dosages at this locus.',
            score_entry.locus_id,
            variant.filter,
        )
        return _impute_failed_locus(score_entry, n_samples, params, LocusStatus.FILTERED)

    dosages = genotypes.raw_dosages(variant, score_entry.alt)
    n_genotyped, n_missing, n_effect_allele = tally_alleles(dosages)

    missing_rate = n_missing / n_samples
    if missing_rate > params.max_missing_rate:
        logger.warning(
            "Locus %s has %s%% of samples missing a genotype. This exceeds the missingness "
            "threshold; imputing all dosages at this locus.",
            score_entry.region,
            missing_rate * 100,
        )
        return _impute_failed_locus(
            score_entry,
            n_samples,
            params,
            LocusStatus.HIGH_MISSINGNESS,
            n_genotyped=int(n_genotyped),
            n_missing=int(n_missing),
            missing_rate=missing_rate,
        )

    cohort_aaf = n_effect_allele / (n_samples * 2)
    pvalue = binom_test(int(round(n_effect_allele)), n_samples * 2, score_entry.aaf)
    if pvalue < params.af_mismatch_p_threshold:
        logger.warning(
            "Variant %s cohort AAF is %s in %s samples. This is highly unlikely "
            "given polygenic score AAF of %s",
            score_entry.locus_id,
            cohort_aaf,
            n_samples,
            score_entry.aaf,
        )

    imputed_value = None
    if n_missing > 0:
        imputed_value = impute_sample_dosages(
            dosages,
            score_entry,
            n_effect_allele,
            n_genotyped,
            params.min_internal_genotyped,
            params.impute_sample,
        )

    report = LocusReport(
        locus_id=score_entry.locus_id,
        status=LocusStatus.GENOTYPED,
        n_genotyped=int(n_genotyped),
        n_missing=int(n_missing),
        missing_rate=missing_rate,
        cohort_aaf=cohort_aaf,
        aaf_pvalue=pvalue,
        imputed_value=imputed_value,
    )
    return dosages, report
