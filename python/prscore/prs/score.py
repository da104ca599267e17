"""
    Compute polygenic scores for a genotyped cohort.

    For sample i the score over L loci is

        offset + (1 / L) * sum_l dosage_i(l) * beta(l)

    i.e. the mean per-locus contribution, as reported by PLINK, plus the score's offset.
"""

import logging
from collections.abc import Iterable

import numpy as np
import pandas as pd
from msgspec import structs

from prscore.errors import GenotypeStoreError, NoScoredLociError
from prscore.io.coverage import AlwaysCovered, Coverage, CoveredRegions
from prscore.io.genotypes import GenotypeStore, VcfGenotypeStore
from prscore.io.score_file import ScoreEntry, ScoreFile
from prscore.prs.prs_types import LocusReport, ScoringParams
from prscore.prs.resolve import get_imputed_dosages

logger = logging.getLogger(__name__)

SCORE_COLUMN = "score"
SAMPLE_ID_COLUMN = "sample_id"


class PolygenicScores:
    """
    Scores for every sample of a cohort.

    Attributes
    ----------
    scores : pd.Series
        Score per sample, indexed by sample id in genotype store order; nan for samples
        with a locus imputed with the fail method.
    n_loci : int
        Number of score loci averaged over.
    offset : float
        Offset added to every score.
    reports : list[LocusReport]
        QC outcome of each locus, in score file order.
    """

    def __init__(self, scores: pd.Series, n_loci: int, offset: float, reports: list[LocusReport]):
        self.scores = scores
        self.n_loci = n_loci
        self.offset = offset
        self.reports = reports

    def locus_report(self) -> pd.DataFrame:
        """The per-locus QC outcomes as a DataFrame, one row per locus."""
        report = pd.DataFrame(
            [structs.asdict(locus) for locus in self.reports],
            columns=list(LocusReport.__struct_fields__),
        )
        report["status"] = report["status"].astype(str)
        return report

    def to_tsv_lines(self) -> list[str]:
        """One `sample_id<TAB>score` line per sample."""
        return [f"{sample_id}\t{float(score)}" for sample_id, score in self.scores.items()]


def compute_polygenic_scores(
    score_entries: Iterable[ScoreEntry],
    genotypes: GenotypeStore,
    coverage: Coverage,
    params: ScoringParams,
    offset: float = 0.0,
    logger: logging.Logger = logger,
) -> PolygenicScores:
    """
    Compute polygenic scores.

    Parameters
    ----------
    score_entries : Iterable[ScoreEntry]
        The score loci; consumed once.
    genotypes : GenotypeStore
        Genotypes of the samples for which to calculate scores.
    coverage : Coverage
        Genome regions which have been well called by the genotyping method.
    params : ScoringParams
        Imputation methods and QC thresholds.
    offset : float, optional
        Added to every sample's final score. Defaults to 0.
    logger : logging.Logger, optional
        Destination for per-locus QC warnings. Defaults to this module's logger.

    Returns
    -------
    PolygenicScores
        The per-sample scores and per-locus QC outcomes.

    Raises
    ------
    GenotypeStoreError
        If the genotype store has no samples.
    NoScoredLociError
        If `score_entries` is empty.
    """
    n_samples = genotypes.n_samples
    if n_samples == 0:
        raise GenotypeStoreError("The genotype store contains no samples")

    totals = np.zeros(n_samples, dtype=np.float64)
    failed = np.zeros(n_samples, dtype=bool)
    reports: list[LocusReport] = []

    # For each locus, get its (possibly imputed) dosages and add its contribution
    n_loci = 0
    for score_entry in score_entries:
        dosages, report = get_imputed_dosages(
            score_entry, genotypes, coverage, params, logger=logger
        )
        if len(dosages) != n_samples:
            raise ValueError(
                f"Locus {score_entry.locus_id} resolved {len(dosages)} dosages "
                f"for {n_samples} samples"
            )

        totals += np.where(dosages.missing, 0.0, dosages.values) * score_entry.beta
        failed |= dosages.missing
        reports.append(report)
        n_loci += 1

    if n_loci == 0:
        raise NoScoredLociError("The polygenic score contains no loci")

    scores = offset + totals / n_loci
    scores[failed] = np.nan

    logger.info(
        "Scored %s samples over %s loci (%s samples failed)", n_samples, n_loci, int(failed.sum())
    )
    return PolygenicScores(
        scores=pd.Series(
            scores, index=pd.Index(genotypes.samples, name=SAMPLE_ID_COLUMN), name=SCORE_COLUMN
        ),
        n_loci=n_loci,
        offset=offset,
        reports=reports,
    )


def calculate_scores(
    score_path: str,
    genotypes_path: str,
    params: ScoringParams,
    coverage_path: str | None = None,
) -> PolygenicScores:
    """
    Score every sample of an indexed VCF/BCF with a polygenic score definition file.

    Args:
        score_path (str): The score definition file.
        genotypes_path (str): The indexed VCF or BCF with the cohort genotypes.
        params (ScoringParams): Imputation methods and QC thresholds.
        coverage_path (str, optional): BED of regions well called in the cohort. If not
            provided, every locus is treated as covered.

    Raises:
        ScoreFileFormatError: If the score file is malformed
        GenotypeStoreError: If the genotype file cannot be opened
        CoverageBedError: If the coverage BED is malformed
        NoScoredLociError: If the score file has no records

    Returns:
        PolygenicScores: The per-sample scores
    """
    coverage: Coverage = AlwaysCovered()
    if coverage_path is not None:
        coverage = CoveredRegions.from_bed(coverage_path)

    with VcfGenotypeStore(genotypes_path) as genotypes, ScoreFile(score_path) as score_file:
        logger.info(
            "Scoring %s (%s) against %s",
            score_file.header.name,
            score_file.header.genome_build,
            genotypes_path,
        )
        return compute_polygenic_scores(
            score_file, genotypes, coverage, params, offset=score_file.offset
        )
