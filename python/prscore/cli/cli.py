import argparse
import logging
import sys
from importlib.metadata import PackageNotFoundError, version

from prscore.errors import PRSError
from prscore.prs.impute import LocusImputeMethod, SampleImputeMethod
from prscore.prs.prs_types import (
    DEFAULT_AF_MISMATCH_P_THRESHOLD,
    DEFAULT_MAX_MISSING_RATE,
    DEFAULT_MIN_INTERNAL_GENOTYPED,
    ScoringParams,
)
from prscore.prs.score import PolygenicScores, calculate_scores
from prscore.utils.config import load_scoring_params, scoring_params_from_dict

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s %(module)s - %(funcName)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

IMPUTATION_METHODS_HELP = """\
imputation methods:
  ps        Impute with dosage based on the polygenic score effect allele frequency.
  homref    Impute to homozygous reference genotype.
  fail      Do not impute, but fail. Failed samples will have a score of "nan".
  int_ps    Impute with dosage calculated from non-missing samples in the cohort.
            At least --mincs non-missing samples must be available for this method
            to be used, else it will fall back to ps.
  int_fail  Impute with dosage calculated from non-missing samples in the cohort.
            At least --mincs non-missing samples must be available for this method
            to be used, else it will fall back to fail.
"""


def _get_version() -> str:
    try:
        return version("prscore")
    except PackageNotFoundError:
        return "unknown"


def configure_logging(verbosity: int) -> None:
    """Send log records to stderr; verbosity -1 shows errors only, 1 adds debug output."""
    level = {-1: logging.ERROR, 0: logging.INFO, 1: logging.DEBUG}[max(-1, min(1, verbosity))]
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        stream=sys.stderr,
        force=True,
    )


def scoring_params_from_args(args: argparse.Namespace) -> ScoringParams:
    """
    Build ScoringParams from the command line, layered over an optional config file.

    Options given on the command line take precedence over the config file, whose values
    take precedence over the built-in defaults.

    Parameters
    ----------
    args : argparse.Namespace
        The parsed arguments.

    Returns
    -------
    ScoringParams
        The validated parameters.
    """
    overrides = {
        "impute_locus": args.imp_locus,
        "impute_sample": args.imp_sample,
        "max_missing_rate": args.maxmis,
        "min_internal_genotyped": args.mincs,
        "af_mismatch_p_threshold": args.afmisp,
    }
    if args.config:
        return load_scoring_params(args.config, **overrides)
    return scoring_params_from_dict(
        {key: value for key, value in overrides.items() if value is not None}
    )


def write_scores(scores: PolygenicScores, out: str | None = None) -> None:
    """Write `sample_id<TAB>score` lines to `out`, or stdout if not given."""
    lines = scores.to_tsv_lines()
    if out is None:
        for line in lines:
            print(line)
        return

    with open(out, "w", encoding="utf-8") as f:
        for line in lines:
            f.write(line + "\n")


def score_cli(args: argparse.Namespace) -> PolygenicScores:
    """
    Score the samples of a genotype file and write the results.

    Parameters
    ----------
    args : argparse.Namespace
        The arguments passed to the command.

    Returns
    -------
    PolygenicScores
        The computed scores.
    """
    params = scoring_params_from_args(args)
    logger.debug("Scoring with %s", params)

    scores = calculate_scores(
        score_path=args.scoredef,
        genotypes_path=args.genotypes,
        params=params,
        coverage_path=args.cov,
    )

    write_scores(scores, args.out)

    if args.locus_report:
        scores.locus_report().to_csv(args.locus_report, sep="\t", index=False, na_rep="NA")
        logger.info("Wrote locus report to %s", args.locus_report)

    return scores


def make_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="prscore",
        description="Compute polygenic scores from a VCF/BCF.",
        epilog=IMPUTATION_METHODS_HELP,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("scoredef", help="The polygenic score definition file")
    parser.add_argument(
        "genotypes", help="Indexed VCF/BCF file with the genotypes of the samples to score"
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {_get_version()}")
    parser.add_argument(
        "--cov",
        default=None,
        help=(
            "Path to a BED file supplying genome regions that have been genotyped in the "
            "genotypes file (optional)"
        ),
    )
    parser.add_argument(
        "--imp-locus",
        choices=[method.value for method in LocusImputeMethod],
        default=None,
        help=(
            "Imputation to apply for whole loci which are either not in the sequenced BED "
            "regions, or fail (FILTER flag or too many samples with missing genotype) "
            f"(default: {LocusImputeMethod.PS})"
        ),
    )
    parser.add_argument(
        "--imp-sample",
        choices=[method.value for method in SampleImputeMethod],
        default=None,
        help=(
            "Imputation to apply for an individual sample with missing genotype "
            f"(default: {SampleImputeMethod.INT_PS})"
        ),
    )
    parser.add_argument(
        "--maxmis",
        type=float,
        default=None,
        help=(
            "Maximum fraction of samples with missing genotypes allowed at a locus. Loci with "
            "more missing samples have all genotypes (even non-missing ones) imputed "
            f"(default: {DEFAULT_MAX_MISSING_RATE})"
        ),
    )
    parser.add_argument(
        "--mincs",
        type=int,
        default=None,
        help=(
            "Minimum number of samples without missing genotype at a locus for the locus to "
            f"be eligible for internal imputation (default: {DEFAULT_MIN_INTERNAL_GENOTYPED})"
        ),
    )
    parser.add_argument(
        "--afmisp",
        type=float,
        default=None,
        help=(
            "p-value threshold for warning about allele frequency mismatch between the "
            f"polygenic score and the cohort (default: {DEFAULT_AF_MISMATCH_P_THRESHOLD})"
        ),
    )
    parser.add_argument(
        "--config",
        default=None,
        help="YAML file supplying defaults for the imputation and QC options (optional)",
    )
    parser.add_argument(
        "--out",
        default=None,
        help=(
            "The output file for the scores. If blank, the scores are written to stdout. "
            "(optional)"
        ),
    )
    parser.add_argument(
        "--locus-report",
        default=None,
        help="Write a tab-separated QC report, one row per score locus, to this file (optional)",
    )
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Log debug messages")
    parser.add_argument("-q", "--quiet", action="count", default=0, help="Log errors only")
    parser.set_defaults(func=score_cli)

    return parser


def main(argv: list[str] | None = None) -> int:
    """
    The main function for the CLI tool.

    Returns
    -------
    int
        The process exit status.
    """
    parser = make_parser()
    args = parser.parse_args(argv)

    configure_logging(args.verbose - args.quiet)

    try:
        args.func(args)
    except (PRSError, OSError) as e:
        logger.error("%s", e)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
