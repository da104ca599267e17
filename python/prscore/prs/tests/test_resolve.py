import logging
import math

import numpy as np
import pytest

from prscore.io.coverage import AlwaysCovered, CoveredRegions
from prscore.io.genotypes import InMemoryGenotypeStore
from prscore.io.score_file import ScoreEntry
from prscore.prs.impute import LocusImputeMethod, SampleImputeMethod
from prscore.prs.prs_types import LocusStatus, ScoringParams
from prscore.prs.resolve import get_imputed_dosages

nan = math.nan

ENTRY = ScoreEntry(contig="chr1", pos=1000, ref="A", alt="G", beta=1.0, aaf=0.5)
KEY = ("chr1", 1000, "A", "G")


@pytest.fixture
def warn_logger(mocker):
    return mocker.Mock(spec=logging.Logger)


def _store(dosages, n_samples=None, filters=None):
    n_samples = n_samples if n_samples is not None else len(dosages)
    samples = [f"S{i}" for i in range(n_samples)]
    return InMemoryGenotypeStore(samples, {KEY: dosages} if dosages is not None else {}, filters)


def test_not_covered_imputes_without_querying_store(mocker, warn_logger):
    store = _store([1.0, 2.0, 0.0])
    find_variant = mocker.spy(store, "find_variant")
    params = ScoringParams(impute_locus=LocusImputeMethod.HOMREF)

    dosages, report = get_imputed_dosages(ENTRY, store, CoveredRegions({}), params, warn_logger)

    np.testing.assert_array_equal(dosages.to_floats(), [0.0, 0.0, 0.0])
    assert report.status == LocusStatus.NOT_COVERED
    assert report.imputed_value == 0.0
    find_variant.assert_not_called()
    warn_logger.warning.assert_called_once()
    assert "not covered" in warn_logger.warning.call_args.args[0]


def test_covered_locus_is_read():
    store = _store([1.0, 2.0, 0.0])
    coverage = CoveredRegions({"chr1": [(900, 1100)]})

    dosages, report = get_imputed_dosages(ENTRY, store, coverage, ScoringParams())

    np.testing.assert_array_equal(dosages.to_floats(), [1.0, 2.0, 0.0])
    assert report.status == LocusStatus.GENOTYPED


def test_absent_variant_is_homozygous_reference(warn_logger):
    # Absence is not missingness: even fail imputation must not apply
    store = _store(None, n_samples=3)
    params = ScoringParams(
        impute_locus=LocusImputeMethod.FAIL, impute_sample=SampleImputeMethod.FAIL
    )

    dosages, report = get_imputed_dosages(ENTRY, store, AlwaysCovered(), params, warn_logger)

    np.testing.assert_array_equal(dosages.to_floats(), [0.0, 0.0, 0.0])
    assert report.status == LocusStatus.ABSENT
    assert report.imputed_value is None
    # Binomial(6, 0.5) gives x=0 a two-sided p-value of 2/64
    assert report.aaf_pvalue == pytest.approx(2 / 64)
    warn_logger.warning.assert_not_called()


def test_absent_common_variant_warns(warn_logger):
    store = _store(None, n_samples=20)

    get_imputed_dosages(ENTRY, store, AlwaysCovered(), ScoringParams(), warn_logger)

    warn_logger.warning.assert_called_once()
    assert "highly unlikely" in warn_logger.warning.call_args.args[0]


def test_filtered_variant_imputes_locus(warn_logger):
    store = _store([0.0, 0.0, 2.0, 1.0], filters={KEY: "LowQual"})
    entry = ScoreEntry(contig="chr1", pos=1000, ref="A", alt="G", beta=1.0, aaf=0.25)

    dosages, report = get_imputed_dosages(
        entry, store, AlwaysCovered(), ScoringParams(), warn_logger
    )

    np.testing.assert_array_equal(dosages.to_floats(), [0.5, 0.5, 0.5, 0.5])
    assert report.status == LocusStatus.FILTERED
    warn_logger.warning.assert_called_once()
    assert warn_logger.warning.call_args.args[-1] == "LowQual"


@pytest.mark.parametrize("filter_value", ["PASS", "."])
def test_passing_filter_values_are_read(filter_value):
    store = _store([0.0, 1.0], filters={KEY: filter_value})

    _, report = get_imputed_dosages(ENTRY, store, AlwaysCovered(), ScoringParams())

    assert report.status == LocusStatus.GENOTYPED


def test_high_missingness_imputes_locus(warn_logger):
    store = _store([nan, nan, nan, 1.0, 2.0])
    params = ScoringParams(impute_locus=LocusImputeMethod.HOMREF, max_missing_rate=0.05)

    dosages, report = get_imputed_dosages(ENTRY, store, AlwaysCovered(), params, warn_logger)

    np.testing.assert_array_equal(dosages.to_floats(), [0.0] * 5)
    assert report.status == LocusStatus.HIGH_MISSINGNESS
    assert report.missing_rate == pytest.approx(0.6)
    assert (report.n_genotyped, report.n_missing) == (2, 3)
    warn_logger.warning.assert_called_once()


def test_missingness_at_threshold_passes():
    store = _store([nan, 1.0, 1.0, 1.0])
    params = ScoringParams(max_missing_rate=0.25, impute_sample=SampleImputeMethod.HOMREF)

    dosages, report = get_imputed_dosages(ENTRY, store, AlwaysCovered(), params)

    assert report.status == LocusStatus.GENOTYPED
    np.testing.assert_array_equal(dosages.to_floats(), [0.0, 1.0, 1.0, 1.0])


def test_af_mismatch_warns_but_scores(warn_logger):
    entry = ScoreEntry(contig="chr1", pos=1000, ref="A", alt="G", beta=1.0, aaf=0.01)
    store = _store([2.0] * 20)

    dosages, report = get_imputed_dosages(
        entry, store, AlwaysCovered(), ScoringParams(), warn_logger
    )

    np.testing.assert_array_equal(dosages.to_floats(), [2.0] * 20)
    assert report.status == LocusStatus.GENOTYPED
    assert report.cohort_aaf == 1.0
    assert report.aaf_pvalue < 0.001
    warn_logger.warning.assert_called_once()


def test_sample_imputation_fills_gaps():
    store = _store([1.0, nan, 2.0])
    params = ScoringParams(max_missing_rate=0.5, impute_sample=SampleImputeMethod.HOMREF)

    dosages, report = get_imputed_dosages(ENTRY, store, AlwaysCovered(), params)

    np.testing.assert_array_equal(dosages.to_floats(), [1.0, 0.0, 2.0])
    assert report.imputed_value == 0.0
    assert report.n_missing == 1


def test_internal_sample_imputation():
    store = _store([1.0, nan, 2.0, 1.0])
    params = ScoringParams(
        max_missing_rate=0.5, impute_sample=SampleImputeMethod.INT_PS, min_internal_genotyped=3
    )

    dosages, _ = get_imputed_dosages(ENTRY, store, AlwaysCovered(), params)

    np.testing.assert_allclose(dosages.to_floats(), [1.0, 4.0 / 6.0, 2.0, 1.0])


def test_int_fail_below_threshold_leaves_missing():
    store = _store([1.0, nan, 2.0, 1.0])
    params = ScoringParams(
        max_missing_rate=0.5, impute_sample=SampleImputeMethod.INT_FAIL, min_internal_genotyped=100
    )

    dosages, report = get_imputed_dosages(ENTRY, store, AlwaysCovered(), params)

    np.testing.assert_array_equal(dosages.missing, [False, True, False, False])
    assert math.isnan(report.imputed_value)


def test_resolution_does_not_modify_store():
    store = _store([1.0, nan, 2.0])
    params = ScoringParams(max_missing_rate=0.5, impute_sample=SampleImputeMethod.HOMREF)

    get_imputed_dosages(ENTRY, store, AlwaysCovered(), params)
    fail_params = ScoringParams(max_missing_rate=0.5, impute_sample=SampleImputeMethod.FAIL)
    dosages, _ = get_imputed_dosages(ENTRY, store, AlwaysCovered(), fail_params)

    np.testing.assert_array_equal(dosages.missing, [False, True, False])
