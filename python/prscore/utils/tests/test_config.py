import pytest

from prscore.errors import ConfigError
from prscore.prs.impute import LocusImputeMethod, SampleImputeMethod
from prscore.prs.prs_types import ScoringParams
from prscore.utils.config import load_scoring_params, read_config, scoring_params_from_dict

CONFIG = """\
impute_locus: homref
impute_sample: int_fail
max_missing_rate: 0.1
"""


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "scoring.yml"
    path.write_text(CONFIG)
    return path


def test_read_config(config_path):
    assert read_config(config_path) == {
        "impute_locus": "homref",
        "impute_sample": "int_fail",
        "max_missing_rate": 0.1,
    }


def test_read_empty_config(tmp_path):
    path = tmp_path / "empty.yml"
    path.write_text("")

    assert read_config(path) == {}


def test_read_config_not_a_mapping(tmp_path):
    path = tmp_path / "list.yml"
    path.write_text("- homref\n- fail\n")

    with pytest.raises(ConfigError, match="mapping"):
        read_config(path)


def test_read_config_invalid_yaml(tmp_path):
    path = tmp_path / "broken.yml"
    path.write_text("impute_locus: [homref\n")

    with pytest.raises(ConfigError, match="Could not parse"):
        read_config(path)


def test_load_scoring_params(config_path):
    params = load_scoring_params(config_path)

    assert params.impute_locus == LocusImputeMethod.HOMREF
    assert params.impute_sample == SampleImputeMethod.INT_FAIL
    assert params.max_missing_rate == 0.1
    assert params.min_internal_genotyped == ScoringParams().min_internal_genotyped


def test_load_scoring_params_overrides(config_path):
    params = load_scoring_params(config_path, impute_locus="fail", max_missing_rate=None)

    assert params.impute_locus == LocusImputeMethod.FAIL
    assert params.max_missing_rate == 0.1


def test_scoring_params_defaults():
    assert scoring_params_from_dict({}) == ScoringParams()


@pytest.mark.parametrize(
    "config_dict",
    [
        {"impute_locus": "int_ps"},
        {"impute_sample": "mean"},
        {"max_missing_rate": 1.5},
        {"min_internal_genotyped": -1},
        {"unknown_option": 1},
    ],
)
def test_scoring_params_invalid(config_dict):
    with pytest.raises(ConfigError, match="Invalid scoring config"):
        scoring_params_from_dict(config_dict)
