"""Utility functions for reading scoring configuration files."""
from pathlib import Path
from typing import Any, Dict

import msgspec
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from prscore.errors import ConfigError
from prscore.prs.prs_types import ScoringParams

# A scoring config is a flat YAML mapping of ScoringParams field names to values, e.g.
#
#   impute_locus: homref
#   impute_sample: int_fail
#   max_missing_rate: 0.1
#
# Fields left out take their ScoringParams defaults.
ConfigDict = Dict[str, Any]


def read_config(path: str | Path) -> ConfigDict:
    """Read a YAML config file and return the parsed mapping."""
    try:
        with Path(path).open(encoding="utf-8") as config_file:
            config_dict = YAML(typ="safe").load(config_file)
    except YAMLError as e:
        raise ConfigError(f"Could not parse config file {path}: {e}") from e

    if config_dict is None:
        return {}
    if not isinstance(config_dict, dict):
        raise ConfigError(
            f"Config file {path} must contain a mapping, got {type(config_dict).__name__}"
        )
    return config_dict


def scoring_params_from_dict(config_dict: ConfigDict) -> ScoringParams:
    """Validate a config mapping as ScoringParams."""
    try:
        return msgspec.convert(config_dict, type=ScoringParams)
    except msgspec.ValidationError as e:
        raise ConfigError(f"Invalid scoring config: {e}") from e


def load_scoring_params(path: str | Path, **overrides: Any) -> ScoringParams:
    """
    Load ScoringParams from a YAML file.

    Args:
        path (str | Path): The YAML config file.
        **overrides: Values replacing those in the file; None values are ignored.

    Raises:
        ConfigError: If the file is not valid YAML or does not describe valid ScoringParams

    Returns:
        ScoringParams: The validated parameters
    """
    config_dict = read_config(path)
    config_dict.update({key: value for key, value in overrides.items() if value is not None})
    return scoring_params_from_dict(config_dict)
