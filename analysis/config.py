"""
Analysis configuration.

Values are layered, later sources win:
defaults -> YAML file -> MARKET_STATS_* environment variables -> explicit overrides.
"""

import os
import yaml
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from analysis.backends import BACKENDS
from analysis.calculations.decades import DecadeKey, MAX_YEAR, MIN_YEAR, global_key
from ingestion.transforms.validators import (
    MAX_ABS_RETURN,
    MAX_PRICE,
    MIN_PRICE,
    QualityPolicy,
    ValidationError,
)

# Load environment variables
load_dotenv()

PARTITIONS = ('global', 'decade')
GROUPS = ('combined', 'per_file')
SPLITS = ('files', 'rows')

# Environment variable -> (config field, parser)
ENV_OVERRIDES = {
    'MARKET_STATS_BACKEND': ('backend', str),
    'MARKET_STATS_WORKERS': ('workers', int),
    'MARKET_STATS_MAX_ROWS': ('max_rows', int),
    'MARKET_STATS_PARTITION': ('partition', str),
    'MARKET_STATS_SPLIT': ('split', str),
}


class ConfigError(ValueError):
    """Raised when configuration is missing or invalid."""
    pass


@dataclass
class AnalysisConfig:
    """Configuration for one analysis run."""
    inputs: List[str] = field(default_factory=list)
    partition: str = 'global'
    group: str = 'combined'
    backend: str = 'serial'
    workers: Optional[int] = None
    split: str = 'files'
    max_rows: Optional[int] = None
    # None: on for decade partitioning, off for global
    quality_filter: Optional[bool] = None
    min_price: float = MIN_PRICE
    max_price: float = MAX_PRICE
    max_abs_return: float = MAX_ABS_RETURN
    min_year: int = MIN_YEAR
    max_year: int = MAX_YEAR
    track_excluded_years: bool = True
    legacy_decade_labels: bool = False
    extension: str = '.csv'
    output_path: Optional[str] = None

    def __post_init__(self):
        """Validate choices and ranges."""
        if isinstance(self.inputs, (str, Path)):
            self.inputs = [str(self.inputs)]
        else:
            self.inputs = [str(item) for item in self.inputs]

        if self.partition not in PARTITIONS:
            raise ConfigError(f"partition must be one of {PARTITIONS}, got {self.partition!r}")

        if self.group not in GROUPS:
            raise ConfigError(f"group must be one of {GROUPS}, got {self.group!r}")

        if self.split not in SPLITS:
            raise ConfigError(f"split must be one of {SPLITS}, got {self.split!r}")

        if self.backend not in BACKENDS:
            raise ConfigError(f"backend must be one of {tuple(BACKENDS)}, got {self.backend!r}")

        for name in ('workers', 'max_rows', 'min_year', 'max_year'):
            value = getattr(self, name)
            if value is None and name in ('workers', 'max_rows'):
                continue
            if not isinstance(value, int) or isinstance(value, bool):
                raise ConfigError(f"{name} must be an integer, got {value!r}")

        if self.workers is not None and self.workers < 1:
            raise ConfigError(f"workers must be >= 1, got {self.workers}")

        if self.max_rows is not None and self.max_rows < 1:
            raise ConfigError(f"max_rows must be >= 1, got {self.max_rows}")

        if self.min_year > self.max_year:
            raise ConfigError(f"min_year ({self.min_year}) must be <= max_year ({self.max_year})")

        # Fail early on bad bounds even when the filter is off
        try:
            QualityPolicy(self.min_price, self.max_price, self.max_abs_return)
        except ValidationError as e:
            raise ConfigError(str(e)) from e

    @property
    def use_quality_filter(self) -> bool:
        if self.quality_filter is None:
            return self.partition == 'decade'
        return self.quality_filter

    def quality_policy(self) -> Optional[QualityPolicy]:
        if not self.use_quality_filter:
            return None
        return QualityPolicy(
            min_price=self.min_price,
            max_price=self.max_price,
            max_abs_return=self.max_abs_return,
        )

    def key_function(self):
        if self.partition == 'decade':
            return DecadeKey(min_year=self.min_year, max_year=self.max_year)
        return global_key


def load_yaml_config(config_path: str) -> Dict[str, Any]:
    """
    Load configuration values from a YAML file.

    Raises:
        ConfigError: If the file is missing, unparseable or not a mapping
    """
    config_file = Path(config_path)
    if not config_file.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        with open(config_file, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to load config {config_path}: {e}") from e

    if data is None:
        return {}

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {config_path} must contain a mapping")

    return data


def _env_values() -> Dict[str, Any]:
    values = {}
    for env_name, (field_name, parser) in ENV_OVERRIDES.items():
        raw = os.getenv(env_name)
        if raw is None or raw.strip() == '':
            continue
        try:
            values[field_name] = parser(raw.strip())
        except ValueError as e:
            raise ConfigError(f"Invalid value for {env_name}: {raw!r}") from e
    return values


def load_config(config_path: Optional[str] = None, **overrides) -> AnalysisConfig:
    """
    Build an AnalysisConfig from file, environment and overrides.

    Args:
        config_path: YAML file (default: $MARKET_STATS_CONFIG if set)
        **overrides: Field values that win over everything else; None
            values are ignored so unset CLI flags do not mask the file

    Returns:
        Validated AnalysisConfig

    Raises:
        ConfigError: On missing files, unknown keys or invalid values
    """
    values: Dict[str, Any] = {}

    if config_path is None:
        config_path = os.getenv('MARKET_STATS_CONFIG')

    if config_path:
        values.update(load_yaml_config(config_path))

    values.update(_env_values())
    values.update({k: v for k, v in overrides.items() if v is not None})

    known = {f.name for f in fields(AnalysisConfig)}
    unknown = set(values) - known
    if unknown:
        raise ConfigError(f"Unknown config keys: {sorted(unknown)}")

    return AnalysisConfig(**values)
