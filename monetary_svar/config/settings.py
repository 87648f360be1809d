"""
Configuration settings classes for the monetary policy SVAR pipeline.
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Dict, List, Any, Optional
import json
import os
from pathlib import Path


class DetrendMethod(str, Enum):
    """Cycle extraction applied to log real output per capita."""
    LINEAR = "linear"
    SMOOTHING_FILTER = "smoothing-filter"


# Names used by the original demonstration, kept as input aliases
_DETREND_ALIASES = {
    "log-linear": DetrendMethod.LINEAR,
    "hp": DetrendMethod.SMOOTHING_FILTER,
    "hp-filter": DetrendMethod.SMOOTHING_FILTER,
}


def parse_detrend_method(value) -> DetrendMethod:
    """Convert a configured value to a DetrendMethod, raising ValueError when unknown."""
    if isinstance(value, DetrendMethod):
        return value
    key = str(value).strip().lower()
    if key in _DETREND_ALIASES:
        return _DETREND_ALIASES[key]
    return DetrendMethod(key)


DEFAULT_SERIES = {
    'cpi': 'CPIAUCSL',       # Consumer Price Index for All Urban Consumers: All Items
    'ffr': 'FEDFUNDS',       # Effective Federal Funds Rate
    'pop': 'CNP16OV',        # Civilian Noninstitutional Population
    'gdp': 'GDP',            # Gross Domestic Product
    'gdp_defl': 'GDPDEF',    # GDP: Implicit Price Deflator
}


@dataclass
class DataSettings:
    """Configuration for data acquisition and preparation."""

    # FRED API settings
    fred_api_key: Optional[str] = None
    fred_base_url: str = "https://api.stlouisfed.org/fred"
    request_timeout: int = 30

    # Series to fetch, keyed by the name used throughout the pipeline
    series: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_SERIES))
    reference_series: str = "gdp"

    # Sample period
    start_date: str = "1960-01-01"
    end_date: str = "2019-01-01"

    # Snapshot used when the live fetch fails
    snapshot_path: str = "data/raw_data.json"
    save_snapshot: bool = True

    # Preparation options
    strict_alignment: bool = False
    inflation_periods: int = 4
    population_base_date: str = "1990-01-01"
    detrend_method: DetrendMethod = DetrendMethod.SMOOTHING_FILTER
    hp_lambda: float = 1600.0

    def __post_init__(self):
        if self.fred_api_key is None:
            self.fred_api_key = os.getenv('FRED_API_KEY') or None
        self.detrend_method = parse_detrend_method(self.detrend_method)


@dataclass
class EstimationSettings:
    """Configuration for VAR estimation, identification and inference."""

    lags: int = 4
    # 0: no constant and no trend, 1: constant only, 2: constant and trend
    deterministic: int = 2
    identification: str = "recursive"

    horizon: int = 40
    bootstrap_draws: int = 100
    confidence_level: float = 0.95
    random_seed: Optional[int] = 42


@dataclass
class VisualizationSettings:
    """Configuration for plots and figure export."""

    plot: bool = True
    save_figures: bool = False
    export_directory: str = "output/figures"
    export_format: str = "html"  # html, png, pdf, svg
    width: int = 1000
    height: int = 800
    show: bool = False


@dataclass
class AnalysisSettings:
    """Master configuration combining all pipeline settings."""

    data: DataSettings = field(default_factory=DataSettings)
    estimation: EstimationSettings = field(default_factory=EstimationSettings)
    visualization: VisualizationSettings = field(default_factory=VisualizationSettings)

    analysis_name: str = "monetary_svar"
    output_directory: str = "output"
    log_level: str = "INFO"

    @classmethod
    def from_file(cls, config_path: str) -> 'AnalysisSettings':
        """
        Load configuration from JSON file.

        Args:
            config_path: Path to configuration JSON file

        Returns:
            AnalysisSettings instance
        """
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_file, 'r') as f:
            config_dict = json.load(f)

        return cls.from_dict(config_dict)

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'AnalysisSettings':
        """
        Create AnalysisSettings from dictionary.

        Args:
            config_dict: Configuration dictionary

        Returns:
            AnalysisSettings instance
        """
        data_settings = DataSettings(**config_dict.get('data', {}))
        estimation_settings = EstimationSettings(**config_dict.get('estimation', {}))
        visualization_settings = VisualizationSettings(**config_dict.get('visualization', {}))

        general_settings = {k: v for k, v in config_dict.items()
                            if k not in ['data', 'estimation', 'visualization']}

        return cls(
            data=data_settings,
            estimation=estimation_settings,
            visualization=visualization_settings,
            **general_settings
        )

    def to_dict(self, include_api_key: bool = False) -> Dict[str, Any]:
        """
        Convert settings to dictionary format.

        Args:
            include_api_key: Keep the FRED API key; saved files omit it
        """
        data = asdict(self.data)
        data['detrend_method'] = self.data.detrend_method.value
        if not include_api_key:
            data.pop('fred_api_key')

        return {
            'data': data,
            'estimation': asdict(self.estimation),
            'visualization': asdict(self.visualization),
            'analysis_name': self.analysis_name,
            'output_directory': self.output_directory,
            'log_level': self.log_level,
        }

    def save_to_file(self, config_path: str):
        """
        Save configuration to JSON file.

        Args:
            config_path: Path where to save configuration
        """
        config_file = Path(config_path)
        config_file.parent.mkdir(parents=True, exist_ok=True)

        with open(config_file, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    def validate(self) -> List[str]:
        """
        Validate configuration settings.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        # Data settings
        missing = set(DEFAULT_SERIES) - set(self.data.series)
        if missing:
            errors.append(f"Series mapping is missing: {', '.join(sorted(missing))}")

        if self.data.reference_series not in self.data.series:
            errors.append("Reference series must be one of the configured series")

        if self.data.start_date >= self.data.end_date:
            errors.append("Start date must precede end date")

        if self.data.inflation_periods < 1:
            errors.append("Inflation periods must be at least 1")

        if self.data.hp_lambda <= 0:
            errors.append("HP smoothing parameter must be positive")

        # Estimation settings
        if self.estimation.lags < 1:
            errors.append("Lag order must be at least 1")

        if self.estimation.deterministic not in (0, 1, 2):
            errors.append("Deterministic terms must be 0 (none), 1 (constant) or 2 (constant and trend)")

        if self.estimation.identification not in ("recursive", "cholesky", "oir"):
            errors.append(f"Unsupported identification scheme: {self.estimation.identification}")

        if self.estimation.horizon < 1:
            errors.append("Impulse response horizon must be positive")

        if self.estimation.bootstrap_draws < 0:
            errors.append("Bootstrap draws cannot be negative")

        if not 0 < self.estimation.confidence_level < 1:
            errors.append("Confidence level must lie strictly between 0 and 1")

        # Visualization settings
        if self.visualization.export_format not in ("html", "png", "pdf", "svg"):
            errors.append(f"Unsupported figure format: {self.visualization.export_format}")

        if self.log_level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            errors.append(f"Unknown log level: {self.log_level}")

        return errors
