"""
Analysis Configuration
======================
Schema-validated configuration for the ingestion and metrics pipeline.

Key Principle: Fail fast on bad configs. A typo in a config should raise
an immediate, clear error - not silently produce wrong metrics.

There is no global configuration instance. Callers build an
AnalysisConfig (directly, or through ConfigManager) and pass it into
every pipeline call.

Usage:
    from thrustbench.config import ConfigManager, MetricCalculationOptions

    config = ConfigManager.build({'metrics': {'thrust_threshold': 5.0}})
    options = MetricCalculationOptions(rise_time_start=0.05)
"""

import copy
import json
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Tuple, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .errors import ConfigurationError


class MetricCalculationOptions(BaseModel):
    """Thresholds used by the metric extractor."""
    model_config = ConfigDict(extra='forbid', frozen=True)

    thrust_threshold: float = Field(
        1.0, ge=0, description="Minimum value considered active burn (input units)"
    )
    rise_time_start: float = Field(
        0.10, gt=0, lt=1, description="Lower rise-time crossing as fraction of peak"
    )
    rise_time_end: float = Field(
        0.90, gt=0, lt=1, description="Upper rise-time crossing as fraction of peak"
    )
    min_burn_duration: float = Field(
        0.1, ge=0, description="Burns shorter than this get a warning (time units)"
    )

    @model_validator(mode='after')
    def check_rise_fractions(self):
        if self.rise_time_start >= self.rise_time_end:
            raise ValueError(
                f"rise_time_start ({self.rise_time_start}) must be less than "
                f"rise_time_end ({self.rise_time_end})"
            )
        return self


class TypeInferenceOptions(BaseModel):
    """Column type inference settings."""
    model_config = ConfigDict(extra='forbid', frozen=True)

    low_confidence_threshold: float = Field(
        0.5, ge=0, le=1, description="Confidence below this emits a warning"
    )


class ComparisonOptions(BaseModel):
    """Multi-run drift comparison settings."""
    model_config = ConfigDict(extra='forbid', frozen=True)

    stable_band_pct: float = Field(5.0, ge=0, description="±% band reported as stable")
    alignment: Literal['start', 'peak', 'none'] = Field(
        'start', description="Time alignment marker for overlaid runs"
    )


class AnalysisConfig(BaseModel):
    """Complete pipeline configuration."""
    model_config = ConfigDict(extra='forbid', frozen=True)

    config_name: str = Field('default', min_length=1)
    description: Optional[str] = None
    metrics: MetricCalculationOptions = Field(default_factory=MetricCalculationOptions)
    type_inference: TypeInferenceOptions = Field(default_factory=TypeInferenceOptions)
    comparison: ComparisonOptions = Field(default_factory=ComparisonOptions)
    max_workers: int = Field(1, ge=1, description="Parallel file workers (1 = sequential)")


def _format_pydantic_errors(exc: ValidationError) -> List[str]:
    errors = []
    for err in exc.errors():
        location = '.'.join(str(part) for part in err.get('loc', ())) or 'config'
        errors.append(f"{location}: {err.get('msg')}")
    return errors


class ConfigManager:
    """
    Centralized configuration management.

    Usage:
        # Defaults as a plain dict (editable, serialisable)
        raw = ConfigManager.get_default_config()

        # Load, merge onto defaults, validate
        config = ConfigManager.build(ConfigManager.load_from_file('bench.yaml'))
    """

    @staticmethod
    def get_default_config() -> Dict[str, Any]:
        """
        Get the default configuration.

        Single source of truth for defaults: derived from the schema.
        """
        return AnalysisConfig().model_dump()

    @staticmethod
    def load_from_file(file_path: Union[str, Path]) -> Dict[str, Any]:
        """
        Load configuration from a JSON or YAML file.

        Args:
            file_path: Path ending in .json, .yaml or .yml

        Returns:
            Configuration dictionary (not yet validated)

        Raises:
            FileNotFoundError: If file doesn't exist
            ConfigurationError: If the suffix is unknown or content is not a mapping
        """
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {file_path}")

        suffix = path.suffix.lower()
        with open(path, 'r', encoding='utf-8') as f:
            if suffix == '.json':
                config = json.load(f)
            elif suffix in ('.yaml', '.yml'):
                config = yaml.safe_load(f) or {}
            else:
                raise ConfigurationError([f"Unsupported config file type: {suffix}"])

        if not isinstance(config, dict):
            raise ConfigurationError([f"Configuration root must be a mapping, got {type(config).__name__}"])

        return config

    @staticmethod
    def save_to_file(config: Union[Dict[str, Any], AnalysisConfig], file_path: Union[str, Path]) -> Path:
        """
        Save configuration to JSON or YAML (chosen by suffix).

        Args:
            config: Configuration dictionary or model
            file_path: Output path
        """
        if isinstance(config, AnalysisConfig):
            config = config.model_dump()

        path = Path(file_path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, 'w', encoding='utf-8') as f:
            if path.suffix.lower() in ('.yaml', '.yml'):
                yaml.dump(config, f, default_flow_style=False, sort_keys=False)
            else:
                json.dump(config, f, indent=2)

        return path

    @staticmethod
    def merge_configs(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
        """
        Merge two configurations (deep merge).

        Args:
            base: Base configuration
            overrides: Configuration overrides to apply

        Returns:
            Merged configuration dictionary
        """
        result = copy.deepcopy(base)

        for key, value in overrides.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = ConfigManager.merge_configs(result[key], value)
            else:
                result[key] = value

        return result

    @staticmethod
    def validate_config(config: Dict[str, Any]) -> Tuple[bool, List[str]]:
        """
        Validate configuration structure.

        Returns:
            Tuple of (is_valid, list_of_errors)
        """
        try:
            AnalysisConfig.model_validate(config)
        except ValidationError as e:
            return False, _format_pydantic_errors(e)
        return True, []

    @staticmethod
    def build(overrides: Optional[Dict[str, Any]] = None) -> AnalysisConfig:
        """
        Merge overrides onto the defaults and validate.

        Raises:
            ConfigurationError: Listing every validation problem
        """
        merged = ConfigManager.merge_configs(
            ConfigManager.get_default_config(), overrides or {}
        )
        try:
            return AnalysisConfig.model_validate(merged)
        except ValidationError as e:
            raise ConfigurationError(_format_pydantic_errors(e)) from e
