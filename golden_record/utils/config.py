"""
Configuration Management

Loads configuration from YAML files with environment variable resolution.
"""

import os
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

import yaml
from pydantic import BaseModel, Field

from golden_record.models.entities import IdentityMode, SimulationMode

if TYPE_CHECKING:
    from golden_record.pipeline.orchestrator import PipelineContext


class SimulationConfig(BaseModel):
    """Run pacing and generation settings."""
    mode: SimulationMode = SimulationMode.AUTO
    step_delay_seconds: float = Field(default=1.5, ge=0)
    records_per_source: int = Field(default=8, ge=0)
    seed: Optional[int] = None


class HygieneConfig(BaseModel):
    """Hygiene rule toggles."""
    normalize_phone: bool = True
    lowercase_email: bool = True
    trim_whitespace: bool = True
    proper_case_names: bool = True


class IdentityConfig(BaseModel):
    """Identity resolution settings."""
    mode: IdentityMode = IdentityMode.DETERMINISTIC


class EdgeCaseConfig(BaseModel):
    """Edge cases injected after generation."""
    missing_email: bool = False
    duplicate_crm: bool = False
    mismatched_phones: bool = False


class SourcesConfig(BaseModel):
    """Source selection, either explicit catalog keys or a scenario preset."""
    selected: list[str] = Field(default_factory=list)
    preset: Optional[str] = None

    def resolve(self) -> list[str]:
        """Explicit selection wins over the preset.

        Raises:
            KeyError: If the preset is unknown
        """
        if self.selected:
            return list(self.selected)
        if self.preset:
            from golden_record.pipeline.ingest import get_preset

            return [s.value for s in get_preset(self.preset)]
        return []


class OutputConfig(BaseModel):
    """Output generation configuration."""
    directory: str = "./outputs"
    formats: list[str] = Field(default_factory=lambda: ["csv", "markdown", "json"])
    timestamp_filenames: bool = True
    max_items_per_section: int = 20


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = "INFO"
    file: Optional[str] = None


class Config(BaseModel):
    """Root configuration object."""
    simulation: SimulationConfig = Field(default_factory=SimulationConfig)
    hygiene: HygieneConfig = Field(default_factory=HygieneConfig)
    identity: IdentityConfig = Field(default_factory=IdentityConfig)
    edge_cases: EdgeCaseConfig = Field(default_factory=EdgeCaseConfig)
    sources: SourcesConfig = Field(default_factory=SourcesConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def to_context(self) -> "PipelineContext":
        """Build a PipelineContext from this configuration."""
        from golden_record.pipeline.hygiene import HygieneRules
        from golden_record.pipeline.ingest import EdgeCaseFlags
        from golden_record.pipeline.orchestrator import PipelineContext

        return PipelineContext(
            selected_sources=self.sources.resolve(),
            hygiene_rules=HygieneRules(**self.hygiene.model_dump()),
            identity_mode=self.identity.mode,
            edge_cases=EdgeCaseFlags(**self.edge_cases.model_dump()),
            simulation_mode=self.simulation.mode,
            records_per_source=self.simulation.records_per_source,
            step_delay_seconds=self.simulation.step_delay_seconds,
            seed=self.simulation.seed,
        )


def _resolve_env_vars(data: Any) -> Any:
    """Recursively resolve environment variables in config values.

    Supports ${VAR_NAME} and ${VAR_NAME:-default} syntax.
    """
    if isinstance(data, str):
        if data.startswith("${") and data.endswith("}"):
            var_expr = data[2:-1]
            if ":-" in var_expr:
                var_name, default = var_expr.split(":-", 1)
                return os.environ.get(var_name, default)
            return os.environ.get(var_expr, data)
        return data
    elif isinstance(data, dict):
        return {k: _resolve_env_vars(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [_resolve_env_vars(item) for item in data]
    return data


def load_config(
    config_path: Optional[Path] = None,
    local_config_path: Optional[Path] = None,
) -> Config:
    """Load configuration from YAML files.

    Args:
        config_path: Path to main config file (default: config.yaml)
        local_config_path: Path to local overrides (default: config.local.yaml)

    Returns:
        Merged and validated Config object
    """
    project_root = Path(__file__).parent.parent.parent

    if config_path is None:
        config_path = project_root / "config.yaml"
    if local_config_path is None:
        local_config_path = project_root / "config.local.yaml"

    config_data: dict[str, Any] = {}

    if config_path.exists():
        with open(config_path) as f:
            config_data = yaml.safe_load(f) or {}

    # Local overrides win
    if local_config_path.exists():
        with open(local_config_path) as f:
            local_data = yaml.safe_load(f) or {}
            config_data = _deep_merge(config_data, local_data)

    config_data = _resolve_env_vars(config_data)

    return Config(**config_data)


def _deep_merge(base: dict, override: dict) -> dict:
    """Deep merge two dictionaries, with override taking precedence."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result
