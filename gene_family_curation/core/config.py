#!/usr/bin/env python3

"""
Configuration management for the gene family curation pipeline.

Centralized configuration with support for file-based configuration
and environment variable overrides.
"""

import os
import json
from dataclasses import dataclass, asdict
from typing import Optional, Dict, Any, List

import yaml

from .data_structures import FamilySpec
from .exceptions import ConfigurationError

# Significance cutoff of the translated search; fixed for comparable counts
SEARCH_EVALUE = 1e-10


@dataclass
class PipelineConfig:
    """Centralized configuration for the gene family curation pipeline."""

    # Curation parameters
    min_length: int = 100
    gap_threshold: float = 0.3
    length_margin: int = 20

    # Corpus locations (shell-style globs, ~ expanded)
    pangenome_glob: str = "~/clean_pangenomes_UHGG/genomic_MGYG-HGUT-0*.faa"
    proteome_glob: str = "~/UHGG_proteomes/original/MGYG-HGUT-0*.faa"

    # External tools
    mafft_binary: str = "mafft"
    mafft_max_iterate: int = 1000
    hmmbuild_binary: str = "hmmbuild"
    diamond_binary: str = "diamond"
    threads: int = -1  # -1 lets mafft pick; search falls back to os.cpu_count()
    tool_timeout: Optional[float] = None  # seconds
    search_evalue: float = SEARCH_EVALUE
    build_search_database: bool = True

    # Monitoring
    memory_limit_mb: int = 4096
    enable_memory_monitoring: bool = True
    debug_mode: bool = False

    @classmethod
    def from_file(cls, config_path: str) -> 'PipelineConfig':
        """Load configuration from file (JSON or YAML)."""
        return cls.from_dict(read_config_file(config_path))

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'PipelineConfig':
        """Create configuration from dictionary."""
        # Filter out unknown keys
        known_keys = set(cls.__dataclass_fields__.keys())
        filtered_dict = {k: v for k, v in config_dict.items() if k in known_keys}

        try:
            return cls(**filtered_dict)
        except TypeError as e:
            raise ConfigurationError(f"Invalid configuration parameters: {e}")

    @classmethod
    def from_env(cls) -> 'PipelineConfig':
        """Load configuration from environment variables."""
        config = cls()

        env_mappings = {
            'FAMILY_PIPELINE_MIN_LENGTH': ('min_length', int),
            'FAMILY_PIPELINE_GAP_THRESHOLD': ('gap_threshold', float),
            'FAMILY_PIPELINE_LENGTH_MARGIN': ('length_margin', int),
            'FAMILY_PIPELINE_PANGENOME_GLOB': ('pangenome_glob', str),
            'FAMILY_PIPELINE_PROTEOME_GLOB': ('proteome_glob', str),
            'FAMILY_PIPELINE_THREADS': ('threads', int),
            'FAMILY_PIPELINE_TOOL_TIMEOUT': ('tool_timeout', float),
            'FAMILY_PIPELINE_MEMORY_LIMIT_MB': ('memory_limit_mb', int),
            'FAMILY_PIPELINE_DEBUG_MODE': ('debug_mode', lambda x: x.lower() in ('true', '1', 'yes')),
        }

        for env_var, (field_name, converter) in env_mappings.items():
            env_value = os.getenv(env_var)
            if env_value:
                try:
                    setattr(config, field_name, converter(env_value))
                except (ValueError, TypeError) as e:
                    raise ConfigurationError(f"Invalid environment variable {env_var}: {e}")

        config.validate()
        return config

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return asdict(self)

    def save_to_file(self, config_path: str) -> None:
        """Save configuration to file."""
        config_dict = self.to_dict()

        try:
            with open(config_path, 'w') as f:
                if config_path.lower().endswith(('.yaml', '.yml')):
                    yaml.safe_dump(config_dict, f, default_flow_style=False)
                else:
                    json.dump(config_dict, f, indent=2)
        except OSError as e:
            raise ConfigurationError(f"Error saving configuration: {e}")

    def validate(self) -> None:
        """Validate configuration parameters."""
        if self.min_length < 1:
            raise ConfigurationError("min_length must be >= 1")

        if not 0 < self.gap_threshold < 1:
            raise ConfigurationError("gap_threshold must be between 0 and 1 (exclusive)")

        if self.length_margin < 0:
            raise ConfigurationError("length_margin must be >= 0")

        if self.mafft_max_iterate < 0:
            raise ConfigurationError("mafft_max_iterate must be >= 0")

        if self.threads == 0 or self.threads < -1:
            raise ConfigurationError("threads must be -1 (auto) or >= 1")

        if self.tool_timeout is not None and self.tool_timeout <= 0:
            raise ConfigurationError("tool_timeout must be positive when set")

        if self.search_evalue <= 0:
            raise ConfigurationError("search_evalue must be positive")

        if self.memory_limit_mb < 100:
            raise ConfigurationError("memory_limit_mb must be >= 100")

    def __post_init__(self):
        """Validate configuration after initialization."""
        self.validate()


def read_config_file(config_path: str) -> Dict[str, Any]:
    """Read a JSON or YAML configuration mapping."""
    if not os.path.exists(config_path):
        raise ConfigurationError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, 'r') as f:
            if config_path.lower().endswith(('.yaml', '.yml')):
                config_data = yaml.safe_load(f)
            else:
                config_data = json.load(f)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Invalid configuration file format: {e}")
    except OSError as e:
        raise ConfigurationError(f"Error loading configuration: {e}")

    if not isinstance(config_data, dict):
        raise ConfigurationError(f"Configuration file must contain a mapping: {config_path}")

    return config_data


def load_config(config_path: Optional[str] = None,
                use_env: bool = True) -> PipelineConfig:
    """
    Load configuration with priority: file > environment > defaults.

    Args:
        config_path: Path to configuration file (optional)
        use_env: Whether to load environment variables

    Returns:
        PipelineConfig: Loaded configuration
    """
    config = PipelineConfig()

    if use_env:
        env_config = PipelineConfig.from_env()
        # Merge non-default values from environment
        for field_name in PipelineConfig.__dataclass_fields__:
            env_value = getattr(env_config, field_name)
            if env_value != getattr(config, field_name):
                setattr(config, field_name, env_value)

    if config_path:
        # Only keys present in the file override the environment
        file_data = read_config_file(config_path)
        file_config = PipelineConfig.from_dict(file_data)
        for field_name in PipelineConfig.__dataclass_fields__:
            if field_name in file_data:
                setattr(config, field_name, getattr(file_config, field_name))

    config.validate()
    return config


def load_family_specs(specs_path: str) -> List[FamilySpec]:
    """
    Read gene families to curate from a YAML or JSON file.

    Expected layout::

        families:
          - gene_name: tdcd
            control_path: propk_ecoli_control.faa
            negative_pattern: "bcd_1|bcd_2"
    """
    data = read_config_file(specs_path)
    entries = data.get("families")
    if not isinstance(entries, list) or not entries:
        raise ConfigurationError(f"No 'families' list in {specs_path}")

    specs = []
    for index, entry in enumerate(entries, 1):
        if not isinstance(entry, dict):
            raise ConfigurationError(f"Family entry {index} in {specs_path} is not a mapping")
        try:
            specs.append(FamilySpec(
                gene_name=str(entry.get("gene_name", "")),
                control_path=os.path.expanduser(str(entry.get("control_path", ""))),
                negative_pattern=entry.get("negative_pattern") or None,
            ))
        except ValueError as e:
            raise ConfigurationError(f"Invalid family entry {index} in {specs_path}: {e}")
    return specs
