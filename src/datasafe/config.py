"""Configuration management for the Data Safe toolkit."""

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from .constants import (
    DEFAULT_CACHE_DIR,
    DEFAULT_CACHE_TTL,
    DEFAULT_OCI_CONFIG_FILE,
    DEFAULT_OCI_PROFILE,
)


def parse_ttl(value: int | str) -> int:
    """
    Parse a cache TTL value.

    Args:
        value: Seconds as int or numeric string ("0" disables caching)

    Returns:
        TTL in seconds

    Raises:
        ValueError: If the value is not a non-negative integer
    """
    try:
        ttl = int(str(value).strip())
    except ValueError as e:
        raise ValueError(f"Cache TTL must be an integer number of seconds, got {value!r}") from e
    if ttl < 0:
        raise ValueError(f"Cache TTL must not be negative, got {ttl}")
    return ttl


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("true", "1", "yes", "on")


@dataclass
class OCIConfig:
    """OCI SDK connection configuration (same knobs as the oci CLI)."""

    profile: str = DEFAULT_OCI_PROFILE
    region: str | None = None
    config_file: Path = DEFAULT_OCI_CONFIG_FILE


@dataclass
class CacheConfig:
    """Listing cache configuration."""

    ttl_seconds: int = DEFAULT_CACHE_TTL  # 0 disables both cache tiers
    directory: Path = DEFAULT_CACHE_DIR

    def __post_init__(self) -> None:
        self.ttl_seconds = parse_ttl(self.ttl_seconds)
        self.directory = Path(self.directory)

    @property
    def enabled(self) -> bool:
        """Whether listings are cached at all."""
        return self.ttl_seconds > 0


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    format: str = "console"
    file: Path | None = None


@dataclass
class DataSafeConfig:
    """
    Complete configuration for the Data Safe toolkit.

    This combines all configuration sections. ``root_compartment`` is the
    default scope (name or OCID) used when a command gets no compartment.
    """

    root_compartment: str | None = None
    dry_run: bool = False
    oci: OCIConfig = field(default_factory=OCIConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_file(cls, config_path: Path) -> "DataSafeConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to YAML config file

        Returns:
            DataSafeConfig instance
        """
        try:
            with open(config_path) as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file {config_path}: {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValueError(
                f"Invalid configuration file structure in {config_path}: "
                f"expected dictionary, got {type(data).__name__}"
            )

        oci_data = dict(data.get("oci") or {})
        if oci_data.get("config_file"):
            oci_data["config_file"] = Path(oci_data["config_file"])
        oci = OCIConfig(**oci_data)

        cache_data = dict(data.get("cache") or {})
        cache = CacheConfig(**cache_data)

        logging_data = dict(data.get("logging") or {})
        if logging_data.get("file"):
            logging_data["file"] = Path(logging_data["file"])
        logging = LoggingConfig(**logging_data)

        return cls(
            root_compartment=data.get("root_compartment"),
            dry_run=bool(data.get("dry_run", False)),
            oci=oci,
            cache=cache,
            logging=logging,
        )

    def to_file(self, config_path: Path) -> None:
        """
        Save configuration to YAML file.

        Args:
            config_path: Path to save config file
        """
        data = {
            "root_compartment": self.root_compartment,
            "dry_run": self.dry_run,
            "oci": {
                "profile": self.oci.profile,
                "region": self.oci.region,
                "config_file": str(self.oci.config_file),
            },
            "cache": {
                "ttl_seconds": self.cache.ttl_seconds,
                "directory": str(self.cache.directory),
            },
            "logging": {
                k: str(v) if isinstance(v, Path) else v
                for k, v in self.logging.__dict__.items()
                if v is not None
            },
        }

        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

    @classmethod
    def from_env(cls) -> "DataSafeConfig":
        """
        Create configuration from environment variables.

        Environment variables:
            DS_ROOT_COMP: Default compartment name or OCID
            DS_CACHE_TTL: Listing cache TTL in seconds (default: 300, 0 disables)
            DS_CACHE_DIR: Listing cache directory
            OCI_CLI_PROFILE: OCI config profile (default: DEFAULT)
            OCI_CLI_REGION: Region override
            OCI_CLI_CONFIG_FILE: OCI config file (default: ~/.oci/config)
            LOG_LEVEL: Logging level (default: INFO)
            LOG_FORMAT: console or json (default: console)
            DRY_RUN: true to simulate mutations

        Returns:
            DataSafeConfig instance

        Raises:
            ValueError: If DS_CACHE_TTL is not a non-negative integer
        """
        cache = CacheConfig(
            ttl_seconds=parse_ttl(os.environ.get("DS_CACHE_TTL", str(DEFAULT_CACHE_TTL))),
            directory=Path(os.environ.get("DS_CACHE_DIR", str(DEFAULT_CACHE_DIR))),
        )

        oci = OCIConfig(
            profile=os.environ.get("OCI_CLI_PROFILE") or DEFAULT_OCI_PROFILE,
            region=os.environ.get("OCI_CLI_REGION") or None,
            config_file=Path(os.environ.get("OCI_CLI_CONFIG_FILE") or DEFAULT_OCI_CONFIG_FILE),
        )

        logging_config = LoggingConfig(
            level=os.environ.get("LOG_LEVEL", "INFO"),
            format=os.environ.get("LOG_FORMAT", "console"),
        )

        return cls(
            root_compartment=os.environ.get("DS_ROOT_COMP") or None,
            dry_run=_parse_bool(os.environ.get("DRY_RUN", "false")),
            oci=oci,
            cache=cache,
            logging=logging_config,
        )


def load_config(config_file: Path | None = None) -> DataSafeConfig:
    """
    Load configuration from file or environment variables.

    Args:
        config_file: Optional path to YAML config file

    Returns:
        DataSafeConfig instance

    Raises:
        FileNotFoundError: If config_file is specified but doesn't exist
    """
    if config_file:
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_file}")
        return DataSafeConfig.from_file(config_file)
    return DataSafeConfig.from_env()
