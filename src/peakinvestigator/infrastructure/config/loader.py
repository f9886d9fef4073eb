"""Configuration loading and validation."""

import os
import tempfile
import yaml
from pathlib import Path
from typing import Optional, Dict, Any
from dataclasses import dataclass, field, fields

from peakinvestigator.domain.exceptions import ConfigurationError
from peakinvestigator.domain.models import Account
from peakinvestigator.infrastructure.service.client import API_VERSION
from peakinvestigator.shared.logging import get_logger

logger = get_logger(__name__)

DEFAULT_SERVER = "peakinvestigator.veritomyx.com"
DEFAULT_RTO = "RTO-24"
DEFAULT_PI_VERSION = "1.0.1"

# PREP polling cadence, in seconds
DEFAULT_PREP_CHECK_INTERVAL = 2 * 60
DEFAULT_PREP_TIMEOUT = 20 * 60


@dataclass
class PeakInvestigatorConfig:
    """Configuration for PeakInvestigator job sessions."""

    # Account
    server: str = DEFAULT_SERVER
    username: str = ""
    password: str = field(default="", repr=False)
    account: str = "0"

    # Job terms used when running unattended
    rto: Optional[str] = DEFAULT_RTO
    pi_version: Optional[str] = DEFAULT_PI_VERSION

    # Protocol
    api_version: str = API_VERSION
    request_timeout: float = 60.0

    # PREP polling
    prep_check_interval: float = DEFAULT_PREP_CHECK_INTERVAL
    prep_timeout: float = DEFAULT_PREP_TIMEOUT

    # Transfer
    work_dir: Path = field(default_factory=lambda: Path(tempfile.gettempdir()))
    sftp_host_key: Optional[str] = None
    sftp_insecure: bool = False
    transfer_timeout: float = 30.0

    def __post_init__(self):
        """Validate configuration after initialization."""
        self.work_dir = Path(self.work_dir)
        self._validate()

    def _validate(self):
        """Validate configuration values."""
        if not self.server:
            raise ConfigurationError("server is required")

        if "://" in self.server:
            raise ConfigurationError(f"server must not include a scheme: {self.server}")

        if self.request_timeout <= 0:
            raise ConfigurationError(f"request_timeout must be positive, got: {self.request_timeout}")

        if self.prep_check_interval <= 0:
            raise ConfigurationError(f"prep_check_interval must be positive, got: {self.prep_check_interval}")

        if self.prep_timeout <= 0:
            raise ConfigurationError(f"prep_timeout must be positive, got: {self.prep_timeout}")

        if self.transfer_timeout <= 0:
            raise ConfigurationError(f"transfer_timeout must be positive, got: {self.transfer_timeout}")

        if not isinstance(self.sftp_insecure, bool):
            raise ConfigurationError(f"sftp_insecure must be true or false, got: {self.sftp_insecure!r}")

    def to_account(self) -> Account:
        """
        Account credentials for signing requests.

        Raises:
            ConfigurationError: If username or password is not set
        """
        if not self.username or not self.password:
            raise ConfigurationError("username and password are required (set PI_USERNAME and PI_PASSWORD)")
        return Account(
            server=self.server,
            username=self.username,
            password=self.password,
            account_number=str(self.account),
        )


class ConfigLoader:
    """Loads and validates configuration from YAML files and environment variables."""

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize config loader.

        Args:
            config_path: Optional path to YAML config file
        """
        self.config_path = Path(config_path) if config_path else Path("peakinvestigator.yaml")
        self._logger = get_logger(__name__)

    def load(self, overrides: Optional[Dict[str, Any]] = None) -> PeakInvestigatorConfig:
        """
        Load configuration from file and environment.

        Environment variables take precedence over the config file, and
        overrides take precedence over both.

        Returns:
            PeakInvestigatorConfig instance

        Raises:
            ConfigurationError: If configuration is invalid
        """
        config_dict: Dict[str, Any] = {}

        if self.config_path.exists():
            self._logger.info(f"Loading config from {self.config_path}")
            try:
                with open(self.config_path, 'r') as f:
                    yaml_config = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Invalid YAML in {self.config_path}: {e}") from e
            if not isinstance(yaml_config, dict):
                raise ConfigurationError(f"Config file {self.config_path} must contain a mapping")
            config_dict.update(yaml_config)
        else:
            self._logger.debug(f"Config file not found: {self.config_path}")

        config_dict.update(self._load_from_env())

        if overrides:
            for k, v in overrides.items():
                if v is None:
                    continue
                config_dict[k] = v

        valid_fields = {f.name for f in fields(PeakInvestigatorConfig)}
        unknown = sorted(set(config_dict) - valid_fields)
        if unknown:
            self._logger.warning(f"Ignoring unknown config keys: {', '.join(unknown)}")

        filtered_config = {k: v for k, v in config_dict.items() if k in valid_fields}

        try:
            return PeakInvestigatorConfig(**filtered_config)
        except TypeError as e:
            raise ConfigurationError(f"Invalid configuration: {e}")

    def _load_from_env(self) -> Dict[str, Any]:
        """Load configuration from environment variables."""
        env_config: Dict[str, Any] = {}

        # Account
        if server := os.getenv("PI_SERVER"):
            env_config["server"] = server

        if username := os.getenv("PI_USERNAME"):
            env_config["username"] = username

        if password := os.getenv("PI_PASSWORD"):
            env_config["password"] = password

        if account := os.getenv("PI_ACCOUNT"):
            env_config["account"] = account

        # Job terms
        if rto := os.getenv("PI_RTO"):
            env_config["rto"] = rto

        if pi_version := os.getenv("PI_VERSION"):
            env_config["pi_version"] = pi_version

        if api_version := os.getenv("PI_API_VERSION"):
            env_config["api_version"] = api_version

        # Timing
        for env_name, key in (
            ("PI_REQUEST_TIMEOUT", "request_timeout"),
            ("PI_PREP_CHECK_INTERVAL", "prep_check_interval"),
            ("PI_PREP_TIMEOUT", "prep_timeout"),
            ("PI_TRANSFER_TIMEOUT", "transfer_timeout"),
        ):
            if value := os.getenv(env_name):
                try:
                    env_config[key] = float(value)
                except ValueError:
                    self._logger.warning(f"Invalid {env_name} value: {value}")

        # Transfer
        if work_dir := os.getenv("PI_WORK_DIR"):
            env_config["work_dir"] = Path(work_dir)

        if host_key := os.getenv("PI_SFTP_HOST_KEY"):
            env_config["sftp_host_key"] = host_key

        if insecure := os.getenv("PI_SFTP_INSECURE"):
            env_config["sftp_insecure"] = insecure.strip().lower() in ("1", "true", "yes")

        return env_config
