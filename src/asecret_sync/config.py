"""Operator configuration.

This module provides the OperatorConfig passed explicitly to the
reconciler and the vault writer, and its loading from a YAML file and
from environment variables.
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

import yaml

from asecret_sync.exceptions import ConfigurationError

DEFAULT_REGION = "us-east-1"
DEFAULT_MAX_RETRIES = 5
DEFAULT_TAGS = {"managed-by": "asecret-sync"}
RETRY_DELAY = timedelta(seconds=30)
DEFAULT_REFRESH_INTERVAL = timedelta(hours=1)

_TAG_ENV_PREFIX = "AWS_TAG_"
_REGION_ENV_VARS = ("AWS_REGION", "AWS_DEFAULT_REGION")
_TRUE_VALUES = {"1", "true", "yes", "on"}

# File keys accepted in addition to the attribute names
_FILE_ALIASES = {
    "awsRegion": "region",
    "awsEndpoint": "endpoint_url",
    "endpointUrl": "endpoint_url",
    "maxRetries": "max_retries",
    "connectTimeout": "connect_timeout",
    "readTimeout": "read_timeout",
    "defaultKmsKeyId": "default_kms_key_id",
    "removeRemoteKeys": "remove_remote_keys",
}


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE_VALUES


def get_default_region(environ: Mapping[str, str] | None = None) -> str:
    """Return the region from ``AWS_REGION`` or ``AWS_DEFAULT_REGION``, or an empty string."""
    environ = os.environ if environ is None else environ
    for name in _REGION_ENV_VARS:
        if region := environ.get(name):
            return region
    return ""


@dataclass(slots=True)
class OperatorConfig:
    """Process-wide settings shared by every reconciliation.

    Attributes:
        region: AWS region of the Secrets Manager endpoint.
        endpoint_url: Custom Secrets Manager endpoint.
        max_retries: Maximum attempts per AWS call.
        connect_timeout: Connection timeout for AWS calls, in seconds.
        read_timeout: Read timeout for AWS calls, in seconds.
        tags: Tags applied to every vault secret.
        default_kms_key_id: KMS key used when an ASecret sets none.
        remove_remote_keys: Prune stored keys that are no longer declared.
        retry_delay: Delay before retrying after a transient failure.
        default_refresh_interval: Delay between cycles when an ASecret sets none.

    """

    region: str = ""
    endpoint_url: str = ""
    max_retries: int = DEFAULT_MAX_RETRIES
    connect_timeout: float = 10.0
    read_timeout: float = 30.0
    tags: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_TAGS))
    default_kms_key_id: str = ""
    remove_remote_keys: bool = False
    retry_delay: timedelta = RETRY_DELAY
    default_refresh_interval: timedelta = DEFAULT_REFRESH_INTERVAL

    @classmethod
    def from_file(cls, path: str) -> "OperatorConfig":
        """Load configuration from a YAML file.

        Args:
            path: Path to the configuration file.

        Returns:
            The configuration; fields absent from the file keep their defaults.

        Raises:
            ConfigurationError: If the file does not exist, is malformed YAML,
                is not a mapping, or contains unknown keys.

        """
        try:
            with open(path) as stream:
                raw = yaml.safe_load(stream)
        except FileNotFoundError as err:
            raise ConfigurationError(f"Config file '{path}' does not exist") from err
        except yaml.YAMLError as err:
            raise ConfigurationError(f"Config file '{path}' contains malformed YAML: {err}") from err

        if raw is None:
            return cls()
        if not isinstance(raw, dict):
            raise ConfigurationError(f"Config file '{path}' does not contain a YAML mapping")

        config = cls()
        for key, value in raw.items():
            try:
                config._set_from_file(_FILE_ALIASES.get(key, key), value)
            except (TypeError, ValueError) as err:
                raise ConfigurationError(f"Invalid value for config key '{key}' in '{path}': {err}") from err
            except KeyError as err:
                raise ConfigurationError(f"Unknown config key '{key}' in '{path}'") from err
        return config

    def _set_from_file(self, name: str, value: Any) -> None:
        match name:
            case "region" | "endpoint_url" | "default_kms_key_id":
                setattr(self, name, str(value or ""))
            case "max_retries":
                self.max_retries = int(value)
            case "connect_timeout" | "read_timeout":
                setattr(self, name, float(value))
            case "remove_remote_keys":
                self.remove_remote_keys = _parse_bool(value)
            case "tags":
                if not isinstance(value, dict):
                    raise TypeError("tags must be a mapping")
                self.tags.update({str(k): str(v) for k, v in value.items()})
            case _:
                raise KeyError(name)

    def load_from_env(self, environ: Mapping[str, str] | None = None) -> None:
        """Fill unset fields from environment variables.

        ``AWS_TAG_<NAME>`` variables always add the tag ``<name>`` (lowercased).

        Args:
            environ: Environment mapping; defaults to ``os.environ``.

        """
        environ = os.environ if environ is None else environ
        if not self.region:
            self.region = get_default_region(environ)
        if not self.endpoint_url:
            self.endpoint_url = environ.get("AWS_ENDPOINT_URL", "")
        if not self.default_kms_key_id:
            self.default_kms_key_id = environ.get("DEFAULT_KMS_KEY_ID", "")
        if not self.remove_remote_keys and "REMOVE_REMOTE_KEYS" in environ:
            self.remove_remote_keys = _parse_bool(environ["REMOVE_REMOTE_KEYS"])

        for name, value in environ.items():
            if name.startswith(_TAG_ENV_PREFIX) and len(name) > len(_TAG_ENV_PREFIX):
                self.tags[name[len(_TAG_ENV_PREFIX):].lower()] = value

    @property
    def effective_region(self) -> str:
        """The configured region, falling back to us-east-1."""
        return self.region or DEFAULT_REGION
