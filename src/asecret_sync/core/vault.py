"""AWS Secrets Manager interaction.

This module provides the SecretsManager store wrapping a boto3 client and
the VaultWriter that creates or updates a vault secret from a merged
value set, choosing the KMS key and the tag set.
"""

from collections.abc import Mapping
from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from icecream import ic

from asecret_sync import console
from asecret_sync.config import OperatorConfig
from asecret_sync.exceptions import TagUpdateError, VaultConnectionError
from asecret_sync.models import DataSource, SecretSpec, ValueType, VaultSecretState
from asecret_sync.secrets.codec import decode_secret_value, encode_secret_value, validate_binary_keys

_NOT_FOUND_CODE = "ResourceNotFoundException"


def _is_not_found(err: ClientError) -> bool:
    return err.response.get("Error", {}).get("Code") == _NOT_FOUND_CODE


def _payload_params(payload: str | bytes) -> dict[str, str | bytes]:
    if isinstance(payload, bytes):
        return {"SecretBinary": payload}
    return {"SecretString": payload}


def _tag_list(tags: Mapping[str, str]) -> list[dict[str, str]]:
    return [{"Key": key, "Value": value} for key, value in tags.items()]


class SecretsManager:
    """Thin wrapper over the boto3 ``secretsmanager`` client.

    Every failure other than "not found" is raised as VaultConnectionError
    so the caller can retry the cycle.

    Attributes:
        config: The operator configuration.
        client: The boto3 Secrets Manager client.

    """

    def __init__(self, config: OperatorConfig, client: Any | None = None) -> None:
        """Initialize the store.

        Args:
            config: The operator configuration.
            client: An existing boto3 client; one is created from ``config`` if omitted.

        """
        self.config: OperatorConfig = config
        self.client: Any = client if client is not None else self._create_client(config)

    @staticmethod
    def _create_client(config: OperatorConfig) -> Any:
        """Create a Secrets Manager client from the operator configuration."""
        region = config.effective_region
        if not config.region:
            console.warning(f"No AWS region configured, falling back to {console.highlight(region)}")
        botocore_config = Config(
            retries={"max_attempts": config.max_retries, "mode": "standard"},
            connect_timeout=config.connect_timeout,
            read_timeout=config.read_timeout,
        )
        kwargs: dict[str, Any] = {"region_name": region, "config": botocore_config}
        if config.endpoint_url:
            console.info(f"Using custom endpoint URL {console.highlight(config.endpoint_url)}")
            kwargs["endpoint_url"] = config.endpoint_url
        ic(kwargs)
        return boto3.client("secretsmanager", **kwargs)

    def get_secret(
        self,
        path: str,
        value_type: ValueType,
        declared: Mapping[str, DataSource] | None = None,
    ) -> VaultSecretState:
        """Read and decode a vault secret.

        Args:
            path: The secret id.
            value_type: The payload encoding.
            declared: The declared data keys, used to name a binary value.

        Returns:
            The vault state; ``exists`` is False if the secret is not found.

        Raises:
            VaultConnectionError: If the call fails for any other reason.
            SecretDecodeError: If the payload is absent or malformed.

        """
        ic(path)
        try:
            response = self.client.get_secret_value(SecretId=path)
        except ClientError as err:
            if _is_not_found(err):
                console.info(f"Vault secret {console.highlight(path)} not found")
                return VaultSecretState(exists=False)
            raise VaultConnectionError(f"Failed to get vault secret '{path}': {err}") from err
        except BotoCoreError as err:
            raise VaultConnectionError(
                f"Failed to get vault secret '{path}' (check the AWS region and endpoint): {err}"
            ) from err

        field = "SecretBinary" if value_type is ValueType.BINARY else "SecretString"
        values = decode_secret_value(response.get(field), value_type, declared)
        console.step(f"Read {len(values)} key(s) from vault secret {console.highlight(path)}")
        return VaultSecretState(exists=True, values=values)

    def secret_exists(self, path: str) -> bool:
        """Return whether a vault secret exists, treating "not found" as False."""
        try:
            self.client.describe_secret(SecretId=path)
        except ClientError as err:
            if _is_not_found(err):
                return False
            raise VaultConnectionError(f"Failed to describe vault secret '{path}': {err}") from err
        except BotoCoreError as err:
            raise VaultConnectionError(f"Failed to describe vault secret '{path}': {err}") from err
        return True

    def create_secret(
        self,
        path: str,
        payload: str | bytes,
        tags: Mapping[str, str],
        kms_key_id: str = "",
    ) -> None:
        """Create a vault secret; the KMS key is omitted when empty."""
        params: dict[str, Any] = {"Name": path, **_payload_params(payload), "Tags": _tag_list(tags)}
        if kms_key_id:
            params["KmsKeyId"] = kms_key_id
        ic({k: v for k, v in params.items() if k not in ("SecretString", "SecretBinary")})
        try:
            self.client.create_secret(**params)
        except (ClientError, BotoCoreError) as err:
            raise VaultConnectionError(f"Failed to create vault secret '{path}': {err}") from err

    def put_secret_value(self, path: str, payload: str | bytes) -> None:
        """Store a new payload for an existing vault secret."""
        try:
            self.client.put_secret_value(SecretId=path, **_payload_params(payload))
        except (ClientError, BotoCoreError) as err:
            raise VaultConnectionError(f"Failed to update vault secret '{path}': {err}") from err

    def tag_secret(self, path: str, tags: Mapping[str, str]) -> None:
        """Add or overwrite tags on a vault secret."""
        try:
            self.client.tag_resource(SecretId=path, Tags=_tag_list(tags))
        except (ClientError, BotoCoreError) as err:
            raise TagUpdateError(f"Updated vault secret '{path}' but failed to tag it: {err}") from err

    def test_connection(self) -> None:
        """Verify connectivity by listing at most one secret.

        Raises:
            VaultConnectionError: If the call fails.

        """
        try:
            response = self.client.list_secrets(MaxResults=1)
        except (ClientError, BotoCoreError) as err:
            raise VaultConnectionError(f"AWS connectivity test failed: {err}") from err
        ic(len(response.get("SecretList", [])))

    def __repr__(self) -> str:
        """Return a detailed string representation for debugging."""
        return f"SecretsManager(region={self.config.effective_region!r}, endpoint_url={self.config.endpoint_url!r})"


def resolve_kms_key(spec: SecretSpec, config: OperatorConfig) -> str:
    """Choose the KMS key for a new vault secret.

    Returns:
        The ASecret's key, else the global default, else an empty string
        meaning the account's default encryption.

    """
    return spec.kms_key_id or config.default_kms_key_id


def resolve_tags(spec: SecretSpec, config: OperatorConfig) -> dict[str, str]:
    """Combine the global tags with the ASecret's tags; ASecret tags win on conflict."""
    return {**config.tags, **spec.tags}


class VaultWriter:
    """Creates or updates the vault copy of a secret.

    Attributes:
        store: The Secrets Manager store.
        config: The operator configuration providing default tags and KMS key.

    """

    def __init__(self, store: SecretsManager, config: OperatorConfig) -> None:
        self.store: SecretsManager = store
        self.config: OperatorConfig = config

    def write(self, spec: SecretSpec, data: Mapping[str, bytes]) -> None:
        """Write the merged values to the vault.

        A binary secret with no value is left untouched. The secret is
        created if a describe call reports it missing; otherwise only its
        payload is replaced, followed by a separate tag update.

        Args:
            spec: The secret specification.
            data: The merged value set.

        Raises:
            SecretValidationError: If a binary secret holds more than one key.
            VaultConnectionError: If a vault call fails.
            TagUpdateError: If the payload was updated but tagging failed.

        """
        path = spec.aws_secret_path
        if spec.value_type is ValueType.BINARY:
            validate_binary_keys(data)
            if not data:
                console.step(f"No binary value to store for {console.highlight(path)}")
                return

        payload = encode_secret_value(data, spec.value_type)
        tags = resolve_tags(spec, self.config)
        ic(path, tags)

        if not self.store.secret_exists(path):
            kms_key_id = resolve_kms_key(spec, self.config)
            if kms_key_id:
                console.step(f"Creating vault secret with KMS key {console.highlight(kms_key_id)}")
            else:
                console.step("Creating vault secret with default encryption")
            self.store.create_secret(path, payload, tags, kms_key_id)
            console.success(f"Created vault secret {console.highlight(path)}")
            return

        self.store.put_secret_value(path, payload)
        if tags:
            self.store.tag_secret(path, tags)
        console.success(f"Updated vault secret {console.highlight(path)}")
