"""Data models for asecret-sync.

This module provides type-safe views of the ASecret and AGenerator custom
resources and of the per-cycle state read from both secret stores,
replacing the loosely-typed dictionaries returned by the Kubernetes API.
"""

import re
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from typing import Any, NamedTuple

from asecret_sync.exceptions import GeneratorValidationError, SecretValidationError

API_GROUP = "yet-another-secrets.io"
API_VERSION = "v1alpha1"
ASECRET_KIND = "ASecret"
ASECRET_PLURAL = "asecrets"
AGENERATOR_PLURAL = "agenerators"

DEFAULT_GENERATOR_LENGTH = 16
DEFAULT_SPECIAL_CHARS = "!@#$%^&*()-_=+[]{}|;:,.<>?/"

_DURATION_PATTERN = re.compile(r"^[-+]?(?:\d+(?:\.\d*)?(?:ns|us|µs|ms|s|m|h))+$")
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?)(ns|us|µs|ms|s|m|h)")
_DURATION_UNITS = {
    "ns": timedelta(microseconds=0.001),
    "us": timedelta(microseconds=1),
    "µs": timedelta(microseconds=1),
    "ms": timedelta(milliseconds=1),
    "s": timedelta(seconds=1),
    "m": timedelta(minutes=1),
    "h": timedelta(hours=1),
}


def parse_duration(text: str) -> timedelta:
    """Parse a Kubernetes duration string such as ``10m``, ``1h30m`` or ``-5m``.

    Args:
        text: The duration string.

    Returns:
        The parsed duration.

    Raises:
        SecretValidationError: If the string is not a valid duration.

    """
    value = text.strip()
    if value in ("0", "-0", "+0"):
        return timedelta(0)
    if not _DURATION_PATTERN.match(value):
        raise SecretValidationError(f"Invalid duration '{text}'")
    total = timedelta(0)
    for amount, unit in _DURATION_PART.findall(value):
        total += float(amount) * _DURATION_UNITS[unit]
    return -total if value.startswith("-") else total


def _string_map(raw: Any, field_name: str) -> dict[str, str]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise SecretValidationError(f"Field '{field_name}' must be a mapping")
    return {str(k): str(v) for k, v in raw.items()}


class ValueType(str, Enum):
    """Supported vault-side payload encodings.

    Inherits from str so the value can be compared against the raw
    ``spec.valueType`` string of the custom resource.
    """

    KV = "kv"
    JSON = "json"
    BINARY = "binary"


class Outcome(str, Enum):
    """Terminal outcome of one reconciliation cycle."""

    SUCCESS = "success"
    RETRYABLE_FAILURE = "retryable-failure"
    VALIDATION_FAILURE = "validation-failure"
    NOT_FOUND = "not-found"


class ObjectRef(NamedTuple):
    """Namespace and name identifying an ASecret.

    Attributes:
        namespace: The namespace of the resource.
        name: The resource name.

    """

    namespace: str
    name: str

    @classmethod
    def parse(cls, text: str, default_namespace: str = "default") -> "ObjectRef":
        """Parse ``namespace/name`` (or a bare ``name`` in the default namespace)."""
        namespace, sep, name = text.partition("/")
        if not sep:
            return cls(namespace=default_namespace, name=namespace)
        if not namespace or not name:
            raise ValueError(f"Invalid resource reference '{text}', expected NAMESPACE/NAME")
        return cls(namespace=namespace, name=name)

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


@dataclass(frozen=True, slots=True)
class DataSource:
    """Resolution rule for one declared secret key.

    Attributes:
        value: Static value used when the key is missing from both stores.
        generator_ref: Name of the AGenerator used when no static value is set.
        only_import_remote: If True the key is only ever read from the vault.

    """

    value: str = ""
    generator_ref: str | None = None
    only_import_remote: bool = False

    @classmethod
    def from_resource(cls, raw: dict[str, Any] | None) -> "DataSource":
        raw = raw or {}
        generator = raw.get("generatorRef") or {}
        return cls(
            value=raw.get("value") or "",
            generator_ref=generator.get("name") or None,
            only_import_remote=bool(raw.get("onlyImportRemote", False)),
        )


@dataclass(frozen=True, slots=True)
class GeneratorSpec:
    """Configuration of a random value generator (the AGenerator spec).

    Attributes:
        length: Number of characters to generate.
        include_uppercase: Include ``A-Z``.
        include_lowercase: Include ``a-z``.
        include_numbers: Include ``0-9``.
        include_special_chars: Include the characters of ``special_chars``.
        special_chars: The special character set.

    """

    length: int = DEFAULT_GENERATOR_LENGTH
    include_uppercase: bool = True
    include_lowercase: bool = True
    include_numbers: bool = True
    include_special_chars: bool = True
    special_chars: str = DEFAULT_SPECIAL_CHARS

    @classmethod
    def from_resource(cls, resource: dict[str, Any]) -> "GeneratorSpec":
        """Build a GeneratorSpec from an AGenerator object, applying schema defaults.

        Raises:
            GeneratorValidationError: If ``length`` is not an integer.

        """
        spec = resource.get("spec") or {}
        try:
            length = int(spec.get("length", DEFAULT_GENERATOR_LENGTH))
        except (TypeError, ValueError) as err:
            raise GeneratorValidationError(f"Generator length must be an integer: {err}") from err
        return cls(
            length=length,
            include_uppercase=bool(spec.get("includeUppercase", True)),
            include_lowercase=bool(spec.get("includeLowercase", True)),
            include_numbers=bool(spec.get("includeNumbers", True)),
            include_special_chars=bool(spec.get("includeSpecialChars", True)),
            special_chars=spec.get("specialChars", DEFAULT_SPECIAL_CHARS),
        )


@dataclass(frozen=True, slots=True)
class SecretTemplate:
    """Metadata applied to the managed Kubernetes Secret.

    Attributes:
        labels: Labels merged onto the secret.
        annotations: Annotations merged onto the secret.
        type: Secret type; Opaque when unset.

    """

    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)
    type: str | None = None


@dataclass(frozen=True, slots=True)
class SecretSpec:
    """Desired composition and storage target of one secret (the ASecret spec).

    Attributes:
        name: Name of the ASecret.
        namespace: Namespace of the ASecret and of the managed secret.
        uid: UID of the ASecret, used for the owner reference.
        target_secret_name: Name of the managed Kubernetes Secret.
        aws_secret_path: Secret id in AWS Secrets Manager.
        kms_key_id: KMS key used when creating the vault secret.
        data: Declared keys and their resolution rules.
        tags: Tags applied to the vault secret.
        only_import_remote: Import everything from the vault, never write it.
        value_type: Vault payload encoding.
        refresh_interval: Delay between successful cycles.
        template: Metadata for the managed secret.

    """

    name: str
    namespace: str
    target_secret_name: str
    aws_secret_path: str
    uid: str = ""
    kms_key_id: str = ""
    data: dict[str, DataSource] = field(default_factory=dict)
    tags: dict[str, str] = field(default_factory=dict)
    only_import_remote: bool = False
    value_type: ValueType = ValueType.KV
    refresh_interval: timedelta | None = None
    template: SecretTemplate | None = None

    @classmethod
    def from_resource(cls, resource: dict[str, Any]) -> "SecretSpec":
        """Build a SecretSpec from an ASecret object as returned by the API.

        Args:
            resource: The custom object dictionary.

        Returns:
            The parsed ASecret.

        Raises:
            SecretValidationError: If a required field is missing or a field
                has an invalid value.

        """
        metadata = resource.get("metadata") or {}
        spec = resource.get("spec") or {}

        target = spec.get("targetSecretName")
        path = spec.get("awsSecretPath")
        if not target:
            raise SecretValidationError("Field 'targetSecretName' is required")
        if not path:
            raise SecretValidationError("Field 'awsSecretPath' is required")

        raw_type = spec.get("valueType") or ValueType.KV.value
        try:
            value_type = ValueType(raw_type)
        except ValueError as err:
            raise SecretValidationError(
                f"Unsupported valueType '{raw_type}', expected one of: {', '.join(t.value for t in ValueType)}"
            ) from err

        refresh = spec.get("refreshInterval")
        raw_template = spec.get("targetSecretTemplate")
        template = None
        if raw_template is not None:
            template = SecretTemplate(
                labels=_string_map(raw_template.get("labels"), "targetSecretTemplate.labels"),
                annotations=_string_map(raw_template.get("annotations"), "targetSecretTemplate.annotations"),
                type=raw_template.get("type") or None,
            )

        return cls(
            name=metadata.get("name", ""),
            namespace=metadata.get("namespace", ""),
            uid=metadata.get("uid", ""),
            target_secret_name=target,
            aws_secret_path=path,
            kms_key_id=spec.get("kmsKeyId") or "",
            data={key: DataSource.from_resource(source) for key, source in (spec.get("data") or {}).items()},
            tags=_string_map(spec.get("tags"), "tags"),
            only_import_remote=bool(spec.get("onlyImportRemote", False)),
            value_type=value_type,
            refresh_interval=parse_duration(refresh) if refresh else None,
            template=template,
        )

    def is_import_only_key(self, key: str) -> bool:
        """Return True if ``key`` is declared with ``onlyImportRemote``."""
        source = self.data.get(key)
        return source is not None and source.only_import_remote


@dataclass(frozen=True, slots=True)
class VaultSecretState:
    """Secret values read from AWS Secrets Manager in the current cycle.

    Attributes:
        exists: Whether the vault secret exists.
        values: Decoded values; empty when the secret does not exist.

    """

    exists: bool
    values: dict[str, bytes] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ClusterSecretState:
    """The managed Kubernetes Secret as read in the current cycle.

    Attributes:
        exists: Whether the secret exists.
        values: Decoded secret data.
        secret: The V1Secret object; its metadata and resource version are
            carried into the update.

    """

    exists: bool
    values: dict[str, bytes] = field(default_factory=dict)
    secret: Any = None


@dataclass(frozen=True, slots=True)
class ReconcileResult:
    """Result of one reconciliation cycle.

    Attributes:
        outcome: How the cycle ended.
        requeue_after: Delay before the next cycle, or None for no requeue.
        error: The error that ended the cycle, if any.

    """

    outcome: Outcome
    requeue_after: timedelta | None = None
    error: Exception | None = None
