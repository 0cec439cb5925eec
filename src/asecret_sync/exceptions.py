"""Custom exceptions for asecret-sync.

This module defines the exception hierarchy used throughout the operator
to separate transient failures, retried on a short delay, from invalid
resources that are reported and left until they are edited.
"""


class SecretSyncError(Exception):
    """Base exception for all asecret-sync errors.

    All custom exceptions in this package inherit from this class,
    allowing callers to catch all asecret-sync errors with a single
    except clause if desired.
    """

    pass


class ConfigurationError(SecretSyncError):
    """Raised when the operator configuration file cannot be loaded.

    This can occur when:
    - The file does not exist
    - The file is not valid YAML
    - The YAML document is not a mapping
    """

    pass


class ClusterConnectionError(SecretSyncError):
    """Raised when an operation against the Kubernetes API fails.

    This can occur when:
    - The kubeconfig is invalid or missing
    - The cluster is unreachable
    - An update loses an optimistic-concurrency race (HTTP 409)
    """

    pass


class VaultConnectionError(SecretSyncError):
    """Raised when a call to AWS Secrets Manager fails.

    This can occur when:
    - The endpoint cannot be resolved (missing or wrong region)
    - Credentials are missing or rejected
    - The service returns an error other than "not found"
    """

    pass


class TagUpdateError(VaultConnectionError):
    """Raised when the secret payload was updated but tagging it failed.

    The new payload is already stored; only the tag set is out of date.
    """

    pass


class SecretDecodeError(SecretSyncError):
    """Raised when a vault payload cannot be decoded for its value type."""

    pass


class SecretValidationError(SecretSyncError):
    """Raised when an ASecret cannot be applied as written.

    This typically means:
    - A binary secret resolves to more than one key
    - A field of the custom resource has an invalid value
    """

    pass


class GeneratorValidationError(SecretValidationError):
    """Raised when a generator disables every character class or has a non-positive length."""

    pass


class GeneratorNotFoundError(SecretSyncError):
    """Raised when a referenced AGenerator does not exist in the cluster."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Generator '{name}' not found")
        self.name = name
