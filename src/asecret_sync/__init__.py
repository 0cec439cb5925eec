"""asecret-sync: keep Kubernetes Secrets in sync with AWS Secrets Manager.

This package reconciles ASecret custom resources: it merges the values
held by AWS Secrets Manager, the managed Kubernetes Secret and the
ASecret declaration, then writes the result back to both stores.

Example usage:
    from asecret_sync import Cluster, OperatorConfig, Reconciler, SecretsManager

    config = OperatorConfig()
    config.load_from_env()
    reconciler = Reconciler(Cluster(), SecretsManager(config), config)
    result = reconciler.reconcile("default", "database-credentials")
"""

__version__ = "0.3.0"

from asecret_sync.config import OperatorConfig
from asecret_sync.core.cluster import Cluster
from asecret_sync.core.reconciler import Reconciler
from asecret_sync.core.vault import SecretsManager, VaultWriter
from asecret_sync.exceptions import (
    ClusterConnectionError,
    ConfigurationError,
    GeneratorNotFoundError,
    GeneratorValidationError,
    SecretDecodeError,
    SecretSyncError,
    SecretValidationError,
    TagUpdateError,
    VaultConnectionError,
)
from asecret_sync.models import Outcome, ReconcileResult, SecretSpec, ValueType

__all__ = [
    # Version
    "__version__",
    # Classes
    "Cluster",
    "OperatorConfig",
    "Reconciler",
    "SecretsManager",
    "VaultWriter",
    # Models
    "Outcome",
    "ReconcileResult",
    "SecretSpec",
    "ValueType",
    # Exceptions
    "SecretSyncError",
    "ClusterConnectionError",
    "ConfigurationError",
    "GeneratorNotFoundError",
    "GeneratorValidationError",
    "SecretDecodeError",
    "SecretValidationError",
    "TagUpdateError",
    "VaultConnectionError",
]
