"""Core infrastructure subpackage.

This package contains the Reconciler along with the Kubernetes and
AWS Secrets Manager stores it drives.
"""

from asecret_sync.core.cluster import Cluster
from asecret_sync.core.reconciler import Reconciler
from asecret_sync.core.vault import SecretsManager, VaultWriter

__all__ = [
    "Cluster",
    "Reconciler",
    "SecretsManager",
    "VaultWriter",
]
