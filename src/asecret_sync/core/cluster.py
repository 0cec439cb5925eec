"""Kubernetes cluster interaction.

This module provides the Cluster class for reading ASecret and AGenerator
custom resources, reading and writing the managed Secret, and reporting
reconciliation status.
"""

from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from icecream import ic
from kubernetes import client, config
from kubernetes.client.exceptions import ApiException
from kubernetes.config.config_exception import ConfigException
from urllib3.exceptions import MaxRetryError

from asecret_sync import console
from asecret_sync.exceptions import ClusterConnectionError, GeneratorNotFoundError
from asecret_sync.models import (
    AGENERATOR_PLURAL,
    API_GROUP,
    API_VERSION,
    ASECRET_PLURAL,
    ClusterSecretState,
    GeneratorSpec,
    SecretSpec,
)
from asecret_sync.secrets.template import build_secret_body, decode_secret_data

_HTTP_NOT_FOUND = 404
_HTTP_CONFLICT = 409


def _is_not_found(error: Exception) -> bool:
    return isinstance(error, ApiException) and error.status == _HTTP_NOT_FOUND


def _api_error(action: str, error: ApiException | MaxRetryError) -> ClusterConnectionError:
    """Translate a Kubernetes client failure into a ClusterConnectionError."""
    if isinstance(error, MaxRetryError):
        return ClusterConnectionError(f"Failed to connect to the Kubernetes cluster: {error.reason}")
    if error.status == _HTTP_CONFLICT:
        return ClusterConnectionError(f"Conflict while trying to {action}; it was modified concurrently")
    return ClusterConnectionError(f"Failed to {action}: {error.status} {error.reason}")


def _timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class Cluster:
    """Manages Kubernetes API interactions for secret synchronization.

    Attributes:
        context: The kubeconfig context in use, or None in-cluster.
        core_v1: CoreV1Api client for Secrets.
        custom_objects: CustomObjectsApi client for ASecret and AGenerator.

    """

    def __init__(self, *, context: str | None = None, in_cluster: bool = False) -> None:
        """Load the cluster configuration and create API clients.

        Args:
            context: Kubeconfig context to use; the current context if None.
            in_cluster: Use the pod's service account instead of a kubeconfig.
                       Must be passed as a keyword argument.

        Raises:
            ClusterConnectionError: If the configuration cannot be loaded.

        """
        self.context: str | None = None
        if in_cluster:
            try:
                config.load_incluster_config()
            except ConfigException as e:
                raise ClusterConnectionError(f"Not running inside a cluster: {e}") from e
            console.action("Working with the in-cluster configuration")
        else:
            self.context = self._load_config(context=context)
        self.core_v1 = client.CoreV1Api()
        self.custom_objects = client.CustomObjectsApi()

    @staticmethod
    def _load_config(*, context: str | None) -> str:
        """Load the kubeconfig for the given or current context.

        Args:
            context: The context name, or None for the current context.

        Returns:
            The context name in use.

        Raises:
            ClusterConnectionError: If the kubeconfig is invalid or missing.

        """
        try:
            contexts, current_context = config.list_kube_config_contexts()
            if context is None:
                context = str(current_context["name"])
            elif context not in [c["name"] for c in contexts]:
                raise ClusterConnectionError(f"Context '{context}' not found in kubeconfig")
            config.load_kube_config(context=context)
        except ConfigException as e:
            raise ClusterConnectionError(f"Invalid or missing kubeconfig: {e}") from e
        console.action(f"Working with {console.highlight(context)} cluster")
        return context

    def get_asecret(self, namespace: str, name: str) -> dict[str, Any] | None:
        """Fetch an ASecret custom resource.

        Returns:
            The resource, or None if it does not exist.

        """
        try:
            return self.custom_objects.get_namespaced_custom_object(
                API_GROUP, API_VERSION, namespace, ASECRET_PLURAL, name
            )
        except (ApiException, MaxRetryError) as e:
            if _is_not_found(e):
                return None
            raise _api_error(f"get ASecret {namespace}/{name}", e) from e

    def get_generator(self, name: str) -> GeneratorSpec:
        """Fetch a cluster-scoped AGenerator.

        Raises:
            GeneratorNotFoundError: If the generator does not exist.
            GeneratorValidationError: If its length is not an integer.
            ClusterConnectionError: If the API call fails.

        """
        try:
            resource = self.custom_objects.get_cluster_custom_object(API_GROUP, API_VERSION, AGENERATOR_PLURAL, name)
        except (ApiException, MaxRetryError) as e:
            if _is_not_found(e):
                raise GeneratorNotFoundError(name) from e
            raise _api_error(f"get AGenerator {name}", e) from e
        return GeneratorSpec.from_resource(resource)

    def get_secret(self, namespace: str, name: str) -> ClusterSecretState:
        """Read the managed Secret.

        Returns:
            The secret state; ``exists`` is False if it is not found.

        """
        try:
            secret = self.core_v1.read_namespaced_secret(name, namespace)
        except (ApiException, MaxRetryError) as e:
            if _is_not_found(e):
                return ClusterSecretState(exists=False)
            raise _api_error(f"get Secret {namespace}/{name}", e) from e

        values = decode_secret_data(secret.data)
        ic(sorted(values))
        return ClusterSecretState(
            exists=True,
            values=values,
            secret=secret,
        )

    def write_secret(self, spec: SecretSpec, data: Mapping[str, bytes], existing: ClusterSecretState) -> None:
        """Create or update the managed Secret with the merged values.

        A new secret is owned by the ASecret; an existing one is replaced
        using its resource version, so a concurrent edit fails with a
        ClusterConnectionError.

        Args:
            spec: The secret specification.
            data: The merged value set.
            existing: The secret as read in this cycle.

        """
        body = build_secret_body(spec, data, existing)
        name = spec.target_secret_name
        if existing.exists:
            try:
                self.core_v1.replace_namespaced_secret(name, spec.namespace, body)
            except (ApiException, MaxRetryError) as e:
                raise _api_error(f"update Secret {spec.namespace}/{name}", e) from e
            console.success(f"Updated Kubernetes Secret {console.highlight(name)}")
        else:
            try:
                self.core_v1.create_namespaced_secret(spec.namespace, body)
            except (ApiException, MaxRetryError) as e:
                raise _api_error(f"create Secret {spec.namespace}/{name}", e) from e
            console.success(f"Created Kubernetes Secret {console.highlight(name)}")

    def mark_synced(self, spec: SecretSpec) -> None:
        """Record a successful sync on the ASecret status."""
        now = _timestamp()
        body = {
            "status": {
                "lastSyncTime": now,
                "conditions": [
                    {
                        "type": "Synced",
                        "status": "True",
                        "lastTransitionTime": now,
                        "reason": "ReconciliationSucceeded",
                        "message": "Secret successfully synced",
                    }
                ],
            }
        }
        try:
            self.custom_objects.patch_namespaced_custom_object_status(
                API_GROUP, API_VERSION, spec.namespace, ASECRET_PLURAL, spec.name, body
            )
        except (ApiException, MaxRetryError) as e:
            raise _api_error(f"update status of ASecret {spec.namespace}/{spec.name}", e) from e

    def __repr__(self) -> str:
        """Return a detailed string representation for debugging."""
        return f"Cluster(context={self.context!r})"
