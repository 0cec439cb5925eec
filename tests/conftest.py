"""Shared test fixtures for asecret-sync tests."""

import base64
from typing import Any
from unittest.mock import MagicMock, patch

import boto3
import pytest
from kubernetes import client

from asecret_sync.config import OperatorConfig
from asecret_sync.core.cluster import Cluster
from asecret_sync.core.vault import SecretsManager
from asecret_sync.models import ClusterSecretState, SecretSpec


def make_asecret(name: str = "app-secret", namespace: str = "default", **spec: Any) -> dict[str, Any]:
    """Build an ASecret custom object as returned by the API."""
    body: dict[str, Any] = {
        "targetSecretName": "app-credentials",
        "awsSecretPath": "/apps/app/credentials",
    }
    body.update(spec)
    return {
        "apiVersion": "yet-another-secrets.io/v1alpha1",
        "kind": "ASecret",
        "metadata": {"name": name, "namespace": namespace, "uid": "0b8e-uid"},
        "spec": body,
    }


def make_spec(**spec: Any) -> SecretSpec:
    """Build a parsed SecretSpec."""
    return SecretSpec.from_resource(make_asecret(**spec))


def make_v1_secret(
    data: dict[str, bytes],
    labels: dict[str, str] | None = None,
    annotations: dict[str, str] | None = None,
    secret_type: str = "Opaque",
) -> client.V1Secret:
    """Build a V1Secret with base64-encoded data."""
    return client.V1Secret(
        metadata=client.V1ObjectMeta(
            name="app-credentials",
            namespace="default",
            labels=labels,
            annotations=annotations,
            resource_version="42",
        ),
        data={key: base64.b64encode(value).decode() for key, value in data.items()},
        type=secret_type,
    )


def cluster_state(values: dict[str, bytes], **kwargs: Any) -> ClusterSecretState:
    """Build an existing ClusterSecretState backed by a V1Secret."""
    secret = make_v1_secret(values, **kwargs)
    return ClusterSecretState(
        exists=True,
        values=dict(values),
        secret=secret,
    )


@pytest.fixture
def operator_config():
    """Operator configuration with the default tag set."""
    return OperatorConfig(region="us-east-1")


@pytest.fixture
def secretsmanager_client():
    """A real boto3 Secrets Manager client for use with botocore's Stubber."""
    return boto3.client(
        "secretsmanager",
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )


@pytest.fixture
def vault_store(operator_config, secretsmanager_client):
    """SecretsManager store backed by the stubbable client."""
    return SecretsManager(operator_config, client=secretsmanager_client)


@pytest.fixture
def mock_kube_contexts():
    """Mock kubernetes config contexts."""
    with patch("kubernetes.config.list_kube_config_contexts") as mock:
        mock.return_value = ([{"name": "test-context"}, {"name": "other-context"}], {"name": "test-context"})
        yield mock


@pytest.fixture
def mock_kube_config():
    """Mock kubernetes config loading."""
    with patch("kubernetes.config.load_kube_config") as mock:
        yield mock


@pytest.fixture
def mock_core_v1_api():
    """Mock CoreV1Api."""
    with patch("kubernetes.client.CoreV1Api") as mock:
        api_instance = MagicMock()
        mock.return_value = api_instance
        yield api_instance


@pytest.fixture
def mock_custom_objects_api():
    """Mock CustomObjectsApi."""
    with patch("kubernetes.client.CustomObjectsApi") as mock:
        api_instance = MagicMock()
        mock.return_value = api_instance
        yield api_instance


@pytest.fixture
def cluster(mock_kube_contexts, mock_kube_config, mock_core_v1_api, mock_custom_objects_api):  # noqa: ARG001
    """Cluster instance with mocked API clients."""
    return Cluster()


@pytest.fixture
def mock_cluster():
    """Cluster double for reconciler tests."""
    return MagicMock(spec=Cluster)


@pytest.fixture
def mock_vault():
    """SecretsManager double for reconciler tests."""
    return MagicMock(spec=SecretsManager)
