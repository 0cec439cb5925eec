"""Construction of the managed Kubernetes Secret object."""

import base64
from collections.abc import Mapping

from kubernetes import client

from asecret_sync.models import API_GROUP, API_VERSION, ASECRET_KIND, ClusterSecretState, SecretSpec

SECRET_TYPE_OPAQUE = "Opaque"


def encode_secret_data(data: Mapping[str, bytes]) -> dict[str, str]:
    """Base64-encode values for the ``data`` field of a V1Secret."""
    return {key: base64.b64encode(value).decode("ascii") for key, value in data.items()}


def decode_secret_data(data: Mapping[str, str] | None) -> dict[str, bytes]:
    """Decode the base64 ``data`` field of a V1Secret."""
    return {key: base64.b64decode(value or "") for key, value in (data or {}).items()}


def apply_secret_template(spec: SecretSpec, secret: client.V1Secret) -> None:
    """Apply the ASecret's target secret template to a secret.

    Template labels and annotations are merged onto the existing ones,
    with the template winning on conflicts. The secret type is taken from
    the template, defaulting to Opaque.

    Args:
        spec: The parsed ASecret.
        secret: The secret to modify in place.

    """
    template = spec.template
    if template is None:
        return

    if template.labels:
        secret.metadata.labels = {**(secret.metadata.labels or {}), **template.labels}
    if template.annotations:
        secret.metadata.annotations = {**(secret.metadata.annotations or {}), **template.annotations}
    secret.type = template.type or SECRET_TYPE_OPAQUE


def build_owner_reference(spec: SecretSpec) -> client.V1OwnerReference:
    """Build the controller owner reference pointing at the ASecret."""
    return client.V1OwnerReference(
        api_version=f"{API_GROUP}/{API_VERSION}",
        kind=ASECRET_KIND,
        name=spec.name,
        uid=spec.uid,
        controller=True,
        block_owner_deletion=True,
    )


def build_secret_body(spec: SecretSpec, data: Mapping[str, bytes], existing: ClusterSecretState) -> client.V1Secret:
    """Build the secret to create or update from the merged values.

    An existing secret is reused so that its resource version and any
    metadata not managed here survive the update. A new secret is owned
    by the ASecret and starts as Opaque.

    Args:
        spec: The parsed ASecret.
        data: The merged value set.
        existing: The secret as read in this cycle.

    Returns:
        The secret object to send to the API.

    """
    if existing.exists and existing.secret is not None:
        secret = existing.secret
    else:
        secret = client.V1Secret(
            api_version="v1",
            kind="Secret",
            metadata=client.V1ObjectMeta(
                name=spec.target_secret_name,
                namespace=spec.namespace,
                owner_references=[build_owner_reference(spec)],
            ),
            type=SECRET_TYPE_OPAQUE,
        )

    secret.data = encode_secret_data(data)
    apply_secret_template(spec, secret)
    return secret
