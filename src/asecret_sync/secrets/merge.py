"""Computation of the target value set for one secret.

The merged set is built from three sources in priority order: the vault,
then the existing Kubernetes Secret, then the values declared in the
ASecret. Declared values only fill keys that neither store holds, and
keys marked ``onlyImportRemote`` are never created.
"""

from collections.abc import Callable

from icecream import ic

from asecret_sync import console
from asecret_sync.models import ClusterSecretState, SecretSpec, ValueType, VaultSecretState
from asecret_sync.secrets.codec import validate_binary_keys

# Maps an AGenerator name to a freshly generated value
GenerateValue = Callable[[str], str]


def prune_unmanaged_keys(spec: SecretSpec, data: dict[str, bytes]) -> None:
    """Remove every key that is not declared in ``spec.data``.

    Args:
        spec: The parsed ASecret.
        data: The value set, modified in place.

    """
    stale = [key for key in data if key not in spec.data]
    for key in stale:
        del data[key]
    if stale:
        ic(stale)
        console.step(f"Pruned {len(stale)} undeclared key(s)")


def _import_only_data(vault: VaultSecretState) -> dict[str, bytes]:
    if not vault.exists:
        console.info("No vault secret found and onlyImportRemote is set; the secret will be empty")
        return {}
    console.step(f"Imported {len(vault.values)} key(s) from the vault")
    return dict(vault.values)


def _stored_data(
    spec: SecretSpec,
    vault: VaultSecretState,
    cluster: ClusterSecretState,
    *,
    remove_remote_keys: bool,
) -> dict[str, bytes]:
    data: dict[str, bytes] = {}
    if cluster.exists:
        data.update(cluster.values)
    # The vault wins over the cluster secret
    if vault.exists:
        data.update(vault.values)
    if remove_remote_keys:
        prune_unmanaged_keys(spec, data)
    return data


def _apply_declared_data(spec: SecretSpec, data: dict[str, bytes], generate: GenerateValue) -> None:
    for key, source in spec.data.items():
        if source.only_import_remote:
            ic(key, "onlyImportRemote")
            continue
        if key in data:
            continue
        if source.value:
            data[key] = source.value.encode("utf-8")
        elif source.generator_ref:
            data[key] = generate(source.generator_ref).encode("utf-8")
            console.step(f"Generated value for key {console.highlight(key)}")


def merge_secret_data(
    spec: SecretSpec,
    vault: VaultSecretState,
    cluster: ClusterSecretState,
    generate: GenerateValue,
    *,
    remove_remote_keys: bool = False,
) -> dict[str, bytes]:
    """Compute the value set to write to both stores.

    Args:
        spec: The parsed ASecret.
        vault: Values read from the vault in this cycle.
        cluster: The managed secret as read in this cycle.
        generate: Resolves a generator name to a new value.
        remove_remote_keys: Drop stored keys that are not declared.

    Returns:
        The merged value set. Neither state object is modified.

    Raises:
        GeneratorNotFoundError: If a referenced generator does not exist.
        GeneratorValidationError: If a referenced generator is invalid.
        SecretValidationError: If a binary secret resolves to more than one key.

    """
    if spec.only_import_remote:
        data = _import_only_data(vault)
    else:
        data = _stored_data(spec, vault, cluster, remove_remote_keys=remove_remote_keys)
        _apply_declared_data(spec, data, generate)

    if spec.value_type is ValueType.BINARY:
        validate_binary_keys(data)

    ic(sorted(data))
    return data
