"""Detection of vault writes that are actually needed.

Only key-set membership is compared: a key whose value differs between
the merged set and the vault does not trigger a write on its own.
"""

from collections.abc import Mapping

from icecream import ic

from asecret_sync.models import SecretSpec, VaultSecretState


def filter_vault_update_data(spec: SecretSpec, data: Mapping[str, bytes]) -> dict[str, bytes]:
    """Drop keys declared with ``onlyImportRemote`` from a value set.

    Args:
        spec: The parsed ASecret.
        data: The merged value set.

    Returns:
        The values eligible to be written to the vault.

    """
    return {key: value for key, value in data.items() if not spec.is_import_only_key(key)}


def calculate_key_differences(local: Mapping[str, object], remote: Mapping[str, object]) -> tuple[bool, bool]:
    """Compare two key sets.

    Returns:
        ``(missing, extra)``: whether ``local`` has keys absent from
        ``remote``, and whether ``remote`` has keys absent from ``local``.

    """
    missing = not local.keys() <= remote.keys()
    extra = not remote.keys() <= local.keys()
    return missing, extra


def needs_vault_update(spec: SecretSpec, data: Mapping[str, bytes], vault: VaultSecretState) -> bool:
    """Decide whether the vault secret must be written.

    Args:
        spec: The parsed ASecret.
        data: The merged value set.
        vault: The vault state read in this cycle.

    Returns:
        True if the vault secret does not exist or its key set differs
        from the merged set once import-only keys are excluded.

    """
    if not vault.exists:
        return True
    missing, extra = calculate_key_differences(filter_vault_update_data(spec, data), vault.values)
    ic(missing, extra)
    return missing or extra
