"""Secret value processing subpackage.

This package contains the pure parts of a reconciliation: payload
encoding, value generation, merging, change detection and construction
of the managed Secret object.
"""

from asecret_sync.secrets.changes import calculate_key_differences, filter_vault_update_data, needs_vault_update
from asecret_sync.secrets.codec import decode_secret_value, encode_secret_value, validate_binary_keys
from asecret_sync.secrets.generation import generate_random_string, validate_generator_spec
from asecret_sync.secrets.merge import merge_secret_data, prune_unmanaged_keys
from asecret_sync.secrets.template import apply_secret_template, build_owner_reference, build_secret_body

__all__ = [
    # changes
    "needs_vault_update",
    "filter_vault_update_data",
    "calculate_key_differences",
    # codec
    "encode_secret_value",
    "decode_secret_value",
    "validate_binary_keys",
    # generation
    "generate_random_string",
    "validate_generator_spec",
    # merge
    "merge_secret_data",
    "prune_unmanaged_keys",
    # template
    "apply_secret_template",
    "build_owner_reference",
    "build_secret_body",
]
