"""Vault payload encoding and decoding.

This module converts the merged key/value set to and from the payload
stored in AWS Secrets Manager. Each ValueType has one encode and one
decode function; the public functions dispatch on the type.

- ``kv``: a JSON object of string values.
- ``json``: a JSON object whose values are nested JSON where the stored
  value parses as JSON, and plain strings otherwise.
- ``binary``: the raw bytes of the single value.

String encodings store text: bytes that are not valid UTF-8 are replaced
with U+FFFD, so only ``binary`` preserves arbitrary bytes.
"""

import json
import math
from collections.abc import Mapping
from typing import Any

from icecream import ic

from asecret_sync.exceptions import SecretDecodeError, SecretValidationError
from asecret_sync.models import DataSource, ValueType

DEFAULT_BINARY_KEY = "binaryData"

# Compact, key-sorted output so equal mappings always encode identically
_JSON_SEPARATORS = (",", ":")


def _to_text(value: bytes) -> str:
    return value.decode("utf-8", errors="replace")


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


def _finite_float(text: str) -> float:
    value = float(text)
    if math.isinf(value):
        raise ValueError(f"{text} is out of range")
    return value


def _strict_loads(text: str | bytes) -> Any:
    """Parse standard JSON only: no NaN or Infinity, no overflowing numbers."""
    return json.loads(text, parse_constant=_reject_constant, parse_float=_finite_float)


def _canonical_json(value: Any) -> str:
    return json.dumps(value, separators=_JSON_SEPARATORS, sort_keys=True, ensure_ascii=False, allow_nan=False)


def _load_object(payload: str) -> dict[str, Any]:
    try:
        obj = _strict_loads(payload)
    except ValueError as err:
        raise SecretDecodeError(f"Secret payload is not valid JSON: {err}") from err
    if not isinstance(obj, dict):
        raise SecretDecodeError(f"Secret payload must be a JSON object, got {type(obj).__name__}")
    return obj


def _encode_kv(data: Mapping[str, bytes]) -> str:
    return _canonical_json({key: _to_text(value) for key, value in data.items()})


def _decode_kv(payload: str) -> dict[str, bytes]:
    values: dict[str, bytes] = {}
    for key, value in _load_object(payload).items():
        if value is None:
            value = ""
        if not isinstance(value, str):
            raise SecretDecodeError(
                f"Field '{key}' is a {type(value).__name__}; kv secrets must be a flat map of strings"
            )
        values[key] = value.encode("utf-8")
    return values


def _encode_json(data: Mapping[str, bytes]) -> str:
    obj: dict[str, Any] = {}
    for key, value in data.items():
        try:
            obj[key] = _strict_loads(value)
        except ValueError:
            obj[key] = _to_text(value)
    return _canonical_json(obj)


def _decode_json(payload: str) -> dict[str, bytes]:
    values: dict[str, bytes] = {}
    for key, value in _load_object(payload).items():
        text = value if isinstance(value, str) else _canonical_json(value)
        values[key] = text.encode("utf-8")
    return values


def _encode_binary(data: Mapping[str, bytes]) -> bytes:
    validate_binary_keys(data)
    if not data:
        return b""
    return next(iter(data.values()))


def _decode_binary(payload: bytes, declared: Mapping[str, DataSource]) -> dict[str, bytes]:
    if len(declared) > 1:
        raise SecretDecodeError(
            f"Binary secrets hold a single value, but {len(declared)} keys are declared: {', '.join(sorted(declared))}"
        )
    key = next(iter(declared), DEFAULT_BINARY_KEY)
    return {key: bytes(payload)}


def validate_binary_keys(data: Mapping[str, bytes]) -> None:
    """Ensure a binary value set holds at most one key.

    Args:
        data: The value set about to be stored.

    Raises:
        SecretValidationError: If more than one key is present.

    """
    if len(data) > 1:
        raise SecretValidationError(
            f"Binary secrets hold a single value, but {len(data)} keys were resolved: {', '.join(sorted(data))}"
        )


def encode_secret_value(data: Mapping[str, bytes], value_type: ValueType) -> str | bytes:
    """Encode a key/value set into a vault payload.

    Args:
        data: The merged value set.
        value_type: The payload encoding.

    Returns:
        A string for ``kv`` and ``json`` (stored as SecretString) or bytes
        for ``binary`` (stored as SecretBinary).

    Raises:
        SecretValidationError: If a binary value set holds more than one key.

    """
    ic(value_type, sorted(data))
    match value_type:
        case ValueType.KV:
            return _encode_kv(data)
        case ValueType.JSON:
            return _encode_json(data)
        case ValueType.BINARY:
            return _encode_binary(data)


def decode_secret_value(
    payload: str | bytes | None,
    value_type: ValueType,
    declared: Mapping[str, DataSource] | None = None,
) -> dict[str, bytes]:
    """Decode a vault payload into a key/value set.

    Args:
        payload: SecretString for ``kv``/``json``, SecretBinary for ``binary``.
        value_type: The payload encoding.
        declared: The declared data keys, used to name the binary value.

    Returns:
        The decoded values, as UTF-8 bytes for string encodings.

    Raises:
        SecretDecodeError: If the payload is absent or malformed, or if more
            than one key is declared for a binary secret.

    """
    if payload is None:
        raise SecretDecodeError(f"Secret payload is empty for value type '{value_type.value}'")

    match value_type:
        case ValueType.KV:
            return _decode_kv(_payload_text(payload))
        case ValueType.JSON:
            return _decode_json(_payload_text(payload))
        case ValueType.BINARY:
            return _decode_binary(payload if isinstance(payload, bytes) else payload.encode("utf-8"), declared or {})


def _payload_text(payload: str | bytes) -> str:
    if isinstance(payload, bytes):
        return _to_text(payload)
    return payload
