"""Random value generation for AGenerator-backed keys."""

import secrets
import string

from asecret_sync.exceptions import GeneratorValidationError
from asecret_sync.models import GeneratorSpec


def validate_generator_spec(spec: GeneratorSpec) -> None:
    """Check that a generator can produce a value.

    Args:
        spec: The generator configuration.

    Raises:
        GeneratorValidationError: If every character class is disabled or
            the length is not positive.

    """
    if not (spec.include_uppercase or spec.include_lowercase or spec.include_numbers or spec.include_special_chars):
        raise GeneratorValidationError(
            "At least one character type (uppercase, lowercase, numbers, or special chars) must be enabled"
        )
    if spec.length <= 0:
        raise GeneratorValidationError(f"Length must be greater than 0, got {spec.length}")


def _charset(spec: GeneratorSpec) -> str:
    chars = ""
    if spec.include_uppercase:
        chars += string.ascii_uppercase
    if spec.include_lowercase:
        chars += string.ascii_lowercase
    if spec.include_numbers:
        chars += string.digits
    if spec.include_special_chars:
        chars += spec.special_chars
    return chars


def generate_random_string(spec: GeneratorSpec) -> str:
    """Generate a random string according to the generator configuration.

    Characters are drawn uniformly from the union of the enabled classes
    using a cryptographically secure source.

    Args:
        spec: The generator configuration.

    Returns:
        A string of ``spec.length`` characters.

    Raises:
        GeneratorValidationError: If the configuration is invalid or the
            enabled classes yield an empty character set.

    """
    validate_generator_spec(spec)
    chars = _charset(spec)
    if not chars:
        raise GeneratorValidationError("No character set defined for value generation")
    return "".join(secrets.choice(chars) for _ in range(spec.length))
