"""Memory quantity helpers."""

from kubernetes.utils.quantity import parse_quantity

from kraftcloud_provider.errors import SpecValidationError

BYTES_PER_MEGABYTE = 1024 * 1024


def bytes_to_megabytes(num_bytes: int) -> int:
    # Remainder is dropped: 1500Ki is 1 MB, not 2.
    return num_bytes // BYTES_PER_MEGABYTE


def memory_megabytes(quantity: str) -> int:
    """
    Convert a memory quantity string such as "256Mi" to whole megabytes.

    Raises:
        SpecValidationError: If the quantity cannot be parsed or is negative.
    """
    try:
        num_bytes = int(parse_quantity(quantity))
    except (ValueError, TypeError, OverflowError) as e:
        raise SpecValidationError(
            f"failed to parse memory quantity {quantity!r}: {e}"
        ) from e

    if num_bytes < 0:
        raise SpecValidationError(f"memory quantity {quantity!r} is negative")

    return bytes_to_megabytes(num_bytes)
