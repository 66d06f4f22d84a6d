"""
Payload Masking
===============

XOR masking of client payloads (RFC 6455 section 5.3).

Masking is its own inverse: applying the same key twice returns the
original bytes.
"""

MASK_KEY_LENGTH = 4


def apply_mask(data: bytes, mask: bytes) -> bytes:
    """
    XOR every byte with mask[index % 4].

    Works on the whole buffer as one big integer instead of a Python
    loop per byte, which matters for multi-megabyte video frames.

    Args:
        data: Payload bytes (masked or unmasked)
        mask: 4-byte masking key

    Returns:
        The transformed payload
    """
    if len(mask) != MASK_KEY_LENGTH:
        raise ValueError(f"Masking key must be {MASK_KEY_LENGTH} bytes, got {len(mask)}")

    length = len(data)
    if length == 0:
        return b""

    repeats, rest = divmod(length, MASK_KEY_LENGTH)
    key = mask * repeats + mask[:rest]
    masked = int.from_bytes(data, "big") ^ int.from_bytes(key, "big")
    return masked.to_bytes(length, "big")
