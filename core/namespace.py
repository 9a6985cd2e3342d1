from typing import Final, Tuple
from core.errors import ConfigurationError

SUPPORTED_WIDTHS: Final[Tuple[int, ...]] = (8, 10)

# Celestia v0 namespaces: 1 version byte + 28 id bytes, user id in the tail.
NAMESPACE_VERSION_ZERO: Final[int] = 0
NAMESPACE_ID_SIZE: Final[int] = 28
NAMESPACE_SIZE: Final[int] = 1 + NAMESPACE_ID_SIZE


def encode(label: str, width: int = 10) -> bytes:
    """
    Map a plaintext label to a fixed-width namespace id.

    Label bytes (UTF-8) are copied left-aligned; shorter labels are zero-padded
    on the right, longer ones truncated to exactly `width` bytes.
    """
    if width not in SUPPORTED_WIDTHS:
        raise ConfigurationError(
            f"namespace width must be one of {SUPPORTED_WIDTHS}, got {width}",
            data={"width": width},
        )
    raw = label.encode("utf-8")[:width]
    return raw.ljust(width, b"\x00")


def to_wire(namespace_id: bytes) -> bytes:
    """Full 29-byte v0 namespace: version byte, zero padding, then the id."""
    if len(namespace_id) > NAMESPACE_ID_SIZE:
        raise ConfigurationError("namespace id longer than 28 bytes")
    return bytes([NAMESPACE_VERSION_ZERO]) + namespace_id.rjust(NAMESPACE_ID_SIZE, b"\x00")
