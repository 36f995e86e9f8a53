from contextlib import contextmanager
from typing import Iterator

from ..errors import BufferTooSmall


def copy_into_buffer(pem: bytes, buffer: bytearray, artifact: str) -> int:
    """
    Copy ``pem`` to the start of ``buffer`` and return the number of bytes used.

    Raises BufferTooSmall before touching the buffer when ``pem`` does not fit.
    """
    capacity = len(buffer)
    if len(pem) > capacity:
        raise BufferTooSmall(required=len(pem), capacity=capacity, artifact=artifact)
    buffer[: len(pem)] = pem
    return len(pem)


@contextmanager
def pem_buffer(capacity: int) -> Iterator[bytearray]:
    """Zero-filled buffer that is wiped when the block exits."""
    buffer = bytearray(capacity)
    try:
        yield buffer
    finally:
        buffer[:] = bytes(len(buffer))
