import os
import tempfile
from pathlib import Path
from typing import Union

from ..errors import StorageError
from ..logging import get_logger

logger = get_logger(__name__)


def atomic_write(target_path: Union[str, Path], data: bytes, mode: int = 0o600) -> None:
    """
    Replace ``target_path`` with ``data`` in one step.

    The bytes go to a temporary file in the same directory, are fsync'd, and
    the file is moved over the target with os.replace, so readers see either
    the previous content or the new content, never a partial file.
    """
    target = Path(target_path)

    try:
        fd, temp_name = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.", suffix=".tmp")
    except OSError as e:
        raise StorageError(f"cannot create temporary file: {e.strerror}", path=str(target),
                           code="DT_STORAGE_WRITE_FAILED") from e

    try:
        with os.fdopen(fd, "wb") as tf:
            os.fchmod(tf.fileno(), mode)
            tf.write(data)
            tf.flush()
            os.fsync(tf.fileno())
        os.replace(temp_name, target)
    except OSError as e:
        logger.error(f"Failed to perform atomic write to {target}: {e}")
        if os.path.exists(temp_name):
            os.unlink(temp_name)
        raise StorageError(f"cannot write file: {e.strerror}", path=str(target),
                           code="DT_STORAGE_WRITE_FAILED") from e

    _fsync_directory(target.parent)


def _fsync_directory(directory: Path) -> None:
    # Makes the rename durable; not every filesystem supports opening a directory
    try:
        dir_fd = os.open(directory, os.O_RDONLY)
    except OSError:
        return
    try:
        os.fsync(dir_fd)
    except OSError:
        pass
    finally:
        os.close(dir_fd)


def is_readable(path: Union[str, Path]) -> bool:
    """True iff ``path`` is an existing regular file this process can read."""
    path = Path(path)
    return path.is_file() and os.access(path, os.R_OK)


def remove_quietly(path: Union[str, Path]) -> bool:
    """
    Delete ``path`` if possible.

    Returns True when a file was removed. Absence and permission problems are
    reported as False, never raised.
    """
    try:
        os.remove(path)
    except FileNotFoundError:
        return False
    except OSError as e:
        logger.debug(f"Could not remove {path}: {e.strerror}")
        return False
    return True
