from .files import atomic_write, is_readable, remove_quietly

__all__ = ["atomic_write", "is_readable", "remove_quietly"]
