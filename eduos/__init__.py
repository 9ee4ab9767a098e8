"""Teaching models of a heap allocator, a sector file system and a double-buffered copier."""

__version__ = "0.1.0"

__all__ = ["filesystem", "heap", "pingpong"]