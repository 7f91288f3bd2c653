from .memory import MemoryIndex

__all__ = ("MemoryIndex",)
