"""Token implementations."""
from .memory import InMemoryStableToken, InMemoryToken, Unauthorized

__all__ = ["InMemoryToken", "InMemoryStableToken", "Unauthorized"]
