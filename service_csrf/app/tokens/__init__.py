from .store import InMemoryTokenStore, TokenProvider

__all__ = ["InMemoryTokenStore", "TokenProvider"]
