from .token_store import AccessTokenStore

__all__ = ["AccessTokenStore"]
