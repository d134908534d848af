"""Access token persistence. The backend is the only authority on validity."""

import logging

from ..storage import Storage

log = logging.getLogger(__name__)

_KEY = "access_token"


def _mask(token: str) -> str:
    return f"{token[:6]}…" if len(token) > 6 else "…"


class AccessTokenStore:
    def __init__(self, storage: Storage):
        self._storage = storage

    @property
    def access_token(self) -> str | None:
        return self._storage.get_string(_KEY) or None

    @property
    def is_authenticated(self) -> bool:
        return self.access_token is not None

    def save(self, access_token: str) -> bool:
        """Overwrite the stored token. Last write wins, no merge."""
        ok = self._storage.set_string(_KEY, access_token)
        if ok:
            log.info("Access token saved (%s)", _mask(access_token))
        return ok

    def rotate(self, new_token: str | None) -> bool:
        """Persist ``new_token`` if the backend issued one."""
        if not new_token:
            return False
        return self.save(new_token)

    def clear(self) -> bool:
        ok = self._storage.remove(_KEY)
        if ok:
            log.info("Access token cleared")
        return ok
