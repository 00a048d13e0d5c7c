from typing import Dict, Optional

AUTH_TOKEN_KEY = "authToken"


class SessionStore:
    """Ephemeral, process-scoped key/value store. Nothing here is ever written to disk."""

    def __init__(self):
        self._items: Dict[str, str] = {}

    def get(self, key: str = AUTH_TOKEN_KEY) -> Optional[str]:
        return self._items.get(key)

    def set(self, value: str, key: str = AUTH_TOKEN_KEY) -> None:
        self._items[key] = value

    def remove(self, key: str = AUTH_TOKEN_KEY) -> None:
        self._items.pop(key, None)

    def clear(self) -> None:
        self._items.clear()
