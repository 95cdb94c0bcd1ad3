"""Credential pools for rate-limit rotation."""

from __future__ import annotations

import os
import threading
from collections.abc import Mapping


class CredentialPool:
    """An ordered ring of interchangeable credentials for one backend.

    Rotation is an explicit method call on the pool handed to a
    ``BackendInvoker``; nothing is shared between pools.
    """

    def __init__(self, credentials: list[str] | None = None) -> None:
        self._credentials = [c for c in (credentials or []) if c]
        self._position = 0
        self._lock = threading.Lock()

    @classmethod
    def from_env(
        cls,
        prefix: str,
        environ: Mapping[str, str] | None = None,
    ) -> CredentialPool:
        """Load ``PREFIX``, ``PREFIX2``, ``PREFIX3``... until one is missing.

        ``PREFIX`` itself is optional; numbering starts at 2.
        """
        env = os.environ if environ is None else environ
        credentials: list[str] = []
        if env.get(prefix):
            credentials.append(env[prefix])
        index = 2
        while env.get(f"{prefix}{index}"):
            credentials.append(env[f"{prefix}{index}"])
            index += 1
        return cls(credentials)

    @property
    def size(self) -> int:
        return len(self._credentials)

    @property
    def position(self) -> int:
        return self._position

    def __len__(self) -> int:
        return len(self._credentials)

    def current(self) -> str | None:
        """Return the credential in use, or ``None`` for an empty pool."""
        with self._lock:
            if not self._credentials:
                return None
            return self._credentials[self._position]

    def rotate(self) -> str | None:
        """Advance to the next credential and return it."""
        with self._lock:
            if not self._credentials:
                return None
            self._position = (self._position + 1) % len(self._credentials)
            return self._credentials[self._position]
