# picksafe/core/session.py
import logging
from typing import Callable, Optional


class Session:
    """Caches the master passphrase for one invocation.

    The provider is called the first time the passphrase is needed; the
    value lives in memory only and is dropped with the session.
    """

    def __init__(self, passphrase_provider: Callable[[], str]):
        self._provider = passphrase_provider
        self._passphrase: Optional[str] = None

    def passphrase(self) -> str:
        if self._passphrase is None:
            logging.debug("Requesting master passphrase from provider")
            self._passphrase = self._provider()
        return self._passphrase

    def __call__(self) -> str:
        return self.passphrase()

    @property
    def is_unlocked(self) -> bool:
        return self._passphrase is not None

    def clear(self) -> None:
        self._passphrase = None
