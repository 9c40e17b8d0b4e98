# picksafe/core/vault.py
import contextlib
import getpass
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import List, Optional, Union

from picksafe.constants import DEFAULT_PASSWORD_LENGTH, SAFE_FILE_MODE
from picksafe.core import generator
from picksafe.core.credential import Credential
from picksafe.core.encryption import EncryptionService, OpenPGPSymmetricEncryption, Passphrase
from picksafe.core.errors import CorruptSafeError, IdentityResolutionError, NotFoundError, PersistenceError
from picksafe.core.safe import Safe

PathLike = Union[str, os.PathLike]


def current_user() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError) as e:
        logging.error("Unable to resolve the local user", exc_info=e)
        raise IdentityResolutionError("Unable to determine the current user") from e


class SafeStore:
    """Creates, loads and persists safes through an encryption service."""

    def __init__(self, encryption_service: Optional[EncryptionService] = None):
        self.encryption = encryption_service or OpenPGPSymmetricEncryption()

    def create(self) -> Safe:
        safe = Safe(created_by=current_user())
        logging.debug(f"Created new safe for {safe.created_by}")
        return safe

    @staticmethod
    def exists(path: PathLike) -> bool:
        return Path(path).exists()

    def load(self, path: PathLike, passphrase: Passphrase) -> Safe:
        path = Path(path)
        if not self.exists(path):
            raise NotFoundError(f"Safe does not exist at {path}")
        try:
            envelope = path.read_bytes()
        except FileNotFoundError:
            raise NotFoundError(f"Safe does not exist at {path}") from None
        except OSError as e:
            raise PersistenceError(f"Unable to read safe at {path}") from e

        plaintext = self.encryption.decrypt(envelope, passphrase)
        try:
            payload = json.loads(plaintext.decode('utf-8'))
        except (UnicodeDecodeError, ValueError, RecursionError) as e:
            logging.error(f"Safe at {path} decrypted to an unreadable payload")
            raise CorruptSafeError("Decrypted safe is not valid JSON") from e
        safe = Safe.from_dict(payload)
        logging.debug(f"Loaded safe from {path} with {len(safe)} credential(s)")
        return safe

    def load_or_create(self, path: PathLike, passphrase: Passphrase) -> Safe:
        if self.exists(path):
            return self.load(path, passphrase)
        return self.create()

    def save(self, safe: Safe, path: PathLike, passphrase: Passphrase) -> None:
        """Encrypt ``safe`` and atomically replace the file at ``path``.

        The envelope is written to a temporary file in the same directory,
        synced, and renamed over the target, so a failed save leaves the
        previous file intact.
        """
        path = Path(path)
        payload = json.dumps(safe.to_dict(), sort_keys=True, separators=(',', ':'))
        envelope = self.encryption.encrypt(payload.encode('utf-8'), passphrase)

        try:
            fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
        except OSError as e:
            logging.error(f"Unable to create a temporary file next to {path}", exc_info=e)
            raise PersistenceError(f"Unable to write safe to {path}") from e
        try:
            with os.fdopen(fd, 'w', encoding='ascii') as f:
                # mkstemp files start at 0600; the safe must end up at SAFE_FILE_MODE.
                os.chmod(tmp_name, SAFE_FILE_MODE)
                f.write(envelope)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
        except OSError as e:
            with contextlib.suppress(OSError):
                os.unlink(tmp_name)
            logging.error(f"Unable to write safe to {path}", exc_info=e)
            raise PersistenceError(f"Unable to write safe to {path}") from e

        safe.dirty = False
        logging.debug(f"Saved safe with {len(safe)} credential(s) to {path}")


default_store = SafeStore()


def create() -> Safe:
    return default_store.create()


def exists(path: PathLike) -> bool:
    return default_store.exists(path)


def load(path: PathLike, passphrase: Passphrase) -> Safe:
    return default_store.load(path, passphrase)


def load_or_create(path: PathLike, passphrase: Passphrase) -> Safe:
    return default_store.load_or_create(path, passphrase)


def save(safe: Safe, path: PathLike, passphrase: Passphrase) -> None:
    default_store.save(safe, path, passphrase)


def add_credential(safe: Safe, alias: str, username: str, password: str) -> Credential:
    return safe.add_credential(alias, username, password)


def get_credential(safe: Safe, alias: str) -> Credential:
    return safe.get_credential(alias)


def remove_credential(safe: Safe, alias: str) -> None:
    safe.remove_credential(alias)


def list_aliases(safe: Safe) -> List[str]:
    return safe.aliases()


def generate_password(length: int = DEFAULT_PASSWORD_LENGTH) -> str:
    return generator.generate(length)
