# picksafe/core/safe.py
import time
from typing import Dict, List, Optional

from picksafe.core.credential import Credential
from picksafe.core.errors import CorruptSafeError, DuplicateAliasError, NotFoundAliasError


class Safe:
    """The in-memory credential map with its creation metadata."""

    def __init__(self, created_by: str, created_on: Optional[int] = None,
                 credentials: Optional[Dict[str, Credential]] = None):
        self._created_on = int(time.time()) if created_on is None else created_on
        self._created_by = created_by
        self.credentials: Dict[str, Credential] = credentials if credentials is not None else {}
        self.dirty = False

    @property
    def created_on(self) -> int:
        return self._created_on

    @property
    def created_by(self) -> str:
        return self._created_by

    def add_credential(self, alias: str, username: str, password: str) -> Credential:
        if alias in self.credentials:
            raise DuplicateAliasError(alias)
        credential = Credential.create(alias, username, password)
        self.credentials[alias] = credential
        self.dirty = True
        return credential

    def get_credential(self, alias: str) -> Credential:
        try:
            return self.credentials[alias]
        except KeyError:
            raise NotFoundAliasError(alias) from None

    def remove_credential(self, alias: str) -> None:
        if alias not in self.credentials:
            raise NotFoundAliasError(alias)
        del self.credentials[alias]
        self.dirty = True

    def aliases(self) -> List[str]:
        return sorted(self.credentials)

    def __len__(self) -> int:
        return len(self.credentials)

    def to_dict(self) -> dict:
        return {
            "createdOn": self.created_on,
            "createdBy": self.created_by,
            "data": {alias: cred.to_dict() for alias, cred in self.credentials.items()},
        }

    @classmethod
    def from_dict(cls, d: dict) -> 'Safe':
        """Rebuild a safe from its serialized form.

        A null ``data`` field becomes an empty mapping. Records missing an
        alias take their key; records whose alias disagrees with their key
        are rejected.
        """
        if not isinstance(d, dict):
            raise CorruptSafeError("Safe payload is not an object")
        data = d.get("data")
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise CorruptSafeError("Safe credentials are not a mapping")
        try:
            credentials = {}
            for alias, record in data.items():
                credential = Credential.from_dict(dict(record, alias=record.get("alias") or alias))
                if credential.alias != alias:
                    raise CorruptSafeError(f"Credential stored under '{alias}' is named '{credential.alias}'")
                credentials[alias] = credential
            return cls(
                created_by=str(d.get("createdBy") or ""),
                created_on=int(d.get("createdOn") or 0),
                credentials=credentials,
            )
        except (AttributeError, TypeError, ValueError) as e:
            raise CorruptSafeError("Safe payload has an unexpected shape") from e
