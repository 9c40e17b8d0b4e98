# picksafe/core/credential.py
import time
from dataclasses import dataclass


@dataclass(frozen=True)
class Credential:
    """Represents a stored credential entry."""
    alias: str
    username: str
    password: str
    created_on: int

    @classmethod
    def create(cls, alias: str, username: str, password: str) -> 'Credential':
        """Create a new credential stamped with the current time."""
        if not alias:
            raise ValueError("Credential alias must not be empty.")
        if not password:
            raise ValueError("Credential password must not be empty.")
        return cls(alias=alias, username=username or "", password=password, created_on=int(time.time()))

    def to_dict(self) -> dict:
        return {
            "alias": self.alias,
            "username": self.username,
            "password": self.password,
            "createdOn": self.created_on,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Credential':
        """Rebuild a stored credential, rejecting records that break its invariants."""
        alias = data.get("alias")
        username = data.get("username")
        password = data.get("password")
        created_on = data.get("createdOn", 0)
        if username is None:
            username = ""
        if not isinstance(alias, str) or not isinstance(username, str) or not isinstance(password, str):
            raise TypeError("Credential fields must be strings.")
        if not alias or not password:
            raise ValueError("Credential alias and password must not be empty.")
        if isinstance(created_on, bool) or not isinstance(created_on, int):
            raise TypeError("Credential createdOn must be an integer.")
        return cls(alias=alias, username=username, password=password, created_on=created_on)
