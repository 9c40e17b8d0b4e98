# picksafe/core/errors.py


class SafeError(Exception):
    """Base class for every error raised by the safe core."""


class NotFoundError(SafeError):
    """No safe file exists at the requested path."""


class NotFoundAliasError(NotFoundError):
    def __init__(self, alias: str):
        super().__init__(f"Credential with alias '{alias}' does not exist")
        self.alias = alias


class DuplicateAliasError(SafeError):
    def __init__(self, alias: str):
        super().__init__(f"Credential with alias '{alias}' already exists")
        self.alias = alias


class InvalidPassphraseError(SafeError):
    """The passphrase did not unlock the envelope."""


class MalformedEnvelopeError(SafeError):
    """The input is not an armored OpenPGP symmetric message."""


class IntegrityError(SafeError):
    """The decrypted stream is truncated or fails its integrity check."""


class CorruptSafeError(SafeError):
    """The decrypted payload is not a valid serialized safe."""


class PersistenceError(SafeError):
    """Writing the safe to disk failed."""


class IdentityResolutionError(SafeError):
    """The local user identity could not be determined."""


class RandomSourceError(SafeError):
    """The secure random source could not supply bytes."""
