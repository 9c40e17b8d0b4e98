"""picksafe: a local, passphrase-protected credential safe."""

__version__ = '0.1.0'
