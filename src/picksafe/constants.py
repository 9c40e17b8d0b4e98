from pathlib import Path

# Default location of the encrypted safe; overridden by --safe or $PICK_SAFE
SAFE_FILE = Path.home() / ".pick.safe"
SAFE_ENV_VAR = "PICK_SAFE"
SAFE_FILE_MODE = 0o600

DEFAULT_PASSWORD_LENGTH = 50

# Coded S2K iteration count (RFC 4880 3.7.1.3); 0x60 hashes 65536 bytes
S2K_COUNT = 0x60
ARMOR_LINE_LENGTH = 64
