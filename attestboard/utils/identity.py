"""
Participant identity normalization.

Relays match event authors against lowercase hex public keys. Rosters may
also name people by their bech32 ``npub`` form, which is decoded here.
"""

import re
from typing import Optional

from bech32 import bech32_decode, convertbits

NPUB_PREFIX = 'npub'
_HEX_KEY = re.compile(r'[0-9a-f]{64}')


def is_hex_key(value: str) -> bool:
    """True for a 64-character lowercase hex public key."""
    return bool(_HEX_KEY.fullmatch(value))


def normalize_identity(value: str) -> Optional[str]:
    """
    Hex public key for a hex or npub identity.

    Returns:
        Lowercase hex key, or None when the value is neither form
    """
    candidate = str(value).strip()
    if is_hex_key(candidate.lower()):
        return candidate.lower()

    if not candidate.lower().startswith(NPUB_PREFIX + '1'):
        return None
    hrp, data = bech32_decode(candidate)
    if hrp != NPUB_PREFIX or data is None:
        return None
    key = convertbits(data, 5, 8, False)
    if key is None or len(key) != 32:
        return None
    return bytes(key).hex()
