"""
Airport identifier normalization.

Charts are published under the FAA location identifier (LID, e.g. JFK) and,
where one is assigned, the ICAO code (e.g. KJFK). Contiguous-US ICAO codes are
the LID with a leading K, so a K-prefixed code also reaches the airport filed
under the bare LID.
"""

import re
from typing import List, Optional

_CONUS_ICAO = re.compile(r"^K[A-Z]{3}$")


def normalize(raw: str) -> str:
    """Canonical comparison form of an identifier. Never rejects input."""
    return raw.strip().upper()


def icao_alias(key: str) -> Optional[str]:
    """Return the 3-character LID for a contiguous-US ICAO code, else None."""
    key = normalize(key)
    if _CONUS_ICAO.match(key):
        return key[1:]
    return None


def lookup_keys(raw: str) -> List[str]:
    """Keys to try, in order, when looking up a caller-supplied identifier."""
    key = normalize(raw)
    keys = [key]
    alias = icao_alias(key)
    if alias:
        keys.append(alias)
    return keys
