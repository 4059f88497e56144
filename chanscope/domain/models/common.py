"""Defines common Value Objects used across different domain contexts.

These objects represent simple values like FIDs, channel ids, cursors and
cache keys, ensuring consistency and type safety.
"""

from typing import NewType, Optional, TypedDict

# === Social Graph Context ===
Fid = NewType("Fid", int)                    # Numeric subject identifier in the social graph
ChannelId = NewType("ChannelId", str)        # Stable channel identifier (e.g. 'base')

# === Pagination Context ===
Cursor = NewType("Cursor", str)              # Opaque continuation token, passed through verbatim

# === Caching Context ===
CacheKey = NewType("CacheKey", int)          # Cache entries are keyed by FID


# --- Structured Data ---
class BackoffPolicy(TypedDict):
    """Value Object representing retry backoff configuration."""
    max_attempts: int
    base_delay: float


def parse_fid(raw: object) -> Optional[Fid]:
    """Coerces caller input into a Fid, or None if it is absent or not a positive integer."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return Fid(raw) if raw > 0 else None
    text = str(raw).strip()
    if not text.isdigit():
        return None
    value = int(text)
    return Fid(value) if value > 0 else None
