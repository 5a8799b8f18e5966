"""Search volume parsing.

Upstream sources report traffic in several shapes: compact strings
("200K+"), approximate counts from the RSS feed ("20,000+"), comma-grouped
strings ("12,345"), plain integers, and, for the SerpApi trending-now
endpoint, small integers that are already expressed in thousands.
Everything is mapped onto one canonical suffixed string for display and
one integer for ranking. Approximate counts are always literal; only bare
numbers are subject to the thousands heuristic.
"""

import math
import re
from typing import Optional, Union

from pydantic import BaseModel

UNKNOWN_VOLUME = "—"

_SUFFIXED = re.compile(r'[KMB]\+?$')
_APPROXIMATE = re.compile(r'^[\d,]+\+$')
_PARSEABLE = re.compile(r'^([\d.]+)\s*([KMB])?(\+)?$')
_MULTIPLIERS = {"K": 1_000, "M": 1_000_000, "B": 1_000_000_000}

Volume = Optional[Union[str, int, float]]


class VolumePolicy(BaseModel):
    """
    Magnitude inference applied to bare numbers.

    ``compact_thousands`` assumes a value in ``[1, 1000)`` is a count of
    thousands. This is a heuristic for the SerpApi feed, not something the
    upstream documents, and it misreads genuinely small counts, so it can
    be switched off.
    """

    model_config = {"frozen": True}

    compact_thousands: bool = True

    def is_compact(self, n: float) -> bool:
        return self.compact_thousands and 1 <= n < 1000


DEFAULT_POLICY = VolumePolicy()


def _round_half_up(n: float) -> int:
    return int(math.floor(n + 0.5))


def _to_number(raw: Union[str, int, float]) -> Optional[float]:
    if isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        n = float(raw)
    else:
        try:
            n = float(str(raw).replace(",", "").strip())
        except ValueError:
            return None
    if not math.isfinite(n):
        return None
    return n


def format_volume(raw: Volume, policy: VolumePolicy = DEFAULT_POLICY) -> str:
    """
    Render a volume as a canonical string.

    Examples:
        None -> "—"
        "200K+" -> "200K+"
        "50,000+" -> "50K+" (approximate count, literal)
        "500+" -> "500+"
        500 -> "500K+" (compact thousands)
        1500 -> "2K+"
        "12,345" -> "12K+"
        "n/a" -> "n/a"
    """
    if raw is None:
        return UNKNOWN_VOLUME

    if isinstance(raw, str) and _SUFFIXED.search(raw.strip()):
        return raw.strip()

    approximate = isinstance(raw, str) and bool(_APPROXIMATE.match(raw.strip()))
    n = _to_number(raw.strip()[:-1] if approximate else raw)
    if n is None:
        return str(raw)

    if approximate and n < 1_000:
        return f"{_round_half_up(n)}+"

    if not approximate and policy.is_compact(n):
        return f"{_round_half_up(n)}K+"

    if n >= 1_000_000_000:
        return f"{_round_half_up(n / 1_000_000_000)}B+"
    if n >= 1_000_000:
        return f"{_round_half_up(n / 1_000_000)}M+"
    if n >= 1_000:
        return f"{_round_half_up(n / 1_000)}K+"

    if n.is_integer():
        return str(int(n))
    return str(n)


def volume_to_number(formatted: Volume, policy: VolumePolicy = DEFAULT_POLICY) -> int:
    """
    Map a canonical volume string back to an integer for ranking.

    "2K+" -> 2000, "1.5M" -> 1500000, "500" -> 500000 under the compact
    thousands policy, while an approximate count such as "500+" stays 500.
    Unknown or malformed values rank as 0.
    """
    if formatted is None or isinstance(formatted, bool):
        return 0

    if isinstance(formatted, (int, float)):
        text = str(formatted)
    else:
        text = formatted.replace(",", "").strip()

    match = _PARSEABLE.match(text)
    if not match:
        return 0

    try:
        n = float(match.group(1))
    except ValueError:
        return 0

    suffix = match.group(2)
    if suffix:
        return _round_half_up(n * _MULTIPLIERS[suffix])
    if match.group(3):
        return _round_half_up(n)
    if policy.is_compact(n):
        return _round_half_up(n * 1_000)
    return _round_half_up(n)
