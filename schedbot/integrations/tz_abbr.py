"""Timezone abbreviation lookup.

Maps the abbreviations people type after a time (``20:00PST``) to a UTC
offset in minutes. Only a fixed table is supported: ambiguous abbreviations
resolve to their most common meaning (IST = India, CST = US Central).
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

_ABBREVIATIONS: dict[str, int] = {
    # UTC and Europe
    "UTC": 0,
    "GMT": 0,
    "Z": 0,
    "WET": 0,
    "WEST": 60,
    "BST": 60,
    "IST": 330,
    "CET": 60,
    "CEST": 120,
    "MET": 60,
    "MEST": 120,
    "EET": 120,
    "EEST": 180,
    "MSK": 180,
    "TRT": 180,
    # Americas
    "NST": -210,
    "NDT": -150,
    "AST": -240,
    "ADT": -180,
    "EST": -300,
    "EDT": -240,
    "CST": -360,
    "CDT": -300,
    "MST": -420,
    "MDT": -360,
    "PST": -480,
    "PDT": -420,
    "AKST": -540,
    "AKDT": -480,
    "HST": -600,
    "BRT": -180,
    "ART": -180,
    # Asia and Pacific
    "GST": 240,
    "PKT": 300,
    "ICT": 420,
    "WIB": 420,
    "SGT": 480,
    "HKT": 480,
    "AWST": 480,
    "PHT": 480,
    "JST": 540,
    "KST": 540,
    "ACST": 570,
    "ACDT": 630,
    "AEST": 600,
    "AEDT": 660,
    "NZST": 720,
    "NZDT": 780,
}


def lookup_offset(abbr: str) -> int | None:
    """Return the UTC offset in minutes for ``abbr``, or None if unknown."""
    if not abbr:
        return None
    offset = _ABBREVIATIONS.get(abbr.strip().upper())
    if offset is None:
        logger.debug("Unknown timezone abbreviation '%s'", abbr)
    return offset
