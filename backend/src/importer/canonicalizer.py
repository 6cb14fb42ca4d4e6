"""
Canonicalizer for Direction and Yes/No Fields
Maps the historical spellings in site headers and count rows onto closed
enumerations.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Optional, Union, Dict, List

from models.orm_site import Direction, YesNo, SiteHeader

logger = logging.getLogger(__name__)


class FieldKind(enum.Enum):
    """Which closed set a field's value belongs to."""
    DIRECTION = "direction"                  # north/east/south/west
    TRAFFIC_DIRECTION = "traffic_direction"  # also admits 'both'
    YES_NO = "yes_no"


@dataclass(frozen=True)
class Unrecognized:
    """A value outside the known set; carries the raw string untouched."""
    raw: str

    def __str__(self) -> str:
        return self.raw


CanonicalValue = Union[Direction, YesNo, Unrecognized, None]


_DIRECTION_SPELLINGS: Dict[str, Direction] = {
    "n": Direction.NORTH,
    "north": Direction.NORTH,
    "e": Direction.EAST,
    "east": Direction.EAST,
    "s": Direction.SOUTH,
    "south": Direction.SOUTH,
    "w": Direction.WEST,
    "west": Direction.WEST,
}

_BOTH_SPELLINGS: Dict[str, Direction] = {
    "b": Direction.BOTH,
    "both": Direction.BOTH,
}

_YES_NO_SPELLINGS: Dict[str, YesNo] = {
    "y": YesNo.YES,
    "yes": YesNo.YES,
    "-1": YesNo.YES,
    "n": YesNo.NO,
    "no": YesNo.NO,
    "0": YesNo.NO,
}

# Known placeholder values per field that mean "no value"
SENTINELS: Dict[str, frozenset] = {
    "indir": frozenset({"0999"}),
    "sidewalk": frozenset({"25"}),
}

# Header fields cleaned by canonicalize_header, with their kind
HEADER_FIELDS: Dict[str, FieldKind] = {
    "indir": FieldKind.DIRECTION,
    "outdir": FieldKind.DIRECTION,
    "sidewalk": FieldKind.DIRECTION,
    "trafdir": FieldKind.TRAFFIC_DIRECTION,
    "cntdir": FieldKind.TRAFFIC_DIRECTION,
    "source": FieldKind.YES_NO,
    "divided": FieldKind.YES_NO,
    "hpms": FieldKind.YES_NO,
}


def canonicalize(raw: Optional[str], kind: FieldKind, field: Optional[str] = None) -> CanonicalValue:
    """
    Map a raw field value to its canonical form.

    Args:
        raw: Value as stored or delivered
        kind: Closed set the field belongs to
        field: Field name, used to look up sentinel values

    Returns:
        Direction / YesNo member, None (blank or sentinel), or Unrecognized(raw)

    Example:
        >>> canonicalize("N", FieldKind.DIRECTION)
        <Direction.NORTH: 'north'>
        >>> canonicalize("0999", FieldKind.DIRECTION, "indir") is None
        True
    """
    if raw is None:
        return None

    value = str(raw).strip()
    if not value:
        return None

    if field and value in SENTINELS.get(field, ()):
        return None

    key = value.lower()
    if kind == FieldKind.YES_NO:
        canonical = _YES_NO_SPELLINGS.get(key)
    else:
        canonical = _DIRECTION_SPELLINGS.get(key)
        if canonical is None and kind == FieldKind.TRAFFIC_DIRECTION:
            canonical = _BOTH_SPELLINGS.get(key)

    if canonical is None:
        return Unrecognized(str(raw))
    return canonical


def is_sentinel(raw: Optional[str], field: str) -> bool:
    """True when raw is a known placeholder for the field."""
    return raw is not None and str(raw).strip() in SENTINELS.get(field, ())


@dataclass(frozen=True)
class FieldFix:
    """A change applied to a header field."""
    field: str
    old: str
    new: Optional[str]


def canonicalize_header(header: SiteHeader, reporter) -> List[FieldFix]:
    """
    Canonicalize every direction and yes/no field on a site header in place.

    Reports info for each correction, warning for each sentinel set to
    NULL, and warning for each unrecognized value (left as is).

    Args:
        header: SiteHeader to fix (changes are written to the object)
        reporter: ImportReporter for the header's site

    Returns:
        Fixes applied
    """
    fixes = []
    for field, kind in HEADER_FIELDS.items():
        raw = getattr(header, field)
        if raw is None or not str(raw).strip():
            continue

        canonical = canonicalize(raw, kind, field)

        if isinstance(canonical, Unrecognized):
            reporter.warning(f"{field}: unrecognized value '{raw}' left unchanged")
            continue

        if canonical is None:
            setattr(header, field, None)
            fixes.append(FieldFix(field, raw, None))
            reporter.warning(f"{field}: placeholder value '{raw}' set to NULL")
            continue

        if canonical.value != raw:
            setattr(header, field, canonical.value)
            fixes.append(FieldFix(field, raw, canonical.value))
            reporter.info(f"{field}: '{raw}' -> '{canonical.value}'")

    if fixes:
        logger.debug(f"Canonicalized {len(fixes)} field(s) on site {header.recordnum}")
    return fixes
