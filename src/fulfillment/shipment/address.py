"""Philippine street address decomposition.

Buyers type the barangay into the first address line
("123 Rizal St, Brgy. San Roque, Marikina"). The carrier wants it as a
separate district field.
"""

import re
from dataclasses import dataclass

DEFAULT_DISTRICT = "N/A"

_BARANGAY = re.compile(r",?\s*\b(?:Brgy\.?|Barangay)\s+([^,]+?)\s*(?=,|$)", re.IGNORECASE)


@dataclass(frozen=True)
class ParsedAddress:
    address_line1: str
    district: str
    district_found: bool = False


def parse_address(address_line1: str | None, fallback_district: str | None = None) -> ParsedAddress:
    """Split a barangay segment out of ``address_line1``.

    The first ``Brgy. <name>``, ``Brgy <name>`` or ``Barangay <name>``
    segment that runs to a comma or the end of the line becomes the district
    and is removed from the line together with its leading comma. Without one,
    the line is returned unchanged and the district falls back.
    """
    line = (address_line1 or "").strip()
    match = _BARANGAY.search(line)
    if not match:
        return ParsedAddress(address_line1=line, district=fallback_district or DEFAULT_DISTRICT)

    district = match.group(1).strip()
    remainder = (line[: match.start()] + line[match.end() :]).strip().strip(",").strip()
    return ParsedAddress(address_line1=remainder or line, district=district, district_found=True)
