"""Italian long-form date parsing ("28 maggio 2025")."""

import re
from datetime import date

ITALIAN_MONTHS = {
    "gennaio": 1,
    "febbraio": 2,
    "marzo": 3,
    "aprile": 4,
    "maggio": 5,
    "giugno": 6,
    "luglio": 7,
    "agosto": 8,
    "settembre": 9,
    "ottobre": 10,
    "novembre": 11,
    "dicembre": 12,
}

# Date-shaped: "<day> <word> <year>". The word is only checked against the
# month table at parse time.
DATE_SHAPE = r"\d{1,2}\s+[A-Za-zàèéìòùÀÈÉÌÒÙ]+\s+\d{4}"

_DATE_PARTS = re.compile(r"(\d{1,2})\s+([A-Za-zàèéìòùÀÈÉÌÒÙ]+)\s+(\d{4})")


def parse_italian_date(value: str) -> date | None:
    """Parse "<day> <Italian month> <year>"; ``None`` if it is not a real date."""
    parts = _DATE_PARTS.search(value)
    if not parts:
        return None

    month = ITALIAN_MONTHS.get(parts.group(2).lower())
    if month is None:
        return None

    try:
        return date(int(parts.group(3)), month, int(parts.group(1)))
    except ValueError:
        return None
