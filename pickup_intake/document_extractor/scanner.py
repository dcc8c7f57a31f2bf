"""
Numeric and company-name token scanner.

Scans the normalized text once and returns every candidate token ordered by
its offset. Field strategies select "the Nth candidate" from this list, so the
ordering is part of the contract and must not be re-derived per field.
"""

import enum
import re
from dataclasses import dataclass

LEGAL_FORMS = r"(?:S\.R\.L\.|S\.P\.A\.|SPA|SRL)"
DOMAIN_KEYWORDS = ("RICYCLE", "PLASTIC", "ECO", "GREEN", "AMBIENTE")


class TokenKind(str, enum.Enum):
    LONG_NUMBER = "long_number"
    MEDIUM_NUMBER = "medium_number"
    DECIMAL_NUMBER = "decimal_number"
    COMPANY_NAME = "company_name"


@dataclass(frozen=True)
class CandidateToken:
    value: str
    kind: TokenKind
    position: int


# Pattern order doubles as the tie-break order for tokens sharing an offset.
_PATTERNS: tuple[tuple[TokenKind, re.Pattern], ...] = (
    (TokenKind.LONG_NUMBER, re.compile(r"(?<!\d)\d{9,12}(?!\d)")),
    (TokenKind.MEDIUM_NUMBER, re.compile(r"(?<!\d)\d{7,8}(?!\d)")),
    (TokenKind.DECIMAL_NUMBER, re.compile(r"\d+[,.]\d+")),
    # Legal-form prefix followed by the name: "CSS ECOLOGISTIC"
    (
        TokenKind.COMPANY_NAME,
        re.compile(r"(?<![A-Z])(?:CC|CSS|S\.R\.L\.|S\.P\.A\.|SPA|SRL) [A-Z &]{4,30}"),
    ),
    # Name ending in a legal-form suffix: "ECOLOGISTIC SPA"
    (TokenKind.COMPANY_NAME, re.compile(rf"(?<![A-Z])[A-Z][A-Z &]{{5,29}}{LEGAL_FORMS}")),
    # Name ending in a sector keyword: "DOMUS RICYCLE"
    (
        TokenKind.COMPANY_NAME,
        re.compile(rf"(?<![A-Z])[A-Z][A-Z ]{{3,19}}(?:{'|'.join(DOMAIN_KEYWORDS)})(?![A-Z])"),
    ),
)


@dataclass(frozen=True)
class ScanResult:
    """Immutable, position-ordered candidate list for one extraction pass."""

    tokens: tuple[CandidateToken, ...] = ()

    def of_kind(self, kind: TokenKind) -> list[CandidateToken]:
        return [token for token in self.tokens if token.kind == kind]

    @property
    def long_numbers(self) -> list[CandidateToken]:
        return self.of_kind(TokenKind.LONG_NUMBER)

    @property
    def medium_numbers(self) -> list[CandidateToken]:
        return self.of_kind(TokenKind.MEDIUM_NUMBER)

    @property
    def decimal_numbers(self) -> list[CandidateToken]:
        return self.of_kind(TokenKind.DECIMAL_NUMBER)

    @property
    def company_names(self) -> list[CandidateToken]:
        return self.of_kind(TokenKind.COMPANY_NAME)


def scan(text: str) -> ScanResult:
    """Collect every candidate token in ``text``, sorted by offset."""
    found: list[tuple[int, int, CandidateToken]] = []

    for order, (kind, pattern) in enumerate(_PATTERNS):
        for match in pattern.finditer(text):
            value = match.group(0).strip()
            if not value:
                continue
            found.append((match.start(), order, CandidateToken(value, kind, match.start())))

    found.sort(key=lambda item: (item[0], item[1]))
    return ScanResult(tokens=tuple(token for _, _, token in found))
