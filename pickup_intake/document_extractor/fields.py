"""
Heuristic field extraction for pickup order text.

Every field owns an ordered tuple of strategies. A strategy is a pure callable
``(text, scan, context) -> value | None``; the first one returning a value
wins. Fields that can fall back to a positional guess from the scanner carry a
separate ``guess`` strategy, which costs fewer confidence points than a miss.

Fields are extracted in a fixed order so later strategies can read values
found earlier (the basin-code fallback skips the order number, the basin
description is anchored on the code and flow type).
"""

import enum
import re
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Any

from pickup_intake.document_extractor.dates import DATE_SHAPE, parse_italian_date
from pickup_intake.document_extractor.scanner import ScanResult


class FieldStatus(str, enum.Enum):
    FOUND = "found"
    GUESSED = "guessed"
    MISSING = "missing"


@dataclass(frozen=True)
class FieldContext:
    """Values already extracted, visible to later strategies."""

    order_number: str = ""
    basin_code: str = ""
    flow_type: str = ""
    sender_name: str = ""


@dataclass(frozen=True)
class FieldOutcome:
    field_name: str
    value: Any
    status: FieldStatus
    strategy: str | None = None
    penalty: int = 0
    flag_for_review: bool = False


@dataclass
class FieldExtraction:
    values: dict[str, Any] = field(default_factory=dict)
    outcomes: list[FieldOutcome] = field(default_factory=list)

    def outcome(self, field_name: str) -> FieldOutcome | None:
        for outcome in self.outcomes:
            if outcome.field_name == field_name:
                return outcome
        return None


Strategy = Callable[[str, ScanResult, FieldContext], Any]


@dataclass(frozen=True)
class RegexStrategy:
    """Return capture group ``group`` of the first match of ``pattern``."""

    name: str
    pattern: re.Pattern
    group: int = 1

    def __call__(self, text: str, scan: ScanResult, context: FieldContext) -> str | None:
        match = self.pattern.search(text)
        if match is None:
            return None
        return match.group(self.group).strip() or None


@dataclass(frozen=True)
class FieldRule:
    name: str
    strategies: tuple[Strategy, ...]
    guess: Strategy | None = None
    miss_penalty: int = 0
    guess_penalty: int = 0

    @property
    def reviewed_when_missing(self) -> bool:
        return self.miss_penalty > 0


# ── Uppercase name runs ──

# Words that end a name: address markers and the next section label.
_STOP_WORDS = frozenset({
    "VIA", "VIALE", "PIAZZA", "CORSO", "STRADA", "STATALE", "ZONA", "CONTRADA",
    "LOCALITA", "LOC", "INDIRIZZO", "MITTENTE", "DESTINATARIO", "TRASPORTATORE",
    "TEL", "TELEFONO", "EMAIL", "PEC", "DATA", "DISTANZA", "NOTE", "BACINO",
    "LISTA", "TIPO", "FLUSSO", "PROD",
})
# Party prefixes may open a name but start a new party anywhere else.
_PARTY_PREFIXES = frozenset({"CC", "CSS"})
_UPPER_WORD = re.compile(r"[A-Z&][A-Z&.'\-]*")


def uppercase_run(text: str, start: int, *, min_len: int = 4, max_len: int = 30) -> str | None:
    """Read consecutive all-caps words from ``start``.

    Stops at a non-uppercase word, a stop word, a single-letter word, trailing
    punctuation, or when the run would exceed ``max_len`` characters.
    """
    words: list[str] = []
    for raw in text[start:].split():
        word = raw.rstrip(",;:")
        if not _UPPER_WORD.fullmatch(word):
            break
        if word in _STOP_WORDS or len(word) == 1:
            break
        if word in _PARTY_PREFIXES and words:
            break
        if len(" ".join([*words, word])) > max_len:
            break
        words.append(word)
        if word != raw:
            break

    name = " ".join(words)
    return name if len(name) >= min_len else None


@dataclass(frozen=True)
class LabelRunStrategy:
    """Uppercase run following a label (or starting at the label itself)."""

    name: str
    pattern: re.Pattern
    include_label: bool = False
    max_len: int = 30

    def __call__(self, text: str, scan: ScanResult, context: FieldContext) -> str | None:
        for match in self.pattern.finditer(text):
            start = match.start() if self.include_label else match.end()
            value = uppercase_run(text, start, max_len=self.max_len)
            if value:
                return value
        return None


# ── Order number ──

_ORDER_LABEL = re.compile(r"\bPROD\s+\d+\s+(\d{11,})")
_HEAD_FRACTION = 0.3


def order_from_second_long_number_in_head(text: str, scan: ScanResult, context: FieldContext) -> str | None:
    limit = len(text) * _HEAD_FRACTION
    head = [token for token in scan.long_numbers if token.position < limit]
    return head[1].value if len(head) >= 2 else None


def order_from_first_long_number(text: str, scan: ScanResult, context: FieldContext) -> str | None:
    tokens = scan.long_numbers
    return tokens[0].value if tokens else None


# ── Basin code ──

_BASIN_LIST = re.compile(r"(?i:lista\s+bacini)\D{0,60}?(\d{7})(?!\d)")
_BASIN_LABEL = re.compile(r"(?i:bacino)\D{0,60}?(\d{7})(?!\d)")


def basin_from_seven_digit_token(text: str, scan: ScanResult, context: FieldContext) -> str | None:
    # Extracted order numbers have 9+ digits; this only skips a seven-digit one from context.
    for token in scan.medium_numbers:
        if len(token.value) == 7 and token.value != context.order_number:
            return token.value
    return None


# ── Flow type ──

_FLOW_PATTERNS = (
    RegexStrategy("tipo_flusso_label", re.compile(r"(?i:tipo\s+(?:di\s+)?flusso)\s*:?\s*([ABCD])(?![A-Za-z])")),
    RegexStrategy("flusso_label", re.compile(r"(?i:flusso)\s*:?\s*([ABCD])(?![A-Za-z])")),
    RegexStrategy("lista_bacini_row", re.compile(r"(?i:lista\s+bacini)\D{0,60}?\d{7}\s+([ABCD])(?![A-Za-z])")),
    RegexStrategy("bacino_row", re.compile(r"(?i:bacino)\D{0,60}?\d{7}\s+([ABCD])(?![A-Za-z])")),
)


# ── Dates ──

_ISSUE_DATE_LABEL = re.compile(rf"(?i:data\s+emissione)(?:\s+(?i:buono))?\D{{0,20}}?({DATE_SHAPE})")
_ANY_DATE = re.compile(DATE_SHAPE)
_DATE_PAIR = re.compile(rf"({DATE_SHAPE})\s*(?:/|(?i:carico))\s*({DATE_SHAPE})")
_AVAILABILITY_DATE = re.compile(rf"(?i:data\s+disponibilit[àa])\s*:?\s*({DATE_SHAPE})")
_SCHEDULED_DATE = re.compile(rf"(?i:data\s+programmata)\s*:?\s*({DATE_SHAPE})")


def issue_date_from_label(text: str, scan: ScanResult, context: FieldContext) -> date | None:
    match = _ISSUE_DATE_LABEL.search(text)
    return parse_italian_date(match.group(1)) if match else None


def issue_date_from_any_date(text: str, scan: ScanResult, context: FieldContext) -> date | None:
    for match in _ANY_DATE.finditer(text):
        parsed = parse_italian_date(match.group(0))
        if parsed is not None:
            return parsed
    return None


def loading_unloading_dates(text: str) -> tuple[date, date] | None:
    """Both dates of the loading/unloading window, or ``None``."""
    for match in _DATE_PAIR.finditer(text):
        loading = parse_italian_date(match.group(1))
        unloading = parse_italian_date(match.group(2))
        if loading is not None and unloading is not None:
            return loading, unloading
    return None


def _labelled_date(pattern: re.Pattern, text: str) -> date | None:
    match = pattern.search(text)
    return parse_italian_date(match.group(1)) if match else None


# ── Sender / recipient ──

# Section labels that a loose match can swallow as a name.
_BLACKLIST = re.compile(r"\b(?:Distanza|Note|Data)\b")

_SENDER_LABEL = LabelRunStrategy("mittente_label", re.compile(r"(?i:mittente)\s*:?\s*"))
_SENDER_CC = LabelRunStrategy("cc_prefix", re.compile(r"(?<![A-Z])CC\s+"), include_label=True)

_RECIPIENT_CSS_LEGAL = re.compile(r"(?<![A-Z])CSS\s+[A-Z][A-Z &]{1,28}?(?:S\.R\.L\.|S\.P\.A\.|SPA|SRL)(?![A-Z])")
_RECIPIENT_CSS_PREFIX = re.compile(r"(?<![A-Z])CSS\s+")
_RECIPIENT_CSS_LOOSE = re.compile(r"(?<![A-Za-z])(?i:css)\s*:?\s*([^\d]{4,40}?)(?=\s*\d|$)")
_RECIPIENT_LABEL = LabelRunStrategy("destinatario_label", re.compile(r"(?i:destinatario)\s*:?\s*"))


def is_blacklisted(value: str) -> bool:
    return _BLACKLIST.search(value) is not None


def sender_from_first_company(text: str, scan: ScanResult, context: FieldContext) -> str | None:
    companies = scan.company_names
    return companies[0].value if companies else None


def recipient_from_css_legal_name(text: str, scan: ScanResult, context: FieldContext) -> str | None:
    for match in _RECIPIENT_CSS_LEGAL.finditer(text):
        value = match.group(0).strip()
        if not is_blacklisted(value):
            return value
    return None


def recipient_from_css_prefix(text: str, scan: ScanResult, context: FieldContext) -> str | None:
    for match in _RECIPIENT_CSS_PREFIX.finditer(text):
        value = uppercase_run(text, match.start())
        if value and not is_blacklisted(value):
            return value
    return None


def recipient_from_css_loose(text: str, scan: ScanResult, context: FieldContext) -> str | None:
    for match in _RECIPIENT_CSS_LOOSE.finditer(text):
        value = match.group(1).strip()
        if len(value) >= 4 and not is_blacklisted(value):
            return value
    return None


def recipient_from_company_candidates(text: str, scan: ScanResult, context: FieldContext) -> str | None:
    sender = context.sender_name.lower()
    for token in scan.company_names:
        if token.value.lower() != sender and not is_blacklisted(token.value):
            return token.value
    return None


# ── Distance ──

_DISTANCE_PATTERNS = (
    re.compile(r"(\d+(?:[,.]\d+)?)\s*(?i:km)(?![A-Za-z])"),
    re.compile(r"(?i:distanza)(?:\s+(?i:chilometrica))?\s*:?\s*(\d+(?:[,.]\d+)?)"),
    re.compile(r"(?<![\d,.])(\d{1,3}[,.]\d{3})(?![\d,.])"),
)
MAX_DISTANCE_KM = 10000


def parse_distance(value: str) -> float | None:
    try:
        distance = float(value.replace(",", "."))
    except ValueError:
        return None
    return distance if 0 < distance < MAX_DISTANCE_KM else None


def extract_distance(text: str) -> float | None:
    for pattern in _DISTANCE_PATTERNS:
        for match in pattern.finditer(text):
            distance = parse_distance(match.group(1))
            if distance is not None:
                return distance
    return None


# ── Basin description ──

_COMUNE = re.compile(r"(?<![A-Z])COMUNE\s+DI\s+")


def basin_description_from_comune(text: str, scan: ScanResult, context: FieldContext) -> str | None:
    for match in _COMUNE.finditer(text):
        name = uppercase_run(text, match.end(), min_len=2, max_len=40)
        if name:
            return f"COMUNE DI {name}"
    return None


def basin_description_after_code_and_flow(text: str, scan: ScanResult, context: FieldContext) -> str | None:
    if not context.basin_code or not context.flow_type:
        return None
    pattern = re.compile(rf"{re.escape(context.basin_code)}\s+{context.flow_type}\s+")
    match = pattern.search(text)
    return uppercase_run(text, match.end(), max_len=60) if match else None


def basin_description_after_code(text: str, scan: ScanResult, context: FieldContext) -> str | None:
    if not context.basin_code:
        return None
    match = re.search(rf"{re.escape(context.basin_code)}\s+", text)
    return uppercase_run(text, match.end(), max_len=60) if match else None


def basin_description_before_flow(text: str, scan: ScanResult, context: FieldContext) -> str | None:
    if not context.flow_type:
        return None
    pattern = re.compile(rf"([A-Z][A-Z']+(?:\s[A-Z][A-Z']+){{0,5}})\s+{context.flow_type}(?![A-Za-z])")
    for match in pattern.finditer(text):
        words = [word for word in match.group(1).split() if word not in _STOP_WORDS]
        if words and len(" ".join(words)) >= 4:
            return " ".join(words)
    return None


# ── Transport type ──

_TRANSPORT_PATTERNS = (
    re.compile(r"[\"“]([A-Za-z][\w ]{1,19})[\"”]"),
    re.compile(r"'([A-Za-z][\w ]{1,19})'"),
    re.compile(r"(?i:trasportatore)\s*:?\s*-*\s*([A-Z]{2,10})(?![A-Za-z])"),
)


def extract_transport_type(text: str) -> str | None:
    for pattern in _TRANSPORT_PATTERNS:
        match = pattern.search(text)
        if match:
            return match.group(1).strip()
    return None


# ── Party contact details ──

_PARTY_LABELS = {
    "sender": re.compile(r"(?i:mittente)"),
    "recipient": re.compile(r"(?i:destinatario)"),
}
_CONTACT_WINDOW = 250
_EMAIL = re.compile(r"[\w.+-]+@[\w-]+(?:\.[\w-]+)+")
_PHONE = re.compile(r"(?i:tel(?:efono)?\.?)\s*:?\s*(\+?\d[\d /.-]{5,18}\d)")
_ADDRESS = re.compile(
    r"(?i:indirizzo)\s*:?\s*(.+?)(?=\s+(?i:citt[àa]|tel(?:efono)?|email|pec|cap)\b|$)"
)
_CITY = re.compile(r"(?i:citt[àa])\s*:?\s*([A-Za-z' ]+?(?:\s[A-Z]{2})?)(?=\s+(?i:tel|email|pec|cap)\b|\s*\d|$)")


def extract_contacts(text: str, party: str) -> dict[str, str]:
    """Contact fields found in the window that follows the party label."""
    label = _PARTY_LABELS[party].search(text)
    if label is None:
        return {}

    window = text[label.end():label.end() + _CONTACT_WINDOW]
    for other, pattern in _PARTY_LABELS.items():
        if other == party:
            continue
        next_label = pattern.search(window)
        if next_label:
            window = window[:next_label.start()]

    contacts: dict[str, str] = {}
    if match := _ADDRESS.search(window):
        contacts[f"{party}_address"] = match.group(1).strip()
    if match := _CITY.search(window):
        contacts[f"{party}_city"] = match.group(1).strip()
    if match := _PHONE.search(window):
        contacts[f"{party}_phone"] = match.group(1).strip()
    if match := _EMAIL.search(window):
        contacts[f"{party}_email"] = match.group(0).lower()
    return contacts


# ── Rules ──

ORDER_NUMBER_RULE = FieldRule(
    name="order_number",
    strategies=(
        RegexStrategy("prod_label", _ORDER_LABEL),
        order_from_second_long_number_in_head,
        order_from_first_long_number,
    ),
    miss_penalty=15,
)

BASIN_CODE_RULE = FieldRule(
    name="basin_code",
    strategies=(
        RegexStrategy("lista_bacini_label", _BASIN_LIST),
        RegexStrategy("bacino_label", _BASIN_LABEL),
        basin_from_seven_digit_token,
    ),
    miss_penalty=15,
)

FLOW_TYPE_RULE = FieldRule(name="flow_type", strategies=_FLOW_PATTERNS, miss_penalty=10)

ISSUE_DATE_RULE = FieldRule(
    name="issue_date",
    strategies=(issue_date_from_label, issue_date_from_any_date),
)

SENDER_RULE = FieldRule(
    name="sender_name",
    strategies=(_SENDER_LABEL, _SENDER_CC),
    guess=sender_from_first_company,
    miss_penalty=15,
    guess_penalty=5,
)

RECIPIENT_RULE = FieldRule(
    name="recipient_name",
    strategies=(
        recipient_from_css_legal_name,
        recipient_from_css_prefix,
        recipient_from_css_loose,
        _RECIPIENT_LABEL,
    ),
    guess=recipient_from_company_candidates,
    miss_penalty=15,
    guess_penalty=5,
)

BASIN_DESCRIPTION_RULE = FieldRule(
    name="basin_description",
    strategies=(
        basin_description_from_comune,
        basin_description_after_code_and_flow,
        basin_description_after_code,
        basin_description_before_flow,
    ),
)


def strategy_name(strategy: Strategy) -> str:
    return getattr(strategy, "name", None) or getattr(strategy, "__name__", repr(strategy))


def run_rule(rule: FieldRule, text: str, scan: ScanResult, context: FieldContext) -> FieldOutcome:
    """Evaluate a rule's strategies in order; the first value wins."""
    for strategy in rule.strategies:
        value = strategy(text, scan, context)
        if value:
            return FieldOutcome(rule.name, value, FieldStatus.FOUND, strategy_name(strategy))

    if rule.guess is not None:
        value = rule.guess(text, scan, context)
        if value:
            return FieldOutcome(
                rule.name,
                value,
                FieldStatus.GUESSED,
                strategy_name(rule.guess),
                penalty=rule.guess_penalty,
            )

    return FieldOutcome(
        rule.name,
        None,
        FieldStatus.MISSING,
        penalty=rule.miss_penalty,
        flag_for_review=rule.reviewed_when_missing,
    )


def _record(extraction: FieldExtraction, outcome: FieldOutcome, default: Any = "") -> Any:
    value = outcome.value if outcome.value is not None else default
    extraction.values[outcome.field_name] = value
    extraction.outcomes.append(outcome)
    return value


def _optional(extraction: FieldExtraction, name: str, value: Any) -> None:
    status = FieldStatus.FOUND if value is not None else FieldStatus.MISSING
    extraction.outcomes.append(FieldOutcome(name, value, status))
    if value is not None:
        extraction.values[name] = value


def extract_fields(text: str, scan: ScanResult, *, today: date | None = None) -> FieldExtraction:
    """Run every field rule over normalized ``text`` and its scan result."""
    extraction = FieldExtraction()
    context = FieldContext()

    order_number = _record(extraction, run_rule(ORDER_NUMBER_RULE, text, scan, context))
    context = replace(context, order_number=order_number)

    basin_code = _record(extraction, run_rule(BASIN_CODE_RULE, text, scan, context))
    context = replace(context, basin_code=basin_code)

    flow_type = _record(extraction, run_rule(FLOW_TYPE_RULE, text, scan, context))
    context = replace(context, flow_type=flow_type)

    # An unparsable issue date keeps the default silently.
    _record(extraction, run_rule(ISSUE_DATE_RULE, text, scan, context), default=today or date.today())

    sender_name = _record(extraction, run_rule(SENDER_RULE, text, scan, context))
    context = replace(context, sender_name=sender_name)

    _record(extraction, run_rule(RECIPIENT_RULE, text, scan, context))
    _record(extraction, run_rule(BASIN_DESCRIPTION_RULE, text, scan, context))

    _optional(extraction, "distance_km", extract_distance(text))

    window = loading_unloading_dates(text)
    _optional(extraction, "loading_date", window[0] if window else None)
    _optional(extraction, "unloading_date", window[1] if window else None)

    availability = _labelled_date(_AVAILABILITY_DATE, text)
    _optional(extraction, "availability_date", availability)

    scheduled = _labelled_date(_SCHEDULED_DATE, text) or availability or (window[0] if window else None)
    _optional(extraction, "scheduled_date", scheduled)

    _optional(extraction, "transport_type", extract_transport_type(text))

    for party in ("sender", "recipient"):
        extraction.values.update(extract_contacts(text, party))

    return extraction
