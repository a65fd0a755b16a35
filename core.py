from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from decimal import Decimal, DecimalException, Inexact, InvalidOperation, localcontext
from typing import Iterable, Optional

logger = logging.getLogger(__name__)

SEPARATORS = "=, "
SPLIT_RE = re.compile("[" + re.escape(SEPARATORS) + "]")
ADDRESS_LENGTH = 42
ADDRESS_PREFIX = "0x"
NAN = Decimal("NaN")
# Digits kept when adding amounts; enough for any uint256 value.
SUM_PRECISION = 78


@dataclass(frozen=True)
class ParsedEntry:
    recipient: str
    amount_raw: Optional[str]
    amount_value: Decimal

    @property
    def has_amount(self) -> bool:
        return not self.amount_value.is_nan()


@dataclass(frozen=True)
class FormatError:
    line: int
    message: str


@dataclass(frozen=True)
class DuplicateGroup:
    recipient: str
    lines: tuple[int, ...]

    @property
    def message(self) -> str:
        return f"{self.recipient} Duplicates in Line: {', '.join(str(n) for n in self.lines)}"


@dataclass(frozen=True)
class ValidationResult:
    format_errors: tuple[FormatError, ...] = ()
    duplicates: tuple[DuplicateGroup, ...] = ()

    @property
    def messages(self) -> list[str]:
        return [e.message for e in self.format_errors] + [d.message for d in self.duplicates]

    @property
    def has_duplicates(self) -> bool:
        return len(self.duplicates) > 0

    @property
    def has_format_errors(self) -> bool:
        return len(self.format_errors) > 0

    @property
    def is_clean(self) -> bool:
        # Duplicates are reported separately and do not make a ledger unclean.
        return not self.format_errors


@dataclass(frozen=True)
class LedgerSummary:
    recipients: int = 0
    total: Decimal = field(default_factory=lambda: Decimal("0"))
    skipped: int = 0


def parse_amount(raw: Optional[str]) -> Decimal:
    if raw is None:
        return NAN
    s = raw.strip()
    # Stricter than a JS Number(): no "_" digit groups and no "0x" hex literals.
    if not s or "_" in s:
        return NAN
    try:
        value = Decimal(s)
    except (InvalidOperation, ValueError):
        return NAN
    if value.is_nan():
        # "NaN" / "sNaN" literals are not amounts; normalise to a quiet NaN.
        return NAN
    return value


def parse_entry(text: str) -> ParsedEntry:
    tokens = SPLIT_RE.split(text)
    recipient = tokens[0]
    amount_raw = tokens[1] if len(tokens) > 1 else None
    return ParsedEntry(recipient, amount_raw, parse_amount(amount_raw))


def format_amount(value: Decimal) -> str:
    # Exponents this far out stay in scientific form.
    if value.is_infinite() or abs(value.adjusted()) > SUM_PRECISION:
        return str(value)
    return f"{value:f}"


def exact_sum(amounts: Iterable[Decimal]) -> Optional[Decimal]:
    """Add amounts without rounding. Returns None when the exact sum cannot be represented."""
    with localcontext() as ctx:
        ctx.prec = SUM_PRECISION
        ctx.traps[Inexact] = True
        total = Decimal("0")
        try:
            for amount in amounts:
                total += amount
        except DecimalException:
            return None
    return total


def line_errors(line: int, parsed: ParsedEntry) -> list[FormatError]:
    errors = []
    if len(parsed.recipient) != ADDRESS_LENGTH:
        errors.append(FormatError(line, f"Line {line} invalid Ethereum address and wrong amount"))
    if not parsed.recipient.startswith(ADDRESS_PREFIX):
        errors.append(FormatError(line, f"Line {line} invalid Ethereum address"))
    if not parsed.has_amount or parsed.amount_value <= 0:
        errors.append(FormatError(line, f"Line {line} wrong amount."))
    return errors


def validate(entries: Iterable[str]) -> ValidationResult:
    """Judge every line independently, then group recipients seen on more than one line.

    Format errors come first, in line order; duplicate groups follow in the
    order their recipient was first seen.
    """
    format_errors: list[FormatError] = []
    seen: dict[str, list[int]] = {}
    count = 0

    for line, text in enumerate(entries, start=1):
        count = line
        parsed = parse_entry(text)
        format_errors.extend(line_errors(line, parsed))
        seen.setdefault(parsed.recipient, []).append(line)

    duplicates = tuple(
        DuplicateGroup(recipient, tuple(lines)) for recipient, lines in seen.items() if len(lines) > 1
    )
    result = ValidationResult(tuple(format_errors), duplicates)

    logger.debug(
        "Validated %d line(s): %d format error(s), %d duplicate group(s)",
        count,
        len(format_errors),
        len(duplicates),
    )
    if not format_errors:
        logger.info("No validation errors.")
    return result


def keep_first(entries: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    kept = []
    for text in entries:
        recipient = parse_entry(text).recipient
        if recipient in seen:
            continue
        seen.add(recipient)
        kept.append(text)
    return kept


def first_separator(text: str) -> str:
    m = SPLIT_RE.search(text)
    return m.group(0) if m else "="


def combine_balance(entries: Iterable[str]) -> list[str]:
    """Merge lines that share a recipient into the first one, summing their amounts.

    Amounts that do not parse are left out of the sum. When none of a
    recipient's lines carries a usable amount the first line is kept as typed.
    """
    entries = list(entries)
    groups: dict[str, list[int]] = {}
    parsed = [parse_entry(text) for text in entries]
    for i, p in enumerate(parsed):
        groups.setdefault(p.recipient, []).append(i)

    merged = []
    for recipient, indexes in groups.items():
        first = indexes[0]
        if len(indexes) == 1:
            merged.append((first, entries[first]))
            continue
        amounts = [parsed[i].amount_value for i in indexes if parsed[i].has_amount]
        if not amounts:
            merged.append((first, entries[first]))
            continue
        total = exact_sum(amounts)
        if total is None:
            logger.warning("Cannot combine amounts for %s exactly; keeping line %d as typed", recipient, first + 1)
            merged.append((first, entries[first]))
            continue
        sep = first_separator(entries[first])
        merged.append((first, f"{recipient}{sep}{format_amount(total)}"))

    merged.sort(key=lambda x: x[0])
    return [text for _, text in merged]


def summarize(entries: Iterable[str]) -> LedgerSummary:
    recipients: set[str] = set()
    total = Decimal("0")
    skipped = 0
    for line, text in enumerate(entries, start=1):
        parsed = parse_entry(text)
        if line_errors(line, parsed):
            continue
        recipients.add(parsed.recipient)
        new_total = exact_sum((total, parsed.amount_value))
        if new_total is None:
            skipped += 1
            continue
        total = new_total
    return LedgerSummary(len(recipients), total, skipped)
