"""
Pattern-based extraction of (digit, label) menu options from one utterance.

Each sentence-like unit is tried against three layered patterns:
    1. "<label> ... press/dial D"
    2. "press/dial D ... for/to <label>"
    3. a bare "press/dial D", labelled with the rest of the unit
The first pattern that yields a usable label wins for that unit.

Parsing is pure and total: anything unparseable yields an empty list.
"""

import logging
import re
from typing import NamedTuple, Optional

logger = logging.getLogger(__name__)

_DIGIT = r"[0-9*#]"
_PRESS = r"(?:press|dial)"

PRESS_PHRASE_RE = re.compile(rf"\b{_PRESS}\s*(?P<digit>{_DIGIT})(?!\w)", re.IGNORECASE)
PRESS_AFTER_LABEL_RE = re.compile(
    rf"^(?P<label>.+?)\s*,?\s*{_PRESS}\s*(?P<digit>{_DIGIT})(?!\w)",
    re.IGNORECASE,
)
PRESS_BEFORE_LABEL_RE = re.compile(
    rf"\b{_PRESS}\s*(?P<digit>{_DIGIT})(?!\w)\s*,?\s*(?:for|to)\s+(?P<label>.+)$",
    re.IGNORECASE,
)

_SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?;])\s+")
_LEADING_NOISE_RE = re.compile(
    r"^(?:(?:please|and|or|if|for|to)\b|[\s,;:.\-])+", re.IGNORECASE
)
_TRAILING_NOISE_RE = re.compile(r"[\s.,;:!?\-]+$")


class ParsedOption(NamedTuple):
    digit: str
    label: str


def default_label(digit: str) -> str:
    return f"Option {digit}"


def clean_label(label: str) -> str:
    """Strip connective lead-ins, trailing punctuation, and surrounding whitespace."""
    label = _LEADING_NOISE_RE.sub("", label)
    label = _TRAILING_NOISE_RE.sub("", label)
    return re.sub(r"\s+", " ", label).strip()


def split_sentences(text: str) -> list[str]:
    return [s.strip() for s in _SENTENCE_SPLIT_RE.split(text) if s.strip()]


def split_units(sentence: str) -> list[str]:
    """Split a sentence holding several press phrases into one unit per phrase.

    "press 1 for sales, press 2 for support" is cut before each press phrase;
    "sales press 1, support press 2" is cut after each one.
    """
    matches = list(PRESS_PHRASE_RE.finditer(sentence))
    if len(matches) <= 1:
        return [sentence]

    if clean_label(sentence[: matches[0].start()]):
        cuts = [m.end() for m in matches[:-1]]
    else:
        cuts = [m.start() for m in matches[1:]]

    units: list[str] = []
    prev = 0
    for cut in cuts:
        units.append(sentence[prev:cut])
        prev = cut
    units.append(sentence[prev:])
    return [u.strip() for u in units if u.strip()]


def _parse_unit(unit: str) -> Optional[ParsedOption]:
    for pattern in (PRESS_AFTER_LABEL_RE, PRESS_BEFORE_LABEL_RE):
        match = pattern.search(unit)
        if match:
            label = clean_label(match.group("label"))
            if label:
                return ParsedOption(match.group("digit"), label)

    bare = PRESS_PHRASE_RE.search(unit)
    if not bare:
        return None
    digit = bare.group("digit")
    label = clean_label(PRESS_PHRASE_RE.sub(" ", unit, count=1))
    return ParsedOption(digit, label or default_label(digit))


def parse_options(text: Optional[str]) -> list[ParsedOption]:
    """Extract menu options from an utterance, deduplicated by (digit, label)."""
    if not text or not isinstance(text, str):
        return []

    results: list[ParsedOption] = []
    seen: set[tuple[str, str]] = set()
    for sentence in split_sentences(text):
        for unit in split_units(sentence):
            parsed = _parse_unit(unit)
            if parsed is None:
                continue
            key = (parsed.digit, parsed.label.lower())
            if key in seen:
                continue
            seen.add(key)
            results.append(parsed)

    if results:
        logger.debug("Parsed %d option(s) from %r", len(results), text[:80])
    return results
