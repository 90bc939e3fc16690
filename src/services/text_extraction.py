"""Text extraction utilities for SmartBuild.

Best-effort scrapers that pull numeric and list fields out of the free text
returned by the language model. Every extractor returns ``None`` (or an empty
list) when nothing matches; none of them raise on malformed input. Choosing a
substitute value is the caller's job.
"""

import json
import re
from typing import Any, Iterable, List, Optional

from config.errors import LLMResponseError


# =============================================================================
# CONSTANTS
# =============================================================================

_NUMBER = r"(\d[\d,]*(?:\.\d+)?)(?!\d|[,.]\d|\s*%)(?:\s*(million|thousand|[mk])\b)?"
_AMOUNT = r"\$?\s*" + _NUMBER

# Line breaks and bullet markers. A hyphen only counts as a bullet when it
# starts an item or is surrounded by whitespace, so "3-bed" stays intact.
_ITEM_SPLIT = re.compile(r"\n|•|\*\s|(?:^|\s)-\s|^\s*\d+[.)]\s", re.MULTILINE)

_LEADING_MARKERS = re.compile(r"^(?:[-*•]+|\d+[.)])\s*")

_LABEL_QUALIFIER = re.compile(r"^[a-z]+\s*:\s*", re.IGNORECASE)

# Blocks that close the last risk category section
CATEGORY_END_HEADERS = ("recommendation", "critical success")


# =============================================================================
# NUMERIC HELPERS
# =============================================================================


def clamp(value: int, low: int = 0, high: int = 100) -> int:
    """Clamp an integer into [low, high]."""
    return max(low, min(high, value))


_SCALES = {"million": 1_000_000, "m": 1_000_000, "thousand": 1_000, "k": 1_000}


def _to_int(token: str, scale: Optional[str] = None) -> Optional[int]:
    """Parse a numeric token with thousands separators and an optional scale word."""
    cleaned = token.replace(",", "").strip()
    if not cleaned:
        return None
    try:
        value = float(cleaned)
    except ValueError:
        return None
    if scale:
        value *= _SCALES.get(scale.lower(), 1)
    return int(round(value))


def _amount_from(match: "re.Match") -> Optional[int]:
    return _to_int(match.group(1), match.group(2))


def _label_pattern(label: str) -> str:
    """Regex for a label; underscores match spaces, hyphens or nothing."""
    return r"[\s_-]*".join(re.escape(part) for part in label.split("_"))


# =============================================================================
# SCALAR EXTRACTORS
# =============================================================================


def extract_total_cost(text: str) -> Optional[int]:
    """First currency-looking amount in the text.

    Prefers an amount labelled "total"; otherwise takes the first dollar
    amount, then the first bare number of at least four digits.
    """
    if not text:
        return None

    labelled = re.search(
        r"total(?:\s+estimated)?(?:\s+project)?\s+cost[^\d$\n]{0,40}" + _AMOUNT,
        text,
        re.IGNORECASE,
    )
    if labelled:
        return _amount_from(labelled)

    dollars = re.search(r"\$\s*" + _NUMBER, text, re.IGNORECASE)
    if dollars:
        return _amount_from(dollars)

    bare = re.search(r"\b(\d{1,3}(?:,\d{3})+|\d{4,})(?:\.\d+)?\b", text)
    if bare:
        return _to_int(bare.group(1))
    return None


def extract_labeled_amount(text: str, label: str) -> Optional[int]:
    """Amount following a label, e.g. ``materials: $12,345``.

    Allows a short parenthetical between label and amount, as in
    ``Labor (33%): $66,000``.
    """
    if not text:
        return None
    pattern = (
        _label_pattern(label)
        + r"s?(?:\s*&\s*\w+)?(?:\s*\([^)\n]{0,30}\))?[:\s]*"
        + _AMOUNT
    )
    match = re.search(pattern, text, re.IGNORECASE)
    if not match:
        return None
    return _amount_from(match)


def extract_duration_days(text: str) -> Optional[int]:
    """Integer followed by ``day`` or ``days``."""
    if not text:
        return None
    match = re.search(r"(\d[\d,]*)\s*(?:working\s+|calendar\s+)?days?\b", text, re.IGNORECASE)
    if not match:
        return None
    return _to_int(match.group(1))


def extract_confidence(text: str) -> Optional[int]:
    """Confidence percentage, clamped to 0-100.

    Accepts both ``Confidence level: 85%`` and ``85% confidence``. The
    labelled form wins, and the number-first form must share the keyword's line.
    """
    if not text:
        return None
    after = re.search(r"confidence(?:\s+level)?[^\d\n]{0,20}(\d+)\s*%?", text, re.IGNORECASE)
    if after:
        return clamp(int(after.group(1)))
    before = re.search(r"(\d+)[ \t]*%?[ \t]*confidence", text, re.IGNORECASE)
    if before:
        return clamp(int(before.group(1)))
    return None


def extract_percentage(text: str, label: str) -> Optional[int]:
    """Percentage after a label (``probability: 40%``), clamped to 0-100.

    A qualifier word and a range hint may sit between label and value, as in
    ``Impact severity (0-100%): 70%``.
    """
    if not text:
        return None
    match = re.search(
        _label_pattern(label)
        + r"(?:[ \t]+[a-z]+(?=[ \t]*[(:=]))?"
        + r"(?:[ \t]*\([^)\n]{0,20}\))?[:\s=-]*(\d+)\s*%?",
        text,
        re.IGNORECASE,
    )
    if not match:
        return None
    return clamp(int(match.group(1)))


def extract_risk_score(text: str) -> Optional[int]:
    """Explicit ``risk score: N`` value, if the text states one."""
    if not text:
        return None
    match = re.search(r"(?:risk\s*)?score[:\s]*(\d+)", text, re.IGNORECASE)
    if not match:
        return None
    return clamp(int(match.group(1)))


# =============================================================================
# SECTION / LIST EXTRACTORS
# =============================================================================


def _clean_item(item: str) -> str:
    item = item.strip().strip("*").strip()
    return _LEADING_MARKERS.sub("", item).strip()


def extract_list_items(text: str, min_length: int = 10, max_items: int = 6) -> List[str]:
    """Split a block on line breaks and bullet markers.

    Entries shorter than ``min_length`` are discarded, and at most
    ``max_items`` entries are kept.
    """
    if not text:
        return []
    items = []
    for raw in _ITEM_SPLIT.split(text):
        item = _clean_item(raw)
        if len(item) <= min_length:
            continue
        items.append(item)
        if len(items) >= max_items:
            break
    return items


def _section_span(text: str, header: str, stop_headers: Iterable[str]) -> Optional[str]:
    """Text after ``header`` up to the next stop header (or end of text)."""
    stops = [_label_pattern(h) for h in stop_headers if h]
    lookahead = r"(?=" + "|".join(stops) + r"|$)" if stops else r"$"
    pattern = _label_pattern(header) + r"s?[:\s]*(.*?)" + lookahead
    match = re.search(pattern, text, re.IGNORECASE | re.DOTALL)
    if not match:
        return None
    return match.group(1)


def extract_section_items(
    text: str,
    header: str,
    stop_headers: Iterable[str] = (),
    min_length: int = 10,
    max_items: int = 6,
) -> List[str]:
    """List items from a labelled section.

    Returns an empty list when the section is missing or none of its
    entries pass the length filter.
    """
    if not text:
        return []
    span = _section_span(text, header, stop_headers)
    if span is None:
        return []
    return extract_list_items(span, min_length=min_length, max_items=max_items)


def extract_labeled_text(text: str, label: str, stop_labels: Iterable[str] = ()) -> Optional[str]:
    """Free text after a label, up to the next stop label."""
    if not text:
        return None
    span = _section_span(text, label, stop_labels)
    if span is None:
        return None
    # First paragraph only
    paragraph = re.split(r"\n\s*\n", span.strip(), maxsplit=1)[0]
    cleaned = " ".join(_clean_item(line) for line in paragraph.splitlines())
    # "Mitigation strategy: ..." -> drop the qualifier word
    cleaned = _LABEL_QUALIFIER.sub("", cleaned.strip(" -:"))
    return cleaned or None


def extract_category_section(
    text: str,
    category: str,
    all_categories: Iterable[str],
    end_headers: Iterable[str] = CATEGORY_END_HEADERS,
) -> Optional[str]:
    """Text that follows a risk category name, up to the next category name.

    The span also ends at a line that opens one of ``end_headers``
    (recommendations, critical success factors). Underscores in category
    names match flexible whitespace, so ``supply_chain`` also matches
    "Supply Chain" and "SUPPLY  CHAIN".
    """
    if not text:
        return None
    others = [c for c in all_categories if c != category]
    span = _section_span(text, category, others)
    if span is None:
        return None
    headers = [_label_pattern(h) for h in end_headers if h]
    if headers:
        end = re.search(
            r"^[ \t]*(?:" + "|".join(headers) + r")",
            span,
            re.IGNORECASE | re.MULTILINE,
        )
        if end:
            span = span[:end.start()]
    return span


# =============================================================================
# JSON
# =============================================================================


def parse_json_content(content: str) -> Any:
    """Decode JSON from a model response, tolerating markdown fences.

    Raises:
        LLMResponseError: If the content is not valid JSON.
    """
    cleaned = (content or "").strip()
    if cleaned.startswith("```json"):
        cleaned = cleaned[7:]
    if cleaned.startswith("```"):
        cleaned = cleaned[3:]
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]

    try:
        return json.loads(cleaned.strip())
    except json.JSONDecodeError as e:
        raise LLMResponseError(
            message="LLM did not return valid JSON",
            raw_content=content or "",
            details={"parse_error": str(e)},
        )
