"""
Date range phrasing.

Maps phrases such as "last 3 months" to query date literals, normalizes
legacy macros from org profiles, and decides when a question hints at time
without naming a range.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

DEFAULT_DATE_MACRO = "LAST_N_MONTHS:12"
DATE_FIELD = "CreatedDate"

MAX_MONTHS = 24
MAX_WEEKS = 52

# (pattern, literal); first match wins. Counted forms are handled below.
FIXED_RANGES = [
    (re.compile(r'\btoday\b'), "TODAY"),
    (re.compile(r'\byesterday\b'), "YESTERDAY"),
    (re.compile(r'last\s+year'), "LAST_N_MONTHS:12"),
    (re.compile(r'this\s+year'), "THIS_YEAR"),
    (re.compile(r'last\s+month\b'), "LAST_MONTH"),
    (re.compile(r'this\s+month'), "THIS_MONTH"),
]
LAST_N_MONTHS_RE = re.compile(r'last\s+(\d+)\s+months')
WEEK_RANGES = [
    (re.compile(r'last\s+week\b'), "LAST_WEEK"),
    (re.compile(r'this\s+week'), "THIS_WEEK"),
]
LAST_N_WEEKS_RE = re.compile(r'last\s+(\d+)\s+weeks')

TIME_CONTEXT_PATTERNS = [
    re.compile(r'\b(created|modified|updated|added|deleted|changed|since|from|during|in|within)\b'),
    re.compile(r'\b(year|month|week|day|time|date|recent|new|old|latest|past)\b'),
    re.compile(r'\b(last|this|next|current|previous)\b'),
]
SPECIFIC_RANGE_RE = re.compile(
    r'today|yesterday|last\s+\d+\s+months|last\s+\d+\s+weeks|last\s+month|last\s+week|'
    r'this\s+month|this\s+week|last\s+year|this\s+year'
)

LEGACY_MONTHS_RE = re.compile(r'^LAST_(\d+)_MONTHS$', re.IGNORECASE)
LEGACY_WEEKS_RE = re.compile(r'^LAST_(\d+)_WEEKS$', re.IGNORECASE)
CANONICAL_COUNTED_RE = re.compile(r'^LAST_N_(MONTHS|WEEKS):\d+$', re.IGNORECASE)

CLARIFICATION_CHOICES = [
    ("LAST_N_DAYS:30", "Last 30 days"),
    ("LAST_N_DAYS:90", "Last 90 days"),
    ("LAST_N_MONTHS:12", "Last 12 months"),
]


def _clamp(n: int, low: int, high: int) -> int:
    return max(low, min(high, n))


def normalize_date_macro(macro: Optional[str]) -> str:
    """LAST_12_MONTHS -> LAST_N_MONTHS:12 (weeks likewise); empty -> the default"""
    if not macro:
        return DEFAULT_DATE_MACRO
    macro = macro.strip()
    if CANONICAL_COUNTED_RE.match(macro):
        return macro
    m = LEGACY_MONTHS_RE.match(macro)
    if m:
        return f"LAST_N_MONTHS:{m.group(1)}"
    m = LEGACY_WEEKS_RE.match(macro)
    if m:
        return f"LAST_N_WEEKS:{m.group(1)}"
    return macro


def explicit_date_range(question: str) -> Optional[str]:
    """The range a question names itself, or None"""
    q = (question or "").lower()
    
    for pattern, literal in FIXED_RANGES:
        if pattern.search(q):
            return literal
    
    m = LAST_N_MONTHS_RE.search(q)
    if m:
        return f"LAST_N_MONTHS:{_clamp(int(m.group(1)), 1, MAX_MONTHS)}"
    
    for pattern, literal in WEEK_RANGES:
        if pattern.search(q):
            return literal
    
    m = LAST_N_WEEKS_RE.search(q)
    if m:
        return f"LAST_N_WEEKS:{_clamp(int(m.group(1)), 1, MAX_WEEKS)}"
    
    return None


def resolve_date_range(question: str, default_range: Optional[str] = None) -> str:
    """Named range if any, else the (normalized) org default"""
    return explicit_date_range(question) or normalize_date_macro(default_range)


def needs_date_clarification(question: str) -> bool:
    """Time is hinted at ("created in march", "recent") but no range is named"""
    q = (question or "").lower()
    if not any(pattern.search(q) for pattern in TIME_CONTEXT_PATTERNS):
        return False
    return SPECIFIC_RANGE_RE.search(q) is None


@dataclass
class DateClarification:
    """Question to put to the user, with the ranges to choose from"""
    question: str
    options: List[Dict[str, str]] = field(default_factory=list)
    field_name: str = "dateRange"
    type: str = "clarify"
    
    @property
    def values(self) -> List[str]:
        return [o["value"] for o in self.options]
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "field": self.field_name,
            "question": self.question,
            "options": list(self.options),
        }


def build_date_clarification(default_range: Optional[str] = None,
                             date_field: str = DATE_FIELD) -> DateClarification:
    default = normalize_date_macro(default_range)
    options = [{"value": value, "label": label} for value, label in CLARIFICATION_CHOICES]
    options.append({"value": default, "label": f"Default ({default})"})
    return DateClarification(
        question=f"Which date range should I use for {date_field}?",
        options=options,
    )
