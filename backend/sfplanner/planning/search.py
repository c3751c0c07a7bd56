"""
Cross-object search planning.

Questions that span several objects ("search everywhere for Acme") are
planned as one text search returning rows from each target object instead
of a single-object query. Per-object fields go through
filter_allowed_fields like every other planned field.
"""

import logging
import re
from typing import Iterable, List, Optional

from pydantic import BaseModel, Field

from sfplanner.entity_resolution.classification import is_forbidden
from sfplanner.entity_resolution.profile import OrgProfile
from sfplanner.planning.intent import Intent, extract_search_terms
from sfplanner.schema.fields import filter_allowed_fields, find_relevant_fields
from sfplanner.schema.index import SchemaIndex

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_OBJECTS = ("Account", "Contact", "Lead", "Opportunity", "Case")
MAX_SEARCH_OBJECTS = 10
MAX_RETURNING_FIELDS = 8
MAX_FALLBACK_TERMS = 5
MIN_SEARCH_QUESTION_LENGTH = 20

NAME_FIELD_OVERRIDES = {"Case": "Subject"}
COMMON_RETURNING_FIELDS = ("CreatedDate", "LastModifiedDate", "OwnerId")

CROSS_OBJECT_PATTERNS = [
    re.compile(r'search.*across.*object'),
    re.compile(r'find.*in.*multiple.*object'),
    re.compile(r'search.*all.*object'),
    re.compile(r'global.*search'),
    re.compile(r'cross.*object'),
    re.compile(r'everywhere'),
    re.compile(r'all.*records.*contain'),
    re.compile(r'any.*object.*with'),
    re.compile(r'search.*everything'),
    re.compile(r'find.*anywhere'),
]

OBJECT_MENTION_PATTERNS = [
    re.compile(r'\b(account|contact|lead|opportunity|case|product|asset)\b'),
    re.compile(r'\b(item|order|invoice|location|allocation)\b'),
]

SEARCH_WORDS_RE = re.compile(r'search|find|look.*for|locate|where.*is|contains|includes|matching')

FALLBACK_STOP_WORDS_RE = re.compile(
    r'\b(what|is|the|of|for|in|on|at|with|by|from|about|how|where|when|which|who|why|'
    r'find|search|look|show|give|me|a|an|and|or|but)\b'
)

# Routing vocabulary and object nouns never become search terms
SEARCH_NOISE_WORDS = {
    'across', 'everywhere', 'anywhere', 'everything', 'global', 'multiple',
    'object', 'objects', 'records', 'record', 'contain', 'contains', 'containing',
    'includes', 'cross', 'all', 'any',
    'account', 'accounts', 'contact', 'contacts', 'lead', 'leads',
    'opportunity', 'opportunities', 'case', 'cases', 'product', 'products',
    'asset', 'assets', 'item', 'items', 'order', 'orders', 'invoice', 'invoices',
    'location', 'locations', 'allocation', 'allocations',
}

# Characters with meaning inside a FIND {...} clause
SOSL_RESERVED_RE = re.compile(r'([?&|!{}\[\]()^~*:\\"\'+\-])')


def count_object_mentions(question: str) -> int:
    q = (question or "").lower()
    return sum(len(pattern.findall(q)) for pattern in OBJECT_MENTION_PATTERNS)


def is_cross_object_question(question: str) -> bool:
    """Explicit "search everywhere" phrasing, or three or more object mentions"""
    q = (question or "").lower()
    if any(pattern.search(q) for pattern in CROSS_OBJECT_PATTERNS):
        return True
    return count_object_mentions(q) >= 3


def should_use_search(question: str, intent: Intent) -> bool:
    """Cross-object questions, plus longer free-text lookups"""
    q = (question or "").lower()
    if is_cross_object_question(q):
        return True
    text_search = intent == Intent.SEARCH or SEARCH_WORDS_RE.search(q) is not None
    return text_search and len(q) > MIN_SEARCH_QUESTION_LENGTH


def search_terms(question: str) -> List[str]:
    """Name-like terms, else the first few meaningful words"""
    terms = extract_search_terms(question, extra_stop_words=SEARCH_NOISE_WORDS)
    if terms:
        return terms
    
    words = FALLBACK_STOP_WORDS_RE.sub(' ', (question or "").lower()).split()
    words = [re.sub(r"[^\w']", '', w) for w in words]
    return [w for w in words if len(w) > 2 and w not in SEARCH_NOISE_WORDS][:MAX_FALLBACK_TERMS]


def escape_search_term(term: str) -> str:
    escaped = SOSL_RESERVED_RE.sub(r'\\\1', term.strip())
    return f'"{escaped}"' if " " in escaped else escaped


def search_targets(entities: Iterable[str], profile: Optional[OrgProfile] = None) -> List[str]:
    """Resolved objects first, then the defaults, then the org's synonym objects"""
    profile = profile or OrgProfile()
    targets: List[str] = []
    for name in list(entities) + list(DEFAULT_SEARCH_OBJECTS) + list(profile.object_synonyms):
        if name and name not in targets and not is_forbidden(name):
            targets.append(name)
    return targets[:MAX_SEARCH_OBJECTS]


class SearchReturning(BaseModel):
    """Fields returned for one searched object"""
    object_name: str
    fields: List[str] = Field(default_factory=lambda: ["Id"])
    
    def render(self) -> str:
        return f"{self.object_name}({', '.join(dict.fromkeys(self.fields))})"


class SearchPlan(BaseModel):
    """Text search across several objects"""
    search_terms: List[str]
    returning: List[SearchReturning] = Field(default_factory=list)
    limit: Optional[int] = None
    
    @property
    def target_objects(self) -> List[str]:
        return [r.object_name for r in self.returning]
    
    def search_string(self) -> str:
        return " OR ".join(escape_search_term(t) for t in self.search_terms)
    
    def to_sosl(self) -> str:
        sosl = f"FIND {{{self.search_string()}}} IN ALL FIELDS"
        if self.returning:
            sosl += " RETURNING " + ", ".join(r.render() for r in self.returning)
        if self.limit:
            sosl += f" LIMIT {self.limit}"
        return sosl


def returning_fields(index: SchemaIndex, object_name: str, question: str) -> List[str]:
    entry = index.get(object_name)
    if entry is None or entry.is_empty:
        return []
    
    name_field = NAME_FIELD_OVERRIDES.get(object_name, "Name")
    fields = ["Id"]
    if name_field in entry.field_map:
        fields.append(name_field)
    fields += [f for f in COMMON_RETURNING_FIELDS if f in entry.field_map]
    fields += find_relevant_fields((question or "").lower(), entry.fields)
    
    allowed = filter_allowed_fields(index, object_name, list(dict.fromkeys(fields)))
    return allowed[:MAX_RETURNING_FIELDS]


def build_search_plan(question: str, index: SchemaIndex, target_objects: Iterable[str],
                      terms: Optional[List[str]] = None,
                      limit: Optional[int] = None) -> Optional[SearchPlan]:
    """
    None when the question carries nothing to search for or none of the
    targets could be described.
    """
    terms = terms if terms is not None else search_terms(question)
    if not terms:
        return None
    
    returning = []
    for name in target_objects:
        if is_forbidden(name):
            continue
        fields = returning_fields(index, name, question)
        if not fields:
            logger.debug(f"Skipping {name} in search: no describe available")
            continue
        returning.append(SearchReturning(object_name=name, fields=fields))
    
    if not returning:
        return None
    return SearchPlan(search_terms=terms, returning=returning, limit=limit)
