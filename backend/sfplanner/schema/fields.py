"""
Field & Filter Selector

Allow-listing of fields against the schema index, default ordering, and
lookup-field selection (for GROUP BY and display of related names).
filter_allowed_fields is the last check before a field reaches a query.
"""

import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from sfplanner.schema.index import ALWAYS_ALLOWED_FIELDS, RELATED_RECORD_SUFFIX, SchemaIndex
from sfplanner.schema.models import FieldDescribe

ORDER_BY_PREFERENCE = ("CreatedDate", "LastModifiedDate", "SystemModstamp")

ADMIN_LOOKUP_RE = re.compile(r'^(OwnerId|CreatedById|LastModifiedById|RecordTypeId)$', re.IGNORECASE)

GROUP_BY_STOP_WORDS = {
    'the', 'a', 'an', 'by', 'of', 'in', 'on', 'for', 'to', 'and', 'or', 'id',
    'last', 'month', 'months', 'this', 'that', 'these', 'those', 'with',
    'items', 'item', 'summarize', 'summary', 'count', 'total', 'avg',
    'average', 'group'
}


@dataclass(frozen=True)
class GroupByLookup:
    """Lookup field to group on, plus the related Name to display"""
    group_field: str
    display_field: str
    score: float = 0.0


def is_field_allowed(index: SchemaIndex, object_name: str, field_name: str) -> bool:
    entry = index.get(object_name)
    if entry is None or not field_name:
        return False
    
    if "." in field_name:
        # relationship.Name traversal
        relationship, _, leaf = field_name.partition(".")
        if leaf != "Name":
            return False
        return (relationship in entry.parent_relationships
                or f"{relationship}{RELATED_RECORD_SUFFIX}" in entry.parent_relationships)
    
    return field_name in entry.readable_fields or field_name in ALWAYS_ALLOWED_FIELDS


def filter_allowed_fields(index: SchemaIndex, object_name: str, fields: Sequence[str]) -> List[str]:
    return [f for f in fields if is_field_allowed(index, object_name, f)]


def choose_order_by(index: SchemaIndex, object_name: str) -> str:
    for candidate in ORDER_BY_PREFERENCE:
        if is_field_allowed(index, object_name, candidate):
            return candidate
    return "Id"


def lookup_fields(index: SchemaIndex, object_name: str) -> List[FieldDescribe]:
    """Reference fields of an object, in describe order"""
    entry = index.get(object_name)
    if entry is None:
        return []
    return [f for f in entry.fields if f.is_lookup]


def relationship_display_field(f: FieldDescribe) -> str:
    return f"{f.relationship_name}.Name"


def _keyword_in_text(keyword: str, text: str) -> bool:
    return re.search(rf'\b{re.escape(keyword)}\b', text) is not None


def pick_group_by_lookup(index: SchemaIndex, object_name: str,
                         keywords: Sequence[str]) -> Optional[GroupByLookup]:
    """
    Choose the lookup field that best matches the question keywords.
    Returns None when nothing scores above zero; callers must treat that as
    a normal outcome.
    """
    lower_keywords = [
        k for k in (str(k or "").lower() for k in keywords or [])
        if k and k not in GROUP_BY_STOP_WORDS
    ]
    
    best: Optional[FieldDescribe] = None
    best_score = -1.0
    for f in lookup_fields(index, object_name):
        # Administrative lookups are never a grouping dimension
        if ADMIN_LOOKUP_RE.match(f.name):
            continue
        
        targets = [t.lower() for t in f.reference_to]
        hay = f"{f.name} {f.label or ''} {f.relationship_name} {' '.join(targets)}".lower()
        
        score = 0.0
        for kw in lower_keywords:
            if kw in hay:
                score += 3
            if _keyword_in_text(kw, hay):
                score += 4
        for kw in lower_keywords:
            if kw in targets:
                score += 2
        # Prefer shorter API names slightly
        score += max(0, 12 - len(f.name)) * 0.05
        
        if score > best_score:
            best_score = score
            best = f
    
    if best is None or best_score <= 0:
        return None
    if not is_field_allowed(index, object_name, best.name):
        return None
    return GroupByLookup(
        group_field=best.name,
        display_field=relationship_display_field(best),
        score=best_score
    )


def _related_name_field(f: FieldDescribe) -> str:
    rel = f.relationship_name
    if not rel.endswith(RELATED_RECORD_SUFFIX) and f.name.endswith("__c"):
        rel = f"{rel}{RELATED_RECORD_SUFFIX}"
    return f"{rel}.Name"


def pick_lookup_name_fields(index: SchemaIndex, object_name: str, max_count: int = 2) -> List[str]:
    """First lookup relationships' Name fields, in describe order"""
    names: List[str] = []
    for f in lookup_fields(index, object_name):
        rel = _related_name_field(f)
        if rel not in names:
            names.append(rel)
        if len(names) >= max_count:
            break
    return names


def find_lookup_name_fields_by_keywords(index: SchemaIndex, object_name: str,
                                        keywords: Sequence[str], max_count: int = 2) -> List[str]:
    """Lookup Name fields ranked by keyword overlap"""
    lookups = lookup_fields(index, object_name)
    if not lookups:
        return []
    
    scored = []
    for position, f in enumerate(lookups):
        hay = f"{f.name} {f.label or ''} {f.relationship_name} {' '.join(f.reference_to)}".lower()
        score = 0
        for kw in keywords or []:
            k = str(kw or "").lower()
            if not k:
                continue
            if k in hay:
                score += 2
            if _keyword_in_text(k, hay):
                score += 3
        score += 1 if f.reference_to else 0
        scored.append((score, position, f))
    
    scored.sort(key=lambda s: (-s[0], s[1]))
    picked: List[str] = []
    for _, _, f in scored:
        rel = _related_name_field(f)
        if rel not in picked:
            picked.append(rel)
        if len(picked) >= max_count:
            break
    return picked


def find_lookup_name_fields_by_targets(index: SchemaIndex, object_name: str,
                                       target_objects: Sequence[str], max_count: int = 2) -> List[str]:
    """Lookup Name fields whose reference target is one of target_objects"""
    targets = set(target_objects or [])
    if not targets:
        return []
    picked: List[str] = []
    for f in lookup_fields(index, object_name):
        if any(t in targets for t in f.reference_to):
            rel = _related_name_field(f)
            if rel not in picked:
                picked.append(rel)
            if len(picked) >= max_count:
                break
    return picked


# Question keyword -> field naming patterns
FIELD_PATTERNS: Dict[str, List[str]] = {
    'price': ['price', 'cost', 'amount', 'value', 'dollar', '$', 'pricing'],
    'quantity': ['quantity', 'qty', 'amount', 'count', 'number', 'volume', 'size'],
    'status': ['status', 'state', 'stage', 'condition', 'active', 'inactive'],
    'description': ['description', 'desc', 'details', 'notes', 'comment', 'remarks'],
    'date': ['date', 'time', 'created', 'modified', 'updated', 'expiry', 'expires'],
    'type': ['type', 'category', 'kind', 'classification', 'group', 'class'],
    'location': ['location', 'address', 'city', 'state', 'country', 'region', 'warehouse'],
    'contact': ['contact', 'phone', 'email', 'address', 'person', 'rep', 'representative'],
}


def find_relevant_fields(question: str, fields: Sequence[FieldDescribe], limit: int = 10) -> List[str]:
    """Fields whose name/label shares a category with words in the question"""
    q = (question or "").lower()
    relevant: List[str] = []
    
    for f in fields or []:
        if f.queryable is False or f.deprecated_and_hidden is True:
            continue
        search_text = f"{f.name} {f.label or ''}".lower()
        for patterns in FIELD_PATTERNS.values():
            asked = any(p in q for p in patterns)
            present = any(p in search_text for p in patterns)
            if asked and present:
                relevant.append(f.name)
                break
    
    return relevant[:limit]


def all_queryable_fields(index: SchemaIndex, object_name: str, limit: int = 50) -> List[str]:
    entry = index.get(object_name)
    if entry is None:
        return []
    names = [
        f.name for f in entry.fields
        if f.queryable and not f.deprecated_and_hidden
    ]
    return names[:limit]
