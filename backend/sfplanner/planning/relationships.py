"""
Relationship Planner

Bounded search over the schema index for a related object that matches the
question better than the resolved one (e.g. pivoting from an item to the
lot/location bridge object for "items by location").
"""

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from sfplanner.entity_resolution.classification import is_forbidden
from sfplanner.schema.fields import pick_group_by_lookup
from sfplanner.schema.index import SchemaIndex

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 3
DIRECT_MATCH_SCORE = 1.0
NEIGHBOR_MATCH_SCORE = 0.8

META_CHILD_RE = re.compile(r'(__Feed|__History|__Share|Feed|History|Share)$', re.IGNORECASE)


@dataclass(frozen=True)
class RelationshipHop:
    hop_type: str  # parent, child
    relationship_name: str
    target_object: str


@dataclass
class RelationshipPathResult:
    object_name: str
    path: List[RelationshipHop] = field(default_factory=list)
    score: float = 0.0
    depth: int = 0
    
    def parent_name_fields(self, limit: int = 2) -> List[str]:
        """Related Name fields for the parent hops along the path"""
        names = [
            f"{hop.relationship_name}.Name"
            for hop in self.path if hop.hop_type == "parent"
        ]
        return names[:limit]


def _score_object(index: SchemaIndex, object_name: str, keywords: Sequence[str]) -> float:
    entry = index.get(object_name)
    hay = f"{object_name} {entry.label} {entry.label_plural}".lower()
    neighbor_text = " ".join(entry.neighbors()).lower()
    
    score = 0.0
    for kw in keywords:
        if kw and kw in hay:
            score += DIRECT_MATCH_SCORE
    # Softer signal: keyword appears among related object names
    for kw in keywords:
        if kw and kw in neighbor_text:
            score += NEIGHBOR_MATCH_SCORE
    return score


def plan_path(index: SchemaIndex, start_object: str, keywords: Sequence[str],
              max_depth: int = DEFAULT_MAX_DEPTH) -> Optional[RelationshipPathResult]:
    """
    Depth-first traversal (explicit stack, visited set, hard depth cap) over
    parent then child relationships. Returns the best-scoring visited object,
    ties going to the shallower one. Forbidden objects are never visited.
    """
    lower_keywords = [str(k or "").lower() for k in keywords or []]
    lower_keywords = [k for k in lower_keywords if k]
    
    visited = set()
    results: List[RelationshipPathResult] = []
    stack: List[Tuple[str, List[RelationshipHop], int]] = [(start_object, [], 0)]
    
    while stack:
        object_name, path, depth = stack.pop()
        if depth > max_depth or object_name in visited:
            continue
        if is_forbidden(object_name):
            continue
        visited.add(object_name)
        
        entry = index.get(object_name)
        if entry is None:
            continue
        
        results.append(RelationshipPathResult(
            object_name=object_name,
            path=list(path),
            score=_score_object(index, object_name, lower_keywords),
            depth=depth
        ))
        
        hops = [
            RelationshipHop("parent", rel, target)
            for rel, target in entry.parent_relationships.items()
        ] + [
            RelationshipHop("child", rel, target)
            for rel, target in entry.child_relationships.items()
        ]
        # Reversed so the first hop is explored first
        for hop in reversed(hops):
            if hop.target_object not in visited:
                stack.append((hop.target_object, path + [hop], depth + 1))
    
    if not results:
        return None
    
    # Stable sort keeps discovery order among equal (score, depth)
    results.sort(key=lambda r: (-r.score, r.depth))
    best = results[0]
    logger.debug(f"Relationship path from {start_object}: {best.object_name} "
                 f"(score={best.score}, depth={best.depth})")
    return best


def find_child_pivot(index: SchemaIndex, object_name: str,
                     keywords: Sequence[str]) -> Optional[str]:
    """
    For aggregates with no usable group-by lookup on object_name: pick the
    child object that looks like the bridge entity (item/lot/location) and
    offers a lookup to group on. Only children present in the index are
    considered.
    """
    entry = index.get(object_name)
    if entry is None:
        return None
    
    best_child = None
    best_score = -1.0
    for child in dict.fromkeys(entry.child_relationships.values()):
        if is_forbidden(child) or META_CHILD_RE.search(child):
            continue
        child_entry = index.get(child)
        if child_entry is None:
            continue
        
        lower = child.lower()
        score = 0.0
        if "item" in lower:
            score += 2
        if "lot" in lower:
            score += 2
        if "location" in lower:
            score += 1
        if "minimum" in lower or "on_hand" in lower:
            score -= 3
        
        group_by = pick_group_by_lookup(index, child, keywords)
        if group_by:
            score += 2
            if "location" in group_by.display_field.lower():
                score += 2
        
        # Lookup back to the parent
        if any(object_name in f.reference_to for f in child_entry.fields if f.is_lookup):
            score += 2
        
        if score > best_score:
            best_score = score
            best_child = child
    
    return best_child
