"""
Schema Index

Per-object field and relationship maps built from describe metadata.
The index grows by breadth-first expansion over parent/child relationships.
Describe failures never abort a batch: the failing object gets an empty
entry and the error is recorded on the index.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set

from sfplanner.errors import AppError, DescribeError, ErrorClassifier
from sfplanner.schema.cache import DescribeCache
from sfplanner.schema.models import FieldDescribe, ObjectDescribe, ObjectDescriber, coerce_describe

logger = logging.getLogger(__name__)

ALWAYS_ALLOWED_FIELDS = ("Id", "Name")
RELATED_RECORD_SUFFIX = "__r"
DEFAULT_ORG = "default"


@dataclass
class SchemaObjectEntry:
    """Describe-derived maps for one object"""
    name: str
    describe: Optional[ObjectDescribe] = None
    field_map: Dict[str, FieldDescribe] = field(default_factory=dict)
    readable_fields: Set[str] = field(default_factory=set)
    parent_relationships: Dict[str, str] = field(default_factory=dict)  # relationship -> parent object
    child_relationships: Dict[str, str] = field(default_factory=dict)   # relationship -> child object
    
    @property
    def is_empty(self) -> bool:
        return self.describe is None
    
    @property
    def label(self) -> str:
        return (self.describe.label or "") if self.describe else ""
    
    @property
    def label_plural(self) -> str:
        return (self.describe.label_plural or "") if self.describe else ""
    
    @property
    def fields(self) -> List[FieldDescribe]:
        return self.describe.fields if self.describe else []
    
    def neighbors(self) -> List[str]:
        """Parent and child object names, parents first, without duplicates"""
        seen = []
        for target in list(self.parent_relationships.values()) + list(self.child_relationships.values()):
            if target and target not in seen:
                seen.append(target)
        return seen
    
    @classmethod
    def empty(cls, name: str) -> "SchemaObjectEntry":
        return cls(name=name)
    
    @classmethod
    def from_describe(cls, name: str, describe: ObjectDescribe) -> "SchemaObjectEntry":
        entry = cls(name=name, describe=describe)
        
        for f in describe.fields:
            entry.field_map[f.name] = f
            if f.is_readable:
                entry.readable_fields.add(f.name)
            if f.is_lookup:
                target = f.reference_to[0]
                entry.parent_relationships[f.relationship_name] = target
                if not f.relationship_name.endswith(RELATED_RECORD_SUFFIX):
                    entry.parent_relationships[f"{f.relationship_name}{RELATED_RECORD_SUFFIX}"] = target
        
        # Described identifiers are readable whatever their flags; is_field_allowed
        # allows them even when absent
        entry.readable_fields.update(n for n in ALWAYS_ALLOWED_FIELDS if n in entry.field_map)
        
        for cr in describe.child_relationships:
            if cr.relationship_name and cr.child_sobject:
                entry.child_relationships[cr.relationship_name] = cr.child_sobject
        
        return entry


class SchemaIndex:
    """Object canonical name -> SchemaObjectEntry"""
    
    def __init__(self, org_id: Optional[str] = None):
        self.org_id = org_id
        self.objects: Dict[str, SchemaObjectEntry] = {}
        self.failures: Dict[str, AppError] = {}
    
    def __contains__(self, object_name: str) -> bool:
        return object_name in self.objects
    
    def __len__(self) -> int:
        return len(self.objects)
    
    def get(self, object_name: str) -> Optional[SchemaObjectEntry]:
        return self.objects.get(object_name)
    
    def add(self, entry: SchemaObjectEntry):
        self.objects[entry.name] = entry
    
    def merge(self, other: "SchemaIndex"):
        """Copy entries and failures from another index (other wins)"""
        self.objects.update(other.objects)
        self.failures.update(other.failures)
    
    def neighbors(self, object_name: str) -> List[str]:
        entry = self.objects.get(object_name)
        return entry.neighbors() if entry else []
    
    def get_stats(self) -> Dict[str, int]:
        return {
            "objects": len(self.objects),
            "empty_entries": sum(1 for e in self.objects.values() if e.is_empty),
            "fields": sum(len(e.field_map) for e in self.objects.values()),
            "failures": len(self.failures),
        }


async def _load_describe(describer: ObjectDescriber, object_name: str,
                         cache: Optional[DescribeCache], org_id: str) -> ObjectDescribe:
    """Cache first, then the remote describer (populating the cache)"""
    if cache is not None:
        try:
            cached = await cache.get(org_id, object_name)
        except Exception as e:
            logger.warning(f"Describe cache read failed for {object_name}, treating as miss: {e}")
            cached = None
        if cached:
            return coerce_describe(object_name, cached)
    
    try:
        payload = await describer.describe(object_name)
    except DescribeError:
        raise
    except Exception as e:
        raise DescribeError(f"describe failed for {object_name}: {e}", object_name) from e
    
    describe = coerce_describe(object_name, payload)
    
    if cache is not None:
        try:
            await cache.set(org_id, object_name, describe.to_payload())
        except Exception as e:
            logger.warning(f"Describe cache write failed for {object_name}: {e}")
    
    return describe


async def build_index(describer: ObjectDescriber, object_names: Iterable[str],
                      cache: Optional[DescribeCache] = None,
                      org_id: Optional[str] = None) -> SchemaIndex:
    """
    Describe the requested objects (concurrently) and build their entries.
    Failed describes produce empty entries.
    """
    index = SchemaIndex(org_id=org_id)
    
    unique: List[str] = []
    for name in object_names:
        if name and name not in unique:
            unique.append(name)
    if not unique:
        return index
    
    results = await asyncio.gather(
        *(_load_describe(describer, name, cache, org_id or DEFAULT_ORG) for name in unique),
        return_exceptions=True
    )
    
    for name, result in zip(unique, results):
        if isinstance(result, BaseException):
            if not isinstance(result, Exception):
                raise result
            logger.warning(f"Describe failed for {name}; recording empty entry", exc_info=result)
            index.add(SchemaObjectEntry.empty(name))
            index.failures[name] = ErrorClassifier.classify(result)
            continue
        try:
            index.add(SchemaObjectEntry.from_describe(name, result))
        except Exception as e:
            logger.warning(f"Could not index describe for {name}: {e}")
            index.add(SchemaObjectEntry.empty(name))
            index.failures[name] = ErrorClassifier.classify(e)
    
    logger.debug(f"Schema index built: {index.get_stats()}")
    return index


async def expand_index(describer: ObjectDescriber, index: SchemaIndex, start_object: str,
                       max_depth: int = 2, cache: Optional[DescribeCache] = None,
                       org_id: Optional[str] = None) -> SchemaIndex:
    """
    Breadth-first expansion from start_object: each round describes every
    not-yet-indexed neighbor of the frontier in one batch. Stops after
    max_depth rounds or when nothing new is discovered. On failure the
    index is returned as it was before the call.
    """
    org_id = org_id or index.org_id
    staged = SchemaIndex(org_id=org_id)
    try:
        visited = {start_object}
        frontier = [start_object]
        
        for _ in range(max_depth):
            discovered: List[str] = []
            for name in frontier:
                neighbors = staged.neighbors(name) if name in staged else index.neighbors(name)
                for neighbor in neighbors:
                    if neighbor not in visited and neighbor not in discovered:
                        discovered.append(neighbor)
            
            to_describe = [n for n in discovered if n not in index and n not in staged]
            if not to_describe:
                break
            
            batch = await build_index(describer, to_describe, cache=cache, org_id=org_id)
            staged.merge(batch)
            
            visited.update(discovered)
            frontier = discovered
    except Exception as e:
        # Best effort; keep the pre-expansion index
        logger.warning(f"Schema expansion from {start_object} failed: {e}", exc_info=True)
        return index
    
    index.merge(staged)
    if staged.objects:
        logger.debug(f"Expanded schema index from {start_object} by {len(staged)} objects")
    return index
