"""
Catalog Index

Normalized lookup table from object name variants (API name, label, plural
label, API name without the custom suffix, compact label) to candidate
descriptors. Built per resolution call from the remote object list.
"""

import logging
import re
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pydantic import ValidationError

from sfplanner.entity_resolution.classification import CUSTOM_SUFFIX, is_forbidden, is_system_object
from sfplanner.errors import AppError, CatalogUnavailableError, ErrorClassifier
from sfplanner.schema.models import ObjectLister, ObjectSummary, coerce_summary

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CandidateDescriptor:
    """One object as reached through one name variant"""
    canonical_name: str
    display_label: str
    display_label_plural: str
    is_custom: bool
    matched_by_variant: str  # api, label, label_plural, api_short, label_compact


class VariationGenerator:
    """Generate the lookup variants of an object"""
    
    CUSTOM_SUFFIX_RE = re.compile(rf'{CUSTOM_SUFFIX}$')
    
    def generate_variations(self, obj: ObjectSummary) -> List[Tuple[str, str]]:
        """(key, variant type) pairs; empty keys are dropped"""
        label = obj.label or ""
        plural = obj.label_plural or ""
        variations = [
            (obj.name.lower(), "api"),
            (label.lower(), "label"),
            (plural.lower(), "label_plural"),
            (self.CUSTOM_SUFFIX_RE.sub("", obj.name).lower(), "api_short"),
            (re.sub(r'\s+', '', label).lower(), "label_compact"),
        ]
        return [(key, kind) for key, kind in variations if key]


class CatalogIndex:
    """In-memory variant -> descriptors index"""
    
    def __init__(self):
        self.entries: Dict[str, List[CandidateDescriptor]] = defaultdict(list)
        self.objects: Dict[str, ObjectSummary] = {}
        self.failure: Optional[AppError] = None
        self.variation_generator = VariationGenerator()
    
    def add(self, obj: ObjectSummary):
        """Register every variant of an object"""
        self.objects[obj.name] = obj
        for key, kind in self.variation_generator.generate_variations(obj):
            self.entries[key].append(CandidateDescriptor(
                canonical_name=obj.name,
                display_label=obj.label or obj.name,
                display_label_plural=obj.label_plural or obj.label or obj.name,
                is_custom=obj.custom,
                matched_by_variant=kind
            ))
    
    def lookup(self, key: str) -> List[CandidateDescriptor]:
        """Exact lookup of a normalized variant"""
        return list(self.entries.get((key or "").lower().strip(), []))
    
    def keys(self) -> List[str]:
        return list(self.entries.keys())
    
    def items(self) -> Iterable[Tuple[str, List[CandidateDescriptor]]]:
        return self.entries.items()
    
    def canonical_names(self) -> List[str]:
        return list(self.objects.keys())
    
    def __contains__(self, key: str) -> bool:
        return (key or "").lower() in self.entries
    
    def __len__(self) -> int:
        return len(self.entries)
    
    def is_empty(self) -> bool:
        return not self.entries
    
    def get_stats(self) -> Dict[str, Any]:
        """Get index statistics"""
        total_objects = len(self.objects)
        total_variants = len(self.entries)
        return {
            'total_objects': total_objects,
            'total_variants': total_variants,
            'collisions': sum(
                1 for descriptors in self.entries.values()
                if len({d.canonical_name for d in descriptors}) > 1
            ),
        }


async def build_catalog(lister: ObjectLister, include_system_objects: bool = False) -> CatalogIndex:
    """
    Build the catalog from the remote object list. Forbidden objects are
    always skipped, system objects unless include_system_objects is set.
    A failing lister yields an empty catalog.
    """
    catalog = CatalogIndex()
    
    try:
        rows = await lister.list_objects()
    except Exception as e:
        logger.warning(f"Failed to list objects; continuing with an empty catalog: {e}", exc_info=True)
        catalog.failure = ErrorClassifier.classify(CatalogUnavailableError(f"object list failed: {e}"))
        return catalog
    
    skipped = 0
    for row in rows or []:
        try:
            obj = coerce_summary(row)
        except ValidationError as e:
            logger.debug(f"Skipping malformed object row {row!r}: {e}")
            skipped += 1
            continue
        
        if is_forbidden(obj.name):
            skipped += 1
            continue
        if not include_system_objects and is_system_object(obj.name):
            skipped += 1
            continue
        
        catalog.add(obj)
    
    logger.debug(f"Catalog built: {catalog.get_stats()} ({skipped} skipped)")
    return catalog


async def build_object_catalog(lister: ObjectLister) -> Dict[str, str]:
    """
    Simple lowercase name/label/plural -> canonical name map, used to spot
    direct object mentions. Forbidden objects are left out.
    """
    try:
        rows = await lister.list_objects()
    except Exception as e:
        logger.warning(f"Failed to list objects for object catalog: {e}")
        return {}
    
    mapping: Dict[str, str] = {}
    for row in rows or []:
        try:
            obj = coerce_summary(row)
        except ValidationError:
            logger.debug(f"Skipping malformed object row {row!r}")
            continue
        if is_forbidden(obj.name):
            continue
        for key in (obj.name, obj.label, obj.label_plural):
            if key:
                mapping[key.lower()] = obj.name
    return mapping
