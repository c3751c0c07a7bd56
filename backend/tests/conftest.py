"""
Pytest configuration and fixtures for planner tests.

This module provides:
- The sample org metadata snapshot
- In-memory lister/describer fakes (including failing ones)
- Settings isolated from the environment
"""

import json
import os
from datetime import datetime
from typing import Any, Dict, Iterable, List

import pytest

from sfplanner.config import Settings
from sfplanner.errors import DescribeError
from sfplanner.schema.models import ObjectDescriber, ObjectLister, StaticMetadataProvider

FIXTURES_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "fixtures")


# =============================================================================
# Metadata fakes
# =============================================================================

class FlakyDescriber(ObjectDescriber):
    """Delegates to a provider but fails for the given objects"""
    
    def __init__(self, provider: StaticMetadataProvider, failing: Iterable[str],
                 error: Exception = None):
        self.provider = provider
        self.failing = set(failing)
        self.error = error
        self.describe_calls: List[str] = []
    
    async def describe(self, object_name: str):
        self.describe_calls.append(object_name)
        if object_name in self.failing:
            raise self.error or DescribeError(f"INVALID_TYPE: {object_name}", object_name)
        return await self.provider.describe(object_name)


class FakeClock:
    """Settable time source for TTL tests"""
    
    def __init__(self, start: float = 1000.0):
        self.now = start
    
    def __call__(self) -> float:
        return self.now


class BrokenLister(ObjectLister):
    """Lister whose remote call always fails"""
    
    async def list_objects(self):
        raise ConnectionError("connection reset by peer")


def make_provider(objects: List[Dict[str, Any]], describes: Dict[str, Any] = None) -> StaticMetadataProvider:
    return StaticMetadataProvider({"objects": objects, "describes": describes or {}})


def obj(name: str, label: str = None, plural: str = None, custom: bool = None) -> Dict[str, Any]:
    """Object list row"""
    label = label or name
    return {
        "name": name,
        "label": label,
        "labelPlural": plural or f"{label}s",
        "custom": name.endswith("__c") if custom is None else custom,
    }


def field(name: str, ftype: str = "string", rel: str = None, ref: List[str] = None,
          readable: bool = True, label: str = None) -> Dict[str, Any]:
    """Describe field entry"""
    data = {"name": name, "label": label or name, "type": ftype, "filterable": readable}
    if rel:
        data.update({"relationshipName": rel, "referenceTo": ref or [], "type": "reference"})
    return data


def describe(name: str, fields: List[Dict[str, Any]], children: List[tuple] = (),
             label: str = None, plural: str = None) -> Dict[str, Any]:
    """Describe payload; children are (relationship name, child object) pairs"""
    label = label or name
    return {
        "name": name,
        "label": label,
        "labelPlural": plural or f"{label}s",
        "custom": name.endswith("__c"),
        "fields": [field("Id", "id")] + list(fields),
        "childRelationships": [
            {"childSObject": child, "relationshipName": rel, "field": "ParentId"}
            for rel, child in children
        ],
    }


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def settings():
    """Default settings, independent of any .env file"""
    return Settings(_env_file=None)


@pytest.fixture
def sample_snapshot() -> Dict[str, Any]:
    with open(os.path.join(FIXTURES_DIR, "sample_org.json")) as f:
        return json.load(f)


@pytest.fixture
def provider(sample_snapshot) -> StaticMetadataProvider:
    return StaticMetadataProvider(sample_snapshot)


@pytest.fixture
def now() -> datetime:
    return datetime(2024, 6, 1, 12, 0, 0)
