"""
Metadata records and collaborator interfaces.

Describe payloads arrive as loosely structured dicts. They are validated
into explicit models here so the rest of the planner reads optional members
deliberately instead of relying on truthiness of missing keys.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from sfplanner.errors import DescribeError


class MetadataModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ObjectSummary(MetadataModel):
    """One row of the global object list"""
    name: str
    label: Optional[str] = None
    label_plural: Optional[str] = Field(None, alias="labelPlural")
    custom: bool = False
    queryable: Optional[bool] = None


class FieldDescribe(MetadataModel):
    """Field metadata from an object describe"""
    name: str
    label: Optional[str] = None
    type: Optional[str] = None
    relationship_name: Optional[str] = Field(None, alias="relationshipName")
    reference_to: List[str] = Field(default_factory=list, alias="referenceTo")
    filterable: Optional[bool] = None
    queryable: Optional[bool] = None
    updateable: Optional[bool] = None
    createable: Optional[bool] = None
    permissionable: Optional[bool] = None
    deprecated_and_hidden: Optional[bool] = Field(None, alias="deprecatedAndHidden")
    
    @property
    def is_lookup(self) -> bool:
        return bool(self.relationship_name) and len(self.reference_to) > 0
    
    @property
    def is_readable(self) -> bool:
        return any(flag is True for flag in (
            self.filterable, self.queryable, self.updateable, self.permissionable
        ))


class ChildRelationshipDescribe(MetadataModel):
    """Parent-to-child relationship metadata"""
    child_sobject: Optional[str] = Field(None, alias="childSObject")
    field: Optional[str] = None
    relationship_name: Optional[str] = Field(None, alias="relationshipName")


class ObjectDescribe(MetadataModel):
    """Full describe of one object"""
    name: str
    label: Optional[str] = None
    label_plural: Optional[str] = Field(None, alias="labelPlural")
    custom: bool = False
    queryable: Optional[bool] = None
    fields: List[FieldDescribe] = Field(default_factory=list)
    child_relationships: List[ChildRelationshipDescribe] = Field(
        default_factory=list, alias="childRelationships"
    )
    
    def to_payload(self) -> Dict[str, Any]:
        """Serialize using the provider's key names (for caches)"""
        return self.model_dump(by_alias=True, exclude_none=True)


def coerce_describe(name: str, payload: Union[ObjectDescribe, Dict[str, Any]]) -> ObjectDescribe:
    """Validate a raw describe payload, filling in the object name if absent"""
    if isinstance(payload, ObjectDescribe):
        return payload
    data = dict(payload or {})
    data.setdefault("name", name)
    return ObjectDescribe.model_validate(data)


def coerce_summary(row: Union[ObjectSummary, Dict[str, Any]]) -> ObjectSummary:
    if isinstance(row, ObjectSummary):
        return row
    return ObjectSummary.model_validate(row)


class ObjectLister(ABC):
    """Lists every object visible to the connected org"""
    
    @abstractmethod
    async def list_objects(self) -> List[Union[ObjectSummary, Dict[str, Any]]]:
        ...


class ObjectDescriber(ABC):
    """Describes a single object; may fail per call"""
    
    @abstractmethod
    async def describe(self, object_name: str) -> Union[ObjectDescribe, Dict[str, Any]]:
        ...


class StaticMetadataProvider(ObjectLister, ObjectDescriber):
    """
    In-memory lister + describer over a metadata snapshot.
    
    Snapshot shape: {"objects": [summary, ...], "describes": {name: describe}}
    """
    
    def __init__(self, snapshot: Dict[str, Any]):
        self.objects = [coerce_summary(o) for o in snapshot.get("objects", [])]
        self.describes = {
            name: coerce_describe(name, d)
            for name, d in (snapshot.get("describes") or {}).items()
        }
        self.describe_calls: List[str] = []
    
    async def list_objects(self) -> List[ObjectSummary]:
        return list(self.objects)
    
    async def describe(self, object_name: str) -> ObjectDescribe:
        self.describe_calls.append(object_name)
        if object_name not in self.describes:
            raise DescribeError(f"NOT_FOUND: no describe for {object_name}", object_name)
        return self.describes[object_name]
