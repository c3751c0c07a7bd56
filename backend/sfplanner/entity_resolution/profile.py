"""
Org profile: per-org configuration supplied by the surrounding service.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class OrgProfile:
    """Org-specific synonyms and hints used during resolution and planning"""
    org_id: Optional[str] = None
    object_synonyms: Dict[str, List[str]] = field(default_factory=dict)  # canonical name -> synonyms
    frequent_objects: List[str] = field(default_factory=list)
    default_date_range: Optional[str] = None
    
    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "OrgProfile":
        """Accepts both snake_case and the camelCase keys of stored profiles"""
        data = data or {}
        guardrails = data.get("guardrails") or {}
        return cls(
            org_id=data.get("org_id") or data.get("orgId"),
            object_synonyms=dict(data.get("object_synonyms") or data.get("objectSynonyms") or {}),
            frequent_objects=list(data.get("frequent_objects") or data.get("frequentObjects") or []),
            default_date_range=(
                data.get("default_date_range")
                or guardrails.get("defaultDateRange")
                or guardrails.get("default_date_range")
            ),
        )
