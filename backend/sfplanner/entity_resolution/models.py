"""
Resolution result types.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from sfplanner.entity_resolution.catalog import CandidateDescriptor


@dataclass
class MatchCandidate:
    """A catalog descriptor matched by one keyword"""
    descriptor: CandidateDescriptor
    confidence: float
    match_type: str  # exact, partial, fuzzy
    matched_keyword: str
    reasons: List[str] = field(default_factory=list)
    
    @property
    def canonical_name(self) -> str:
        return self.descriptor.canonical_name
    
    @property
    def display_label(self) -> str:
        return self.descriptor.display_label
    
    @property
    def is_custom(self) -> bool:
        return self.descriptor.is_custom
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "canonical_name": self.descriptor.canonical_name,
            "label": self.descriptor.display_label,
            "label_plural": self.descriptor.display_label_plural,
            "custom": self.descriptor.is_custom,
            "matched_by": self.descriptor.matched_by_variant,
            "confidence": round(self.confidence, 4),
            "match_type": self.match_type,
            "keyword": self.matched_keyword,
            "reasons": list(self.reasons),
        }


@dataclass
class ResolutionResult:
    """Outcome of resolving a question to candidate objects"""
    success: bool
    primary_match: Optional[MatchCandidate]
    suggestions: List[MatchCandidate] = field(default_factory=list)
    confidence: float = 0.0
    needs_clarification: bool = False
    clarification_message: Optional[str] = None
    keywords: List[str] = field(default_factory=list)
    used_preferences: bool = False
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "primary_match": self.primary_match.to_dict() if self.primary_match else None,
            "suggestions": [s.to_dict() for s in self.suggestions],
            "confidence": round(self.confidence, 4),
            "needs_clarification": self.needs_clarification,
            "clarification_message": self.clarification_message,
            "keywords": list(self.keywords),
            "used_preferences": self.used_preferences,
        }
