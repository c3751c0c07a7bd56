"""
Context re-ranking of match candidates.

Additive confidence adjustments from business vocabulary, the org profile,
the user's history and deployment hints, clamped to [0, 1]. The large
deployment-specific boosts are configuration (see Settings) and need
recalibrating per org.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from sfplanner.config import Settings, get_settings
from sfplanner.entity_resolution.classification import is_forbidden, is_system_object
from sfplanner.entity_resolution.models import MatchCandidate
from sfplanner.entity_resolution.preferences import ObjectPreference, to_utc, utc_now
from sfplanner.entity_resolution.profile import OrgProfile

logger = logging.getLogger(__name__)

# (question term, standard object) pairs for non-custom candidates
STANDARD_TERM_BOOSTS: List[Tuple[str, str]] = [
    ('customer', 'Account'),
    ('person', 'Contact'),
    ('deal', 'Opportunity'),
    ('case', 'Case'),
    ('lead', 'Lead'),
]

# (question terms, name fragments) domain heuristics
DOMAIN_BOOSTS: List[Tuple[Tuple[str, ...], Tuple[str, ...]]] = [
    (('inventory', 'stock'), ('item', 'product')),
    (('location', 'warehouse'), ('location', 'warehouse')),
]

GENERIC_CUSTOM_TERMS = ('item', 'product', 'inventory', 'order', 'customer', 'location')


@dataclass(frozen=True)
class HintRule:
    """
    Deployment hint: when the question contains one of `phrases`, boost
    candidates whose name contains `name_contains` (or equals
    `canonical_name`).
    """
    phrases: Tuple[str, ...]
    boost: float
    name_contains: Optional[str] = None
    canonical_name: Optional[str] = None
    
    def applies(self, question_lower: str, candidate_name: str) -> bool:
        if not any(p in question_lower for p in self.phrases):
            return False
        if self.canonical_name is not None:
            return candidate_name == self.canonical_name
        if self.name_contains is not None:
            return self.name_contains.lower() in candidate_name.lower()
        return False


@dataclass
class RankingWeights:
    standard_term: float = 0.2
    frequent_object: float = 0.15
    usage_per_use: float = 0.02
    usage_cap: float = 0.3
    success: float = 0.2
    recency_max: float = 0.1
    recency_decay_per_day: float = 0.01
    domain: float = 0.25
    generic_custom_term: float = 0.8
    namespace: float = 0.3
    preferred_namespace: Optional[str] = None
    hint_rules: List[HintRule] = field(default_factory=list)
    forbidden_penalty: float = -2.0
    system_penalty: float = -0.5
    business_custom: float = 0.05
    
    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "RankingWeights":
        settings = settings or get_settings()
        rules = []
        if settings.hint_phrases_list and settings.hint_name_term:
            rules.append(HintRule(
                phrases=tuple(settings.hint_phrases_list),
                boost=settings.hint_phrase_boost,
                name_contains=settings.hint_name_term,
            ))
        if settings.primary_object_hint and settings.primary_object_phrases_list:
            rules.append(HintRule(
                phrases=tuple(settings.primary_object_phrases_list),
                boost=settings.primary_object_boost,
                canonical_name=settings.primary_object_hint,
            ))
        return cls(
            generic_custom_term=settings.generic_custom_term_boost,
            namespace=settings.namespace_boost,
            preferred_namespace=settings.preferred_namespace,
            hint_rules=rules,
        )


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


class ContextRanker:
    """Re-rank candidates by question context and user history"""
    
    def __init__(self, weights: Optional[RankingWeights] = None):
        self.weights = weights or RankingWeights.from_settings()
    
    def preference_boost(self, pref: ObjectPreference, now: datetime) -> float:
        w = self.weights
        usage = min(w.usage_cap, pref.count * w.usage_per_use)
        success = pref.success_rate * w.success
        days = pref.days_since_last_use(now)
        recency = 0.0 if days is None else max(0.0, w.recency_max - days * w.recency_decay_per_day)
        return usage + success + recency
    
    def context_boost(self, candidate: MatchCandidate, question_lower: str,
                      org_profile: OrgProfile,
                      preferences: Dict[str, ObjectPreference],
                      now: datetime) -> float:
        w = self.weights
        name = candidate.canonical_name
        name_lower = name.lower()
        boost = 0.0
        
        # Business vocabulary -> standard objects
        if not candidate.is_custom:
            for term, standard in STANDARD_TERM_BOOSTS:
                if term in question_lower and name == standard:
                    boost += w.standard_term
        
        if name in org_profile.frequent_objects:
            boost += w.frequent_object
            candidate.reasons.append("Org frequent")
        
        pref = preferences.get(name)
        if pref:
            try:
                boost += self.preference_boost(pref, now)
                candidate.reasons.append("Used previously")
            except (TypeError, ValueError) as e:
                logger.warning(f"Ignoring unusable preference for {name}: {e}")
        
        for question_terms, name_terms in DOMAIN_BOOSTS:
            if any(t in question_lower for t in question_terms) and any(t in name_lower for t in name_terms):
                boost += w.domain
        
        if candidate.is_custom and "__" in name:
            for term in GENERIC_CUSTOM_TERMS:
                if term in question_lower and term in name_lower:
                    boost += w.generic_custom_term
            if w.preferred_namespace and name.startswith(w.preferred_namespace):
                boost += w.namespace
            for rule in w.hint_rules:
                if rule.applies(question_lower, name):
                    boost += rule.boost
        
        if is_forbidden(name):
            boost += w.forbidden_penalty
        if is_system_object(name):
            boost += w.system_penalty
        
        if candidate.is_custom and ("business" in question_lower or "custom" in question_lower):
            boost += w.business_custom
        
        if boost > 0.1:
            candidate.reasons.append("Context match")
        return boost
    
    def rank(self, candidates: List[MatchCandidate], question: str,
             org_profile: Optional[OrgProfile] = None,
             preferences: Optional[Dict[str, ObjectPreference]] = None,
             now: Optional[datetime] = None) -> List[MatchCandidate]:
        """Adjust confidences in place and return candidates sorted descending"""
        question_lower = (question or "").lower()
        org_profile = org_profile or OrgProfile()
        preferences = preferences or {}
        now = to_utc(now) if now is not None else utc_now()
        
        for candidate in candidates:
            boost = self.context_boost(candidate, question_lower, org_profile, preferences, now)
            candidate.confidence = clamp(candidate.confidence + boost)
            logger.debug(f"Ranked {candidate.canonical_name} via '{candidate.matched_keyword}' "
                         f"({candidate.match_type}): boost={boost:.2f} -> {candidate.confidence:.2f}")
        
        return sorted(candidates, key=lambda c: c.confidence, reverse=True)
