"""
Object Resolution Engine

Resolves a free-text question to ranked candidate objects:

1. Keyword extraction (business terms, custom API names, org synonyms)
2. Exact variant lookups
3. Substring (partial) matches
4. Fuzzy matches, only when nothing matched strongly
5. Context / preference re-ranking
6. Deduplication by canonical name
7. Selection and clarification

Resolution never raises: missing metadata produces an unsuccessful result
with an explanatory message.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from sfplanner.config import Settings, get_settings
from sfplanner.entity_resolution.catalog import CatalogIndex, build_catalog
from sfplanner.entity_resolution.classification import is_forbidden
from sfplanner.entity_resolution.keywords import ExtractedKeywords, KeywordExtractor
from sfplanner.entity_resolution.models import MatchCandidate, ResolutionResult
from sfplanner.entity_resolution.preferences import ObjectPreference
from sfplanner.entity_resolution.profile import OrgProfile
from sfplanner.entity_resolution.ranking import ContextRanker, RankingWeights
from sfplanner.entity_resolution.similarity import similarity
from sfplanner.schema.models import ObjectLister

logger = logging.getLogger(__name__)

CLARIFICATION_ALTERNATIVES = 3


@dataclass
class ResolveOptions:
    """Per-call resolution options; None means "use settings" """
    threshold: Optional[float] = None
    max_suggestions: Optional[int] = None
    include_system_objects: bool = False
    enable_fuzzy_search: bool = True
    session_preferences: Dict[str, Any] = field(default_factory=dict)
    now: Optional[datetime] = None


def _coerce_preferences(raw: Dict[str, Any]) -> Dict[str, ObjectPreference]:
    """Malformed entries are skipped, never raised"""
    preferences = {}
    for name, pref in (raw or {}).items():
        if isinstance(pref, ObjectPreference):
            preferences[name] = pref
            continue
        try:
            preferences[name] = ObjectPreference.from_dict(pref)
        except (TypeError, ValueError) as e:
            logger.warning(f"Skipping malformed preference for {name}: {e}")
    return preferences


def _coerce_profile(org_profile: Union[OrgProfile, Dict[str, Any], None]) -> OrgProfile:
    if isinstance(org_profile, OrgProfile):
        return org_profile
    return OrgProfile.from_dict(org_profile)


class EntityResolver:
    """Main object resolution engine"""
    
    def __init__(self, settings: Optional[Settings] = None,
                 ranker: Optional[ContextRanker] = None,
                 extractor: Optional[KeywordExtractor] = None):
        self.settings = settings or get_settings()
        self.ranker = ranker or ContextRanker(RankingWeights.from_settings(self.settings))
        self.extractor = extractor or KeywordExtractor(min_length=self.settings.min_keyword_length)
    
    async def resolve(self, question: str, lister: ObjectLister,
                      org_profile: Union[OrgProfile, Dict[str, Any], None] = None,
                      options: Optional[ResolveOptions] = None) -> ResolutionResult:
        """Build the catalog from the lister, then resolve against it"""
        options = options or ResolveOptions()
        catalog = await build_catalog(lister, include_system_objects=options.include_system_objects)
        return self.resolve_with_catalog(question, catalog, org_profile, options)
    
    def resolve_with_catalog(self, question: str, catalog: CatalogIndex,
                             org_profile: Union[OrgProfile, Dict[str, Any], None] = None,
                             options: Optional[ResolveOptions] = None) -> ResolutionResult:
        """Resolve against an already built catalog (reuse within a request)"""
        options = options or ResolveOptions()
        profile = _coerce_profile(org_profile)
        preferences = _coerce_preferences(options.session_preferences)
        threshold = options.threshold if options.threshold is not None else self.settings.fuzzy_threshold
        max_suggestions = max(0, options.max_suggestions if options.max_suggestions is not None
                              else self.settings.max_suggestions)
        
        extracted = self.extractor.extract(question, profile)
        
        matches = self._exact_matches(extracted.keywords, catalog)
        matches += self._partial_matches(extracted.keywords, catalog)
        
        strong = any(m.confidence > self.settings.strong_match_threshold for m in matches)
        if options.enable_fuzzy_search and not strong:
            matches += self._fuzzy_matches(extracted, catalog, threshold)
        
        ranked = self.ranker.rank(matches, question, profile, preferences, options.now)
        ranked = [m for m in ranked if not is_forbidden(m.canonical_name)]
        
        top = self._deduplicate(ranked)[:max_suggestions]
        
        result = ResolutionResult(
            success=len(top) > 0,
            primary_match=top[0] if top else None,
            suggestions=top,
            confidence=top[0].confidence if top else 0.0,
            needs_clarification=len(top) > 1 and top[0].confidence < self.settings.disambiguation_threshold,
            clarification_message=self._clarification_message(top, extracted, question),
            keywords=list(extracted.keywords),
            used_preferences=len(preferences) > 0,
        )
        
        if result.success:
            logger.info(f"Resolved '{question}' -> {result.primary_match.canonical_name} "
                        f"({result.primary_match.match_type}, confidence={result.confidence:.2f}, "
                        f"clarify={result.needs_clarification})")
        else:
            logger.info(f"No object match for '{question}' (keywords={extracted.keywords})")
        return result
    
    def _exact_matches(self, keywords: List[str], catalog: CatalogIndex) -> List[MatchCandidate]:
        matches = []
        for keyword in keywords:
            for descriptor in catalog.lookup(keyword):
                matches.append(MatchCandidate(descriptor, 1.0, 'exact', keyword))
        return matches
    
    def _partial_matches(self, keywords: List[str], catalog: CatalogIndex) -> List[MatchCandidate]:
        matches = []
        for keyword in keywords:
            for key, descriptors in catalog.items():
                if keyword in key or key in keyword:
                    confidence = min(len(keyword), len(key)) / max(len(keyword), len(key))
                    for descriptor in descriptors:
                        matches.append(MatchCandidate(descriptor, confidence, 'partial', keyword))
        return matches
    
    def _fuzzy_matches(self, extracted: ExtractedKeywords, catalog: CatalogIndex,
                       threshold: float) -> List[MatchCandidate]:
        matches = []
        for term in extracted.all_terms():
            for key, descriptors in catalog.items():
                score = similarity(term, key)
                if score >= threshold:
                    for descriptor in descriptors:
                        matches.append(MatchCandidate(descriptor, score, 'fuzzy', term))
        
        # Misspelled business terms reach their standard object
        for token in extracted.residual_tokens:
            for standard_key, _, score in self.extractor.bridge_terms(token, threshold):
                for descriptor in catalog.lookup(standard_key):
                    matches.append(MatchCandidate(descriptor, score, 'fuzzy', token))
        
        matches.sort(key=lambda m: m.confidence, reverse=True)
        return matches
    
    @staticmethod
    def _deduplicate(matches: List[MatchCandidate]) -> List[MatchCandidate]:
        """Keep the first (highest ranked) candidate per canonical name"""
        seen = set()
        unique = []
        for match in matches:
            if match.canonical_name not in seen:
                seen.add(match.canonical_name)
                unique.append(match)
        return unique
    
    @staticmethod
    def _clarification_message(matches: List[MatchCandidate], extracted: ExtractedKeywords,
                               question: str) -> Optional[str]:
        if not matches:
            terms = extracted.keywords or extracted.residual_tokens or [question.strip()]
            return (
                f"I couldn't find any objects matching \"{', '.join(terms)}\". "
                f"Try using standard names like \"Account\", \"Contact\", or \"Opportunity\", "
                f"or provide the exact API name."
            )
        
        if len(matches) == 1:
            return None
        
        suggestions = ", ".join(
            f"\"{m.display_label or m.canonical_name}\" ({m.canonical_name})"
            for m in matches[:CLARIFICATION_ALTERNATIVES]
        )
        return f"I found multiple objects matching your request. Did you mean: {suggestions}?"


async def resolve(question: str, lister: ObjectLister,
                  org_profile: Union[OrgProfile, Dict[str, Any], None] = None,
                  options: Optional[ResolveOptions] = None) -> ResolutionResult:
    """Resolve with a default EntityResolver"""
    return await EntityResolver().resolve(question, lister, org_profile, options)
