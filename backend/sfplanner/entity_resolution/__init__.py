"""
Object Resolution System

Resolves free-text questions to the data objects they are about.

Usage:
    from sfplanner.entity_resolution import EntityResolver, ResolveOptions
    
    resolver = EntityResolver()
    result = await resolver.resolve("show me custmers", lister, org_profile)
    
    if result.needs_clarification:
        print(result.clarification_message)
    else:
        print(f"Matched: {result.primary_match.canonical_name}")
"""

from sfplanner.entity_resolution.similarity import (
    edit_distance,
    similarity
)

from sfplanner.entity_resolution.classification import (
    ClassificationRule,
    is_forbidden,
    is_system_object
)

from sfplanner.entity_resolution.catalog import (
    CandidateDescriptor,
    CatalogIndex,
    VariationGenerator,
    build_catalog,
    build_object_catalog
)

from sfplanner.entity_resolution.keywords import (
    ExtractedKeywords,
    KeywordExtractor
)

from sfplanner.entity_resolution.profile import OrgProfile

from sfplanner.entity_resolution.preferences import (
    ObjectPreference,
    UserPreferenceStore
)

from sfplanner.entity_resolution.ranking import (
    ContextRanker,
    RankingWeights
)

from sfplanner.entity_resolution.models import (
    MatchCandidate,
    ResolutionResult
)

from sfplanner.entity_resolution.resolver import (
    EntityResolver,
    ResolveOptions,
    resolve
)

__all__ = [
    # Similarity
    'edit_distance',
    'similarity',
    
    # Classification
    'ClassificationRule',
    'is_forbidden',
    'is_system_object',
    
    # Catalog
    'CandidateDescriptor',
    'CatalogIndex',
    'VariationGenerator',
    'build_catalog',
    'build_object_catalog',
    
    # Keywords and ranking
    'ExtractedKeywords',
    'KeywordExtractor',
    'ContextRanker',
    'RankingWeights',
    
    # Context
    'OrgProfile',
    'ObjectPreference',
    'UserPreferenceStore',
    
    # Resolver
    'EntityResolver',
    'ResolveOptions',
    'MatchCandidate',
    'ResolutionResult',
    'resolve',
]
