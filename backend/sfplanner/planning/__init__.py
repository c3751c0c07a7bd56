"""
Relationship planning, intent detection, date ranges, cross-object search
and query plan assembly.
"""

from sfplanner.planning.intent import (
    Intent,
    detect_intent,
    is_question_time_sensitive,
    extract_search_terms
)

from sfplanner.planning.dates import (
    DateClarification,
    resolve_date_range,
    explicit_date_range,
    normalize_date_macro,
    needs_date_clarification,
    build_date_clarification
)

from sfplanner.planning.relationships import (
    RelationshipHop,
    RelationshipPathResult,
    plan_path,
    find_child_pivot
)

from sfplanner.planning.search import (
    SearchPlan,
    SearchReturning,
    is_cross_object_question,
    should_use_search,
    build_search_plan
)

from sfplanner.planning.query_plan import (
    QueryPlan,
    PlanOutcome,
    QueryPlanner
)

__all__ = [
    'Intent',
    'detect_intent',
    'is_question_time_sensitive',
    'extract_search_terms',
    'DateClarification',
    'resolve_date_range',
    'explicit_date_range',
    'normalize_date_macro',
    'needs_date_clarification',
    'build_date_clarification',
    'RelationshipHop',
    'RelationshipPathResult',
    'plan_path',
    'find_child_pivot',
    'SearchPlan',
    'SearchReturning',
    'is_cross_object_question',
    'should_use_search',
    'build_search_plan',
    'QueryPlan',
    'PlanOutcome',
    'QueryPlanner',
]
