"""
Query plan assembly.

Ties resolution, schema indexing, relationship planning and field
selection together into a QueryPlan. Plans are rendered as query text for
the caller to run; nothing is executed here. Every selected field goes
through filter_allowed_fields before it reaches the plan.
"""

import logging
import re
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field

from sfplanner.config import Settings, get_settings
from sfplanner.entity_resolution.classification import CUSTOM_SUFFIX, is_forbidden
from sfplanner.entity_resolution.models import ResolutionResult
from sfplanner.entity_resolution.preferences import UserPreferenceStore
from sfplanner.entity_resolution.profile import OrgProfile
from sfplanner.entity_resolution.resolver import EntityResolver, ResolveOptions
from sfplanner.planning.dates import (
    DATE_FIELD, DateClarification, build_date_clarification, explicit_date_range,
    needs_date_clarification, normalize_date_macro
)
from sfplanner.planning.intent import (
    Intent, detect_intent, extract_search_terms, is_question_time_sensitive
)
from sfplanner.planning.relationships import (
    RelationshipPathResult, find_child_pivot, plan_path
)
from sfplanner.planning.search import (
    SearchPlan, build_search_plan, is_cross_object_question, search_targets,
    search_terms, should_use_search
)
from sfplanner.schema.cache import DescribeCache
from sfplanner.schema.fields import (
    GroupByLookup, all_queryable_fields, choose_order_by, filter_allowed_fields,
    find_lookup_name_fields_by_keywords, find_relevant_fields, is_field_allowed,
    pick_group_by_lookup, pick_lookup_name_fields
)
from sfplanner.schema.index import SchemaIndex, build_index, expand_index
from sfplanner.schema.models import ObjectDescriber, ObjectLister

logger = logging.getLogger(__name__)

QUESTION_TOKEN_RE = re.compile(r'[a-z][a-z0-9_]+')
MAX_LOOKUP_NAME_FIELDS = 2

# (phrases, row limit); first match wins
ROW_LIMIT_HINTS = [
    (('one ', 'single ', ' 1 '), 1),
    (('five ', ' 5 '), 5),
    (('ten ', ' 10 '), 10),
]
ALL_FIELDS_PHRASES = ('all field', 'all the field', 'every field')


class QueryPlan(BaseModel):
    """Validated query over one object"""
    object_name: str
    fields: List[str] = Field(default_factory=lambda: ["Id"])
    where: List[str] = Field(default_factory=list)
    order_by: Optional[str] = "Id"
    descending: bool = True
    limit: Optional[int] = None
    group_by: Optional[str] = None
    group_display_field: Optional[str] = None
    path: List[Dict[str, str]] = Field(default_factory=list)
    intent: Optional[Intent] = None
    count_only: bool = False
    
    def where_clause(self) -> str:
        return " AND ".join(self.where)
    
    def to_soql(self, count_only: Optional[bool] = None) -> str:
        """Render the query text. COUNT() queries carry no ordering or limit."""
        if count_only is None:
            count_only = self.count_only
        select = "COUNT()" if count_only else ", ".join(dict.fromkeys(self.fields))
        soql = f"SELECT {select} FROM {self.object_name}"
        if self.where:
            soql += f" WHERE {self.where_clause()}"
        if not count_only:
            if self.order_by:
                soql += f" ORDER BY {self.order_by}{' DESC' if self.descending else ''}"
            if self.limit:
                soql += f" LIMIT {self.limit}"
        return soql


@dataclass
class PlanOutcome:
    """
    Resolution plus, when no clarification is needed, either a single-object
    plan or a cross-object search plan.
    """
    intent: Intent
    resolution: Optional[ResolutionResult] = None
    plan: Optional[QueryPlan] = None
    search_plan: Optional[SearchPlan] = None
    target_object: Optional[str] = None
    index: Optional[SchemaIndex] = None
    clarification_message: Optional[str] = None
    date_clarification: Optional[DateClarification] = None
    
    @property
    def needs_clarification(self) -> bool:
        return self.plan is None and self.search_plan is None
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "intent": self.intent.value,
            "resolution": self.resolution.to_dict() if self.resolution else None,
            "plan": self.plan.model_dump(mode="json") if self.plan else None,
            "soql": self.plan.to_soql() if self.plan else None,
            "search_plan": self.search_plan.model_dump() if self.search_plan else None,
            "sosl": self.search_plan.to_sosl() if self.search_plan else None,
            "target_object": self.target_object,
            "needs_clarification": self.needs_clarification,
            "clarification_message": self.clarification_message,
            "date_clarification": self.date_clarification.to_dict() if self.date_clarification else None,
        }


def parse_row_limit(question: str, default: int) -> int:
    q = (question or "").lower()
    for phrases, limit in ROW_LIMIT_HINTS:
        if any(p in q for p in phrases):
            return limit
    return default


def question_tokens(question: str) -> List[str]:
    return QUESTION_TOKEN_RE.findall((question or "").lower())


def escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("'", "\\'")


def _path_to_dicts(path: Optional[RelationshipPathResult]) -> List[Dict[str, str]]:
    if path is None:
        return []
    return [
        {"type": hop.hop_type, "relationship": hop.relationship_name, "to": hop.target_object}
        for hop in path.path
    ]


class QueryPlanner:
    """Plan a query for a free-text question against a live schema"""
    
    def __init__(self, lister: ObjectLister, describer: ObjectDescriber,
                 cache: Optional[DescribeCache] = None,
                 settings: Optional[Settings] = None,
                 preference_store: Optional[UserPreferenceStore] = None,
                 resolver: Optional[EntityResolver] = None):
        self.lister = lister
        self.describer = describer
        self.cache = cache
        self.settings = settings or get_settings()
        self.preference_store = preference_store or UserPreferenceStore()
        self.resolver = resolver or EntityResolver(settings=self.settings)
    
    async def plan(self, question: str,
                   org_profile: Union[OrgProfile, Dict[str, Any], None] = None,
                   session_id: Optional[str] = None,
                   options: Optional[ResolveOptions] = None,
                   date_range: Optional[str] = None) -> PlanOutcome:
        """
        date_range is the caller's answer to a date clarification; it wins
        over any range named in the question and over the org default.
        """
        profile = org_profile if isinstance(org_profile, OrgProfile) else OrgProfile.from_dict(org_profile)
        org_id = profile.org_id
        intent = detect_intent(question)
        options = options or ResolveOptions()
        
        resolution = None
        target = self._remembered_answer(session_id, question)
        if target:
            logger.info(f"Using cached clarification for '{question}': {target}")
        else:
            if session_id and not options.session_preferences:
                options = replace(options, session_preferences=self.preference_store.get_preferences(session_id))
            resolution = await self.resolver.resolve(question, self.lister, profile, options)
            unresolved = not resolution.success or resolution.needs_clarification
            
            if is_cross_object_question(question) or (unresolved and should_use_search(question, intent)):
                outcome = await self._plan_search(question, intent, profile, resolution)
                if outcome is not None:
                    return outcome
            
            if unresolved:
                return PlanOutcome(
                    intent=intent,
                    resolution=resolution,
                    clarification_message=resolution.clarification_message,
                )
            target = resolution.primary_match.canonical_name
        
        if date_range is None and is_question_time_sensitive(question) and needs_date_clarification(question):
            clarification = build_date_clarification(profile.default_date_range or self.settings.default_date_range)
            logger.info(f"'{question}' hints at a date without naming a range; asking which to use")
            return PlanOutcome(
                intent=intent,
                resolution=resolution,
                target_object=target,
                clarification_message=clarification.question,
                date_clarification=clarification,
            )
        
        index = await build_index(self.describer, [target], cache=self.cache, org_id=org_id)
        index = await expand_index(self.describer, index, target, self.settings.expansion_depth,
                                   cache=self.cache, org_id=org_id)
        
        tokens = question_tokens(question)
        group_by: Optional[GroupByLookup] = None
        path: Optional[RelationshipPathResult] = None
        
        if intent in (Intent.AGGREGATE, Intent.LIST_RELATED_RECORDS):
            pivot = plan_path(index, target, tokens, self.settings.max_path_depth)
            if pivot and pivot.object_name != target:
                logger.info(f"Pivoting from {target} to {pivot.object_name} (score={pivot.score})")
                target = pivot.object_name
                index = await expand_index(self.describer, index, target, 1,
                                           cache=self.cache, org_id=org_id)
            
            if intent == Intent.AGGREGATE:
                group_by = pick_group_by_lookup(index, target, tokens)
                if group_by is None:
                    target, group_by, index = await self._pivot_to_child(index, target, tokens, org_id)
            
            path = plan_path(index, target, tokens, self.settings.max_path_depth)
        
        plan = self._build_plan(question, intent, index, target, profile, resolution, group_by, path,
                                date_range)
        return PlanOutcome(
            intent=intent,
            resolution=resolution,
            plan=plan,
            target_object=target,
            index=index,
        )
    
    def _remembered_answer(self, session_id: Optional[str], question: str) -> Optional[str]:
        """A previous clarification answer, unless it names an object that must never be queried"""
        if not session_id:
            return None
        target = self.preference_store.get_clarification(session_id, question)
        if target and is_forbidden(target):
            logger.warning(f"Ignoring cached clarification for '{question}': {target} is not queryable")
            return None
        return target
    
    async def _plan_search(self, question: str, intent: Intent, profile: OrgProfile,
                           resolution: ResolutionResult) -> Optional[PlanOutcome]:
        """Cross-object search; None sends the question back to single-object planning"""
        terms = search_terms(question)
        if not terms:
            logger.info(f"No search terms in '{question}'; not planning a cross-object search")
            return None
        
        entities = [resolution.primary_match.canonical_name] if resolution.success else []
        targets = search_targets(entities, profile)
        index = await build_index(self.describer, targets, cache=self.cache, org_id=profile.org_id)
        
        search_plan = build_search_plan(question, index, targets, terms=terms,
                                        limit=self.settings.default_row_limit)
        if search_plan is None:
            logger.info(f"None of {targets} could be described; not planning a cross-object search")
            return None
        
        logger.info(f"Planned cross-object search for '{question}' over {search_plan.target_objects}")
        return PlanOutcome(
            intent=intent,
            resolution=resolution,
            search_plan=search_plan,
            index=index,
        )
    
    async def _pivot_to_child(self, index: SchemaIndex, target: str, tokens: List[str],
                              org_id: Optional[str]):
        """Aggregates with nothing to group on move to the best child object"""
        entry = index.get(target)
        missing = [c for c in dict.fromkeys(entry.child_relationships.values()) if c not in index] if entry else []
        if missing:
            index.merge(await build_index(self.describer, missing, cache=self.cache, org_id=org_id))
        
        child = find_child_pivot(index, target, tokens)
        if not child:
            return target, None, index
        
        logger.info(f"Aggregate on {target} has no group-by lookup; using child {child}")
        index = await expand_index(self.describer, index, child, 1, cache=self.cache, org_id=org_id)
        return child, pick_group_by_lookup(index, child, tokens), index
    
    def _build_plan(self, question: str, intent: Intent, index: SchemaIndex, target: str,
                    profile: OrgProfile, resolution: Optional[ResolutionResult],
                    group_by: Optional[GroupByLookup],
                    path: Optional[RelationshipPathResult],
                    date_range: Optional[str] = None) -> QueryPlan:
        q = (question or "").lower()
        entry = index.get(target)
        tokens = question_tokens(question)
        
        fields = ["Id", "Name"]
        if any(p in q for p in ALL_FIELDS_PHRASES):
            fields += all_queryable_fields(index, target)
        elif entry is not None:
            fields += find_relevant_fields(q, entry.fields)
        
        if target.endswith(CUSTOM_SUFFIX):
            picked = (find_lookup_name_fields_by_keywords(index, target, tokens, MAX_LOOKUP_NAME_FIELDS)
                      or pick_lookup_name_fields(index, target, MAX_LOOKUP_NAME_FIELDS))
            fields += picked
        
        if path is not None:
            fields += path.parent_name_fields(MAX_LOOKUP_NAME_FIELDS)
        
        if group_by is not None:
            fields += [group_by.group_field, group_by.display_field]
        
        where = self._build_filters(question, intent, index, target, profile, resolution, date_range)
        
        allowed = filter_allowed_fields(index, target, list(dict.fromkeys(fields)))
        if "Id" not in allowed:
            allowed.insert(0, "Id")
        
        plan = QueryPlan(
            object_name=target,
            fields=allowed,
            where=where,
            order_by=choose_order_by(index, target),
            limit=parse_row_limit(question, self.settings.default_row_limit),
            group_by=group_by.group_field if group_by else None,
            group_display_field=group_by.display_field if group_by else None,
            path=_path_to_dicts(path),
            intent=intent,
        )
        logger.debug(f"Planned query: {plan.to_soql()}")
        return plan
    
    def _build_filters(self, question: str, intent: Intent, index: SchemaIndex, target: str,
                       profile: OrgProfile, resolution: Optional[ResolutionResult],
                       date_range: Optional[str] = None) -> List[str]:
        where: List[str] = []
        
        date_literal = self._date_literal(question, profile, date_range)
        if date_literal:
            if is_field_allowed(index, target, DATE_FIELD):
                where.append(f"{DATE_FIELD} = {date_literal}")
            else:
                logger.debug(f"{target} has no readable {DATE_FIELD}; skipping date filter")
        
        # Object words are not record names
        object_words = list(resolution.keywords) if resolution else []
        entry = index.get(target)
        if entry is not None:
            object_words += f"{entry.label} {entry.label_plural}".lower().split()
        
        terms = extract_search_terms(question, extra_stop_words=object_words)
        quoted = '"' in question or "'" in question
        if terms and (intent == Intent.SEARCH or quoted):
            like = " OR ".join(f"Name LIKE '%{escape_like(t)}%'" for t in terms)
            where.append(f"({like})")
        
        return where
    
    def _date_literal(self, question: str, profile: OrgProfile,
                      date_range: Optional[str] = None) -> Optional[str]:
        """Caller's range, then a range named in the question, then the org default for time-sensitive questions"""
        if date_range:
            return normalize_date_macro(date_range)
        named = explicit_date_range(question)
        if named:
            return named
        if is_question_time_sensitive(question):
            return normalize_date_macro(profile.default_date_range or self.settings.default_date_range)
        return None
    
    def record_outcome(self, session_id: str, question: str, object_name: str, success: bool = True):
        """Feed query success back into the session's preferences"""
        self.preference_store.track_usage(session_id, question, object_name, success)
    
    def record_clarification(self, session_id: str, question: str, object_name: str):
        self.preference_store.record_clarification(session_id, question, object_name)
