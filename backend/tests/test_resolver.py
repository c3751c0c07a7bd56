"""
Tests for the object resolution engine
"""

import logging
from datetime import datetime, timezone

import pytest

from sfplanner.entity_resolution.preferences import ObjectPreference
from sfplanner.entity_resolution.profile import OrgProfile
from sfplanner.entity_resolution.ranking import ContextRanker, RankingWeights
from sfplanner.entity_resolution.resolver import EntityResolver, ResolveOptions, resolve

from conftest import BrokenLister, make_provider, obj


@pytest.fixture
def resolver(settings):
    return EntityResolver(settings=settings, ranker=ContextRanker(RankingWeights()))


@pytest.fixture
def invoice_provider():
    return make_provider([
        obj("Invoice_Line__c", "Invoice Line"),
        obj("Invoice_Header__c", "Invoice Header"),
        obj("Account", "Account"),
    ])


class TestResolveSampleOrg:
    """Resolution against the sample org"""
    
    @pytest.mark.asyncio
    async def test_items_resolve_to_item_object(self, resolver, provider, now):
        result = await resolver.resolve("show me items", provider, options=ResolveOptions(now=now))
        
        assert result.success
        assert result.primary_match.canonical_name == "demo__Item__c"
        assert result.primary_match.match_type == "exact"
        assert result.needs_clarification is False
        assert set(result.keywords) == {"items", "item"}
    
    @pytest.mark.asyncio
    async def test_typo_reaches_account_through_fuzzy_stage(self, resolver, provider, now):
        result = await resolver.resolve("show me custmers", provider, options=ResolveOptions(now=now))
        
        assert result.success
        assert result.primary_match.canonical_name == "Account"
        assert result.primary_match.match_type == "fuzzy"
        assert result.confidence >= 0.6
    
    @pytest.mark.asyncio
    async def test_fuzzy_disabled(self, resolver, provider, now):
        options = ResolveOptions(enable_fuzzy_search=False, now=now)
        result = await resolver.resolve("show me custmers", provider, options=options)
        
        assert not result.success
        assert result.primary_match is None
    
    @pytest.mark.asyncio
    async def test_forbidden_object_never_suggested(self, resolver, provider, now):
        options = ResolveOptions(include_system_objects=True, now=now)
        result = await resolver.resolve("flow orchestration work items", provider, options=options)
        
        names = [s.canonical_name for s in result.suggestions]
        assert "FlowOrchestrationWorkItem" not in names
    
    @pytest.mark.asyncio
    async def test_suggestions_unique_and_sorted(self, resolver, provider, now):
        result = await resolver.resolve("items and item lots", provider, options=ResolveOptions(now=now))
        names = [s.canonical_name for s in result.suggestions]
        confidences = [s.confidence for s in result.suggestions]
        
        assert len(names) == len(set(names))
        assert confidences == sorted(confidences, reverse=True)
        assert all(0.0 <= c <= 1.0 for c in confidences)
    
    @pytest.mark.asyncio
    async def test_max_suggestions(self, resolver, provider, now):
        options = ResolveOptions(max_suggestions=1, now=now)
        result = await resolver.resolve("items and item lots", provider, options=options)
        
        assert len(result.suggestions) == 1
        assert result.needs_clarification is False
    
    @pytest.mark.asyncio
    async def test_zero_max_suggestions_is_honoured(self, resolver, provider, now):
        options = ResolveOptions(max_suggestions=0, now=now)
        result = await resolver.resolve("show me accounts", provider, options=options)
        
        assert result.suggestions == []
        assert result.primary_match is None
    
    @pytest.mark.asyncio
    async def test_org_synonym(self, resolver, provider, now):
        profile = {"objectSynonyms": {"demo__Location__c": ["warehouse"]}}
        result = await resolver.resolve("stock per warehouse", provider, profile, ResolveOptions(now=now))
        
        assert result.primary_match.canonical_name == "demo__Location__c"


class TestClarification:
    """Clarification and not-found outcomes"""
    
    @pytest.mark.asyncio
    async def test_ambiguous_question_asks_for_clarification(self, resolver, invoice_provider, now):
        result = await resolver.resolve("show me invoices", invoice_provider, options=ResolveOptions(now=now))
        
        assert result.success
        assert result.needs_clarification
        assert result.confidence < 0.9
        assert result.primary_match.canonical_name == "Invoice_Line__c"
        assert result.clarification_message.startswith(
            "I found multiple objects matching your request. Did you mean:"
        )
        assert '"Invoice Line" (Invoice_Line__c)' in result.clarification_message
        assert '"Invoice Header" (Invoice_Header__c)' in result.clarification_message
    
    @pytest.mark.asyncio
    async def test_preferences_settle_ambiguity(self, resolver, invoice_provider, now):
        options = ResolveOptions(
            now=now,
            session_preferences={
                "Invoice_Header__c": ObjectPreference(count=10, success_rate=1.0, last_used=now)
            }
        )
        result = await resolver.resolve("show me invoices", invoice_provider, options=options)
        
        assert result.primary_match.canonical_name == "Invoice_Header__c"
        assert result.needs_clarification is False
        assert result.used_preferences is True
        assert "Used previously" in result.primary_match.reasons
    
    @pytest.mark.asyncio
    async def test_stored_preference_shape(self, resolver, invoice_provider, now):
        options = ResolveOptions(
            now=now,
            session_preferences={"Invoice_Header__c": {"count": 10, "successRate": 1.0}}
        )
        result = await resolver.resolve("show me invoices", invoice_provider, options=options)
        
        assert result.primary_match.canonical_name == "Invoice_Header__c"
    
    @pytest.mark.asyncio
    async def test_nothing_found(self, resolver, provider, now):
        result = await resolver.resolve("show me widgets", provider, options=ResolveOptions(now=now))
        
        assert result.success is False
        assert result.primary_match is None
        assert result.suggestions == []
        assert result.confidence == 0.0
        assert result.needs_clarification is False
        assert '"widgets"' in result.clarification_message
    
    @pytest.mark.asyncio
    async def test_single_match_has_no_message(self, resolver, provider, now):
        result = await resolver.resolve("show me custmers", provider, options=ResolveOptions(now=now))
        
        assert len(result.suggestions) == 1
        assert result.clarification_message is None


class TestDegradedMetadata:
    
    @pytest.mark.asyncio
    async def test_lister_failure_is_not_raised(self, resolver, now):
        result = await resolver.resolve("show me accounts", BrokenLister(), options=ResolveOptions(now=now))
        
        assert result.success is False
        assert result.clarification_message is not None
    
    @pytest.mark.asyncio
    async def test_module_level_resolve(self, provider):
        result = await resolve("show me accounts", provider, OrgProfile())
        
        assert result.primary_match.canonical_name == "Account"
        assert result.to_dict()["primary_match"]["canonical_name"] == "Account"


class TestPreferenceTimestamps:
    """Stored preferences arrive with mixed timestamp shapes"""
    
    @pytest.mark.asyncio
    async def test_iso_string_last_used(self, resolver, invoice_provider, now):
        options = ResolveOptions(
            now=now,
            session_preferences={
                "Invoice_Header__c": {"count": 10, "successRate": 1.0, "lastUsed": "2024-05-31T12:00:00Z"}
            }
        )
        result = await resolver.resolve("show me invoices", invoice_provider, options=options)
        
        assert result.primary_match.canonical_name == "Invoice_Header__c"
        assert "Used previously" in result.primary_match.reasons
    
    @pytest.mark.asyncio
    @pytest.mark.parametrize("now", [
        datetime(2024, 6, 1, 12),
        datetime(2024, 6, 1, 12, tzinfo=timezone.utc),
    ])
    async def test_aware_last_used_with_naive_or_aware_now(self, resolver, invoice_provider, now):
        options = ResolveOptions(
            now=now,
            session_preferences={
                "Invoice_Header__c": ObjectPreference(
                    count=10, success_rate=1.0, last_used=datetime(2024, 5, 31, 12, tzinfo=timezone.utc)
                )
            }
        )
        result = await resolver.resolve("show me invoices", invoice_provider, options=options)
        
        assert result.primary_match.canonical_name == "Invoice_Header__c"
    
    @pytest.mark.asyncio
    async def test_malformed_preference_is_skipped(self, resolver, invoice_provider, now, caplog):
        options = ResolveOptions(
            now=now,
            session_preferences={
                "Invoice_Header__c": {"count": 10, "successRate": 1.0, "lastUsed": "not a date"},
                "Account": "garbage",
            }
        )
        with caplog.at_level(logging.WARNING):
            result = await resolver.resolve("show me invoices", invoice_provider, options=options)
        
        assert result.success
        assert result.needs_clarification
        assert result.used_preferences is False
        assert "Skipping malformed preference for Invoice_Header__c" in caplog.text
        assert "Skipping malformed preference for Account" in caplog.text
