"""
Tests for context re-ranking
"""

from datetime import timedelta

import pytest

from sfplanner.entity_resolution.catalog import CandidateDescriptor
from sfplanner.entity_resolution.models import MatchCandidate
from sfplanner.entity_resolution.preferences import ObjectPreference
from sfplanner.entity_resolution.profile import OrgProfile
from sfplanner.entity_resolution.ranking import (
    ContextRanker,
    HintRule,
    RankingWeights,
    clamp
)


def candidate(name: str, confidence: float, custom: bool = None) -> MatchCandidate:
    custom = name.endswith("__c") if custom is None else custom
    descriptor = CandidateDescriptor(name, name, name + "s", custom, "api")
    return MatchCandidate(descriptor, confidence, "partial", name.lower())


class TestContextRanker:
    """Test suite for ContextRanker"""
    
    @pytest.fixture
    def ranker(self):
        return ContextRanker(RankingWeights())
    
    def test_business_vocabulary_boosts_standard_object(self, ranker, now):
        ranked = ranker.rank(
            [candidate("Contact", 0.5), candidate("Account", 0.5)],
            "which customer bought the most", now=now
        )
        assert ranked[0].canonical_name == "Account"
        assert ranked[0].confidence == pytest.approx(0.7)
    
    def test_org_frequent_objects(self, ranker, now):
        profile = OrgProfile(frequent_objects=["Case"])
        ranked = ranker.rank([candidate("Case", 0.5)], "anything", profile, now=now)
        
        assert ranked[0].confidence == pytest.approx(0.65)
        assert "Org frequent" in ranked[0].reasons
        assert "Context match" in ranked[0].reasons
    
    def test_preference_boost(self, ranker, now):
        pref = ObjectPreference(count=10, success_rate=1.0, last_used=now - timedelta(days=2))
        # usage 0.2 + success 0.2 + recency 0.08
        assert ranker.preference_boost(pref, now) == pytest.approx(0.48)
    
    def test_usage_boost_is_capped(self, ranker, now):
        pref = ObjectPreference(count=500, success_rate=0.0, last_used=None)
        assert ranker.preference_boost(pref, now) == pytest.approx(0.3)
    
    def test_recency_never_negative(self, ranker, now):
        pref = ObjectPreference(count=0, success_rate=0.0, last_used=now - timedelta(days=90))
        assert ranker.preference_boost(pref, now) == 0.0
    
    def test_preferences_reorder(self, ranker, now):
        prefs = {"Invoice_Header__c": ObjectPreference(count=5, success_rate=1.0, last_used=now)}
        ranked = ranker.rank(
            [candidate("Invoice_Line__c", 0.6), candidate("Invoice_Header__c", 0.55)],
            "show me invoices", preferences=prefs, now=now
        )
        assert ranked[0].canonical_name == "Invoice_Header__c"
        assert "Used previously" in ranked[0].reasons
    
    def test_generic_custom_term(self, ranker, now):
        ranked = ranker.rank([candidate("demo__Item__c", 0.1)], "list item stock", now=now)
        # generic custom term 0.8 + inventory domain 0.25
        assert ranked[0].confidence == pytest.approx(1.0)
    
    def test_system_penalty_clamps_at_zero(self, ranker, now):
        ranked = ranker.rank([candidate("PlatformEventChannel", 0.2)], "channels", now=now)
        assert ranked[0].confidence == 0.0
    
    def test_confidence_clamped_to_one(self, ranker, now):
        profile = OrgProfile(frequent_objects=["Account"])
        ranked = ranker.rank([candidate("Account", 1.0)], "customer list", profile, now=now)
        assert ranked[0].confidence == 1.0
    
    def test_namespace_preference(self, now):
        ranker = ContextRanker(RankingWeights(preferred_namespace="acme__"))
        ranked = ranker.rank(
            [candidate("other__Lot__c", 0.5), candidate("acme__Lot__c", 0.4)],
            "lots", now=now
        )
        assert ranked[0].canonical_name == "acme__Lot__c"
        assert ranked[0].confidence == pytest.approx(0.7)


class TestHintRules:
    
    def test_phrase_and_name_term(self):
        rule = HintRule(phrases=("located in",), boost=2.0, name_contains="item")
        assert rule.applies("what is located in bay 4", "demo__Item_Lot__c")
        assert not rule.applies("what is in bay 4", "demo__Item_Lot__c")
        assert not rule.applies("what is located in bay 4", "demo__Location__c")
    
    def test_primary_object_hint(self, now):
        weights = RankingWeights(hint_rules=[
            HintRule(phrases=(" items",), boost=3.0, canonical_name="demo__Item__c")
        ])
        ranked = ContextRanker(weights).rank(
            [candidate("demo__Lot__c", 0.9), candidate("demo__Item__c", 0.2)],
            "show me items", now=now
        )
        assert ranked[0].canonical_name == "demo__Item__c"
    
    def test_from_settings(self, settings):
        settings.primary_object_hint = "demo__Item__c"
        weights = RankingWeights.from_settings(settings)
        
        assert len(weights.hint_rules) == 2
        assert weights.hint_rules[1].canonical_name == "demo__Item__c"
        assert " items" in weights.hint_rules[1].phrases


def test_clamp():
    assert clamp(-0.4) == 0.0
    assert clamp(1.7) == 1.0
    assert clamp(0.25) == 0.25
