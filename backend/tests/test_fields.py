"""
Tests for field allow-listing and lookup selection
"""

import pytest
import pytest_asyncio
from hypothesis import given
from hypothesis import strategies as st

from sfplanner.schema.fields import (
    ADMIN_LOOKUP_RE,
    all_queryable_fields,
    choose_order_by,
    filter_allowed_fields,
    find_lookup_name_fields_by_keywords,
    find_lookup_name_fields_by_targets,
    find_relevant_fields,
    is_field_allowed,
    pick_group_by_lookup,
    pick_lookup_name_fields
)
from sfplanner.schema.index import SchemaIndex, SchemaObjectEntry, build_index
from sfplanner.schema.models import coerce_describe

from conftest import describe, field


@pytest_asyncio.fixture
async def sample_index(provider):
    return await build_index(provider, [
        "Account", "Contact", "Case", "demo__Item__c", "demo__Item_Lot__c", "demo__Location__c"
    ])


def index_of(*describes) -> SchemaIndex:
    index = SchemaIndex()
    for d in describes:
        index.add(SchemaObjectEntry.from_describe(d["name"], coerce_describe(d["name"], d)))
    return index


class TestIsFieldAllowed:
    """Test suite for is_field_allowed"""
    
    @pytest.mark.asyncio
    async def test_readable_and_always_allowed(self, sample_index):
        assert is_field_allowed(sample_index, "demo__Item__c", "demo__Price__c")
        assert is_field_allowed(sample_index, "Case", "Name")
        assert is_field_allowed(sample_index, "Case", "Id")
    
    @pytest.mark.asyncio
    async def test_unreadable_and_unknown(self, sample_index):
        assert not is_field_allowed(sample_index, "demo__Item__c", "demo__Internal_Notes__c")
        assert not is_field_allowed(sample_index, "demo__Item__c", "Bogus__c")
        assert not is_field_allowed(sample_index, "Nope", "Id")
        assert not is_field_allowed(sample_index, "Account", "")
    
    @pytest.mark.asyncio
    async def test_relationship_name_traversal(self, sample_index):
        assert is_field_allowed(sample_index, "Contact", "Account.Name")
        assert is_field_allowed(sample_index, "Contact", "Account__r.Name")
        assert is_field_allowed(sample_index, "demo__Item_Lot__c", "demo__Location__r.Name")
    
    @pytest.mark.asyncio
    async def test_relationship_traversal_only_to_name(self, sample_index):
        assert not is_field_allowed(sample_index, "Contact", "Account.Industry")
        assert not is_field_allowed(sample_index, "Contact", "Owner.Name")
    
    def test_empty_entry_allows_only_id_and_name(self):
        index = SchemaIndex()
        index.add(SchemaObjectEntry.empty("Broken"))
        
        assert filter_allowed_fields(index, "Broken", ["Id", "Name", "Email"]) == ["Id", "Name"]


class TestFilterAllowedFields:
    
    @pytest.mark.asyncio
    async def test_order_preserving_subset(self, sample_index):
        requested = ["Name", "Bogus__c", "Id", "Account.Name", "Email", "Account.Phone"]
        allowed = filter_allowed_fields(sample_index, "Contact", requested)
        
        assert allowed == ["Name", "Id", "Account.Name", "Email"]
    
    @given(st.lists(st.sampled_from([
        "Id", "Name", "Email", "Phone", "AccountId", "Account.Name", "Account__r.Name",
        "Account.Email", "Owner.Name", "Secret__c", "", "CreatedDate",
    ])))
    def test_output_is_allowed_subset(self, requested):
        index = index_of(describe("Contact", [
            field("Name"), field("Email"), field("Phone"), field("CreatedDate", "datetime"),
            field("Secret__c", readable=False),
            field("AccountId", rel="Account", ref=["Account"]),
        ]))
        allowed = filter_allowed_fields(index, "Contact", requested)
        
        assert all(f in requested for f in allowed)
        assert all(is_field_allowed(index, "Contact", f) for f in allowed)


class TestChooseOrderBy:
    
    def test_preference_order(self):
        index = index_of(
            describe("A", [field("CreatedDate", "datetime"), field("LastModifiedDate", "datetime")]),
            describe("B", [field("SystemModstamp", "datetime"), field("LastModifiedDate", "datetime")]),
            describe("C", [field("SystemModstamp", "datetime")]),
            describe("D", [field("CreatedDate", "datetime", readable=False)]),
        )
        assert choose_order_by(index, "A") == "CreatedDate"
        assert choose_order_by(index, "B") == "LastModifiedDate"
        assert choose_order_by(index, "C") == "SystemModstamp"
        assert choose_order_by(index, "D") == "Id"
        assert choose_order_by(index, "Missing") == "Id"


class TestPickGroupByLookup:
    """Test suite for pick_group_by_lookup"""
    
    @pytest.mark.asyncio
    async def test_location_keyword(self, sample_index):
        group_by = pick_group_by_lookup(sample_index, "demo__Item_Lot__c", ["count", "items", "by", "location"])
        
        assert group_by.group_field == "demo__Location__c"
        assert group_by.display_field == "demo__Location__r.Name"
    
    @pytest.mark.asyncio
    async def test_no_keyword_match_on_admin_only_object(self, sample_index):
        assert pick_group_by_lookup(sample_index, "demo__Item__c", ["location"]) is None
    
    def test_admin_lookups_never_chosen(self):
        index = index_of(describe("Task__c", [
            field("OwnerId", rel="Owner", ref=["User"]),
            field("CreatedById", rel="CreatedBy", ref=["User"]),
            field("RecordTypeId", rel="RecordType", ref=["RecordType"]),
        ]))
        assert pick_group_by_lookup(index, "Task__c", ["owner", "user", "record", "type"]) is None
    
    @given(st.lists(st.sampled_from([
        "owner", "user", "account", "created", "by", "record", "type", "region", "month",
    ]), max_size=6))
    def test_never_returns_admin_lookup(self, keywords):
        index = index_of(describe("Deal__c", [
            field("OwnerId", rel="Owner", ref=["User"]),
            field("LastModifiedById", rel="LastModifiedBy", ref=["User"]),
            field("Account__c", rel="Account__r", ref=["Account"]),
            field("Region__c", rel="Region__r", ref=["Region__c"]),
        ]))
        group_by = pick_group_by_lookup(index, "Deal__c", keywords)
        
        if group_by is not None:
            assert not ADMIN_LOOKUP_RE.match(group_by.group_field)
    
    def test_shorter_name_breaks_ties(self):
        index = index_of(describe("Deal__c", [
            field("Very_Long_Region_Lookup__c", rel="Very_Long_Region_Lookup__r", ref=["Region__c"]),
            field("Region__c", rel="Region__r", ref=["Region__c"]),
        ]))
        group_by = pick_group_by_lookup(index, "Deal__c", ["region"])
        assert group_by.group_field == "Region__c"
    
    def test_unreadable_best_lookup_rejected(self):
        index = index_of(describe("Deal__c", [
            field("Region__c", rel="Region__r", ref=["Region__c"], readable=False),
        ]))
        assert pick_group_by_lookup(index, "Deal__c", ["region"]) is None


class TestLookupNameFields:
    
    @pytest.mark.asyncio
    async def test_pick_in_describe_order(self, sample_index):
        assert pick_lookup_name_fields(sample_index, "demo__Item_Lot__c") == [
            "demo__Item__r.Name", "demo__Location__r.Name"
        ]
        assert pick_lookup_name_fields(sample_index, "demo__Item_Lot__c", max_count=1) == [
            "demo__Item__r.Name"
        ]
    
    @pytest.mark.asyncio
    async def test_by_keywords(self, sample_index):
        names = find_lookup_name_fields_by_keywords(sample_index, "demo__Item_Lot__c", ["location"], 1)
        assert names == ["demo__Location__r.Name"]
    
    @pytest.mark.asyncio
    async def test_by_targets(self, sample_index):
        names = find_lookup_name_fields_by_targets(sample_index, "demo__Item_Lot__c", ["demo__Item__c"])
        assert names == ["demo__Item__r.Name"]
        assert find_lookup_name_fields_by_targets(sample_index, "demo__Item_Lot__c", []) == []
    
    def test_custom_lookup_without_suffix_gets_one(self):
        index = index_of(describe("Deal__c", [field("Region__c", rel="Region", ref=["Region__c"])]))
        assert pick_lookup_name_fields(index, "Deal__c") == ["Region__r.Name"]


class TestRelevantFields:
    
    @pytest.mark.asyncio
    async def test_price_question(self, sample_index):
        fields = sample_index.get("demo__Item__c").fields
        assert find_relevant_fields("what does each item cost", fields) == ["demo__Price__c"]
    
    @pytest.mark.asyncio
    async def test_hidden_fields_skipped(self, sample_index):
        fields = sample_index.get("demo__Item__c").fields
        assert "demo__Internal_Notes__c" not in find_relevant_fields("item notes", fields)
    
    def test_all_queryable_fields(self):
        index = index_of({
            "name": "Widget__c",
            "fields": [
                {"name": "Id", "queryable": True},
                {"name": "Name", "queryable": True},
                {"name": "Legacy__c", "queryable": True, "deprecatedAndHidden": True},
                {"name": "Internal__c", "queryable": False},
                {"name": "Size__c", "queryable": True},
            ],
        })
        assert all_queryable_fields(index, "Widget__c") == ["Id", "Name", "Size__c"]
        assert all_queryable_fields(index, "Widget__c", limit=2) == ["Id", "Name"]
        assert all_queryable_fields(index, "Missing") == []
