"""
Tests for the string similarity kernel
"""

import pytest
from hypothesis import given, settings as hypothesis_settings
from hypothesis import strategies as st

from sfplanner.entity_resolution.similarity import edit_distance, similarity

words = st.text(alphabet="abcdefghijklmnopqrstuvwxyz_", max_size=12)


class TestEditDistance:
    """Test suite for edit_distance"""
    
    def test_classic_example(self):
        assert edit_distance("kitten", "sitting") == 3
    
    def test_identical(self):
        assert edit_distance("account", "account") == 0
    
    def test_empty_side(self):
        assert edit_distance("", "case") == 4
        assert edit_distance("case", "") == 4
    
    def test_single_insert(self):
        """One missing letter is one edit"""
        assert edit_distance("custmers", "customers") == 1
    
    @given(words, words, words)
    @hypothesis_settings(max_examples=200)
    def test_triangle_inequality(self, a, b, c):
        assert edit_distance(a, c) <= edit_distance(a, b) + edit_distance(b, c)
    
    @given(words, words)
    def test_bounded_by_longer_length(self, a, b):
        assert edit_distance(a, b) <= max(len(a), len(b))


class TestSimilarity:
    """Test suite for similarity"""
    
    @given(st.text(min_size=1, max_size=20))
    def test_identity(self, x):
        assert similarity(x, x) == 1.0
    
    @given(words, words)
    def test_symmetry(self, a, b):
        assert similarity(a, b) == similarity(b, a)
    
    @given(words, words)
    def test_range(self, a, b):
        assert 0.0 <= similarity(a, b) <= 1.0
    
    @given(words)
    def test_empty_is_zero(self, y):
        assert similarity("", y) == 0.0
        assert similarity(y, "") == 0.0
    
    def test_none_is_zero(self):
        assert similarity(None, "account") == 0.0
    
    def test_typo_close_to_business_term(self):
        assert similarity("custmers", "customers") == pytest.approx(8 / 9)
    
    def test_unrelated_words_below_threshold(self):
        assert similarity("widgets", "accounts") < 0.6
