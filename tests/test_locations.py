"""
Tests for destination extraction and locality matching.
"""

import pytest

from travel_rag.retrieval.locations import (
    enhance_query_with_location,
    extract_destination,
    matches_location,
    needs_location_context,
)


class TestExtractDestination:
    @pytest.mark.parametrize("query, expected", [
        ("hotels in Cancun", "Cancun"),
        ("Resorts in CANCÚN please", "Cancun"),
        ("cheap hotels in Cabo", "Cabo San Lucas"),
        ("cabo san lucas all inclusive", "Cabo San Lucas"),
        ("los cabos villas", "Los Cabos"),
        ("somewhere in cdmx", "Mexico City"),
        ("boutique stay in playa del carmen", "Playa del Carmen"),
    ])
    def test_known_destinations(self, query, expected):
        assert extract_destination(query).normalized == expected

    def test_longest_alias_wins(self):
        destination = extract_destination("cabo san lucas")
        assert destination.detected == "cabo san lucas"
        assert destination.confidence == "high"

    def test_all_words_match_is_medium_confidence(self):
        destination = extract_destination("del carmen playa resorts")
        assert destination.normalized == "Playa del Carmen"
        assert destination.confidence == "medium"

    def test_no_destination(self):
        assert extract_destination("hotels with a rooftop pool") is None


class TestLocationContext:
    def test_follow_up_needs_context(self):
        assert needs_location_context("any cheaper options?")
        assert needs_location_context("what about restaurants nearby")

    def test_query_with_destination_does_not(self):
        assert not needs_location_context("cheaper hotels in tulum")

    def test_enhance_appends_session_location(self):
        assert enhance_query_with_location("any cheaper options?", "Tulum") == "any cheaper options? in Tulum"

    def test_enhance_leaves_other_queries_alone(self):
        assert enhance_query_with_location("hotels in cancun", "Tulum") == "hotels in cancun"
        assert enhance_query_with_location("any cheaper options?", None) == "any cheaper options?"


class TestMatchesLocation:
    @pytest.mark.parametrize("city, location, target, expected", [
        ("Cancún", "", "Cancun", True),
        ("Playa", "", "Playa del Carmen", True),
        ("Cabo San Lucas", "", "cabo", True),
        ("", "Zona Hotelera, Cancun", "Cancun", True),
        ("Tulum", "Near Cancun airport road", "Cancun", True),
        ("Tulum", "Quintana Roo", "Cancun", False),
        ("", "", "Cancun", False),
        ("Anywhere", "", "", True),
    ])
    def test_matches(self, city, location, target, expected):
        assert matches_location(city, location, target) is expected
