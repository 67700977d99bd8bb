# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for the domain record normalizer.
"""

import pytest

from helpline.domain.normalization import (
    normalize,
    normalize_many,
    is_sponsored,
    resolve_id,
    UNKNOWN_NAME,
    UNKNOWN_LOCATION,
    UNKNOWN_DESCRIPTION,
)
from helpline.models.enums import Domain


class TestNormalizeDisplayFields:
    """Display strings resolve through the domain vocabularies."""

    def test_health_record_scenario(self):
        """A bare health record gets its name, total and placeholder location."""
        opportunity = normalize({"patientName": "Ahmed", "amount": 500000}, Domain.HEALTH)

        assert opportunity.display_name == "Ahmed"
        assert opportunity.total_amount == 500000
        assert opportunity.amount_needed == 500000
        assert opportunity.location == "Location not specified"
        assert opportunity.domain == Domain.HEALTH

    def test_placeholder_name_when_no_name_field(self):
        opportunity = normalize({"id": "1", "amount": 100}, Domain.WELFARE)
        assert opportunity.display_name == UNKNOWN_NAME

    def test_blank_name_falls_through(self):
        """Whitespace-only names count as missing."""
        opportunity = normalize({"name": "   ", "studentName": "Bilal"}, Domain.SCHOOL_STUDENT)
        assert opportunity.display_name == "Bilal"

    def test_generic_fields_win_over_domain_fields(self):
        opportunity = normalize({"name": "Generic", "patientName": "Specific"}, Domain.HEALTH)
        assert opportunity.display_name == "Generic"

    def test_other_domain_vocabulary_is_still_read(self):
        """A welfare record carrying a student's fields still resolves."""
        opportunity = normalize(
            {"studentName": "Zara", "institutionAddress": "Lahore", "totalTuitionFee": 90000},
            Domain.WELFARE
        )
        assert opportunity.display_name == "Zara"
        assert opportunity.location == "Lahore"
        assert opportunity.total_amount == 90000

    @pytest.mark.parametrize("domain,raw,expected", [
        (Domain.HEALTH, {"hospitalAddress": "Karachi"}, "Karachi"),
        (Domain.HIGHER_EDUCATION, {"institutionAddress": "Islamabad"}, "Islamabad"),
        (Domain.SCHOOL_STUDENT, {"schoolAddress": "Multan"}, "Multan"),
        (Domain.WELFARE, {"city": "Quetta"}, "Quetta"),
    ])
    def test_location_per_domain(self, domain, raw, expected):
        assert normalize(raw, domain).location == expected

    def test_description_and_need_defaults(self):
        opportunity = normalize({}, Domain.HEALTH)
        assert opportunity.description == UNKNOWN_DESCRIPTION
        assert opportunity.location == UNKNOWN_LOCATION
        assert opportunity.need == "Support"

    def test_age_only_when_positive(self):
        assert normalize({"patientAge": 42}, Domain.HEALTH).age == 42
        assert normalize({"patientAge": 0}, Domain.HEALTH).age is None
        assert normalize({"studentAge": "17"}, Domain.HIGHER_EDUCATION).age == 17
        assert normalize({"age": "unknown"}, Domain.HEALTH).age is None


class TestNormalizeIdentity:
    """Identifiers and sponsored flags."""

    def test_numeric_id_becomes_string(self):
        assert normalize({"id": 7}, Domain.HEALTH).id == "7"
        assert normalize({"id": 7.0}, Domain.HEALTH).id == "7"

    def test_falls_back_to_mongo_id(self):
        assert resolve_id({"_id": "65a1f0c2e4b0a1b2c3d4e5f6"}) == "65a1f0c2e4b0a1b2c3d4e5f6"

    def test_missing_id_is_empty_and_not_selectable(self):
        opportunity = normalize({"name": "No id"}, Domain.WELFARE)
        assert opportunity.id == ""
        assert opportunity.is_selectable is False

    @pytest.mark.parametrize("raw,expected", [
        ({"adopted": True}, True),
        ({"status": "adopted"}, True),
        ({"status": " Adopted "}, True),
        ({"adopted": "true"}, True),
        ({"adopted": " YES "}, True),
        ({"adopted": 1}, True),
        ({"adopted": 0}, False),
        ({"adopted": "false"}, False),
        ({"adopted": None}, False),
        ({"status": "available"}, False),
        ({}, False),
    ])
    def test_is_sponsored(self, raw, expected):
        assert is_sponsored(raw) is expected

    def test_sponsored_record_is_not_selectable(self):
        opportunity = normalize({"id": "1", "adopted": True}, Domain.HEALTH)
        assert opportunity.is_sponsored is True
        assert opportunity.is_selectable is False


class TestNormalizeRobustness:
    """Normalization never raises."""

    def test_normalize_is_idempotent(self):
        raw = {"_id": "abc", "studentName": "Ali", "annualTuitionFee": "120,000", "amountRaised": 20000}
        first = normalize(raw, Domain.SCHOOL_STUDENT)
        second = normalize(raw, Domain.SCHOOL_STUDENT)
        assert first == second

    def test_non_mapping_input(self):
        opportunity = normalize(None, Domain.HEALTH)
        assert opportunity.display_name == UNKNOWN_NAME
        assert opportunity.total_amount == 0

    def test_domain_accepts_path_segment(self):
        assert normalize({}, "school").domain == Domain.SCHOOL_STUDENT

    def test_unknown_domain_rejected(self):
        with pytest.raises(ValueError):
            normalize({}, "sports")

    def test_normalize_many_skips_non_objects(self):
        opportunities = normalize_many([{"id": 1}, "junk", None, {"id": 2}], Domain.HEALTH)
        assert [opportunity.id for opportunity in opportunities] == ["1", "2"]
