"""
Unit tests — Normalization policy table (toggles, derived parameter sets, lookup).
"""

import dataclasses

import pytest

from shortener.core.errors import ErrorKind, UrlError
from shortener.utils.policies import (
    POLICIES,
    PRESERVED_PARAMS,
    PolicyName,
    get_policy,
    list_policies,
)


class TestPolicyTable:
    """Every named variant maps to one immutable record."""

    def test_all_variants_present(self):
        assert set(POLICIES) == set(PolicyName)
        assert [p.name for p in list_policies()] == list(PolicyName)

    def test_records_are_immutable(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            POLICIES[PolicyName.BASIC].remove_fragments = False

    def test_every_policy_has_description(self):
        for policy in list_policies():
            assert policy.description

    def test_minimal_changes_nothing_optional(self):
        p = POLICIES[PolicyName.MINIMAL]
        assert not any([
            p.remove_fragments,
            p.remove_tracking_params,
            p.remove_default_ports,
            p.remove_www_subdomain,
            p.sort_query_parameters,
            p.decode_then_reencode,
            p.remove_user_info,
            p.force_https,
        ])
        assert p.allowed_schemes is None

    def test_aggressive_toggles(self):
        p = POLICIES[PolicyName.AGGRESSIVE]
        assert p.remove_fragments and p.remove_tracking_params
        assert p.remove_www_subdomain and p.sort_query_parameters
        assert p.force_https and p.lowercase_path
        assert not p.preserve_hashbang_fragments

    def test_security_focused_restricts_schemes(self):
        p = POLICIES[PolicyName.SECURITY_FOCUSED]
        assert p.remove_user_info
        assert p.allowed_schemes == frozenset({"http", "https", "ftp"})

    def test_seo_keeps_fragments(self):
        p = POLICIES[PolicyName.SEO_OPTIMIZED]
        assert not p.remove_fragments
        assert p.preserve_hashbang_fragments
        assert not p.lowercase_path

    def test_canonical_dedup_keeps_case_and_scheme(self):
        p = POLICIES[PolicyName.CANONICAL_DEDUP]
        assert p.remove_user_info and p.remove_www_subdomain
        assert not p.lowercase_path
        assert not p.force_https
        assert p.allowed_schemes is None


class TestDerivedParameterSets:

    def test_tracking_set_empty_when_not_removing(self):
        assert POLICIES[PolicyName.MINIMAL].tracking_parameters == frozenset()
        assert POLICIES[PolicyName.BASIC].tracking_parameters == frozenset()

    def test_tracking_set_covers_known_families(self):
        tracking = POLICIES[PolicyName.AGGRESSIVE].tracking_parameters
        for key in ["utm_source", "utm_campaign", "fbclid", "gclid", "msclkid", "_ga"]:
            assert key in tracking

    def test_preserved_parameters(self):
        for key in ["id", "page", "sort", "q", "token"]:
            assert key in PRESERVED_PARAMS
            assert key in POLICIES[PolicyName.AGGRESSIVE].preserved_parameters

    def test_strips_param_is_case_insensitive(self):
        p = POLICIES[PolicyName.AGGRESSIVE]
        assert p.strips_param("UTM_Source")
        assert not p.strips_param("id")

    def test_preserved_key_survives_even_if_listed_as_tracking(self):
        p = dataclasses.replace(POLICIES[PolicyName.AGGRESSIVE])
        object.__setattr__(p, "tracking_parameters", p.tracking_parameters | {"ref"})
        assert "ref" in p.tracking_parameters
        assert not p.strips_param("ref")

    def test_allows_scheme(self):
        assert POLICIES[PolicyName.MINIMAL].allows_scheme("gopher")
        assert POLICIES[PolicyName.SECURITY_FOCUSED].allows_scheme("FTP")
        assert not POLICIES[PolicyName.SECURITY_FOCUSED].allows_scheme("javascript")


class TestGetPolicy:

    def test_lookup_by_enum(self):
        assert get_policy(PolicyName.SEO_OPTIMIZED) is POLICIES[PolicyName.SEO_OPTIMIZED]

    def test_lookup_is_case_insensitive(self):
        assert get_policy(" aggressive ") is POLICIES[PolicyName.AGGRESSIVE]

    def test_unknown_name_returns_error(self):
        result = get_policy("LENIENT")
        assert isinstance(result, UrlError)
        assert result.kind == ErrorKind.UNKNOWN_POLICY
        assert result.http_status == 400
