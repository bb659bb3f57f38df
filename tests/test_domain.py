"""
Tests for the site domain value objects and entities.
"""

import pytest

from src.domain import (
    GLOBAL_SITE,
    NO_SITE,
    DomainError,
    Site,
    SiteMap,
    SiteRef,
    SiteValidationError,
)
from src.domain.interfaces import CaseInsensitive, NotEqual
from src.domain.value_objects import host_from_url, host_with_protocol, site_of


class TestSiteRef:
    """Test cases for SiteRef."""

    @pytest.mark.parametrize("value", [None, "", GLOBAL_SITE])
    def test_empty_and_global_parse_to_global(self, value):
        ref = SiteRef.parse(value)
        assert ref.is_global
        assert ref.uid == GLOBAL_SITE

    def test_global_refs_are_equal_regardless_of_spelling(self):
        assert SiteRef.parse(None) == SiteRef.parse("global")
        assert SiteRef.parse("") == SiteRef.global_site()
        assert hash(SiteRef.parse(None)) == hash(SiteRef.parse("global"))

    def test_tenant_ref(self):
        ref = SiteRef.parse("abc")
        assert not ref.is_global
        assert ref.uid == "abc"
        assert ref == "abc"
        assert ref != SiteRef.parse("def")
        assert SiteRef.parse(ref) is ref

    def test_tenant_requires_non_global_uid(self):
        with pytest.raises(ValueError):
            SiteRef.tenant(GLOBAL_SITE)

    def test_is_not_set_or_equal(self):
        assert SiteRef.is_not_set_or_equal(None, "abc")
        assert SiteRef.is_not_set_or_equal("", "abc")
        assert SiteRef.is_not_set_or_equal("abc", "abc")
        assert not SiteRef.is_not_set_or_equal("abc", "def")


class TestHelpers:
    def test_site_of(self):
        assert site_of(None) == NO_SITE
        assert site_of({"site": "abc"}) == "abc"
        assert site_of({"name": "x"}) is None

    def test_host_with_protocol(self):
        assert host_with_protocol("acme.example.com") == "http://acme.example.com"
        assert host_with_protocol("acme.example.com", ssl_enabled=True) == "https://acme.example.com"
        assert host_with_protocol("http://acme.example.com/", ssl_enabled=True) == "https://acme.example.com"

    def test_host_from_url(self):
        assert host_from_url("http://Admin.Example.com") == "admin.example.com"
        assert host_from_url("https://localhost:8080/") == "localhost:8080"
        assert host_from_url("acme.example.com") == "acme.example.com"

    def test_case_insensitive_filter_is_anchored(self):
        assert CaseInsensitive("Acme").matches("ACME")
        assert not CaseInsensitive("Acme").matches("Acme Corp")
        assert not CaseInsensitive("Acme").matches(None)

    def test_not_equal_filter(self):
        assert NotEqual("1").matches("2")
        assert not NotEqual("1").matches("1")


class TestSite:
    """Test cases for the Site entity."""

    def test_new_site_is_inactive_and_hostname_lowercased(self):
        site = Site(uid="abc", display_name=" Acme ", hostname="Acme.Example.com")
        assert site.active is False
        assert site.display_name == "Acme"
        assert site.hostname == "acme.example.com"

    def test_empty_fields_rejected(self):
        with pytest.raises(ValueError):
            Site(uid="", display_name="Acme", hostname="acme.example.com")
        with pytest.raises(ValueError):
            Site(uid="abc", display_name="  ", hostname="acme.example.com")
        with pytest.raises(ValueError):
            Site(uid="abc", display_name="Acme", hostname="")

    def test_record_round_trip_keeps_storage_id(self):
        record = {
            "_id": "r1",
            "uid": "abc",
            "displayName": "Acme",
            "hostname": "acme.example.com",
            "active": True,
        }
        site = Site.from_record(record)
        assert site.record_id == "r1"
        assert site.to_record() == record
        assert "_id" not in site.to_routing_config()

    def test_global_site(self):
        site = Site.global_site("Multisite", "http://localhost:8080")
        assert site.is_global
        assert site.uid == GLOBAL_SITE
        assert site.display_name == "Multisite"
        assert site.hostname == "http://localhost:8080"

    def test_equality_by_uid(self):
        a = Site(uid="abc", display_name="Acme", hostname="acme.example.com")
        b = Site(uid="abc", display_name="Other", hostname="other.example.com")
        assert a == b
        assert len({a, b}) == 1

    def test_site_map(self):
        active = Site(uid="a", display_name="A", hostname="a.example.com", active=True)
        inactive = Site(uid="b", display_name="B", hostname="b.example.com")
        site_map = SiteMap(active=[active], inactive=[inactive])
        assert site_map.all == [active, inactive]
        assert site_map.to_dict()["active"][0]["uid"] == "a"


class TestExceptions:
    def test_validation_error_fields(self):
        error = SiteValidationError(
            "taken", display_name="Acme", hostname="acme.example.com",
            collisions={"displayName": 1, "hostname": 0},
        )
        assert isinstance(error, DomainError)
        assert error.error_code == "SITE_VALIDATION_FAILED"
        assert error.fields == ["displayName"]
        assert str(error) == "[SITE_VALIDATION_FAILED] taken"
