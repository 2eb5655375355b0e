"""Tests for clerklite.client.shaper -- verb rewrite, query tags, form encoding."""

from __future__ import annotations

import pytest

from clerklite.client.shaper import (
    encode_fields,
    encode_value,
    is_dev_instance,
    shape_request,
)

DEV = "happy-otter-1.clerk.accounts.dev"
PROD = "clerk.example.com"


class TestVerbRewrite:
    @pytest.mark.parametrize("method", ["GET", "POST", "get", "post"])
    def test_native_verbs_are_sent_as_is(self, method: str) -> None:
        shaped = shape_request(PROD, "/client", method)
        assert shaped.wire_method == method.upper()
        assert "_method" not in shaped.params

    @pytest.mark.parametrize("method", ["DELETE", "PATCH", "PUT", "delete"])
    def test_other_verbs_travel_as_post(self, method: str) -> None:
        shaped = shape_request(PROD, "/client/sessions/sess_1", method)
        assert shaped.method == method.upper()
        assert shaped.wire_method == "POST"
        assert shaped.params["_method"] == method.upper()

    def test_url_is_under_v1(self) -> None:
        shaped = shape_request(PROD, "/client/sign_ins")
        assert shaped.url == "https://clerk.example.com/v1/client/sign_ins"

    def test_missing_leading_slash_is_added(self) -> None:
        assert shape_request(PROD, "environment").url.endswith("/v1/environment")


class TestQueryParameters:
    def test_version_tags_come_first(self) -> None:
        shaped = shape_request(PROD, "/me", params={"_clerk_session_id": "sess_1"})
        keys = list(shaped.params)
        assert keys[:2] == ["__clerk_api_version", "_clerk_js_version"]
        assert shaped.params["__clerk_api_version"] == "2025-04-10"
        assert shaped.params["_clerk_js_version"] == "5.88.0"
        assert shaped.params["_clerk_session_id"] == "sess_1"

    def test_custom_versions(self) -> None:
        shaped = shape_request(PROD, "/me", api_version="2024-10-01", js_version="5.0.0")
        assert shaped.params["__clerk_api_version"] == "2024-10-01"
        assert shaped.params["_clerk_js_version"] == "5.0.0"

    def test_dev_browser_jwt_on_dev_instance(self) -> None:
        shaped = shape_request(DEV, "/client", dev_browser_jwt="dvb_1")
        assert shaped.params["__clerk_db_jwt"] == "dvb_1"
        assert list(shaped.params)[-1] == "__clerk_db_jwt"

    def test_dev_browser_jwt_ignored_on_production(self) -> None:
        shaped = shape_request(PROD, "/client", dev_browser_jwt="dvb_1")
        assert "__clerk_db_jwt" not in shaped.params

    def test_full_url_encodes_query(self) -> None:
        shaped = shape_request(PROD, "/client/sessions/sess_1", "DELETE")
        assert shaped.full_url.startswith("https://clerk.example.com/v1/client/sessions/sess_1?")
        assert "_method=DELETE" in shaped.full_url


class TestFormEncoding:
    def test_none_values_are_dropped(self) -> None:
        shaped = shape_request(PROD, "/client/sign_ups", "POST", body={"email_address": "a@b.com", "first_name": None})
        assert shaped.data == {"email_address": "a@b.com"}

    def test_booleans_are_lowercase_strings(self) -> None:
        assert encode_fields({"a": True, "b": False}) == {"a": "true", "b": "false"}

    def test_numbers_are_stringified(self) -> None:
        assert encode_value(3) == "3"

    def test_no_body_means_no_data(self) -> None:
        assert shape_request(PROD, "/client").data is None

    def test_empty_body_is_an_empty_form(self) -> None:
        assert shape_request(PROD, "/client", "PUT", body={}).data == {}


class TestDevInstanceDetection:
    @pytest.mark.parametrize(
        "domain",
        [
            "happy-otter-1.clerk.accounts.dev",
            "foo.lclclerk.com",
            "foo.lclclerk.com:3000",
            "Happy-Otter.Clerk.Accounts.Dev",
            "accounts.clerk.dev",
        ],
    )
    def test_dev_domains(self, domain: str) -> None:
        assert is_dev_instance(domain) is True

    @pytest.mark.parametrize(
        "domain",
        [
            "clerk.example.com",
            "accounts.example.com",
            "clerk.devtools.acme.com",
            "notclerk.dev",
            "clerk.accounts.dev.example.com",
        ],
    )
    def test_production_domains(self, domain: str) -> None:
        assert is_dev_instance(domain) is False
