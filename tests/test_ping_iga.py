"""
Unit tests for catalog search, request submission and status lookups.
"""
import json
import os
import sys
import urllib.error

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from iga_bridge.adapters.http_client import HttpResponse
from iga_bridge.adapters.ping_iga import PingIgaClient, SubmissionError
from iga_bridge.core.tokens import AuthError
from iga_bridge.models.catalog import ConnectionConfig
from iga_bridge.models.request import CreateRequestPayload

CONFIG = ConnectionConfig(base_url="https://iga.example.com", client_id="bridge", client_secret="s3cret")

PAYLOAD = CreateRequestPayload(
    catalog_item_id="app_salesforce",
    catalog_item_label="Salesforce",
    requested_for="U22222222",
    requested_by="U11111111",
)


class _Credentials:
    def __init__(self, config):
        self.config = config

    def resolve(self):
        return self.config


class _StaticTokens:
    def __init__(self, error=None):
        self.error = error

    def get_token(self, config):
        if self.error:
            raise self.error
        return "Bearer t0k3n"


class _FakeTransport:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def __call__(self, method, url, headers=None, data=None, timeout=10):
        self.calls.append({"method": method, "url": url, "headers": headers or {}, "data": data})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def _json(status, body):
    return HttpResponse(status=status, body=json.dumps(body))


def _client(*responses, config=CONFIG, tokens=None):
    transport = _FakeTransport(*responses)
    client = PingIgaClient(_Credentials(config), tokens=tokens or _StaticTokens(), transport=transport)
    return client, transport


# --- SEARCH: DEMO MODE ---

class TestFallbackSearch:

    def test_empty_query_returns_full_fallback_catalog(self):
        client, _ = _client(config=None)
        items = client.search_catalog("")

        assert [i.id for i in items] == ["app_salesforce", "ent_marketing_analytics", "role_finance_approver"]

    def test_query_matches_label_case_insensitively(self):
        client, _ = _client(config=None)

        assert [i.id for i in client.search_catalog("SALES")] == ["app_salesforce"]

    def test_query_matches_description(self):
        client, _ = _client(config=None)

        assert [i.id for i in client.search_catalog("read-only")] == ["ent_marketing_analytics"]

    def test_no_match_returns_empty_list(self):
        client, _ = _client(config=None)

        assert client.search_catalog("kubernetes") == []

    def test_repeated_search_is_deterministic(self):
        client, transport = _client(config=None)

        assert client.search_catalog("") == client.search_catalog("")
        assert transport.calls == []


# --- SEARCH: CONFIGURED ---

class TestRemoteSearch:

    def test_items_are_normalized(self):
        client, transport = _client(_json(200, {"items": [
            {"id": "app_1", "displayName": "GitHub", "description": "Org member", "type": "application"},
            {"itemId": "role_2", "name": "Deployer", "description": 42},
            {"id": 7, "label": "Numeric id"},
            {"id": "no_label"},
            {"displayName": "No id"},
            "garbage",
        ]}))

        items = client.search_catalog("git")

        assert [(i.id, i.label) for i in items] == [("app_1", "GitHub"), ("role_2", "Deployer"), ("7", "Numeric id")]
        assert items[0].description == "Org member"
        assert items[0].type == "application"
        assert items[1].description is None
        assert transport.calls[0]["url"] == "https://iga.example.com/v1/catalog-items?search=git"
        assert transport.calls[0]["headers"]["Authorization"] == "Bearer t0k3n"

    def test_empty_query_sends_no_search_parameter(self):
        client, transport = _client(_json(200, {"items": []}))

        assert client.search_catalog("") == []
        assert transport.calls[0]["url"] == "https://iga.example.com/v1/catalog-items"

    def test_search_path_override(self):
        config = ConnectionConfig(base_url="https://iga.example.com", client_id="a", client_secret="b",
                                  search_path="/governance/catalog")
        client, transport = _client(_json(200, {"items": []}), config=config)
        client.search_catalog("hr tools")

        assert transport.calls[0]["url"] == "https://iga.example.com/governance/catalog?search=hr+tools"

    def test_http_error_falls_back(self):
        client, _ = _client(HttpResponse(status=503, body="maintenance"))

        assert [i.id for i in client.search_catalog("finance")] == ["role_finance_approver"]

    def test_network_error_falls_back(self):
        client, _ = _client(urllib.error.URLError("connection refused"))

        assert [i.id for i in client.search_catalog("finance")] == ["role_finance_approver"]

    def test_auth_error_falls_back(self):
        client, transport = _client(tokens=_StaticTokens(error=AuthError(401)))

        assert len(client.search_catalog("")) == 3
        assert transport.calls == []

    def test_unrecognized_payload_falls_back(self):
        client, _ = _client(_json(200, {"results": []}))

        assert len(client.search_catalog("")) == 3

    def test_invalid_json_falls_back(self):
        client, _ = _client(HttpResponse(status=200, body="<html>"))

        assert len(client.search_catalog("")) == 3


# --- SUBMISSION ---

class TestCreateRequest:

    def test_demo_mode_synthesizes_pending_request(self):
        client, transport = _client(config=None)
        result = client.create_request(PAYLOAD)

        assert result.request_id.startswith("demo-")
        assert result.status == "PENDING"
        assert transport.calls == []

    def test_demo_mode_ids_are_unique(self):
        client, _ = _client(config=None)

        assert client.create_request(PAYLOAD).request_id != client.create_request(PAYLOAD).request_id

    def test_success_maps_id_and_status(self):
        client, transport = _client(_json(200, {"id": "r1", "status": "APPROVED"}))
        result = client.create_request(PAYLOAD)

        assert (result.request_id, result.status) == ("r1", "APPROVED")
        call = transport.calls[0]
        assert call["method"] == "POST"
        assert call["url"] == "https://iga.example.com/v1/requests"
        assert json.loads(call["data"]) == {
            "catalogItemId": "app_salesforce",
            "catalogItemLabel": "Salesforce",
            "requestedFor": "U22222222",
            "requestedBy": "U11111111",
        }

    def test_alternate_field_names(self):
        client, _ = _client(_json(201, {"requestId": 99, "state": "IN_PROGRESS"}))
        result = client.create_request(PAYLOAD)

        assert (result.request_id, result.status) == ("99", "IN_PROGRESS")

    def test_missing_fields_use_defaults(self):
        client, _ = _client(_json(200, {}))
        result = client.create_request(PAYLOAD)

        assert result.request_id
        assert not result.request_id.startswith("demo-")
        assert result.status == "PENDING"

    def test_server_error_raises_submission_error(self):
        client, _ = _client(HttpResponse(status=500, body="boom"))

        with pytest.raises(SubmissionError, match="500") as excinfo:
            client.create_request(PAYLOAD)
        assert excinfo.value.status_code == 500
        assert "boom" in str(excinfo.value)

    def test_network_error_raises_submission_error(self):
        client, _ = _client(urllib.error.URLError("timed out"))

        with pytest.raises(SubmissionError):
            client.create_request(PAYLOAD)

    def test_auth_error_propagates(self):
        client, _ = _client(tokens=_StaticTokens(error=AuthError(403)))

        with pytest.raises(AuthError):
            client.create_request(PAYLOAD)

    def test_optional_fields_are_sent_when_present(self):
        client, transport = _client(_json(200, {"id": "r2"}))
        payload = CreateRequestPayload(
            catalog_item_id="x", catalog_item_label="X", requested_for="U1", requested_by="U1",
            requester_email="a@example.com", justification="Audit",
        )
        client.create_request(payload)

        body = json.loads(transport.calls[0]["data"])
        assert body["requesterEmail"] == "a@example.com"
        assert body["justification"] == "Audit"


# --- STATUS ---

class TestRequestStatus:

    def test_unconfigured_returns_none(self):
        client, transport = _client(config=None)

        assert client.get_request_status("r1") is None
        assert transport.calls == []

    def test_status_field(self):
        client, transport = _client(_json(200, {"status": "APPROVED"}))

        assert client.get_request_status("r1") == "APPROVED"
        assert transport.calls[0]["url"] == "https://iga.example.com/v1/requests/r1"

    def test_state_field(self):
        client, _ = _client(_json(200, {"state": "REJECTED"}))

        assert client.get_request_status("r1") == "REJECTED"

    def test_non_string_status_is_ignored(self):
        client, _ = _client(_json(200, {"status": 3}))

        assert client.get_request_status("r1") is None

    def test_http_error_returns_none(self):
        client, _ = _client(HttpResponse(status=404, body="not found"))

        assert client.get_request_status("r1") is None

    def test_network_error_returns_none(self):
        client, _ = _client(urllib.error.URLError("reset"))

        assert client.get_request_status("r1") is None

    def test_request_id_is_escaped(self):
        client, transport = _client(_json(200, {"status": "PENDING"}))
        client.get_request_status("a/b c")

        assert transport.calls[0]["url"] == "https://iga.example.com/v1/requests/a%2Fb%20c"

    def test_status_path_template(self):
        config = ConnectionConfig(base_url="https://iga.example.com", client_id="a", client_secret="b",
                                  request_status_path="/governance/requests/{id}/status")
        client, transport = _client(_json(200, {"status": "PENDING"}), config=config)
        client.get_request_status("r9")

        assert transport.calls[0]["url"] == "https://iga.example.com/governance/requests/r9/status"

    def test_status_path_without_placeholder_gets_id_appended(self):
        config = ConnectionConfig(base_url="https://iga.example.com", client_id="a", client_secret="b",
                                  request_status_path="/governance/requests/")
        client, transport = _client(_json(200, {"status": "PENDING"}), config=config)
        client.get_request_status("r9")

        assert transport.calls[0]["url"] == "https://iga.example.com/governance/requests/r9"
