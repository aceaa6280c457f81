"""Tests for the HTTP rule client used by disconnected consumers."""

from __future__ import annotations

import httpx
import pytest

from recognition.classification.cache import RuleCache
from recognition.classification.classifier import RoleClassifier
from recognition.client.http import RecognitionRuleClient
from recognition.core.config import RuleApiConfig

BASE = "http://rules.test"
ACTIVE = f"{BASE}/api/recognition-rules/active"

TREE_RULES = [
    {
        "id": "r1",
        "role_id": "role-door",
        "role_name": "Door",
        "root_node": {
            "type": "group",
            "operator": "AND",
            "children": [
                {"type": "condition", "operator": "Contains", "value": "Door"},
                {"type": "condition", "operator": "NotContains", "value": "Window"},
            ],
        },
    },
]


def _client(**overrides) -> RecognitionRuleClient:
    defaults = {"base_url": BASE, "max_retries": 2, "backoff_seconds": 0}
    defaults.update(overrides)
    return RecognitionRuleClient(RuleApiConfig(**defaults))


class TestListActiveRulesTree:
    async def test_parses_tree_rules(self, httpx_mock) -> None:
        httpx_mock.add_response(url=ACTIVE, json=TREE_RULES)
        async with _client() as client:
            rules = await client.list_active_rules_tree()
        assert [r.role_name for r in rules] == ["Door"]
        assert rules[0].root_node.children[1].value == "Window"

    async def test_accepts_paged_envelope(self, httpx_mock) -> None:
        httpx_mock.add_response(url=ACTIVE, json={"items": TREE_RULES})
        async with _client() as client:
            assert len(await client.list_active_rules_tree()) == 1

    async def test_retries_server_errors(self, httpx_mock) -> None:
        httpx_mock.add_response(url=ACTIVE, status_code=503)
        httpx_mock.add_response(url=ACTIVE, json=TREE_RULES)
        async with _client() as client:
            rules = await client.list_active_rules_tree()
        assert len(rules) == 1
        assert len(httpx_mock.get_requests()) == 2

    async def test_retries_transport_errors_then_gives_up(self, httpx_mock) -> None:
        httpx_mock.add_exception(httpx.ConnectError("refused"), url=ACTIVE)
        httpx_mock.add_exception(httpx.ConnectError("refused"), url=ACTIVE)
        async with _client(max_retries=1) as client:
            with pytest.raises(httpx.ConnectError):
                await client.list_active_rules_tree()

    async def test_client_errors_are_not_retried(self, httpx_mock) -> None:
        httpx_mock.add_response(url=ACTIVE, status_code=404)
        async with _client() as client:
            with pytest.raises(httpx.HTTPStatusError):
                await client.list_active_rules_tree()
        assert len(httpx_mock.get_requests()) == 1


class TestIsAvailable:
    async def test_healthy(self, httpx_mock) -> None:
        httpx_mock.add_response(url=f"{BASE}/api/health", json={"status": "healthy"})
        async with _client() as client:
            assert await client.is_available() is True

    async def test_unreachable(self, httpx_mock) -> None:
        httpx_mock.add_exception(httpx.ConnectError("refused"), url=f"{BASE}/api/health")
        async with _client() as client:
            assert await client.is_available() is False


class TestClientBackedClassifier:
    async def test_outage_keeps_last_known_good(self, httpx_mock) -> None:
        httpx_mock.add_response(url=ACTIVE, json=TREE_RULES)
        httpx_mock.add_exception(httpx.ConnectError("refused"), url=ACTIVE)
        async with _client(max_retries=0) as client:
            classifier = RoleClassifier(RuleCache.from_source(client))
            assert await classifier.match("MyDoorFamily") == "Door"
            assert await classifier.cache.refresh() is False
            assert await classifier.match("MyDoorFamily") == "Door"
