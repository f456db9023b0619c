"""
Unit tests for the MCP tool layer.
"""

import pytest

from ragdocs_mcp import __version__
from ragdocs_mcp.server import build_server


@pytest.fixture
def server(settings, orchestrator):
    return build_server(settings, orchestrator=orchestrator)


def _tool(server, name):
    return server._tool_manager.get_tool(name).fn


class TestToolRegistration:
    """Test which tools the server exposes."""

    @pytest.mark.asyncio
    async def test_tools_listed(self, server):
        names = {tool.name for tool in await server.list_tools()}
        assert names == {
            "search_documentation",
            "add_documentation",
            "list_sources",
            "remove_documentation",
            "health_check",
        }


class TestToolBehavior:
    """Test tool input validation and error reporting."""

    @pytest.mark.asyncio
    async def test_add_then_search(self, server):
        added = await _tool(server, "add_documentation")(
            url="https://docs.example.com/points",
            content="Points carry a vector and a payload.",
            title="Points",
        )
        assert added == {"url": "https://docs.example.com/points", "title": "Points", "chunks": 1}

        found = await _tool(server, "search_documentation")(query="Points carry a vector", limit=3)
        assert found["total"] == 1
        assert found["results"][0]["title"] == "Points"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("query, limit", [("", 5), ("x" * 1001, 5), ("ok", 0), ("ok", 101)])
    async def test_search_validation(self, server, fake_client, query, limit):
        result = await _tool(server, "search_documentation")(query=query, limit=limit)
        assert result["error_code"] == "INVALID_INPUT"
        assert fake_client.create_calls == []

    @pytest.mark.asyncio
    async def test_add_validation(self, server):
        result = await _tool(server, "add_documentation")(url="https://x", content="  ")
        assert result["error_code"] == "INVALID_INPUT"

    @pytest.mark.asyncio
    async def test_remove_validation(self, server):
        result = await _tool(server, "remove_documentation")(urls=[])
        assert result["error_code"] == "INVALID_INPUT"

    @pytest.mark.asyncio
    async def test_store_errors_are_returned_not_raised(self, server, fake_client):
        fake_client.list_error = Exception("connect ETIMEDOUT 10.0.0.5:6333")

        result = await _tool(server, "list_sources")()

        assert result["error_code"] == "Unreachable"
        assert "QDRANT_URL" in result["error"]

    @pytest.mark.asyncio
    async def test_embedding_errors_are_returned(self, server, fake_provider):
        fake_provider.error = RuntimeError("model 'nomic-embed-text' not found")

        result = await _tool(server, "search_documentation")(query="anything")

        assert result["error_code"] == "EmbeddingFailure"
        assert "not found" in result["error"]

    @pytest.mark.asyncio
    async def test_health_check_reports_version(self, server):
        status = await _tool(server, "health_check")()
        assert status["version"] == __version__
        assert status["status"] == "healthy"
