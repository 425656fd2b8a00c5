"""Fixtures serving the full application in-process against a mocked n8n API."""

import functools
from collections.abc import AsyncIterator

import httpx
import pytest
from mcp_helpers import N8N_URL, n8n_api

from n8n_workflow_builder.n8n import N8nClient
from n8n_workflow_builder.operations import build_registry
from n8n_workflow_builder.server import SessionRouter, create_app, create_engine
from n8n_workflow_builder.settings import Settings


@pytest.fixture
async def n8n_client() -> AsyncIterator[N8nClient]:
    http = httpx.AsyncClient(base_url=N8N_URL, transport=httpx.MockTransport(n8n_api))
    async with N8nClient(N8N_URL, http_client=http) as client:
        yield client


@pytest.fixture(params=[False, True], ids=["sse", "json"])
def json_response(request: pytest.FixtureRequest) -> bool:
    """Serve POST responses as SSE streams (the default) or as plain JSON."""
    return request.param


@pytest.fixture
def settings(json_response: bool) -> Settings:
    return Settings(_env_file=None, n8n_host=N8N_URL, json_response=json_response)  # type: ignore[call-arg]


@pytest.fixture
async def router(n8n_client: N8nClient, json_response: bool) -> AsyncIterator[SessionRouter]:
    registry = build_registry(n8n_client)
    router = SessionRouter(
        functools.partial(create_engine, registry), json_response=json_response, close_timeout=1.0
    )
    async with router.run():
        yield router


@pytest.fixture
async def mcp_client(settings: Settings, router: SessionRouter) -> AsyncIterator[httpx.AsyncClient]:
    # ASGITransport does not run the lifespan; the router fixture stands in for it
    app = create_app(settings, router)
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver") as client:
        yield client
