import random
from collections.abc import AsyncIterator, Callable

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from random_status.config import Settings
from random_status.logging import LoggingSettings
from random_status.main import create_app
from random_status.services.generator import RandomSource
from tests.factories import TEST_SEED


@pytest.fixture
def settings() -> Settings:
    return Settings(
        service_name="service-a",
        environment="test",
        version="1.2.3",
        otlp_traces_endpoint=None,
        random_seed=None,
    )


@pytest.fixture
def span_exporter() -> InMemorySpanExporter:
    return InMemorySpanExporter()


@pytest.fixture
def make_app(
    settings: Settings, span_exporter: InMemorySpanExporter
) -> Callable[[RandomSource], FastAPI]:
    """Factory: build an app around the given random source."""

    def _make(source: RandomSource) -> FastAPI:
        return create_app(
            settings,
            logging_settings=LoggingSettings(log_level="INFO", log_file=None),
            random_source=source,
            span_exporter=span_exporter,
        )

    return _make


@pytest.fixture
def app(make_app: Callable[[RandomSource], FastAPI]) -> FastAPI:
    return make_app(random.Random(TEST_SEED))


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    """HTTP client talking to the app in-process."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client

    app.state.telemetry.shutdown()
