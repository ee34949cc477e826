import pytest


@pytest.fixture
def anyio_backend():
    # The coordinator and backends are built on asyncio primitives.
    return "asyncio"
