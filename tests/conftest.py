import pytest


@pytest.fixture
def anyio_backend():
    # uvicorn only runs on asyncio
    return "asyncio"
