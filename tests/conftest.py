import anyio
import pytest
import sse_starlette
from packaging import version


@pytest.fixture
def anyio_backend():
    return "asyncio"


NEEDS_RESET = version.parse(sse_starlette.__version__) < version.parse("3.0.0")


@pytest.fixture(autouse=True)
def reset_sse_app_status():
    """Give every test a fresh sse-starlette shutdown event.

    Before 3.0, AppStatus.should_exit_event is a module-level event bound to the first loop that
    awaits it, so event-stream responses in a later test would fail with a cross-loop RuntimeError.
    """
    if not NEEDS_RESET:
        yield
        return

    from sse_starlette.sse import AppStatus

    AppStatus.should_exit_event = anyio.Event()  # type: ignore[attr-defined]
    yield
    AppStatus.should_exit_event = anyio.Event()  # type: ignore[attr-defined]
