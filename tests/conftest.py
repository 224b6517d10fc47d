"""
tests/conftest.py – shared pytest configuration.

Integration tests (marked with @pytest.mark.integration) are skipped by
default. Pass --integration to opt in:

    uv run pytest --integration tests/test_integration.py -v
"""
import pytest


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--integration",
        action="store_true",
        default=False,
        help="Run integration tests that make real Gemini API calls.",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    if not config.getoption("--integration"):
        skip = pytest.mark.skip(reason="Pass --integration to run this test.")
        for item in items:
            if item.get_closest_marker("integration"):
                item.add_marker(skip)


@pytest.fixture(autouse=True)
def _no_rate_limit():
    """Route tests share one client address; keep slowapi out of the way."""
    from app.main import limiter

    limiter.enabled = False
    yield
    limiter.enabled = True
