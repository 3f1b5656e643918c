import os
from pathlib import Path

import pytest


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    """Pytest hook to run before collecting tests.

    Select the config environment. The fulfillment domain itself is
    initialized and activated by the ``fulfillment_bed`` fixture.
    """
    os.environ["PROTEAN_ENV"] = session.config.option.env


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = Path(item.fspath)

        if "/domain/" in str(test_path):
            item.add_marker(pytest.mark.domain)
        elif "/application/" in str(test_path):
            item.add_marker(pytest.mark.application)
        elif "/integration/" in str(test_path):
            item.add_marker(pytest.mark.integration)
            # Integration tests are often slower
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)


@pytest.fixture(autouse=True)
def run_around_tests(monkeypatch):
    """Give every test a known token secret and fresh service singletons."""
    from fulfillment.access.context import reset_auth_resolver
    from fulfillment.api.dependencies import reset_builder
    from fulfillment.carrier import reset_carrier

    monkeypatch.setenv("AUTH_JWT_SECRET", "shipdesk-test-signing-secret-0123456789")
    monkeypatch.delenv("CARRIER_ADAPTER", raising=False)
    reset_auth_resolver()
    reset_carrier()
    reset_builder()

    yield

    reset_auth_resolver()
    reset_carrier()
    reset_builder()
