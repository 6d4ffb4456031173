from collections.abc import Generator
from typing import Any

import pytest
from fastapi.testclient import TestClient

from shms.app import get_application
from shms.dependencies import (
    get_email_tool,
    get_settings,
    init_app_state,
)
from tests.commons import (
    override_get_email_tool,
    override_get_settings,
    override_init_app_state,
    settings,
)


@pytest.fixture(scope="module")
def sent_emails() -> list[dict[str, Any]]:
    """
    Emails sent during the test module, see `RecordingEmailTool`
    """
    return []


@pytest.fixture(scope="module", autouse=True)
def client(sent_emails: list[dict[str, Any]]) -> Generator[TestClient, None, None]:
    test_app = get_application(settings=settings, drop_db=True)  # Create the test's app

    test_app.dependency_overrides[init_app_state] = override_init_app_state
    test_app.dependency_overrides[get_settings] = override_get_settings
    test_app.dependency_overrides[get_email_tool] = override_get_email_tool(
        sent_emails,
    )

    # The TestClient should be used as a context manager in order for the lifespan to be called
    # See https://www.starlette.io/lifespan/#running-lifespan-in-tests
    with TestClient(test_app) as client:
        yield client
