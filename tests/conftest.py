from unittest.mock import MagicMock

import pytest

from sfinspect.api import SalesforceAPI, SFConfig
from sfinspect.models import ConnectionDescriptor

INSTANCE_URL = "https://example.my.salesforce.com"


def _response(status_code=200, json_data=None, text="", reason="OK"):
    """A requests.Response stand-in good enough for SalesforceAPI."""
    r = MagicMock()
    r.status_code = status_code
    r.ok = status_code < 400
    r.reason = reason
    r.text = text
    if json_data is None:
        r.json.side_effect = ValueError("No JSON")
    else:
        r.json.return_value = json_data
    return r


@pytest.fixture
def conn():
    return ConnectionDescriptor(
        access_token="00DFAKE-TOKEN",
        instance_url=INSTANCE_URL,
        refresh_token="5Aep-REFRESH",
    )


@pytest.fixture
def api():
    return SalesforceAPI(SFConfig(api_version="v58.0", request_timeout=10.0))


@pytest.fixture(autouse=True)
def clean_sf_env(monkeypatch):
    """Keep a developer's real SF_* settings out of the tests."""
    for name in (
        "SF_API_VERSION",
        "SF_ACCESS_TOKEN",
        "SF_INSTANCE_URL",
        "SF_REFRESH_TOKEN",
        "SF_REQUEST_TIMEOUT",
        "SF_BULK_POLL_INTERVAL",
        "SF_BULK_MAX_POLLS",
        "SF_METADATA_TTL",
        "SF_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def make_response():
    return _response
