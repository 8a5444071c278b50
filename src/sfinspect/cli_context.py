from __future__ import annotations

from typing import Tuple

import click

from .api import SalesforceAPI, SFConfig
from .exceptions import AuthenticationMissing
from .models import ConnectionDescriptor

_HELP = (
    "Set these environment variables (or create a .env file), e.g. after "
    "logging in through the inspector or `sf org display`:\n"
    "  SF_ACCESS_TOKEN=...          # OAuth access token\n"
    "  SF_INSTANCE_URL=https://yourorg.my.salesforce.com\n"
    "  SF_API_VERSION=v58.0         # optional"
)


def connect_from_env() -> Tuple[SalesforceAPI, ConnectionDescriptor]:
    """Build the client and the connection named by SF_ACCESS_TOKEN / SF_INSTANCE_URL."""
    cfg = SFConfig.from_env()
    conn = cfg.connection()
    if conn is None:
        missing = [
            name
            for name, value in (
                ("SF_ACCESS_TOKEN", cfg.access_token),
                ("SF_INSTANCE_URL", cfg.instance_url),
            )
            if not value
        ]
        e = AuthenticationMissing(missing)
        needed = ", ".join(e.missing)
        raise click.ClickException(f"Missing Salesforce credentials: {needed}\n\n{_HELP}") from e
    return SalesforceAPI(cfg), conn
