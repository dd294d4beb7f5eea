from __future__ import annotations

import boto3
from botocore.exceptions import BotoCoreError

from athenacli.exceptions.errors import AuthError
from athenacli.logging.logger import get_logger

log = get_logger("db.credentials")


def resolve_session(region: str) -> boto3.Session:
    """Create a boto3 session and make sure botocore can find credentials.

    Discovery is botocore's provider chain: environment variables, the shared
    credentials/config files, then the instance-metadata service. The first
    provider that yields credentials wins.
    """
    try:
        session = boto3.Session(region_name=region or None)
        creds = session.get_credentials()
    except BotoCoreError as e:
        raise AuthError(f"Unable to resolve AWS credentials: {e}") from e

    if creds is None:
        raise AuthError(
            "No AWS credentials found (checked environment, shared credentials/config files, instance metadata)"
        )

    log.debug("Resolved AWS credentials", extra={"method": getattr(creds, "method", None), "region": region})
    return session
