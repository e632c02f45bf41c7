"""
Module: credentials.py
Description: AWS credential resolution for the queue client.

Resolves {access key, secret key, region} once at startup, either from
explicit settings or from the default boto3 credential chain
(environment, shared config files, instance roles). A resolution failure
is a fatal configuration error and is never retried.

Chain credentials are only checked here: the queue client resolves them
again through its own session so temporary credentials keep refreshing.

Key Components:
- AwsCredentials: Resolved credentials
- CredentialsError: Raised when credentials or region cannot be resolved
- resolve_credentials(): Resolution entry point

Dependencies: boto3, botocore, pydantic
Author: SQS Nodes Team
"""

from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError
from pydantic import BaseModel, ConfigDict, Field, SecretStr

from config.settings import Settings
from utils.logger import get_logger

logger = get_logger(__name__)


class CredentialsError(Exception):
    """AWS credentials or region could not be resolved."""


class AwsCredentials(BaseModel):
    """
    Resolved AWS credentials.

    Attributes:
        access_key_id: AWS access key id
        secret_access_key: AWS secret access key
        session_token: Session token for temporary credentials
        region: AWS region of the queue service
        source: "settings" for explicit keys, otherwise the credential
            provider that supplied them (env, iam-role, sso, ...)
    """

    model_config = ConfigDict(frozen=True)

    access_key_id: str = Field(..., min_length=1, description="AWS access key id")
    secret_access_key: SecretStr = Field(..., description="AWS secret access key")
    session_token: Optional[SecretStr] = Field(default=None, description="AWS session token")
    region: str = Field(..., min_length=1, description="AWS region")
    source: str = Field(default="settings", description="Credential provider")

    @property
    def from_settings(self) -> bool:
        return self.source == "settings"


def resolve_credentials(settings: Settings) -> AwsCredentials:
    """
    Resolve AWS credentials from settings or the default credential chain.

    Args:
        settings: Application settings

    Returns:
        Resolved credentials

    Raises:
        CredentialsError: If credentials or region cannot be resolved
    """
    access_key_id = settings.aws_access_key_id
    secret_access_key = (
        settings.aws_secret_access_key.get_secret_value()
        if settings.aws_secret_access_key else None
    )
    session_token = (
        settings.aws_session_token.get_secret_value()
        if settings.aws_session_token else None
    )

    if bool(access_key_id) != bool(secret_access_key):
        raise CredentialsError(
            "aws_access_key_id and aws_secret_access_key must be set together"
        )

    try:
        session = boto3.Session(
            aws_access_key_id=access_key_id or None,
            aws_secret_access_key=secret_access_key or None,
            aws_session_token=session_token or None,
            region_name=settings.aws_region
        )
        resolved = session.get_credentials()
        frozen = resolved.get_frozen_credentials() if resolved is not None else None
    except BotoCoreError as e:
        logger.error("AWS credential resolution failed", error=str(e))
        raise CredentialsError(f"Failed to resolve AWS credentials: {e}") from e

    if frozen is None or not frozen.access_key or not frozen.secret_key:
        raise CredentialsError("No AWS credentials found")

    if not session.region_name:
        raise CredentialsError("No AWS region configured")

    source = "settings" if access_key_id else resolved.method
    logger.info("AWS credentials resolved", region=session.region_name, source=source)

    return AwsCredentials(
        access_key_id=frozen.access_key,
        secret_access_key=frozen.secret_key,
        session_token=frozen.token,
        region=session.region_name,
        source=source
    )
