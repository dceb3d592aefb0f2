"""Shared AWS helpers for service clients."""

from __future__ import annotations

import os
from typing import Any

import boto3
from botocore.config import Config

from app.config.settings import settings


def _client_config() -> Config:
    return Config(
        connect_timeout=settings.aws.api_timeout_seconds,
        read_timeout=settings.aws.api_timeout_seconds,
        retries={"max_attempts": settings.aws.max_attempts, "mode": "standard"},
    )


def create_boto3_client(
    service_name: str,
    *,
    region_name: str | None = None,
    aws_access_key_id: str | None = None,
    aws_secret_access_key: str | None = None,
) -> boto3.client:
    """Instantiate a boto3 client using configured credentials if available."""

    region = region_name or settings.aws.region
    client_kwargs: dict[str, Any] = {"region_name": region, "config": _client_config()}
    if aws_access_key_id and aws_secret_access_key:
        client_kwargs["aws_access_key_id"] = aws_access_key_id
        client_kwargs["aws_secret_access_key"] = aws_secret_access_key
    elif settings.aws.access_key and settings.aws.secret_key:
        client_kwargs["aws_access_key_id"] = settings.aws.access_key
        client_kwargs["aws_secret_access_key"] = settings.aws.secret_key
    return boto3.client(service_name, **client_kwargs)


def export_credentials_to_environment() -> None:
    """Expose configured credentials to SDKs that only read the environment."""

    if settings.aws.access_key:
        os.environ["AWS_ACCESS_KEY_ID"] = settings.aws.access_key
    if settings.aws.secret_key:
        os.environ["AWS_SECRET_ACCESS_KEY"] = settings.aws.secret_key


__all__ = ["create_boto3_client", "export_credentials_to_environment"]
