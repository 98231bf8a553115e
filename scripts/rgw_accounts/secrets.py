"""Secret reference resolution for the admin keys and database password.

A configured value is either a literal or a reference to a secret held in
AWS Secrets Manager, GCP Secret Manager or a mounted file.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

import requests

logger = logging.getLogger("rgw_accounts.secrets")

_AWS_PREFIX = "aws-secret://"
_GCP_PREFIX = "gcp-secret://"
_FILE_PREFIX = "file://"


def resolve_secret(value: str) -> str:
    """Resolve a secret reference to its plaintext value.

    Supported formats:
      - "aws-secret://secret-name"         -> AWS Secrets Manager
      - "aws-secret://secret-name#key"     -> AWS Secrets Manager (JSON key)
      - "gcp-secret://project/secret/ver"  -> GCP Secret Manager
      - "file:///run/secrets/rgw-key"      -> file contents, stripped
      - anything else                      -> returned as-is
    """
    if value.startswith(_AWS_PREFIX):
        return _resolve_aws_secret(value[len(_AWS_PREFIX):])
    if value.startswith(_GCP_PREFIX):
        return _resolve_gcp_secret(value[len(_GCP_PREFIX):])
    if value.startswith(_FILE_PREFIX):
        return Path(value[len(_FILE_PREFIX):]).read_text(encoding="utf-8").strip()
    return value


def _resolve_aws_secret(ref: str) -> str:
    """ref format: "secret-name" or "secret-name#json_key"."""
    import boto3

    secret_name, _, json_key = ref.partition("#")
    region = os.environ.get("AWS_REGION", "us-east-1")
    client = boto3.client("secretsmanager", region_name=region)

    logger.debug("Resolving AWS secret %s", secret_name)
    secret_string = client.get_secret_value(SecretId=secret_name)["SecretString"]
    if json_key:
        return str(json.loads(secret_string)[json_key])
    return secret_string


def _resolve_gcp_secret(ref: str) -> str:
    """ref format: "projects/PROJECT/secrets/NAME/versions/VERSION" or "NAME"."""
    from google.cloud import secretmanager

    client = secretmanager.SecretManagerServiceClient()

    if ref.startswith("projects/"):
        name = ref
    else:
        project = os.environ.get("GCP_PROJECT_ID", "") or _gcp_project_from_metadata()
        name = f"projects/{project}/secrets/{ref}/versions/latest"

    logger.debug("Resolving GCP secret %s", name)
    response = client.access_secret_version(request={"name": name})
    return response.payload.data.decode("UTF-8")


def _gcp_project_from_metadata() -> str:
    """Project ID from the metadata server (Cloud Run / GCE only)."""
    try:
        resp = requests.get(
            "http://metadata.google.internal/computeMetadata/v1/project/project-id",
            headers={"Metadata-Flavor": "Google"},
            timeout=2,
        )
        resp.raise_for_status()
    except requests.RequestException as exc:
        raise RuntimeError(
            "Cannot determine GCP project ID. Set GCP_PROJECT_ID env var."
        ) from exc
    return resp.text


def resolve_database_url() -> str:
    """DATABASE_URL from env, else assembled from PG_* variables."""
    url = os.environ.get("DATABASE_URL", "")
    if url:
        return resolve_secret(url)

    host = os.environ.get("PG_HOST", "localhost")
    port = os.environ.get("PG_PORT", "5432")
    user = os.environ.get("PG_USER", "rgw_accounts")
    password = resolve_secret(os.environ.get("PG_PASSWORD", "localdev-change-me"))
    database = os.environ.get("PG_DATABASE", "rgw_accounts")

    return f"postgresql://{user}:{password}@{host}:{port}/{database}"
