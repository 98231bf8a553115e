"""RemoteEntityStore over the Ceph RGW admin-ops user API.

Requests are signed with AWS SigV4 (service ``s3``) using the admin user's
access key. Each call is a single attempt; failures are mapped onto the
store error taxonomy.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Optional

import requests
from botocore.auth import S3SigV4Auth
from botocore.awsrequest import AWSRequest
from botocore.credentials import Credentials

from scripts.rgw_accounts.config import RgwConfig
from scripts.rgw_accounts.context import CallContext
from scripts.rgw_accounts.errors import (
    NotFoundError,
    StoreError,
    TransportError,
    ValidationError,
)
from scripts.rgw_accounts.models import Account
from scripts.rgw_accounts.store import RemoteEntityStore

logger = logging.getLogger("rgw_accounts.rgw_client")

_NOT_FOUND_CODES = {"NoSuchUser", "NoSuchKey"}
_VALIDATION_CODES = {
    "UserAlreadyExists",
    "InvalidArgument",
    "InvalidDisplayName",
    "InvalidAccessKey",
    "KeyExists",
    "EmailExists",
}


class RgwAdminStore(RemoteEntityStore):
    """Account store backed by ``{endpoint}/{admin_path}/user``."""

    def __init__(self, config: RgwConfig, session: Optional[requests.Session] = None) -> None:
        self._config = config
        self._url = f"{config.endpoint}/{config.admin_path}/user"
        self._credentials = Credentials(config.access_key, config.secret_key)
        self._session = session or requests.Session()
        self._session.headers.update({"Accept": "application/json"})

    def close(self) -> None:
        self._session.close()

    # ------------------------------------------------------------------
    # RemoteEntityStore
    # ------------------------------------------------------------------

    def create(self, account: Account, ctx: CallContext) -> Account:
        self._require_identifier(account.identifier)
        if not account.display_name:
            raise ValidationError("display name must not be empty")
        data = self._call("PUT", self._user_params(account), ctx)
        return self._to_account(data)

    def fetch(self, identifier: str, ctx: CallContext) -> Account:
        self._require_identifier(identifier)
        data = self._call("GET", {"uid": identifier}, ctx)
        return self._to_account(data)

    def modify(self, account: Account, ctx: CallContext) -> Account:
        self._require_identifier(account.identifier)
        data = self._call("POST", self._user_params(account), ctx)
        return self._to_account(data)

    def remove(self, identifier: str, ctx: CallContext) -> None:
        self._require_identifier(identifier)
        self._call("DELETE", {"uid": identifier}, ctx)

    # ------------------------------------------------------------------
    # HTTP helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _require_identifier(identifier: str) -> None:
        if not identifier:
            raise ValidationError("user id must not be empty")

    @staticmethod
    def _user_params(account: Account) -> dict[str, str]:
        params = {"uid": account.identifier}
        if account.display_name:
            params["display-name"] = account.display_name
        if account.max_buckets is not None:
            params["max-buckets"] = str(account.max_buckets)
        return params

    def _timeout(self, ctx: CallContext) -> float:
        remaining = ctx.remaining()
        if remaining is None:
            return self._config.timeout_seconds
        return min(remaining, self._config.timeout_seconds)

    def _sign(self, method: str, params: dict[str, str]) -> AWSRequest:
        request = AWSRequest(method=method, url=self._url, params={**params, "format": "json"})
        S3SigV4Auth(self._credentials, "s3", self._config.region).add_auth(request)
        return request

    def _call(self, method: str, params: dict[str, str], ctx: CallContext) -> Any:
        prepared = self._sign(method, params).prepare()
        started = time.monotonic()
        try:
            resp = self._session.request(
                method,
                prepared.url,
                headers=dict(prepared.headers),
                data=prepared.body,
                timeout=self._timeout(ctx),
                verify=self._config.verify_tls,
            )
        except requests.Timeout as exc:
            raise TransportError(f"request timed out: {exc}") from exc
        except requests.RequestException as exc:
            raise TransportError(f"request failed: {exc}") from exc

        logger.debug(
            "%s %s -> %d",
            method,
            self._url,
            resp.status_code,
            extra={"user_id": params.get("uid"), "duration_s": round(time.monotonic() - started, 3)},
        )
        if resp.status_code >= 400:
            raise self._error_for(resp)
        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as exc:
            raise TransportError(
                f"undecodable response body: {exc}", status_code=resp.status_code
            ) from exc

    @staticmethod
    def _error_for(resp: requests.Response) -> StoreError:
        code = ""
        try:
            body = resp.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            code = str(body.get("Code", ""))
        message = f"{resp.status_code} {code or resp.reason}".strip()

        if resp.status_code == 404 or code in _NOT_FOUND_CODES:
            return NotFoundError(message, status_code=resp.status_code)
        if code in _VALIDATION_CODES or 400 <= resp.status_code < 500:
            return ValidationError(message, status_code=resp.status_code)
        return TransportError(message, status_code=resp.status_code)

    @staticmethod
    def _to_account(data: Any) -> Account:
        if not isinstance(data, dict) or "user_id" not in data:
            raise TransportError(f"unexpected user payload: {data!r}")
        max_buckets = data.get("max_buckets")
        if max_buckets is not None:
            try:
                max_buckets = int(max_buckets)
            except (TypeError, ValueError) as exc:
                raise TransportError(f"unexpected user payload: {data!r}") from exc
        return Account(
            identifier=str(data["user_id"]),
            display_name=str(data.get("display_name", "")),
            max_buckets=max_buckets,
        )
