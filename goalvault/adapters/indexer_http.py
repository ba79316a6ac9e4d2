# goalvault/adapters/indexer_http.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests

from goalvault.domain.ports import Address, VaultIndexPort, VaultId

from .api_errors import (
    ApiClientError,
    ApiError,
    ApiServerError,
    build_error_message,
    error_code,
    error_hint,
    error_message,
    parse_error_payload,
)
from .http_client import HttpConfig, RetryingSession

log = logging.getLogger(__name__)

USER_VAULTS_QUERY = """
query GetUserVaults($user: Bytes!) {
  vaults(where: { creator: $user }) { id }
  members(where: { user: $user }) { vault { id } }
}
"""


class GraphQLVaultIndex(VaultIndexPort):
    """Vault lookups against the event indexer's GraphQL endpoint.

    Only identifiers are taken from the indexer; vault state itself is always
    re-read on-chain by the status aggregator.
    """

    def __init__(
        self,
        endpoint: str,
        *,
        api_key: Optional[str] = None,
        request_timeout: float = 10,
        retries: int = 2,
        session: Optional[RetryingSession] = None,
    ) -> None:
        self.endpoint = endpoint
        self.http = session or RetryingSession(
            api_key, HttpConfig(request_timeout_s=request_timeout, retries=retries)
        )

    def vault_ids_for_user(self, address: Address) -> List[VaultId]:
        """Return ids of vaults the address created or joined, ascending."""
        data = self._query(USER_VAULTS_QUERY, {"user": address.lower()}, ctx="GetUserVaults")
        ids = set()
        for item in data.get("vaults") or []:
            vault_id = _parse_id(item.get("id"))
            if vault_id is not None:
                ids.add(vault_id)
        for item in data.get("members") or []:
            vault = item.get("vault") or {}
            vault_id = _parse_id(vault.get("id"))
            if vault_id is not None:
                ids.add(vault_id)
        log.debug("Indexer returned %d vault(s) for %s", len(ids), address)
        return sorted(ids)

    # ---- helpers ----
    def _query(self, query: str, variables: Dict[str, Any], *, ctx: str) -> Dict[str, Any]:
        resp = self.http.post(self.endpoint, json_body={"query": query, "variables": variables})
        self._ensure_ok(resp, ctx)
        body = self._json(resp, ctx)
        errors = body.get("errors")
        if errors:
            message = error_message(errors) or "GraphQL query failed"
            raise ApiError(f"{ctx}: {message}", payload=errors, context=ctx)
        data = body.get("data")
        if not isinstance(data, dict):
            raise ApiError(f"{ctx}: response has no data", payload=body, context=ctx)
        return data

    @staticmethod
    def _ensure_ok(resp: requests.Response, ctx: str) -> None:
        if 200 <= resp.status_code < 300:
            return
        status = resp.status_code
        payload = parse_error_payload(resp)
        message = build_error_message(ctx, status, payload)
        if 400 <= status < 500:
            raise ApiClientError(
                message,
                status=status,
                code=error_code(payload),
                hint=error_hint(payload),
                payload=payload,
                context=ctx,
            )
        if 500 <= status < 600:
            raise ApiServerError(message, status=status, payload=payload, context=ctx)
        raise ApiError(message, status=status, payload=payload, context=ctx)

    @staticmethod
    def _json(resp: requests.Response, ctx: str) -> Dict[str, Any]:
        try:
            data = resp.json()
        except ValueError as exc:
            raise ApiError(f"{ctx}: invalid JSON response", context=ctx) from exc
        if not isinstance(data, dict):
            raise ApiError(f"{ctx}: expected JSON object", payload=data, context=ctx)
        return data


def _parse_id(raw: Any) -> Optional[int]:
    if raw is None:
        return None
    try:
        return int(str(raw), 0)
    except ValueError:
        log.warning("Skipping unparseable vault id from indexer: %r", raw)
        return None


__all__ = ["GraphQLVaultIndex", "USER_VAULTS_QUERY"]
