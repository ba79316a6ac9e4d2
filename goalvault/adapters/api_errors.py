from __future__ import annotations

from typing import Any, Dict, List, Optional


class ApiError(RuntimeError):
    """Base class for RPC, indexer and wallet adapter failures."""

    def __init__(
        self,
        message: str,
        *,
        status: Optional[int] = None,
        code: Optional[str] = None,
        hint: Optional[str] = None,
        payload: Any = None,
        context: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.code = code
        self.hint = hint
        self.payload = payload
        self.context = context


class ApiClientError(ApiError):
    """HTTP 4xx (or JSON-RPC request error) from a node or the indexer."""

    def __init__(
        self,
        message: str,
        *,
        status: int,
        code: Optional[str] = None,
        hint: Optional[str] = None,
        payload: Any = None,
        context: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            status=status,
            code=code,
            hint=hint,
            payload=payload,
            context=context,
        )

    @property
    def rate_limited(self) -> bool:
        return self.status == 429


class ApiServerError(ApiError):
    """HTTP 5xx from a node or the indexer."""

    def __init__(
        self,
        message: str,
        *,
        status: int,
        payload: Any = None,
        context: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            status=status,
            payload=payload,
            context=context,
        )


class ApiTimeoutError(ApiError):
    """Transport level timeout or connectivity failure."""

    def __init__(
        self,
        message: str,
        *,
        context: Optional[str] = None,
    ) -> None:
        super().__init__(message, context=context)


class UserRejectedError(ApiError):
    """The wallet declined to sign (EIP-1193 code 4001)."""

    def __init__(self, message: str = "User rejected the request.", *, context: Optional[str] = None) -> None:
        super().__init__(message, code="4001", context=context)


class TxSubmissionError(ApiError):
    """The wallet or node refused to broadcast a transaction."""


class ContractRevertError(ApiError):
    """A call or transaction reverted; ``reason`` is the decoded revert string."""

    def __init__(
        self,
        message: str,
        *,
        reason: Optional[str] = None,
        payload: Any = None,
        context: Optional[str] = None,
    ) -> None:
        super().__init__(message, hint=reason, payload=payload, context=context)
        self.reason = reason


def is_transient(exc: BaseException) -> bool:
    """True for failures worth retrying: timeouts, 5xx and rate limits."""
    if isinstance(exc, (ApiTimeoutError, ApiServerError)):
        return True
    if isinstance(exc, ApiClientError) and exc.rate_limited:
        return True
    if isinstance(exc, ApiError) and not isinstance(
        exc, (UserRejectedError, TxSubmissionError, ContractRevertError)
    ):
        return "too many requests" in str(exc).lower()
    return False


# ---- Error payload inspection ----
# Nodes answer with JSON-RPC ``{"error": {"code", "message", "data"}}``; the
# indexer answers with GraphQL ``{"errors": [{"message", "extensions"}]}``.
def parse_error_payload(resp: Any) -> Any:
    """Best-effort extraction of error payload without raising."""
    try:
        return resp.json()
    except ValueError:
        snippet = getattr(resp, "text", "")
        if not snippet:
            return None
        return snippet[:400]


def _error_objects(payload: Any) -> List[Dict[str, Any]]:
    if isinstance(payload, list):
        return [item for item in payload if isinstance(item, dict)]
    if not isinstance(payload, dict):
        return []
    found = [payload]
    if isinstance(payload.get("error"), dict):
        found.append(payload["error"])
    if isinstance(payload.get("errors"), list):
        found.extend(item for item in payload["errors"] if isinstance(item, dict))
    return found


def _short(value: Any, limit: int = 200) -> Optional[str]:
    if value is None or (isinstance(value, (dict, list)) and not value):
        return None
    text = value.strip() if isinstance(value, str) else str(value)
    return text[:limit] or None


def error_message(payload: Any) -> Optional[str]:
    """First human readable message in a JSON-RPC, GraphQL or plain payload."""
    if isinstance(payload, str):
        return payload.strip() or None
    for obj in _error_objects(payload):
        for key in ("message", "detail", "reason"):
            value = obj.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
        if isinstance(obj.get("error"), str) and obj["error"].strip():
            return obj["error"].strip()
    return None


def error_code(payload: Any) -> Optional[str]:
    for obj in _error_objects(payload):
        value = obj.get("code")
        if value is None and isinstance(obj.get("extensions"), dict):
            value = obj["extensions"].get("code")
        if value is not None:
            return str(value)
    return None


def error_hint(payload: Any) -> Optional[str]:
    """Supplementary detail such as JSON-RPC ``data`` or a ``hint`` field."""
    for obj in _error_objects(payload):
        for key in ("hint", "data", "details"):
            text = _short(obj.get(key))
            if text:
                return text
    return None


def build_error_message(ctx: str, status: int, payload: Any) -> str:
    detail = error_message(payload)
    if detail:
        return f"{ctx}: {detail} (HTTP {status})"
    return f"{ctx}: HTTP {status}"
