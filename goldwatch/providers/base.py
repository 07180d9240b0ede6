"""Abstract base class for data providers."""

import re
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Optional

import requests

from goldwatch.core.errors import DataShapeError, NotConfigured, ProviderError, TransportError
from goldwatch.core.logger import logger
from goldwatch.core.rate_gate import RateGate
from goldwatch.models.datatypes import WINDOW_SIZE, SourceRecordSet

DEFAULT_TIMEOUT_SECONDS = 15
DEFAULT_REQUEST_INTERVAL_MS = 1000

# query parameters that carry a credential, as they appear in request URLs
_KEY_PARAM = re.compile(r"\b(api_?key)=[^&\s]+", re.IGNORECASE)
_ERROR_FIELDS = ("error_message", "message", "Error Message", "Note", "Information")


class JsonApiProvider(ABC):
    """Abstract interface for one external JSON API serving one source.

    Subclasses know their request shape, auth parameter and response schema.
    ``fetch`` either returns a normalized :class:`SourceRecordSet` or raises a
    :class:`~goldwatch.core.errors.FetchError` subclass; raw payloads never
    leave the provider.

    Args:
        api_key: Credential for this provider (``None`` when not supplied).
        gate: Shared rate gate; every request waits on it first.
        session: Shared HTTP session.
        timeout: Per-request timeout in seconds.
        request_interval_ms: Minimum gap between this provider's requests.
        window_size: Cap on retained history.
    """

    label: str = "unknown"
    credential_name: str = "API key"

    def __init__(
        self,
        api_key: Optional[str],
        gate: RateGate,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        request_interval_ms: int = DEFAULT_REQUEST_INTERVAL_MS,
        window_size: int = WINDOW_SIZE,
    ) -> None:
        self.api_key = api_key
        self.gate = gate
        self.session = session or requests.Session()
        self.timeout = timeout
        self.request_interval_ms = request_interval_ms
        self.window_size = window_size

    @abstractmethod
    def fetch(self, run_at: datetime) -> SourceRecordSet:
        """
        Fetch and normalize this provider's data.

        Args:
            run_at (datetime): Timestamp of the pipeline run, stamped as ``lastUpdated``.

        Returns:
            SourceRecordSet: The normalized record set.
        """
        pass

    def require_credential(self) -> str:
        """Return the API key or raise NotConfigured before any request is made."""
        if not self.api_key:
            raise NotConfigured(f"{self.credential_name} not configured", provider=self.label)
        return self.api_key

    def _get_json(self, url: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """Issue one rate-gated GET and return the decoded JSON object.

        A non-2xx status whose body is a JSON object with an error field is a
        :class:`ProviderError`; any other non-2xx status is a :class:`TransportError`.
        """
        self.gate.wait(self.request_interval_ms)
        safe_params = {k: v for k, v in params.items() if "key" not in k.lower()}
        logger.info(f"{type(self).__name__}: GET {url} {safe_params}")
        try:
            resp = self.session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as exc:
            raise TransportError(
                f"request failed: {type(exc).__name__}: {self._redact(str(exc))}",
                provider=self.label,
            ) from exc
        finally:
            self.gate.mark()

        if not 200 <= resp.status_code < 300:
            message = _error_field(_json_or_none(resp))
            if message:
                raise ProviderError(
                    f"HTTP {resp.status_code}: {self._redact(message)}", provider=self.label
                )
            raise TransportError(
                f"HTTP {resp.status_code}: {self._redact(resp.text[:200])}", provider=self.label
            )

        try:
            payload = resp.json()
        except ValueError as exc:
            raise DataShapeError(f"response is not JSON: {exc}", provider=self.label) from exc

        if not isinstance(payload, dict):
            raise DataShapeError("response is not a JSON object", provider=self.label)
        return payload

    def _redact(self, text: str) -> str:
        """Strip the API key from text bound for logs and run summaries."""
        text = _KEY_PARAM.sub(r"\1=***", text)
        if self.api_key:
            text = text.replace(self.api_key, "***")
        return text


def _json_or_none(resp: Any) -> Any:
    try:
        return resp.json()
    except ValueError:
        return None


def _error_field(payload: Any) -> Optional[str]:
    """The explicit error message a provider put in its body, if any."""
    if not isinstance(payload, dict):
        return None
    for key in _ERROR_FIELDS:
        if payload.get(key):
            return str(payload[key])
    return None
