"""Async JSON-RPC 2.0 client for the molty.cash A2A endpoint."""

import itertools
from typing import Any, Optional

import httpx
from x402.http.constants import PAYMENT_REQUIRED_HEADER
from x402.http.utils import decode_payment_required_header

from moltycash.config import Settings
from moltycash.errors import A2AError, PaymentRequiredError
from moltycash.logging_utils import get_correlation_id, get_logger

logger = get_logger(__name__)

A2A_PATH = "/a2a"
X402_EXTENSION_URI = "https://github.com/google-a2a/a2a-x402/v0.1"
IDENTITY_HEADER = "X-Molty-Identity-Token"
EXTENSIONS_HEADER = "X-A2A-Extensions"
PAYMENT_REQUIRED_FIELDS = ("x402Version", "error", "resource", "accepts", "extensions")


class A2AClient:
    """Sends JSON-RPC calls to {RESOURCE_SERVER_URL}/a2a."""

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the A2A client.

        Args:
            settings: Settings providing the server URL, identity token and timeout.
            transport: Optional httpx transport, used by tests to route
                requests to an in-process app.
        """
        self.base_url = settings.resource_server_url
        self.identity_token = settings.identity_token
        self._ids = itertools.count(1)

        headers = {"Content-Type": "application/json"}
        if self.identity_token:
            headers[IDENTITY_HEADER] = self.identity_token

        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=settings.request_timeout,
            transport=transport,
        )

    async def close(self):
        """Close the underlying HTTP client."""
        await self._http.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def call(self, method: str, params: dict[str, Any], x402: bool = False) -> dict[str, Any]:
        """Send one JSON-RPC request and return its result.

        Args:
            method: JSON-RPC method name, e.g. "molty.send".
            params: Method parameters.
            x402: Announce the a2a-x402 extension on this request.

        Returns:
            The "result" member of the response.

        Raises:
            PaymentRequiredError: The server answered with HTTP 402.
            A2AError: Transport failure, HTTP error or JSON-RPC error envelope.
        """
        request_id = next(self._ids)
        body = {"jsonrpc": "2.0", "id": request_id, "method": method, "params": params}

        headers = {}
        if x402:
            headers[EXTENSIONS_HEADER] = X402_EXTENSION_URI
        correlation_id = get_correlation_id()
        if correlation_id:
            headers["X-Correlation-Id"] = correlation_id

        logger.debug(f"-> {method} (id={request_id}, keys={sorted(params)})")

        try:
            response = await self._http.post(A2A_PATH, json=body, headers=headers)
        except httpx.RequestError as e:
            logger.error(f"Request to {self.base_url}{A2A_PATH} failed: {e}")
            raise A2AError(f"Could not reach {self.base_url}: {e}") from e

        logger.debug(f"<- {method} (id={request_id}, status={response.status_code})")

        if response.status_code == 402:
            raise self._payment_required(response)

        data = _json_or_none(response)

        if response.is_error:
            raise A2AError(
                _error_message(data) or response.text or f"HTTP {response.status_code}",
                status_code=response.status_code,
            )

        if not isinstance(data, dict):
            raise A2AError(
                f"Invalid JSON-RPC response from {self.base_url}", status_code=response.status_code
            )

        error = data.get("error")
        if error:
            message = error.get("message") if isinstance(error, dict) else str(error)
            code = error.get("code") if isinstance(error, dict) else None
            logger.info(f"{method} returned JSON-RPC error {code}: {message}")
            raise A2AError(message or "A2A request failed", code=code)

        result = data.get("result")
        if result is None:
            return {}
        if not isinstance(result, dict):
            raise A2AError(
                f"Unexpected {type(result).__name__} result for {method}",
                status_code=response.status_code,
            )
        return result

    def _payment_required(self, response: httpx.Response) -> PaymentRequiredError:
        """Extract payment requirements from an HTTP 402 response."""
        data = _json_or_none(response)
        task_id = data.get("taskId") if isinstance(data, dict) else None

        header = response.headers.get(PAYMENT_REQUIRED_HEADER)
        if header:
            try:
                return PaymentRequiredError(decode_payment_required_header(header), task_id)
            except Exception as e:
                raise A2AError(f"Malformed {PAYMENT_REQUIRED_HEADER} header: {e}", status_code=402) from e

        if isinstance(data, dict):
            if "accepts" in data:
                return PaymentRequiredError(_protocol_fields(data), task_id)
            if isinstance(data.get("paymentRequired"), dict):
                return PaymentRequiredError(_protocol_fields(data["paymentRequired"]), task_id)

        raise A2AError(
            _error_message(data) or "Payment required but no payment requirements were provided",
            status_code=402,
        )


def _protocol_fields(data: dict[str, Any]) -> dict[str, Any]:
    """PaymentRequired members only, without A2A keys such as taskId."""
    return {k: v for k, v in data.items() if k in PAYMENT_REQUIRED_FIELDS}


def _json_or_none(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


def _error_message(data: Any) -> Optional[str]:
    """Error text from an A2A error body ({"error": {"message"}} or {"msg"})."""
    if not isinstance(data, dict):
        return None
    error = data.get("error")
    if isinstance(error, dict) and error.get("message"):
        return error["message"]
    if isinstance(error, str) and error:
        return error
    return data.get("msg")
