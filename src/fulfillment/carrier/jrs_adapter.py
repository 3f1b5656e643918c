"""JRS Express carrier adapter.

Posts a ``shipfromecom`` shipping request to the JRS online shipping API and
classifies the answer:

- network error, timeout, 5xx, or a non-2xx answer without a JSON body
  → ``CarrierTransportError``
- 4xx with a JSON body, or 2xx carrying an explicit false success flag
  → ``CarrierBusinessError``

Requests are never retried here; the reference number is unique per attempt
and a retry belongs to the caller.
"""

import os

import httpx
import structlog

from fulfillment.carrier.port import CarrierPort, CarrierResult
from fulfillment.errors import CarrierBusinessError, CarrierTransportError

logger = structlog.get_logger(__name__)

DEFAULT_API_URL = "https://jrs-express.azure-api.net/qa-online-shipping-ship/ShippingRequestFunction"
DEFAULT_TIMEOUT_SECONDS = 30.0

_SUCCESS_FLAGS = ("success", "Success", "IsSuccess")


def _explicit_failure(body) -> bool:
    if not isinstance(body, dict):
        return False
    return any(flag in body and body[flag] is False for flag in _SUCCESS_FLAGS)


def _float_or_none(value):
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None


class JRSCarrier(CarrierPort):
    """JRS Express shipping API over HTTPS."""

    def __init__(
        self,
        api_url: str,
        api_key: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.api_url = api_url
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_env(cls) -> "JRSCarrier":
        api_key = os.environ.get("JRS_API_KEY", "")
        if not api_key:
            logger.warning("jrs_api_key_missing")
        return cls(
            api_url=os.environ.get("JRS_API_URL", DEFAULT_API_URL),
            api_key=api_key,
            timeout=float(os.environ.get("JRS_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS)),
        )

    def _client(self) -> httpx.Client:
        return httpx.Client(
            headers={
                "Content-Type": "application/json",
                "Cache-Control": "no-cache",
                "Ocp-Apim-Subscription-Key": self.api_key,
            },
            timeout=httpx.Timeout(self.timeout),
            transport=self._transport,
        )

    def create_shipment(self, request) -> CarrierResult:
        reference_no = request.shipping_reference_no
        try:
            with self._client() as client:
                response = client.post(self.api_url, json=request.to_payload())
        except httpx.TimeoutException as exc:
            logger.error("jrs_request_timeout", shipping_reference_no=reference_no, timeout=self.timeout)
            raise CarrierTransportError(
                f"JRS API request timed out after {self.timeout}s",
                shipping_reference_no=reference_no,
            ) from exc
        except httpx.RequestError as exc:
            logger.error("jrs_request_failed", shipping_reference_no=reference_no, error=str(exc))
            raise CarrierTransportError(
                f"JRS API request failed: {exc}",
                shipping_reference_no=reference_no,
            ) from exc

        try:
            body = response.json()
        except ValueError:
            body = None

        if not response.is_success:
            logger.error(
                "jrs_api_error",
                status_code=response.status_code,
                response_body=body if body is not None else response.text,
                shipping_reference_no=reference_no,
            )
            if response.is_server_error or body is None:
                raise CarrierTransportError(
                    f"JRS API request failed with status {response.status_code}",
                    response_body=body if body is not None else response.text,
                    shipping_reference_no=reference_no,
                )
            raise CarrierBusinessError(
                "JRS API request failed",
                response_body=body,
                shipping_reference_no=reference_no,
            )

        if body is None:
            raise CarrierTransportError(
                "JRS API returned an unreadable response",
                response_body=response.text,
                shipping_reference_no=reference_no,
            )
        if _explicit_failure(body):
            logger.error("jrs_api_rejected", response_body=body, shipping_reference_no=reference_no)
            raise CarrierBusinessError(
                "JRS API rejected the shipping request",
                response_body=body,
                shipping_reference_no=reference_no,
            )

        entity = (body.get("ShippingRequestEntityDto") if isinstance(body, dict) else None) or {}
        tracking_id = entity.get("TrackingId")
        total_amount = _float_or_none(entity.get("TotalShippingAmount"))
        if not tracking_id:
            logger.warning("jrs_tracking_id_missing", shipping_reference_no=reference_no)
        logger.info(
            "jrs_api_success",
            shipping_reference_no=reference_no,
            tracking_id=tracking_id,
            total_shipping_amount=total_amount,
        )
        return CarrierResult(
            tracking_id=tracking_id,
            total_shipping_amount=total_amount,
            response=body if isinstance(body, dict) else {"response": body},
        )
