"""
Stripe payment gateway client.

Creates payment intents through Stripe's REST API. The client secret is
handed back to the browser, which completes the card payment directly
with Stripe.
"""

import logging
from typing import Optional
from urllib.parse import urljoin

import httpx

from courier_backend.app.core.config import settings
from courier_backend.app.core.exceptions import InvalidAmountError, UpstreamFailureError
from courier_backend.app.core.reliability import CircuitBreaker, CircuitOpenError

logger = logging.getLogger(__name__)


class StripePaymentGateway:
    def __init__(
        self,
        secret_key: str,
        api_url: str = "https://api.stripe.com",
        currency: str = "bdt",
        timeout: float = 10.0,
        circuit_breaker: Optional[CircuitBreaker] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.secret_key = secret_key
        self.intents_url = urljoin(api_url, "/v1/payment_intents")
        self.currency = currency
        self.timeout = timeout
        self.circuit_breaker = circuit_breaker or CircuitBreaker()
        # Injected in tests (httpx.MockTransport)
        self.transport = transport

    async def create_payment_intent(self, amount_minor_units: int) -> str:
        """
        Create a card payment intent and return its client secret.

        Raises:
            InvalidAmountError: amount is not a positive integer
            UpstreamFailureError: Stripe unreachable, erroring, or circuit open
        """
        if not isinstance(amount_minor_units, int) or isinstance(amount_minor_units, bool) or amount_minor_units <= 0:
            raise InvalidAmountError()

        try:
            response = await self.circuit_breaker.call(self._post_intent, amount_minor_units)
        except CircuitOpenError:
            logger.error("Stripe circuit open, refusing payment intent")
            raise UpstreamFailureError("Payment provider temporarily unavailable")
        except (httpx.RequestError, httpx.HTTPStatusError) as e:
            raise UpstreamFailureError("Failed to create payment intent") from e

        if response.is_client_error:
            # Rejected request, not an outage: the breaker never sees it
            logger.warning(f"Stripe rejected payment intent ({response.status_code}): {response.text}")
            if response.status_code in (400, 402):
                raise InvalidAmountError()
            raise UpstreamFailureError("Failed to create payment intent")

        intent = response.json()
        client_secret = intent.get("client_secret")
        if not client_secret:
            logger.error("Stripe response without client_secret: %s", intent.get("id"))
            raise UpstreamFailureError("Failed to create payment intent")
        return client_secret

    async def _post_intent(self, amount_minor_units: int) -> httpx.Response:
        """
        POST the intent. Network errors and 5xx raise (and count against
        the breaker); 4xx responses are returned for the caller to map.
        """
        payload = {
            "amount": str(amount_minor_units),
            "currency": self.currency,
            "payment_method_types[]": "card",
        }
        headers = {"Authorization": f"Bearer {self.secret_key}"}
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                response = await client.post(self.intents_url, data=payload, headers=headers)
                if response.is_server_error:
                    response.raise_for_status()
                return response
            except (httpx.RequestError, httpx.HTTPStatusError) as e:
                # Log detailed error information before re-raising
                resp_text = e.response.text if isinstance(e, httpx.HTTPStatusError) else str(e)
                logger.error(f"Stripe create payment intent error: {resp_text}")
                raise


payment_gateway = StripePaymentGateway(
    secret_key=settings.stripe_secret_key,
    api_url=settings.stripe_api_url,
    currency=settings.payment_currency,
    timeout=settings.payment_gateway_timeout_seconds,
    circuit_breaker=CircuitBreaker(
        failure_threshold=settings.payment_circuit_failure_threshold,
        reset_timeout=settings.payment_circuit_reset_seconds,
    ),
)


def get_payment_gateway() -> StripePaymentGateway:
    """FastAPI dependency returning the configured gateway."""
    return payment_gateway
