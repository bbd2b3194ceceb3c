"""
Payment processor clients.

`StripeGateway` talks to the Stripe REST API; `SimulatedGateway` is a
deterministic in-process stand-in used for local runs and tests. Both
deal in integer minor currency units (cents).
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, Optional
from urllib.parse import quote
import hashlib
import itertools
import logging

import httpx

from ..core.config import Settings
from ..core.exceptions import PaymentDeclined, PaymentGatewayError

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")

def to_minor_units(amount: Decimal) -> int:
    """Convert a decimal amount to integer cents."""
    return int((Decimal(amount) * 100).to_integral_value(rounding=ROUND_HALF_UP))

def from_minor_units(minor: int) -> Decimal:
    """Convert integer cents back to a two-place decimal amount."""
    return (Decimal(minor) / 100).quantize(CENT)

@dataclass(frozen=True)
class PaymentIntent:
    id: str
    client_secret: str
    amount: int
    currency: str
    status: str
    appointment_id: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == "succeeded"

class PaymentGateway(ABC):

    @abstractmethod
    async def create_intent(self, appointment_id: str, amount: int, currency: str) -> PaymentIntent:
        """Open a payment intent for `amount` minor units."""

    @abstractmethod
    async def confirm_intent(self, appointment_id: str, payment_intent_id: str) -> PaymentIntent:
        """Check that the intent belongs to the appointment and has succeeded.

        Raises PaymentDeclined otherwise.
        """

class StripeGateway(PaymentGateway):

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.stripe.com",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout
        self._transport = transport

    async def create_intent(self, appointment_id: str, amount: int, currency: str) -> PaymentIntent:
        body = await self._request("POST", "/v1/payment_intents", data={
            "amount": str(amount),
            "currency": currency,
            "metadata[appointment_id]": appointment_id,
            "automatic_payment_methods[enabled]": "true",
        })
        return self._to_intent(body)

    async def confirm_intent(self, appointment_id: str, payment_intent_id: str) -> PaymentIntent:
        body = await self._request("GET", f"/v1/payment_intents/{quote(payment_intent_id, safe='')}")
        intent = self._to_intent(body)

        if intent.appointment_id != appointment_id:
            raise PaymentDeclined("Payment intent does not belong to this appointment")
        if not intent.succeeded:
            raise PaymentDeclined(f"Payment has not succeeded (status: {intent.status})")
        return intent

    async def _request(self, method: str, path: str, data: Optional[Dict[str, str]] = None) -> dict:
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                auth=(self.api_key, ""),
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                response = await client.request(method, path, data=data)
        except httpx.HTTPError as e:
            logger.error(f"Stripe request {method} {path} failed: {str(e)}")
            raise PaymentGatewayError() from e

        if response.status_code != 200:
            logger.error(f"Stripe request {method} {path} returned {response.status_code}: {response.text}")
            if response.status_code == 404:
                raise PaymentDeclined("Unknown payment intent")
            raise PaymentGatewayError()

        return response.json()

    @staticmethod
    def _to_intent(body: dict) -> PaymentIntent:
        return PaymentIntent(
            id=body["id"],
            client_secret=body.get("client_secret") or "",
            amount=int(body["amount"]),
            currency=body["currency"],
            status=body["status"],
            appointment_id=(body.get("metadata") or {}).get("appointment_id"),
        )

class SimulatedGateway(PaymentGateway):
    """Deterministic processor: sequential ids, succeeds unless told to decline."""

    def __init__(self, declined: Iterable[str] = ()):
        self.declined = set(declined)
        self._counter = itertools.count(1)
        self._intents: Dict[str, PaymentIntent] = {}

    async def create_intent(self, appointment_id: str, amount: int, currency: str) -> PaymentIntent:
        intent_id = f"pi_sim_{next(self._counter):08d}"
        token = hashlib.sha256(intent_id.encode()).hexdigest()[:16]
        intent = PaymentIntent(
            id=intent_id,
            client_secret=f"{intent_id}_secret_{token}",
            amount=amount,
            currency=currency,
            status="requires_payment_method",
            appointment_id=appointment_id,
        )
        self._intents[intent_id] = intent
        return intent

    async def confirm_intent(self, appointment_id: str, payment_intent_id: str) -> PaymentIntent:
        intent = self._intents.get(payment_intent_id)
        if intent is None or intent.appointment_id != appointment_id:
            raise PaymentDeclined("Unknown payment intent")
        if payment_intent_id in self.declined:
            raise PaymentDeclined("Your card was declined")

        intent = replace(intent, status="succeeded")
        self._intents[payment_intent_id] = intent
        return intent

def build_gateway(settings: Settings) -> PaymentGateway:
    """Create the gateway selected by PAYMENT_GATEWAY."""
    if settings.PAYMENT_GATEWAY.lower() == "stripe":
        if not settings.STRIPE_SECRET_KEY:
            raise ValueError("STRIPE_SECRET_KEY must be set to use the Stripe gateway")
        return StripeGateway(settings.STRIPE_SECRET_KEY, base_url=settings.STRIPE_API_BASE)

    if settings.PAYMENT_GATEWAY.lower() != "simulated":
        raise ValueError(f"Unknown payment gateway: {settings.PAYMENT_GATEWAY}")

    logger.info("Using simulated payment gateway")
    return SimulatedGateway()
