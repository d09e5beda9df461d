"""
Payment gateway clients.

The booking engine talks to the gateway through ``PaymentGateway``.
``PayMongoGateway`` is the production backend; ``get_gateway`` builds
whichever backend ``settings.BOOKINGS["PAYMENT_GATEWAY"]`` names.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional

import httpx
from django.conf import settings
from django.utils.module_loading import import_string

from . import errors

logger = logging.getLogger(__name__)


@dataclass
class LineItem:
    name: str
    amount: Decimal
    currency: str = "PHP"
    quantity: int = 1
    description: str = ""

    @property
    def amount_minor(self):
        # centavos
        return int((self.amount * 100).to_integral_value())


@dataclass(frozen=True)
class CheckoutSession:
    session_id: str
    checkout_url: str


@dataclass(frozen=True)
class PaymentState:
    payment_id: str
    status: str


@dataclass
class SessionState:
    status: str
    payments: List[PaymentState] = field(default_factory=list)

    def has_payment(self, status):
        return any(p.status == status for p in self.payments)

    @property
    def is_paid(self):
        return self.has_payment("paid")

    @property
    def is_failed(self):
        return self.has_payment("failed") or self.status == "expired"


class PaymentGateway(ABC):
    """Interface every gateway backend implements."""

    @abstractmethod
    def create_checkout_session(
        self,
        line_items: List[LineItem],
        success_url: str,
        cancel_url: str,
        metadata: Dict[str, str],
        description: str = "",
        billing: Optional[Dict[str, str]] = None,
    ) -> CheckoutSession:
        """Open a hosted checkout and return where to send the guest."""

    @abstractmethod
    def get_session(self, session_id: str) -> SessionState:
        """Current session status and the payments made against it."""


class PayMongoGateway(PaymentGateway):
    payment_method_types = ["qrph"]

    def __init__(self, secret_key="", base_url="https://api.paymongo.com/v1", timeout=10.0, transport=None):
        self.secret_key = secret_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    def _client(self):
        return httpx.Client(
            base_url=self.base_url,
            auth=(self.secret_key, ""),
            headers={"Content-Type": "application/json", "Accept": "application/json"},
            timeout=self.timeout,
            transport=self.transport,
        )

    def _request(self, method, path, **kwargs) -> Dict[str, Any]:
        try:
            with self._client() as client:
                response = client.request(method, path, **kwargs)
                response.raise_for_status()
                return response.json()
        except httpx.TimeoutException as exc:
            logger.error("PayMongo %s %s timed out after %ss", method, path, self.timeout)
            raise errors.ExternalServiceError("Payment service timed out.") from exc
        except httpx.HTTPStatusError as exc:
            logger.error("PayMongo %s %s failed: %s %s", method, path,
                         exc.response.status_code, exc.response.text[:500])
            raise errors.ExternalServiceError() from exc
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("PayMongo %s %s failed: %s", method, path, exc)
            raise errors.ExternalServiceError() from exc

    def create_checkout_session(self, line_items, success_url, cancel_url, metadata,
                                description="", billing=None):
        attributes = {
            "send_email_receipt": True,
            "show_description": True,
            "show_line_items": True,
            "line_items": [
                {
                    "name": item.name,
                    "amount": item.amount_minor,
                    "currency": item.currency,
                    "description": item.description,
                    "quantity": item.quantity,
                }
                for item in line_items
            ],
            "payment_method_types": self.payment_method_types,
            "description": description,
            "success_url": success_url,
            "cancel_url": cancel_url,
            "metadata": metadata,
        }
        if billing:
            attributes["billing"] = billing

        body = self._request("POST", "/checkout_sessions", json={"data": {"attributes": attributes}})
        data = body.get("data") or {}
        try:
            session = CheckoutSession(session_id=data["id"], checkout_url=data["attributes"]["checkout_url"])
        except (KeyError, TypeError) as exc:
            raise errors.ExternalServiceError("Malformed checkout session response.") from exc
        logger.info("PayMongo checkout session %s created", session.session_id)
        return session

    def get_session(self, session_id):
        body = self._request("GET", f"/checkout_sessions/{session_id}")
        attributes = (body.get("data") or {}).get("attributes") or {}
        payments = [
            PaymentState(payment_id=p.get("id", ""), status=(p.get("attributes") or {}).get("status", ""))
            for p in attributes.get("payments") or []
        ]
        return SessionState(status=attributes.get("status", ""), payments=payments)


def get_gateway():
    config = getattr(settings, "BOOKINGS", {}).get("PAYMENT_GATEWAY", {})
    backend = config.get("BACKEND", "bookings.payments.PayMongoGateway")
    try:
        gateway_class = import_string(backend)
    except ImportError as exc:
        raise errors.ConfigurationError(f"Unknown payment gateway backend {backend!r}.") from exc
    return gateway_class(**config.get("OPTIONS", {}))
