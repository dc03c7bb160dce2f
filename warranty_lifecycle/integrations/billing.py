"""
Billing Integration
===================
Interface to the subscription billing provider.

Upcoming-invoice lookups return a typed result. A gateway without a real
provider answers ``InvoiceUnavailable`` so callers can tell "billing is not
wired up" apart from "the customer has no upcoming invoice".
"""

from datetime import datetime
from typing import Optional, Protocol, Union
from pydantic import BaseModel


class UpcomingInvoice(BaseModel):
    """Next invoice for a customer."""
    customer_id: str
    amount_due: int  # minor currency units
    currency: str = "usd"
    due_date: Optional[datetime] = None


class InvoiceUnavailable(BaseModel):
    """The billing provider could not answer."""
    customer_id: str
    reason: str


InvoiceLookup = Union[UpcomingInvoice, InvoiceUnavailable, None]


class BillingGateway(Protocol):
    """Billing provider. ``None`` means the customer has no upcoming invoice."""

    async def get_upcoming_invoice(self, customer_id: str) -> InvoiceLookup:
        ...


class UnavailableBillingGateway:
    """Billing gateway used when no provider is configured."""

    def __init__(self, reason: str = "Billing provider integration is not implemented"):
        self.reason = reason

    async def get_upcoming_invoice(self, customer_id: str) -> InvoiceUnavailable:
        """Always report that invoice data is unavailable."""
        return InvoiceUnavailable(customer_id=customer_id, reason=self.reason)
