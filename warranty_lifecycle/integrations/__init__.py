"""
Integrations Module
===================
External service interfaces outside the warranty lookup core.
"""

from .billing import (
    BillingGateway,
    InvoiceUnavailable,
    UnavailableBillingGateway,
    UpcomingInvoice,
)

__all__ = ["BillingGateway", "InvoiceUnavailable", "UnavailableBillingGateway", "UpcomingInvoice"]
