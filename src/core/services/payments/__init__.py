"""
Payment services module for VAT payment orders.
"""

from core.services.payments.payment_order_generator import (
    Model97PaymentOrderGenerator,
    model97_reference,
)

__all__ = [
    "Model97PaymentOrderGenerator",
    "model97_reference",
]
