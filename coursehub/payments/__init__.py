"""Payment ledger.

Payments start PENDING at the course price and move exactly once to
COMPLETED, FAILED or REFUNDED. Completion enrolls the payer.
"""

from coursehub.payments.models import PAYMENTS_TABLES_CQL, Payment, PaymentStatus


__all__ = ["PAYMENTS_TABLES_CQL", "Payment", "PaymentStatus"]
