"""Notary fee installments"""

from typing import Optional

from payment_flow.config import settings
from payment_flow.domain.annuity import price_installment
from payment_flow.domain.models import NotaryPaymentMethod

CREDIT_CARD_INSTALLMENTS = range(1, 13)
BANK_SLIP_INSTALLMENTS = (36, 40)


def notary_fee_with_participants(base_fee: float, participants: int) -> float:
    """Base fee plus a fixed surcharge for every financing participant after the first"""
    if base_fee <= 0:
        return 0.0
    extra = max(0, participants - 1) * settings.notary_participant_surcharge
    return base_fee + extra


def notary_installment(
    total: Optional[float],
    installments: Optional[int],
    method: Optional[NotaryPaymentMethod],
) -> Optional[float]:
    """
    Installment value for the notary fees.

    Credit card splits the fees evenly; bank slip is a price-table installment
    at ``settings.notary_bank_slip_rate`` per month.
    """
    if not total or not installments or method is None:
        return None

    if method == NotaryPaymentMethod.CREDIT_CARD:
        return total / installments
    return price_installment(total, installments, settings.notary_bank_slip_rate)
