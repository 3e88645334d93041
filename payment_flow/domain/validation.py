"""Payment reconciliation and business-rule checks"""

import logging
from collections import Counter
from typing import Iterable, List, Optional, Sequence

from payment_flow.config import settings
from payment_flow.domain.models import (
    STAGED_SIGNALS,
    ConditionType,
    PaymentEntry,
    PaymentPlanRequest,
    PaymentType,
    PaymentValidation,
    SignalCampaign,
)

RECONCILIATION_TOLERANCE = 0.01


def is_special_enterprise(enterprise_name: str) -> bool:
    return any(name in enterprise_name for name in settings.special_enterprises)


def pro_soluto_limit(request: PaymentPlanRequest) -> float:
    """Maximum share of the sale value the deferred balance may reach"""
    if request.condition_type == ConditionType.ESPECIAL or is_special_enterprise(request.enterprise_name):
        return settings.pro_soluto_limit_special
    return settings.pro_soluto_limit_standard


def max_installments(request: PaymentPlanRequest) -> int:
    """
    Installment ceiling per condition:
    - especial: 66
    - padrao at a special enterprise: 60
    - padrao: 52
    """
    if request.condition_type == ConditionType.ESPECIAL:
        return settings.max_installments_especial
    if is_special_enterprise(request.enterprise_name):
        return settings.max_installments_special_enterprise
    return settings.max_installments_standard


def minimum_signal(effective_sale_value: float) -> float:
    return settings.min_signal_percent * effective_sale_value


def structural_errors(payments: Iterable[PaymentEntry]) -> List[str]:
    """
    Shape problems in the entry list:
    - more than one entry of the same type
    - staged signals out of order (sinal2 needs sinal1, sinal3 needs both)
    - negative values
    """
    payments = list(payments)
    errors = []

    counts = Counter(p.type for p in payments)
    for payment_type, count in counts.items():
        if count > 1:
            errors.append(f"Pagamento '{payment_type.value}' informado {count} vezes.")

    for position, signal in enumerate(STAGED_SIGNALS):
        if signal in counts:
            missing = [s.value for s in STAGED_SIGNALS[:position] if s not in counts]
            if missing:
                errors.append(f"'{signal.value}' exige {', '.join(missing)}.")

    for p in payments:
        if p.value < 0:
            errors.append(f"Valor negativo em '{p.type.value}'.")

    return errors


def validate_payments(
    payments: Sequence[PaymentEntry],
    appraisal_value: float,
    sale_value: float,
    campaign: Optional[SignalCampaign] = None,
) -> PaymentValidation:
    """
    Reconcile the sum of all buckets against ``max(appraisal, sale - discount)``.

    Business rules are checked in a fixed order and each failing rule
    overwrites ``business_logic_violation``, so the last failure is the one
    reported there. ``violations`` keeps every failure in check order.
    """
    campaign = campaign or SignalCampaign()
    by_type = {p.type: p for p in payments}

    discount = by_type[PaymentType.DESCONTO].value if PaymentType.DESCONTO in by_type else 0.0
    effective_sale_value = sale_value - discount
    expected = max(appraisal_value, effective_sale_value)
    actual = sum(p.value for p in payments)
    difference = expected - actual
    is_valid = abs(difference) < RECONCILIATION_TOLERANCE

    violations = structural_errors(payments)

    signal = by_type[PaymentType.SINAL_ATO].value if PaymentType.SINAL_ATO in by_type else 0.0
    min_signal = minimum_signal(effective_sale_value)

    if signal < min_signal:
        violations.append(
            f"Sinal Ato ({signal:.2f}) abaixo do mínimo de {settings.min_signal_percent:.1%} ({min_signal:.2f})."
        )

    if PaymentType.BONUS_CAMPANHA in by_type:
        if not campaign.active:
            violations.append("Bônus de Campanha informado sem campanha de sinal ativa.")
        elif signal <= min_signal:
            violations.append("Bônus de Campanha exige Sinal Ato acima do mínimo.")

    business_logic_violation = violations[-1] if violations else None

    if len(violations) > 1:
        logging.warning(
            "Multiple business-rule violations, reporting the last one",
            extra={"step": "validate_payments", "violations": violations},
        )

    return PaymentValidation(
        is_valid=is_valid,
        difference=difference,
        expected=expected,
        actual=actual,
        business_logic_violation=business_logic_violation,
        violations=tuple(violations),
    )
