"""Minimum-condition allocation among signal, deferred balance and bonus buckets"""

import logging
from datetime import date
from typing import List, Optional

from payment_flow.config import settings
from payment_flow.domain.affordability import max_pro_soluto_by_income
from payment_flow.domain.entries import locked_date, pro_soluto_start_date
from payment_flow.domain.insurance import ResultCache, calculate_construction_insurance
from payment_flow.domain.models import (
    ALLOCATED_TYPES,
    AllocationResult,
    PaymentEntry,
    PaymentPlanRequest,
    PaymentType,
)
from payment_flow.domain.rates import correction_factor
from payment_flow.domain.validation import RECONCILIATION_TOLERANCE, minimum_signal, pro_soluto_limit


def _allocation_limit(request: PaymentPlanRequest) -> float:
    """Pro-soluto cap used when allocating, kept strictly below the validation cap"""
    return pro_soluto_limit(request) - settings.pro_soluto_allocation_margin


def _pro_soluto_cap_by_percent(request: PaymentPlanRequest, payments: List[PaymentEntry], today: date) -> float:
    """
    Largest pro-soluto whose grace-corrected value stays under the percentage cap.

    The cap applies to the corrected balance, so the percentage of the
    effective sale value is divided back by the correction factor.
    """
    cap = _allocation_limit(request) * request.effective_sale_value
    if request.delivery_date is None:
        return max(0.0, cap)
    return max(0.0, cap / correction_factor(payments, request.delivery_date, today))


def _bonus_entries(bonus_adimplencia: float, bonus_date: date) -> List[PaymentEntry]:
    if bonus_adimplencia <= 0:
        return []
    return [PaymentEntry(type=PaymentType.BONUS_ADIMPLENCIA, value=bonus_adimplencia, date=bonus_date)]


def suggest_pro_soluto(request: PaymentPlanRequest, today: Optional[date] = None) -> float:
    """
    Initial value offered when a pro-soluto entry is added by hand.

    Fills whatever the other entries and the compliance bonus leave open,
    clipped to the percentage cap.
    """
    today = today or date.today()
    others = sum(
        p.value
        for p in request.payments
        if p.type not in (PaymentType.PRO_SOLUTO, PaymentType.BONUS_ADIMPLENCIA, PaymentType.BONUS_CAMPANHA)
    )
    open_amount = max(0.0, request.calculation_target - others - request.value_of(PaymentType.BONUS_ADIMPLENCIA))
    return min(open_amount, _pro_soluto_cap_by_percent(request, list(request.payments), today))


def apply_minimum_condition(
    request: PaymentPlanRequest,
    today: Optional[date] = None,
    insurance_cache: Optional[ResultCache] = None,
) -> AllocationResult:
    """
    Rebuild sinalAto, proSoluto, bonusCampanha and bonusAdimplencia from scratch.

    Steps:
    1. Compliance bonus = appraisal value above the sale value
    2. remaining = target - fixed entries - compliance bonus; nothing to allocate if <= 0
    3. proSoluto = min(percentage cap, income cap, remaining)
    4. sinalAto takes the rest, clamped up to the minimum signal
    5. With an active signal campaign, the signal above its minimum becomes
       bonusCampanha up to the campaign cap; the overflow goes to proSoluto
       while it fits its caps, then back to sinalAto
    6. Any residual difference is absorbed by proSoluto, sinalAto,
       bonusCampanha, then bonusAdimplencia, in that order

    Never raises; buckets are floored at zero. When the fixed entries plus
    the compliance bonus already exceed the target, nothing is allocated and
    the surplus is left in place; a warning reports it.
    """
    today = today or date.today()

    fixed = [p for p in request.payments if p.type not in ALLOCATED_TYPES]
    fixed_sum = sum(p.value for p in fixed)
    target = request.calculation_target
    effective_sale_value = request.effective_sale_value

    bonus_adimplencia = max(0.0, request.appraisal_value - request.sale_value)
    remaining = target - fixed_sum - bonus_adimplencia

    bonus_date = locked_date(request.delivery_date, today)

    if remaining <= 0:
        if remaining < -RECONCILIATION_TOLERANCE:
            logging.warning(
                "Fixed entries exceed the calculation target",
                extra={"step": "minimum_condition", "target": target, "surplus": -remaining},
            )
        else:
            logging.info(
                "Target already met by fixed entries",
                extra={"step": "minimum_condition", "target": target, "remaining": remaining},
            )
        return AllocationResult(
            payments=tuple(fixed + _bonus_entries(bonus_adimplencia, bonus_date)),
            sinal_ato=0.0,
            pro_soluto=0.0,
            bonus_campanha=0.0,
            bonus_adimplencia=bonus_adimplencia,
            cap_by_percent=0.0,
            cap_by_income=0.0,
            income_solver_converged=True,
        )

    # 3. Deferred balance under both caps
    cap_by_percent = _pro_soluto_cap_by_percent(request, fixed, today)
    insurance = calculate_construction_insurance(
        request.construction_start_date,
        request.delivery_date,
        request.simulation_installment_value,
        today=today,
        cache=insurance_cache,
    )
    income_result = max_pro_soluto_by_income(request, fixed, insurance, remaining, today)
    cap_by_income = income_result.value
    deferred_cap = min(cap_by_percent, cap_by_income)

    pro_soluto = max(0.0, min(deferred_cap, remaining))

    # 4. Signal takes the rest, never below its minimum
    min_signal = minimum_signal(effective_sale_value)
    sinal_ato = remaining - pro_soluto
    if sinal_ato < min_signal:
        sinal_ato = min(min_signal, remaining)
        pro_soluto = max(0.0, remaining - sinal_ato)
        sinal_ato = remaining - pro_soluto

    # 5. Signal campaign
    bonus_campanha = 0.0
    campaign = request.campaign
    if campaign.active and campaign.limit_percent is not None and campaign.limit_percent >= 0 and sinal_ato > min_signal:
        excess = sinal_ato - min_signal
        bonus_cap = effective_sale_value * (campaign.limit_percent / 100)
        bonus_campanha = min(excess, bonus_cap)
        sinal_ato = min_signal

        overflow = excess - bonus_campanha
        pro_soluto += overflow
        if pro_soluto > deferred_cap:
            sinal_ato += pro_soluto - deferred_cap
            pro_soluto = max(0.0, deferred_cap)

    # 6. Reconciliation
    reconciled_into = None
    total = sinal_ato + pro_soluto + bonus_campanha + bonus_adimplencia + fixed_sum
    difference = target - total

    if abs(difference) > RECONCILIATION_TOLERANCE:
        if 0 <= pro_soluto + difference <= max(deferred_cap, pro_soluto):
            pro_soluto += difference
            reconciled_into = PaymentType.PRO_SOLUTO
        elif sinal_ato + difference >= min_signal:
            sinal_ato += difference
            reconciled_into = PaymentType.SINAL_ATO
        elif bonus_campanha > 0 and bonus_campanha + difference >= 0:
            bonus_campanha += difference
            reconciled_into = PaymentType.BONUS_CAMPANHA
        else:
            bonus_adimplencia += difference
            reconciled_into = PaymentType.BONUS_ADIMPLENCIA

        logging.warning(
            "Payment flow discrepancy absorbed",
            extra={"step": "minimum_condition", "difference": difference, "bucket": reconciled_into.value},
        )

    payments = fixed + _bonus_entries(bonus_adimplencia, bonus_date)
    if sinal_ato > 0:
        payments.append(PaymentEntry(type=PaymentType.SINAL_ATO, value=sinal_ato, date=today))
    if bonus_campanha > 0:
        payments.append(PaymentEntry(type=PaymentType.BONUS_CAMPANHA, value=bonus_campanha, date=today))
    if pro_soluto > 0:
        payments.append(
            PaymentEntry(
                type=PaymentType.PRO_SOLUTO,
                value=pro_soluto,
                date=pro_soluto_start_date(fixed, today),
            )
        )

    logging.info(
        "Minimum condition applied",
        extra={
            "step": "minimum_condition",
            "sinal_ato": sinal_ato,
            "pro_soluto": pro_soluto,
            "bonus_campanha": bonus_campanha,
            "bonus_adimplencia": bonus_adimplencia,
            "cap_by_percent": cap_by_percent,
            "cap_by_income": cap_by_income,
        },
    )

    return AllocationResult(
        payments=tuple(payments),
        sinal_ato=sinal_ato,
        pro_soluto=pro_soluto,
        bonus_campanha=bonus_campanha,
        bonus_adimplencia=bonus_adimplencia,
        cap_by_percent=cap_by_percent,
        cap_by_income=cap_by_income,
        income_solver_converged=income_result.converged,
        reconciled_into=reconciled_into,
    )
