"""Unit tests for the minimum-condition allocator"""

import logging

import pytest
from datetime import date

from payment_flow.domain.allocator import apply_minimum_condition, suggest_pro_soluto
from payment_flow.domain.models import (
    AmortizationKind,
    PaymentEntry,
    PaymentType,
    SignalCampaign,
)
from payment_flow.domain.validation import minimum_signal, validate_payments

TODAY = date(2026, 1, 15)
DELIVERY = date(2026, 7, 15)


def entry(payment_type: PaymentType, value: float, on: date = TODAY) -> PaymentEntry:
    return PaymentEntry(type=payment_type, value=value, date=on)


def total(payments) -> float:
    return sum(p.value for p in payments)


def test_allocation_without_entries(make_request, insurance_cache):
    """Test 500k appraisal, 480k sale and no entries"""
    request = make_request()

    result = apply_minimum_condition(request, today=TODAY, insurance_cache=insurance_cache)

    assert result.bonus_adimplencia == 20_000
    assert result.cap_by_percent == pytest.approx(0.1499 * 480_000 / 1.005)
    assert result.cap_by_income > result.cap_by_percent
    assert result.pro_soluto == pytest.approx(result.cap_by_percent)
    assert result.sinal_ato == pytest.approx(480_000 - result.cap_by_percent)
    assert result.sinal_ato >= minimum_signal(480_000)
    assert result.reconciled_into is None
    assert total(result.payments) == pytest.approx(500_000, abs=0.01)


def test_allocation_entry_order_and_dates(make_request, insurance_cache):
    result = apply_minimum_condition(make_request(), today=TODAY, insurance_cache=insurance_cache)

    assert [p.type for p in result.payments] == [
        PaymentType.BONUS_ADIMPLENCIA,
        PaymentType.SINAL_ATO,
        PaymentType.PRO_SOLUTO,
    ]
    by_type = {p.type: p for p in result.payments}
    assert by_type[PaymentType.BONUS_ADIMPLENCIA].date == DELIVERY
    assert by_type[PaymentType.SINAL_ATO].date == TODAY
    assert by_type[PaymentType.PRO_SOLUTO].date == date(2026, 2, 5)


def test_allocation_passes_validation(make_request, insurance_cache):
    request = make_request()
    result = apply_minimum_condition(request, today=TODAY, insurance_cache=insurance_cache)

    validation = validate_payments(result.payments, request.appraisal_value, request.sale_value)

    assert validation.is_valid
    assert validation.business_logic_violation is None


def test_allocation_low_income_moves_everything_to_signal(make_request, insurance_cache):
    """Test income that covers no installment leaves the deferred balance near zero"""
    request = make_request(gross_income=1_000)

    result = apply_minimum_condition(request, today=TODAY, insurance_cache=insurance_cache)

    assert result.cap_by_income < 0.01
    assert result.pro_soluto < 0.01
    assert result.sinal_ato == pytest.approx(480_000, abs=0.01)
    assert result.income_solver_converged
    assert total(result.payments) == pytest.approx(500_000, abs=0.01)


def test_allocation_clamps_signal_to_minimum(make_request, insurance_cache):
    request = make_request(
        sale_value=500_000,
        gross_income=100_000,
        payments=(entry(PaymentType.FINANCIAMENTO, 430_000, DELIVERY),),
    )

    result = apply_minimum_condition(request, today=TODAY, insurance_cache=insurance_cache)

    assert result.bonus_adimplencia == 0
    assert result.sinal_ato == pytest.approx(27_500)
    assert result.pro_soluto == pytest.approx(42_500)
    assert total(result.payments) == pytest.approx(500_000, abs=0.01)


def test_allocation_signal_campaign(make_request, insurance_cache):
    """Test the campaign bonus is capped and the overflow returns to the signal"""
    request = make_request(
        sale_value=500_000,
        gross_income=100_000,
        payments=(entry(PaymentType.FINANCIAMENTO, 300_000, DELIVERY),),
        campaign=SignalCampaign(active=True, limit_percent=2),
    )

    result = apply_minimum_condition(request, today=TODAY, insurance_cache=insurance_cache)

    assert result.bonus_campanha == pytest.approx(10_000)  # 2% of 500k
    assert result.pro_soluto == pytest.approx(result.cap_by_percent)
    assert result.sinal_ato == pytest.approx(200_000 - 10_000 - result.cap_by_percent)
    assert total(result.payments) == pytest.approx(500_000, abs=0.01)

    validation = validate_payments(result.payments, 500_000, 500_000, request.campaign)
    assert validation.violations == ()


def test_allocation_campaign_without_limit(make_request, insurance_cache):
    request = make_request(campaign=SignalCampaign(active=True, limit_percent=None))

    result = apply_minimum_condition(request, today=TODAY, insurance_cache=insurance_cache)

    assert result.bonus_campanha == 0
    assert PaymentType.BONUS_CAMPANHA not in {p.type for p in result.payments}


def test_allocation_target_already_met(make_request, insurance_cache):
    request = make_request(payments=(entry(PaymentType.FINANCIAMENTO, 490_000, DELIVERY),))

    result = apply_minimum_condition(request, today=TODAY, insurance_cache=insurance_cache)

    assert result.sinal_ato == 0
    assert result.pro_soluto == 0
    assert [p.type for p in result.payments] == [PaymentType.FINANCIAMENTO, PaymentType.BONUS_ADIMPLENCIA]
    assert result.bonus_adimplencia == 20_000


def test_allocation_replaces_allocated_entries(make_request, insurance_cache):
    """Test user-entered signal and deferred values are recomputed"""
    request = make_request(
        payments=(
            entry(PaymentType.SINAL_ATO, 1),
            entry(PaymentType.PRO_SOLUTO, 999_999),
            entry(PaymentType.FGTS, 10_000),
        )
    )

    result = apply_minimum_condition(request, today=TODAY, insurance_cache=insurance_cache)

    assert result.payments[0] == entry(PaymentType.FGTS, 10_000)
    assert sum(1 for p in result.payments if p.type == PaymentType.PRO_SOLUTO) == 1
    assert total(result.payments) == pytest.approx(500_000, abs=0.01)


def test_allocation_with_staged_signal(make_request, insurance_cache):
    sinal1 = entry(PaymentType.SINAL_1, 10_000, date(2026, 2, 10))
    request = make_request(payments=(sinal1,))

    result = apply_minimum_condition(request, today=TODAY, insurance_cache=insurance_cache)
    pro_soluto = next(p for p in result.payments if p.type == PaymentType.PRO_SOLUTO)

    assert pro_soluto.date == date(2026, 3, 5)
    assert result.cap_by_percent == pytest.approx(0.1499 * 480_000 / 1.005**2)


def test_allocation_after_delivery_locks_bonus_date(make_request, insurance_cache):
    request = make_request(delivery_date=date(2025, 10, 15), construction_start_date=date(2024, 1, 15))

    result = apply_minimum_condition(request, today=TODAY, insurance_cache=insurance_cache)
    bonus = next(p for p in result.payments if p.type == PaymentType.BONUS_ADIMPLENCIA)

    assert bonus.date == date(2026, 2, 28)


@pytest.mark.parametrize("amortization", [AmortizationKind.LINEAR, AmortizationKind.STEPPED])
@pytest.mark.parametrize("gross_income", [3_000, 8_000, 20_000, 100_000])
def test_allocation_always_reaches_target(make_request, insurance_cache, amortization, gross_income):
    request = make_request(
        gross_income=gross_income,
        amortization=amortization,
        payments=(entry(PaymentType.FINANCIAMENTO, 350_000, DELIVERY),),
    )

    result = apply_minimum_condition(request, today=TODAY, insurance_cache=insurance_cache)

    assert total(result.payments) == pytest.approx(request.calculation_target, abs=0.01)
    assert all(p.value >= 0 for p in result.payments)
    assert result.pro_soluto <= min(result.cap_by_percent, result.cap_by_income) + 0.01


def test_allocation_is_deterministic(make_request, insurance_cache):
    request = make_request()

    first = apply_minimum_condition(request, today=TODAY, insurance_cache=insurance_cache)
    second = apply_minimum_condition(request, today=TODAY)

    assert first == second


def test_suggest_pro_soluto_fills_open_amount(make_request):
    request = make_request(
        sale_value=500_000,
        payments=(entry(PaymentType.FINANCIAMENTO, 450_000), entry(PaymentType.SINAL_ATO, 30_000)),
    )
    assert suggest_pro_soluto(request, today=TODAY) == pytest.approx(20_000)


def test_suggest_pro_soluto_clipped_to_cap(make_request):
    request = make_request(sale_value=500_000, payments=(entry(PaymentType.FINANCIAMENTO, 300_000),))
    assert suggest_pro_soluto(request, today=TODAY) == pytest.approx(0.1499 * 500_000 / 1.005)


def test_allocation_warns_when_fixed_entries_exceed_target(make_request, insurance_cache, caplog):
    request = make_request(payments=(entry(PaymentType.FINANCIAMENTO, 495_000, DELIVERY),))

    with caplog.at_level(logging.WARNING):
        result = apply_minimum_condition(request, today=TODAY, insurance_cache=insurance_cache)

    assert total(result.payments) == pytest.approx(515_000)
    assert any(r.message == "Fixed entries exceed the calculation target" for r in caplog.records)
