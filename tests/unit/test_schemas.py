"""Unit tests for request parsing and response serialization"""

import pytest
from datetime import date

from payment_flow.domain.exceptions import InvalidPaymentPlanError
from payment_flow.domain.models import AmortizationKind, NotaryPaymentMethod, PaymentType
from payment_flow.schemas import parse_request


def payload(**overrides):
    body = {
        "appraisalValue": 500000,
        "saleValue": 480000,
        "grossIncome": 20000,
        "simulationInstallmentValue": 2000,
        "installments": 48,
        "deliveryDate": "2026-07-15",
        "constructionStartDate": "2025-01-15",
        "payments": [
            {"type": "sinalAto", "value": 30000, "date": "2026-01-15"},
            {"type": "financiamento", "value": 450000, "date": "2026-07-15"},
        ],
    }
    body.update(overrides)
    return body


def test_parse_camel_case_payload():
    request = parse_request(payload(amortization="stepped", sinalCampaignActive=True, sinalCampaignLimitPercent=5))

    assert request.appraisal_value == 500000
    assert request.delivery_date == date(2026, 7, 15)
    assert request.amortization == AmortizationKind.STEPPED
    assert request.payments[0].type == PaymentType.SINAL_ATO
    assert request.campaign.active
    assert request.campaign.limit_percent == 5


def test_parse_defaults():
    request = parse_request(payload(installments=None))

    assert request.installments == 0
    assert request.financing_participants == 1
    assert request.amortization == AmortizationKind.LINEAR
    assert not request.apply_minimum_condition


def test_parse_rejects_unknown_payment_type():
    with pytest.raises(InvalidPaymentPlanError) as exc_info:
        parse_request(payload(payments=[{"type": "cashback", "value": 1, "date": "2026-01-15"}]))

    assert exc_info.value.errors


def test_parse_rejects_negative_values():
    with pytest.raises(InvalidPaymentPlanError):
        parse_request(payload(payments=[{"type": "sinalAto", "value": -1, "date": "2026-01-15"}]))


def test_parse_rejects_out_of_order_signals():
    with pytest.raises(InvalidPaymentPlanError) as exc_info:
        parse_request(payload(payments=[{"type": "sinal2", "value": 1000, "date": "2026-02-01"}]))

    assert exc_info.value.errors == ["'sinal2' exige sinal1."]


def test_parse_rejects_duplicate_entries():
    entries = [{"type": "fgts", "value": 1000, "date": "2026-02-01"}] * 2
    with pytest.raises(InvalidPaymentPlanError):
        parse_request(payload(payments=entries))


@pytest.mark.parametrize(
    "method,installments,valid",
    [
        ("creditCard", 1, True),
        ("creditCard", 12, True),
        ("creditCard", 13, False),
        ("bankSlip", 36, True),
        ("bankSlip", 40, True),
        ("bankSlip", 12, False),
    ],
)
def test_notary_installment_rules(method, installments, valid):
    body = payload(notaryFees=3000, notaryPaymentMethod=method, notaryInstallments=installments)

    if valid:
        request = parse_request(body)
        assert request.notary_payment_method == NotaryPaymentMethod(method)
    else:
        with pytest.raises(InvalidPaymentPlanError):
            parse_request(body)


def test_parse_rejects_too_many_participants():
    with pytest.raises(InvalidPaymentPlanError):
        parse_request(payload(financingParticipants=5))
