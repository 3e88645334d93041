"""Pytest fixtures for testing"""

import pytest
from datetime import date
from typing import Callable

from payment_flow.domain.models import AmortizationKind, PaymentPlanRequest
from payment_flow.infrastructure.cache import TTLCache


# Test modules pin today to 2026-01-15
DELIVERY = date(2026, 7, 15)  # 6 months out
CONSTRUCTION_START = date(2025, 1, 15)  # 18 months before delivery


@pytest.fixture
def insurance_cache() -> TTLCache:
    """Fresh cache per test so no state leaks between tests"""
    return TTLCache()


@pytest.fixture
def make_request() -> Callable[..., PaymentPlanRequest]:
    """Factory for requests on a 500k unit with sensible defaults"""

    def _make(**overrides) -> PaymentPlanRequest:
        fields = dict(
            appraisal_value=500_000.0,
            sale_value=480_000.0,
            gross_income=20_000.0,
            simulation_installment_value=2_000.0,
            installments=48,
            delivery_date=DELIVERY,
            construction_start_date=CONSTRUCTION_START,
            payments=(),
            amortization=AmortizationKind.LINEAR,
        )
        fields.update(overrides)
        return PaymentPlanRequest(**fields)

    return _make
