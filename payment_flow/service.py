"""Payment plan service - validated entry point with metrics and logging"""

import logging
import time
import uuid
from datetime import date
from typing import Any, Dict, Optional

from payment_flow.domain.exceptions import InvalidPaymentPlanError
from payment_flow.domain.insurance import ResultCache
from payment_flow.domain.models import PaymentPlanRequest, Results
from payment_flow.domain.plan import NotaryFeeLookup
from payment_flow.domain.plan import compute_payment_plan as build_plan
from payment_flow.infrastructure.cache import TTLCache
from payment_flow.infrastructure.observability.logging import log_calculation
from payment_flow.infrastructure.observability.metrics import (
    calculation_duration_histogram,
    minimum_condition_counter,
    record_calculation,
    solver_non_convergence_counter,
)
from payment_flow.schemas import ResultsSchema, parse_request

# Shared by every calculation in this process unless a caller injects its own
default_insurance_cache = TTLCache()


def compute_payment_plan(
    request: PaymentPlanRequest,
    today: Optional[date] = None,
    insurance_cache: Optional[ResultCache] = None,
    notary_fee_lookup: Optional[NotaryFeeLookup] = None,
    request_id: Optional[str] = None,
) -> Results:
    """
    Compute a payment plan and record its outcome.

    Flow:
    1. Run the engine (allocation, validation, amortization, insurance)
    2. Record metrics for outcome, rule violations and solver health
    3. Emit one structured log line
    """
    start_time = time.time()
    request_id = request_id or str(uuid.uuid4())
    cache = insurance_cache if insurance_cache is not None else default_insurance_cache

    with calculation_duration_histogram.time():
        results = build_plan(request, today=today, insurance_cache=cache, notary_fee_lookup=notary_fee_lookup)

    record_calculation(
        request.amortization.value,
        results.payment_validation.is_valid,
        {
            "income": results.income_error is not None,
            "pro_soluto": results.pro_soluto_error is not None,
            "installments": results.installment_error is not None,
            "payments": results.payment_validation.business_logic_violation is not None,
        },
    )

    if results.allocation is not None:
        outcome = "allocated" if results.allocation.pro_soluto or results.allocation.sinal_ato else "target_met"
        minimum_condition_counter.labels(outcome=outcome).inc()
        if not results.allocation.income_solver_converged:
            solver_non_convergence_counter.labels(solver="bisection").inc()

    if not results.average_interest_rate_converged:
        solver_non_convergence_counter.labels(solver="newton").inc()

    duration_ms = (time.time() - start_time) * 1000
    log_calculation(
        request_id,
        request.amortization.value,
        results.payment_validation.is_valid,
        results.financed_amount,
        request.apply_minimum_condition,
        duration_ms,
    )

    return results


def compute_payment_plan_from_payload(
    payload: Dict[str, Any],
    today: Optional[date] = None,
    insurance_cache: Optional[ResultCache] = None,
    notary_fee_lookup: Optional[NotaryFeeLookup] = None,
) -> Dict[str, Any]:
    """
    Validate a camelCase payload, compute the plan and return a JSON-ready dict.

    Raises:
        InvalidPaymentPlanError: payload fails schema or entry-shape validation
    """
    request_id = str(uuid.uuid4())

    try:
        request = parse_request(payload)
    except InvalidPaymentPlanError as e:
        logging.warning(f"Invalid payload: {e}", extra={"request_id": request_id, "errors": str(e.errors)})
        raise

    results = compute_payment_plan(
        request,
        today=today,
        insurance_cache=insurance_cache,
        notary_fee_lookup=notary_fee_lookup,
        request_id=request_id,
    )
    return ResultsSchema.from_domain(results).model_dump(mode="json", by_alias=True)
