"""Bounded iterative solvers: implied periodic rate and maximum affordable balance"""

import logging
import math
from typing import Callable, Sequence

from payment_flow.config import settings
from payment_flow.domain.models import SolverResult


def implied_rate(periods: int, payment: float, present_value: float) -> SolverResult:
    """
    Periodic rate ``r`` reconciling principal, installment and term.

    Newton-Raphson on:

        f(r) = pv * (1 + r)^n - pmt * ((1 + r)^n - 1) / r

    starting from ``settings.newton_initial_rate``. When powers overflow the
    estimate is halved and the iteration continues; when the derivative
    vanishes the last estimate is returned. ``converged`` is False whenever
    the tolerance was not reached, so callers can sanity-check the value.
    """
    if periods <= 0 or payment <= 0 or present_value <= 0:
        return SolverResult(value=0.0, converged=True, iterations=0)

    rate = settings.newton_initial_rate
    iterations = 0

    for iterations in range(1, settings.newton_max_iterations + 1):
        try:
            growth = (1 + rate) ** periods
            growth_deriv = periods * (1 + rate) ** (periods - 1)
        except OverflowError:
            rate /= 2
            continue

        if not (math.isfinite(growth) and math.isfinite(growth_deriv)):
            rate /= 2
            continue

        try:
            f = present_value * growth - payment * (growth - 1) / rate
            f_deriv = present_value * growth_deriv - payment * (growth_deriv * rate - (growth - 1)) / (rate * rate)
        except ZeroDivisionError:
            break

        if abs(f_deriv) < 1e-12:
            break

        new_rate = rate - f / f_deriv

        if abs(new_rate - rate) < settings.newton_tolerance:
            return SolverResult(value=new_rate, converged=True, iterations=iterations)

        rate = new_rate

    logging.warning(
        "Implied rate did not converge",
        extra={"step": "implied_rate", "periods": periods, "rate": rate, "iterations": iterations},
    )
    return SolverResult(value=rate, converged=False, iterations=iterations)


def max_affordable_balance(
    monthly_installments: Callable[[float], Sequence[float]],
    monthly_caps: Sequence[float],
    upper_bound: float,
) -> SolverResult:
    """
    Largest principal whose installment stream fits under every monthly cap.

    ``monthly_installments(principal)`` returns the installment due in each
    month of the deferred term; ``monthly_caps`` holds the matching ceiling
    (income limit minus the other obligation due that month). Binary search
    over ``[0, upper_bound]`` keeps the feasible end; installments grow
    strictly with principal, so feasibility is monotone.

    Stops after ``settings.bisection_max_iterations`` halvings or once the
    interval is narrower than ``settings.bisection_tolerance``.
    """
    if upper_bound <= 0 or not monthly_caps:
        return SolverResult(value=0.0, converged=True, iterations=0)

    def fits(principal: float) -> bool:
        installments = monthly_installments(principal)
        return all(inst <= cap for inst, cap in zip(installments, monthly_caps))

    if fits(upper_bound):
        return SolverResult(value=upper_bound, converged=True, iterations=0)

    low, high = 0.0, upper_bound
    iterations = 0

    while iterations < settings.bisection_max_iterations and high - low >= settings.bisection_tolerance:
        iterations += 1
        mid = (low + high) / 2
        if fits(mid):
            low = mid
        else:
            high = mid

    converged = high - low < settings.bisection_tolerance
    if not converged:
        logging.warning(
            "Affordable balance search hit its iteration bound",
            extra={"step": "max_affordable_balance", "low": low, "high": high, "iterations": iterations},
        )

    return SolverResult(value=low, converged=converged, iterations=iterations)
