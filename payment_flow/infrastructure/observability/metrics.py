"""Prometheus metrics for monitoring plan calculations, solver health and cache efficiency"""

from prometheus_client import Counter, Histogram

# Calculation metrics
calculation_counter = Counter(
    "payment_flow_calculation_total",
    "Total payment plans computed",
    ["amortization", "outcome"],  # linear | stepped, valid | invalid
)

minimum_condition_counter = Counter(
    "payment_flow_minimum_condition_total",
    "Minimum-condition allocations performed",
    ["outcome"],  # allocated | target_met
)

rule_violation_counter = Counter(
    "payment_flow_rule_violation_total",
    "Business-rule violations reported on computed plans",
    ["rule"],  # income | pro_soluto | installments | payments
)

# Solver metrics
solver_non_convergence_counter = Counter(
    "payment_flow_solver_non_convergence_total",
    "Iterative solver runs that hit their iteration bound",
    ["solver"],  # bisection | newton
)

# Cache metrics
insurance_cache_counter = Counter(
    "payment_flow_insurance_cache_total",
    "Construction insurance cache lookups",
    ["result"],  # hit | miss | expired
)

# Latency
calculation_duration_histogram = Histogram(
    "payment_flow_calculation_duration_seconds",
    "Time spent computing a payment plan",
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0],
)


def record_calculation(amortization: str, is_valid: bool, violations: dict[str, bool]) -> None:
    """Record one computed plan and any rule violations it carries"""
    outcome = "valid" if is_valid else "invalid"
    calculation_counter.labels(amortization=amortization, outcome=outcome).inc()

    for rule, violated in violations.items():
        if violated:
            rule_violation_counter.labels(rule=rule).inc()
