"""Domain models - pure Python dataclasses representing payment-plan entities"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Mapping, Optional, Tuple, Union


class PaymentType(str, Enum):
    """Payment buckets that can appear in a payment plan"""

    SINAL_ATO = "sinalAto"
    SINAL_1 = "sinal1"
    SINAL_2 = "sinal2"
    SINAL_3 = "sinal3"
    PRO_SOLUTO = "proSoluto"
    BONUS_ADIMPLENCIA = "bonusAdimplencia"
    DESCONTO = "desconto"
    BONUS_CAMPANHA = "bonusCampanha"
    FGTS = "fgts"
    FINANCIAMENTO = "financiamento"


# Staged signals, in unlocking order
STAGED_SIGNALS = (PaymentType.SINAL_1, PaymentType.SINAL_2, PaymentType.SINAL_3)

# Dates computed by the system rather than chosen by the buyer
LOCKED_DATE_TYPES = frozenset(
    {PaymentType.BONUS_ADIMPLENCIA, PaymentType.FINANCIAMENTO, PaymentType.BONUS_CAMPANHA}
)

# Buckets recomputed from scratch by the minimum-condition allocator
ALLOCATED_TYPES = frozenset(
    {
        PaymentType.SINAL_ATO,
        PaymentType.PRO_SOLUTO,
        PaymentType.BONUS_ADIMPLENCIA,
        PaymentType.BONUS_CAMPANHA,
    }
)


class ConditionType(str, Enum):
    PADRAO = "padrao"
    ESPECIAL = "especial"


class AmortizationKind(str, Enum):
    """Which annuity calculator amortizes the deferred balance"""

    LINEAR = "linear"
    STEPPED = "stepped"


class NotaryPaymentMethod(str, Enum):
    CREDIT_CARD = "creditCard"
    BANK_SLIP = "bankSlip"


@dataclass(frozen=True)
class PaymentEntry:
    """Single payment bucket in a plan"""

    type: PaymentType
    value: float
    date: date


@dataclass(frozen=True)
class SignalCampaign:
    """Promotional bonus granted on the signal above its minimum"""

    active: bool = False
    limit_percent: Optional[float] = None  # percent of the effective sale value, e.g. 5 for 5%


@dataclass(frozen=True)
class PaymentPlanRequest:
    """Everything the engine needs to build a payment plan"""

    appraisal_value: float
    sale_value: float
    gross_income: float
    simulation_installment_value: float
    installments: int
    delivery_date: Optional[date]
    construction_start_date: Optional[date]
    payments: Tuple[PaymentEntry, ...] = ()
    condition_type: ConditionType = ConditionType.PADRAO
    amortization: AmortizationKind = AmortizationKind.LINEAR
    enterprise_name: str = ""
    campaign: SignalCampaign = field(default_factory=SignalCampaign)
    apply_minimum_condition: bool = False
    financing_participants: int = 1
    notary_fees: Optional[float] = None
    notary_payment_method: Optional[NotaryPaymentMethod] = None
    notary_installments: Optional[int] = None

    def find(self, payment_type: PaymentType) -> Optional[PaymentEntry]:
        """First entry of the given type, if any"""
        return next((p for p in self.payments if p.type == payment_type), None)

    def value_of(self, payment_type: PaymentType) -> float:
        entry = self.find(payment_type)
        return entry.value if entry else 0.0

    @property
    def effective_sale_value(self) -> float:
        """Sale value after the negotiated discount"""
        return self.sale_value - self.value_of(PaymentType.DESCONTO)

    @property
    def calculation_target(self) -> float:
        """Amount the sum of all payment buckets must reach"""
        return max(self.appraisal_value, self.effective_sale_value)


@dataclass(frozen=True)
class LinearSchedule:
    """Fixed-installment amortization"""

    installment: float
    total: float


@dataclass(frozen=True)
class SteppedSchedule:
    """Four-tier decreasing amortization"""

    installments: Tuple[float, float, float, float]
    period_lengths: Tuple[int, int, int, int]
    total: float

    def installment_for(self, index: int) -> float:
        """Installment due at 1-based position ``index`` in the deferred term"""
        boundary = 0
        for installment, length in zip(self.installments, self.period_lengths):
            boundary += length
            if index <= boundary:
                return installment
        return 0.0


AmortizationSchedule = Union[LinearSchedule, SteppedSchedule]


@dataclass(frozen=True)
class InsuranceEntry:
    """One month of progressive construction insurance"""

    month: str
    value: float
    date: date
    is_payable: bool
    progress_rate: float


@dataclass(frozen=True)
class InsuranceSchedule:
    total: float
    breakdown: Tuple[InsuranceEntry, ...]

    def value_for_month(self, year: int, month: int) -> float:
        for entry in self.breakdown:
            if entry.date.year == year and entry.date.month == month:
                return entry.value
        return 0.0


@dataclass(frozen=True)
class SolverResult:
    """Outcome of a bounded iterative solver"""

    value: float
    converged: bool
    iterations: int


@dataclass(frozen=True)
class PaymentValidation:
    """Reconciliation of the payment buckets against the calculation target"""

    is_valid: bool
    difference: float
    expected: float
    actual: float
    business_logic_violation: Optional[str] = None
    violations: Tuple[str, ...] = ()


@dataclass(frozen=True)
class AllocationResult:
    """Payment buckets rewritten by the minimum-condition allocator"""

    payments: Tuple[PaymentEntry, ...]
    sinal_ato: float
    pro_soluto: float
    bonus_campanha: float
    bonus_adimplencia: float
    cap_by_percent: float
    cap_by_income: float
    income_solver_converged: bool
    reconciled_into: Optional[PaymentType] = None


@dataclass(frozen=True)
class Summary:
    remaining: float
    ok_total: bool


@dataclass(frozen=True)
class Results:
    """Fully computed payment plan snapshot"""

    summary: Summary
    financed_amount: float
    schedule: AmortizationSchedule
    total_with_interest: float
    total_construction_insurance: float
    monthly_insurance_breakdown: Tuple[InsuranceEntry, ...]
    income_commitment_percentage: float
    pro_soluto_commitment_percentage: float
    average_interest_rate: float
    average_interest_rate_converged: bool
    payment_validation: PaymentValidation
    payments: Tuple[PaymentEntry, ...]
    bucket_totals: Mapping[str, float]
    notary_installment_value: Optional[float] = None
    income_error: Optional[str] = None
    pro_soluto_error: Optional[str] = None
    installment_error: Optional[str] = None
    allocation: Optional[AllocationResult] = None

    @property
    def monthly_installment(self) -> Optional[float]:
        if isinstance(self.schedule, LinearSchedule):
            return self.schedule.installment
        return None

    @property
    def stepped_installments(self) -> Tuple[float, ...]:
        if isinstance(self.schedule, SteppedSchedule):
            return self.schedule.installments
        return ()

    @property
    def period_lengths(self) -> Tuple[int, ...]:
        if isinstance(self.schedule, SteppedSchedule):
            return self.schedule.period_lengths
        return ()
