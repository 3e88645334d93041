"""Pydantic schemas for request/response validation"""

from datetime import date
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from payment_flow.domain.exceptions import InvalidPaymentPlanError
from payment_flow.domain.models import (
    AmortizationKind,
    ConditionType,
    NotaryPaymentMethod,
    PaymentEntry,
    PaymentPlanRequest,
    PaymentType,
    Results,
    SignalCampaign,
)
from payment_flow.domain.notary import BANK_SLIP_INSTALLMENTS, CREDIT_CARD_INSTALLMENTS
from payment_flow.domain.validation import structural_errors


class CamelModel(BaseModel):
    """Accepts and emits the camelCase keys used by the UI and PDF collaborators"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PaymentEntrySchema(CamelModel):
    """Single payment bucket"""

    type: PaymentType
    value: float = Field(..., ge=0, description="Amount in currency units")
    date: date


class PaymentPlanRequestSchema(CamelModel):
    """Request body for a payment-plan calculation"""

    appraisal_value: float = Field(..., gt=0)
    sale_value: float = Field(..., gt=0)
    gross_income: float = Field(..., gt=0)
    simulation_installment_value: float = Field(..., gt=0, description="Bank installment from the financing simulation")
    financing_participants: int = Field(1, ge=1, le=4)
    payments: List[PaymentEntrySchema] = Field(default_factory=list)
    condition_type: ConditionType = ConditionType.PADRAO
    amortization: AmortizationKind = AmortizationKind.LINEAR
    installments: Optional[int] = Field(None, ge=1)
    delivery_date: Optional[date] = None
    construction_start_date: Optional[date] = None
    enterprise_name: str = ""
    notary_fees: Optional[float] = Field(None, ge=0)
    notary_payment_method: Optional[NotaryPaymentMethod] = None
    notary_installments: Optional[int] = None
    sinal_campaign_active: bool = False
    sinal_campaign_limit_percent: Optional[float] = Field(None, ge=0)
    apply_minimum_condition: bool = False

    @model_validator(mode="after")
    def check_notary_installments(self) -> "PaymentPlanRequestSchema":
        if self.notary_installments is None:
            return self
        if self.notary_payment_method == NotaryPaymentMethod.CREDIT_CARD and self.notary_installments not in CREDIT_CARD_INSTALLMENTS:
            raise ValueError("Para cartão de crédito, o parcelamento é de 1 a 12 vezes.")
        if self.notary_payment_method == NotaryPaymentMethod.BANK_SLIP and self.notary_installments not in BANK_SLIP_INSTALLMENTS:
            raise ValueError("Para boleto, o parcelamento é de 36 ou 40 vezes.")
        return self

    def to_domain(self) -> PaymentPlanRequest:
        """Build the engine request, rejecting malformed entry lists"""
        payments = tuple(PaymentEntry(type=p.type, value=p.value, date=p.date) for p in self.payments)

        errors = structural_errors(payments)
        if errors:
            raise InvalidPaymentPlanError("Invalid payment entries", errors=errors)

        return PaymentPlanRequest(
            appraisal_value=self.appraisal_value,
            sale_value=self.sale_value,
            gross_income=self.gross_income,
            simulation_installment_value=self.simulation_installment_value,
            installments=self.installments or 0,
            delivery_date=self.delivery_date,
            construction_start_date=self.construction_start_date,
            payments=payments,
            condition_type=self.condition_type,
            amortization=self.amortization,
            enterprise_name=self.enterprise_name,
            campaign=SignalCampaign(active=self.sinal_campaign_active, limit_percent=self.sinal_campaign_limit_percent),
            apply_minimum_condition=self.apply_minimum_condition,
            financing_participants=self.financing_participants,
            notary_fees=self.notary_fees,
            notary_payment_method=self.notary_payment_method,
            notary_installments=self.notary_installments,
        )


def parse_request(payload: dict) -> PaymentPlanRequest:
    """Validate a raw payload into a domain request"""
    try:
        schema = PaymentPlanRequestSchema.model_validate(payload)
    except ValidationError as e:
        raise InvalidPaymentPlanError("Invalid payment plan payload", errors=e.errors()) from e
    return schema.to_domain()


class SummarySchema(CamelModel):
    remaining: float
    ok_total: bool


class InsuranceEntrySchema(CamelModel):
    month: str
    value: float
    date: date
    is_payable: bool
    progress_rate: float


class PaymentValidationSchema(CamelModel):
    is_valid: bool
    difference: float
    expected: float
    actual: float
    business_logic_violation: Optional[str] = None
    violations: List[str] = Field(default_factory=list)


class ResultsSchema(CamelModel):
    """Serializable snapshot handed to the PDF and UI collaborators"""

    summary: SummarySchema
    financed_amount: float
    monthly_installment: Optional[float] = None
    stepped_installments: List[float] = Field(default_factory=list)
    period_lengths: List[int] = Field(default_factory=list)
    total_with_interest: float
    total_construction_insurance: float
    monthly_insurance_breakdown: List[InsuranceEntrySchema]
    income_commitment_percentage: float
    pro_soluto_commitment_percentage: float
    average_interest_rate: float
    average_interest_rate_converged: bool
    notary_installment_value: Optional[float] = None
    income_error: Optional[str] = None
    pro_soluto_error: Optional[str] = None
    installment_error: Optional[str] = None
    payment_validation: PaymentValidationSchema
    payments: List[PaymentEntrySchema]
    bucket_totals: Dict[str, float]

    @classmethod
    def from_domain(cls, results: Results) -> "ResultsSchema":
        validation = results.payment_validation
        return cls(
            summary=SummarySchema(remaining=results.summary.remaining, ok_total=results.summary.ok_total),
            financed_amount=results.financed_amount,
            monthly_installment=results.monthly_installment,
            stepped_installments=list(results.stepped_installments),
            period_lengths=list(results.period_lengths),
            total_with_interest=results.total_with_interest,
            total_construction_insurance=results.total_construction_insurance,
            monthly_insurance_breakdown=[
                InsuranceEntrySchema(
                    month=m.month,
                    value=m.value,
                    date=m.date,
                    is_payable=m.is_payable,
                    progress_rate=m.progress_rate,
                )
                for m in results.monthly_insurance_breakdown
            ],
            income_commitment_percentage=results.income_commitment_percentage,
            pro_soluto_commitment_percentage=results.pro_soluto_commitment_percentage,
            average_interest_rate=results.average_interest_rate,
            average_interest_rate_converged=results.average_interest_rate_converged,
            notary_installment_value=results.notary_installment_value,
            income_error=results.income_error,
            pro_soluto_error=results.pro_soluto_error,
            installment_error=results.installment_error,
            payment_validation=PaymentValidationSchema(
                is_valid=validation.is_valid,
                difference=validation.difference,
                expected=validation.expected,
                actual=validation.actual,
                business_logic_violation=validation.business_logic_violation,
                violations=list(validation.violations),
            ),
            payments=[PaymentEntrySchema(type=p.type, value=p.value, date=p.date) for p in results.payments],
            bucket_totals=dict(results.bucket_totals),
        )
