"""Configuration management using Pydantic Settings"""

from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Monthly correction rates for the deferred balance
    rate_before_delivery: float = 0.005
    rate_after_delivery: float = 0.015

    # Business rule thresholds
    min_signal_percent: float = 0.055
    pro_soluto_limit_standard: float = 0.15
    pro_soluto_limit_special: float = 0.18
    pro_soluto_allocation_margin: float = 0.0001  # Allocator stays strictly below the cap
    income_commitment_limit: float = 0.5
    special_enterprises: List[str] = ["Reserva Parque Clube"]

    # Maximum number of pro-soluto installments per condition
    max_installments_standard: int = 52
    max_installments_special_enterprise: int = 60
    max_installments_especial: int = 66

    # Construction insurance memoization
    insurance_cache_ttl_seconds: float = 300.0

    # Numeric solvers
    bisection_max_iterations: int = 30
    bisection_tolerance: float = 0.01
    newton_max_iterations: int = 200
    newton_tolerance: float = 1e-10
    newton_initial_rate: float = 0.01

    # Notary fees
    notary_bank_slip_rate: float = 0.015
    notary_participant_surcharge: float = 110.0

    # Service
    service_name: str = "payment-flow-engine"
    log_level: str = "INFO"


settings = Settings()
