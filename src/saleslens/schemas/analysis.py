"""Structured model output for conversation analysis and coaching scripts.

These models double as the response schema the model is instructed to
produce. Upstream JSON is validated against them in strict mode (no
type coercion), see ``src.saleslens.analysis.validation``.
"""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import Field

from src.saleslens.schemas.base import CamelModel

DealRisk = Literal["Low", "Medium", "High"]
LowMediumHigh = Literal["Low", "Medium", "High"]


class SourceKind(str, Enum):
    """Origin/format of an analysed interaction."""

    CALL_TRANSCRIPT = "call-transcript"
    EMAIL_THREAD = "email-thread"
    EVENT_NOTES = "event-notes"
    BATCH_ITEM = "batch-item"


# ── Core analysis ───────────────────────────────────────────────────────────


class BuyingSignal(CamelModel):
    signal: str
    evidence: str


class Objection(CamelModel):
    objection: str
    evidence: str


class SuggestedQuestion(CamelModel):
    question: str
    reason: str


# ── Financial intelligence ──────────────────────────────────────────────────


class DealEconomics(CamelModel):
    extracted_monthly_spend: float | None = None
    extracted_annual_spend: float | None = None
    contract_term_months: float | None = None
    total_contract_value: float | None = None
    weighted_pipeline_value: float | None = None
    reasoning: str


class RevenueRiskItem(CamelModel):
    risk: str
    severity: LowMediumHigh
    evidence: str


class RevenueRiskAssessment(CamelModel):
    overall_score: int = Field(ge=0, le=100)
    budget_constraint_severity: Literal["None", "Mild", "Moderate", "Severe"]
    payment_delay_likelihood: LowMediumHigh
    cancellation_risk: LowMediumHigh
    risks: list[RevenueRiskItem]
    reasoning: str


class CompetitorPriceIntel(CamelModel):
    competitor: str
    mentioned_price: str | None = None
    discount_pressure: bool
    context: str


class CompetitivePricingIntelligence(CamelModel):
    competitors_detected: list[CompetitorPriceIntel]
    discount_pressure_level: Literal["None", "Low", "Medium", "High"]
    price_sensitivity_signal: str
    reasoning: str


class ROIPaybackAnalysis(CamelModel):
    prospect_current_cost: str | None = None
    prospect_expected_savings: str | None = None
    implied_roi_percent: float | None = Field(default=None, alias="impliedROIPercent")
    payback_period_months: float | None = None
    data_confidence: Literal["High", "Medium", "Low", "Insufficient"]
    reasoning: str


class BudgetHealthIndicator(CamelModel):
    status: Literal["Confirmed", "Exploring", "Constrained", "No Budget"]
    approval_process: str | None = None
    fiscal_year_timing: str | None = None
    budget_owner: str | None = None
    reasoning: str


class FinancialAnalysis(CamelModel):
    deal_economics: DealEconomics
    revenue_risk: RevenueRiskAssessment
    competitive_pricing: CompetitivePricingIntelligence
    roi_payback: ROIPaybackAnalysis
    budget_health: BudgetHealthIndicator


class AnalysisResult(CamelModel):
    """Full assessment of one sales conversation."""

    lead_score: int = Field(ge=0, le=100)
    lead_score_reasoning: str
    worth_chasing: bool
    worth_chasing_reasoning: str
    deal_risk: DealRisk
    deal_risk_reasoning: str
    close_forecast: int = Field(ge=0, le=100)
    close_forecast_reasoning: str
    buying_signals: list[BuyingSignal]
    objections: list[Objection]
    next_steps: list[str]
    follow_up_email: str
    coaching_summary: str
    suggested_questions: list[SuggestedQuestion] | None = None
    financial_analysis: FinancialAnalysis | None = None


# ── Coaching ────────────────────────────────────────────────────────────────


class CoachingQuestion(CamelModel):
    question: str
    why: str


class CoachingSections(CamelModel):
    greeting: str
    strengths: list[str]
    improvements: list[str]
    missed_questions: list[CoachingQuestion]
    next_call_questions: list[CoachingQuestion]
    closing: str


class CoachingScript(CamelModel):
    """Spoken coaching debrief: a monologue plus its structured outline."""

    script: str = Field(min_length=100)
    sections: CoachingSections


class CoachingContext(CamelModel):
    """Clamped summary of a prior analysis, cross-referenced by the coach."""

    lead_score: float
    worth_chasing: bool
    deal_risk: str
    close_forecast: float
    coaching_summary: str
