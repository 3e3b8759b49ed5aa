from datetime import date
from enum import Enum
from typing import List, Optional

from pydantic import ConfigDict, Field, model_validator

from fireplan.models.base import CamelModel, UnboundedFloat

DAYS_PER_YEAR = 365.25


def exact_age(date_of_birth: date, as_of: date) -> float:
    """Fractional age in 365.25-day years."""
    return (as_of - date_of_birth).days / DAYS_PER_YEAR


# Scenario / Household Models

class Scenario(CamelModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1, max_length=50)
    description: Optional[str] = Field(default=None, max_length=200)
    annual_spend: float = Field(gt=0)
    withdrawal_rate: float = 4.0
    expected_return: float = Field(default=7.0, gt=-100)
    inflation_rate: float = 2.5
    retirement_age: Optional[int] = Field(default=None, ge=30, le=100)
    state_pension_age: int = Field(default=67, ge=60, le=75)
    state_pension_annual: float = Field(default=11500.0, ge=0)


class HouseholdInputs(CamelModel):
    current_age: Optional[int] = Field(default=None, ge=18, le=100)
    date_of_birth: Optional[date] = None
    target_retirement_age: Optional[int] = Field(default=None, ge=30, le=100)
    current_portfolio_value: Optional[float] = Field(default=None, ge=0)
    annual_income: Optional[float] = Field(default=None, ge=0)
    annual_savings: Optional[float] = None
    annual_spend: float = Field(default=50000.0, gt=0)
    withdrawal_rate: float = 4.0
    expected_return: float = Field(default=7.0, gt=-100)
    include_state_pension: bool = True
    partner_state_pension: bool = False

    @model_validator(mode="after")
    def require_age_or_birth_date(self) -> "HouseholdInputs":
        if self.current_age is None and self.date_of_birth is None:
            raise ValueError("Either currentAge or dateOfBirth is required")
        return self

    def age_on(self, as_of: date) -> int:
        """Whole-year age. An explicit current age wins over date of birth."""
        if self.current_age is not None:
            return self.current_age
        years = as_of.year - self.date_of_birth.year
        if (as_of.month, as_of.day) < (self.date_of_birth.month, self.date_of_birth.day):
            years -= 1
        return years


# Projection Models

class FiStatus(str, Enum):
    ACCUMULATING = "accumulating"
    FI_REACHED = "fi_reached"
    RETIRED = "retired"
    DEPLETED = "depleted"


class ProjectionRow(CamelModel):
    year_index: int
    age: int
    year: int
    portfolio_start: float
    contributions: float
    growth: float
    withdrawals: float
    net_withdrawal: float
    state_pension: float
    portfolio_end: float
    annual_spend_inflated: float
    fi_status: FiStatus


class CoastFi(CamelModel):
    coast_fi_age: int
    coast_fi_number: float


class ProjectionResult(CamelModel):
    scenario: Scenario
    inputs: HouseholdInputs
    projections: List[ProjectionRow]
    target_number: UnboundedFloat
    fi_age: Optional[int] = None
    fi_year: Optional[int] = None
    coast_fi_age: Optional[int] = None
    coast_fi_number: Optional[UnboundedFloat] = None
    years_to_fi: Optional[int] = None
    success_rate: float


class CalculateRequest(CamelModel):
    inputs: HouseholdInputs
    scenarios: List[Scenario] = []
    years_to_project: Optional[int] = Field(default=None, ge=1, le=100)


class CalculateResponse(CamelModel):
    results: List[ProjectionResult]
    inputs: HouseholdInputs


# Maths Planning Models

class MathsPlanningInputs(CamelModel):
    current_age: float = Field(ge=0, le=120)
    date_of_birth: Optional[date] = None
    current_savings: float = 0.0  # Excludes property
    property_value: float = 0.0

    fire_spend: float
    swr: float
    expected_return: float
    monthly_savings: float = 0.0
    coast_target_age: float = Field(ge=0, le=120)

    # Filled from settings when omitted
    normal_fire_spend: Optional[float] = None
    fat_fire_spend: Optional[float] = None

    coast_current_spend: float = 0.0
    coast_monthly_savings: float = 0.0

    partner_savings: float = 0.0
    my_pension: float = 0.0
    joint_savings: float = 0.0


class ScenarioResult(CamelModel):
    target_amount: UnboundedFloat
    remaining: UnboundedFloat
    investment_income: float
    compounding_period: UnboundedFloat  # years
    months_to_save: UnboundedFloat
    years_to_save: UnboundedFloat
    target_age: UnboundedFloat
    target_date: Optional[date] = None
    post_tax_earnings_required: float


class CoastResult(CamelModel):
    retire_age: float
    current_spend: float
    saving_per_month: float
    post_tax_earnings_required: float
    portfolio_at_coast_age: float
    swr: float
    fire_spend_at_coast_age: float


class MathsPlanningResults(CamelModel):
    percent_of_target: float
    amount_needed: UnboundedFloat
    target_retire_date: Optional[date] = None

    normal: ScenarioResult
    fat: ScenarioResult

    coast_now: CoastResult
    coast_after_min_fire: CoastResult

    total_household_savings: float


# Coast Summary Models

class CoastSummaryRequest(CamelModel):
    current_net_worth: float = 0.0
    inputs: HouseholdInputs


class CoastFireSummary(CamelModel):
    value: UnboundedFloat
    fire_number_at_retirement: UnboundedFloat
    current_net_worth: float
    progress: float
    surplus: UnboundedFloat
    is_coast_fi: bool
    current_age: int
    target_retirement_age: int
    years_left: int
