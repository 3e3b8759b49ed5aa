from enum import Enum
from typing import List, Optional

from pydantic import Field, model_validator

from fireplan.models.base import CamelModel

# Historical Simulation Config

class WithdrawalStrategy(str, Enum):
    CONSTANT_DOLLAR = "constant_dollar"
    PERCENT_OF_PORTFOLIO = "percent_of_portfolio"


class ExtraIncomeSource(CamelModel):
    name: str = Field(min_length=1)
    annual_amount: float = Field(ge=0)  # today's money
    start_age: int = Field(ge=0, le=120)
    end_age: Optional[int] = Field(default=None, ge=0, le=120)
    adjust_for_inflation: bool = True

    @model_validator(mode="after")
    def check_age_window(self) -> "ExtraIncomeSource":
        if self.end_age is not None and self.end_age < self.start_age:
            raise ValueError(f"endAge ({self.end_age}) must not be before startAge ({self.start_age})")
        return self

    def is_active(self, age: int) -> bool:
        return age >= self.start_age and (self.end_age is None or age <= self.end_age)


class SimulationConfig(CamelModel):
    retirement_duration: int = Field(default=30, ge=1, le=60)
    stock_allocation: float = Field(default=75.0, ge=0, le=100)
    bond_allocation: float = Field(default=25.0, ge=0, le=100)
    withdrawal_strategy: WithdrawalStrategy = WithdrawalStrategy.CONSTANT_DOLLAR
    initial_withdrawal_rate: float = Field(default=4.0, le=15)
    initial_withdrawal_amount: Optional[float] = Field(default=None, ge=0)
    initial_portfolio: float = Field(gt=0)
    extra_income: List[ExtraIncomeSource] = []
    current_age: int = Field(ge=18, le=100)

    @model_validator(mode="after")
    def check_allocation_and_withdrawal(self) -> "SimulationConfig":
        if self.stock_allocation + self.bond_allocation != 100:
            raise ValueError(
                f"stockAllocation + bondAllocation must equal 100 "
                f"(got {self.stock_allocation} + {self.bond_allocation})"
            )

        if self.initial_withdrawal_rate <= 0:
            if self.withdrawal_strategy == WithdrawalStrategy.PERCENT_OF_PORTFOLIO:
                raise ValueError("percent_of_portfolio requires a positive initialWithdrawalRate")
            if self.initial_withdrawal_amount is None:
                raise ValueError(
                    "initialWithdrawalRate must be positive when no initialWithdrawalAmount is supplied"
                )
        return self

    @property
    def initial_withdrawal(self) -> float:
        """First-year withdrawal in start-year money."""
        if self.initial_withdrawal_amount is not None:
            return self.initial_withdrawal_amount
        return self.initial_portfolio * (self.initial_withdrawal_rate / 100)


# Cycle Results

class YearlyCycleRecord(CamelModel):
    year: int
    year_index: int
    age: int
    portfolio_start: float
    withdrawal: float
    extra_income: float
    net_withdrawal: float
    stock_return: float
    bond_return: float
    portfolio_return: float
    portfolio_end: float
    cumulative_inflation: float


class CycleResult(CamelModel):
    start_year: int
    end_year: int
    success: bool
    failure_year: Optional[int] = None
    years_lasted: int
    final_portfolio_value: float
    final_portfolio_real: float
    minimum_portfolio_value: float
    minimum_portfolio_year: int
    total_withdrawals: float
    average_annual_withdrawal: float
    yearly_data: Optional[List[YearlyCycleRecord]] = None


# Aggregate Results

class PercentileValues(CamelModel):
    p10: float = 0.0
    p25: float = 0.0
    p50: float = 0.0
    p75: float = 0.0
    p90: float = 0.0


class PercentileChartPoint(PercentileValues):
    year_index: int


class FailureSummary(CamelModel):
    start_year: int
    failure_year: int
    years_lasted: int


class WorstCase(CamelModel):
    start_year: int
    years_lasted: int
    final_value: float


class CaseSummary(CamelModel):
    start_year: int
    final_value: float


class AggregateResult(CamelModel):
    config: SimulationConfig
    simulations: List[CycleResult]
    total_simulations: int
    successful_simulations: int
    failed_simulations: int
    success_rate: float
    median_final_portfolio: float
    mean_final_portfolio: float
    final_portfolio_percentiles: PercentileValues
    median_annual_withdrawal: float
    withdrawal_percentiles: PercentileValues
    failures: List[FailureSummary]
    worst_case: Optional[WorstCase] = None
    best_case: Optional[CaseSummary] = None
    smallest_final_portfolio: Optional[CaseSummary] = None
    percentiles_by_year: List[PercentileChartPoint]


class SimulateRequest(CamelModel):
    config: SimulationConfig
    include_yearly_data: bool = False
