from .base import CamelModel, UnboundedFloat
from .fire import (
    Scenario,
    HouseholdInputs,
    FiStatus,
    ProjectionRow,
    ProjectionResult,
    MathsPlanningInputs,
    ScenarioResult,
    CoastResult,
    MathsPlanningResults,
    CoastFireSummary,
)
from .simulation import (
    WithdrawalStrategy,
    ExtraIncomeSource,
    SimulationConfig,
    YearlyCycleRecord,
    CycleResult,
    PercentileValues,
    PercentileChartPoint,
    AggregateResult,
)
