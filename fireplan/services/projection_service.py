import logging
from datetime import date
from typing import List, Optional, assert_never

from fireplan.models.fire import (
    FiStatus,
    HouseholdInputs,
    ProjectionResult,
    ProjectionRow,
    Scenario,
)
from fireplan.services.fire_maths import FireMaths

logger = logging.getLogger(__name__)

DEFAULT_RETIREMENT_AGE = 65
DEFAULT_YEARS_TO_PROJECT = 60


def is_terminal(status: FiStatus) -> bool:
    if status == FiStatus.DEPLETED:
        return True
    elif status in (FiStatus.ACCUMULATING, FiStatus.FI_REACHED, FiStatus.RETIRED):
        return False
    else:
        assert_never(status)


class ProjectionService:
    """
    Single-path, year-by-year lifecycle projection at a constant assumed
    return.

    Each year:
    1. Contributions stop once the household reaches its retirement age.
    2. Growth is applied to the opening balance only.
    3. Once retired, the inflation-adjusted spend is withdrawn, less any state
       pension being received.
    4. A portfolio that ends the year at zero is marked depleted and the
       projection stops there. The only exception is a pot that was never
       funded during accumulation, which stays accumulating.
    """

    @staticmethod
    def resolve_retirement_age(inputs: HouseholdInputs, scenario: Scenario) -> int:
        return inputs.target_retirement_age or scenario.retirement_age or DEFAULT_RETIREMENT_AGE

    @staticmethod
    def state_pension_for_age(age: int, is_retired: bool, inputs: HouseholdInputs, scenario: Scenario) -> float:
        if not (is_retired and inputs.include_state_pension and age >= scenario.state_pension_age):
            return 0.0
        pension = scenario.state_pension_annual
        if inputs.partner_state_pension:
            pension *= 2
        return pension

    @staticmethod
    def next_status(
        previous: FiStatus,
        is_retired: bool,
        depleted: bool,
        portfolio_end: float,
        target_number: float
    ) -> FiStatus:
        if previous == FiStatus.DEPLETED:
            return FiStatus.DEPLETED
        elif previous in (FiStatus.ACCUMULATING, FiStatus.FI_REACHED, FiStatus.RETIRED):
            pass
        else:
            assert_never(previous)

        if depleted:
            return FiStatus.DEPLETED
        if is_retired:
            return FiStatus.RETIRED
        if previous == FiStatus.FI_REACHED or portfolio_end >= target_number:
            return FiStatus.FI_REACHED
        return FiStatus.ACCUMULATING

    @staticmethod
    def project(
        inputs: HouseholdInputs,
        scenario: Scenario,
        years_to_project: int = DEFAULT_YEARS_TO_PROJECT,
        as_of: Optional[date] = None
    ) -> ProjectionResult:
        """
        Project one household/scenario pair from today to ``years_to_project``
        years out, or until the portfolio is depleted.

        Returns the yearly rows plus the derived FI age/year, Coast FI figures
        and a single-path success rate (100 if the horizon is reached without
        depletion, 0 otherwise).
        """
        as_of = as_of or date.today()
        current_age = inputs.age_on(as_of)
        retirement_age = ProjectionService.resolve_retirement_age(inputs, scenario)
        annual_savings = inputs.annual_savings or 0.0
        portfolio_value = inputs.current_portfolio_value or 0.0
        target_number = FireMaths.target_amount(scenario.annual_spend, scenario.withdrawal_rate)

        coast = FireMaths.coast_fi(
            portfolio_value,
            target_number,
            scenario.expected_return,
            current_age,
            retirement_age
        )

        rows: List[ProjectionRow] = []
        status = FiStatus.ACCUMULATING
        fi_age: Optional[int] = None
        fi_year: Optional[int] = None
        portfolio = portfolio_value

        for year_index in range(years_to_project):
            age = current_age + year_index
            year = as_of.year + year_index
            portfolio_start = portfolio
            is_retired = age >= retirement_age

            contributions = 0.0 if is_retired else annual_savings
            growth = portfolio_start * (scenario.expected_return / 100)
            annual_spend_inflated = FireMaths.adjust_for_inflation(
                scenario.annual_spend,
                year_index,
                scenario.inflation_rate
            )
            state_pension = ProjectionService.state_pension_for_age(age, is_retired, inputs, scenario)

            withdrawals = annual_spend_inflated if is_retired else 0.0
            net_withdrawal = max(0.0, withdrawals - state_pension)

            portfolio_end = max(0.0, portfolio_start + contributions + growth - net_withdrawal)
            # An empty pot is terminal once retired, or when a funded pot is drawn down while working
            depleted = portfolio_end <= 0 and (is_retired or portfolio_start > 0)

            new_status = ProjectionService.next_status(status, is_retired, depleted, portfolio_end, target_number)
            if new_status == FiStatus.FI_REACHED and fi_age is None:
                fi_age = age
                fi_year = year
            status = new_status

            rows.append(ProjectionRow(
                year_index=year_index,
                age=age,
                year=year,
                portfolio_start=portfolio_start,
                contributions=contributions,
                growth=growth,
                withdrawals=withdrawals,
                net_withdrawal=net_withdrawal,
                state_pension=state_pension,
                portfolio_end=portfolio_end,
                annual_spend_inflated=annual_spend_inflated,
                fi_status=status,
            ))

            portfolio = portfolio_end
            if is_terminal(status):
                logger.debug(f"Scenario '{scenario.name}' depleted at age {age} ({year})")
                break

        success_rate = 0.0 if status == FiStatus.DEPLETED else 100.0

        return ProjectionResult(
            scenario=scenario,
            inputs=inputs,
            projections=rows,
            target_number=target_number,
            fi_age=fi_age,
            fi_year=fi_year,
            coast_fi_age=coast.coast_fi_age if coast else None,
            coast_fi_number=coast.coast_fi_number if coast else None,
            years_to_fi=fi_age - current_age if fi_age is not None else None,
            success_rate=success_rate,
        )

    @staticmethod
    def project_scenarios(
        inputs: HouseholdInputs,
        scenarios: List[Scenario],
        years_to_project: int = DEFAULT_YEARS_TO_PROJECT,
        as_of: Optional[date] = None
    ) -> List[ProjectionResult]:
        return [
            ProjectionService.project(inputs, scenario, years_to_project, as_of)
            for scenario in scenarios
        ]
