import calendar
import logging
import math
from datetime import date
from typing import Optional

from fireplan.models.fire import (
    CoastFi,
    CoastFireSummary,
    CoastResult,
    HouseholdInputs,
    MathsPlanningInputs,
    MathsPlanningResults,
    ScenarioResult,
    exact_age,
)

logger = logging.getLogger(__name__)

MAX_MONTHS = 1200  # 100 years
DEFAULT_COAST_RETIREMENT_AGE = 50


def add_months(start: date, months: int) -> date:
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


class FireMaths:
    """
    Scalar FIRE arithmetic: target numbers, time-to-target under monthly
    compounding, and Coast FI projections.

    Nothing here raises on degenerate inputs. An unreachable target is
    reported as ``math.inf`` and it is up to the caller to present that as
    "unreachable".
    """

    @staticmethod
    def target_amount(annual_spend: float, swr: float) -> float:
        if swr <= 0:
            return math.inf
        return annual_spend / (swr / 100)

    @staticmethod
    def investment_income(savings: float, expected_return: float) -> float:
        return savings * (expected_return / 100)

    @staticmethod
    def adjust_for_inflation(amount: float, years: float, inflation_rate: float) -> float:
        return amount * math.pow(1 + inflation_rate / 100, years)

    @staticmethod
    def safe_withdrawal(portfolio_value: float, withdrawal_rate: float) -> float:
        return portfolio_value * (withdrawal_rate / 100)

    @staticmethod
    def post_tax_earnings_required(annual_spend: float) -> float:
        # No tax modelling: spend is treated as the post-tax requirement
        return annual_spend

    @staticmethod
    def months_to_target(
        current_savings: float,
        target_amount: float,
        monthly_savings: float,
        annual_return: float
    ) -> float:
        """
        Months until ``current_savings`` grows to ``target_amount``.

        With both growth and contributions the balance is stepped month by
        month (``balance * (1 + r) + contribution``) up to MAX_MONTHS and the
        final partial month is linearly interpolated between the two balances
        either side of the target. If the ceiling is hit the ceiling is
        returned.

        Edge cases:
        - Already at target: 0.
        - No growth: straight division by the contribution, inf without one.
        - No contribution: closed-form log solution, inf from an empty pot.
        """
        if current_savings >= target_amount:
            return 0.0
        if math.isinf(target_amount):
            return math.inf

        if annual_return <= 0:
            if monthly_savings <= 0:
                return math.inf
            return (target_amount - current_savings) / monthly_savings

        monthly_rate = annual_return / 100 / 12

        if monthly_savings <= 0:
            if current_savings <= 0:
                return math.inf
            return math.log(target_amount / current_savings) / math.log(1 + monthly_rate)

        balance = current_savings
        months = 0
        while balance < target_amount and months < MAX_MONTHS:
            balance = balance * (1 + monthly_rate) + monthly_savings
            months += 1

        if months > 0 and balance > target_amount:
            prev_balance = (balance - monthly_savings) / (1 + monthly_rate)
            fraction = (target_amount - prev_balance) / (balance - prev_balance)
            return months - 1 + fraction

        return float(months)

    @staticmethod
    def portfolio_at_age(
        current_savings: float,
        current_age: float,
        target_age: float,
        monthly_savings: float,
        annual_return: float
    ) -> float:
        if target_age <= current_age:
            return current_savings

        # Rounded before ceil so float noise like 12.000000000000028 stays 12
        months = math.ceil(round((target_age - current_age) * 12, 9))
        monthly_rate = annual_return / 100 / 12

        balance = current_savings
        for _ in range(months):
            balance = balance * (1 + monthly_rate) + monthly_savings
        return balance

    @staticmethod
    def coast_fi(
        current_value: float,
        target_number: float,
        expected_return: float,
        current_age: int,
        retirement_age: int
    ) -> Optional[CoastFi]:
        """
        Coast FI number: the pot that reaches ``target_number`` by
        ``retirement_age`` on growth alone.

        Returns None when retirement is not in the future. The coast age is
        the current age once the pot already covers the coast number,
        otherwise the retirement age.
        """
        if retirement_age <= current_age:
            return None

        years_to_retirement = retirement_age - current_age
        coast_fi_number = target_number / math.pow(1 + expected_return / 100, years_to_retirement)

        if current_value >= coast_fi_number:
            coast_fi_age = current_age
        else:
            coast_fi_age = retirement_age

        return CoastFi(coast_fi_age=coast_fi_age, coast_fi_number=coast_fi_number)

    @staticmethod
    def target_date(months: float, today: date) -> Optional[date]:
        if not math.isfinite(months):
            return None
        whole_months = round(months)
        if today.year + whole_months // 12 + 1 > date.max.year:
            return None
        return add_months(today, whole_months)

    # Scenario Calculations

    @staticmethod
    def scenario_result(inputs: MathsPlanningInputs, target_spend: float, today: Optional[date] = None) -> ScenarioResult:
        today = today or date.today()
        target_amount = FireMaths.target_amount(target_spend, inputs.swr)
        remaining = max(0.0, target_amount - inputs.current_savings)
        investment_income = FireMaths.investment_income(inputs.current_savings, inputs.expected_return)

        months_to_save = FireMaths.months_to_target(
            inputs.current_savings,
            target_amount,
            inputs.monthly_savings,
            inputs.expected_return
        )
        years_to_save = months_to_save / 12

        return ScenarioResult(
            target_amount=target_amount,
            remaining=remaining,
            investment_income=investment_income,
            compounding_period=years_to_save,
            months_to_save=months_to_save,
            years_to_save=years_to_save,
            target_age=inputs.current_age + years_to_save,
            target_date=FireMaths.target_date(months_to_save, today),
            post_tax_earnings_required=FireMaths.post_tax_earnings_required(target_spend),
        )

    @staticmethod
    def _coast_result(inputs: MathsPlanningInputs, portfolio_at_coast_age: float, saving_per_month: float) -> CoastResult:
        return CoastResult(
            retire_age=inputs.coast_target_age,
            current_spend=inputs.coast_current_spend,
            saving_per_month=saving_per_month,
            post_tax_earnings_required=FireMaths.post_tax_earnings_required(inputs.coast_current_spend),
            portfolio_at_coast_age=portfolio_at_coast_age,
            swr=inputs.swr,
            fire_spend_at_coast_age=portfolio_at_coast_age * (inputs.swr / 100),
        )

    @staticmethod
    def coast_now(inputs: MathsPlanningInputs) -> CoastResult:
        """Drop to the reduced coast contribution today and grow to the coast age."""
        portfolio_at_coast_age = FireMaths.portfolio_at_age(
            inputs.current_savings,
            inputs.current_age,
            inputs.coast_target_age,
            inputs.coast_monthly_savings,
            inputs.expected_return
        )
        return FireMaths._coast_result(inputs, portfolio_at_coast_age, inputs.coast_monthly_savings)

    @staticmethod
    def coast_after_interim_target(inputs: MathsPlanningInputs) -> CoastResult:
        """
        Two-phase coast projection.

        Phase 1 saves at the main monthly rate until the primary target
        (from ``fire_spend``) is reached. Phase 2 then saves at the coast rate
        until the coast age. When the primary target would only be reached at
        or after the coast age, phase 1 runs all the way to the coast age and
        phase 2 never starts.
        """
        target_fire_amount = FireMaths.target_amount(inputs.fire_spend, inputs.swr)
        months_to_target_fire = FireMaths.months_to_target(
            inputs.current_savings,
            target_fire_amount,
            inputs.monthly_savings,
            inputs.expected_return
        )
        age_at_target_fire = inputs.current_age + months_to_target_fire / 12

        if age_at_target_fire >= inputs.coast_target_age:
            portfolio_at_coast_age = FireMaths.portfolio_at_age(
                inputs.current_savings,
                inputs.current_age,
                inputs.coast_target_age,
                inputs.monthly_savings,
                inputs.expected_return
            )
            return FireMaths._coast_result(inputs, portfolio_at_coast_age, inputs.monthly_savings)

        portfolio_at_target_fire = FireMaths.portfolio_at_age(
            inputs.current_savings,
            inputs.current_age,
            age_at_target_fire,
            inputs.monthly_savings,
            inputs.expected_return
        )
        portfolio_at_coast_age = FireMaths.portfolio_at_age(
            portfolio_at_target_fire,
            age_at_target_fire,
            inputs.coast_target_age,
            inputs.coast_monthly_savings,
            inputs.expected_return
        )
        return FireMaths._coast_result(inputs, portfolio_at_coast_age, inputs.coast_monthly_savings)

    @staticmethod
    def maths_planning(inputs: MathsPlanningInputs, today: Optional[date] = None) -> MathsPlanningResults:
        """
        Full maths-planning bundle: progress against the primary target,
        normal and FAT scenarios, and both coast projections.

        ``normal_fire_spend`` / ``fat_fire_spend`` must already be filled in
        by the caller.
        """
        if inputs.normal_fire_spend is None or inputs.fat_fire_spend is None:
            raise ValueError("normal_fire_spend and fat_fire_spend must be provided")

        today = today or date.today()
        if inputs.date_of_birth is not None:
            inputs = inputs.model_copy(update={"current_age": exact_age(inputs.date_of_birth, today)})

        amount_needed = FireMaths.target_amount(inputs.fire_spend, inputs.swr)
        if amount_needed > 0:
            percent_of_target = inputs.current_savings / amount_needed * 100
        else:
            percent_of_target = 100.0

        months_to_target = FireMaths.months_to_target(
            inputs.current_savings,
            amount_needed,
            inputs.monthly_savings,
            inputs.expected_return
        )

        total_household_savings = (
            inputs.current_savings +
            inputs.partner_savings +
            inputs.my_pension +
            inputs.joint_savings
        )

        return MathsPlanningResults(
            percent_of_target=percent_of_target,
            amount_needed=amount_needed,
            target_retire_date=FireMaths.target_date(months_to_target, today),
            normal=FireMaths.scenario_result(inputs, inputs.normal_fire_spend, today),
            fat=FireMaths.scenario_result(inputs, inputs.fat_fire_spend, today),
            coast_now=FireMaths.coast_now(inputs),
            coast_after_min_fire=FireMaths.coast_after_interim_target(inputs),
            total_household_savings=total_household_savings,
        )

    @staticmethod
    def coast_fire_summary(
        current_net_worth: float,
        inputs: HouseholdInputs,
        today: Optional[date] = None
    ) -> CoastFireSummary:
        """
        How much is needed today to coast to the FIRE number by the target
        retirement age, and how far the household is towards it.
        """
        today = today or date.today()
        current_age = inputs.age_on(today)
        target_retirement_age = inputs.target_retirement_age or DEFAULT_COAST_RETIREMENT_AGE
        years_left = max(0, target_retirement_age - current_age)

        fire_number = FireMaths.target_amount(inputs.annual_spend, inputs.withdrawal_rate)
        coast_value = fire_number / math.pow(1 + inputs.expected_return / 100, years_left)

        if coast_value > 0 and math.isfinite(coast_value):
            progress = round(current_net_worth / coast_value * 100, 1)
        else:
            progress = 0.0

        return CoastFireSummary(
            value=round(coast_value) if math.isfinite(coast_value) else coast_value,
            fire_number_at_retirement=round(fire_number) if math.isfinite(fire_number) else fire_number,
            current_net_worth=round(current_net_worth),
            progress=progress,
            surplus=round(current_net_worth - coast_value) if math.isfinite(coast_value) else -math.inf,
            is_coast_fi=current_net_worth >= coast_value,
            current_age=current_age,
            target_retirement_age=target_retirement_age,
            years_left=years_left,
        )
