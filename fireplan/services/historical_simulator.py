import logging
from typing import List, Sequence

from fireplan.models.simulation import (
    AggregateResult,
    CycleResult,
    ExtraIncomeSource,
    SimulationConfig,
    WithdrawalStrategy,
    YearlyCycleRecord,
)
from fireplan.services.historical_returns import HistoricalReturns
from fireplan.services.simulation_statistics import SimulationStatistics

logger = logging.getLogger(__name__)


class SimulationConfigError(ValueError):
    """A simulation config that cannot be run against the available data."""


class HistoricalSimulator:
    """
    Replays a retirement plan against every historical start year with a
    full window of data.

    Withdrawals are taken at the start of each year and the blended
    stock/bond return is applied to what is left:

        portfolio_end = (portfolio_start - net_withdrawal) * (1 + blended_return)

    All amounts are nominal. Constant-dollar withdrawals and inflation-linked
    extra income are scaled by cumulative historical inflation since the
    cycle started.
    """

    @staticmethod
    def portfolio_return(
        stock_allocation: float,
        bond_allocation: float,
        stock_return: float,
        bond_return: float
    ) -> float:
        return (stock_allocation / 100) * stock_return + (bond_allocation / 100) * bond_return

    @staticmethod
    def calculate_withdrawal(
        strategy: WithdrawalStrategy,
        portfolio_start: float,
        initial_withdrawal: float,
        withdrawal_rate: float,
        inflation_factor: float
    ) -> float:
        if strategy == WithdrawalStrategy.CONSTANT_DOLLAR:
            return initial_withdrawal * inflation_factor
        elif strategy == WithdrawalStrategy.PERCENT_OF_PORTFOLIO:
            return portfolio_start * (withdrawal_rate / 100)
        raise SimulationConfigError(f"Unknown withdrawal strategy: {strategy}")

    @staticmethod
    def calculate_extra_income(
        sources: Sequence[ExtraIncomeSource],
        age: int,
        inflation_factor: float
    ) -> float:
        total = 0.0
        for source in sources:
            if not source.is_active(age):
                continue
            if source.adjust_for_inflation:
                total += source.annual_amount * inflation_factor
            else:
                total += source.annual_amount
        return total

    @staticmethod
    def validate(config: SimulationConfig, series: HistoricalReturns) -> None:
        if config.retirement_duration > series.span:
            raise SimulationConfigError(
                f"Retirement duration of {config.retirement_duration} years exceeds the "
                f"{series.span} years of historical data ({series.first_year}-{series.last_year})"
            )

    @staticmethod
    def run_cycle(start_year: int, config: SimulationConfig, series: HistoricalReturns) -> CycleResult:
        """
        Simulate one cohort retiring in ``start_year``.

        The cycle stops in the first year the portfolio is exhausted: that
        year's row is recorded with a zero end balance, ``failure_year`` is set
        and ``years_lasted`` is the number of completed years before it.
        """
        duration = config.retirement_duration
        stocks, bonds, inflation = series.window(start_year, duration)

        initial_withdrawal = config.initial_withdrawal
        portfolio = config.initial_portfolio
        inflation_factor = 1.0
        minimum_portfolio = config.initial_portfolio
        minimum_year = start_year
        total_withdrawals = 0.0
        failure_year = None
        years_lasted = duration
        yearly_data: List[YearlyCycleRecord] = []

        for year_index in range(duration):
            year = start_year + year_index
            age = config.current_age + year_index
            portfolio_start = portfolio

            withdrawal = HistoricalSimulator.calculate_withdrawal(
                config.withdrawal_strategy,
                portfolio_start,
                initial_withdrawal,
                config.initial_withdrawal_rate,
                inflation_factor
            )
            extra_income = HistoricalSimulator.calculate_extra_income(config.extra_income, age, inflation_factor)
            net_withdrawal = max(0.0, withdrawal - extra_income)
            portfolio_return = HistoricalSimulator.portfolio_return(
                config.stock_allocation,
                config.bond_allocation,
                float(stocks[year_index]),
                float(bonds[year_index])
            )

            portfolio = (portfolio_start - net_withdrawal) * (1 + portfolio_return)

            if portfolio <= 0:
                portfolio = 0.0
                failure_year = year
                years_lasted = year_index
                minimum_portfolio = 0.0
                minimum_year = year
            else:
                total_withdrawals += withdrawal
                inflation_factor *= 1 + float(inflation[year_index])
                if portfolio < minimum_portfolio:
                    minimum_portfolio = portfolio
                    minimum_year = year

            yearly_data.append(YearlyCycleRecord(
                year=year,
                year_index=year_index,
                age=age,
                portfolio_start=portfolio_start,
                withdrawal=withdrawal,
                extra_income=extra_income,
                net_withdrawal=net_withdrawal,
                stock_return=float(stocks[year_index]),
                bond_return=float(bonds[year_index]),
                portfolio_return=portfolio_return,
                portfolio_end=portfolio,
                cumulative_inflation=inflation_factor - 1,
            ))

            if failure_year is not None:
                break

        return CycleResult(
            start_year=start_year,
            end_year=start_year + duration - 1,
            success=failure_year is None,
            failure_year=failure_year,
            years_lasted=years_lasted,
            final_portfolio_value=portfolio,
            final_portfolio_real=portfolio / inflation_factor,
            minimum_portfolio_value=minimum_portfolio,
            minimum_portfolio_year=minimum_year,
            total_withdrawals=total_withdrawals,
            average_annual_withdrawal=total_withdrawals / years_lasted if years_lasted > 0 else 0.0,
            yearly_data=yearly_data,
        )

    @staticmethod
    def run_cycles(config: SimulationConfig, series: HistoricalReturns) -> List[CycleResult]:
        HistoricalSimulator.validate(config, series)
        return [
            HistoricalSimulator.run_cycle(start_year, config, series)
            for start_year in series.valid_start_years(config.retirement_duration)
        ]

    @staticmethod
    def run(config: SimulationConfig, series: HistoricalReturns) -> AggregateResult:
        """
        Run every historical cycle for ``config`` and reduce the batch to
        success rate, percentile tables and notable cases.

        Raises:
            SimulationConfigError: the retirement duration is longer than the
                historical range.
        """
        simulations = HistoricalSimulator.run_cycles(config, series)
        result = SimulationStatistics.aggregate(config, simulations)
        logger.info(
            f"Historical simulation: {result.total_simulations} cycles over "
            f"{config.retirement_duration} years, success rate {result.success_rate:.1f}%"
        )
        return result
