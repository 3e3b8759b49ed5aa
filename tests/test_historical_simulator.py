"""Tests for the per-cycle historical backtest."""

import pytest

from fireplan.models.simulation import ExtraIncomeSource, SimulationConfig, WithdrawalStrategy
from fireplan.services.historical_simulator import HistoricalSimulator, SimulationConfigError


def config(**overrides) -> SimulationConfig:
    values = dict(
        retirement_duration=5,
        stock_allocation=100,
        bond_allocation=0,
        initial_portfolio=1_000_000,
        initial_withdrawal_rate=4,
        current_age=65,
    )
    values.update(overrides)
    return SimulationConfig(**values)


class TestHelpers:
    def test_blended_return(self):
        assert HistoricalSimulator.portfolio_return(60, 40, 0.10, 0.05) == pytest.approx(0.08)

    def test_constant_dollar_scales_with_inflation(self):
        withdrawal = HistoricalSimulator.calculate_withdrawal(
            WithdrawalStrategy.CONSTANT_DOLLAR, 500_000, 40_000, 4, 1.1
        )
        assert withdrawal == pytest.approx(44_000)

    def test_percent_of_portfolio_ignores_inflation(self):
        withdrawal = HistoricalSimulator.calculate_withdrawal(
            WithdrawalStrategy.PERCENT_OF_PORTFOLIO, 1_200_000, 40_000, 4, 1.5
        )
        assert withdrawal == pytest.approx(48_000)

    def test_extra_income_window(self):
        sources = [ExtraIncomeSource(name="Part-time", annual_amount=10_000, start_age=60, end_age=62)]
        assert HistoricalSimulator.calculate_extra_income(sources, 59, 1.0) == 0
        assert HistoricalSimulator.calculate_extra_income(sources, 60, 1.0) == 10_000
        assert HistoricalSimulator.calculate_extra_income(sources, 62, 1.0) == 10_000
        assert HistoricalSimulator.calculate_extra_income(sources, 63, 1.0) == 0

    def test_extra_income_nominal_and_real(self):
        sources = [
            ExtraIncomeSource(name="Annuity", annual_amount=10_000, start_age=60, adjust_for_inflation=False),
            ExtraIncomeSource(name="Pension", annual_amount=10_000, start_age=60),
        ]
        assert HistoricalSimulator.calculate_extra_income(sources, 70, 1.2) == pytest.approx(22_000)


class TestRunCycle:
    def test_exact_depletion_is_failure(self, make_series):
        series = make_series(years=5)
        cycle = HistoricalSimulator.run_cycle(
            2000, config(initial_portfolio=100_000, initial_withdrawal_amount=25_000), series
        )

        assert cycle.success is False
        assert cycle.failure_year == 2003
        assert cycle.years_lasted == 3
        assert len(cycle.yearly_data) == 4
        assert cycle.yearly_data[-1].portfolio_end == 0
        assert cycle.final_portfolio_value == 0
        assert cycle.final_portfolio_real == 0
        assert cycle.total_withdrawals == pytest.approx(75_000)
        assert cycle.average_annual_withdrawal == pytest.approx(25_000)
        assert cycle.minimum_portfolio_value == 0
        assert cycle.minimum_portfolio_year == 2003

    def test_failure_in_first_year(self, make_series):
        series = make_series(years=5)
        cycle = HistoricalSimulator.run_cycle(
            2000, config(initial_portfolio=10_000, initial_withdrawal_amount=50_000), series
        )

        assert cycle.failure_year == 2000
        assert cycle.years_lasted == 0
        assert cycle.average_annual_withdrawal == 0

    def test_no_withdrawals_never_fails(self, flat_series):
        cycle = HistoricalSimulator.run_cycle(
            2000, config(retirement_duration=10, initial_withdrawal_amount=0), flat_series
        )

        assert cycle.success is True
        assert cycle.failure_year is None
        assert cycle.years_lasted == 10
        assert cycle.end_year == 2009
        assert cycle.final_portfolio_value == pytest.approx(1_000_000 * 1.05 ** 10)
        assert cycle.minimum_portfolio_value == 1_000_000
        assert cycle.minimum_portfolio_year == 2000

    def test_withdrawal_before_growth(self, flat_series):
        cycle = HistoricalSimulator.run_cycle(2000, config(retirement_duration=1), flat_series)
        assert cycle.final_portfolio_value == pytest.approx((1_000_000 - 40_000) * 1.05)

    def test_constant_dollar_follows_inflation(self, make_series):
        series = make_series(years=3, inflation=0.1)
        cycle = HistoricalSimulator.run_cycle(
            2000, config(retirement_duration=3, initial_withdrawal_amount=10_000), series
        )
        withdrawals = [row.withdrawal for row in cycle.yearly_data]

        assert withdrawals == pytest.approx([10_000, 11_000, 12_100])
        assert cycle.final_portfolio_value == pytest.approx(966_900)
        assert cycle.final_portfolio_real == pytest.approx(966_900 / 1.331)
        assert cycle.yearly_data[-1].cumulative_inflation == pytest.approx(0.331)

    def test_percent_of_portfolio(self, make_series):
        series = make_series(years=2, stocks=0.1)
        cycle = HistoricalSimulator.run_cycle(
            2000,
            config(retirement_duration=2, withdrawal_strategy=WithdrawalStrategy.PERCENT_OF_PORTFOLIO),
            series,
        )

        assert cycle.yearly_data[0].withdrawal == pytest.approx(40_000)
        assert cycle.yearly_data[1].portfolio_start == pytest.approx(1_056_000)
        assert cycle.yearly_data[1].withdrawal == pytest.approx(42_240)

    def test_extra_income_covers_withdrawal(self, make_series):
        series = make_series(years=3)
        pension = ExtraIncomeSource(name="Pension", annual_amount=40_000, start_age=66)
        cycle = HistoricalSimulator.run_cycle(
            2000, config(retirement_duration=3, extra_income=[pension]), series
        )
        rows = cycle.yearly_data

        assert rows[0].net_withdrawal == pytest.approx(40_000)
        assert rows[1].extra_income == pytest.approx(40_000)
        assert rows[1].net_withdrawal == 0
        assert cycle.final_portfolio_value == pytest.approx(960_000)
        # Gross withdrawals are still counted
        assert cycle.total_withdrawals == pytest.approx(120_000)

    def test_nominal_income_loses_value(self, make_series):
        series = make_series(years=2, inflation=0.1)
        annuity = ExtraIncomeSource(name="Annuity", annual_amount=10_000, start_age=65, adjust_for_inflation=False)
        cycle = HistoricalSimulator.run_cycle(
            2000,
            config(retirement_duration=2, initial_withdrawal_amount=40_000, extra_income=[annuity]),
            series,
        )
        assert cycle.yearly_data[1].net_withdrawal == pytest.approx(44_000 - 10_000)

    def test_rows_record_age_and_returns(self, flat_series):
        cycle = HistoricalSimulator.run_cycle(
            2003, config(stock_allocation=60, bond_allocation=40), flat_series
        )
        row = cycle.yearly_data[2]

        assert row.year == 2005
        assert row.year_index == 2
        assert row.age == 67
        assert row.stock_return == pytest.approx(0.05)
        assert row.bond_return == pytest.approx(0.02)
        assert row.portfolio_return == pytest.approx(0.038)


class TestRun:
    def test_one_cycle_per_start_year(self, flat_series):
        cycles = HistoricalSimulator.run_cycles(config(retirement_duration=5), flat_series)
        assert [c.start_year for c in cycles] == [2000, 2001, 2002, 2003, 2004, 2005]

    def test_duration_longer_than_data(self, flat_series):
        with pytest.raises(SimulationConfigError):
            HistoricalSimulator.run(config(retirement_duration=11), flat_series)

    def test_duration_equal_to_data(self, flat_series):
        result = HistoricalSimulator.run(config(retirement_duration=10), flat_series)
        assert result.total_simulations == 1

    def test_aggregate(self, flat_series):
        result = HistoricalSimulator.run(config(retirement_duration=5), flat_series)

        assert result.total_simulations == 6
        assert result.success_rate == 100
        assert result.failures == []
        assert len(result.percentiles_by_year) == 5

    def test_packaged_history(self):
        from fireplan.core.config import settings
        from fireplan.services.historical_returns import HistoricalReturns

        series = HistoricalReturns.from_csv(settings.historical_returns_path)
        result = HistoricalSimulator.run(config(retirement_duration=30, initial_withdrawal_rate=4), series)

        assert result.total_simulations == 68
        assert 0 <= result.success_rate <= 100
        assert result.successful_simulations + result.failed_simulations == 68
