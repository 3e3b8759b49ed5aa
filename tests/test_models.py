from datetime import date

import pytest
from pydantic import ValidationError

from fireplan.core.config import Settings
from fireplan.models.fire import HouseholdInputs, MathsPlanningInputs, Scenario, exact_age
from fireplan.models.simulation import ExtraIncomeSource, SimulationConfig, WithdrawalStrategy


class TestSimulationConfig:
    def test_defaults(self):
        config = SimulationConfig(initial_portfolio=1_000_000, current_age=60)
        assert config.retirement_duration == 30
        assert (config.stock_allocation, config.bond_allocation) == (75, 25)
        assert config.withdrawal_strategy == WithdrawalStrategy.CONSTANT_DOLLAR
        assert config.initial_withdrawal == pytest.approx(40_000)

    def test_camel_case_input(self):
        config = SimulationConfig.model_validate({
            "retirementDuration": 40,
            "stockAllocation": 60,
            "bondAllocation": 40,
            "withdrawalStrategy": "percent_of_portfolio",
            "initialPortfolio": 500_000,
            "currentAge": 45,
        })
        assert config.retirement_duration == 40
        assert config.withdrawal_strategy == WithdrawalStrategy.PERCENT_OF_PORTFOLIO

    def test_explicit_amount_overrides_rate(self):
        config = SimulationConfig(initial_portfolio=1_000_000, current_age=60, initial_withdrawal_amount=30_000)
        assert config.initial_withdrawal == 30_000

    @pytest.mark.parametrize("stocks,bonds", [(60, 30), (80, 30), (0, 0)])
    def test_allocation_must_sum_to_100(self, stocks, bonds):
        with pytest.raises(ValidationError):
            SimulationConfig(initial_portfolio=1, current_age=60, stock_allocation=stocks, bond_allocation=bonds)

    @pytest.mark.parametrize("field,value", [
        ("retirement_duration", 0),
        ("retirement_duration", 61),
        ("stock_allocation", 101),
        ("initial_withdrawal_rate", 16),
        ("initial_portfolio", 0),
        ("current_age", 17),
        ("current_age", 101),
    ])
    def test_out_of_range(self, field, value):
        values = dict(initial_portfolio=1_000, current_age=60)
        values[field] = value
        with pytest.raises(ValidationError):
            SimulationConfig(**values)

    def test_percent_strategy_needs_positive_rate(self):
        with pytest.raises(ValidationError):
            SimulationConfig(
                initial_portfolio=1_000,
                current_age=60,
                withdrawal_strategy=WithdrawalStrategy.PERCENT_OF_PORTFOLIO,
                initial_withdrawal_rate=0,
                initial_withdrawal_amount=100,
            )

    def test_zero_rate_needs_amount(self):
        with pytest.raises(ValidationError):
            SimulationConfig(initial_portfolio=1_000, current_age=60, initial_withdrawal_rate=0)

        config = SimulationConfig(
            initial_portfolio=1_000, current_age=60, initial_withdrawal_rate=0, initial_withdrawal_amount=50
        )
        assert config.initial_withdrawal == 50

    def test_unknown_strategy(self):
        with pytest.raises(ValidationError):
            SimulationConfig(initial_portfolio=1_000, current_age=60, withdrawal_strategy="guardrails")


class TestExtraIncomeSource:
    def test_open_ended(self):
        source = ExtraIncomeSource(name="Pension", annual_amount=10_000, start_age=67)
        assert not source.is_active(66)
        assert source.is_active(100)

    def test_end_before_start(self):
        with pytest.raises(ValidationError):
            ExtraIncomeSource(name="Consulting", annual_amount=10_000, start_age=60, end_age=55)

    def test_negative_amount(self):
        with pytest.raises(ValidationError):
            ExtraIncomeSource(name="Consulting", annual_amount=-1, start_age=60)


class TestHouseholdInputs:
    def test_requires_age_or_birth_date(self):
        with pytest.raises(ValidationError):
            HouseholdInputs(annual_spend=40_000)

    def test_age_from_birth_date(self):
        inputs = HouseholdInputs(date_of_birth=date(1990, 3, 10))
        assert inputs.age_on(date(2025, 3, 9)) == 34
        assert inputs.age_on(date(2025, 3, 10)) == 35

    def test_explicit_age_wins(self):
        inputs = HouseholdInputs(current_age=40, date_of_birth=date(1990, 3, 10))
        assert inputs.age_on(date(2025, 1, 1)) == 40

    def test_exact_age(self):
        assert exact_age(date(2000, 1, 1), date(2010, 1, 1)) == pytest.approx(10, abs=0.01)
        assert exact_age(date(2000, 1, 1), date(2000, 7, 2)) == pytest.approx(0.5, abs=0.01)


class TestMathsPlanningInputs:
    base = dict(current_age=35, fire_spend=40_000, swr=4, expected_return=7, coast_target_age=55)

    def test_valid(self):
        assert MathsPlanningInputs(**self.base).coast_target_age == 55

    @pytest.mark.parametrize("field,value", [
        ("coast_target_age", 1e7),
        ("coast_target_age", 121),
        ("current_age", 121),
        ("current_age", -1),
    ])
    def test_ages_are_bounded(self, field, value):
        values = dict(self.base)
        values[field] = value
        with pytest.raises(ValidationError):
            MathsPlanningInputs(**values)


class TestScenario:
    def test_is_immutable(self):
        scenario = Scenario(name="Lean", annual_spend=30_000)
        with pytest.raises(ValidationError):
            scenario.annual_spend = 40_000

    def test_serialises_camel_case(self):
        wire = Scenario(name="Lean", annual_spend=30_000).model_dump(by_alias=True)
        assert wire["annualSpend"] == 30_000
        assert wire["statePensionAge"] == 67

    @pytest.mark.parametrize("field,value", [("name", ""), ("annual_spend", 0), ("state_pension_age", 59)])
    def test_invalid(self, field, value):
        values = dict(name="Lean", annual_spend=30_000)
        values[field] = value
        with pytest.raises(ValidationError):
            Scenario(**values)


class TestSettings:
    def test_cors_origins_from_comma_separated_string(self):
        settings = Settings(_env_file=None, CORS_ORIGIN_URLS="http://localhost:3000, https://example.com")
        assert settings.CORS_ORIGIN_URLS == ["http://localhost:3000", "https://example.com"]

    def test_log_level_is_normalised(self):
        assert Settings(_env_file=None, LOG_LEVEL="debug").LOG_LEVEL == "DEBUG"

    def test_historical_returns_path(self, tmp_path):
        assert Settings(_env_file=None).historical_returns_path.name == "historical_returns.csv"

        override = tmp_path / "returns.csv"
        assert Settings(_env_file=None, HISTORICAL_RETURNS_PATH=override).historical_returns_path == override
