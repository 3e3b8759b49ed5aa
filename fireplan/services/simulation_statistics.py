import logging
from typing import List, Sequence

import numpy as np

from fireplan.models.simulation import (
    AggregateResult,
    CaseSummary,
    CycleResult,
    FailureSummary,
    PercentileChartPoint,
    PercentileValues,
    SimulationConfig,
    WorstCase,
)

logger = logging.getLogger(__name__)

PERCENTILES = (10, 25, 50, 75, 90)


class SimulationStatistics:
    """Reduces a batch of historical cycles to summary statistics."""

    @staticmethod
    def percentiles(values: Sequence[float]) -> PercentileValues:
        """
        Nearest-rank p10/p25/p50/p75/p90 (the smallest value with at least
        p% of the distribution at or below it). An empty input gives zeros.
        """
        if len(values) == 0:
            return PercentileValues()
        p10, p25, p50, p75, p90 = np.percentile(
            np.asarray(values, dtype=float), PERCENTILES, method="inverted_cdf"
        )
        return PercentileValues(p10=float(p10), p25=float(p25), p50=float(p50), p75=float(p75), p90=float(p90))

    @staticmethod
    def percentiles_by_year(simulations: Sequence[CycleResult], duration: int) -> List[PercentileChartPoint]:
        """
        Fan-chart series: percentiles of ``portfolio_end`` at each year index.

        Only cycles with a record at that index contribute. A cycle that
        failed at an earlier index drops out rather than counting as zero.
        """
        points = []
        for year_index in range(duration):
            values = [
                sim.yearly_data[year_index].portfolio_end
                for sim in simulations
                if sim.yearly_data and len(sim.yearly_data) > year_index
            ]
            if not values:
                continue
            pct = SimulationStatistics.percentiles(values)
            points.append(PercentileChartPoint(year_index=year_index, **pct.model_dump()))
        return points

    @staticmethod
    def aggregate(config: SimulationConfig, simulations: List[CycleResult]) -> AggregateResult:
        successful = [s for s in simulations if s.success]
        failed = [s for s in simulations if not s.success]

        total = len(simulations)
        success_rate = (len(successful) / total) * 100.0 if total > 0 else 0.0

        # Failed cycles end at zero; keep them out of the outcome distributions
        final_values = [s.final_portfolio_value for s in successful]
        final_percentiles = SimulationStatistics.percentiles(final_values)
        mean_final = float(np.mean(final_values)) if final_values else 0.0

        withdrawal_percentiles = SimulationStatistics.percentiles(
            [s.average_annual_withdrawal for s in successful]
        )

        failures = [
            FailureSummary(start_year=s.start_year, failure_year=s.failure_year, years_lasted=s.years_lasted)
            for s in failed
        ]

        worst_case = None
        best_case = None
        smallest = None
        if simulations:
            worst = min(simulations, key=lambda s: (s.years_lasted, s.final_portfolio_value))
            worst_case = WorstCase(
                start_year=worst.start_year,
                years_lasted=worst.years_lasted,
                final_value=worst.final_portfolio_value,
            )
            best = max(simulations, key=lambda s: s.final_portfolio_value)
            best_case = CaseSummary(start_year=best.start_year, final_value=best.final_portfolio_value)

        non_zero = [s for s in successful if s.final_portfolio_value > 0]
        if non_zero:
            lowest = min(non_zero, key=lambda s: s.final_portfolio_value)
            smallest = CaseSummary(start_year=lowest.start_year, final_value=lowest.final_portfolio_value)

        logger.debug(f"Aggregated {total} cycles: {len(successful)} succeeded, {len(failed)} failed")

        return AggregateResult(
            config=config,
            simulations=simulations,
            total_simulations=total,
            successful_simulations=len(successful),
            failed_simulations=len(failed),
            success_rate=success_rate,
            median_final_portfolio=final_percentiles.p50,
            mean_final_portfolio=mean_final,
            final_portfolio_percentiles=final_percentiles,
            median_annual_withdrawal=withdrawal_percentiles.p50,
            withdrawal_percentiles=withdrawal_percentiles,
            failures=failures,
            worst_case=worst_case,
            best_case=best_case,
            smallest_final_portfolio=smallest,
            percentiles_by_year=SimulationStatistics.percentiles_by_year(simulations, config.retirement_duration),
        )
