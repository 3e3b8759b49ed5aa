import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, status

from fireplan.api import deps
from fireplan.core.config import Settings
from fireplan.models.fire import (
    CalculateRequest,
    CalculateResponse,
    CoastFireSummary,
    CoastSummaryRequest,
    MathsPlanningInputs,
    MathsPlanningResults,
)
from fireplan.models.simulation import AggregateResult, SimulateRequest
from fireplan.services.fire_maths import FireMaths
from fireplan.services.historical_returns import HistoricalReturns, YearReturns
from fireplan.services.historical_simulator import HistoricalSimulator, SimulationConfigError
from fireplan.services.projection_service import ProjectionService

logger = logging.getLogger(__name__)

router = APIRouter()

@router.post("/simulate", response_model=AggregateResult)
def run_historical_simulation(
    request: SimulateRequest,
    series: HistoricalReturns = Depends(deps.get_historical_returns),
):
    """
    Backtest a retirement plan against every historical start year.

    Per-cycle yearly data is only returned when ``includeYearlyData`` is set.
    """
    try:
        result = HistoricalSimulator.run(request.config, series)
    except SimulationConfigError as e:
        logger.warning(f"Rejected simulation config: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if not request.include_yearly_data:
        result = result.model_copy(update={
            "simulations": [s.model_copy(update={"yearly_data": None}) for s in result.simulations]
        })
    return result

@router.get("/simulate")
def describe_historical_simulation(
    series: HistoricalReturns = Depends(deps.get_historical_returns),
):
    first_year, last_year = series.data_range
    return {
        "description": "Historical FIRE simulation API",
        "methods": {
            "POST": {
                "description": "Run historical simulations",
                "body": {
                    "config": {
                        "retirementDuration": "number (1-60), default 30",
                        "stockAllocation": "number (0-100), default 75",
                        "bondAllocation": "number (0-100), default 25",
                        "withdrawalStrategy": "'constant_dollar' | 'percent_of_portfolio'",
                        "initialWithdrawalRate": "number (up to 15), default 4",
                        "initialWithdrawalAmount": "number (optional, overrides the rate)",
                        "initialPortfolio": "number (required)",
                        "extraIncome": "ExtraIncomeSource[]",
                        "currentAge": "number (18-100, required)",
                    },
                    "includeYearlyData": "boolean (optional, include full yearly data)",
                },
            },
        },
        "dataRange": {
            "firstYear": first_year,
            "lastYear": last_year,
        },
    }

@router.get("/historical-returns")
def get_historical_returns_range(
    series: HistoricalReturns = Depends(deps.get_historical_returns),
):
    return {
        "firstYear": series.first_year,
        "lastYear": series.last_year,
        "years": series.span,
        "simulationCounts": {
            duration: series.available_simulation_count(duration)
            for duration in (20, 30, 40, 50)
            if duration <= series.span
        },
    }

@router.get("/historical-returns/{year}", response_model=YearReturns)
def get_historical_year(
    year: int,
    series: HistoricalReturns = Depends(deps.get_historical_returns),
):
    """Nominal and inflation-adjusted (real) returns for one historical year."""
    if year not in series:
        raise HTTPException(
            status_code=404,
            detail=f"No historical data for {year} ({series.first_year}-{series.last_year})",
        )
    return series.year(year)

@router.post("/calculate", response_model=CalculateResponse)
def calculate_projections(
    request: CalculateRequest,
    settings: Settings = Depends(deps.get_settings),
):
    """
    Deterministic year-by-year projection of the household against each
    scenario at the scenario's constant expected return.
    """
    if not request.scenarios:
        raise HTTPException(status_code=404, detail="No scenarios found")

    years_to_project = request.years_to_project or settings.DEFAULT_PROJECTION_YEARS
    results = ProjectionService.project_scenarios(request.inputs, request.scenarios, years_to_project)
    return CalculateResponse(results=results, inputs=request.inputs)

@router.post("/maths", response_model=MathsPlanningResults)
def calculate_maths_planning(
    inputs: MathsPlanningInputs,
    settings: Settings = Depends(deps.get_settings),
):
    defaults = {}
    if inputs.normal_fire_spend is None:
        defaults["normal_fire_spend"] = settings.DEFAULT_NORMAL_FIRE_SPEND
    if inputs.fat_fire_spend is None:
        defaults["fat_fire_spend"] = settings.DEFAULT_FAT_FIRE_SPEND
    if defaults:
        inputs = inputs.model_copy(update=defaults)

    return FireMaths.maths_planning(inputs, date.today())

@router.post("/coast", response_model=CoastFireSummary)
def calculate_coast_fire(request: CoastSummaryRequest):
    """
    Coast FIRE value: what is needed today so that growth alone reaches the
    FIRE number by the target retirement age.
    """
    return FireMaths.coast_fire_summary(request.current_net_worth, request.inputs, date.today())
