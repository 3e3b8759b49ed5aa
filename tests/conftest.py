import pytest
from fastapi.testclient import TestClient

from fireplan.api import deps
from fireplan.main import app
from fireplan.services.historical_returns import HistoricalReturns


@pytest.fixture
def make_series():
    """Build a synthetic HistoricalReturns; scalars are repeated for every year."""
    def _make(years=10, first_year=2000, stocks=0.0, bonds=0.0, inflation=0.0):
        def column(value):
            return list(value) if isinstance(value, (list, tuple)) else [value] * years
        return HistoricalReturns(
            years=list(range(first_year, first_year + years)),
            stocks=column(stocks),
            bonds=column(bonds),
            inflation=column(inflation),
        )
    return _make


@pytest.fixture
def flat_series(make_series):
    """Ten years (2000-2009) of 5% stocks, 2% bonds and 0% inflation."""
    return make_series(years=10, stocks=0.05, bonds=0.02, inflation=0.0)


@pytest.fixture
def client(flat_series):
    app.dependency_overrides[deps.get_historical_returns] = lambda: flat_series
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
