from functools import lru_cache

from fireplan.core.config import Settings, settings
from fireplan.services.historical_returns import HistoricalReturns


def get_settings() -> Settings:
    return settings


@lru_cache
def get_historical_returns() -> HistoricalReturns:
    # Loaded once and shared; the series is never mutated
    return HistoricalReturns.from_csv(settings.historical_returns_path)
