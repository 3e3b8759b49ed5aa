import logging
from pathlib import Path
from typing import List, Sequence, Tuple

import numpy as np

from fireplan.models.base import CamelModel

logger = logging.getLogger(__name__)


class HistoricalDataError(ValueError):
    """Raised when the historical series cannot be used as a contiguous table."""


class YearReturns(CamelModel):
    year: int
    stocks: float
    bonds: float
    inflation: float
    real_stocks: float
    real_bonds: float


class HistoricalReturns:
    """
    Read-only, year-indexed table of annual asset returns and inflation.

    Values are decimal fractions (0.07 == 7%). Rows live in contiguous numpy
    arrays indexed by ``year - first_year``, so lookups are O(1) and a
    duration check is a comparison against ``span``.

    Instances are never mutated after construction and can be shared freely
    between requests.
    """
    def __init__(
        self,
        years: Sequence[int],
        stocks: Sequence[float],
        bonds: Sequence[float],
        inflation: Sequence[float],
    ):
        years_arr = np.asarray(years, dtype=int)
        if years_arr.size == 0:
            raise HistoricalDataError("Historical series is empty")
        if not (len(stocks) == len(bonds) == len(inflation) == years_arr.size):
            raise HistoricalDataError("Historical series columns have different lengths")

        order = np.argsort(years_arr)
        years_arr = years_arr[order]
        if np.any(np.diff(years_arr) != 1):
            raise HistoricalDataError("Historical series years must be consecutive with no gaps or duplicates")

        self.first_year = int(years_arr[0])
        self.last_year = int(years_arr[-1])
        self.stocks = np.asarray(stocks, dtype=float)[order]
        self.bonds = np.asarray(bonds, dtype=float)[order]
        self.inflation = np.asarray(inflation, dtype=float)[order]
        for arr in (self.stocks, self.bonds, self.inflation):
            arr.setflags(write=False)

    @classmethod
    def from_csv(cls, path: Path) -> "HistoricalReturns":
        """Load a ``year,stocks,bonds,inflation`` CSV with a header row."""
        try:
            table = np.loadtxt(path, delimiter=",", skiprows=1, ndmin=2)
        except (OSError, ValueError) as e:
            raise HistoricalDataError(f"Could not read historical returns from {path}: {e}") from e

        if table.shape[0] == 0:
            raise HistoricalDataError(f"Historical series is empty: {path}")
        if table.shape[1] != 4:
            raise HistoricalDataError(f"Expected 4 columns in {path}, found {table.shape[1]}")

        series = cls(
            years=table[:, 0].astype(int),
            stocks=table[:, 1],
            bonds=table[:, 2],
            inflation=table[:, 3],
        )
        logger.info(f"Loaded historical returns {series.first_year}-{series.last_year} from {path}")
        return series

    @property
    def span(self) -> int:
        return self.last_year - self.first_year + 1

    @property
    def data_range(self) -> Tuple[int, int]:
        return self.first_year, self.last_year

    def __contains__(self, year: int) -> bool:
        return self.first_year <= year <= self.last_year

    def _index(self, year: int) -> int:
        if year not in self:
            raise KeyError(f"No historical data for {year} (range {self.first_year}-{self.last_year})")
        return year - self.first_year

    def year(self, year: int) -> YearReturns:
        i = self._index(year)
        inflation = float(self.inflation[i])
        return YearReturns(
            year=year,
            stocks=float(self.stocks[i]),
            bonds=float(self.bonds[i]),
            inflation=inflation,
            real_stocks=real_return(float(self.stocks[i]), inflation),
            real_bonds=real_return(float(self.bonds[i]), inflation),
        )

    def window(self, start_year: int, length: int) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """(stocks, bonds, inflation) views for ``length`` years from ``start_year``."""
        start = self._index(start_year)
        stop = start + length
        if length < 1 or stop > self.span:
            raise KeyError(f"{length}-year window from {start_year} runs past {self.last_year}")
        return self.stocks[start:stop], self.bonds[start:stop], self.inflation[start:stop]

    def valid_start_years(self, duration: int) -> List[int]:
        if duration < 1 or duration > self.span:
            return []
        return list(range(self.first_year, self.last_year - duration + 2))

    def available_simulation_count(self, duration: int) -> int:
        return len(self.valid_start_years(duration))


def real_return(nominal: float, inflation: float) -> float:
    return (1 + nominal) / (1 + inflation) - 1
