"""
Running-sum accumulators and their finalization into summaries.
Merging is plain addition, so partial results combine in any order.
"""

from dataclasses import dataclass, field, asdict, replace
from typing import Any, Dict, Hashable, Optional

from analysis.calculations.returns import annualize_return
from analysis.calculations.volatility import volatility_from_moments


def _min_year(a: Optional[int], b: Optional[int]) -> Optional[int]:
    if a is None:
        return b
    if b is None:
        return a
    return min(a, b)


def _max_year(a: Optional[int], b: Optional[int]) -> Optional[int]:
    if a is None:
        return b
    if b is None:
        return a
    return max(a, b)


@dataclass
class Accumulator:
    """Mutable running sums for one partition."""
    row_count: int = 0
    sum_of_daily_average: float = 0.0
    return_count: int = 0
    sum_of_return: float = 0.0
    sum_of_return_squared: float = 0.0
    min_year: Optional[int] = None
    max_year: Optional[int] = None

    def add_price(self, average: float) -> None:
        self.row_count += 1
        self.sum_of_daily_average += average

    def add_return(self, ret: float) -> None:
        self.return_count += 1
        self.sum_of_return += ret
        self.sum_of_return_squared += ret * ret

    def observe_year(self, year: int) -> None:
        self.min_year = _min_year(self.min_year, year)
        self.max_year = _max_year(self.max_year, year)

    def merge(self, other: 'Accumulator') -> 'Accumulator':
        """Return a new Accumulator holding the combined sums."""
        return Accumulator(
            row_count=self.row_count + other.row_count,
            sum_of_daily_average=self.sum_of_daily_average + other.sum_of_daily_average,
            return_count=self.return_count + other.return_count,
            sum_of_return=self.sum_of_return + other.sum_of_return,
            sum_of_return_squared=self.sum_of_return_squared + other.sum_of_return_squared,
            min_year=_min_year(self.min_year, other.min_year),
            max_year=_max_year(self.max_year, other.max_year),
        )

    @property
    def is_empty(self) -> bool:
        return self.row_count == 0 and self.return_count == 0


@dataclass
class AccumulatorSet:
    """
    Accumulators keyed by partition, created on demand.

    min_year/max_year cover every record the pass looked at, including
    records excluded from all partitions when the engine tracks them.
    """
    partitions: Dict[Hashable, Accumulator] = field(default_factory=dict)
    min_year: Optional[int] = None
    max_year: Optional[int] = None

    def get(self, key: Hashable) -> Accumulator:
        acc = self.partitions.get(key)
        if acc is None:
            acc = Accumulator()
            self.partitions[key] = acc
        return acc

    def observe_year(self, year: int) -> None:
        self.min_year = _min_year(self.min_year, year)
        self.max_year = _max_year(self.max_year, year)

    def merge(self, other: 'AccumulatorSet') -> 'AccumulatorSet':
        merged = AccumulatorSet(
            partitions={key: replace(acc) for key, acc in self.partitions.items()},
            min_year=_min_year(self.min_year, other.min_year),
            max_year=_max_year(self.max_year, other.max_year),
        )
        for key, acc in other.partitions.items():
            if key in merged.partitions:
                merged.partitions[key] = merged.partitions[key].merge(acc)
            else:
                merged.partitions[key] = replace(acc)
        return merged


@dataclass(frozen=True)
class Summary:
    """Finalized statistics for one partition; None means undefined (N/A)."""
    record_count: int
    return_count: int
    mean_price: Optional[float]
    volatility: Optional[float]
    mean_daily_return: Optional[float]
    annualized_return: Optional[float]
    min_year: Optional[int] = None
    max_year: Optional[int] = None

    @property
    def insufficient_data(self) -> bool:
        """Fewer than 2 rows or no usable return pair."""
        return self.record_count < 2 or self.return_count == 0

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        result['insufficient_data'] = self.insufficient_data
        return result


def finalize(acc: Accumulator) -> Summary:
    """
    Derive a Summary from an Accumulator.

    mean_price   = sum_of_daily_average / row_count
    mean_return  = sum_of_return / return_count
    volatility   = sqrt(max(0, E[r^2] - E[r]^2))
    annualized   = mean_return * 252

    Pure function of the accumulator; zero counts give None, never raise.
    """
    mean_price = None
    if acc.row_count > 0:
        mean_price = acc.sum_of_daily_average / acc.row_count

    mean_return = None
    annualized = None
    if acc.return_count > 0:
        mean_return = acc.sum_of_return / acc.return_count
        annualized = annualize_return(mean_return)

    volatility = volatility_from_moments(
        acc.sum_of_return,
        acc.sum_of_return_squared,
        acc.return_count
    )

    return Summary(
        record_count=acc.row_count,
        return_count=acc.return_count,
        mean_price=mean_price,
        volatility=volatility,
        mean_daily_return=mean_return,
        annualized_return=annualized,
        min_year=acc.min_year,
        max_year=acc.max_year,
    )
