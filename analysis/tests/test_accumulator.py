"""
Tests for running-sum accumulators, merging and finalization.
"""

import pytest

from analysis.calculations.accumulator import (
    Accumulator,
    AccumulatorSet,
    Summary,
    finalize,
)


def filled(prices=(), returns=(), years=()):
    acc = Accumulator()
    for p in prices:
        acc.add_price(p)
    for r in returns:
        acc.add_return(r)
    for y in years:
        acc.observe_year(y)
    return acc


class TestAccumulator:
    """Tests for Accumulator updates and merge."""

    def test_add_price_and_return(self):
        """Sums and counts follow each update."""
        acc = filled(prices=[10.0, 12.0], returns=[0.5, -0.25])

        assert acc.row_count == 2
        assert acc.sum_of_daily_average == 22.0
        assert acc.return_count == 2
        assert acc.sum_of_return == 0.25
        assert acc.sum_of_return_squared == pytest.approx(0.3125)

    def test_observe_year(self):
        """Year range widens in both directions."""
        acc = filled(years=[1990, 1985, 2001])

        assert (acc.min_year, acc.max_year) == (1985, 2001)

    def test_merge_is_addition(self):
        """Merged sums equal sums over the concatenated inputs."""
        left = filled(prices=[1.0], returns=[0.5], years=[2000])
        right = filled(prices=[3.0, 5.0], returns=[0.25, 0.125], years=[1999, 2003])

        merged = left.merge(right)

        assert merged == filled(
            prices=[1.0, 3.0, 5.0], returns=[0.5, 0.25, 0.125], years=[2000, 1999, 2003]
        )

    def test_merge_does_not_mutate(self):
        """merge returns a new object and leaves both inputs unchanged."""
        left = filled(prices=[1.0])
        right = filled(prices=[2.0])

        left.merge(right)

        assert left.row_count == 1
        assert right.row_count == 1

    def test_merge_with_empty(self):
        """An empty accumulator is the merge identity."""
        acc = filled(prices=[1.0], returns=[0.1], years=[2000])

        assert acc.merge(Accumulator()) == acc
        assert Accumulator().merge(acc) == acc

    def test_is_empty(self):
        """Empty means no rows and no returns, years alone do not count."""
        assert Accumulator().is_empty
        assert filled(years=[2000]).is_empty
        assert not filled(returns=[0.0]).is_empty


class TestAccumulatorSet:
    """Tests for AccumulatorSet."""

    def test_get_creates_on_demand(self):
        """Unknown keys get a fresh accumulator."""
        acc_set = AccumulatorSet()

        acc_set.get(7).add_price(1.0)

        assert acc_set.partitions[7].row_count == 1

    def test_merge_disjoint_and_shared_keys(self):
        """Shared keys add up, others are copied."""
        left = AccumulatorSet()
        left.get(1).add_price(1.0)
        left.get(2).add_price(2.0)
        left.observe_year(1990)
        right = AccumulatorSet()
        right.get(2).add_price(4.0)
        right.get(3).add_price(8.0)
        right.observe_year(2010)

        merged = left.merge(right)

        assert merged.partitions[1].row_count == 1
        assert merged.partitions[2].sum_of_daily_average == 6.0
        assert merged.partitions[3].sum_of_daily_average == 8.0
        assert (merged.min_year, merged.max_year) == (1990, 2010)

    def test_merge_copies_partitions(self):
        """Mutating the merged set leaves the inputs untouched."""
        left = AccumulatorSet()
        left.get('all').add_price(1.0)

        merged = left.merge(AccumulatorSet())
        merged.get('all').add_price(1.0)

        assert left.partitions['all'].row_count == 1


class TestFinalize:
    """Tests for finalize function."""

    def test_two_record_example(self):
        """Prices 10 and 10 with one return of 1.0."""
        summary = finalize(filled(prices=[10.0, 10.0], returns=[1.0]))

        assert summary.mean_price == 10.0
        assert summary.mean_daily_return == 1.0
        assert summary.volatility == 0.0
        assert summary.annualized_return == 252.0
        assert not summary.insufficient_data

    def test_known_volatility(self):
        """Population std of returns [0.1, -0.1] is 0.1."""
        summary = finalize(filled(prices=[1.0, 1.0, 1.0], returns=[0.1, -0.1]))

        assert summary.mean_daily_return == pytest.approx(0.0)
        assert summary.volatility == pytest.approx(0.1)

    def test_empty_accumulator(self):
        """Zero counts give None fields and never raise."""
        summary = finalize(Accumulator())

        assert summary == Summary(
            record_count=0,
            return_count=0,
            mean_price=None,
            volatility=None,
            mean_daily_return=None,
            annualized_return=None,
        )
        assert summary.insufficient_data

    def test_single_row_is_insufficient(self):
        """One row has a price but no return."""
        summary = finalize(filled(prices=[5.0]))

        assert summary.mean_price == 5.0
        assert summary.volatility is None
        assert summary.insufficient_data

    def test_to_dict(self):
        """to_dict includes the derived insufficient_data flag."""
        data = finalize(filled(prices=[1.0, 2.0], returns=[1.0], years=[2000])).to_dict()

        assert data['record_count'] == 2
        assert data['min_year'] == 2000
        assert data['insufficient_data'] is False
