import pytest

from sari_ledger.engine import (
    amount_search_text,
    compute_dashboard_stats,
    filter_transactions,
    sort_transactions,
    working_set,
)
from sari_ledger.models import EXCHANGE_RATE, Transaction


def make_tx(tx_id: str, type: str, amount: float, **overrides) -> Transaction:
    data = dict(
        id=tx_id,
        type=type,
        client="Acme",
        date="2024-01-07",
        time="12:00",
        amount=amount,
        currency="USD",
        status="completed",
        method="Manual",
    )
    data.update(overrides)
    return Transaction(**data)


def test_dashboard_totals_normalize_to_usd() -> None:
    txs = [
        make_tx("TX-1", "sale", 1520, currency="IQD"),  # 1 USD, Sunday
        make_tx("TX-2", "cash", 10, date="2024-01-08"),  # Monday
        make_tx("TX-3", "sale", 99, status="pending"),
        make_tx("TX-4", "expense", 3, status="failed"),
        make_tx("TX-5", "debt", 3040, currency="IQD", status="pending"),
        make_tx("TX-6", "debt", 1, status="failed"),
        make_tx("TX-7", "debt", 50, status="completed"),
        make_tx("TX-8", "refund", 7),
    ]

    stats = compute_dashboard_stats(txs)

    assert stats.total_sales_usd == pytest.approx(11.0)
    assert stats.total_sales_iqd == pytest.approx(11.0 * EXCHANGE_RATE)
    assert stats.total_expenses == pytest.approx(3.0)
    assert stats.net_profit == pytest.approx(8.0)
    # Outstanding = pending + failed debts, expressed in IQD.
    assert stats.total_debt == pytest.approx(3 * EXCHANGE_RATE)
    assert stats.count == 8
    assert stats.weekly_data[0] == pytest.approx(1.0)
    assert stats.weekly_data[1] == pytest.approx(10.0)
    assert sum(stats.weekly_data) == pytest.approx(11.0)
    assert stats.profit_margin == pytest.approx(8 / 11 * 100)


def test_dashboard_profit_margin_is_clamped() -> None:
    loss = compute_dashboard_stats(
        [make_tx("TX-1", "sale", 10), make_tx("TX-2", "expense", 30)]
    )
    empty = compute_dashboard_stats([])

    assert loss.profit_margin == 0.0
    assert empty.profit_margin == 0.0
    assert empty.weekly_data == [0.0] * 7
    assert empty.count == 0


def test_dashboard_invalid_date_only_skips_weekly_bucket() -> None:
    stats = compute_dashboard_stats([make_tx("TX-1", "sale", 5, date="not a date")])

    assert stats.total_sales_usd == 5
    assert sum(stats.weekly_data) == 0


@pytest.mark.parametrize(
    "amount, expected", [(1200.0, "1200"), (12.5, "12.5"), (0.0, "0")]
)
def test_amount_search_text(amount, expected) -> None:
    assert amount_search_text(amount) == expected


def test_search_matches_client_amount_and_raw_text() -> None:
    txs = [
        make_tx("TX-1", "sale", 1200, client="Acme"),
        make_tx("TX-2", "sale", 5, client="Other", raw_text="Invoice ACME-77"),
        make_tx("TX-3", "sale", 300, client="Zed"),
    ]

    by_name = filter_transactions(txs, search="acme")
    by_amount = filter_transactions(txs, search="1200")

    assert [t.id for t in by_name] == ["TX-1", "TX-2"]
    assert [t.id for t in by_amount] == ["TX-1"]


def test_view_contexts_and_history_type() -> None:
    txs = [
        make_tx("TX-1", "sale", 1),
        make_tx("TX-2", "cash", 1),
        make_tx("TX-3", "expense", 1),
        make_tx("TX-4", "refund", 1),
        make_tx("TX-5", "debt", 1, status="pending"),
    ]

    def ids(rows):
        return [t.id for t in rows]

    assert ids(filter_transactions(txs, view="debts")) == ["TX-5"]
    assert ids(filter_transactions(txs, view="dashboard", history_type="sale")) == [
        "TX-1",
        "TX-2",
        "TX-3",
        "TX-4",
        "TX-5",
    ]
    assert ids(
        filter_transactions(txs, view="transactions", history_type="sale")
    ) == ["TX-1", "TX-2"]
    assert ids(
        filter_transactions(txs, view="transactions", history_type="expense")
    ) == ["TX-3", "TX-4"]
    assert len(filter_transactions(txs, view="transactions")) == 5


def test_unknown_view_or_history_type() -> None:
    with pytest.raises(ValueError):
        filter_transactions([], view="reports")
    with pytest.raises(ValueError):
        filter_transactions([], history_type="debt")


def test_sort_newest_and_oldest_use_date_and_time() -> None:
    txs = [
        make_tx("TX-1", "sale", 1, date="2024-01-01", time="14:00"),
        make_tx("TX-2", "sale", 1, date="2024-01-01", time="09:30 AM"),
        make_tx("TX-3", "sale", 1, date="2024-01-02", time=""),
        make_tx("TX-4", "sale", 1, date="garbage", time="23:59"),
        make_tx("TX-5", "sale", 1, date="2024-01-01", time="02:00 PM"),
    ]

    newest = [t.id for t in sort_transactions(txs, "newest")]
    oldest = [t.id for t in sort_transactions(txs, "oldest")]

    assert newest == ["TX-3", "TX-1", "TX-5", "TX-2", "TX-4"]
    assert oldest == ["TX-4", "TX-2", "TX-1", "TX-5", "TX-3"]


def test_sort_by_amount_is_stable() -> None:
    txs = [
        make_tx("TX-1", "sale", 5),
        make_tx("TX-2", "sale", 9),
        make_tx("TX-3", "sale", 5),
    ]

    assert [t.id for t in sort_transactions(txs, "highest")] == [
        "TX-2",
        "TX-1",
        "TX-3",
    ]
    assert [t.id for t in sort_transactions(txs, "lowest")] == [
        "TX-1",
        "TX-3",
        "TX-2",
    ]


def test_sort_unknown_option() -> None:
    with pytest.raises(ValueError):
        sort_transactions([], "alphabetical")


def test_working_set_filters_then_sorts() -> None:
    txs = [
        make_tx("TX-1", "debt", 10, status="pending", date="2024-01-01"),
        make_tx("TX-2", "sale", 20, date="2024-01-03"),
        make_tx("TX-3", "debt", 30, status="pending", date="2024-01-02"),
    ]

    rows = working_set(txs, view="debts", sort="newest")

    assert [t.id for t in rows] == ["TX-3", "TX-1"]
