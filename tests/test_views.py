"""End-to-end tests: store → snapshot → cycle overview → report."""

from __future__ import annotations

import pytest

from finance_ledger.db import SQLiteStore
from finance_ledger.models import EXPENSE, INCOME, new_transaction
from finance_ledger.reports import cycle_history, summary_report
from finance_ledger.snapshot import LedgerSnapshot, load_snapshot
from finance_ledger.transfers import record_transfer
from finance_ledger.views import cycle_overview


@pytest.fixture
def populated_store(tmp_path):
    store = SQLiteStore(tmp_path / 'ledger.db')
    rows = [
        ('2024-01-20', 1000, INCOME, 'Salary', 'Bank Account'),
        ('2024-02-03', 200, EXPENSE, 'Food', 'Cash'),
        ('2024-02-10', 700, EXPENSE, 'Food', 'Bank Account'),
        ('2024-02-12', 120, EXPENSE, 'Bills', 'Bank Account'),
        ('2024-03-01', 50, EXPENSE, 'Food', 'Cash'),
    ]
    for when, amount, kind, category, account in rows:
        store.add_transaction(new_transaction(when, amount, kind, category, account, user_id='alice'))
    store.set_limit('alice', 'Food', 1000)
    store.set_limit('alice', 'Bills', 100)
    store.set_limit('alice', 'Travel', 300)
    return store


def test_load_snapshot_seeds_accounts_and_is_versioned(populated_store) -> None:
    snapshot = load_snapshot(populated_store, 'alice')
    assert sorted(a.name for a in snapshot.accounts) == ['Bank Account', 'Cash']
    assert len(snapshot.transactions) == 5
    assert len(snapshot.goals) == 3

    again = load_snapshot(populated_store, 'alice')
    assert again.version == snapshot.version

    populated_store.add_transaction(new_transaction('2024-02-15', 5, EXPENSE, 'Food', 'Cash', user_id='alice'))
    assert load_snapshot(populated_store, 'alice').version != snapshot.version


def test_snapshot_version_ignores_record_order() -> None:
    a = new_transaction('2024-02-03', 10, EXPENSE, 'Food', 'Cash', id='a')
    b = new_transaction('2024-02-04', 20, EXPENSE, 'Food', 'Cash', id='b')
    assert LedgerSnapshot.of('u', [a, b]).version == LedgerSnapshot.of('u', [b, a]).version


def test_cycle_overview_combines_every_component(populated_store) -> None:
    snapshot = load_snapshot(populated_store, 'alice')
    overview = cycle_overview(snapshot, '2024-02-01', 25)

    assert overview.window.label == '2024-01-25/2024-02-24'
    assert overview.ledger.opening_balance == 1000.0
    assert overview.ledger.closing_balance == -20.0
    assert overview.ledger.rows['Transaction Date'].dt.day.tolist() == [12, 10, 3]

    statuses = {e.category: e.status.value for e in overview.budgets}
    assert statuses == {'Bills': 'over', 'Food': 'near', 'Travel': 'ok'}
    goal_ids = {e.category: e.goal_id for e in overview.budgets}
    assert sorted(n.id for n in overview.notifications) == sorted(
        [f"over-{goal_ids['Bills']}", f"near-{goal_ids['Food']}"]
    )

    balances = {a.name: overview.account_balances[a.id] for a in snapshot.accounts}
    assert balances == {'Cash': -250.0, 'Bank Account': 180.0}


def test_overview_reflects_transfers(populated_store) -> None:
    record_transfer(populated_store, 'Bank Account', 'Cash', 300, '2024-02-14', user_id='alice')
    snapshot = load_snapshot(populated_store, 'alice')
    overview = cycle_overview(snapshot, '2024-02-01', 25)

    balances = {a.name: overview.account_balances[a.id] for a in snapshot.accounts}
    assert balances == {'Cash': 50.0, 'Bank Account': -120.0}
    assert overview.ledger.net == -1020.0
    assert overview.ledger.expense_by_category['Transfer'] == 300.0
    assert overview.ledger.income_by_category['Transfer'] == 300.0


def test_overview_to_dict_is_plain_data(populated_store) -> None:
    overview = cycle_overview(load_snapshot(populated_store, 'alice'), '2024-02-01', 25, category='Food')
    data = overview.to_dict()
    assert data['cycle']['window_start'] == '2024-01-25'
    assert data['cycle']['expense_by_category'] == {'Food': 900.0}
    assert [row['Transaction Date'] for row in data['transactions']] == ['2024-02-10', '2024-02-03']
    assert {n['id'].split('-')[0] for n in data['notifications']} == {'over', 'near'}
    assert all(isinstance(b['status'], str) for b in data['budgets'])


def test_summary_report_sorts_breakdown(populated_store) -> None:
    overview = cycle_overview(load_snapshot(populated_store, 'alice'), '2024-02-01', 25)
    report = summary_report(overview)
    assert report['range'] == '2024-01-25/2024-02-24'
    assert report['balance'] == -1020.0
    assert [row['Category'] for row in report['expense_breakdown']] == ['Food', 'Bills']
    assert report['expense_breakdown'][0]['Amount'] == 900.0
    assert report['income_breakdown'] == []
    assert {row['Category'] for row in report['budgets']} == {'Food', 'Bills', 'Travel'}


def test_cycle_history_chains_balances(populated_store) -> None:
    snapshot = load_snapshot(populated_store, 'alice')
    history = cycle_history(snapshot.transactions, '2024-01-01', '2024-03-10', 25)

    assert history['Cycle'].tolist() == [
        '2023-12-25/2024-01-24',
        '2024-01-25/2024-02-24',
        '2024-02-25/2024-03-24',
    ]
    assert history['Net'].tolist() == [1000.0, -1020.0, -50.0]
    assert history['Closing Balance'].tolist() == [1000.0, -20.0, -70.0]
    assert (history['Opening Balance'].iloc[1:].values == history['Closing Balance'].iloc[:-1].values).all()


def test_overview_can_leave_transfers_out_of_breakdowns(populated_store) -> None:
    record_transfer(populated_store, 'Bank Account', 'Cash', 300, '2024-02-14', user_id='alice')
    snapshot = load_snapshot(populated_store, 'alice')
    overview = cycle_overview(snapshot, '2024-02-01', 25, exclude_transfers=True)

    assert 'Transfer' not in overview.ledger.expense_by_category
    assert 'Transfer' not in overview.ledger.income_by_category
    assert overview.ledger.net == -1020.0
    report = summary_report(overview)
    assert [row['Category'] for row in report['expense_breakdown']] == ['Food', 'Bills']
