"""Tests for the SQLite reference store."""

from __future__ import annotations

from datetime import date

import pytest

from finance_ledger.db import SQLiteStore
from finance_ledger.errors import PartialTransferError, StoreError, ValidationError
from finance_ledger.models import EXPENSE, INCOME, new_account, new_transaction
from finance_ledger.transfers import pair_transfers, record_transfer


@pytest.fixture
def store(tmp_path):
    return SQLiteStore(tmp_path / 'ledger.db')


def test_seed_defaults_only_for_users_without_accounts(store) -> None:
    created = store.seed_defaults('alice')
    assert sorted((a.name, a.kind) for a in created) == [('Bank Account', 'Bank'), ('Cash', 'Cash')]
    assert all(a.seed_balance == 0.0 for a in created)

    assert store.seed_defaults('alice') == []
    assert len(store.list_accounts('alice')) == 2

    store.add_account(new_account('Wallet', 'Mobile Wallet', user_id='bob'))
    assert store.seed_defaults('bob') == []
    assert [a.name for a in store.list_accounts('bob')] == ['Wallet']


def test_duplicate_account_name_is_rejected(store) -> None:
    store.add_account(new_account('Cash', 'Cash', user_id='alice'))
    with pytest.raises(ValidationError):
        store.add_account(new_account('Cash', 'Bank', user_id='alice'))
    store.add_account(new_account('Cash', 'Cash', user_id='bob'))


def test_transactions_round_trip(store) -> None:
    first = new_transaction('2024-02-03', '1,200.50', INCOME, 'Salary', 'Bank Account', user_id='alice')
    second = new_transaction(date(2024, 2, 4), 30, EXPENSE, 'Food', 'Cash', 'Lunch', user_id='alice')
    store.add_transaction(first)
    store.add_transaction(second)
    store.add_transaction(new_transaction('2024-02-04', 5, EXPENSE, 'Food', 'Cash', user_id='bob'))

    listed = store.list_transactions('alice')
    assert {tx.id for tx in listed} == {first.id, second.id}
    loaded = store.get_transaction(first.id)
    assert loaded == first
    assert loaded.amount == 1200.5


def test_update_and_delete_transaction(store) -> None:
    tx = store.add_transaction(new_transaction('2024-02-03', 10, EXPENSE, 'Food', 'Cash', user_id='alice'))
    updated = store.update_transaction(tx.id, amount='12.75', category='Dining', date='2024-02-05')
    assert updated.amount == 12.75
    assert updated.category == 'Dining'
    assert updated.date == date(2024, 2, 5)

    with pytest.raises(ValidationError):
        store.update_transaction(tx.id, amount=-1)
    with pytest.raises(ValidationError):
        store.update_transaction(tx.id, category='  ')
    with pytest.raises(ValidationError):
        store.update_transaction(tx.id, user_id='mallory')
    with pytest.raises(StoreError):
        store.update_transaction('missing', amount=5)

    assert store.delete_transaction(tx.id)
    assert not store.delete_transaction(tx.id)


def test_delete_all_transactions_is_per_user(store) -> None:
    for owner in ('alice', 'alice', 'bob'):
        store.add_transaction(new_transaction('2024-02-03', 10, EXPENSE, 'Food', 'Cash', user_id=owner))
    assert store.delete_all_transactions('alice') == 2
    assert store.list_transactions('alice') == []
    assert len(store.list_transactions('bob')) == 1


def test_set_limit_upserts_per_user_and_category(store) -> None:
    goal = store.set_limit('alice', 'Food', 500)
    updated = store.set_limit('alice', 'Food', '650')
    store.set_limit('bob', 'Food', 100)

    assert updated.id == goal.id
    goals = store.list_goals('alice')
    assert len(goals) == 1
    assert goals[0].limit == 650.0

    with pytest.raises(ValidationError):
        store.set_limit('alice', 'Food', 0)
    with pytest.raises(ValidationError):
        store.set_limit('alice', '', 10)

    assert store.delete_goal(goal.id)
    assert store.list_goals('alice') == []


def test_account_rename_and_seed_update(store) -> None:
    account = store.add_account(new_account('Cash', 'Cash', 20, user_id='alice'))
    renamed = store.update_account(account.id, name='Wallet Cash', seed_balance=35)
    assert renamed.name == 'Wallet Cash'
    assert renamed.seed_balance == 35.0
    with pytest.raises(ValidationError):
        store.update_account(account.id, kind='Crypto')
    assert store.delete_account(account.id)
    assert store.get_account(account.id) is None


def test_sqlite_failures_surface_as_store_error(store) -> None:
    with store.connect() as conn:
        conn.execute('DROP TABLE transactions')
        conn.commit()
    with pytest.raises(StoreError):
        store.list_transactions('alice')


def test_transfer_against_sqlite_store(store) -> None:
    result = record_transfer(store, 'Cash', 'Bank Account', 75, '2024-02-03', user_id='alice')
    rows = store.list_transactions('alice')
    assert len(rows) == 2
    found = pair_transfers(rows)
    assert set(found.pairs) == {result.transfer_id}
    assert found.orphans == []


def test_partial_transfer_leaves_one_orphan(store, monkeypatch) -> None:
    original = store.add_transaction
    calls = {'count': 0}

    def flaky(transaction):
        calls['count'] += 1
        if calls['count'] == 2:
            raise StoreError('disk I/O error')
        return original(transaction)

    monkeypatch.setattr(store, 'add_transaction', flaky)
    with pytest.raises(PartialTransferError) as excinfo:
        record_transfer(store, 'Cash', 'Bank Account', 75, '2024-02-03', user_id='alice')

    rows = store.list_transactions('alice')
    assert [tx.id for tx in rows] == [excinfo.value.recorded.id]
    assert pair_transfers(rows).orphans == rows


@pytest.mark.parametrize('amount', ['inf', '-inf', '1e400', float('inf')])
def test_non_finite_amounts_never_reach_the_store(store, amount) -> None:
    with pytest.raises(ValidationError):
        new_transaction('2024-02-03', amount, INCOME, 'Salary', 'Bank Account', user_id='alice')
    with pytest.raises(ValidationError):
        store.set_limit('alice', 'Food', amount)
    with pytest.raises(ValidationError):
        new_account('Cash', 'Cash', amount, user_id='alice')

    tx = store.add_transaction(new_transaction('2024-02-03', 10, EXPENSE, 'Food', 'Cash', user_id='alice'))
    with pytest.raises(ValidationError):
        store.update_transaction(tx.id, amount=amount)
    assert store.get_transaction(tx.id).amount == 10.0
    assert store.list_goals('alice') == []
