import pytest
from sqlob.cache import Cache, cacheable_strategy
from sqlob.strategy import get_strategy


class CountingStrategy:
    """Stand-in strategy counting catalog lookups"""

    def __init__(self):
        self.calls = 0

    @cacheable_strategy('lookup', ttl=60, maxsize=10)
    def table_exists(self, cn, table, bypass_cache=False):
        self.calls += 1
        return True


@pytest.fixture
def strategy():
    return CountingStrategy()


def test_results_are_cached_per_table(strategy, raw_sqlite_conn):
    assert strategy.table_exists(raw_sqlite_conn, 'Person')
    assert strategy.table_exists(raw_sqlite_conn, 'Person')
    assert strategy.calls == 1

    strategy.table_exists(raw_sqlite_conn, 'Owner')
    assert strategy.calls == 2


def test_bypass_cache(strategy, raw_sqlite_conn):
    strategy.table_exists(raw_sqlite_conn, 'Person')
    strategy.table_exists(raw_sqlite_conn, 'Person', bypass_cache=True)
    assert strategy.calls == 2


def test_clear_for_table(strategy, raw_sqlite_conn):
    """Test only the entries of the named table are invalidated"""
    strategy.table_exists(raw_sqlite_conn, 'Person')
    strategy.table_exists(raw_sqlite_conn, 'Owner')

    Cache.get_instance().clear_for_table('Person')
    strategy.table_exists(raw_sqlite_conn, 'Person')
    strategy.table_exists(raw_sqlite_conn, 'Owner')
    assert strategy.calls == 3


def test_cache_is_scoped_to_connection(strategy):
    import sqlite3

    first, second = sqlite3.connect(':memory:'), sqlite3.connect(':memory:')
    try:
        strategy.table_exists(first, 'Person')
        strategy.table_exists(second, 'Person')
        assert strategy.calls == 2
    finally:
        first.close()
        second.close()


def test_sqlite_table_exists(raw_sqlite_conn):
    strategy = get_strategy('sqlite')
    assert not strategy.table_exists(raw_sqlite_conn, 'Person')

    raw_sqlite_conn.execute('CREATE TABLE Person (id TEXT)')
    assert not strategy.table_exists(raw_sqlite_conn, 'Person')
    assert strategy.table_exists(raw_sqlite_conn, 'Person', bypass_cache=True)

    Cache.get_instance().clear_for_table('Person')
    assert strategy.table_exists(raw_sqlite_conn, 'Person')
