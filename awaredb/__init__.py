"""
awaredb - statements that know what was bound to them.

A thin layer over any DB-API 2.0 driver that

- keeps track of bound parameters so a statement can be rebuilt with the
  values in place (``Statement.get_query()``), for logging and debugging;
- reports the real row count of SELECT statements on MySQL-like engines,
  whose drivers don't, by asking the server for ``FOUND_ROWS()``.

Usage:
    import awaredb

    conn = awaredb.connect("mysql:host=localhost;dbname=test", "root", "")

    sth = conn.prepare("SELECT * FROM fruit WHERE name LIKE :search LIMIT 10")
    search = awaredb.Variable()
    sth.bind_param(":search", search)

    search.value = "a%"
    sth.execute()
    print(sth.get_query())   # SELECT * FROM fruit WHERE name LIKE 'a%' LIMIT 10
    print(sth.row_count())   # every match, not just the ten fetched

    conn.close()
"""

from .connection import Connection
from .constants import FOUND_ROWS_QUERY, Attr, FetchMode, ParamType
from .driver import DriverConnection, DriverStatement
from .errors import (
    DatabaseError, Error, ErrorMode, InterfaceError, NotSupportedError,
    OperationalError, ProgrammingError, Warning,
)
from .statement import Statement, Variable

__version__ = '0.1.0'
__all__ = [
    'Connection', 'Statement', 'Variable', 'DriverConnection', 'DriverStatement',
    'Attr', 'ErrorMode', 'FetchMode', 'ParamType', 'FOUND_ROWS_QUERY',
    'Error', 'Warning', 'InterfaceError', 'DatabaseError', 'OperationalError',
    'ProgrammingError', 'NotSupportedError', 'connect',
]


def connect(dsn, user=None, password=None, options=None, **driver_options):
    # Keyword arguments go to the DB-API driver's connect(); Attr settings
    # belong in ``options``.
    merged = dict(driver_options)
    merged.update(options or {})
    return Connection(dsn, user, password, merged)
