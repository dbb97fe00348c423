import pytest
import awaredb
from sqlalchemy.dialects import registry

registry.register("fakemysql", "fakedb", "FakeMySQLDialect")
registry.register("fakemysql.pyformat", "fakedb", "FakePyformatDialect")

FRUIT = ["a", "xyz", "apple", "banana", "96720"]


def _seed(conn):
    conn.exec("CREATE TABLE pdo_test (id INTEGER PRIMARY KEY AUTOINCREMENT, something CHAR(50))")
    conn.exec("INSERT INTO pdo_test (something) VALUES " + ", ".join(f"('{v}')" for v in FRUIT))


@pytest.fixture
def conn():
    c = awaredb.connect("fakemysql://")
    _seed(c)
    yield c
    c.close()


@pytest.fixture
def pyformat_conn():
    c = awaredb.connect("fakemysql+pyformat://")
    _seed(c)
    yield c
    c.close()


@pytest.fixture
def executed(conn):
    """Statements the driver has seen so far, oldest first."""
    return conn.raw_connection.executed
