import pytest
import awaredb
from awaredb import Attr, Statement, Variable

SEARCH = "SELECT * FROM pdo_test WHERE something LIKE :search"


def test_prepare_returns_attached_statement(conn):
    sth = conn.prepare(SEARCH)
    assert isinstance(sth, Statement)
    assert sth.query == SEARCH
    assert sth.connection is conn
    assert sth.num_rows is None
    assert sth.row_count() == 0


def test_execute_with_input_parameters(conn):
    sth = conn.prepare(SEARCH)
    assert sth.execute({":search": "a%"}) is True
    assert sth.get_params() == {":search": "a%"}
    assert sth.get_query() == "SELECT * FROM pdo_test WHERE something LIKE 'a%'"
    assert sth.row_count() == 2
    assert [r[1] for r in sth.fetch_all()] == ["a", "apple"]


def test_bind_value_then_execute(conn):
    sth = conn.prepare(SEARCH)
    assert sth.bind_value(":search", "a%") is True
    assert sth.get_params() == {":search": "a%"}
    assert sth.get_query() == "SELECT * FROM pdo_test WHERE something LIKE 'a%'"
    sth.execute()
    assert sth.row_count() == 2


@pytest.mark.parametrize("name", ["search", ":search", "::search", " :search "])
def test_parameter_names_are_normalized(conn, name):
    sth = conn.prepare(SEARCH)
    sth.bind_value(name, "x")
    assert list(sth.get_params()) == [":search"]


def test_rebinding_keeps_latest_value(conn):
    sth = conn.prepare(SEARCH)
    sth.bind_value("search", "apple")
    sth.bind_value(":search", "banana")
    assert sth.get_params() == {":search": "banana"}
    assert "'banana'" in sth.get_query()
    assert "'apple'" not in sth.get_query()
    sth.execute()
    assert [r[1] for r in sth.fetch_all()] == ["banana"]


def test_bind_param_tracks_variable_across_executes(conn):
    sth = conn.prepare(SEARCH)
    search = Variable()
    assert sth.bind_param(":search", search) is True

    search.value = "apple"
    assert sth.get_params() == {":search": "apple"}
    assert sth.execute() is True
    assert "'apple'" in sth.get_query()
    assert sth.row_count() == 1
    assert [r[1] for r in sth.fetch_all()] == ["apple"]

    search.value = "orange"
    sth.execute()
    assert "'orange'" in sth.get_query()
    assert sth.row_count() == 0
    assert sth.fetch_all() == []

    search.value = "%a%"
    sth.execute()
    assert sth.get_query() == "SELECT * FROM pdo_test WHERE something LIKE '%a%'"
    assert sth.row_count() == 3
    assert sorted(r[1] for r in sth.fetch_all()) == ["a", "apple", "banana"]


def test_bind_param_accepts_any_callable(conn):
    state = {"q": "xyz"}
    sth = conn.prepare(SEARCH)
    sth.bind_param("search", lambda: state["q"])
    sth.execute()
    assert sth.row_count() == 1
    state["q"] = "96720"
    assert sth.get_params() == {":search": "96720"}


def test_bind_value_after_bind_param_stops_tracking(conn):
    sth = conn.prepare(SEARCH)
    var = Variable("apple")
    sth.bind_param(":search", var)
    sth.bind_value(":search", "banana")
    var.value = "xyz"
    assert sth.get_params() == {":search": "banana"}


def test_select_row_count_ignores_limit(conn):
    sth = conn.prepare(SEARCH + " LIMIT 1")
    sth.execute({"search": "%a%"})
    assert len(sth.fetch_all()) == 1
    assert sth.native_row_count() == 1
    assert sth.row_count() == 3


def test_select_issues_probe(conn, executed):
    sth = conn.prepare(SEARCH)
    before = len(executed)
    sth.execute({"search": "a"})
    assert executed[before:] == [SEARCH, awaredb.FOUND_ROWS_QUERY]


def test_non_select_uses_native_count_without_probe(conn, executed):
    sth = conn.prepare("UPDATE pdo_test SET something = :new WHERE something LIKE :old")
    before = len(executed)
    sth.execute({"new": "z", "old": "%a%"})
    assert len(executed) == before + 1
    assert sth.row_count() == 3
    assert sth.get_query() == "UPDATE pdo_test SET something = 'z' WHERE something LIKE '%a%'"


def test_insert_row_count(conn):
    sth = conn.prepare("INSERT INTO pdo_test (something) VALUES (:v)")
    sth.bind_value("v", "cherry")
    sth.execute()
    assert sth.row_count() == 1
    assert conn.last_insert_id() == 6


def test_similar_parameter_names_substitute_independently(conn):
    sth = conn.prepare(
        "SELECT * FROM pdo_test WHERE something = :search OR something = :search2 OR something = :arch"
    )
    sth.bind_value(":search", "apple")
    sth.bind_value(":search2", "banana")
    sth.bind_value(":arch", "xyz")
    assert sth.get_query() == (
        "SELECT * FROM pdo_test WHERE something = 'apple' OR something = 'banana' OR something = 'xyz'"
    )
    sth.execute()
    assert sth.row_count() == 3


def test_get_query_quotes_values(conn):
    sth = conn.prepare("SELECT * FROM pdo_test WHERE something = :s AND id = :id AND something <> :n")
    sth.bind_value("s", "O'Reilly")
    sth.bind_value("id", 4)
    sth.bind_value("n", None)
    assert sth.get_query() == (
        "SELECT * FROM pdo_test WHERE something = 'O''Reilly' AND id = 4 AND something <> NULL"
    )


def test_get_query_leaves_unbound_placeholders(conn):
    sth = conn.prepare("SELECT * FROM pdo_test WHERE id = :id OR something = :s")
    sth.bind_value("id", 1)
    assert sth.get_query() == "SELECT * FROM pdo_test WHERE id = 1 OR something = :s"


def test_get_query_does_not_resubstitute_values(conn):
    sth = conn.prepare("SELECT * FROM pdo_test WHERE something = :a OR something = :b")
    sth.bind_value("a", ":b")
    sth.bind_value("b", "x")
    assert sth.get_query() == "SELECT * FROM pdo_test WHERE something = ':b' OR something = 'x'"


def test_unattached_statement_cannot_rebuild_query():
    driver = awaredb.DriverConnection("fakemysql://", options={Attr.STATEMENT_CLASS: Statement})
    try:
        driver.exec("CREATE TABLE t (v TEXT)")
        driver.exec("INSERT INTO t VALUES ('a'), ('b'), ('c')")
        sth = driver.prepare("SELECT * FROM t WHERE v <> :v LIMIT 1")
        assert isinstance(sth, Statement)
        assert sth.connection is None
        sth.execute({"v": "a"})
        # no connection to probe through: the driver's own count is kept
        assert sth.row_count() == 1
        assert sth.get_params() == {":v": "a"}
        with pytest.raises(awaredb.InterfaceError):
            sth.get_query()
    finally:
        driver.close()


def test_statement_attaches_once(conn):
    sth = conn.prepare(SEARCH)
    with pytest.raises(awaredb.InterfaceError):
        sth.attach("SELECT 1", conn)
    assert sth.query == SEARCH


def test_unknown_parameter_is_rejected(conn):
    sth = conn.prepare(SEARCH)
    with pytest.raises(awaredb.ProgrammingError):
        sth.bind_value(":nope", 1)
    assert sth.get_params() == {}


def test_failed_execute_in_silent_mode(conn):
    conn.set_attribute(Attr.ERRMODE, awaredb.ErrorMode.SILENT)
    sth = conn.prepare("INSERT INTO missing_table (v) VALUES (:v)")
    assert sth.execute({"v": 1}) is False
    assert sth.error_info()[0] == "OperationalError"
    assert "missing_table" in sth.error_info()[2]
    assert sth.row_count() == 0
    assert sth.get_params() == {}


def test_trace_logs_rebuilt_query(conn, caplog):
    conn.set_attribute(Attr.TRACE_QUERIES, True)
    sth = conn.prepare(SEARCH)
    with caplog.at_level("INFO", logger="awaredb.statement"):
        sth.execute({"search": "apple"})
    assert "SELECT * FROM pdo_test WHERE something LIKE 'apple' -- 1 row(s)" in caplog.text


def test_trace_disabled_by_default(conn, caplog):
    sth = conn.prepare(SEARCH)
    with caplog.at_level("INFO", logger="awaredb.statement"):
        sth.execute({"search": "apple"})
    assert caplog.text == ""


def test_trace_enabled_from_environment(monkeypatch):
    monkeypatch.setenv("AWAREDB_TRACE_QUERIES", "yes")
    c = awaredb.connect("fakemysql://")
    try:
        assert c.get_attribute(Attr.TRACE_QUERIES) is True
    finally:
        c.close()


def test_inline_value_replaces_bound_variable(conn):
    sth = conn.prepare(SEARCH)
    sth.bind_param(":search", Variable("apple"))
    sth.execute({"search": "banana"})
    assert [r[1] for r in sth.fetch_all()] == ["banana"]
    sth.execute()
    assert [r[1] for r in sth.fetch_all()] == ["banana"]
    assert sth.get_params() == {":search": "banana"}
    assert sth.get_query() == "SELECT * FROM pdo_test WHERE something LIKE 'banana'"


def test_inline_values_merge_with_bindings(conn):
    sth = conn.prepare("SELECT * FROM pdo_test WHERE something = :a OR something = :b ORDER BY id")
    sth.bind_value(":a", "apple")
    sth.execute({":b": "banana"})
    assert [r[1] for r in sth.fetch_all()] == ["apple", "banana"]
    assert sth.row_count() == 2
    assert sth.get_params() == {":a": "apple", ":b": "banana"}
    assert sth.get_query() == "SELECT * FROM pdo_test WHERE something = 'apple' OR something = 'banana' ORDER BY id"


def test_rejected_inline_values_are_not_recorded(conn):
    sth = conn.prepare("SELECT * FROM pdo_test WHERE something = :a OR something = :b")
    sth.bind_value(":a", "apple")
    with pytest.raises(awaredb.ProgrammingError, match="Missing parameter ':b'"):
        sth.execute({":c": "banana"})
    assert sth.get_params() == {":a": "apple"}
