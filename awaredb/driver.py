"""
Prepared-statement client over a DB-API 2.0 driver.

DB-API offers cursors and ``execute(sql, params)``, nothing more. This module
adds the client contract the aware layer decorates: prepare, bind by value,
bind by reference, execute, fetch, native row count, value quoting and a
configurable error mode.
"""

import collections
import collections.abc
import json
import logging
import warnings

from sqlalchemy import String, literal
from sqlalchemy import exc as sa_exc

from .constants import Attr, FetchMode, ParamType
from .dsn import resolve
from .errors import (
    ErrorMode, InterfaceError, ProgrammingError, Warning,
    error_info, format_params,
)
from .params import convert_params, normalize_name, placeholder_names

logger = logging.getLogger(__name__)

Binding = collections.namedtuple("Binding", "value param_type by_ref max_length driver_data")


def _coerce(value, param_type):
    if value is None or param_type is None:
        return value
    if param_type is ParamType.NULL:
        return None
    if param_type is ParamType.INT:
        return int(value)
    if param_type is ParamType.BOOL:
        return bool(value)
    if param_type is ParamType.LOB:
        if isinstance(value, str):
            return value.encode("utf-8")
        return bytes(value)
    if param_type is ParamType.STR:
        if isinstance(value, (bytes, bytearray)):
            return bytes(value)
        return value if isinstance(value, str) else str(value)
    return value


def render_literal(dialect, value):
    """Render ``value`` as an inline SQL literal for ``dialect``."""
    try:
        compiled = literal(value).compile(dialect=dialect, compile_kwargs={"literal_binds": True})
    except sa_exc.CompileError:
        # No literal renderer for this type; fall back to its text form.
        if isinstance(value, (bytes, bytearray, memoryview)):
            text = bytes(value).decode("utf-8", errors="replace")
        else:
            text = str(value)
        compiled = literal(text, String()).compile(dialect=dialect, compile_kwargs={"literal_binds": True})
    return str(compiled)


class DriverStatement:
    def __init__(self, driver, cursor, sql, options=None):
        self._driver = driver
        self._cursor = cursor
        self._sql = sql
        self._options = dict(options or {})
        self._bindings = {}
        self._placeholders = set(placeholder_names(sql, driver.backslash_escapes))
        self._fetch_mode = driver.get_attribute(Attr.DEFAULT_FETCH_MODE)
        self._fetch_options = {}
        self._last_error = None

    @property
    def query_string(self):
        return self._sql

    @property
    def options(self):
        return dict(self._options)

    def _check_open(self):
        if self._cursor is None:
            raise ProgrammingError("Statement is closed")

    def _check_parameter(self, parameter):
        key = normalize_name(parameter)
        if key[1:] not in self._placeholders:
            raise ProgrammingError(f"Parameter '{key}' is not defined in the statement")
        return key

    def bind_value(self, parameter, value, param_type=None):
        self._check_open()
        key = self._check_parameter(parameter)
        self._bindings[key] = Binding(value, param_type, False, None, None)
        return True

    def bind_param(self, parameter, variable, param_type=None, max_length=None, driver_data=None):
        """
        Bind ``parameter`` to a zero-argument callable.

        The callable is invoked on every ``execute()``, so changes to the
        underlying variable between executions are picked up without
        rebinding. ``awaredb.Variable`` is a ready-made holder.
        """
        self._check_open()
        if not callable(variable):
            raise ProgrammingError("bind_param() expects a zero-argument callable, e.g. awaredb.Variable")
        key = self._check_parameter(parameter)
        self._bindings[key] = Binding(variable, param_type, True, max_length, driver_data)
        return True

    def _bound_values(self):
        out = {}
        for key, b in self._bindings.items():
            value = b.value() if b.by_ref else b.value
            out[key] = _coerce(value, b.param_type)
        return out

    def _execute(self, input_parameters=None):
        self._check_open()
        inline = {}
        if input_parameters is not None:
            if not isinstance(input_parameters, collections.abc.Mapping):
                raise ProgrammingError("Positional parameters are not supported; pass a mapping of names to values")
            inline = {normalize_name(k): v for k, v in input_parameters.items()}

        params = None
        if self._bindings or inline:
            # Values passed to execute() are laid over the bound ones.
            params = self._bound_values()
            params.update(inline)

        sql, args = convert_params(self._sql, params, self._driver.paramstyle, self._driver.backslash_escapes)
        try:
            if args is None:
                self._cursor.execute(sql)
            else:
                self._cursor.execute(sql, args)
        except self._driver.dbapi.Error as e:
            return self._driver._handle_error(e, self, sql=self._sql, params=params)

        # Inline values stay bound by value for later executes.
        for key, value in inline.items():
            self._bindings[key] = Binding(value, None, False, None, None)
        self._last_error = None
        lastrowid = getattr(self._cursor, "lastrowid", None)
        if lastrowid:
            self._driver._last_insert_id = lastrowid
        return True

    def execute(self, input_parameters=None):
        return self._execute(input_parameters)

    def set_fetch_mode(self, mode, *, column=0, cls=None, ctor_args=()):
        if not isinstance(mode, FetchMode):
            raise ProgrammingError(f"Invalid fetch mode: {mode!r}")
        if mode is FetchMode.CLASS and cls is None:
            raise ProgrammingError("FetchMode.CLASS requires cls=")
        self._fetch_mode = mode
        self._fetch_options = {"column": column, "cls": cls, "ctor_args": tuple(ctor_args)}
        return True

    def _column_names(self):
        return [d[0] for d in (self._cursor.description or ())]

    def _shape(self, row, mode):
        mode = mode or self._fetch_mode
        if mode is FetchMode.TUPLE:
            return tuple(row)
        if mode is FetchMode.COLUMN:
            return row[self._fetch_options.get("column", 0)]
        mapping = dict(zip(self._column_names(), row))
        if mode is FetchMode.DICT:
            return mapping
        cls = self._fetch_options.get("cls")
        if cls is None:
            raise ProgrammingError("FetchMode.CLASS requires set_fetch_mode(..., cls=...)")
        return cls(*self._fetch_options.get("ctor_args", ()), **mapping)

    def fetch(self, mode=None):
        self._check_open()
        try:
            row = self._cursor.fetchone()
        except self._driver.dbapi.Error as e:
            return self._driver._handle_error(e, self, sql=self._sql)
        if row is None:
            return None
        return self._shape(row, mode)

    def fetch_all(self, mode=None):
        self._check_open()
        try:
            rows = self._cursor.fetchall()
        except self._driver.dbapi.Error as e:
            return self._driver._handle_error(e, self, sql=self._sql)
        return [self._shape(r, mode) for r in rows]

    def fetch_column(self, column=0):
        self._check_open()
        try:
            row = self._cursor.fetchone()
        except self._driver.dbapi.Error as e:
            return self._driver._handle_error(e, self, sql=self._sql)
        if row is None:
            return None
        return row[column]

    def column_count(self):
        if self._cursor is None:
            return 0
        return len(self._cursor.description or ())

    def native_row_count(self):
        # DB-API reports -1 when the count is unknown.
        if self._cursor is None:
            return 0
        rc = self._cursor.rowcount
        return rc if rc is not None and rc > 0 else 0

    def row_count(self):
        return self.native_row_count()

    def close_cursor(self):
        if self._cursor is None:
            return True
        self._cursor.close()
        self._cursor = None
        return True

    def error_code(self):
        return error_info(self._last_error)[1]

    def error_info(self):
        return error_info(self._last_error)

    def __iter__(self):
        return self

    def __next__(self):
        row = self.fetch()
        if row is None or row is False:
            raise StopIteration
        return row


class DriverConnection:
    def __init__(self, dsn, user=None, password=None, options=None):
        attributes = {
            Attr.ERRMODE: ErrorMode.SILENT,
            Attr.STATEMENT_CLASS: DriverStatement,
            Attr.DEFAULT_FETCH_MODE: FetchMode.TUPLE,
        }
        driver_options = {}
        for key, value in (options or {}).items():
            if isinstance(key, Attr):
                self._check_attribute(key, value)
                attributes[key] = value
            else:
                driver_options[key] = value
        self._attributes = attributes

        resolved = resolve(dsn, user, password, driver_options)
        self.url = resolved.url
        self.dbapi = resolved.dbapi
        self.dialect = resolved.dialect
        self.paramstyle = getattr(self.dbapi, "paramstyle", "named")
        # Only MySQL-family engines treat backslash as an escape in literals.
        self.backslash_escapes = self.dialect.name in ("mysql", "mariadb")

        # Connection failures propagate whatever the error mode.
        self._raw = self.dbapi.connect(*resolved.cargs, **resolved.cparams)
        self._closed = False
        self._last_error = None
        self._last_insert_id = None
        logger.debug("Connected to %s", self.url.render_as_string(hide_password=True))

    @property
    def raw_connection(self):
        return self._raw

    @property
    def closed(self):
        return self._closed

    def _check_open(self):
        if self._closed:
            raise InterfaceError("Connection closed")

    def _check_attribute(self, key, value):
        if key is Attr.ERRMODE and not isinstance(value, ErrorMode):
            raise ProgrammingError(f"{key} must be an ErrorMode, got {value!r}")
        if key is Attr.STATEMENT_CLASS and not (isinstance(value, type) and issubclass(value, DriverStatement)):
            raise ProgrammingError(f"{key} must be a DriverStatement subclass, got {value!r}")
        if key is Attr.DEFAULT_FETCH_MODE and value not in (FetchMode.TUPLE, FetchMode.DICT):
            raise ProgrammingError(f"{key} must be FetchMode.TUPLE or FetchMode.DICT, got {value!r}")

    def get_attribute(self, key):
        return self._attributes.get(key)

    def set_attribute(self, key, value):
        self._check_attribute(key, value)
        self._attributes[key] = value
        return True

    def _handle_error(self, exc, owner, *, sql=None, params=None):
        owner._last_error = exc
        self._last_error = exc
        ctx = {"sql": sql, "params": format_params(params)}
        logger.debug("Driver error: %s\nContext: %s", exc, json.dumps(ctx, ensure_ascii=False, default=str))

        mode = self._attributes[Attr.ERRMODE]
        if mode is ErrorMode.EXCEPTION:
            raise exc
        if mode is ErrorMode.WARNING:
            warnings.warn(f"{type(exc).__name__}: {exc}", Warning, stacklevel=4)
        return False

    def _prepare(self, statement, options=None):
        self._check_open()
        try:
            cursor = self._raw.cursor()
        except self.dbapi.Error as e:
            return self._handle_error(e, self, sql=statement)
        factory = self._attributes[Attr.STATEMENT_CLASS]
        return factory(self, cursor, statement, options)

    def prepare(self, statement, options=None):
        return self._prepare(statement, options)

    def query(self, statement, fetch_mode=None, **fetch_options):
        stmt = self._prepare(statement)
        if stmt is False:
            return False
        if fetch_mode is not None:
            stmt.set_fetch_mode(fetch_mode, **fetch_options)
        if stmt._execute() is False:
            stmt.close_cursor()
            return False
        return stmt

    def exec(self, statement):
        """Execute ``statement`` and return the number of affected rows."""
        stmt = self._prepare(statement)
        if stmt is False:
            return False
        if stmt._execute() is False:
            stmt.close_cursor()
            return False
        count = stmt.native_row_count()
        stmt.close_cursor()
        return count

    def quote(self, value, param_type=None):
        if value is None or param_type is ParamType.NULL:
            return "NULL"
        if param_type is ParamType.INT:
            return str(int(value))
        value = _coerce(value, param_type)
        return render_literal(self.dialect, value)

    def last_insert_id(self):
        return self._last_insert_id

    def error_code(self):
        return error_info(self._last_error)[1]

    def error_info(self):
        return error_info(self._last_error)

    def commit(self):
        self._check_open()
        self._raw.commit()

    def rollback(self):
        self._check_open()
        self._raw.rollback()

    def close(self):
        if self._closed:
            return
        self._raw.close()
        self._closed = True
        logger.debug("Closed connection to %s", self.url.render_as_string(hide_password=True))

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type:
            self.rollback()
        else:
            self.commit()
        self.close()
