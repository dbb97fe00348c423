import logging

from .constants import FOUND_ROWS_QUERY, Attr, env_flag
from .driver import DriverConnection
from .errors import ErrorMode, ProgrammingError
from .statement import Statement, is_select

logger = logging.getLogger(__name__)


class Connection(DriverConnection):
    """
    Connection whose statements know their own SQL and bound values.

    Differences from ``DriverConnection``:

    - every statement is a ``statement_class`` instance (``Statement`` unless
      a subclass says otherwise), whatever ``options`` asks for;
    - errors raise unless ``options`` sets ``Attr.ERRMODE`` explicitly;
    - statements returned by ``query()`` already carry a row count. For
      SELECT statements this costs one extra round trip, the found-rows
      probe (``SELECT FOUND_ROWS()`` unless ``Attr.FOUND_ROWS_QUERY`` says
      otherwise), which must run on the same connection right after the
      statement it counts.
    """

    statement_class = Statement

    def __init__(self, dsn, user=None, password=None, options=None):
        options = dict(options or {})
        options[Attr.STATEMENT_CLASS] = self.statement_class
        options.setdefault(Attr.ERRMODE, ErrorMode.EXCEPTION)
        options.setdefault(Attr.FOUND_ROWS_QUERY, FOUND_ROWS_QUERY)
        options.setdefault(Attr.TRACE_QUERIES, env_flag("AWAREDB_TRACE_QUERIES"))
        super().__init__(dsn, user, password, options)

    def _check_attribute(self, key, value):
        super()._check_attribute(key, value)
        if key is Attr.STATEMENT_CLASS and not issubclass(value, self.statement_class):
            raise ProgrammingError(f"{key} must be a {self.statement_class.__name__} subclass, got {value!r}")
        if key is Attr.FOUND_ROWS_QUERY and not (isinstance(value, str) and value.strip()):
            raise ProgrammingError(f"{key} must be a non-empty SQL string")

    def _is_probe(self, statement):
        probe = self._attributes[Attr.FOUND_ROWS_QUERY]
        return statement.strip().upper() == probe.strip().upper()

    def found_rows(self):
        """
        Run the found-rows probe and return its scalar result, or ``None``
        if the probe failed under a non-raising error mode.
        """
        probe = self._attributes[Attr.FOUND_ROWS_QUERY]
        sth = self.query(probe)
        if sth is False:
            logger.warning("Found-rows probe failed; falling back to the driver row count")
            return None
        count = sth.fetch_column()
        sth.close_cursor()
        if count is False:
            logger.warning("Found-rows probe could not be read; falling back to the driver row count")
            return None
        logger.debug("%s -> %s", probe, count)
        return int(count) if count is not None else None

    def query(self, statement, fetch_mode=None, **fetch_options):
        sth = super().query(statement, fetch_mode, **fetch_options)
        # The probe's own handle is left alone, otherwise counting it would
        # issue another probe.
        if isinstance(sth, Statement) and not self._is_probe(statement):
            sth.attach(statement, self)
            count = self.found_rows() if is_select(statement) else None
            sth.num_rows = count if count is not None else sth.native_row_count()
            sth.trace()
        return sth

    def prepare(self, statement, options=None):
        sth = super().prepare(statement, options)
        if isinstance(sth, Statement):
            sth.attach(statement, self)
        return sth
