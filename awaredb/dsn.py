"""
DSN resolution.

A DSN is either a SQLAlchemy URL (``mysql+pymysql://user:pw@host/db``) or a
PDO-style string (``mysql:host=localhost;dbname=test``). Either way it is
resolved through SQLAlchemy's dialect registry to the DB-API module that
backs it, the arguments for that module's ``connect()``, and a dialect
instance used to render SQL literals.
"""

import collections
import logging
import re

from sqlalchemy import exc as sa_exc
from sqlalchemy.engine import URL, make_url

from .errors import InterfaceError

logger = logging.getLogger(__name__)

Resolved = collections.namedtuple("Resolved", "url dbapi dialect cargs cparams")

_PDO_DSN = re.compile(r"^(?P<prefix>[A-Za-z][A-Za-z0-9_+]*):(?P<rest>.*)$", re.DOTALL)

# PDO driver prefix -> SQLAlchemy drivername
_PDO_DRIVERS = {
    "mysql": "mysql+pymysql",
    "pgsql": "postgresql",
    "sqlite": "sqlite",
}


def _parse_pdo_dsn(prefix, rest):
    drivername = _PDO_DRIVERS.get(prefix.lower(), prefix)
    if prefix.lower() == "sqlite":
        # sqlite:/path/to/file.db or sqlite::memory:
        return URL.create(drivername, database=rest or None)

    fields = {}
    for part in rest.split(";"):
        part = part.strip()
        if not part:
            continue
        key, sep, value = part.partition("=")
        if not sep:
            raise InterfaceError(f"Invalid DSN segment '{part}'")
        fields[key.strip().lower()] = value.strip()

    port = fields.pop("port", None)
    try:
        port = int(port) if port is not None else None
    except ValueError as e:
        raise InterfaceError(f"Invalid port '{port}' in DSN") from e

    return URL.create(
        drivername,
        username=fields.pop("user", None),
        password=fields.pop("password", None),
        host=fields.pop("host", None),
        port=port,
        database=fields.pop("dbname", None),
        query=fields,
    )


def parse_dsn(dsn):
    """Return a SQLAlchemy ``URL`` for ``dsn``."""
    if isinstance(dsn, URL):
        return dsn
    if not isinstance(dsn, str) or not dsn.strip():
        raise InterfaceError("DSN must be a non-empty string")
    dsn = dsn.strip()
    if "://" in dsn:
        try:
            return make_url(dsn)
        except sa_exc.ArgumentError as e:
            raise InterfaceError(f"Invalid DSN: {e}") from e
    m = _PDO_DSN.match(dsn)
    if m is None:
        raise InterfaceError(f"Invalid DSN '{dsn}'")
    return _parse_pdo_dsn(m.group("prefix"), m.group("rest"))


def resolve(dsn, user=None, password=None, driver_options=None):
    url = parse_dsn(dsn)
    if user is not None:
        url = url.set(username=user)
    if password is not None:
        url = url.set(password=password)

    try:
        dialect_cls = url.get_dialect()
    except sa_exc.NoSuchModuleError as e:
        raise InterfaceError(f"No driver available for '{url.drivername}'") from e

    dbapi = dialect_cls.import_dbapi()
    # The dialect is only used for literal rendering; "named" keeps it from
    # doubling percent signs the way it would for format-style drivers.
    dialect = dialect_cls(dbapi=dbapi, paramstyle="named")

    cargs, cparams = dialect.create_connect_args(url)
    cparams = dict(cparams)
    cparams.update(driver_options or {})

    logger.debug(
        "Resolved %s to DB-API module %s (paramstyle=%s)",
        url.render_as_string(hide_password=True),
        dbapi.__name__,
        getattr(dbapi, "paramstyle", None),
    )
    return Resolved(url, dbapi, dialect, list(cargs), cparams)
