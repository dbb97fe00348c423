"""
Named-parameter helpers shared by the driver layer and the aware statement.

Statements are always written with ``:name`` placeholders. Before they reach
the DB-API driver they are rewritten to the driver's ``paramstyle``; for
display they are rewritten with quoted literal values instead.
"""

import collections.abc
import re

from .errors import ProgrammingError

# Quoted literals are matched first so placeholders and percent signs inside
# them are never treated as parameters. A placeholder must not follow an
# identifier character or another colon (``a:b``, ``x::int``), and the name
# is greedy so ``:search`` can never match a prefix of ``:search2``.
_PLACEHOLDER = r"""|(?<![\w:]):(?P<name>[A-Za-z_]\w*)|(?P<pct>%)"""

# Standard SQL: a quote inside a literal is doubled, backslash is ordinary.
_TOKEN = re.compile(
    r"""(?P<quoted>'(?:[^']|'')*'|"(?:[^"]|"")*")""" + _PLACEHOLDER,
    re.DOTALL,
)

# MySQL and MariaDB also treat backslash as an escape inside literals.
_TOKEN_BACKSLASH = re.compile(
    r"""(?P<quoted>'(?:[^'\\]|''|\\.)*'|"(?:[^"\\]|""|\\.)*")""" + _PLACEHOLDER,
    re.DOTALL,
)


def _tokens(backslash_escapes):
    return _TOKEN_BACKSLASH if backslash_escapes else _TOKEN


PARAMSTYLES = ("named", "pyformat", "qmark", "format", "numeric")


def normalize_name(parameter):
    """Return ``parameter`` with exactly one leading colon."""
    name = str(parameter).strip()
    return ":" + name.lstrip(":")


def placeholder_names(sql, backslash_escapes=False):
    return [m.group("name") for m in _tokens(backslash_escapes).finditer(sql) if m.group("name")]


def convert_params(sql, params, paramstyle, backslash_escapes=False):
    """
    Rewrite ``:name`` placeholders for a DB-API driver.

    ``params`` is a mapping keyed by normalized name (``:name``). Returns the
    rewritten SQL and the parameter container the driver expects for its
    ``paramstyle`` (a dict for named styles, a list for positional ones).
    ``backslash_escapes`` selects MySQL literal rules, where a backslash
    escapes the next character inside a quoted string.
    """
    if params is None:
        return sql, None
    if not isinstance(params, collections.abc.Mapping):
        raise ProgrammingError("Positional parameters are not supported; bind parameters by name")
    if paramstyle not in PARAMSTYLES:
        raise ProgrammingError(f"Unsupported paramstyle: {paramstyle!r}")

    percent_style = paramstyle in ("pyformat", "format")
    named_out = {}
    positional_out = []
    numeric_index = {}

    def lookup(name):
        key = ":" + name
        if key not in params:
            raise ProgrammingError(f"Missing parameter '{key}'")
        return params[key]

    def replace(match):
        if match.group("quoted") is not None:
            text = match.group("quoted")
            return text.replace("%", "%%") if percent_style else text
        if match.group("pct") is not None:
            return "%%" if percent_style else "%"

        name = match.group("name")
        value = lookup(name)
        if paramstyle == "named":
            named_out[name] = value
            return f":{name}"
        if paramstyle == "pyformat":
            named_out[name] = value
            return f"%({name})s"
        if paramstyle == "numeric":
            # The same name maps to one position.
            if name not in numeric_index:
                positional_out.append(value)
                numeric_index[name] = len(positional_out)
            return f":{numeric_index[name]}"
        positional_out.append(value)
        return "?" if paramstyle == "qmark" else "%s"

    new_sql = _tokens(backslash_escapes).sub(replace, sql)
    if paramstyle in ("named", "pyformat"):
        return new_sql, named_out
    return new_sql, positional_out


def substitute(sql, literals, backslash_escapes=False):
    """
    Replace each ``:name`` token that has an entry in ``literals`` with the
    rendered literal. Done in a single pass, so a substituted value that
    itself contains ``:name`` is left alone.
    """
    def replace(match):
        name = match.group("name")
        if name is None:
            return match.group(0)
        return literals.get(":" + name, match.group(0))

    return _tokens(backslash_escapes).sub(replace, sql)
