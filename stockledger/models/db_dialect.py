"""Database dialect detection helpers.

Synopsis:
Answers dialect questions for a live SQLAlchemy session so the ledger can pick
its locking strategy (row locks and lock timeouts on PostgreSQL, in-process
variant locks everywhere).

Glossary:
- Dialect: Database backend type (e.g., PostgreSQL, SQLite).
"""

from typing import Final

_POSTGRES_DIALECTS: Final = frozenset({"postgresql", "postgres"})


def dialect_name(session) -> str:
    bind = session.get_bind()
    return getattr(bind.dialect, "name", "") or ""


def is_postgres(session) -> bool:
    """Return True when the session is bound to a PostgreSQL engine."""
    return dialect_name(session) in _POSTGRES_DIALECTS
