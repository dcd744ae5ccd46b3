"""FTS5 index over jobs.

The ``job_search`` virtual table mirrors the searchable job fields
(title, company, notes). Triggers on ``jobs`` keep it in sync, so the ORM
never writes to it directly. It is created right after the ``jobs`` table
and dropped right before it.
"""

from __future__ import annotations

import re

from sqlalchemy import DDL, Column, Integer, MetaData, Table, Text, event, text
from sqlalchemy.engine import Connection, Engine

from jotrack.db.models import Job

SEARCH_TABLE = "job_search"

# Kept out of Base.metadata so create_all never emits a plain CREATE TABLE for it.
search_metadata = MetaData()
job_search = Table(
    SEARCH_TABLE,
    search_metadata,
    Column("job_id", Integer),
    Column("title", Text),
    Column("company", Text),
    Column("notes", Text),
)

CREATE_STATEMENTS = (
    f"""
    CREATE VIRTUAL TABLE IF NOT EXISTS {SEARCH_TABLE} USING fts5(
        job_id UNINDEXED,
        title,
        company,
        notes
    )
    """,
    f"""
    CREATE TRIGGER IF NOT EXISTS job_search_insert AFTER INSERT ON jobs BEGIN
        INSERT INTO {SEARCH_TABLE}(job_id, title, company, notes)
        VALUES (new.id, new.title, new.company, new.notes);
    END
    """,
    f"""
    CREATE TRIGGER IF NOT EXISTS job_search_update AFTER UPDATE ON jobs BEGIN
        UPDATE {SEARCH_TABLE} SET title = new.title, company = new.company, notes = new.notes
        WHERE job_id = new.id;
    END
    """,
    f"""
    CREATE TRIGGER IF NOT EXISTS job_search_delete AFTER DELETE ON jobs BEGIN
        DELETE FROM {SEARCH_TABLE} WHERE job_id = old.id;
    END
    """,
)

for statement in CREATE_STATEMENTS:
    event.listen(Job.__table__, "after_create", DDL(statement).execute_if(dialect="sqlite"))
event.listen(
    Job.__table__,
    "before_drop",
    DDL(f"DROP TABLE IF EXISTS {SEARCH_TABLE}").execute_if(dialect="sqlite"),
)

_TOKEN_RE = re.compile(r"\w+", re.UNICODE)


def build_match_query(raw: str) -> str:
    """Turn free text into an FTS5 MATCH expression.

    Every word becomes a quoted prefix term, so user input can never inject
    FTS operators. Terms are implicitly AND-ed.
    """
    tokens = _TOKEN_RE.findall(raw or "")
    return " ".join(f'"{token}"*' for token in tokens)


def ensure_search_index(bind: Engine | Connection) -> None:
    if bind.dialect.name != "sqlite":
        return
    if isinstance(bind, Engine):
        with bind.begin() as conn:
            _create(conn)
    else:
        _create(bind)


def _create(conn: Connection) -> None:
    for statement in CREATE_STATEMENTS:
        conn.execute(text(statement))


def rebuild_search_index(bind: Engine) -> int:
    with bind.begin() as conn:
        _create(conn)
        conn.execute(text(f"DELETE FROM {SEARCH_TABLE}"))
        conn.execute(
            text(
                f"INSERT INTO {SEARCH_TABLE}(job_id, title, company, notes) "
                "SELECT id, title, company, notes FROM jobs"
            )
        )
        count = conn.execute(text(f"SELECT COUNT(*) FROM {SEARCH_TABLE}")).scalar_one()
    return int(count)
