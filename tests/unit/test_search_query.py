from __future__ import annotations

from jotrack.db.search import build_match_query


def test_words_become_quoted_prefix_terms() -> None:
    assert build_match_query("backend eng") == '"backend"* "eng"*'


def test_fts_operators_are_neutralised() -> None:
    query = build_match_query('python OR "sql" NEAR(x) -rust*')

    assert query == '"python"* "OR"* "sql"* "NEAR"* "x"* "rust"*'
    assert "(" not in query


def test_no_tokens_yields_empty_query() -> None:
    assert build_match_query("") == ""
    assert build_match_query("  !!! ---  ") == ""
