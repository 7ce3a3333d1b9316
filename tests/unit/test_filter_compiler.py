from datetime import datetime, timezone

import pytest

from linkgraph.models.filters import LinkFilters
from linkgraph.services.filter_compiler import (
    CompiledFilter,
    FilterCompiler,
    escape_like,
    json_key_path,
)

FIXED_NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def _matching_targets(store, compiled: CompiledFilter) -> list[str]:
    rows = store.execute(
        f"""
        SELECT l.target
        FROM links l
        LEFT JOIN files f ON l.target = f.path
        LEFT JOIN headings h ON l.heading_id = h.id
        WHERE {compiled.where_clause()}
        ORDER BY l.target
        """,
        compiled.params,
    )
    return [row["target"] for row in rows]


@pytest.fixture()
def compiler() -> FilterCompiler:
    return FilterCompiler(clock=lambda: FIXED_NOW)


def test_empty_filters_only_restrict_link_type(compiler: FilterCompiler) -> None:
    compiled = compiler.compile(LinkFilters(), ["file"])

    assert compiled.conditions == ["l.link_type IN (?)"]
    assert compiled.params == ["file"]


def test_link_type_condition_comes_first(compiler: FilterCompiler) -> None:
    filters = LinkFilters(tags=["work"], file_types=["org"], exclude_done=True)

    compiled = compiler.compile(filters, ["file", "id"])

    assert compiled.conditions[0] == "l.link_type IN (?,?)"
    assert compiled.params[:2] == ["file", "id"]


def test_file_conditions_can_be_skipped(compiler: FilterCompiler) -> None:
    filters = LinkFilters(file_types=["md"], modified_after=10.0)

    compiled = compiler.compile(filters, ["file"], include_file_conditions=False)

    assert not any("f." in condition for condition in compiled.conditions)


def test_where_clause_is_tautology_when_empty() -> None:
    assert CompiledFilter().where_clause() == "1 = 1"


def test_escape_like_and_json_key_path() -> None:
    assert escape_like("50%_off\\") == "50\\%\\_off\\\\"
    assert json_key_path("CATEGORY") == "$.CATEGORY"
    assert json_key_path("my key") == '$."my key"'


def test_tag_filter_matches_any_tag(store, corpus, compiler: FilterCompiler) -> None:
    work = corpus.add_heading("a.org", tags=["work", "urgent"])
    home = corpus.add_heading("a.org", tags=["home"])
    corpus.add_link("a.org", "work.org", heading_id=work)
    corpus.add_link("a.org", "home.org", heading_id=home)
    corpus.add_link("a.org", "loose.org")

    compiled = compiler.compile(LinkFilters(tags=["urgent", "other"]), ["file"])

    # Links outside any heading pass heading-level filters.
    assert _matching_targets(store, compiled) == ["loose.org", "work.org"]


def test_json_tag_mode_does_not_match_substrings(store, corpus, compiler) -> None:
    heading = corpus.add_heading("a.org", tags=["category"])
    corpus.add_link("a.org", "b.org", heading_id=heading)

    compiled = compiler.compile(LinkFilters(tags=["cat"]), ["file"])

    assert _matching_targets(store, compiled) == []


def test_json_tag_mode_survives_malformed_tags(store, corpus, db_service, compiler) -> None:
    heading = corpus.add_heading("a.org")
    corpus.add_link("a.org", "b.org", heading_id=heading)
    conn = db_service.connect()
    with conn:
        conn.execute("UPDATE headings SET tags = 'not json' WHERE id = ?", (heading,))
    conn.close()

    compiled = compiler.compile(LinkFilters(tags=["work"]), ["file"])

    assert _matching_targets(store, compiled) == []


def test_substring_tag_mode_matches_serialized_array(store, corpus) -> None:
    heading = corpus.add_heading("a.org", tags=["work"])
    corpus.add_link("a.org", "b.org", heading_id=heading)
    compiler = FilterCompiler(tag_match_mode="substring")

    compiled = compiler.compile(LinkFilters(tags=["work"]), ["file"])

    assert compiled.params[-1] == '%"work"%'
    assert _matching_targets(store, compiled) == ["b.org"]


def test_exclude_tags_removes_any_tagged_heading(store, corpus, compiler) -> None:
    archived = corpus.add_heading("a.org", tags=["archive", "work"])
    active = corpus.add_heading("a.org", tags=["work"])
    corpus.add_link("a.org", "old.org", heading_id=archived)
    corpus.add_link("a.org", "new.org", heading_id=active)

    compiled = compiler.compile(LinkFilters(exclude_tags=["archive", "trash"]), ["file"])

    assert _matching_targets(store, compiled) == ["new.org"]


def test_exclude_done_keeps_untracked_headings(store, corpus, compiler) -> None:
    done = corpus.add_heading("a.org", todo_state="DONE")
    cancelled = corpus.add_heading("a.org", todo_state="CANCELLED")
    todo = corpus.add_heading("a.org", todo_state="TODO")
    plain = corpus.add_heading("a.org")
    corpus.add_link("a.org", "done.org", heading_id=done)
    corpus.add_link("a.org", "cancelled.org", heading_id=cancelled)
    corpus.add_link("a.org", "todo.org", heading_id=todo)
    corpus.add_link("a.org", "plain.org", heading_id=plain)

    compiled = compiler.compile(LinkFilters(exclude_done=True), ["file"])

    assert _matching_targets(store, compiled) == ["plain.org", "todo.org"]


def test_todo_states_and_priorities(store, corpus, compiler) -> None:
    match = corpus.add_heading("a.org", todo_state="NEXT", priority="A")
    wrong_priority = corpus.add_heading("a.org", todo_state="NEXT", priority="C")
    corpus.add_link("a.org", "match.org", heading_id=match)
    corpus.add_link("a.org", "other.org", heading_id=wrong_priority)

    filters = LinkFilters(todo_states=["NEXT", "WAITING"], priorities=["A"])
    compiled = compiler.compile(filters, ["file"])

    assert _matching_targets(store, compiled) == ["match.org"]


def test_presence_filters_exclude_links_outside_headings(store, corpus, compiler) -> None:
    dated = corpus.add_heading("a.org", deadline="2024-03-05", scheduled="2024-03-02")
    corpus.add_link("a.org", "dated.org", heading_id=dated)
    corpus.add_link("a.org", "loose.org")

    compiled = compiler.compile(LinkFilters(has_deadline=True, has_scheduled=True), ["file"])

    assert _matching_targets(store, compiled) == ["dated.org"]


def test_deadline_within_days_uses_clock(store, corpus, compiler) -> None:
    soon = corpus.add_heading("a.org", deadline="2024-03-04")
    later = corpus.add_heading("a.org", deadline="2024-04-30")
    corpus.add_link("a.org", "soon.org", heading_id=soon)
    corpus.add_link("a.org", "later.org", heading_id=later)

    compiled = compiler.compile(LinkFilters(deadline_within_days=7), ["file"])

    assert "2024-03-08" in compiled.params
    assert _matching_targets(store, compiled) == ["soon.org"]


def test_property_filter_compares_json_values(store, corpus, compiler) -> None:
    blue = corpus.add_heading("a.org", properties={"COLOR": "blue"})
    red = corpus.add_heading("a.org", properties={"COLOR": "red"})
    corpus.add_link("a.org", "blue.org", heading_id=blue)
    corpus.add_link("a.org", "red.org", heading_id=red)

    compiled = compiler.compile(LinkFilters(properties={"COLOR": "blue"}), ["file"])

    assert _matching_targets(store, compiled) == ["blue.org"]


def test_file_level_filters_pass_unknown_files(store, corpus, compiler) -> None:
    corpus.add_file("new.md", file_type="md", mtime=2_000.0, project_id=1)
    corpus.add_file("old.org", file_type="org", mtime=500.0, project_id=1)
    corpus.add_link("a.org", "new.md")
    corpus.add_link("a.org", "old.org")
    corpus.add_link("a.org", "missing.org")

    filters = LinkFilters(file_types=["md"], modified_after=1_000.0, project_ids=[1])
    compiled = compiler.compile(filters, ["file"])

    assert _matching_targets(store, compiled) == ["missing.org", "new.md"]


def test_values_are_bound_not_interpolated(store, corpus, compiler) -> None:
    heading = corpus.add_heading("a.org", tags=["x"])
    corpus.add_link("a.org", "b.org", heading_id=heading)
    hostile = "x') OR 1=1 --"

    compiled = compiler.compile(LinkFilters(tags=[hostile]), ["file"])

    assert hostile not in compiled.where_clause()
    assert _matching_targets(store, compiled) == []
