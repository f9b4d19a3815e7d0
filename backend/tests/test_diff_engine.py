from __future__ import annotations

from dataclasses import replace

import pytest

from pasaldiff.compare.anchoring import anchor_keys, display_ref
from pasaldiff.compare.engine import ALGORITHM_VERSION, DiffOptions, compare_clauses
from pasaldiff.compare.similarity import text_similarity
from pasaldiff.compare.wordiff import MAX_LCS_CELLS, changed_text, word_changes
from pasaldiff.core.errors import EmptyInput, InvalidInput
from pasaldiff.models.entities import ClauseType

CHILD_LABOUR = "Pemberi kerja dilarang mempekerjakan anak di bawah umur."
ANNUAL_LEAVE = "Setiap pekerja berhak atas cuti tahunan paling sedikit dua belas hari kerja."
AYAT_1 = ("BAB II", "Pasal 2", "Ayat (1)")
AYAT_2 = ("BAB II", "Pasal 2", "Ayat (2)")


@pytest.fixture
def base_version(clause_factory):
    return [
        clause_factory(1, "Pasal 2", ("BAB II", "Pasal 2")),
        clause_factory(2, "Setiap pekerja berhak memperoleh upah yang layak.", AYAT_1, ClauseType.AYAT),
        clause_factory(3, "Pemberi kerja wajib membayar upah tepat waktu.", AYAT_2, ClauseType.AYAT),
        clause_factory(4, CHILD_LABOUR, ("BAB II", "Pasal 3")),
    ]


def test_identical_versions_have_no_changes(base_version):
    result = compare_clauses(base_version, list(base_version))
    assert result.changes == []
    assert result.summary.total_changes == 0
    assert result.confidence_score == 1.0
    assert result.algorithm_version == ALGORITHM_VERSION


def test_empty_side_is_rejected(base_version):
    with pytest.raises(EmptyInput):
        compare_clauses([], base_version)
    with pytest.raises(EmptyInput):
        compare_clauses(base_version, [])


def test_invalid_thresholds_are_rejected():
    with pytest.raises(InvalidInput):
        DiffOptions(unchanged_threshold=0.5, same_clause_floor=0.6)


def test_rewritten_clause_is_a_major_modification(base_version, clause_factory):
    revised = list(base_version)
    revised[2] = clause_factory(
        3,
        "Pemberi kerja wajib membayar upah paling lambat tanggal lima setiap bulan.",
        ("BAB II", "Pasal 2", "Ayat (2)"),
        ClauseType.AYAT,
        clause_id="cls-new-3",
    )
    result = compare_clauses(base_version, revised)

    assert len(result.changes) == 1
    change = result.changes[0]
    assert change.change_kind == "modified"
    assert change.significance_level == "major"
    assert change.clause_ref == "Pasal 2 Ayat (2)"
    assert change.from_clause_id == "cls-3"
    assert change.to_clause_id == "cls-new-3"
    assert 0.3 <= change.similarity_score < 0.6
    assert "Removed: tepat waktu" in change.explanation
    assert result.summary.modifications == 1


def test_small_wording_change_is_minor(base_version, clause_factory):
    revised = list(base_version)
    revised[1] = clause_factory(
        2,
        "Setiap pekerja berhak memperoleh upah yang layak dan adil.",
        ("BAB II", "Pasal 2", "Ayat (1)"),
        ClauseType.AYAT,
    )
    result = compare_clauses(base_version, revised)

    change = result.changes[0]
    assert change.change_kind == "modified"
    assert change.significance_level == "minor"
    assert any(span.kind == "added" and "adil" in span.text for span in change.word_changes)


def test_word_changes_can_be_omitted(base_version, clause_factory):
    revised = list(base_version)
    revised[1] = clause_factory(2, "Setiap pekerja berhak memperoleh upah yang layak dan adil.", AYAT_1)
    result = compare_clauses(base_version, revised, DiffOptions(word_changes=False))
    assert result.changes[0].word_changes is None


def test_short_new_list_item_is_cosmetic_and_can_be_filtered(base_version, clause_factory):
    revised = base_version + [
        clause_factory(5, "pekerja harian lepas;", ("BAB II", "Pasal 3", "Huruf a"), ClauseType.HURUF),
    ]
    result = compare_clauses(base_version, revised)
    assert [(c.change_kind, c.significance_level) for c in result.changes] == [("added", "cosmetic")]
    assert result.changes[0].explanation == "Added Pasal 3 Huruf a"

    filtered = compare_clauses(base_version, revised, DiffOptions(include_cosmetic=False))
    assert filtered.changes == []


def test_legal_keyword_escalates_new_list_item(base_version, clause_factory):
    revised = base_version + [
        clause_factory(5, "pekerja dilarang merokok;", ("BAB II", "Pasal 3", "Huruf a"), ClauseType.HURUF),
    ]
    result = compare_clauses(base_version, revised)
    assert result.changes[0].significance_level == "minor"


def test_deleted_article_is_major(base_version):
    result = compare_clauses(base_version, base_version[:3])
    assert [(c.change_kind, c.significance_level) for c in result.changes] == [("deleted", "major")]
    assert result.changes[0].explanation == "Deleted Pasal 3"
    assert result.changes[0].new_text is None


def test_changes_point_at_source_pages(base_version, clause_factory):
    old = [replace(clause, page_from=2, page_to=2) if clause.sequence_order == 4 else clause for clause in base_version]
    deleted = compare_clauses(old, old[:3]).changes[0]
    assert (deleted.change_kind, deleted.page_from, deleted.page_to) == ("deleted", 2, 2)

    revised = list(base_version)
    rewritten = "Pemberi kerja wajib membayar upah paling lambat tanggal lima setiap bulan."
    revised[2] = replace(
        clause_factory(3, rewritten, AYAT_2, ClauseType.AYAT),
        page_from=3,
        page_to=4,
    )
    modified = compare_clauses(base_version, revised).changes[0]
    assert modified.change_kind == "modified"
    assert modified.to_dict()["page_from"] == 3
    assert modified.to_dict()["page_to"] == 4


def test_renumbered_article_is_a_move_not_add_and_delete(clause_factory):
    old = [
        clause_factory(1, CHILD_LABOUR, ("Pasal 3",)),
        clause_factory(2, ANNUAL_LEAVE, ("Pasal 4",)),
    ]
    new = [clause_factory(1, ANNUAL_LEAVE, ("Pasal 3",), clause_id="cls-new-1")]
    result = compare_clauses(old, new)

    kinds = sorted(change.change_kind for change in result.changes)
    assert kinds == ["deleted", "moved"]
    moved = next(change for change in result.changes if change.change_kind == "moved")
    deleted = next(change for change in result.changes if change.change_kind == "deleted")
    assert moved.from_clause_id == "cls-2"
    assert moved.to_clause_id == "cls-new-1"
    assert moved.explanation == "Moved from Pasal 4 to Pasal 3"
    assert moved.significance_level == "cosmetic"
    assert deleted.from_clause_id == "cls-1"
    assert not any(change.change_kind == "added" for change in result.changes)


def test_changes_are_ordered_by_position(base_version, clause_factory):
    revised = [
        clause_factory(1, "Pasal 2", ("BAB II", "Pasal 2")),
        clause_factory(2, "Setiap pekerja berhak memperoleh upah yang layak dan adil.", AYAT_1, ClauseType.AYAT),
        clause_factory(3, "Pemberi kerja wajib membayar upah tepat waktu.", AYAT_2, ClauseType.AYAT),
        clause_factory(4, CHILD_LABOUR, ("BAB II", "Pasal 3")),
        clause_factory(5, ANNUAL_LEAVE, ("BAB II", "Pasal 4")),
    ]
    result = compare_clauses(base_version, revised)
    orders = [change.sequence_order for change in result.changes]
    assert orders == sorted(orders)
    assert [change.change_kind for change in result.changes] == ["modified", "added"]
    assert result.summary.to_dict()["additions"] == 1


def test_renumbered_chapter_keeps_article_anchors(base_version, clause_factory):
    renumbered = [
        clause_factory(clause.sequence_order, clause.text, ("BAB III",) + clause.clause_path[1:], clause.clause_type)
        for clause in base_version
    ]
    assert compare_clauses(base_version, renumbered).changes == []


def test_anchor_keys_are_unique_and_display_refs_readable(clause_factory):
    clauses = [
        clause_factory(1, "a", ("BAB I", "Pasal 1")),
        clause_factory(2, "b", ("BAB I", "Pasal 1")),
        clause_factory(3, "c", ()),
    ]
    assert anchor_keys(clauses) == ["Pasal 1", "Pasal 1#2", "#3"]
    assert display_ref(clauses[0]) == "Pasal 1"


def test_text_similarity_bounds():
    assert text_similarity("Pasal 1 berlaku.", "pasal 1 berlaku") == 1.0
    assert text_similarity("", "Pasal 1") == 0.0
    assert 0.0 < text_similarity(CHILD_LABOUR, "Pemberi kerja dilarang mempekerjakan anak.") < 1.0


def test_word_changes_trim_common_prefix_and_suffix():
    spans = word_changes("upah dibayar setiap bulan", "upah dibayar setiap minggu")
    assert [(span.kind, span.text) for span in spans] == [
        ("unchanged", "upah dibayar setiap"),
        ("removed", "bulan"),
        ("added", "minggu"),
    ]
    assert changed_text(spans) == "bulan minggu"


def test_word_changes_handle_large_inputs_with_matcher():
    old = " ".join(f"kata{i}" for i in range(600))
    new = " ".join(f"kata{i}" if i % 2 else f"ubah{i}" for i in range(600))
    assert 600 * 600 > MAX_LCS_CELLS
    spans = word_changes(old, new)
    rebuilt_new = " ".join(span.text for span in spans if span.kind != "removed")
    rebuilt_old = " ".join(span.text for span in spans if span.kind != "added")
    assert rebuilt_new == new
    assert rebuilt_old == old
