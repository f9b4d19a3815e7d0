from __future__ import annotations

import re

import pytest

from pasaldiff.core.errors import InvalidInput
from pasaldiff.ingest.markers import detect_marker, is_elucidation_header, is_noise
from pasaldiff.ingest.normalize import clean_text, normalize_text
from pasaldiff.ingest.segmenter import segment_pages, segment_text, segmentation_stats
from pasaldiff.ingest.types import ClauseSegment
from pasaldiff.models.entities import ClauseType


def test_clean_text_normalises_quotes_spacing_and_ayat_labels():
    raw = "Pasal 1\r\n( 1 )  Setiap “pekerja”\u200b berhak\r\n\n\n\n(2 ) Cukup"
    cleaned = clean_text(raw)
    assert cleaned == 'Pasal 1\n(1) Setiap "pekerja" berhak\n\n(2) Cukup'


def test_clean_text_repairs_mojibake_quotes():
    assert clean_text("pekerjaâ€™s") == "pekerja's"


def test_control_characters_never_leave_long_whitespace_runs():
    raw = (
        "Pasal 1 Setiap orang \x01 \x02 wajib membayar pajak\x7f  \x1b sesuai ketentuan.\n"
        "\x00\n\x03\n\n\x04\n(2)\vDipungut\ftiap tahun \x05\x06 \x07 oleh negara."
    )
    cleaned = normalize_text(raw, min_length=10)
    assert re.search(r" {3,}", cleaned) is None
    assert re.search(r"\n{3,}", cleaned) is None
    assert "orang wajib membayar pajak sesuai" in cleaned
    assert "Dipungut tiap tahun oleh negara." in cleaned


def test_normalize_text_rejects_short_and_empty_input():
    with pytest.raises(InvalidInput):
        normalize_text("   \n ")
    with pytest.raises(InvalidInput) as excinfo:
        normalize_text("Pasal 1", min_length=50)
    assert excinfo.value.context["min_length"] == 50


@pytest.mark.parametrize(
    "line, clause_type, ref",
    [
        ("BAB IV", ClauseType.BAB, "BAB IV"),
        ("Bagian Kedua", ClauseType.BAGIAN, "Bagian Kedua"),
        ("Paragraf 2", ClauseType.PARAGRAF, "Paragraf 2"),
        ("Pasal 12A", ClauseType.PASAL, "Pasal 12A"),
        ("(3) Setiap orang wajib", ClauseType.AYAT, "Ayat (3)"),
        ("b. pekerja harian;", ClauseType.HURUF, "Huruf b"),
        ("4. Pekerja adalah", ClauseType.ANGKA, "Angka 4"),
    ],
)
def test_detect_marker_recognises_statute_structure(line, clause_type, ref):
    marker = detect_marker(line)
    assert marker is not None
    assert marker.clause_type is clause_type
    assert marker.ref == ref


def test_detect_marker_ignores_inline_references():
    assert detect_marker("sebagaimana dimaksud dalam Pasal 5 ayat (1)") is None
    assert detect_marker("Pasal 5 ayat (1) berlaku") is None


def test_noise_and_elucidation_lines():
    assert is_noise("12")
    assert is_noise("- 3 -")
    assert is_noise("Halaman 2 dari 10")
    assert is_noise("www.jdih.kemnaker.go.id")
    assert not is_noise("Pasal 3")
    assert is_elucidation_header("PENJELASAN")
    assert not is_elucidation_header("Penjelasan umum berikut")


def test_segment_pages_builds_ordered_hierarchy(law_pages):
    result = segment_pages(law_pages)
    clauses = result.clauses

    assert [clause.sequence_order for clause in clauses] == list(range(1, len(clauses) + 1))
    assert [clause.clause_ref for clause in clauses] == [
        "BAB I",
        "Pasal 1",
        "Angka 1",
        "Angka 2",
        "BAB II",
        "Pasal 2",
        "Ayat (1)",
        "Ayat (2)",
        "Pasal 3",
    ]
    ayat = clauses[7]
    assert ayat.clause_type is ClauseType.AYAT
    assert ayat.text == "Pemberi kerja wajib membayar upah tepat waktu."
    assert ayat.clause_path == ("BAB II", "Pasal 2", "Ayat (2)")
    assert clauses[0].text == "KETENTUAN UMUM"


def test_segment_pages_tracks_pages_and_skips_elucidation(law_pages):
    result = segment_pages(law_pages)
    by_ref = {clause.clause_ref: clause for clause in result.clauses}

    assert by_ref["Pasal 1"].page_from == 1
    assert by_ref["Pasal 3"].page_from == 2
    assert by_ref["Pasal 3"].text == "Pemberi kerja dilarang mempekerjakan anak di bawah umur."
    assert all(clause.page_from <= clause.page_to for clause in result.clauses)
    assert "Cukup jelas" not in " ".join(clause.text for clause in result.clauses)
    assert result.metadata.elucidation_skipped is True
    assert result.metadata.total_pages == 2
    assert result.metadata.preamble_chars > 0


def test_segmentation_stats_count_clause_types(law_pages):
    stats = segment_pages(law_pages).metadata.stats
    assert stats.clause_count == 9
    assert stats.clauses_with_refs == 9
    assert stats.clause_types == {"bab": 2, "pasal": 3, "angka": 2, "ayat": 2}
    assert stats.total_words > stats.avg_clause_words > 0
    assert 70 <= stats.quality_score <= 100


def test_quality_score_weighs_refs_length_and_structure():
    words = "upah " * 30
    mixed = [
        ClauseSegment("Pasal 1", ClauseType.PASAL, " ".join(["kata"] * 10), 1, 1, 1, ("Pasal 1",)),
        ClauseSegment("", ClauseType.HURUF, words.strip(), 1, 1, 2, ("Pasal 1",)),
    ]
    stats = segmentation_stats(mixed)
    assert (stats.total_words, stats.avg_clause_words, stats.clauses_with_refs) == (40, 20, 1)
    assert stats.quality_score == 62

    lists_only = [ClauseSegment("a", ClauseType.HURUF, " ".join(["kata"] * 100), 1, 1, 1, ("a",))]
    assert segmentation_stats(lists_only).quality_score == 80
    assert segmentation_stats([]).quality_score == 0


def test_preamble_lists_are_not_clauses(law_pages):
    result = segment_pages(law_pages)
    texts = [clause.text for clause in result.clauses]
    assert not any("bahwa setiap warga negara" in text for text in texts)


def test_clause_continuing_on_next_page_spans_both_pages():
    pages = [
        "BAB I\nKETENTUAN UMUM\nPasal 1\nPemberi kerja wajib mendaftarkan setiap pekerja",
        "kepada badan penyelenggara jaminan sosial.\nPasal 2\nKetentuan lebih lanjut diatur dengan peraturan.",
    ]
    result = segment_pages(pages)
    pasal_1 = next(clause for clause in result.clauses if clause.clause_ref == "Pasal 1")
    assert (pasal_1.page_from, pasal_1.page_to) == (1, 2)
    assert pasal_1.text.endswith("jaminan sosial.")


def test_heading_only_clause_keeps_marker_line():
    text = "BAB I\nPasal 1\n(1) Setiap pekerja berhak atas upah yang layak bagi kemanusiaan."
    result = segment_text(text)
    pasal = result.clauses[1]
    assert pasal.clause_ref == "Pasal 1"
    assert pasal.text == "Pasal 1"


def test_segment_text_splits_form_feeds(law_pages):
    result = segment_text("\f".join(law_pages))
    assert result.metadata.total_pages == 2
    assert len(result.clauses) == 9


def test_plain_prose_yields_no_clauses_and_an_issue():
    prose = (
        "Cuaca hari ini cerah dan kami pergi ke pasar untuk membeli sayur serta buah segar "
        "bersama keluarga besar."
    )
    result = segment_pages([prose])
    assert result.clauses == []
    assert not result.validation.is_valid
    assert any("no structural markers" in issue for issue in result.validation.issues)


def test_total_pages_smaller_than_supplied_pages_is_rejected(law_pages):
    with pytest.raises(InvalidInput):
        segment_pages(law_pages, total_pages=1)


def test_short_document_is_rejected():
    with pytest.raises(InvalidInput):
        segment_pages(["Pasal 1"])
