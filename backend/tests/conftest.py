from __future__ import annotations

import sys
from pathlib import Path

import pytest

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from pasaldiff.api import dependencies as deps  # noqa: E402
from pasaldiff.core.config import Settings, get_settings  # noqa: E402
from pasaldiff.db.sqlite import SQLiteDatabase  # noqa: E402
from pasaldiff.db.store import LegalStore  # noqa: E402
from pasaldiff.models.entities import Clause, ClauseType  # noqa: E402

LAW_PAGES = [
    """UNDANG-UNDANG REPUBLIK INDONESIA
NOMOR 5 TAHUN 2024
TENTANG KETENAGAKERJAAN DAERAH

Menimbang:
a. bahwa setiap warga negara berhak atas pekerjaan;
b. bahwa perlu diatur ketentuan mengenai pekerja;
Mengingat:
1. Undang-Undang Nomor 13 Tahun 2003 tentang Ketenagakerjaan;

BAB I
KETENTUAN UMUM

Pasal 1
Dalam Undang-Undang ini yang dimaksud dengan:
1. Pekerja adalah setiap orang yang bekerja dengan menerima upah.
2. Pemberi Kerja adalah badan usaha yang mempekerjakan pekerja.
- 1 -""",
    """BAB II
HAK DAN KEWAJIBAN

Pasal 2
(1) Setiap pekerja berhak memperoleh upah yang layak.
(2) Pemberi kerja wajib membayar upah tepat waktu.

Pasal 3
Pemberi kerja dilarang mempekerjakan anak di bawah umur.
2
PENJELASAN
ATAS UNDANG-UNDANG
Pasal 1
Cukup jelas.""",
]


@pytest.fixture(autouse=True)
def reset_state(tmp_path, monkeypatch):
    db_path = tmp_path / "pasal.db"
    monkeypatch.setenv("PASALDIFF_DB_PATH", str(db_path))
    monkeypatch.delenv("PASALDIFF_CONFIG", raising=False)
    get_settings.cache_clear()
    deps.reset_dependencies()
    yield
    deps.reset_dependencies()
    get_settings.cache_clear()


@pytest.fixture
def law_pages() -> list[str]:
    return list(LAW_PAGES)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(db_path=tmp_path / "unit.db", retry_delay_seconds=0.0)


@pytest.fixture
def store(settings):
    database = SQLiteDatabase(settings.db_path)
    database.ensure_schema()
    yield LegalStore(database)
    database.close()


def make_clause(
    sequence_order: int,
    text: str,
    path: tuple[str, ...],
    clause_type: ClauseType = ClauseType.PASAL,
    clause_id: str | None = None,
) -> Clause:
    return Clause(
        id=clause_id or f"cls-{sequence_order}",
        version_id="ver-test",
        clause_ref=path[-1] if path else None,
        clause_type=clause_type,
        text=text,
        page_from=1,
        page_to=1,
        sequence_order=sequence_order,
        clause_path=path,
    )


@pytest.fixture
def clause_factory():
    return make_clause
