"""Version-level comparison backed by the store."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from pasaldiff.compare.engine import DiffOptions, DiffResult, compare_clauses
from pasaldiff.core.config import Settings
from pasaldiff.core.errors import InvalidInput, NotComparable
from pasaldiff.db.store import LegalStore
from pasaldiff.models.entities import DocumentVersion, ProcessingStatus

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ComparisonOutcome:
    version_from: str
    version_to: str
    result: DiffResult
    run_id: str | None = None


class ComparisonService:
    """Load two completed versions, diff them and record the run."""

    def __init__(self, store: LegalStore, settings: Settings) -> None:
        self.store = store
        self.settings = settings

    def default_options(self) -> DiffOptions:
        return DiffOptions(
            unchanged_threshold=self.settings.unchanged_threshold,
            same_clause_floor=self.settings.same_clause_floor,
        )

    def compare_versions(
        self,
        version_from: str,
        version_to: str,
        options: DiffOptions | None = None,
        persist: bool = True,
    ) -> ComparisonOutcome:
        if version_from == version_to:
            raise InvalidInput("cannot compare a version with itself", version_id=version_from)
        old = self.store.get_version(version_from)
        new = self.store.get_version(version_to)
        _require_completed(old)
        _require_completed(new)
        if old.document_id != new.document_id:
            logger.warning("Comparing versions of different documents: %s vs %s", old.document_id, new.document_id)

        result = compare_clauses(
            self.store.get_clauses(version_from),
            self.store.get_clauses(version_to),
            options or self.default_options(),
        )
        run_id = None
        if persist:
            run_id = self.store.save_diff_run(
                version_from,
                version_to,
                result.to_dict(),
                algorithm_version=result.algorithm_version,
                change_count=len(result.changes),
            )
        return ComparisonOutcome(version_from=version_from, version_to=version_to, result=result, run_id=run_id)


def _require_completed(version: DocumentVersion) -> None:
    if version.processing_status is not ProcessingStatus.COMPLETED:
        raise NotComparable(
            f"version {version.id} is {version.processing_status.value}, not completed",
            version_id=version.id,
            status=version.processing_status.value,
        )


__all__ = ["ComparisonService", "ComparisonOutcome"]
