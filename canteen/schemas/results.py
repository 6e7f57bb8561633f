"""Explicit success/failure results returned across component boundaries."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, computed_field

from canteen.schemas.auth import AdminRead


class WriteOutcome(str, Enum):
    """How much of a multi-step write reached storage."""

    APPLIED = "applied"
    PARTIAL = "partial"
    NOT_APPLIED = "not_applied"


class OperationResult(BaseModel):
    success: bool
    outcome: WriteOutcome
    error: str | None = None

    @classmethod
    def ok(cls) -> "OperationResult":
        return cls(success=True, outcome=WriteOutcome.APPLIED)

    @classmethod
    def failed(cls, error: str, outcome: WriteOutcome = WriteOutcome.NOT_APPLIED) -> "OperationResult":
        return cls(success=False, outcome=outcome, error=error)


class AvailabilityResult(OperationResult):
    """Result of one availability write; ``update_id`` is the audit row written."""

    item_id: int
    is_available: bool
    update_id: int | None = None


class BulkAvailabilityResult(BaseModel):
    """Per-item results of a sequence of independent availability writes."""

    results: list[AvailabilityResult] = []
    error: str | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def success(self) -> bool:
        return self.error is None and all(result.success for result in self.results)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def succeeded_ids(self) -> list[int]:
        return [result.item_id for result in self.results if result.success]

    @computed_field  # type: ignore[prop-decorator]
    @property
    def failed_ids(self) -> list[int]:
        return [result.item_id for result in self.results if not result.success]


class AdminLookup(BaseModel):
    """Outcome of resolving an identity to an admin directory row.

    ``unprovisioned`` means the query succeeded but found no active row; it is
    kept apart from ``error`` which reports a storage failure.
    """

    admin: AdminRead | None = None
    unprovisioned: bool = False
    error: str | None = None

    @property
    def found(self) -> bool:
        return self.admin is not None
