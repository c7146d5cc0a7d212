from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Tuple

# Registry status vocabulary is lowercase; "active" is the only value
# that keeps a customer open.
ACTIVE_STATUS = "active"


def is_active_status(status: str) -> bool:
    return status == ACTIVE_STATUS


@dataclass(frozen=True)
class Candidate:
    """A customer selected for one enrichment pass."""

    record_id: int
    registry_id: str
    current_codes: Tuple[str, ...] = ()
    last_modified: Optional[datetime] = None
    entity_id: str = ""


@dataclass
class UpdateOutcome:
    record_id: int
    codes_applied: List[str] = field(default_factory=list)
    codes_rejected: List[str] = field(default_factory=list)
    status_applied: bool = False
    deactivated: bool = False
    updated: bool = False  # record fetched and saved
    error: Optional[str] = None  # error kind
    error_message: Optional[str] = None


@dataclass
class ItemError:
    kind: str
    message: str


@dataclass
class AggregateReport:
    input_error: Optional[str] = None
    item_errors: Dict[int, ItemError] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.input_error is None and not self.item_errors


@dataclass
class RunResult:
    outcomes: List[UpdateOutcome] = field(default_factory=list)
    report: AggregateReport = field(default_factory=AggregateReport)

    def counts(self) -> Dict[str, int]:
        """Totals printed by the CLI at the end of a run."""
        return {
            "processed": len(self.outcomes),
            "updated": sum(1 for o in self.outcomes if o.updated),
            "untouched": sum(1 for o in self.outcomes if not o.updated and o.error is None),
            "rejected": sum(1 for o in self.outcomes if o.codes_rejected),
            "deactivated": sum(1 for o in self.outcomes if o.deactivated),
            "errors": len(self.report.item_errors),
        }
