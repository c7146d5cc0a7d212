"""
Enrichment pipeline orchestrator.

Responsibilities:
- Select candidates (unless the caller supplies them).
- Per candidate: normalize, look up, interpret, update, save once.
- Keep every failure inside its own candidate and report it.

Non-Responsibilities:
- No retries of failed candidates.
- No throttling beyond the client's shared rate limiter.

Invariant:
Candidates share no mutable state, so they may run in any order on
any number of worker threads.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence

from .errors import ItemProcessingError, SelectionFailure, TransportFailure, error_kind
from .interpret import interpret
from .logger import get_logger
from .models import AggregateReport, Candidate, ItemError, RunResult, UpdateOutcome
from .mutator import apply_codes, apply_deactivation_policy, apply_status
from .normalize import normalize_identifier
from .selector import MAX_BATCH_SIZE, select_candidates

logger = get_logger()


class EnrichmentPipeline:
    def __init__(
        self,
        store,
        client,
        description_store=None,
        batch_limit: int = MAX_BATCH_SIZE,
        max_workers: int = 1,
    ):
        """
        Args:
            store: CustomerStore (query/get) holding the customers
            client: RegistryClient used for lookups
            description_store: SicCodeStore for multi-code descriptions
            batch_limit: candidates selected per run (capped at 600)
            max_workers: worker threads; 1 processes sequentially
        """
        self.store = store
        self.client = client
        self.description_store = description_store
        self.batch_limit = batch_limit
        self.max_workers = max(1, max_workers)

    def select(self) -> List[Candidate]:
        return select_candidates(self.store, self.batch_limit)

    def run(self, candidates: Optional[Sequence[Candidate]] = None) -> RunResult:
        """
        Enrich a batch and return per-candidate outcomes plus the report.

        With no candidates given, the batch comes from the selector. A
        selector failure or an unusable batch limit is the only thing
        that stops a run early; both end up in report.input_error.
        """
        report = AggregateReport()

        if candidates is None:
            try:
                candidates = self.select()
            except (SelectionFailure, ValueError) as e:
                report.input_error = str(e)
                return RunResult(outcomes=[], report=report)

        if self.max_workers > 1 and len(candidates) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                outcomes = list(executor.map(self.process_candidate, candidates))
        else:
            outcomes = [self.process_candidate(c) for c in candidates]

        for outcome in outcomes:
            if outcome.error is not None:
                report.item_errors[outcome.record_id] = ItemError(
                    kind=outcome.error,
                    message=outcome.error_message or outcome.error,
                )

        return RunResult(outcomes=outcomes, report=report)

    def process_candidate(self, candidate: Candidate) -> UpdateOutcome:
        """Process one candidate; never raises."""
        try:
            return self._process(candidate)
        except TransportFailure as e:
            logger.record_lookup_failure(error_kind(e))
            logger.warning(
                f"Registry lookup failed for record #{candidate.record_id}",
                company_no=candidate.registry_id,
                error=str(e),
            )
            return self._failed(candidate, e)
        except Exception as e:
            err = ItemProcessingError(candidate.record_id, e)
            logger.record_error(error_kind(err))
            logger.error(f"Processing failed for record #{candidate.record_id}", error=str(err))
            return self._failed(candidate, err)

    def _process(self, candidate: Candidate) -> UpdateOutcome:
        outcome = UpdateOutcome(record_id=candidate.record_id)

        if not candidate.registry_id:
            return outcome

        company_no = normalize_identifier(candidate.registry_id)
        result = self.client.lookup(company_no)
        data = interpret(result)

        if data.is_empty:
            logger.record_untouched()
            return outcome

        record = self.store.get(candidate.record_id)

        if data.codes:
            application = apply_codes(record, data.codes, self.description_store)
            outcome.codes_applied = application.applied
            outcome.codes_rejected = application.rejected

        if data.status:
            outcome.status_applied = apply_status(record, data.status)
            outcome.deactivated = apply_deactivation_policy(record, data.status)

        record.save()
        outcome.updated = True
        logger.record_update()
        return outcome

    @staticmethod
    def _failed(candidate: Candidate, exc: Exception) -> UpdateOutcome:
        return UpdateOutcome(
            record_id=candidate.record_id,
            error=error_kind(exc),
            error_message=str(exc),
        )
