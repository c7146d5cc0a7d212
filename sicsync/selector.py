"""
Candidate selection.

Responsibilities:
- Pick active customers that carry a company number.
- Most recently modified first.
- Never more than the registry allows in one rate window.

Non-Responsibilities:
- No registry calls.
- No record mutation.
"""

from typing import List

from sqlalchemy.exc import SQLAlchemyError

from .database import Customer
from .errors import SelectionFailure
from .logger import get_logger
from .models import Candidate
from .ratelimit import REGISTRY_MAX_CALLS

logger = get_logger()

# Companies House API allows 600 calls per 5 minutes
MAX_BATCH_SIZE = REGISTRY_MAX_CALLS


def candidate_criteria():
    return (
        Customer.company_no.isnot(None),
        Customer.company_no != "",
        Customer.is_inactive.is_(False),
    )


def select_candidates(store, limit: int = MAX_BATCH_SIZE) -> List[Candidate]:
    """
    Return the ordered, capped batch of customers to enrich.

    Raises:
        SelectionFailure: if the underlying query fails
        ValueError: if limit is not positive
    """
    if limit < 1:
        raise ValueError("limit must be at least 1")
    if limit > MAX_BATCH_SIZE:
        logger.warning(
            f"Batch limit {limit} exceeds registry quota, capped at {MAX_BATCH_SIZE}"
        )
        limit = MAX_BATCH_SIZE

    try:
        candidates = store.query(
            *candidate_criteria(),
            order_by=(Customer.last_modified.desc(), Customer.id.desc()),
            limit=limit,
        )
    except SQLAlchemyError as e:
        raise SelectionFailure(f"Candidate query failed: {e}") from e

    logger.info(f"Selected {len(candidates)} candidates", limit=limit)
    return candidates
