"""
Field updates applied to one customer record.

All writes are staged on the record; the caller saves once after every
mutation for the candidate is done.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from .descriptions import resolve_descriptions
from .errors import InvalidCodeError
from .logger import get_logger
from .models import is_active_status
from .storage import CLASSIFICATION_FIELD

logger = get_logger()

DESCRIPTION_FIELD = "sic_description"
DESCRIPTION_SEPARATOR = "; "
STATUS_FIELD = "company_status"
INACTIVE_FIELD = "is_inactive"
FINANCIAL_FIELDS = ("balance", "overdue_balance", "unbilled_orders")


@dataclass
class CodeApplication:
    applied: List[str] = field(default_factory=list)
    rejected: List[str] = field(default_factory=list)


def apply_codes(record, codes: Sequence[str], description_store=None) -> CodeApplication:
    """
    Set SIC codes on the record, all or nothing.

    Each code is tried on its own first so the log shows exactly which
    ones the store refuses. If any code is refused the classification
    field ends up cleared and the description field is left alone.
    Otherwise the field is set to the full list in the parsed order and,
    for more than one code, the description field is filled in.
    """
    rejected: List[str] = []

    for code in codes:
        logger.debug(f"Attempt to set SIC code [{code}] on record #{record.id}")
        try:
            record.set_field(CLASSIFICATION_FIELD, code)
        except InvalidCodeError:
            rejected.append(code)
            logger.debug(f"Unable to update record #{record.id}; Incorrect/missing SIC code: {code}")
            record.set_field(CLASSIFICATION_FIELD, "")

    if rejected:
        # a valid code tried after the last rejection must not survive
        record.set_field(CLASSIFICATION_FIELD, "")
        logger.record_codes_rejected(len(rejected))
        return CodeApplication(applied=[], rejected=rejected)

    applied = list(codes)
    record.set_field(CLASSIFICATION_FIELD, applied)
    logger.debug(f"Setting SIC codes [{', '.join(applied)}] on record #{record.id}")

    if len(applied) > 1 and description_store is not None:
        descriptions = resolve_descriptions(applied, description_store)
        if descriptions:
            record.set_field(DESCRIPTION_FIELD, DESCRIPTION_SEPARATOR.join(descriptions))

    return CodeApplication(applied=applied, rejected=[])


def apply_status(record, status: str) -> bool:
    """Write the registry status verbatim. Returns True if written."""
    if not status:
        return False
    record.set_field(STATUS_FIELD, status)
    return True


def _is_zero(value: Optional[float]) -> bool:
    return value is not None and not isinstance(value, bool) and value == 0


def apply_deactivation_policy(record, status: str) -> bool:
    """
    Mark the customer inactive when the registry says the company is
    no longer active and there is nothing owed or pending on the account.

    Returns True if the record was marked inactive.
    """
    if not status or is_active_status(status):
        return False

    amounts = {name: record.get_value(name) for name in FINANCIAL_FIELDS}
    if not all(_is_zero(v) for v in amounts.values()):
        logger.debug(
            f"Company record #{record.id} kept active despite status [{status}]",
            **amounts,
        )
        return False

    record.set_field(INACTIVE_FIELD, True)
    logger.record_deactivation()
    logger.info(f"Company record deactivated: {record.id}", company_status=status)
    return True
