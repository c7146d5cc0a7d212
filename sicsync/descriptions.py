from typing import Iterable, List

from sqlalchemy.exc import SQLAlchemyError

from .logger import get_logger
from .storage import KEYWORD_OR

logger = get_logger()


def resolve_descriptions(codes: Iterable[str], store) -> List[str]:
    """
    Look up human readable descriptions for SIC codes.

    Needed when the multi-select holds more than one code, since the
    description field is only auto-filled for a single selection. Never
    raises: a failed or empty search gives an empty list.

    Args:
        codes: SIC codes as stored (leading zero already trimmed)
        store: object exposing search_by_keywords(keywords)

    Returns:
        Descriptions in the order the search returned them
    """
    unique = list(dict.fromkeys(c for c in codes if c))
    if not unique:
        return []

    keywords = KEYWORD_OR.join(unique)
    try:
        results = store.search_by_keywords(keywords)
    except (SQLAlchemyError, ValueError) as e:
        logger.warning("SIC description search failed", keywords=keywords, error=str(e))
        return []

    if not isinstance(results, list):
        return []
    return [r for r in results if isinstance(r, str) and r]
