from dataclasses import dataclass, field
from typing import List

from .registry import LookupResult


@dataclass(frozen=True)
class Interpretation:
    codes: List[str] = field(default_factory=list)
    status: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.codes and not self.status


def strip_leading_zero(code: str) -> str:
    # The system holds four digit SIC codes, the registry pads them to five.
    if len(code) > 1 and code.startswith("0"):
        return code[1:]
    return code


def interpret(result: LookupResult) -> Interpretation:
    """Extract usable SIC codes and the company status from a lookup.

    Order and duplicates are kept as the registry sent them. A lookup
    without data (any status other than 200) interprets as empty.
    """
    if not result.has_data:
        return Interpretation()
    return Interpretation(
        codes=[strip_leading_zero(code) for code in result.domain_codes],
        status=result.company_status or "",
    )
