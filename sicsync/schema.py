from typing import Any, Dict, List

# Fields of the company profile the pipeline reads. Both are optional.
LIST_FIELDS = ["sic_codes"]
STR_FIELDS = ["company_status"]


def _is_non_empty_str(v: Any) -> bool:
    return isinstance(v, str) and v.strip() != ""


def validate_company_profile(data: Any) -> List[str]:
    """
    Returns a list of validation error messages. Empty list means valid.
    Only the fields the pipeline consumes are checked; everything else in
    the registry's company profile is ignored.
    """
    if not isinstance(data, dict):
        return ["Company profile must be a JSON object"]

    errors: List[str] = []

    for f in LIST_FIELDS:
        if f not in data or data[f] is None:
            continue
        value = data[f]
        if not isinstance(value, list):
            errors.append(f"Field '{f}' must be a list if provided")
            continue
        for i, item in enumerate(value):
            if not _is_non_empty_str(item):
                errors.append(f"Field '{f}[{i}]' must be a non-empty string")

    for f in STR_FIELDS:
        if f in data and data[f] is not None and not isinstance(data[f], str):
            errors.append(f"Field '{f}' must be a string if provided")

    return errors


def profile_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    """Pull the consumed fields out of a validated profile."""
    return {
        "sic_codes": list(data.get("sic_codes") or []),
        "company_status": data.get("company_status") or "",
    }
