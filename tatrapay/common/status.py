"""ISO 20022 payment status vocabulary and classification helpers.

TatraPay+ reports statuses as ISO 20022 codes (a settled card payment comes
back as `ACSC`, not a human-readable name). The live gateway has been seen to
emit codes outside this vocabulary (`OK`, or `AUTH_DONE` in a secondary
field), so every helper here is total: unknown codes are neither successful
nor failed and map to `pending`.
"""

SUCCESS_STATUSES: frozenset[str] = frozenset(
    {"ACCC", "ACSC", "ACSP", "ACCP", "ACTC", "ACWC", "ACWP", "ACFC"}
)
FAILED_STATUSES: frozenset[str] = frozenset({"RJCT", "CANC"})
PENDING_STATUSES: frozenset[str] = frozenset({"RCVD", "PDNG", "PATC", "PART"})

INTERNAL_COMPLETED = "completed"
INTERNAL_FAILED = "failed"
INTERNAL_PENDING = "pending"

STATUS_LABELS: dict[str, dict[str, str]] = {
    "sk": {
        "ACCC": "Dokončená",
        "ACSC": "Vyrovnaná",
        "ACSP": "Spracováva sa",
        "ACCP": "Akceptovaná",
        "ACTC": "Overená",
        "ACWC": "Prijatá so zmenou",
        "ACWP": "Prijatá",
        "ACFC": "Fondy overené",
        "RCVD": "Prijatá",
        "PDNG": "Čaká",
        "PATC": "Čiastočne prijatá",
        "PART": "Čiastočná",
        "RJCT": "Zamietnutá",
        "CANC": "Zrušená",
    },
    "en": {
        "ACCC": "Completed",
        "ACSC": "Settled",
        "ACSP": "Settlement in progress",
        "ACCP": "Accepted",
        "ACTC": "Verified",
        "ACWC": "Accepted with change",
        "ACWP": "Accepted",
        "ACFC": "Funds checked",
        "RCVD": "Received",
        "PDNG": "Pending",
        "PATC": "Partially accepted",
        "PART": "Partial",
        "RJCT": "Rejected",
        "CANC": "Cancelled",
    },
}


def is_payment_successful(status: str) -> bool:
    return status in SUCCESS_STATUSES


def is_payment_failed(status: str) -> bool:
    return status in FAILED_STATUSES


def is_payment_pending(status: str) -> bool:
    return status in PENDING_STATUSES


def map_to_internal_status(status: str) -> str:
    """Collapse a gateway code to `completed`, `failed` or `pending`."""

    if is_payment_successful(status):
        return INTERNAL_COMPLETED
    if is_payment_failed(status):
        return INTERNAL_FAILED
    return INTERNAL_PENDING


def get_status_label(status: str, language: str = "sk") -> str:
    """Human-readable label; falls back to the raw code."""

    labels = STATUS_LABELS.get(language, STATUS_LABELS["sk"])
    return labels.get(status, status)
