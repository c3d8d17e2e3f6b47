"""Transaction status transitions enforced by the execution engine.

Quote consumption (`active -> used`) is a single conditional UPDATE and is not
routed through this table.
"""

TRANSACTION_TRANSITIONS: dict[str, set[str]] = {
    "pending": {"processing", "failed"},
    "processing": {"failed"},
    "failed": set(),
}


def validate_transition(current: str, new: str, transitions: dict[str, set[str]] = TRANSACTION_TRANSITIONS) -> None:
    """Raise when a transition is not allowed by the given state machine."""

    if new not in transitions.get(current, set()):
        raise ValueError(f"Invalid transition: {current} -> {new}")
