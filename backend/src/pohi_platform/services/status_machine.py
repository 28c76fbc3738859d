"""Demand and stock status machines - validate transitions and who may make them.

Demand: Received -> Processing (match engine) -> Completed (billing);
        Received -> Cancelled (owner/admin).
Stock:  Available -> Reserved (match engine) -> Sold (billing).
"""

from enum import Enum

from pohi_platform.domain.enums import DemandStatus, StockStatus, TransitionActor


class InvalidTransitionError(Exception):
    """Raised when a status transition is not allowed."""

    def __init__(self, current_status: Enum, target_status: Enum, reason: str):
        self.current_status = current_status
        self.target_status = target_status
        self.reason = reason
        super().__init__(
            f"Invalid transition from {current_status.value} to {target_status.value}: {reason}"
        )


# ---------------------------------------------------------------------------
# Transition maps: from_status -> {to_status: set_of_allowed_actors}
# ---------------------------------------------------------------------------

D = DemandStatus
S = StockStatus
A = TransitionActor

DEMAND_TRANSITIONS: dict[DemandStatus, dict[DemandStatus, set[TransitionActor]]] = {
    D.RECEIVED: {
        D.PROCESSING: {A.MATCH_ENGINE},
        D.CANCELLED: {A.OWNER, A.ADMIN},
    },
    D.PROCESSING: {
        D.COMPLETED: {A.BILLING},
    },
}

STOCK_TRANSITIONS: dict[StockStatus, dict[StockStatus, set[TransitionActor]]] = {
    S.AVAILABLE: {
        S.RESERVED: {A.MATCH_ENGINE},
    },
    S.RESERVED: {
        S.SOLD: {A.BILLING},
    },
}


def _validate(transitions: dict, current_status, target_status, actor: TransitionActor) -> bool:
    allowed_targets = transitions.get(current_status)
    if allowed_targets is None:
        raise InvalidTransitionError(
            current_status,
            target_status,
            f"No transitions allowed from {current_status.value}",
        )

    if target_status not in allowed_targets:
        raise InvalidTransitionError(
            current_status,
            target_status,
            f"Transition from {current_status.value} to {target_status.value} is not allowed",
        )

    allowed_actors = allowed_targets[target_status]
    if actor not in allowed_actors:
        raise InvalidTransitionError(
            current_status,
            target_status,
            f"Actor {actor.value} is not permitted for this transition "
            f"(allowed: {', '.join(sorted(a.value for a in allowed_actors))})",
        )
    return True


class StatusMachine:
    """Validates demand and stock transitions."""

    def validate_demand_transition(
        self,
        current_status: DemandStatus,
        target_status: DemandStatus,
        actor: TransitionActor,
    ) -> bool:
        """Return True if allowed. Raise InvalidTransitionError if not."""
        return _validate(DEMAND_TRANSITIONS, current_status, target_status, actor)

    def validate_stock_transition(
        self,
        current_status: StockStatus,
        target_status: StockStatus,
        actor: TransitionActor,
    ) -> bool:
        """Return True if allowed. Raise InvalidTransitionError if not."""
        return _validate(STOCK_TRANSITIONS, current_status, target_status, actor)
