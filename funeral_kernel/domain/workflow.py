"""
Canonical status state machines (``funeral_kernel.domain.workflow``).

Responsibility
--------------
Pure value objects describing which status changes an entity allows.
Every lifecycle entity (Case, Contract, Payment, PrePlanningAppointment,
MemorialTemplate) declares one ``Workflow`` and routes each status
change through ``Workflow.require_transition``.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* Transitions reference only states in ``Workflow.states``.
* ``initial_state`` is a member of ``states``.
* Terminal states have no outgoing transitions.

Failure modes
-------------
* ``ValueError`` at definition time for an inconsistent workflow.
* ``InvalidStateTransitionError`` at runtime for a disallowed change.
"""

from __future__ import annotations

from dataclasses import dataclass

from funeral_kernel.exceptions import InvalidStateTransitionError


@dataclass(frozen=True)
class Transition:
    """A valid state transition in a workflow."""
    from_state: str
    to_state: str
    action: str


@dataclass(frozen=True)
class Workflow:
    """A state machine definition for an entity lifecycle.

    Contract: frozen; validated on construction.
    """
    name: str
    description: str
    initial_state: str
    states: tuple[str, ...]
    transitions: tuple[Transition, ...]
    terminal_states: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.initial_state not in self.states:
            raise ValueError(
                f"Workflow {self.name}: initial state {self.initial_state} not in states"
            )
        for t in self.transitions:
            if t.from_state not in self.states or t.to_state not in self.states:
                raise ValueError(
                    f"Workflow {self.name}: transition {t.from_state}->{t.to_state} "
                    "references an unknown state"
                )
            if t.from_state in self.terminal_states:
                raise ValueError(
                    f"Workflow {self.name}: terminal state {t.from_state} has an "
                    "outgoing transition"
                )

    def allowed_from(self, state: str) -> tuple[str, ...]:
        """Target states reachable in one step from ``state``."""
        return tuple(t.to_state for t in self.transitions if t.from_state == state)

    def can_transition(self, from_state: str, to_state: str) -> bool:
        return to_state in self.allowed_from(from_state)

    def is_terminal(self, state: str) -> bool:
        return state in self.terminal_states

    def require_transition(self, entity_type: str, from_state: str, to_state: str) -> None:
        """Raise InvalidStateTransitionError unless ``from_state -> to_state`` is allowed."""
        if not self.can_transition(from_state, to_state):
            raise InvalidStateTransitionError(entity_type, from_state, to_state)
