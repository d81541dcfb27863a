"""
Canonical workflow types (``stock_kernel.domain.workflow``).

Responsibility
--------------
Pure value objects for document state machines, plus the total transition
function that evaluates them.  Order lifecycles in ``stock_modules`` are
declared as ``Workflow`` constants and driven only through ``transition``.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* Transitions reference only states in ``Workflow.states``.
* ``initial_state`` is a member of ``states``.
* ``transition`` is total: every (state, action) pair either yields exactly
  one target state or raises ``InvalidTransitionError``.  No probing.
* A guarded transition fires only when the caller reports its guard as
  satisfied; a guard missing from the supplied results counts as failed.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from stock_kernel.exceptions import InvalidTransitionError


@dataclass(frozen=True)
class Guard:
    """A named condition that must hold before a transition fires.

    The owning service computes the truth of each guard name and passes the
    results to ``transition``.
    """
    name: str
    description: str


@dataclass(frozen=True)
class Transition:
    """A valid state transition in a workflow."""
    from_state: str
    to_state: str
    action: str
    guard: Guard | None = None


@dataclass(frozen=True)
class Workflow:
    """A state machine definition for a document lifecycle.

    Contract: frozen; ``transitions`` reference only states in ``states``.
    ``terminal_states`` have no outgoing transitions.
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
                f"{self.name}: initial state '{self.initial_state}' not in states"
            )
        seen: set[tuple[str, str]] = set()
        for t in self.transitions:
            if t.from_state not in self.states or t.to_state not in self.states:
                raise ValueError(
                    f"{self.name}: transition {t.from_state} -> {t.to_state} "
                    "references unknown state"
                )
            if t.from_state in self.terminal_states:
                raise ValueError(
                    f"{self.name}: terminal state '{t.from_state}' has an outgoing transition"
                )
            key = (t.from_state, t.action)
            if key in seen:
                raise ValueError(
                    f"{self.name}: duplicate transition for {key}"
                )
            seen.add(key)

    def actions_from(self, state: str) -> tuple[str, ...]:
        """Actions permitted from ``state``, in declaration order."""
        return tuple(t.action for t in self.transitions if t.from_state == state)


def find_transition(workflow: Workflow, state: str, action: str) -> Transition:
    """
    Look up the transition for (state, action).

    Raises:
        InvalidTransitionError: No transition is declared for the pair.
    """
    for t in workflow.transitions:
        if t.from_state == state and t.action == action:
            return t
    raise InvalidTransitionError(workflow.name, state, action)


def transition(
    workflow: Workflow,
    state: str,
    action: str,
    guards: Mapping[str, bool] | None = None,
) -> str:
    """
    Return the state reached by applying ``action`` in ``state``.

    ``guards`` maps guard names to their current truth.  When it is given,
    a guarded transition whose guard is not true is refused.  Without it
    only the table is consulted.

    Raises:
        InvalidTransitionError: No transition for the pair, or its guard
            is not satisfied (``guard`` attribute set).
    """
    t = find_transition(workflow, state, action)
    if guards is not None and t.guard is not None and not guards.get(t.guard.name, False):
        raise InvalidTransitionError(workflow.name, state, action, guard=t.guard.name)
    return t.to_state
