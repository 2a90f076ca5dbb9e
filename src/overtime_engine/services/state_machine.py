"""Entry approval state machine with transition validation."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from overtime_engine.exceptions import (
    InvalidTransitionError,
    MissingCommentError,
    NotEditableError,
    ValidationError,
)


class EntryState(str, Enum):
    """Entry lifecycle states."""

    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"
    RETURNED = "returned"


class Action(str, Enum):
    """Lifecycle actions."""

    SUBMIT = "submit"
    APPROVE = "approve"
    REJECT = "reject"
    RETURN = "return"
    RESUBMIT = "resubmit"

    @classmethod
    def parse(cls, value: str) -> Action:
        try:
            return cls(value)
        except ValueError:
            raise ValidationError("action", f"unknown action '{value}'") from None


class ActorKind(str, Enum):
    """Who may perform a transition."""

    OWNER = "owner"
    APPROVER = "approver"


@dataclass(frozen=True)
class Transition:
    """One edge of the lifecycle graph."""

    from_state: EntryState
    action: Action
    to_state: EntryState
    actor: ActorKind
    requires_comment: bool = False
    recompute_amount: bool = False


class EntryStateMachine:
    """State machine for entry lifecycle transitions.

    Allowed transitions:
    - draft → submitted (submit, owner)
    - submitted → approved (approve, approver)
    - submitted → rejected (reject, approver, comment required)
    - submitted → returned (return, approver, comment required)
    - returned → submitted (resubmit, owner)
    """

    TRANSITIONS: dict[tuple[EntryState, Action], Transition] = {
        (t.from_state, t.action): t
        for t in (
            Transition(
                EntryState.DRAFT,
                Action.SUBMIT,
                EntryState.SUBMITTED,
                ActorKind.OWNER,
                recompute_amount=True,
            ),
            Transition(
                EntryState.SUBMITTED,
                Action.APPROVE,
                EntryState.APPROVED,
                ActorKind.APPROVER,
            ),
            Transition(
                EntryState.SUBMITTED,
                Action.REJECT,
                EntryState.REJECTED,
                ActorKind.APPROVER,
                requires_comment=True,
            ),
            Transition(
                EntryState.SUBMITTED,
                Action.RETURN,
                EntryState.RETURNED,
                ActorKind.APPROVER,
                requires_comment=True,
            ),
            Transition(
                EntryState.RETURNED,
                Action.RESUBMIT,
                EntryState.SUBMITTED,
                ActorKind.OWNER,
                recompute_amount=True,
            ),
        )
    }

    TERMINAL = frozenset({EntryState.APPROVED, EntryState.REJECTED})

    # Owner may change fields
    EDITABLE = frozenset({EntryState.DRAFT, EntryState.RETURNED})

    # Owner may hard-delete
    DELETABLE = frozenset({EntryState.DRAFT})

    @classmethod
    def can_transition(cls, state: str, action: str) -> bool:
        """Check if an action is allowed from a state."""
        try:
            return (EntryState(state), Action(action)) in cls.TRANSITIONS
        except ValueError:
            return False

    @classmethod
    def get_transition(
        cls,
        state: EntryState,
        action: Action,
        entry_id: str | None = None,
    ) -> Transition:
        """Return the matching edge, raising InvalidTransitionError if none."""
        transition = cls.TRANSITIONS.get((state, action))
        if transition is None:
            raise InvalidTransitionError(entry_id, action.value, state.value)
        return transition

    @classmethod
    def validate(
        cls,
        state: EntryState,
        action: Action,
        comment: str | None = None,
        entry_id: str | None = None,
    ) -> Transition:
        """Validate an action and its comment before anything is changed."""
        transition = cls.get_transition(state, action, entry_id)
        if transition.requires_comment and not (comment and comment.strip()):
            raise MissingCommentError(entry_id, action.value, state.value)
        return transition

    @classmethod
    def get_next_actions(cls, state: str) -> list[Action]:
        """Actions available from a state."""
        return [action for (from_state, action) in cls.TRANSITIONS if from_state == state]

    @classmethod
    def is_terminal(cls, state: str) -> bool:
        return state in cls.TERMINAL

    @classmethod
    def can_edit(cls, state: str) -> bool:
        return state in cls.EDITABLE

    @classmethod
    def can_delete(cls, state: str) -> bool:
        return state in cls.DELETABLE

    @classmethod
    def ensure_editable(cls, state: EntryState, entry_id: str | None = None) -> None:
        if not cls.can_edit(state):
            raise NotEditableError(entry_id, "edit", state.value)

    @classmethod
    def ensure_deletable(cls, state: EntryState, entry_id: str | None = None) -> None:
        if not cls.can_delete(state):
            raise NotEditableError(entry_id, "delete", state.value)
