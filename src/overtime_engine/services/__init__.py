"""Overtime engine services."""

from overtime_engine.services.state_machine import Action, EntryState, EntryStateMachine

__all__ = [
    "Action",
    "EntryState",
    "EntryStateMachine",
]
