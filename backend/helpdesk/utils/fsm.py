"""Simple finite state machine utility for enforcing allowed status transitions.

Usage:
    from helpdesk.utils.fsm import TransitionValidator
    fsm = TransitionValidator({
        'open': {'in_progress', 'closed'},
        'in_progress': {'resolved'},
        'closed': set(),
    })
    fsm.assert_can_transition(current_status, target_status)

Staying in the same state is always allowed. Raises ValidationError if invalid.
"""
from __future__ import annotations
from typing import Dict, Iterable, Set
from helpdesk.errors import ValidationError


class TransitionValidator:
    def __init__(self, graph: Dict[str, Set[str]], field_name: str = 'status'):
        self.graph = graph
        self.field_name = field_name

    @classmethod
    def fully_connected(cls, states: Iterable[str], terminal: Iterable[str] = (), field_name: str = 'status'):
        """Graph where every state reaches every other, except ``terminal`` states which reach none."""
        states = tuple(states)
        terminal = set(terminal)
        graph = {s: (set() if s in terminal else set(states) - {s}) for s in states}
        return cls(graph, field_name)

    def can_transition(self, current: str, target: str) -> bool:
        return current == target or target in self.graph.get(current, set())

    def assert_can_transition(self, current: str, target: str):
        if not self.can_transition(current, target):
            raise ValidationError([f"Invalid {self.field_name} transition {current} -> {target}"])
        return True

__all__ = ['TransitionValidator']
