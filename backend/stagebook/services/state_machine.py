"""Explicit finite-state tables for the booking, rider and contract workflows.

Each workflow declares its edges once, together with the parties allowed to
drive them. Transition checks go through :meth:`StateMachine.check` instead
of ad hoc status comparisons at each call site.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Iterable, Optional, Type

from ..utils.errors import Conflict, Forbidden, WorkflowError


def _value(state) -> str:
    return getattr(state, "value", state)


@dataclass(frozen=True)
class Edge:
    source: enum.Enum
    target: enum.Enum
    parties: frozenset


@dataclass(frozen=True)
class StateMachine:
    name: str
    edges: tuple[Edge, ...]
    terminal: frozenset = field(default_factory=frozenset)

    @classmethod
    def build(
        cls,
        name: str,
        edges: Iterable[tuple[enum.Enum, enum.Enum, Iterable]],
        terminal: Iterable[enum.Enum] = (),
    ) -> "StateMachine":
        return cls(
            name=name,
            edges=tuple(Edge(src, dst, frozenset(parties)) for src, dst, parties in edges),
            terminal=frozenset(terminal),
        )

    def edge(self, source, target) -> Optional[Edge]:
        for candidate in self.edges:
            if candidate.source == source and candidate.target == target:
                return candidate
        return None

    def targets(self, source) -> list:
        return [e.target for e in self.edges if e.source == source]

    def is_terminal(self, state) -> bool:
        return state in self.terminal

    def allows(self, party, source, target) -> bool:
        found = self.edge(source, target)
        return found is not None and party in found.parties

    def check(
        self,
        party,
        source,
        target,
        missing_edge: Type[WorkflowError] = Conflict,
    ) -> Edge:
        """Return the edge ``source -> target`` or raise.

        A party outside the edge's allowed set gets :class:`Forbidden`. An edge
        that does not exist raises ``missing_edge``.
        """
        found = self.edge(source, target)
        if found is None:
            raise missing_edge(
                f"Cannot move {self.name} from {_value(source)} to {_value(target)}",
                {"status": f"invalid transition {_value(source)} -> {_value(target)}"},
            )
        if party not in found.parties:
            raise Forbidden(
                f"The {_value(party)} cannot move {self.name} from {_value(source)} to {_value(target)}",
            )
        return found
