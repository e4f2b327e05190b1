"""Bracketed L-system expansion for the branching tree grammar."""

from __future__ import annotations

from typing import Dict, Mapping

FORWARD = "F"
TURN_LEFT = "+"
TURN_RIGHT = "-"
PUSH = "["
POP = "]"

TREE_RULES: Dict[str, str] = {
    FORWARD: "FF-[-F+F+F]+[+F-F-F]",
}

# Sentence length grows ~7x per generation; deeper than this is unusable.
MAX_ITERATIONS = 6


def expand(axiom: str = FORWARD, iterations: int = 0, rules: Mapping[str, str] = TREE_RULES) -> str:
    """Rewrite ``axiom`` ``iterations`` times.

    Symbols without a production (turns, brackets, anything unknown) are
    copied through unchanged. Pure and deterministic.
    """
    if iterations < 0:
        raise ValueError("iterations must be >= 0")
    if iterations > MAX_ITERATIONS:
        raise ValueError(f"iterations must be <= {MAX_ITERATIONS}")

    current = axiom
    for _ in range(iterations):
        current = "".join(rules.get(ch, ch) for ch in current)
    return current


def forward_count(iterations: int) -> int:
    """Number of ``F`` symbols in the tree sentence after ``iterations`` steps."""
    return TREE_RULES[FORWARD].count(FORWARD) ** iterations
