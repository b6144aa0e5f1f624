"""Interactive fuzzy picker over collected rows."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

from prompt_toolkit.completion import FuzzyCompleter, WordCompleter
from prompt_toolkit.shortcuts import prompt

from wtls.render import format_pick_label

if TYPE_CHECKING:
    from wtls.consumer import ItemState


def pick_labels(states: Sequence[ItemState], now: int) -> dict[str, ItemState]:
    labels: dict[str, ItemState] = {}
    for state in states:
        label = format_pick_label(state, now)
        # Identical labels would shadow each other in the completer.
        while label in labels:
            label += " "
        labels[label] = state
    return labels


def pick_item(states: Sequence[ItemState], now: int) -> ItemState | None:
    if not states:
        return None
    mapping = pick_labels(states, now)
    completer = FuzzyCompleter(WordCompleter(list(mapping), ignore_case=True, sentence=True))
    selection = prompt("Worktree: ", completer=completer)
    return mapping.get(selection)
