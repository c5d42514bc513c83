from vdom_testing.interaction.service import (
    InteractionService,
    flush_promises,
    next_tick,
    set_value,
    trigger,
    wait_for,
)

__all__ = [
    "InteractionService",
    "flush_promises",
    "next_tick",
    "set_value",
    "trigger",
    "wait_for",
]
