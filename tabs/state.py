"""
Tab lifecycle.

    OPEN --add_item--> OPEN
    OPEN --set_served--> OPEN
    OPEN --close--> CLOSED
    CLOSED --set_served--> CLOSED

CLOSED is terminal for everything except the served flag, which belongs
to the kitchen and may still change after the customer has paid.
"""

import enum

from .exceptions import TabClosedError


class TabState(str, enum.Enum):
    OPEN = 'open'
    CLOSED = 'closed'


class Transition(str, enum.Enum):
    ADD_ITEM = 'add_item'
    SET_SERVED = 'set_served'
    CLOSE = 'close'


TRANSITIONS = {
    (TabState.OPEN, Transition.ADD_ITEM): TabState.OPEN,
    (TabState.OPEN, Transition.SET_SERVED): TabState.OPEN,
    (TabState.OPEN, Transition.CLOSE): TabState.CLOSED,
    (TabState.CLOSED, Transition.SET_SERVED): TabState.CLOSED,
}


def state_of(tab):
    return TabState.OPEN if tab.is_open else TabState.CLOSED


def next_state(state, transition):
    """Return the state reached by applying a transition, or raise TabClosedError."""
    try:
        return TRANSITIONS[(TabState(state), Transition(transition))]
    except KeyError:
        raise TabClosedError(f"Cannot {Transition(transition).value.replace('_', ' ')} on a closed tab")


def apply(tab, transition):
    """Check a transition against a tab instance and return the resulting state."""
    return next_state(state_of(tab), transition)
