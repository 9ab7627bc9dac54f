"""
Status transition tables
Every status workflow (GRN, QC inspection) is declared as an explicit
(state, event) -> state mapping instead of scattered status checks
"""
import logging

from django.core.exceptions import ValidationError

logger = logging.getLogger(__name__)


class IllegalTransition(ValidationError):
    """Raised when an event is fired from a state that does not accept it"""

    def __init__(self, workflow, state, event):
        self.workflow = workflow
        self.state = state
        self.event = event
        super().__init__(
            f"{workflow}: cannot apply '{event}' while status is '{state}'"
        )


class TransitionTable:
    """
    Immutable transition table for one workflow.

    `transitions` maps each state to a dict of {event: next_state}. States that
    map to an empty dict (or are missing) are terminal.
    """

    def __init__(self, name, states, events, transitions):
        self.name = name
        self.states = frozenset(states)
        self.events = frozenset(events)
        self._transitions = {}

        for state, edges in transitions.items():
            if state not in self.states:
                raise ValueError(f"{name}: unknown state '{state}' in table")
            for event, target in edges.items():
                if event not in self.events:
                    raise ValueError(f"{name}: unknown event '{event}' in table")
                if target not in self.states:
                    raise ValueError(f"{name}: unknown target state '{target}' in table")
            self._transitions[state] = dict(edges)

    def can_fire(self, state, event):
        return event in self._transitions.get(state, {})

    def next_state(self, state, event):
        """Return the state reached by firing `event` from `state`"""
        try:
            return self._transitions[state][event]
        except KeyError:
            raise IllegalTransition(self.name, state, event)

    def allowed_events(self, state):
        return sorted(self._transitions.get(state, {}))

    def is_terminal(self, state):
        return not self._transitions.get(state)

    def fire(self, instance, event, field='status'):
        """
        Apply `event` to a model instance in memory and return the new state.
        The caller is responsible for saving the instance.
        """
        current = getattr(instance, field)
        target = self.next_state(current, event)
        setattr(instance, field, target)
        logger.info(
            f"{self.name} #{instance.pk}: {current} --{event}--> {target}"
        )
        return target
