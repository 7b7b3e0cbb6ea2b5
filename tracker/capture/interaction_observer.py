"""Toggle widget interaction observer.

Elements marked with ``data-interaction`` (accordion, tab, faq, ...) keep
their open/closed state in ``data-state``. Each click flips the state and
reports it, so the attribute and the emitted event always agree.
"""

import logging
import secrets
from typing import Optional

from ..browser.ports import Clock, DomEvent, EventSource
from ..models.events import InteractionAction, InteractionEvent, WidgetState
from .base import BaseObserver

logger = logging.getLogger(__name__)

INTERACTION_ATTRIBUTE = "data-interaction"
STATE_ATTRIBUTE = "data-state"
GENERATED_ID_ATTRIBUTE = "data-interaction-id"
MAX_LABEL_LENGTH = 100


class InteractionObserver(BaseObserver):
    """Emits open/close transitions for toggle widgets."""

    name = "interaction"

    def __init__(self, source: EventSource, clock: Clock):
        super().__init__()
        self.source = source
        self.clock = clock
        self.selector = f"[{INTERACTION_ATTRIBUTE}]"

    def start(self) -> None:
        if self._running:
            return
        self.source.add_listener("click", self._on_click)
        self._running = True

    def stop(self) -> None:
        if self._running:
            self.source.remove_listener("click", self._on_click)
        self._running = False

    def _on_click(self, event: DomEvent) -> None:
        if event.target is None:
            return
        target = event.target.closest(self.selector)
        if target is None:
            return
        self._emit(self.toggle(target))

    def _generate_id(self) -> str:
        return f"int_{self.clock.now_ms()}_{secrets.token_hex(3)[:5]}"

    def element_id(self, element) -> str:
        """DOM id, or a generated id persisted on the element on first use."""
        if element.id:
            return element.id
        generated = element.get_attribute(GENERATED_ID_ATTRIBUTE)
        if not generated:
            generated = self._generate_id()
            element.set_attribute(GENERATED_ID_ATTRIBUTE, generated)
        return generated

    def toggle(self, element) -> InteractionEvent:
        """Flip the element's state and describe the transition."""
        current = element.get_attribute(STATE_ATTRIBUTE) or WidgetState.CLOSED.value
        if current == WidgetState.OPEN.value:
            new_state, action = WidgetState.CLOSED, InteractionAction.CLOSE
        else:
            new_state, action = WidgetState.OPEN, InteractionAction.OPEN

        element.set_attribute(STATE_ATTRIBUTE, new_state.value)

        label = (element.inner_text or "").strip()[:MAX_LABEL_LENGTH] or element.id or "unknown"
        event = InteractionEvent(
            element_type=element.get_attribute(INTERACTION_ATTRIBUTE),
            element_id=self.element_id(element),
            interaction_type=action,
            state=new_state,
            label=label,
            ts=self.clock.now_ms(),
        )
        logger.debug(f"Interaction {event.element_type} {event.element_id}: {action.value}")
        return event
