"""Page observers that turn user behaviour into tracking events.

Main Components:
- Scroll Observer: scroll depth thresholds and velocity
- Click Observer: debounced clicks on links, buttons and data-track elements
- Engagement Timer: active versus total time on page
- Interaction Observer: open/close transitions of toggle widgets
- Visibility Observer: tracked sections entering the viewport
"""

from .base import BaseObserver
from .scroll_observer import ScrollObserver, SCROLL_THRESHOLDS
from .click_observer import ClickObserver, INTERACTIVE_SELECTOR, DEBOUNCE_DELAY_MS, position_in_view
from .engagement_timer import EngagementTimer, ENGAGEMENT_INTERVAL_MS
from .interaction_observer import InteractionObserver
from .visibility_observer import VisibilityObserver, DEFAULT_VISIBILITY_THRESHOLD

__all__ = [
    'BaseObserver',
    'ScrollObserver',
    'SCROLL_THRESHOLDS',
    'ClickObserver',
    'INTERACTIVE_SELECTOR',
    'DEBOUNCE_DELAY_MS',
    'position_in_view',
    'EngagementTimer',
    'ENGAGEMENT_INTERVAL_MS',
    'InteractionObserver',
    'VisibilityObserver',
    'DEFAULT_VISIBILITY_THRESHOLD',
]
