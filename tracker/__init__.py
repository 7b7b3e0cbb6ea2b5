"""Client-side analytics event batching for page views.

Observers watch a page for scroll depth, clicks, engagement time, widget
toggles and section visibility. The TrackingOrchestrator enriches their
events with session and page metadata and hands them to an EventBatcher,
which delivers them in batches.
"""

__version__ = "1.0.0"

from .batching import EventBatcher
from .config import TrackerConfig, load_tracker_config
from .models import EventRecord, TrackerMeta, build_tracker_meta
from .orchestrator import TrackingOrchestrator
from .session import SessionIdentityProvider

__all__ = [
    '__version__',
    'EventBatcher',
    'TrackerConfig',
    'load_tracker_config',
    'EventRecord',
    'TrackerMeta',
    'build_tracker_meta',
    'TrackingOrchestrator',
    'SessionIdentityProvider',
]
