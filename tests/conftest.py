"""Shared test fixtures and configuration for tracker tests."""

import pytest
from pathlib import Path
import sys

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

from tracker.browser.dom import Document, Element
from tracker.browser.scheduler import VirtualScheduler
from tracker.models.meta import TrackerMeta
from tracker.session.storage import process_storage


@pytest.fixture
def scheduler():
    """Virtual-clock scheduler starting at a fixed epoch."""
    return VirtualScheduler(start_ms=1_700_000_000_000)


@pytest.fixture
def document():
    """Empty 3000px page with an 800px viewport."""
    return Document(origin="https://example.com", scroll_height=3000, viewport_height=800)


@pytest.fixture
def sample_meta():
    """Typical host-supplied metadata."""
    return TrackerMeta(
        page_id=42,
        page_url="https://example.com/post/hello",
        session_id="host-session",
        device_type="desktop",
        is_bot=False,
        user_hash="a" * 64,
        api_password="s3cret",
    )


@pytest.fixture
def sample_page(document):
    """Page with links, a button, a toggle widget and tracked sections."""
    body = document.body
    body.append(Element("a", id="internal-link", text="Next post",
                        attributes={'href': "https://example.com/next"},
                        offset_top=200, height=40))
    body.append(Element("a", id="external-link", text="Elsewhere",
                        attributes={'href': "https://other.org/"},
                        offset_top=1200, height=40))
    body.append(Element("button", id="subscribe", text="Subscribe",
                        offset_top=400, height=40))
    faq = body.append(Element("div", id="faq-1", text="How does it work?",
                              attributes={'data-interaction': "faq"},
                              offset_top=600, height=60))
    faq.append(Element("span", text="+"))
    body.append(Element("section", id="intro", classes=["track-section"],
                        offset_top=0, height=400))
    body.append(Element("section", classes=["track-section"],
                        attributes={'data-track-id': "pricing"},
                        offset_top=2000, height=400))
    return document


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )


@pytest.fixture(autouse=True)
def clean_process_storage():
    """Start every test without a session id in the shared in-process storage."""
    process_storage().clear()
    yield
    process_storage().clear()
