"""Scripted page-view simulation.

A scenario describes a page (geometry and elements) and a timeline of user
actions. The simulation runs the full tracking pipeline against the
in-memory page model on a virtual clock and collects every delivered batch.

Scenario format (YAML)::

    page:
      url: https://example.com/post/hello
      page_id: 42
      scroll_height: 4000
      viewport_height: 800
    meta:                 # extra TrackerMeta fields
      device_type: desktop
    elements:
      - tag: a
        id: cta
        text: Read more
        attributes: {href: https://example.com/next}
        offset_top: 300
        height: 40
    timeline:
      - scroll: 2000      # scroll to offset
      - wait: 1000        # advance the clock (ms)
      - click: cta        # click element by id
      - hide              # tab hidden
      - show              # tab visible
      - mousemove
      - keydown
      - flush             # explicit batch flush
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
from urllib.parse import urlparse

import yaml
from pydantic import BaseModel, Field

from ..browser.dom import Document, Element
from ..browser.scheduler import VirtualScheduler
from ..config.loader import TrackerConfig
from ..delivery.http_delivery import DeliveryConfig, HttpBatchDelivery, LoggingDelivery
from ..models.meta import TrackerMeta
from ..orchestrator import TrackingOrchestrator

logger = logging.getLogger(__name__)


class ScenarioError(Exception):
    """Exception raised for invalid simulation scenarios."""
    pass


class PageDefinition(BaseModel):
    url: str = Field(default="https://example.com/", description="Page URL")
    page_id: Optional[Union[int, str]] = Field(default=0, description="Host page identifier")
    scroll_height: float = Field(default=3000.0, description="Document height in pixels")
    viewport_height: float = Field(default=800.0, description="Viewport height in pixels")


class ElementDefinition(BaseModel):
    tag: str = Field(default="div", description="Element tag")
    id: Optional[str] = Field(default=None, description="DOM id")
    classes: List[str] = Field(default_factory=list, description="Class names")
    attributes: Dict[str, str] = Field(default_factory=dict, description="Attributes")
    text: str = Field(default="", description="Visible text")
    offset_top: float = Field(default=0.0, description="Top edge in document coordinates")
    height: float = Field(default=0.0, description="Height in pixels")
    children: List["ElementDefinition"] = Field(default_factory=list, description="Child elements")

    def build(self) -> Element:
        element = Element(
            self.tag,
            id=self.id,
            classes=self.classes,
            attributes=self.attributes,
            text=self.text,
            offset_top=self.offset_top,
            height=self.height,
        )
        for child in self.children:
            element.append(child.build())
        return element


ElementDefinition.model_rebuild()


class Scenario(BaseModel):
    page: PageDefinition = Field(default_factory=PageDefinition)
    meta: Dict[str, Any] = Field(default_factory=dict)
    elements: List[ElementDefinition] = Field(default_factory=list)
    timeline: List[Union[str, Dict[str, Any]]] = Field(default_factory=list)

    def build_document(self) -> Document:
        document = Document(
            origin=_origin_of(self.page.url),
            scroll_height=self.page.scroll_height,
            viewport_height=self.page.viewport_height,
        )
        for element in self.elements:
            document.body.append(element.build())
        return document

    def build_meta(self, api_key: Optional[str] = None) -> TrackerMeta:
        data = {'page_id': self.page.page_id, 'page_url': self.page.url, **self.meta}
        if api_key:
            data['api_password'] = api_key
        return TrackerMeta.model_validate(data)


def _origin_of(url: str) -> str:
    parsed = urlparse(url)
    return f"{parsed.scheme}://{parsed.netloc}"


def load_scenario(path: Union[str, Path]) -> Scenario:
    """Load a scenario YAML file.

    Raises:
        ScenarioError: If the file is missing or invalid
    """
    path = Path(path)
    try:
        with open(path, 'r') as f:
            data = yaml.safe_load(f) or {}
    except OSError as e:
        raise ScenarioError(f"Failed to read scenario {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ScenarioError(f"Failed to parse scenario {path}: {e}") from e

    try:
        return Scenario.model_validate(data)
    except ValueError as e:
        raise ScenarioError(f"Invalid scenario {path}: {e}") from e


def _apply_step(step: Union[str, Dict[str, Any]], document: Document,
                scheduler: VirtualScheduler, orchestrator: TrackingOrchestrator) -> None:
    if isinstance(step, str):
        action, value = step, None
    elif isinstance(step, dict) and len(step) == 1:
        action, value = next(iter(step.items()))
    else:
        raise ScenarioError(f"Invalid timeline step: {step!r}")

    if action == "wait":
        scheduler.advance(float(value))
    elif action == "scroll":
        document.scroll_to(float(value))
    elif action == "click":
        element = document.get_element_by_id(str(value))
        if element is None:
            raise ScenarioError(f"Unknown element id in click step: {value!r}")
        document.click(element)
    elif action == "hide":
        document.set_hidden(True)
    elif action == "show":
        document.set_hidden(False)
    elif action == "mousemove":
        document.move_mouse()
    elif action == "keydown":
        document.press_key(str(value or ""))
    elif action == "flush":
        orchestrator.flush()
    else:
        raise ScenarioError(f"Unknown timeline action: {action!r}")


async def run_simulation(
    scenario: Scenario,
    config: Optional[TrackerConfig] = None,
    endpoint_url: Optional[str] = None,
    api_key: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """Run a scenario through the pipeline and return the delivered batches.

    Args:
        scenario: Page and timeline to simulate
        config: Pipeline settings; defaults apply when omitted
        endpoint_url: When set, batches are also POSTed to this endpoint
        api_key: Shared secret sent with POSTed batches

    Returns:
        Delivered batches in delivery order
    """
    config = config or TrackerConfig()
    scheduler = VirtualScheduler()
    document = scenario.build_document()

    if endpoint_url:
        sink = HttpBatchDelivery(DeliveryConfig(
            endpoint_url=endpoint_url,
            api_key=api_key,
            api_key_header=config.api_key_header,
            timeout_seconds=config.delivery_timeout_seconds,
        ))
    else:
        sink = LoggingDelivery()

    batches: List[Dict[str, Any]] = []

    def record_batch(batched_data):
        batches.append(batched_data)
        return sink(batched_data)

    orchestrator = TrackingOrchestrator(
        scenario.build_meta(api_key),
        document,
        scheduler,
        config=config,
        delivery=record_batch,
    )
    orchestrator.start()
    scheduler.run_pending()

    try:
        for step in scenario.timeline:
            _apply_step(step, document, scheduler, orchestrator)
            scheduler.run_pending()
            # Let delivery tasks started by this step make progress
            await asyncio.sleep(0)
    finally:
        await orchestrator.aclose()
        await sink.aclose()

    logger.info(f"Simulation delivered {len(batches)} batches")
    return batches
