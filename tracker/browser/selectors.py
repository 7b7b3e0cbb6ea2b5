"""Minimal CSS selector matching for the in-memory page model.

Supports selector groups of compound selectors built from a type selector
(or ``*``), ``.class``, ``#id``, ``[attr]`` and ``[attr=value]``.
Combinators are not supported; observers only ever match a single element
against its own attributes.
"""

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Tuple


class SelectorSyntaxError(Exception):
    """Exception raised for selectors outside the supported subset."""
    pass


_PART = re.compile(
    r"""
      (?P<tag>^(?:[a-zA-Z][\w-]*|\*))
    | \.(?P<cls>[\w-]+)
    | \#(?P<id>[\w-]+)
    | \[\s*(?P<attr>[\w-]+)\s*(?:=\s*(?P<val>"[^"]*"|'[^']*'|[\w-]+)\s*)?\]
    """,
    re.VERBOSE,
)


@dataclass(frozen=True)
class CompoundSelector:
    """One comma-separated member of a selector group."""
    tag: Optional[str] = None
    element_id: Optional[str] = None
    classes: Tuple[str, ...] = ()
    attributes: Tuple[Tuple[str, Optional[str]], ...] = ()

    def matches(self, element) -> bool:
        if self.tag is not None and element.tag_name != self.tag:
            return False
        if self.element_id is not None and element.id != self.element_id:
            return False
        for cls in self.classes:
            if cls not in element.class_list:
                return False
        for name, value in self.attributes:
            actual = element.get_attribute(name)
            if actual is None:
                return False
            if value is not None and actual != value:
                return False
        return True


def _parse_compound(text: str) -> CompoundSelector:
    tag = None
    element_id = None
    classes = []
    attributes = []
    pos = 0

    while pos < len(text):
        match = _PART.match(text, pos)
        if match is None or match.end() == pos:
            raise SelectorSyntaxError(f"Unsupported selector syntax: {text!r}")

        if match.group('tag'):
            tag = None if match.group('tag') == '*' else match.group('tag').lower()
        elif match.group('cls'):
            classes.append(match.group('cls'))
        elif match.group('id'):
            element_id = match.group('id')
        else:
            value = match.group('val')
            if value is not None and value[:1] in ('"', "'"):
                value = value[1:-1]
            attributes.append((match.group('attr'), value))
        pos = match.end()

    return CompoundSelector(
        tag=tag,
        element_id=element_id,
        classes=tuple(classes),
        attributes=tuple(attributes),
    )


@lru_cache(maxsize=128)
def parse_selector(selector: str) -> Tuple[CompoundSelector, ...]:
    """Parse a selector group into compound selectors.

    Raises:
        SelectorSyntaxError: If the selector is empty or uses unsupported syntax
    """
    parts = [part.strip() for part in selector.split(',')]
    if not parts or any(not part for part in parts):
        raise SelectorSyntaxError(f"Empty selector in {selector!r}")
    return tuple(_parse_compound(part) for part in parts)


def matches_selector(element, selector: str) -> bool:
    return any(compound.matches(element) for compound in parse_selector(selector))
