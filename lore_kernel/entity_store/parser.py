"""
Declaration parsing — turns one DeclarationSource into parsed declarations.

Parsing is pure and independent per source, so callers may run it for many
sources concurrently. Merging into the store is a separate, ordered step.
"""

import logging
from datetime import datetime
from typing import List, Optional, Tuple

from pydantic import BaseModel

from lore_kernel.models.config import RegistryConfig
from lore_kernel.models.declaration import (
    AttributeLine,
    DeclarationSource,
    EntityDeclaration,
)
from lore_kernel.models.entity import Attribute, EntityStatus, EntityType
from lore_kernel.models.temporal import TimeScoped
from lore_kernel.temporal.values import parse_scoped_value

logger = logging.getLogger(__name__)


class MalformedAttribute(ValueError):
    """A single attribute line could not be interpreted."""


class ParsedAttribute(BaseModel):
    attribute: Optional[Attribute] = None   # None: generic override under `tag`
    tag: str
    entry: TimeScoped


class ParsedDeclaration(BaseModel):
    name: str
    entity_type: EntityType
    source_id: str
    attributes: List[ParsedAttribute] = []


class ParsedSource(BaseModel):
    source_id: str
    declarations: List[ParsedDeclaration] = []
    skipped_lines: List[str] = []
    skipped_sections: List[str] = []


def _parse_status(text: str) -> EntityStatus:
    folded = text.strip().casefold()
    for status in EntityStatus:
        if status.value.casefold() == folded:
            return status
    raise MalformedAttribute(f"unknown status {text!r}")


def _parse_quantity(text: str) -> int:
    try:
        return int(text.strip())
    except ValueError:
        raise MalformedAttribute(f"quantity {text!r} is not an integer")


def coerce_entry(attribute: Optional[Attribute], scoped: TimeScoped[str]) -> TimeScoped:
    """
    Convert a parsed text entry into the value type of its history.

    Raises MalformedAttribute for values the attribute cannot hold.
    """
    if not scoped.value:
        raise MalformedAttribute("empty value")
    if attribute == Attribute.STATUS:
        return TimeScoped[EntityStatus](
            value=_parse_status(scoped.value),
            valid_from=scoped.valid_from,
            valid_to=scoped.valid_to,
        )
    if attribute == Attribute.QUANTITY:
        return TimeScoped[int](
            value=_parse_quantity(scoped.value),
            valid_from=scoped.valid_from,
            valid_to=scoped.valid_to,
        )
    return scoped


def split_attribute_line(line: AttributeLine) -> Tuple[str, str]:
    """
    Split ``tag: value`` on the first colon and fold continuation lines
    into the value.
    """
    tag, sep, value = line.text.partition(":")
    tag = tag.strip()
    if not sep or not tag:
        raise MalformedAttribute("missing 'tag:' prefix")
    parts = [value.strip()] + [c.strip() for c in line.continuation if c.strip()]
    return tag, "\n".join(p for p in parts if p)


def build_attribute(
    tag: str,
    raw_value: str,
    config: RegistryConfig,
    default_from: Optional[datetime] = None,
) -> ParsedAttribute:
    """
    Interpret one ``(tag, raw value)`` pair. When the value carries no
    validity range and ``default_from`` is given, the entry is dated from it.
    """
    attribute = config.attribute_for(tag)
    scoped = parse_scoped_value(raw_value)
    if default_from is not None and not scoped.has_range:
        scoped = TimeScoped[str](value=scoped.value, valid_from=default_from)
    return ParsedAttribute(
        attribute=attribute,
        tag=tag.strip().casefold() if attribute is None else attribute.value,
        entry=coerce_entry(attribute, scoped),
    )


def parse_attribute_line(line: AttributeLine, config: RegistryConfig) -> ParsedAttribute:
    tag, raw_value = split_attribute_line(line)
    return build_attribute(tag, raw_value, config)


def parse_declaration(
    declaration: EntityDeclaration,
    entity_type: EntityType,
    source_id: str,
    config: RegistryConfig,
    skipped: List[str],
) -> Optional[ParsedDeclaration]:
    name = declaration.name.strip()
    if not name:
        skipped.append(f"{source_id}: declaration without a name")
        logger.warning("Skipping declaration without a name in %s", source_id)
        return None

    parsed = ParsedDeclaration(name=name, entity_type=entity_type, source_id=source_id)
    for line in declaration.lines:
        try:
            parsed.attributes.append(parse_attribute_line(line, config))
        except MalformedAttribute as e:
            skipped.append(f"{source_id}:{name}: {line.text!r} ({e})")
            logger.warning(
                "Skipping malformed attribute line %r of %s in %s: %s",
                line.text, name, source_id, e,
            )
    return parsed


def parse_source(source: DeclarationSource, config: RegistryConfig) -> ParsedSource:
    """Parse every entity section of a source; unknown section labels are skipped."""
    result = ParsedSource(source_id=source.source_id)
    for section in source.sections:
        entity_type = config.section_type(section.label)
        if entity_type is None:
            result.skipped_sections.append(f"{source.source_id}: {section.label}")
            logger.debug(
                "Section %r in %s is not an entity section", section.label, source.source_id
            )
            continue
        for declaration in section.declarations:
            parsed = parse_declaration(
                declaration, entity_type, source.source_id, config, result.skipped_lines
            )
            if parsed is not None:
                result.declarations.append(parsed)
    return result
