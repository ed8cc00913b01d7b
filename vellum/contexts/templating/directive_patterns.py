"""
Directive Pattern Constants

Centralized regex strings for the template directive language.
Organized into frozen dataclasses by category for immutability and clear grouping.

Syntax:
- Simple placeholder: [FIELD_NAME]
- Loop: {{#name}} ... {{/name}}
- Conditional: {{#if name}} ... {{/if name}}
"""

import re
from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True)
class PlaceholderPatterns:
    """
    Placeholder token patterns.

    Placeholder names are upper-snake-case inside square brackets.
    """
    PLACEHOLDER: str = r'\[(?P<name>[A-Z_][A-Z0-9_]*)\]'


@dataclass(frozen=True)
class BlockPatterns:
    """
    Paired block tag patterns.

    Block names are lower-snake-case. The loop pattern cannot match a
    conditional tag because a space is not allowed inside a loop name.
    """
    LOOP_TAG: str = r'\{\{(?P<marker>[#/])(?P<name>[a-z_][a-z0-9_]*)\}\}'
    CONDITIONAL_TAG: str = r'\{\{(?P<marker>[#/])if (?P<name>[a-z_][a-z0-9_]*)\}\}'

    OPEN_MARKER: str = '#'
    CLOSE_MARKER: str = '/'


@dataclass(frozen=True)
class ConditionPrefixes:
    """Name prefixes that select a truthiness rule for conditionals."""
    HAS: str = 'has_'
    NOT_EMPTY: str = 'not_empty_'


@dataclass(frozen=True)
class LoopFields:
    """Reserved fields available inside every loop iteration."""
    INDEX: str = 'index'
    IS_FIRST: str = 'is_first'
    IS_LAST: str = 'is_last'
    # Scalar list items (e.g. one skill string) are bound under this name
    ITEM: str = 'item'


# Cheap pre-check: does a logical text contain anything worth interpreting?
DIRECTIVE_HINT = re.compile(r'\[[A-Z_][A-Z0-9_]*\]|\{\{[#/]')

PLACEHOLDER_RE = re.compile(PlaceholderPatterns.PLACEHOLDER)
LOOP_TAG_RE = re.compile(BlockPatterns.LOOP_TAG)
CONDITIONAL_TAG_RE = re.compile(BlockPatterns.CONDITIONAL_TAG)


class BlockKind(str, Enum):
    """Directive kinds that come as open/close pairs."""

    LOOP = "loop"
    CONDITIONAL = "conditional"

    @property
    def pattern(self) -> "re.Pattern":
        return LOOP_TAG_RE if self is BlockKind.LOOP else CONDITIONAL_TAG_RE

    def open_tag(self, name: str) -> str:
        """Literal opening tag for a block name."""
        return f"{{{{#{name}}}}}" if self is BlockKind.LOOP else f"{{{{#if {name}}}}}"

    def close_tag(self, name: str) -> str:
        """Literal closing tag for a block name."""
        return f"{{{{/{name}}}}}" if self is BlockKind.LOOP else f"{{{{/if {name}}}}}"
