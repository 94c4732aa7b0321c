"""
Splits the long-form reading into display segments.

The reading uses a two-level markup: blocks are separated by a blank line and
a block starting with ``##`` is a section heading. Bold markers (``**``) are
dropped everywhere since the report renders plain text.
"""
from dataclasses import dataclass
from enum import Enum
from typing import List

BLOCK_SEPARATOR = "\n\n"
HEADING_MARKER = "##"
BOLD_MARKER = "**"


class SegmentKind(str, Enum):
    HEADING = "heading"
    PARAGRAPH = "paragraph"


@dataclass(frozen=True)
class Segment:
    kind: SegmentKind
    text: str

    @property
    def is_heading(self) -> bool:
        return self.kind is SegmentKind.HEADING


def split_blocks(raw: str) -> List[str]:
    """Every block is kept, including empty ones."""
    return raw.split(BLOCK_SEPARATOR)


def classify_block(block: str) -> Segment:
    clean_block = block.replace(BOLD_MARKER, "").strip()
    if clean_block.startswith(HEADING_MARKER):
        return Segment(SegmentKind.HEADING, clean_block[len(HEADING_MARKER):].strip())
    return Segment(SegmentKind.PARAGRAPH, clean_block)


def segment(raw: str) -> List[Segment]:
    """
    Turns ``raw`` into an ordered list of heading/paragraph segments.

    The result always has one segment per block, so ``segment("")`` is a
    single empty paragraph.
    """
    return [classify_block(block) for block in split_blocks(raw)]
