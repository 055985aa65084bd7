"""
Reference Detector

Finds textual mentions of figures, tables and graphs in normalized page text.
Each category is an ordered list of independent patterns that are all applied
to the whole page, so one logical figure can be reported more than once
(e.g. a "Figure 3:" caption plus a "see Figure 3" cross reference).
"""

import re
import logging
from typing import List, Optional
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

_NUMBER = r'(\d+(?:\.\d+)?)'
# Caption is whatever follows on the same line
_CAPTION = r'[:.]?[ \t]*([^\n]*)'
_CROSS_REFERENCE = r'\b(?:see|refer to|shown in|as in|according to)\s+'


@dataclass(frozen=True)
class FigureReference:
    """A detected mention of a figure-like visual."""
    id: str
    description: str
    position: str
    caption: Optional[str] = None


@dataclass(frozen=True)
class TableReference:
    """A detected mention of a table."""
    id: str
    description: str
    position: str
    caption: Optional[str] = None


@dataclass(frozen=True)
class GraphReference:
    """A detected mention of a chart, graph, plot or histogram."""
    id: str
    type: str
    description: str
    position: str
    caption: Optional[str] = None


@dataclass(frozen=True)
class DetectedReferences:
    """References found on one page, grouped by kind."""
    figures: List[FigureReference] = field(default_factory=list)
    tables: List[TableReference] = field(default_factory=list)
    graphs: List[GraphReference] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.figures) + len(self.tables) + len(self.graphs)


def graph_type_for_pattern(source: str) -> str:
    """Resolve the graph type tag from the noun a pattern matches."""
    if 'Chart' in source:
        return 'chart'
    if 'Graph' in source:
        return 'graph'
    if 'Plot' in source:
        return 'plot'
    if 'Histogram' in source:
        return 'histogram'
    return 'chart'


class ReferenceDetector:
    """Rule-based detector for figure, table and graph references."""

    FIGURE_PATTERNS = [
        r'\bFigure\s+' + _NUMBER + _CAPTION,
        r'\bFig\.\s*' + _NUMBER + _CAPTION,
        r'\bImage\s+' + _NUMBER + _CAPTION,
        r'\bDiagram\s+' + _NUMBER + _CAPTION,
        r'\bIllustration\s+' + _NUMBER + _CAPTION,
        r'\bPhoto\s+' + _NUMBER + _CAPTION,
        r'\bPicture\s+' + _NUMBER + _CAPTION,
        r'\bExhibit\s+' + _NUMBER + _CAPTION,
        r'\bPlate\s+' + _NUMBER + _CAPTION,

        # Cross references in running text
        _CROSS_REFERENCE + r'Figure\s+' + _NUMBER,
        _CROSS_REFERENCE + r'Fig\.\s*' + _NUMBER,
    ]

    TABLE_PATTERNS = [
        r'\bTable\s+' + _NUMBER + _CAPTION,
        r'\bTab\.\s*' + _NUMBER + _CAPTION,
        r'\bSchedule\s+' + _NUMBER + _CAPTION,
        r'\bMatrix\s+' + _NUMBER + _CAPTION,

        _CROSS_REFERENCE + r'Table\s+' + _NUMBER,
        _CROSS_REFERENCE + r'Tab\.\s*' + _NUMBER,
    ]

    GRAPH_PATTERNS = [
        r'\bChart\s+' + _NUMBER + _CAPTION,
        r'\bGraph\s+' + _NUMBER + _CAPTION,
        r'\bPlot\s+' + _NUMBER + _CAPTION,
        r'\bHistogram\s+' + _NUMBER + _CAPTION,
        r'\bBar\s+Chart\s+' + _NUMBER + _CAPTION,
        r'\bLine\s+Graph\s+' + _NUMBER + _CAPTION,
        r'\bPie\s+Chart\s+' + _NUMBER + _CAPTION,
        r'\bScatter\s+Plot\s+' + _NUMBER + _CAPTION,

        _CROSS_REFERENCE + r'Chart\s+' + _NUMBER,
        _CROSS_REFERENCE + r'Graph\s+' + _NUMBER,
    ]

    def __init__(self):
        self.figure_regex = [re.compile(p, re.IGNORECASE) for p in self.FIGURE_PATTERNS]
        self.table_regex = [re.compile(p, re.IGNORECASE) for p in self.TABLE_PATTERNS]
        self.graph_regex = [
            (re.compile(p, re.IGNORECASE), graph_type_for_pattern(p))
            for p in self.GRAPH_PATTERNS
        ]

    def detect(self, text: str, page_number: int) -> DetectedReferences:
        """
        Detect every figure, table and graph mention on a page.

        Args:
            text: Normalized page text
            page_number: 1-based page number used in ids and positions

        Returns:
            DetectedReferences with one entry per pattern match
        """
        position = f"Page {page_number}"
        figures = []
        tables = []
        graphs = []

        for pattern in self.figure_regex:
            for match in pattern.finditer(text):
                number, caption = self._number_and_caption(match)
                figures.append(FigureReference(
                    id=f"fig-{page_number}-{number}",
                    caption=caption,
                    description=f"Figure {number} on page {page_number}",
                    position=position
                ))

        for pattern in self.table_regex:
            for match in pattern.finditer(text):
                number, caption = self._number_and_caption(match)
                tables.append(TableReference(
                    id=f"table-{page_number}-{number}",
                    caption=caption,
                    description=f"Table {number} on page {page_number}",
                    position=position
                ))

        for pattern, graph_type in self.graph_regex:
            for match in pattern.finditer(text):
                number, caption = self._number_and_caption(match)
                graphs.append(GraphReference(
                    id=f"graph-{page_number}-{number}",
                    type=graph_type,
                    caption=caption,
                    description=f"{graph_type.capitalize()} {number} on page {page_number}",
                    position=position
                ))

        references = DetectedReferences(figures=figures, tables=tables, graphs=graphs)
        if references.total:
            logger.debug(f"Page {page_number}: {references.total} references ({len(figures)} figure, "
                         f"{len(tables)} table, {len(graphs)} graph)")

        return references

    @staticmethod
    def _number_and_caption(match: re.Match):
        number = match.group(1) or 'unknown'
        caption = None
        if match.re.groups > 1 and match.group(2):
            caption = match.group(2).strip() or None
        return number, caption


def detect_references(text: str, page_number: int) -> DetectedReferences:
    """Convenience wrapper around a default ReferenceDetector."""
    return ReferenceDetector().detect(text, page_number)
