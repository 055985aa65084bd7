"""
Notes Exporter

Renders a NotesDocument as markdown or plain text and writes export files.
Relies on the literal markers produced by the page formatter.
"""

import re
import logging
from pathlib import Path
from typing import Dict, List

from .assembler import NotesDocument, NoteSection
from .formatter import DIVIDER, MARKER_EMOJI

logger = logging.getLogger(__name__)

VISUAL_NOTE = "*Note: Visual elements are referenced in the text but cannot be extracted from the PDF.*"

_PAGE_HEADER = re.compile(r'\*\*📄 Page \d+\*\*')
_MARKER_EMOJI = re.compile('(?:' + '|'.join(MARKER_EMOJI) + ')[ \t]*')
_EXTENSION = re.compile(r'\.[^/.]+$')

_FIGURE_BLOCK = "📊 Figures Referenced:"
_TABLE_BLOCK = "📋 Tables Referenced:"
_GRAPH_BLOCK = "📈 Graphs/Charts Referenced:"


def count_visual_elements(notes: NotesDocument) -> Dict[str, int]:
    """
    Count pages carrying each kind of reference sub-block.

    Returns:
        Dictionary with 'figures', 'tables' and 'graphs' counts
    """
    counts = {'figures': 0, 'tables': 0, 'graphs': 0}
    for section in notes.sections:
        counts['figures'] += section.content.count(_FIGURE_BLOCK)
        counts['tables'] += section.content.count(_TABLE_BLOCK)
        counts['graphs'] += section.content.count(_GRAPH_BLOCK)
    return counts


def clean_section_content(content: str) -> str:
    """Drop page headers, marker emoji and dividers; bold formatting is kept."""
    content = _PAGE_HEADER.sub('', content)
    content = _MARKER_EMOJI.sub('', content)
    paragraphs = [p.strip() for p in content.split('\n\n')]
    return '\n\n'.join(p for p in paragraphs if p and p != DIVIDER)


def _section_markdown(section: NoteSection, level: int) -> List[str]:
    parts = [f"{'#' * min(level, 6)} {section.title}\n\n",
             f"{clean_section_content(section.content)}\n\n{DIVIDER}\n\n"]
    for subsection in section.subsections or []:
        parts.extend(_section_markdown(subsection, level + 1))
    return parts


def to_markdown(notes: NotesDocument) -> str:
    """Full markdown export with summary, visual counts, key points and every page."""
    parts = [f"# {notes.title}\n\n", f"## Document Summary\n\n{notes.summary}\n\n"]

    counts = count_visual_elements(notes)
    if any(counts.values()):
        parts.append("## Visual Content Summary\n\n")
        if counts['figures']:
            parts.append(f"- **{counts['figures']} Figures** referenced throughout the document\n")
        if counts['tables']:
            parts.append(f"- **{counts['tables']} Tables** referenced throughout the document\n")
        if counts['graphs']:
            parts.append(f"- **{counts['graphs']} Graphs/Charts** referenced throughout the document\n")
        parts.append(f"\n{VISUAL_NOTE}\n\n")

    if notes.key_points:
        parts.append("## Key Points\n\n")
        for index, point in enumerate(notes.key_points, 1):
            parts.append(f"{index}. {point}\n\n")

    parts.append("## Complete PDF Content\n\n")
    for section in notes.sections:
        parts.extend(_section_markdown(section, 3))

    return ''.join(parts)


def to_plain_text(notes: NotesDocument) -> str:
    """Plain text rendering used for copying to the clipboard."""
    parts = [f"{notes.title}\n\n{notes.summary}\n\n"]

    if notes.key_points:
        parts.append("Key Points:\n")
        for index, point in enumerate(notes.key_points, 1):
            parts.append(f"{index}. {point}\n")
        parts.append("\n")

    for section in notes.sections:
        parts.append(f"{section.title}\n\n{section.content}\n\n")
        for subsection in section.subsections or []:
            parts.append(f"{subsection.title}\n\n{subsection.content}\n\n")

    return ''.join(parts)


def to_history_markdown(notes: NotesDocument) -> str:
    """Compact export offered from the processing history."""
    sections = '\n'.join(f"## {s.title}\n{s.content}\n" for s in notes.sections)
    return f"# {notes.title}\n\n## Summary\n{notes.summary}\n\n{sections}"


def export_filename(name: str, enhanced: bool = True) -> str:
    """File name for a markdown export of ``name``."""
    suffix = "-enhanced-notes.md" if enhanced else "-notes.md"
    return _EXTENSION.sub('', name) + suffix


def save_markdown(notes: NotesDocument, name: str, output_dir: str, enhanced: bool = True) -> Path:
    """
    Write a markdown export to disk.

    Args:
        notes: Notes to export
        name: Name of the uploaded file
        output_dir: Directory to write into; created when missing
        enhanced: Full export when True, compact history export otherwise

    Returns:
        Path of the written file
    """
    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)

    content = to_markdown(notes) if enhanced else to_history_markdown(notes)
    target = output_path / export_filename(name, enhanced)
    target.write_text(content, encoding='utf-8')

    logger.info(f"Saved notes to {target}")
    return target
