"""
Importance Annotator

Best-effort emphasis pass over a sentence: every cue category wraps its own
matches in bold markers. Categories run one after another on the already
decorated text, so overlapping matches produce nested markers.
"""

import re
from typing import List, Tuple

BOLD = '**'

IMPORTANCE_PATTERNS: List[Tuple[str, str, int]] = [
    ('key_concept',
     r'\b(?:key|important|significant|critical|essential|fundamental|primary|main|major|crucial|vital)'
     r'\s+(?:point|concept|idea|principle|factor|element|aspect|finding|result|conclusion)',
     re.IGNORECASE),
    ('conclusion',
     r'\b(?:conclusion|result|finding|outcome|summary|therefore|thus|hence|consequently'
     r'|in summary|to conclude|finally)',
     re.IGNORECASE),
    ('emphasis',
     r'\b(?:note that|it is important|significantly|remarkably|notably|particularly|especially'
     r'|crucially|most importantly|above all)',
     re.IGNORECASE),
    ('numeric',
     r'\d+(?:\.\d+)?%|\d+(?:,\d{3})*(?:\.\d+)?',
     0),
    ('definition',
     r'\b(?:defined as|refers to|means|is the|represents|can be described as)\b',
     re.IGNORECASE),
    ('strong_statement',
     r'\b(?:must|should|will|always|never|all|every|each|only|solely|exclusively)\b',
     re.IGNORECASE),
    ('research_finding',
     r'\b(?:research shows|studies indicate|evidence suggests|data reveals|analysis shows)',
     re.IGNORECASE),
]

_COMPILED = [(name, re.compile(pattern, flags)) for name, pattern, flags in IMPORTANCE_PATTERNS]


def _bold(match: re.Match) -> str:
    return f"{BOLD}{match.group(0)}{BOLD}"


def annotate_importance(text: str) -> str:
    """Wrap emphasis cues in ``text`` with bold markers."""
    for _, regex in _COMPILED:
        text = regex.sub(_bold, text)
    return text
