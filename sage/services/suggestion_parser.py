"""
Sage - AI Suggestion Parser
===========================
Turns free-form assistant replies such as

    1. Replace **"yesterdya"** with **"yesterday"** - Corrects the spelling.
    Change teh to the

into structured suggestions anchored to offsets in the student's document.
"""
import re
from dataclasses import dataclass

Q = r'[\'"“”‘’]'
NQ = r'[^\'"“”‘’*\n]'
TAIL = r'(?:\s+[-–—]\s*|:\s+|\s*$)(?P<expl>.*)$'
QTAIL = r'(?:[ \t]*[-–—:][ \t]*|[ \t]+)?(?P<expl>.*)$'

SUGGESTION_PATTERNS = [
    # 1. Replace **"X"** with **"Y"** - explanation
    re.compile(
        rf'^\s*\d+\.\s*Replace\s+\*\*{Q}(?P<old>{NQ}+){Q}?\*\*\s+with\s+\*\*{Q}(?P<new>{NQ}+){Q}?\*\*'
        r'\s*(?:[-–—:]\s*)?(?P<expl>.*)$',
        re.IGNORECASE | re.MULTILINE),
    # 1. Replace **X** with **Y** - explanation
    re.compile(
        r'^\s*\d+\.\s*Replace\s+\*\*(?P<old>[^*\n]+)\*\*\s+with\s+\*\*(?P<new>[^*\n]+)\*\*'
        r'\s*(?:[-–—:]\s*)?(?P<expl>.*)$',
        re.IGNORECASE | re.MULTILINE),
    # 1. Change "X" to "Y". explanation
    re.compile(
        rf'^\s*\d+\.\s*Change\s+{Q}(?P<old>{NQ}+){Q}\s+to\s+{Q}(?P<new>{NQ}+){Q}{QTAIL}',
        re.IGNORECASE | re.MULTILINE),
    # 1. Change X to Y - explanation
    re.compile(
        rf'^\s*\d+\.\s*Change\s+{Q}?(?P<old>{NQ}+?){Q}?\s+to\s+{Q}?(?P<new>{NQ}+?){Q}?{TAIL}',
        re.IGNORECASE | re.MULTILINE),
    # Replace "X" with "Y" in the first sentence.
    re.compile(
        rf'Replace\s+{Q}(?P<old>{NQ}+){Q}\s+with\s+{Q}(?P<new>{NQ}+){Q}{QTAIL}',
        re.IGNORECASE | re.MULTILINE),
    # Replace X with Y
    re.compile(
        rf'Replace\s+{Q}?(?P<old>{NQ}+?){Q}?\s+with\s+{Q}?(?P<new>{NQ}+?){Q}?{TAIL}',
        re.IGNORECASE | re.MULTILINE),
    # Change "X" to "Y".
    re.compile(
        rf'Change\s+{Q}(?P<old>{NQ}+){Q}\s+to\s+{Q}(?P<new>{NQ}+){Q}{QTAIL}',
        re.IGNORECASE | re.MULTILINE),
    # Change X to Y
    re.compile(
        rf'Change\s+{Q}?(?P<old>{NQ}+?){Q}?\s+to\s+{Q}?(?P<new>{NQ}+?){Q}?{TAIL}',
        re.IGNORECASE | re.MULTILINE),
]

HTML_TAG = re.compile(r'<[^>]*>')
STRIP_CHARS = ' \t*"\'“”‘’'


@dataclass
class AiSuggestion:
    id: str
    type: str
    original_text: str
    suggested_text: str
    explanation: str
    severity: str
    start_index: int
    end_index: int


def levenshtein_distance(a: str, b: str) -> int:
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, 1):
        current = [i]
        for j, cb in enumerate(b, 1):
            cost = 0 if ca == cb else 1
            current.append(min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + cost))
        previous = current
    return previous[-1]


def determine_type(original: str, suggested: str, explanation: str) -> str:
    explanation = (explanation or '').lower()
    if 'spelling' in explanation or 'misspelled' in explanation:
        return 'spelling'
    if any(k in explanation for k in ('grammar', 'verb', 'tense', 'subject')):
        return 'grammar'
    if len(original) == len(suggested) and levenshtein_distance(original.lower(), suggested.lower()) <= 2:
        return 'spelling'
    return 'style'


def determine_severity(explanation: str) -> str:
    explanation = (explanation or '').lower()
    if any(k in explanation for k in ('incorrect', 'error', 'wrong')):
        return 'high'
    if any(k in explanation for k in ('consider', 'suggest', 'better')):
        return 'low'
    return 'medium'


def strip_html(content: str) -> str:
    return HTML_TAG.sub('', content or '')


def _first_free_occurrence(haystack_lower, needle_lower, claimed):
    pos = haystack_lower.find(needle_lower)
    while pos != -1:
        end = pos + len(needle_lower)
        if all(end <= s or pos >= e for s, e in claimed):
            return pos, end
        pos = haystack_lower.find(needle_lower, pos + 1)
    return None


def extract_suggestions_from_ai_response(ai_response: str, document_content: str) -> list:
    """
    Parse correction suggestions out of an assistant reply.

    A suggestion is kept only when its original text occurs in the document
    (case-insensitive, HTML removed). Offsets point at the first occurrence
    not already taken by an earlier suggestion.
    """
    clean = strip_html(document_content)
    clean_lower = clean.lower()
    suggestions = []
    seen = set()
    claimed = []

    for pattern in SUGGESTION_PATTERNS:
        for match in pattern.finditer(ai_response or ''):
            original = match.group('old').strip(STRIP_CHARS)
            suggested = match.group('new').strip(STRIP_CHARS).rstrip('.,;')
            explanation = (match.group('expl') or '').strip().lstrip('.,;').strip()
            if not original or not suggested or original.lower() == suggested.lower():
                continue

            key = (original.lower(), suggested.lower())
            if key in seen:
                continue

            span = _first_free_occurrence(clean_lower, original.lower(), claimed)
            if span is None:
                continue

            seen.add(key)
            claimed.append(span)
            suggestions.append(AiSuggestion(
                id=f"suggestion-{len(suggestions) + 1}",
                type=determine_type(original, suggested, explanation),
                original_text=clean[span[0]:span[1]],
                suggested_text=suggested,
                explanation=explanation or 'AI suggested correction',
                severity=determine_severity(explanation),
                start_index=span[0],
                end_index=span[1],
            ))

    return suggestions


def apply_suggestions(content: str, suggestions: list) -> str:
    """Apply suggestions right to left; ones whose text has moved are skipped."""
    for suggestion in sorted(suggestions, key=lambda s: s.start_index, reverse=True):
        current = content[suggestion.start_index:suggestion.end_index]
        if current.lower() != suggestion.original_text.lower():
            continue
        content = content[:suggestion.start_index] + suggestion.suggested_text + content[suggestion.end_index:]
    return content
