"""
Sage - Paste Matcher
====================
Re-locates pasted text inside a student's document for integrity review.

Students often edit what they paste, so matching falls through from the
recorded offsets to increasingly loose strategies:

1. recorded       - the paste is still exactly where it was recorded
2. exact          - every case-insensitive occurrence of the whole paste
3. sentence       - each pasted sentence (> 15 chars) found verbatim
4. spell_corrected - the sentence with its typos fixed is found
5. fuzzy          - a word window with > 0.7 word similarity (sentences > 30 chars)

Matches never overlap; the first one to claim a span keeps it.
"""
import html
import logging
import re
from dataclasses import dataclass

from .spell_check import apply_auto_corrections

logger = logging.getLogger(__name__)

MIN_PASTE_LENGTH = 5
MIN_SENTENCE_LENGTH = 15
MIN_FUZZY_LENGTH = 30
FUZZY_THRESHOLD = 0.7

SENTENCE_SPLIT = re.compile(r'[.!?]+')


@dataclass
class PasteMatch:
    text: str
    start_index: int
    end_index: int
    method: str
    similarity: float = 1.0


def _field(record, snake, camel, default=None):
    if isinstance(record, dict):
        return record.get(snake, record.get(camel, default))
    return getattr(record, snake, default)


def _significant_words(text: str) -> list:
    words = []
    for raw in text.lower().split():
        word = raw.strip('.,;:!?"\'()[]')
        if len(word) > 3:
            words.append(word)
    return words


def calculate_similarity(text1: str, text2: str) -> float:
    """
    Share of text1's words (> 3 letters) that appear in text2, counting
    near-matches: same 3-letter prefix and length within 2.
    """
    words1 = _significant_words(text1)
    words2 = _significant_words(text2)
    if not words1:
        return 0.0

    matches = 0
    for w1 in words1:
        if any(w1 == w2 or (abs(len(w1) - len(w2)) <= 2 and w1[:3] == w2[:3]) for w2 in words2):
            matches += 1
    return matches / len(words1)


def apply_spell_corrections(text: str) -> str:
    corrected, _ = apply_auto_corrections(text)
    return corrected


class _Claims:
    """Character spans already attributed to a paste."""

    def __init__(self):
        self.spans = []

    def free(self, start, end):
        return all(end <= s or start >= e for s, e in self.spans)

    def claim(self, start, end):
        if start >= end or not self.free(start, end):
            return False
        self.spans.append((start, end))
        return True


def _find_all(content_lower: str, needle: str):
    needle = needle.lower()
    if not needle:
        return
    pos = content_lower.find(needle)
    while pos != -1:
        yield pos, pos + len(needle)
        pos = content_lower.find(needle, pos + len(needle))


def _claim_all(content, content_lower, needle, method, claims, matches):
    found = False
    for start, end in _find_all(content_lower, needle):
        if claims.claim(start, end):
            matches.append(PasteMatch(content[start:end], start, end, method))
            found = True
    return found


def _fuzzy_window(content, sentence, claims):
    """Best word window in content resembling `sentence`, or None."""
    tokens = list(re.finditer(r'\S+', content))
    size = len(sentence.split())
    if not tokens or size == 0:
        return None

    best = None
    for i in range(0, max(len(tokens) - size + 1, 1)):
        window = tokens[i:i + size]
        start, end = window[0].start(), window[-1].end()
        if not claims.free(start, end):
            continue
        score = calculate_similarity(sentence, content[start:end])
        if score > FUZZY_THRESHOLD and (best is None or score > best[2]):
            best = (start, end, score)
    return best


def locate_pasted_content(content: str, pasted_records) -> list:
    """
    Find where each pasted record now lives in `content`.

    Args:
        content: Current document text
        pasted_records: Paste log entries ({text, startIndex, endIndex, ...})

    Returns:
        PasteMatch list ordered by start_index
    """
    content = content or ''
    content_lower = content.lower()
    claims = _Claims()
    matches = []

    for record in pasted_records or []:
        text = _field(record, 'text', 'text') or ''
        if len(text.strip()) <= MIN_PASTE_LENGTH:
            continue

        start = _field(record, 'start_index', 'startIndex')
        end = _field(record, 'end_index', 'endIndex')
        if (isinstance(start, int) and isinstance(end, int) and 0 <= start <= end <= len(content)
                and content[start:end] == text):
            if claims.claim(start, end):
                matches.append(PasteMatch(text, start, end, 'recorded'))
            continue

        if _claim_all(content, content_lower, text.strip(), 'exact', claims, matches):
            continue

        for sentence in SENTENCE_SPLIT.split(text):
            sentence = sentence.strip()
            if len(sentence) <= MIN_SENTENCE_LENGTH:
                continue

            if _claim_all(content, content_lower, sentence, 'sentence', claims, matches):
                continue

            corrected = apply_spell_corrections(sentence)
            if corrected != sentence and _claim_all(content, content_lower, corrected,
                                                    'spell_corrected', claims, matches):
                continue

            if len(sentence) > MIN_FUZZY_LENGTH:
                window = _fuzzy_window(content, sentence, claims)
                if window is not None:
                    w_start, w_end, score = window
                    claims.claim(w_start, w_end)
                    matches.append(PasteMatch(content[w_start:w_end], w_start, w_end,
                                              'fuzzy', round(score, 3)))

    logger.debug("Located %d paste matches in %d chars", len(matches), len(content))
    return sorted(matches, key=lambda m: m.start_index)


def highlight_pasted_content(content: str, pasted_records, matches: list = None) -> str:
    """HTML-escaped content with every located paste wrapped in <mark class="pasted-content">."""
    content = content or ''
    matches = locate_pasted_content(content, pasted_records) if matches is None else matches

    out = []
    cursor = 0
    for match in sorted(matches, key=lambda m: m.start_index):
        out.append(html.escape(content[cursor:match.start_index]))
        title = "Copy-pasted content detected"
        if match.method == 'spell_corrected':
            title += " (spell-corrected)"
        elif match.method == 'fuzzy':
            title += f" (similarity {match.similarity:.0%})"
        out.append(
            f'<mark class="pasted-content" data-method="{match.method}" title="{html.escape(title)}">'
            f'{html.escape(content[match.start_index:match.end_index])}</mark>'
        )
        cursor = match.end_index
    out.append(html.escape(content[cursor:]))
    return ''.join(out)


def paste_statistics(content: str, pasted_records) -> dict:
    """Summary numbers for a teacher's paste report."""
    content = content or ''
    records = list(pasted_records or [])
    matches = locate_pasted_content(content, records)
    located = sum(m.end_index - m.start_index for m in matches)

    return {
        "paste_count": len(records),
        "total_pasted_characters": sum(len(_field(r, 'text', 'text') or '') for r in records),
        "located_characters": located,
        "pasted_percentage": round(located / len(content) * 100, 1) if content else 0.0,
        "matches": matches,
    }
