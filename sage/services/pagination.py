"""
Sage - Pagination
=================
Print-like page view for plain text. Lines are wrapped at word boundaries
to a fixed width and grouped into fixed-height pages, so page numbers are
an estimate of the printed document, not a layout engine.
"""
import re
from dataclasses import dataclass

from ..config import LINES_PER_PAGE, CHARS_PER_LINE, CHARS_PER_PAGE, WORDS_PER_PAGE

PAGE_MARKER = "\n\n--- PAGE {number} BEGINS ---\n\n"


@dataclass
class Page:
    number: int
    text: str
    start_index: int
    end_index: int
    line_count: int = 0


def normalize(text: str) -> str:
    return (text or '').replace('\r\n', '\n').replace('\r', '\n')


def wrap_lines(text: str, chars_per_line: int = CHARS_PER_LINE) -> list:
    """
    Visual lines as (start, end) offsets into `text`.
    Breaks at the last space that fits; a word longer than a line is split.
    """
    lines = []
    offset = 0
    for logical in text.split('\n'):
        if not logical:
            lines.append((offset, offset))
        pos = 0
        while pos < len(logical):
            if len(logical) - pos <= chars_per_line:
                lines.append((offset + pos, offset + len(logical)))
                break
            cut = logical.rfind(' ', pos, pos + chars_per_line + 1)
            if cut > pos:
                lines.append((offset + pos, offset + cut))
                pos = cut + 1
            else:
                lines.append((offset + pos, offset + pos + chars_per_line))
                pos += chars_per_line
        offset += len(logical) + 1
    return lines


def split_into_pages(text: str, lines_per_page: int = LINES_PER_PAGE,
                     chars_per_line: int = CHARS_PER_LINE) -> list:
    """
    Split text into pages of `lines_per_page` wrapped lines.

    Pages cover the normalised text end to end: each page runs from its
    first line to the start of the next page. Empty text is one empty page.
    """
    text = normalize(text)
    lines = wrap_lines(text, chars_per_line)

    starts = [lines[i][0] for i in range(0, len(lines), lines_per_page)]
    pages = []
    for number, start in enumerate(starts, 1):
        end = starts[number] if number < len(starts) else len(text)
        first_line = (number - 1) * lines_per_page
        pages.append(Page(
            number=number,
            text=text[start:end],
            start_index=start,
            end_index=end,
            line_count=len(lines[first_line:first_line + lines_per_page]),
        ))
    return pages or [Page(number=1, text='', start_index=0, end_index=0)]


def total_pages(text: str, lines_per_page: int = LINES_PER_PAGE, chars_per_line: int = CHARS_PER_LINE) -> int:
    return len(split_into_pages(text, lines_per_page, chars_per_line))


def current_page(text: str, cursor: int, lines_per_page: int = LINES_PER_PAGE,
                 chars_per_line: int = CHARS_PER_LINE) -> int:
    """Page number holding the cursor (offsets into the normalised text)."""
    pages = split_into_pages(text, lines_per_page, chars_per_line)
    cursor = max(0, cursor)
    for page in pages:
        if cursor < page.end_index:
            return page.number
    return pages[-1].number


def page_breaks_by_words(text: str, words_per_page: int = WORDS_PER_PAGE) -> list:
    """
    Word-count page breaks. No break until the text exceeds one page.

    Each break: page_number (of the page that begins), word_position,
    char_position (offset of the first word on that page).
    """
    words = list(re.finditer(r'\S+', text or ''))
    breaks = []
    if len(words) <= words_per_page:
        return breaks
    for position in range(words_per_page, len(words), words_per_page):
        breaks.append({
            "page_number": position // words_per_page + 1,
            "word_position": position,
            "char_position": words[position].start(),
        })
    return breaks


def insert_page_markers(text: str, words_per_page: int = WORDS_PER_PAGE) -> str:
    """Text with `--- PAGE N BEGINS ---` markers before each word-count break."""
    text = text or ''
    for page_break in reversed(page_breaks_by_words(text, words_per_page)):
        pos = page_break["char_position"]
        text = text[:pos] + PAGE_MARKER.format(number=page_break["page_number"]) + text[pos:]
    return text


def estimate_pages_by_chars(text: str, chars_per_page: int = CHARS_PER_PAGE) -> int:
    return max(1, -(-len(text or '') // chars_per_page))
