"""
Sage - Citation Service
=======================
Citation formatting (APA, MLA, Chicago) and a local originality check.

The originality check compares a draft against the session's own paste
log and the other submissions for the same assignment using word 5-gram
overlap. No external search engine is queried.
"""
import re

NGRAM_SIZE = 5
HIGH_SIMILARITY = 30
QUOTE_PATTERN = re.compile(r'["“]([^"”]{20,})["”]')
CITATION_AFTER_QUOTE = re.compile(r'^\s*\([^)]*\)')


# =============================================================================
# AUTHORS & DATES
# =============================================================================

def parse_authors(author: str) -> list:
    """
    Split an author string into (last, first) pairs.
    Accepts "Jane Smith", "Smith, Jane", and lists joined by ";", "&" or " and ".
    """
    authors = []
    if not author or not author.strip():
        return authors

    if ';' in author:
        parts = author.split(';')
    else:
        parts = re.split(r'\s+(?:and|&)\s+', author)

    for part in parts:
        part = part.strip().rstrip(',')
        if not part:
            continue
        if ',' in part:
            last, first = [p.strip() for p in part.split(',', 1)]
        else:
            names = part.split()
            last, first = names[-1], ' '.join(names[:-1])
        authors.append((last, first))
    return authors


def _initials(first: str) -> str:
    return ' '.join(f"{name[0]}." for name in re.split(r'[\s-]+', first) if name)


def _year(publication_date: str) -> str:
    match = re.search(r'\b(\d{4})\b', publication_date or '')
    return match.group(1) if match else ''


def _sentence(text: str) -> str:
    text = (text or '').strip()
    if text and text[-1] not in '.?!':
        text += '.'
    return text


def _apa_authors(authors) -> str:
    names = [f"{last}, {_initials(first)}".rstrip(', ') for last, first in authors]
    if not names:
        return ''
    if len(names) == 1:
        return names[0]
    return ', '.join(names[:-1]) + ', & ' + names[-1]


def _full_name(last, first) -> str:
    return f"{first} {last}".strip()


def _inverted(last, first) -> str:
    return f"{last}, {first}" if first else last


def _mla_authors(authors) -> str:
    if not authors:
        return ''
    if len(authors) == 1:
        return _inverted(*authors[0])
    if len(authors) == 2:
        return f"{_inverted(*authors[0])}, and {_full_name(*authors[1])}"
    return f"{_inverted(*authors[0])}, et al"


def _chicago_authors(authors) -> str:
    if not authors:
        return ''
    if len(authors) == 1:
        return _inverted(*authors[0])
    rest = [_full_name(*a) for a in authors[1:]]
    if len(rest) == 1:
        return f"{_inverted(*authors[0])}, and {rest[0]}"
    return f"{_inverted(*authors[0])}, " + ', '.join(rest[:-1]) + f", and {rest[-1]}"


# =============================================================================
# STYLES
# =============================================================================

def _format_apa(data: dict) -> str:
    authors = _apa_authors(parse_authors(data.get('author')))
    year = _year(data.get('publication_date')) or 'n.d.'
    title = data.get('title', '').strip()
    kind = data.get('type', 'book')

    parts = [_sentence(authors), f"({year})."]
    if kind == 'journal':
        parts.append(_sentence(title))
        source = data.get('journal') or ''
        if data.get('volume'):
            source += f", {data['volume']}"
            if data.get('issue'):
                source += f"({data['issue']})"
        if data.get('pages'):
            source += f", {data['pages']}"
        parts.append(_sentence(source))
    elif kind == 'website':
        parts.append(_sentence(title))
        if data.get('publisher'):
            parts.append(_sentence(data['publisher']))
    elif kind == 'newspaper':
        parts.append(_sentence(title))
        parts.append(_sentence(data.get('publisher') or data.get('journal')))
    else:
        parts.append(_sentence(title))
        parts.append(_sentence(data.get('publisher')))

    if data.get('url'):
        parts.append(data['url'])
    return ' '.join(p for p in parts if p)


def _format_mla(data: dict) -> str:
    authors = _mla_authors(parse_authors(data.get('author')))
    title = data.get('title', '').strip()
    date = (data.get('publication_date') or '').strip()
    kind = data.get('type', 'book')

    parts = [_sentence(authors)]
    if kind == 'book':
        parts.append(_sentence(title))
        container = ', '.join(p for p in [data.get('publisher'), _year(date) or date] if p)
        parts.append(_sentence(container))
    else:
        parts.append(f'"{_sentence(title)}"')
        if kind == 'journal':
            details = [data.get('journal')]
            if data.get('volume'):
                details.append(f"vol. {data['volume']}")
            if data.get('issue'):
                details.append(f"no. {data['issue']}")
            details.append(_year(date) or date)
            if data.get('pages'):
                details.append(f"pp. {data['pages']}")
        else:
            details = [data.get('publisher') or data.get('journal'), date, data.get('url')]
        parts.append(_sentence(', '.join(d for d in details if d)))
        if kind == 'website' and data.get('access_date'):
            parts.append(_sentence(f"Accessed {data['access_date']}"))
    return ' '.join(p for p in parts if p)


def _format_chicago(data: dict) -> str:
    authors = _chicago_authors(parse_authors(data.get('author')))
    title = data.get('title', '').strip()
    date = (data.get('publication_date') or '').strip()
    kind = data.get('type', 'book')

    parts = [_sentence(authors)]
    if kind == 'book':
        parts.append(_sentence(title))
        parts.append(_sentence(', '.join(p for p in [data.get('publisher'), _year(date) or date] if p)))
    elif kind == 'journal':
        parts.append(f'"{_sentence(title)}"')
        source = data.get('journal') or ''
        if data.get('volume'):
            source += f" {data['volume']}"
        if data.get('issue'):
            source += f", no. {data['issue']}"
        if _year(date):
            source += f" ({_year(date)})"
        if data.get('pages'):
            source += f": {data['pages']}"
        parts.append(_sentence(source))
    else:
        parts.append(f'"{_sentence(title)}"')
        outlet = ', '.join(p for p in [data.get('publisher') or data.get('journal'),
                                       date if kind == 'newspaper' else None] if p)
        parts.append(_sentence(outlet))
        if kind == 'website' and data.get('access_date'):
            parts.append(_sentence(f"Accessed {data['access_date']}"))
    if data.get('url'):
        parts.append(_sentence(data['url']))
    return ' '.join(p for p in parts if p)


FORMATTERS = {
    'apa': _format_apa,
    'mla': _format_mla,
    'chicago': _format_chicago,
}


def format_citation(data: dict, style: str = 'apa') -> str:
    """
    Format a source as a reference-list entry.

    Args:
        data: type, title, author, publication_date and optional publisher,
              url, access_date, journal, volume, issue, pages
        style: "apa", "mla" or "chicago"
    """
    formatter = FORMATTERS.get((style or 'apa').lower())
    if formatter is None:
        raise ValueError(f"Unsupported citation style: {style}")
    return formatter(data)


# =============================================================================
# ORIGINALITY
# =============================================================================

def _words(text: str) -> list:
    return re.findall(r"[a-z0-9']+", (text or '').lower())


def ngrams(text: str, n: int = NGRAM_SIZE) -> set:
    words = _words(text)
    return {tuple(words[i:i + n]) for i in range(len(words) - n + 1)}


def _missing_citations(text: str) -> list:
    concerns = []
    for match in QUOTE_PATTERN.finditer(text or ''):
        if not CITATION_AFTER_QUOTE.match(text[match.end():match.end() + 60]):
            concerns.append({
                "type": "missing_citation",
                "text": match.group(1)[:150],
                "suggestion": "Add an in-text citation after this quotation, for example (Author, Year).",
            })
    return concerns


def check_originality(text: str, pasted_records=None, peer_submissions=None) -> dict:
    """
    Compare text against pasted material and peer submissions.

    Returns:
        dict with originality_score, similarity (percent of the text's
        5-grams found in any source), sources and concerns
    """
    grams = ngrams(text)
    candidates = []
    for record in pasted_records or []:
        pasted = record.get('text') if isinstance(record, dict) else str(record)
        if pasted and len(pasted.strip()) > 5:
            candidates.append(("Pasted content", "", pasted))
    for peer in peer_submissions or []:
        candidates.append((peer.get('title') or "Another submission", "", peer.get('content') or ''))

    sources = []
    covered = set()
    for title, url, source_text in candidates:
        shared = grams & ngrams(source_text)
        if not shared or not grams:
            continue
        covered |= shared
        sources.append({
            "title": title,
            "url": url,
            "similarity": round(len(shared) / len(grams) * 100),
            "snippet": source_text.strip()[:150],
        })
    sources.sort(key=lambda s: s["similarity"], reverse=True)

    similarity = round(len(covered) / len(grams) * 100) if grams else 0
    concerns = [
        {
            "type": "high_similarity",
            "text": source["snippet"],
            "suggestion": "Rewrite this section in your own words or cite the source.",
        }
        for source in sources if source["similarity"] >= HIGH_SIMILARITY
    ]
    concerns.extend(_missing_citations(text))

    return {
        "originality_score": 100 - similarity,
        "similarity": similarity,
        "sources": sources,
        "concerns": concerns,
    }
