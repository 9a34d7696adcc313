"""
Sage - Spell Check Service
==========================
Local dictionary + pattern spell checker used by the editor, with an
optional AI pass for words the heuristics cannot resolve.

Every result carries exact character offsets into the checked text so the
client can underline and replace in place.
"""
import html
import logging
import re
from dataclasses import dataclass

from .english_words import COMMON_ENGLISH_WORDS, is_valid_english_word

logger = logging.getLogger(__name__)

WORD_PATTERN = re.compile(r"\b[a-zA-Z]+\b")

SPELL_CHECK_DICTIONARY = {
    # Common typos
    'teh': 'the', 'adn': 'and', 'hte': 'the', 'taht': 'that', 'htis': 'this',
    'thier': 'their', 'recieve': 'receive', 'seperate': 'separate',
    'definately': 'definitely', 'occured': 'occurred', 'necesary': 'necessary',
    'accomodate': 'accommodate', 'beleive': 'believe', 'enviroment': 'environment',
    'developement': 'development', 'independant': 'independent', 'existance': 'existence',
    'buisness': 'business', 'begining': 'beginning', 'wierd': 'weird', 'freind': 'friend',
    'goverment': 'government', 'calender': 'calendar', 'adress': 'address',
    'comming': 'coming', 'writting': 'writing', 'runing': 'running', 'stoped': 'stopped',
    'planed': 'planned', 'occassion': 'occasion', 'profesional': 'professional',
    'recomend': 'recommend', 'aparent': 'apparent', 'beginer': 'beginner',
    'sucessful': 'successful', 'posible': 'possible', 'diferent': 'different',
    'intresting': 'interesting', 'anual': 'annual', 'suport': 'support',
    'comunity': 'community', 'excelent': 'excellent', 'knowlege': 'knowledge',
    'langauge': 'language', 'maintainance': 'maintenance', 'ocasionally': 'occasionally',
    'parliment': 'parliament', 'priviledge': 'privilege', 'responsability': 'responsibility',
    'temperatue': 'temperature', 'unfortunatly': 'unfortunately', 'embarassing': 'embarrassing',
    'guaruntee': 'guarantee', 'harrass': 'harass', 'millenium': 'millennium',
    'perseverence': 'perseverance', 'questionaire': 'questionnaire', 'restaraunt': 'restaurant',
    'schedual': 'schedule', 'tommorrow': 'tomorrow', 'tommorow': 'tomorrow', 'untill': 'until',
    'vaccuum': 'vacuum', 'wellcome': 'welcome', 'whther': 'whether', 'yeild': 'yield',
    'becuase': 'because', 'becasue': 'because', 'wich': 'which', 'woudl': 'would',
    'shoudl': 'should', 'coudl': 'could', 'realy': 'really', 'finaly': 'finally',
    'truely': 'truly', 'arguement': 'argument', 'judgement': 'judgment',
    # Run-together phrases
    'alot': 'a lot', 'everytime': 'every time', 'incase': 'in case', 'infact': 'in fact',
    'inspite': 'in spite', 'nevermind': 'never mind', 'aswell': 'as well',
    # Missing apostrophes
    'dont': "don't", 'cant': "can't", 'wont': "won't", 'didnt': "didn't",
    'doesnt': "doesn't", 'isnt': "isn't", 'wasnt': "wasn't", 'couldnt': "couldn't",
    'shouldnt': "shouldn't", 'wouldnt': "wouldn't", 'youre': "you're", 'theyre': "they're",
    'whos': "who's", 'whats': "what's", 'thats': "that's", 'heres': "here's",
    'theres': "there's", 'wheres': "where's", 'im': "I'm", 'ive': "I've",
    # Seen in pasted student work
    'fealing': 'feeling', 'sandwitches': 'sandwiches', 'promissed': 'promised',
    'probbably': 'probably', 'perfact': 'perfect', 'reminde': 'remind',
}

# Dictionary entries safe to apply without asking. Contractions and
# run-together phrases are only suggested.
AUTO_CORRECT_EXCLUDED = {
    'alot', 'everytime', 'incase', 'infact', 'inspite', 'nevermind', 'aswell',
    'dont', 'cant', 'wont', 'didnt', 'doesnt', 'isnt', 'wasnt', 'couldnt',
    'shouldnt', 'wouldnt', 'youre', 'theyre', 'whos', 'whats', 'thats', 'heres',
    'theres', 'wheres', 'im', 'ive', 'judgement',
}

HIGH_CONFIDENCE_CORRECTIONS = {
    wrong: right for wrong, right in SPELL_CHECK_DICTIONARY.items()
    if wrong not in AUTO_CORRECT_EXCLUDED
}

VOWELS = set('aeiou')


@dataclass
class SpellCheckResult:
    word: str
    suggestion: str
    start_index: int
    end_index: int
    source: str = "dictionary"


def match_case(original: str, replacement: str) -> str:
    """Carry the casing of `original` (UPPER, Title, lower) over to `replacement`."""
    if len(original) > 1 and original.isupper():
        return replacement.upper()
    if original[:1].isupper():
        return replacement[:1].upper() + replacement[1:]
    return replacement


def _is_known(word: str) -> bool:
    return word in COMMON_ENGLISH_WORDS or is_valid_english_word(word)


def _candidates(word: str):
    """Pattern corrections for one lowercase word, most likely first."""
    # Doubled letter collapse: "writting" -> "writing"
    for i in range(len(word) - 1):
        if word[i] == word[i + 1]:
            yield word[:i] + word[i + 1:]

    # Missing doubled consonant: "stoped" -> "stopped"
    for i, ch in enumerate(word):
        if ch not in VOWELS and (i + 1 >= len(word) or word[i + 1] != ch):
            yield word[:i + 1] + ch + word[i + 1:]

    # Adjacent transposition: "studnet" -> "student"
    for i in range(len(word) - 1):
        if word[i] != word[i + 1]:
            yield word[:i] + word[i + 1] + word[i] + word[i + 2:]

    # i before e
    if 'ie' in word:
        yield word.replace('ie', 'ei', 1)
    if 'ei' in word:
        yield word.replace('ei', 'ie', 1)

    # Dropped e before a suffix: "hopful" -> "hopeful"
    for suffix in ('ful', 'ment', 'ly', 'less'):
        if word.endswith(suffix) and len(word) > len(suffix) + 2:
            stem = word[:-len(suffix)]
            yield stem + 'e' + suffix

    # One extra letter, never the first or last
    if len(word) >= 5:
        for i in range(1, len(word) - 1):
            yield word[:i] + word[i + 1:]


def suggest_correction(word: str):
    """
    Best local correction for `word`, or None.
    Returns (suggestion, source) with source "dictionary" or "pattern".
    """
    lower = word.lower()
    if lower in SPELL_CHECK_DICTIONARY:
        return match_case(word, SPELL_CHECK_DICTIONARY[lower]), "dictionary"

    if len(lower) < 3 or _is_known(lower):
        return None

    for candidate in _candidates(lower):
        if len(candidate) >= 3 and candidate != lower and candidate in COMMON_ENGLISH_WORDS:
            return match_case(word, candidate), "pattern"
    return None


def _is_proper_noun(text: str, start: int, word: str) -> bool:
    """Capitalised word that does not start a sentence."""
    if not word[:1].isupper() or word.isupper():
        return False
    before = text[:start].rstrip()
    return bool(before) and before[-1] not in '.!?\n'


def _tokens(text: str):
    for match in WORD_PATTERN.finditer(text or ''):
        word = match.group(0)
        if _is_proper_noun(text, match.start(), word) and word.lower() not in SPELL_CHECK_DICTIONARY:
            continue
        yield match


def check_spelling(text: str) -> list:
    """Scan `text` left to right and return a SpellCheckResult for every fixable word."""
    results = []
    for match in _tokens(text):
        found = suggest_correction(match.group(0))
        if found is None:
            continue
        suggestion, source = found
        results.append(SpellCheckResult(
            word=match.group(0),
            suggestion=suggestion,
            start_index=match.start(),
            end_index=match.end(),
            source=source,
        ))
    return results


def unresolved_words(text: str) -> list:
    """Unknown words the local checker has no suggestion for (candidates for the AI pass)."""
    words = []
    for match in _tokens(text):
        word = match.group(0)
        lower = word.lower()
        if len(lower) < 3 or _is_known(lower) or suggest_correction(word) is not None:
            continue
        if lower not in words:
            words.append(lower)
    return words


def apply_spell_check_suggestion(text: str, result: SpellCheckResult, suggestion: str = None) -> str:
    """Replace the span of one result. Raises ValueError if the text moved underneath it."""
    if text[result.start_index:result.end_index] != result.word:
        raise ValueError(f"'{result.word}' is no longer at {result.start_index}")
    replacement = suggestion if suggestion is not None else result.suggestion
    return text[:result.start_index] + replacement + text[result.end_index:]


def apply_auto_corrections(text: str):
    """
    Apply high-confidence dictionary fixes, whole words only, preserving case.

    Returns:
        (corrected_text, changes) where changes lists {"from", "to"} pairs
    """
    changes = []

    def fix(match):
        word = match.group(0)
        replacement = HIGH_CONFIDENCE_CORRECTIONS.get(word.lower())
        if replacement is None:
            return word
        fixed = match_case(word, replacement)
        changes.append({"from": word, "to": fixed})
        return fixed

    corrected = WORD_PATTERN.sub(fix, text or '')
    return corrected, changes


def highlight_misspelled_words(text: str, results: list = None) -> str:
    """HTML-escaped text with each error wrapped in a spell-error span."""
    text = text or ''
    results = check_spelling(text) if results is None else results
    out = []
    cursor = len(text)
    # right to left so earlier offsets stay valid
    for result in sorted(results, key=lambda r: r.start_index, reverse=True):
        if result.end_index > cursor:
            continue
        out.append(html.escape(text[result.end_index:cursor]))
        out.append(
            f'<span class="spell-error" title="Suggestion: {html.escape(result.suggestion, quote=True)}">'
            f'{html.escape(text[result.start_index:result.end_index])}</span>'
        )
        cursor = result.start_index
    out.append(html.escape(text[:cursor]))
    return ''.join(reversed(out))


def check_spelling_with_ai(text: str, ai_check=None) -> list:
    """
    Local results plus AI suggestions for words the heuristics could not resolve.

    Args:
        text: Text to check
        ai_check: callable(text) -> [{"word": ..., "suggestion": ...}]

    AI errors are logged and the local results returned alone.
    """
    results = check_spelling(text)
    unknown = set(unresolved_words(text))
    if ai_check is None or not unknown:
        return results

    try:
        ai_results = ai_check(text) or []
    except Exception as e:
        logger.warning("AI spell check failed, using local results: %s", e)
        return results

    ai_fixes = {}
    for item in ai_results:
        word = str(item.get('word', '')).lower()
        suggestion = item.get('suggestion')
        if word in unknown and suggestion and suggestion.lower() != word:
            ai_fixes[word] = suggestion

    claimed = {(r.start_index, r.end_index) for r in results}
    for match in _tokens(text):
        word = match.group(0)
        if word.lower() in ai_fixes and (match.start(), match.end()) not in claimed:
            results.append(SpellCheckResult(
                word=word,
                suggestion=match_case(word, ai_fixes[word.lower()]),
                start_index=match.start(),
                end_index=match.end(),
                source="ai",
            ))
    return sorted(results, key=lambda r: r.start_index)
