"""
Test: AI suggestion parser — pattern priority, anchoring, classification.
"""
from sage.services.suggestion_parser import (
    extract_suggestions_from_ai_response, apply_suggestions,
    determine_type, determine_severity, levenshtein_distance, strip_html,
)

DOCUMENT = "I went to the store yesterdya and buyed some food."

NUMBERED_RESPONSE = (
    'Here are a few fixes:\n\n'
    '1. Replace **"yesterdya"** with **"yesterday"** - Corrects the spelling.\n\n'
    '2. Replace **"buyed"** with **"bought"** - Incorrect verb tense.\n'
)


class TestExtractSuggestions:
    def test_numbered_bold_quoted(self):
        found = extract_suggestions_from_ai_response(NUMBERED_RESPONSE, DOCUMENT)
        assert [(s.original_text, s.suggested_text) for s in found] == [
            ("yesterdya", "yesterday"),
            ("buyed", "bought"),
        ]

    def test_offsets_point_into_document(self):
        found = extract_suggestions_from_ai_response(NUMBERED_RESPONSE, DOCUMENT)
        for suggestion in found:
            assert DOCUMENT[suggestion.start_index:suggestion.end_index] == suggestion.original_text

    def test_type_and_severity_from_explanation(self):
        first, second = extract_suggestions_from_ai_response(NUMBERED_RESPONSE, DOCUMENT)
        assert first.type == "spelling"
        assert first.severity == "medium"
        assert first.explanation == "Corrects the spelling."
        assert second.type == "grammar"
        assert second.severity == "high"

    def test_ids_are_sequential(self):
        found = extract_suggestions_from_ai_response(NUMBERED_RESPONSE, DOCUMENT)
        assert [s.id for s in found] == ["suggestion-1", "suggestion-2"]

    def test_numbered_bold_unquoted(self):
        found = extract_suggestions_from_ai_response("1. Replace **buyed** with **bought**", DOCUMENT)
        assert found[0].suggested_text == "bought"

    def test_numbered_change(self):
        found = extract_suggestions_from_ai_response('1. Change "buyed" to "bought" - wrong form', DOCUMENT)
        assert found[0].original_text == "buyed"
        assert found[0].explanation == "wrong form"
        assert found[0].severity == "high"

    def test_quoted_change_ending_in_period(self):
        found = extract_suggestions_from_ai_response('Change "teh" to "the".', "I saw teh cat and buyed food.")
        assert [(s.original_text, s.suggested_text) for s in found] == [("teh", "the")]
        assert found[0].explanation == "AI suggested correction"

    def test_numbered_quoted_change_ending_in_period(self):
        found = extract_suggestions_from_ai_response('1. Change "buyed" to "bought".', "I saw teh cat and buyed food.")
        assert [(s.original_text, s.suggested_text) for s in found] == [("buyed", "bought")]

    def test_quoted_replace_with_trailing_prose(self):
        found = extract_suggestions_from_ai_response(
            'Replace "teh" with "the" in the first sentence.', "I saw teh cat and buyed food.")
        assert [(s.original_text, s.suggested_text) for s in found] == [("teh", "the")]
        assert found[0].explanation == "in the first sentence."

    def test_bare_change_default_explanation(self):
        found = extract_suggestions_from_ai_response("Change teh to the", "I saw teh cat")
        assert len(found) == 1
        assert found[0].explanation == "AI suggested correction"
        assert found[0].type == "spelling"
        assert (found[0].start_index, found[0].end_index) == (6, 9)

    def test_case_insensitive_match_keeps_document_casing(self):
        found = extract_suggestions_from_ai_response("Change teh to the", "Teh cat sat")
        assert found[0].original_text == "Teh"

    def test_missing_text_skipped(self):
        assert extract_suggestions_from_ai_response("Change zzz to yyy", DOCUMENT) == []

    def test_duplicates_dropped(self):
        response = "1. Change buyed to bought\n2. Change buyed to bought"
        assert len(extract_suggestions_from_ai_response(response, DOCUMENT)) == 1

    def test_identical_pair_skipped(self):
        assert extract_suggestions_from_ai_response("Change store to Store", DOCUMENT) == []

    def test_repeated_word_claims_next_occurrence(self):
        document = "teh cat and teh cat"
        response = 'Replace "teh" with "tea"\nChange "teh" to "the"'
        found = extract_suggestions_from_ai_response(response, document)
        assert [(s.suggested_text, s.start_index) for s in found] == [("tea", 0), ("the", 12)]
        assert [s.explanation for s in found] == ["AI suggested correction"] * 2

    def test_html_is_stripped_before_anchoring(self):
        found = extract_suggestions_from_ai_response("Change teh to the", "<p>I saw <b>teh</b> cat</p>")
        assert (found[0].start_index, found[0].end_index) == (6, 9)

    def test_no_response(self):
        assert extract_suggestions_from_ai_response("", DOCUMENT) == []
        assert extract_suggestions_from_ai_response(None, DOCUMENT) == []


class TestApplySuggestions:
    def test_applies_right_to_left(self):
        found = extract_suggestions_from_ai_response(NUMBERED_RESPONSE, DOCUMENT)
        assert apply_suggestions(DOCUMENT, found) == "I went to the store yesterday and bought some food."

    def test_moved_text_skipped(self):
        found = extract_suggestions_from_ai_response(NUMBERED_RESPONSE, DOCUMENT)
        edited = "Totally different now."
        assert apply_suggestions(edited, found) == edited


class TestClassification:
    def test_levenshtein(self):
        assert levenshtein_distance("kitten", "sitting") == 3
        assert levenshtein_distance("", "abc") == 3
        assert levenshtein_distance("same", "same") == 0

    def test_type_by_distance(self):
        assert determine_type("form", "from", "") == "spelling"
        assert determine_type("big", "enormous", "") == "style"

    def test_type_by_keyword(self):
        assert determine_type("go", "went", "Use the past tense") == "grammar"
        assert determine_type("a", "b", "This word is misspelled") == "spelling"

    def test_severity(self):
        assert determine_severity("This is wrong") == "high"
        assert determine_severity("Consider a stronger verb") == "low"
        assert determine_severity("") == "medium"

    def test_strip_html(self):
        assert strip_html("<p>Hello <em>there</em></p>") == "Hello there"
