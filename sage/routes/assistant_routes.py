"""
AI Writing Assistant API routes for Sage.
Chat with guardrails, spell check, correction suggestions, citations,
originality checks and learning profiles.
"""
import logging
from dataclasses import asdict

from flask import Blueprint, jsonify

from ..auth import role_required
from ..errors import ValidationFailed
from ..ferpa import audit_log, log_data_access
from ..models import ChatRequest, CitationRequest, StudentProfileUpdate, serialize
from ..services.ai_service import assist, spell_check_with_ai, review_writing
from ..services.analytics import update_learning_profile, student_profiles_overview
from ..services.citation_service import format_citation, check_originality
from ..services.spell_check import check_spelling_with_ai, highlight_misspelled_words, unresolved_words
from ..services.suggestion_parser import extract_suggestions_from_ai_response
from ..storage import get_storage
from .common import (
    parse_body, json_body, string_field, current_user_id, current_role, require_self_or_staff, load_session,
)

logger = logging.getLogger(__name__)

assistant_bp = Blueprint('assistant', __name__)

PEER_SOURCE_TITLE = "Another submission"


def _text_from_body(data, limit=20000):
    text = data.get('text') or data.get('content') or ''
    if not isinstance(text, str) or not text.strip():
        raise ValidationFailed("Text is required")
    if len(text) > limit:
        raise ValidationFailed(f"Text is too long (max {limit} characters)")
    return text


@assistant_bp.route('/api/ai/chat', methods=['POST'])
def chat():
    """
    Answer a student prompt. Restricted prompts get the refusal text and
    prompts in a category the assignment disables get the permission text.
    Every exchange is stored as an AI interaction.
    """
    data = parse_body(ChatRequest)
    storage = get_storage()

    session = assignment = None
    if data.session_id is not None:
        session = load_session(data.session_id)
        if session.get('assignment_id') is not None:
            assignment = storage.get_assignment(session['assignment_id'])

    is_student = current_role() == 'student'
    profile = storage.get_profile(current_user_id()) if is_student else None

    response, is_restricted, category = assist(
        data.prompt, session=session, assignment=assignment, profile=profile,
        enforce_permissions=is_student)

    interaction = storage.create_ai_interaction({
        "session_id": data.session_id,
        "prompt": data.prompt,
        "response": response,
        "is_restricted": is_restricted,
        "category": category,
    })
    if is_student:
        update_learning_profile(storage, current_user_id(), data.prompt)

    return jsonify({
        "response": response,
        "isRestricted": is_restricted,
        "category": category,
        "interaction": serialize(interaction),
    })


@assistant_bp.route('/api/ai/spell-check', methods=['POST'])
def spell_check():
    data = json_body()
    text = _text_from_body(data)
    use_ai = data.get('useAi', True)

    results = check_spelling_with_ai(text, spell_check_with_ai if use_ai else None)
    return jsonify({
        "results": serialize([asdict(r) for r in results]),
        "highlighted": highlight_misspelled_words(text, results),
        "unresolved": unresolved_words(text),
    })


@assistant_bp.route('/api/ai/suggestions', methods=['POST'])
def suggestions():
    """
    Turn AI review text into anchored suggestions.
    Uses `aiResponse` from the body if the client already has one,
    otherwise asks the provider to review `content`.
    """
    data = json_body()
    content = _text_from_body(data)
    ai_response = data.get('aiResponse')
    if ai_response is not None and not isinstance(ai_response, str):
        raise ValidationFailed("aiResponse must be a string")

    if not ai_response:
        try:
            ai_response = review_writing(content)
        except Exception as e:
            logger.warning("Writing review unavailable: %s", e)
            return jsonify({"error": "AI review is temporarily unavailable"}), 503

    found = extract_suggestions_from_ai_response(ai_response, content)
    return jsonify({"suggestions": serialize([asdict(s) for s in found]), "count": len(found)})


@assistant_bp.route('/api/citations/generate', methods=['POST'])
def generate_citation():
    data = parse_body(CitationRequest)
    record = data.to_record()
    style = record.pop('style')
    try:
        citation = format_citation(record, style)
    except ValueError as e:
        raise ValidationFailed(str(e))
    return jsonify({"citation": citation, "style": style})


@assistant_bp.route('/api/plagiarism/check', methods=['POST'])
def plagiarism_check():
    """
    Originality check against the session's own paste log and the other
    submissions for the same assignment.
    """
    data = json_body()
    storage = get_storage()
    session_id = data.get('sessionId')

    pasted, peers = [], []
    if session_id is not None:
        session = load_session(session_id)
        text = string_field(data, 'text') or session.get('content') or ''
        pasted = session.get('pasted_content') or []
        if session.get('assignment_id') is not None:
            peers = [{"title": PEER_SOURCE_TITLE, "content": s.get('content')}
                     for s in storage.list_assignment_submissions(session['assignment_id'])
                     if s['id'] != session['id'] and s.get('user_id') != session.get('user_id')]
    else:
        text = _text_from_body(data)

    if not text.strip():
        raise ValidationFailed("Text is required")

    result = check_originality(text, pasted, peers)
    if current_role() == 'student':
        # classmates' writing is never shown to students
        hidden = set()
        for source in result['sources']:
            if source['title'] == PEER_SOURCE_TITLE:
                hidden.add(source['snippet'])
                source['snippet'] = ''
        for concern in result['concerns']:
            if concern['type'] == 'high_similarity' and concern['text'] in hidden:
                concern['text'] = ''

    audit_log("ORIGINALITY_CHECK", f"session_id={session_id}", user=str(current_user_id()))
    return jsonify(serialize(result))


# ══════════════════════════════════════════════════════════════
# LEARNING PROFILES
# ══════════════════════════════════════════════════════════════

def _profile_for(user_id):
    """Existing learning profile, created on first access. Students only."""
    storage = get_storage()
    profile = storage.get_profile(user_id)
    if profile is None:
        student = storage.get_user(user_id)
        if student is None or student['role'] != 'student':
            raise ValidationFailed("Learning profiles exist only for students")
        profile = storage.create_profile(user_id)
    return profile


@assistant_bp.route('/api/students/<int:user_id>/learning-profile', methods=['GET'])
@log_data_access('VIEW_LEARNING_PROFILE', 'track_progress')
def get_learning_profile(user_id):
    require_self_or_staff(user_id)
    return jsonify(serialize(_profile_for(user_id)))


@assistant_bp.route('/api/students/<int:user_id>/learning-profile', methods=['PUT'])
def update_profile(user_id):
    require_self_or_staff(user_id)
    data = parse_body(StudentProfileUpdate)
    updates = {k: v for k, v in data.to_record(exclude_unset=True).items() if v is not None}

    _profile_for(user_id)
    return jsonify(serialize(get_storage().update_profile(user_id, updates)))


@assistant_bp.route('/api/teacher/student-profiles', methods=['GET'])
@role_required('teacher', 'admin')
@log_data_access('VIEW_STUDENT_PROFILES', 'track_progress')
def get_student_profiles():
    return jsonify(serialize(student_profiles_overview(get_storage())))
