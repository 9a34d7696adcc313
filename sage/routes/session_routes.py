"""
Writing Session API routes for Sage.
Drafting, paste tracking, submission, grading, inline comments, page view
and export.
"""
import io
import logging
from dataclasses import asdict

from flask import Blueprint, request, jsonify, send_file

from ..auth import role_required
from ..config import config
from ..errors import PermissionDenied, ValidationFailed
from ..ferpa import audit_log, log_data_access
from ..models import (
    WritingSessionCreate, WritingSessionUpdate, PastedContent, GradeRequest,
    InlineCommentCreate, serialize,
)
from ..services.analytics import update_writing_streak, check_achievements, refresh_goal_progress
from ..services.document_export import export_session
from ..services.paste_matcher import paste_statistics, highlight_pasted_content
from ..services.pagination import split_into_pages, page_breaks_by_words
from ..storage import get_storage
from .common import (
    parse_body, current_user_id, current_role, require_found,
    require_self_or_staff, load_session, load_owned_assignment,
)

logger = logging.getLogger(__name__)

session_bp = Blueprint('session', __name__)


def _student_name(user_id):
    user = get_storage().get_user(user_id)
    if user is None:
        return None
    return f"{user['first_name']} {user['last_name']}"


# ══════════════════════════════════════════════════════════════
# DRAFTING
# ══════════════════════════════════════════════════════════════

@session_bp.route('/api/writing-sessions', methods=['POST'])
def create_session():
    data = parse_body(WritingSessionCreate)
    storage = get_storage()
    if data.assignment_id is not None:
        require_found(storage.get_assignment(data.assignment_id), "Assignment")

    session = storage.create_session(current_user_id(), data.to_record())
    logger.info("Writing session %s created by %s", session['id'], current_user_id())
    return jsonify(serialize(session)), 201


@session_bp.route('/api/writing-sessions/<int:session_id>', methods=['GET'])
@log_data_access('VIEW_WRITING_SESSION', 'view_own_work')
def get_session(session_id):
    return jsonify(serialize(load_session(session_id)))


@session_bp.route('/api/writing-sessions/<int:session_id>', methods=['PATCH'])
def update_session(session_id):
    session = load_session(session_id, owner_only=True)
    if session.get('status') == 'graded':
        raise ValidationFailed("Graded work can no longer be edited")

    data = parse_body(WritingSessionUpdate)
    updates = {k: v for k, v in data.to_record(exclude_unset=True).items() if v is not None}
    return jsonify(serialize(get_storage().update_session(session_id, updates)))


@session_bp.route('/api/writing-sessions/<int:session_id>/paste', methods=['POST'])
def record_paste(session_id):
    """Append one paste event to the session's integrity log."""
    load_session(session_id, owner_only=True)
    paste = parse_body(PastedContent)
    session = get_storage().append_paste(session_id, paste.to_record())
    return jsonify(serialize(session)), 201


@session_bp.route('/api/writing-sessions/<int:session_id>/submit', methods=['POST'])
def submit_session(session_id):
    session = load_session(session_id, owner_only=True)
    if session.get('status') != 'draft':
        raise ValidationFailed("This writing session has already been submitted")

    storage = get_storage()
    session = storage.submit_session(session_id)
    streak = update_writing_streak(storage, current_user_id())
    unlocked = check_achievements(storage, current_user_id())
    refresh_goal_progress(storage, current_user_id())

    audit_log("SUBMISSION", f"session_id={session_id}", user=str(current_user_id()))
    return jsonify({
        "session": serialize(session),
        "streak": serialize(streak),
        "newAchievements": serialize(unlocked),
    })


# ══════════════════════════════════════════════════════════════
# GRADING
# ══════════════════════════════════════════════════════════════

@session_bp.route('/api/sessions/<int:session_id>/grade', methods=['POST'])
@role_required('teacher', 'admin')
@log_data_access('GRADE_SUBMISSION', 'grade_assignment')
def grade_session(session_id):
    storage = get_storage()
    session = require_found(storage.get_session(session_id), "Writing session")
    if session.get('assignment_id') is None:
        raise ValidationFailed("Only assignment submissions can be graded")
    load_owned_assignment(session['assignment_id'])
    if session.get('status') == 'draft':
        raise ValidationFailed("This writing session has not been submitted")

    data = parse_body(GradeRequest)
    session = storage.grade_session(session_id, data.grade.strip(), data.feedback)
    return jsonify(serialize(session))


# ══════════════════════════════════════════════════════════════
# LISTINGS
# ══════════════════════════════════════════════════════════════

@session_bp.route('/api/users/<int:user_id>/writing-sessions', methods=['GET'])
@log_data_access('VIEW_STUDENT_SESSIONS', 'track_progress')
def get_user_sessions(user_id):
    require_self_or_staff(user_id)
    sessions = get_storage().list_user_sessions(user_id)
    if current_role() == 'teacher' and user_id != current_user_id():
        owned = {a['id'] for a in get_storage().list_teacher_assignments(current_user_id())}
        sessions = [s for s in sessions if s.get('assignment_id') in owned]
    return jsonify(serialize(sessions))


@session_bp.route('/api/student/writing-sessions', methods=['GET'])
def get_my_sessions():
    return jsonify(serialize(get_storage().list_user_sessions(current_user_id())))


@session_bp.route('/api/session/<int:session_id>/interactions', methods=['GET'])
def get_session_interactions(session_id):
    load_session(session_id)
    return jsonify(serialize(get_storage().list_session_interactions(session_id)))


# ══════════════════════════════════════════════════════════════
# INTEGRITY, PAGES, EXPORT
# ══════════════════════════════════════════════════════════════

@session_bp.route('/api/writing-sessions/<int:session_id>/paste-report', methods=['GET'])
@log_data_access('VIEW_PASTE_REPORT', 'grade_assignment')
def paste_report(session_id):
    session = load_session(session_id)
    content = session.get('content') or ''
    records = session.get('pasted_content') or []

    stats = paste_statistics(content, records)
    matches = stats.pop('matches')
    return jsonify({
        **serialize(stats),
        "matches": serialize([asdict(m) for m in matches]),
        "highlighted": highlight_pasted_content(content, records, matches),
    })


@session_bp.route('/api/writing-sessions/<int:session_id>/pages', methods=['GET'])
def get_pages(session_id):
    session = load_session(session_id)
    content = session.get('content') or ''
    lines_per_page = request.args.get('linesPerPage', config.lines_per_page, type=int)
    chars_per_line = request.args.get('charsPerLine', config.chars_per_line, type=int)
    if lines_per_page < 1 or chars_per_line < 1:
        raise ValidationFailed("linesPerPage and charsPerLine must be positive")

    pages = split_into_pages(content, lines_per_page, chars_per_line)
    return jsonify({
        "pages": serialize([asdict(p) for p in pages]),
        "totalPages": len(pages),
        "pageBreaks": serialize(page_breaks_by_words(content, config.words_per_page)),
    })


@session_bp.route('/api/writing-sessions/<int:session_id>/export', methods=['GET'])
def export(session_id):
    session = load_session(session_id)
    fmt = request.args.get('format', 'docx')
    lines_per_page = request.args.get('linesPerPage', config.lines_per_page, type=int)
    chars_per_line = request.args.get('charsPerLine', config.chars_per_line, type=int)
    if lines_per_page < 1 or chars_per_line < 1:
        raise ValidationFailed("linesPerPage and charsPerLine must be positive")

    assignment_title = None
    if session.get('assignment_id') is not None:
        assignment = get_storage().get_assignment(session['assignment_id'])
        assignment_title = assignment['title'] if assignment else None

    try:
        data, mimetype, filename = export_session(
            session, fmt, _student_name(session['user_id']), assignment_title,
            lines_per_page=lines_per_page, chars_per_line=chars_per_line)
    except ValueError as e:
        raise ValidationFailed(str(e))

    audit_log("EXPORT", f"session_id={session_id} format={fmt}", user=str(current_user_id()))
    return send_file(io.BytesIO(data), mimetype=mimetype, as_attachment=True, download_name=filename)


# ══════════════════════════════════════════════════════════════
# INLINE COMMENTS
# ══════════════════════════════════════════════════════════════

@session_bp.route('/api/sessions/<int:session_id>/comments', methods=['GET'])
def get_comments(session_id):
    load_session(session_id)
    return jsonify(serialize(get_storage().list_inline_comments(session_id)))


@session_bp.route('/api/sessions/<int:session_id>/comments', methods=['POST'])
@role_required('teacher', 'admin')
def create_comment(session_id):
    session = load_session(session_id)
    data = parse_body(InlineCommentCreate)
    content = session.get('content') or ''
    if data.end_index > len(content):
        raise ValidationFailed("Comment range is outside the document")

    record = data.to_record()
    if not record['highlighted_text']:
        record['highlighted_text'] = content[data.start_index:data.end_index]
    comment = get_storage().create_inline_comment(session_id, current_user_id(), record)
    return jsonify(serialize(comment)), 201


@session_bp.route('/api/sessions/<int:session_id>/comments/<int:comment_id>', methods=['DELETE'])
@role_required('teacher', 'admin')
def delete_comment(session_id, comment_id):
    storage = get_storage()
    comment = require_found(storage.get_inline_comment(comment_id), "Comment")
    if comment['session_id'] != session_id:
        raise PermissionDenied("Comment does not belong to this session")
    if current_role() != 'admin' and comment['teacher_id'] != current_user_id():
        raise PermissionDenied("You can only delete your own comments")

    storage.delete_inline_comment(comment_id)
    return jsonify({"message": "Comment deleted"})
