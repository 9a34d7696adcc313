"""
Platform Feedback API routes for Sage.
Any user can report bugs or ideas; admins triage them.
"""
from flask import Blueprint, request, jsonify

from ..auth import role_required
from ..models import FeedbackCreate, FeedbackUpdate, serialize
from ..storage import get_storage
from .common import parse_body, current_user_id, current_role, require_found

feedback_bp = Blueprint('feedback', __name__)


@feedback_bp.route('/api/feedback', methods=['POST'])
def submit_feedback():
    data = parse_body(FeedbackCreate)
    record = data.to_record()
    if not record.get('user_agent'):
        record['user_agent'] = request.headers.get('User-Agent')
    feedback = get_storage().create_feedback(current_user_id(), record)
    return jsonify(serialize(feedback)), 201


@feedback_bp.route('/api/feedback', methods=['GET'])
def list_feedback():
    """Admins see everything (optionally by ?status=); others see their own."""
    status = request.args.get('status')
    storage = get_storage()
    if current_role() == 'admin':
        rows = storage.list_feedback(status=status)
    else:
        rows = storage.list_feedback(status=status, user_id=current_user_id())
    return jsonify(serialize(rows))


@feedback_bp.route('/api/feedback/<int:feedback_id>', methods=['PATCH'])
@role_required('admin')
def update_feedback(feedback_id):
    storage = get_storage()
    require_found(storage.get_feedback(feedback_id), "Feedback")
    data = parse_body(FeedbackUpdate)
    updated = storage.update_feedback(feedback_id, data.to_record(), admin_id=current_user_id())
    return jsonify(serialize(updated))


@feedback_bp.route('/api/admin/feedback-stats', methods=['GET'])
@role_required('admin')
def feedback_stats():
    stats = get_storage().feedback_stats()
    # breakdown keys are data values (e.g. in_progress), only the field names go camelCase
    return jsonify({
        "total": stats["total"],
        "byStatus": stats["by_status"],
        "byType": stats["by_type"],
        "byPriority": stats["by_priority"],
        "averageRating": stats["average_rating"],
    })
