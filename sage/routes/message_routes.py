"""
Messaging API routes for Sage.
Students message teachers and teachers message students.
"""
from flask import Blueprint, jsonify

from ..errors import PermissionDenied, ValidationFailed
from ..models import MessageCreate, serialize
from ..storage import get_storage
from .common import parse_body, current_user_id, current_role, require_found, require_self_or_admin

message_bp = Blueprint('message', __name__)


@message_bp.route('/api/messages', methods=['POST'])
def send_message():
    data = parse_body(MessageCreate)
    storage = get_storage()
    receiver = storage.get_user(data.receiver_id)
    if receiver is None or not receiver.get('is_active', True):
        raise ValidationFailed("Recipient does not exist")
    if receiver['id'] == current_user_id():
        raise ValidationFailed("You cannot message yourself")
    if current_role() == 'student' and receiver['role'] == 'student':
        raise PermissionDenied("Students can only message teachers")

    message = storage.create_message(current_user_id(), data.to_record())
    return jsonify(serialize(message)), 201


@message_bp.route('/api/messages/inbox/<int:user_id>', methods=['GET'])
def get_inbox(user_id):
    require_self_or_admin(user_id)
    return jsonify(serialize(get_storage().inbox(user_id)))


@message_bp.route('/api/messages/sent/<int:user_id>', methods=['GET'])
def get_sent(user_id):
    require_self_or_admin(user_id)
    return jsonify(serialize(get_storage().sent_messages(user_id)))


@message_bp.route('/api/messages/<int:message_id>/read', methods=['POST'])
def mark_read(message_id):
    storage = get_storage()
    message = require_found(storage.get_message(message_id), "Message")
    if message['receiver_id'] != current_user_id():
        raise PermissionDenied("Only the recipient can mark a message as read")
    return jsonify(serialize(storage.mark_message_read(message_id)))


@message_bp.route('/api/users/recipients/<role>', methods=['GET'])
def get_recipients(role):
    """Teachers see students, everyone else sees teachers."""
    if role not in ('student', 'teacher', 'admin'):
        raise ValidationFailed("Unknown role")
    if current_role() != 'admin' and role != current_role():
        raise PermissionDenied("You can only list your own recipients")
    return jsonify(serialize(get_storage().recipients_for_role(role)))
