"""
Status API route for Sage (public health check).
"""
from flask import Blueprint, jsonify

from ..config import config

status_bp = Blueprint('status', __name__)


@status_bp.route('/api/status', methods=['GET'])
def status():
    return jsonify({
        "status": "ok",
        "aiProvider": config.ai_provider,
        "storage": config.storage_backend,
    })
