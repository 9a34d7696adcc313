"""
JWT Authentication for Sage.
Issues HS256 tokens on login and validates Bearer tokens on all /api/
routes except public endpoints.
"""
import logging
import uuid
from datetime import datetime, timedelta, timezone
from functools import wraps

import jwt
from flask import request, jsonify, g, current_app
from werkzeug.security import generate_password_hash, check_password_hash

from .config import config, JWT_ALGORITHM
from .storage import get_storage

logger = logging.getLogger(__name__)

# Routes that don't require authentication
PUBLIC_PREFIXES = []

PUBLIC_EXACT = [
    '/api/status',
    '/api/auth/login',
    '/api/auth/register',
    '/api/auth/forgot-credentials',
    '/api/auth/reset-password',
    '/api/auth/check-email',
    '/api/auth/demo-login',
]

RESET_TOKEN_TTL = timedelta(hours=1)


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    if not password_hash:
        return False
    return check_password_hash(password_hash, password)


def get_jwt_secret():
    """Signing secret configured on the current app."""
    secret = current_app.config.get('JWT_SECRET')
    if not secret:
        raise RuntimeError('SAGE_JWT_SECRET not configured')
    return secret


def issue_token(user: dict, purpose: str = 'access', ttl: timedelta = None) -> str:
    now = datetime.now(timezone.utc)
    ttl = ttl or timedelta(hours=config.token_ttl_hours)
    payload = {
        'sub': str(user['id']),
        'role': user['role'],
        'username': user['username'],
        'purpose': purpose,
        'jti': uuid.uuid4().hex,
        'iat': now,
        'exp': now + ttl,
    }
    return jwt.encode(payload, get_jwt_secret(), algorithm=JWT_ALGORITHM)


def issue_reset_token(user: dict) -> str:
    return issue_token(user, purpose='reset', ttl=RESET_TOKEN_TTL)


def _revoked_tokens():
    return current_app.extensions.setdefault('sage_revoked_tokens', set())


def revoke_token(payload: dict):
    _revoked_tokens().add(payload.get('jti'))


def validate_token(token, purpose: str = 'access'):
    """
    Validate a Sage JWT and return the decoded payload.
    Returns None if invalid, expired, revoked or issued for another purpose.
    """
    try:
        payload = jwt.decode(token, get_jwt_secret(), algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None

    if payload.get('purpose', 'access') != purpose:
        return None
    if payload.get('jti') in _revoked_tokens():
        return None
    return payload


def bearer_token():
    auth_header = request.headers.get('Authorization', '')
    if not auth_header.startswith('Bearer '):
        return None
    return auth_header[7:]


def is_public_route(path):
    """Check if a route is public (no auth required)."""
    if path in PUBLIC_EXACT:
        return True
    for prefix in PUBLIC_PREFIXES:
        if path.startswith(prefix):
            return True
    return False


def init_auth(app):
    """
    Register the before_request auth hook on the Flask app.
    Call this BEFORE registering blueprints.
    """
    @app.before_request
    def check_auth():
        # Skip non-API routes and CORS preflight
        if not request.path.startswith('/api/') or request.method == 'OPTIONS':
            return None

        if is_public_route(request.path):
            return None

        token = bearer_token()
        if token is None:
            return jsonify({'error': 'Authentication required'}), 401

        payload = validate_token(token)
        if payload is None:
            return jsonify({'error': 'Invalid or expired token'}), 401

        user = get_storage().get_user(int(payload['sub']))
        if user is None or not user.get('is_active', True):
            return jsonify({'error': 'Account is not active'}), 401

        # Attach user info to Flask's g object for use in route handlers
        g.user_id = user['id']
        g.user_role = user['role']
        g.username = user['username']
        g.token_payload = payload


def role_required(*roles):
    """Route decorator: 403 unless the authenticated user has one of `roles`."""
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            if getattr(g, 'user_role', None) not in roles:
                logger.warning("User %s (%s) denied access to %s",
                               getattr(g, 'user_id', None), getattr(g, 'user_role', None), request.path)
                return jsonify({'error': 'Insufficient permissions'}), 403
            return fn(*args, **kwargs)
        return wrapper
    return decorator
