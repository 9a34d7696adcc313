"""
Sage API Routes
===============

All API route blueprints for the Sage application.

Usage:
    from sage.routes import register_routes
    register_routes(app)
"""
from .status_routes import status_bp
from .auth_routes import auth_bp
from .assignment_routes import assignment_bp
from .classroom_routes import classroom_bp
from .session_routes import session_bp
from .assistant_routes import assistant_bp
from .message_routes import message_bp
from .analytics_routes import analytics_bp
from .feedback_routes import feedback_bp
from .admin_routes import admin_bp


def register_routes(app):
    """Register all route blueprints with the Flask app."""
    app.register_blueprint(status_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(assignment_bp)
    app.register_blueprint(classroom_bp)
    app.register_blueprint(session_bp)
    app.register_blueprint(assistant_bp)
    app.register_blueprint(message_bp)
    app.register_blueprint(analytics_bp)
    app.register_blueprint(feedback_bp)
    app.register_blueprint(admin_bp)


__all__ = [
    'register_routes',
    'status_bp',
    'auth_bp',
    'assignment_bp',
    'classroom_bp',
    'session_bp',
    'assistant_bp',
    'message_bp',
    'analytics_bp',
    'feedback_bp',
    'admin_bp',
]
