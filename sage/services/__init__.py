"""
Sage Services
=============

Business logic for the Sage application.

Services:
- spell_check: dictionary + pattern spell checker
- suggestion_parser: structured suggestions from assistant replies
- paste_matcher: re-locating pasted text for integrity review
- pagination: print-like page view
- ai_service: writing tutor guardrails and provider dispatch
- citation_service: citation formatting and originality check
- analytics: streaks, achievements, writing statistics
- email_service: account emails via Resend
- document_export: docx / pdf / txt downloads
"""

# Services are imported directly when needed to avoid circular imports
# Example: from sage.services.spell_check import check_spelling

__all__ = [
    'spell_check',
    'suggestion_parser',
    'paste_matcher',
    'pagination',
    'ai_service',
    'citation_service',
    'analytics',
    'email_service',
    'document_export',
]
