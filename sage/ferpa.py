"""
FERPA/COPPA compliance helpers for Sage.

Audit trail: every access to an educational record is appended to a local
log file as `timestamp | user | action | details`. Logs never contain
student writing, only identifiers.
"""
import os
import logging
from datetime import datetime
from functools import wraps

from flask import g, request

from .config import AUDIT_LOG_FILE

logger = logging.getLogger(__name__)

VALID_PURPOSES = {
    'student': ['view_own_work', 'submit_assignment', 'access_feedback'],
    'teacher': ['grade_assignment', 'provide_feedback', 'track_progress', 'manage_class'],
    'admin': ['user_management', 'system_administration', 'compliance_audit'],
}

ELEMENTARY_GRADES = ['K', '1st', '2nd', '3rd', '4th', '5th', '6th']

ALLOWED_STUDENT_FIELDS = [
    'id', 'first_name', 'last_name', 'grade', 'email',
    'writing_sessions', 'assignments', 'classrooms',
]

DIRECTORY_INFO_ROLES = ['teacher', 'admin', 'counselor']

DATA_RETENTION_POLICY = {
    "active_students": "Retained while enrolled and for 1 year after graduation/transfer",
    "graduated_students": "Retained for 5 years after graduation for transcript purposes",
    "writing_data": "Retained for 3 years for academic assessment and improvement",
    "audit_logs": "Retained for 7 years for compliance verification",
}

STUDENT_RIGHTS = [
    "Right to inspect and review educational records",
    "Right to request amendment of inaccurate records",
    "Right to consent to disclosure of personally identifiable information",
    "Right to file complaints with the Department of Education",
    "Right to obtain copy of institution's FERPA policy",
]


def audit_log(action: str, details: str = "", user: str = "system"):
    """Append one audit entry. Failures are logged, never raised into the request."""
    try:
        path = AUDIT_LOG_FILE
        os.makedirs(os.path.dirname(path), exist_ok=True)
        timestamp = datetime.now().isoformat()
        clean_details = str(details).replace('\n', ' ').replace(' | ', ' / ')
        with open(path, 'a') as f:
            f.write(f"{timestamp} | {user} | {action} | {clean_details}\n")
    except OSError as e:
        logger.error("Audit log error: %s", e)


def get_audit_logs(limit: int = 100):
    """Most recent audit entries, newest first."""
    path = AUDIT_LOG_FILE
    if not os.path.exists(path):
        return []

    with open(path, 'r') as f:
        lines = f.readlines()

    logs = []
    for line in lines[-limit:]:
        parts = line.rstrip('\n').split(' | ')
        if len(parts) >= 4:
            logs.append({
                'timestamp': parts[0],
                'user': parts[1],
                'action': parts[2],
                'details': ' | '.join(parts[3:]),
            })
    return logs[::-1]


def validate_educational_purpose(purpose: str, role: str) -> bool:
    return purpose in VALID_PURPOSES.get(role, [])


def requires_parental_consent(grade) -> bool:
    """COPPA: students in grade 6 or below are assumed to be under 13."""
    return grade in ELEMENTARY_GRADES


def sanitize_student_data(student: dict) -> dict:
    """Data minimization: keep only whitelisted fields."""
    return {k: v for k, v in student.items() if k in ALLOWED_STUDENT_FIELDS}


def can_share_directory_info(requester_role: str) -> bool:
    return requester_role in DIRECTORY_INFO_ROLES


def log_data_access(action: str, purpose: str):
    """Route decorator that writes an audit entry for every call."""
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            user = getattr(g, 'user_id', None)
            role = getattr(g, 'user_role', None)
            if role and not validate_educational_purpose(purpose, role):
                logger.warning("Access purpose %s not registered for role %s", purpose, role)
            audit_log(action, f"purpose={purpose} path={request.path} ip={request.remote_addr}",
                      user=str(user) if user is not None else "anonymous")
            return fn(*args, **kwargs)
        return wrapper
    return decorator
