"""
Username generation for new Sage accounts.
"""
import re
import time
from datetime import datetime


def clean_name(name: str) -> str:
    """Lowercase, strip everything but letters and digits, cap at 15 chars."""
    return re.sub(r'[^a-z0-9]', '', (name or '').lower())[:15]


def extract_year_from_email(email: str):
    """
    Pull a graduation year or identifying digits out of the email prefix.
    john.smith25@gmail.com -> "25", jane.doe2024@outlook.com -> "24"
    """
    prefix = (email or '').split('@')[0]

    match = re.search(r'(\d{2,4})$', prefix)
    if not match:
        match = re.search(r'\.(\d{2,4})(?:\.|$)', prefix)
    if not match:
        return None

    year = match.group(1)
    return year[-2:] if len(year) == 4 else year


class UsernameGenerator:
    def __init__(self, storage):
        self.storage = storage

    def is_available(self, username: str) -> bool:
        return bool(username) and self.storage.get_user_by_username(username) is None

    def _year(self, email):
        return extract_year_from_email(email) or str(datetime.now().year)[-2:]

    def generate_unique_username(self, email: str, first_name: str, last_name: str, role: str = 'student') -> str:
        """
        Try, in order: email prefix, first.last, first.last + year,
        first.last.teacher (teachers only), first.last2..99, last.first,
        and finally first.last.<timestamp>.
        """
        first = clean_name(first_name)
        last = clean_name(last_name)
        email_prefix = (email or '').split('@')[0].lower()

        candidates = [email_prefix, f"{first}.{last}", f"{first}.{last}{self._year(email)}"]
        if role == 'teacher':
            candidates.append(f"{first}.{last}.teacher")
        candidates.extend(f"{first}.{last}{i}" for i in range(2, 100))
        candidates.append(f"{last}.{first}")

        for candidate in candidates:
            if self.is_available(candidate):
                return candidate

        return f"{first}.{last}.{str(int(time.time() * 1000))[-4:]}"

    def generate_username_suggestions(self, email: str, first_name: str, last_name: str, role: str = 'student') -> list:
        """Up to 5 available usernames for an admin to choose from."""
        first = clean_name(first_name)
        last = clean_name(last_name)
        email_prefix = (email or '').split('@')[0].lower()

        options = [
            email_prefix,
            f"{first}.{last}",
            f"{first}.{last}{self._year(email)}",
            f"{first}{last}",
            f"{first}_{last}",
            f"{first}.{last}.teacher" if role == 'teacher' else f"{first}.{last}.student",
            f"{last}.{first}",
        ]
        suggestions = []
        for option in options:
            if option not in suggestions and self.is_available(option):
                suggestions.append(option)

        if len(suggestions) < 3:
            for i in range(2, 11):
                numbered = f"{first}.{last}{i}"
                if self.is_available(numbered):
                    suggestions.append(numbered)
                    if len(suggestions) >= 5:
                        break

        return suggestions[:5]


def generate_username_from_email(email: str, storage) -> str:
    """Derive first/last from the email prefix and generate a student username."""
    parts = re.split(r'[._-]', (email or '').split('@')[0])
    first = parts[0] if parts and parts[0] else 'user'
    last = parts[1] if len(parts) > 1 and parts[1] else 'student'
    return UsernameGenerator(storage).generate_unique_username(email, first, last, 'student')
