"""
Test: Username generation and suggestions.
"""
from sage.storage import MemoryStorage
from sage.username_generator import (
    UsernameGenerator, clean_name, extract_year_from_email, generate_username_from_email,
)


def taken(*usernames):
    store = MemoryStorage()
    for name in usernames:
        store.create_user({"username": name, "email": f"{name}@x.org", "role": "student", "password_hash": "h"})
    return store


class TestHelpers:
    def test_clean_name(self):
        assert clean_name("O'Brien-Smith") == "obriensmith"
        assert clean_name("Bartholomew-Christopher") == "bartholomewchri"
        assert clean_name(None) == ""

    def test_year_from_email(self):
        assert extract_year_from_email("john.smith25@gmail.com") == "25"
        assert extract_year_from_email("jane.doe2024@outlook.com") == "24"
        assert extract_year_from_email("sam.28.lee@school.edu") == "28"
        assert extract_year_from_email("nodigits@school.edu") is None


class TestGenerateUnique:
    def test_email_prefix_first(self):
        generator = UsernameGenerator(taken())
        assert generator.generate_unique_username("jdoe@school.edu", "Jane", "Doe") == "jdoe"

    def test_first_last_when_prefix_taken(self):
        generator = UsernameGenerator(taken("jdoe"))
        assert generator.generate_unique_username("jdoe@school.edu", "Jane", "Doe") == "jane.doe"

    def test_year_suffix(self):
        generator = UsernameGenerator(taken("jdoe25", "jane.doe"))
        assert generator.generate_unique_username("jdoe25@school.edu", "Jane", "Doe") == "jane.doe25"

    def test_teacher_suffix(self):
        generator = UsernameGenerator(taken("jdoe25", "jane.doe", "jane.doe25"))
        username = generator.generate_unique_username("jdoe25@school.edu", "Jane", "Doe", role="teacher")
        assert username == "jane.doe.teacher"

    def test_numbered(self):
        generator = UsernameGenerator(taken("jdoe25", "jane.doe", "jane.doe25"))
        assert generator.generate_unique_username("jdoe25@school.edu", "Jane", "Doe") == "jane.doe2"

    def test_from_email(self):
        assert generate_username_from_email("maria.lopez@school.edu", taken()) == "maria.lopez"

    def test_from_email_without_last_name(self):
        assert generate_username_from_email("sam@school.edu", taken("sam")) == "sam.student"


class TestSuggestions:
    def test_available_only(self):
        suggestions = UsernameGenerator(taken("jane.doe")).generate_username_suggestions(
            "jdoe24@school.edu", "Jane", "Doe")
        assert "jane.doe" not in suggestions
        assert suggestions[:3] == ["jdoe24", "jane.doe24", "janedoe"]
        assert len(suggestions) == 5

    def test_role_specific_option(self):
        store = taken("jdoe24", "jane.doe", "jane.doe24", "janedoe", "jane_doe")
        suggestions = UsernameGenerator(store).generate_username_suggestions(
            "jdoe24@school.edu", "Jane", "Doe", role="teacher")
        assert suggestions[0] == "jane.doe.teacher"
        assert "doe.jane" in suggestions
