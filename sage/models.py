"""
Request schemas for the Sage API.

Payloads arrive in the client's camelCase wire format and are validated
into snake_case dicts that the storage layer persists. Responses go back
out through `serialize()`.
"""
from datetime import datetime
from typing import List, Optional, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


Role = Literal["student", "teacher", "admin"]
AiPermission = Literal["full", "limited", "none"]
AssignmentStatus = Literal["active", "completed", "overdue"]
SessionStatus = Literal["draft", "submitted", "graded"]


class SageModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    def to_record(self, exclude_unset=False) -> dict:
        return self.model_dump(exclude_unset=exclude_unset)


# ============ Users ============

class UserCreate(SageModel):
    username: Optional[str] = None
    password: str = Field(min_length=6)
    role: Role = "student"
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    email: str
    department: Optional[str] = None
    grade: Optional[str] = None

    @field_validator("email")
    @classmethod
    def _email_shape(cls, value):
        value = value.strip().lower()
        if "@" not in value or value.startswith("@") or value.endswith("@"):
            raise ValueError("invalid email address")
        return value


class LoginRequest(SageModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class ChangePasswordRequest(SageModel):
    current_password: str
    new_password: str = Field(min_length=6)


# ============ Assignments ============

class AssignmentCreate(SageModel):
    title: str = Field(min_length=1)
    description: str = ""
    classroom_id: Optional[int] = None
    classroom_ids: List[int] = []
    due_date: Optional[datetime] = None
    status: AssignmentStatus = "active"
    ai_permissions: AiPermission = "full"
    allow_brainstorming: bool = True
    allow_outlining: bool = True
    allow_grammar_check: bool = True
    allow_research_help: bool = True
    allow_copy_paste: bool = False


class AssignmentUpdate(SageModel):
    title: Optional[str] = None
    description: Optional[str] = None
    classroom_id: Optional[int] = None
    classroom_ids: Optional[List[int]] = None
    due_date: Optional[datetime] = None
    status: Optional[AssignmentStatus] = None
    ai_permissions: Optional[AiPermission] = None
    allow_brainstorming: Optional[bool] = None
    allow_outlining: Optional[bool] = None
    allow_grammar_check: Optional[bool] = None
    allow_research_help: Optional[bool] = None
    allow_copy_paste: Optional[bool] = None


# ============ Writing sessions ============

class PastedContent(SageModel):
    text: str
    start_index: int = Field(ge=0)
    end_index: int = Field(ge=0)
    timestamp: datetime = Field(default_factory=datetime.now)

    @model_validator(mode="after")
    def _ordered(self):
        if self.start_index > self.end_index:
            raise ValueError("startIndex must not exceed endIndex")
        return self


class WritingSessionCreate(SageModel):
    title: str = "Untitled"
    assignment_id: Optional[int] = None
    content: str = ""
    pasted_content: List[PastedContent] = []


class WritingSessionUpdate(SageModel):
    title: Optional[str] = None
    content: Optional[str] = None


class GradeRequest(SageModel):
    grade: str = Field(min_length=1, max_length=20)
    feedback: str = ""


class InlineCommentCreate(SageModel):
    start_index: int = Field(ge=0)
    end_index: int = Field(ge=0)
    highlighted_text: str = ""
    comment: str = Field(min_length=1)

    @model_validator(mode="after")
    def _ordered(self):
        if self.start_index > self.end_index:
            raise ValueError("startIndex must not exceed endIndex")
        return self


# ============ AI assistant ============

class ChatRequest(SageModel):
    prompt: str = Field(min_length=1)
    session_id: Optional[int] = None


class AiInteractionCreate(SageModel):
    session_id: Optional[int] = None
    prompt: str
    response: str
    is_restricted: bool = False
    category: str = "general"


class CitationRequest(SageModel):
    type: Literal["book", "journal", "website", "newspaper"] = "book"
    title: str = Field(min_length=1)
    author: str = Field(min_length=1)
    publication_date: str = ""
    publisher: Optional[str] = None
    url: Optional[str] = None
    access_date: Optional[str] = None
    journal: Optional[str] = None
    volume: Optional[str] = None
    issue: Optional[str] = None
    pages: Optional[str] = None
    style: Literal["apa", "mla", "chicago"] = "apa"


# ============ Classrooms ============

class ClassroomCreate(SageModel):
    name: str = Field(min_length=1)
    subject: str = Field(min_length=1)
    grade_level: Optional[str] = None
    class_size: int = Field(default=30, ge=1)
    description: Optional[str] = None


class ClassroomUpdate(SageModel):
    name: Optional[str] = None
    subject: Optional[str] = None
    grade_level: Optional[str] = None
    class_size: Optional[int] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None


# ============ Messages & feedback ============

class MessageCreate(SageModel):
    receiver_id: int
    subject: str = Field(min_length=1)
    content: str = Field(min_length=1)


class FeedbackCreate(SageModel):
    type: Literal["bug", "feature", "general", "content"] = "general"
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    category: Optional[str] = None
    priority: Literal["low", "medium", "high"] = "medium"
    rating: Optional[int] = Field(default=None, ge=1, le=5)
    context_type: Optional[str] = None
    context_id: Optional[int] = None
    user_agent: Optional[str] = None
    url: Optional[str] = None


class FeedbackUpdate(SageModel):
    status: Optional[Literal["open", "in_progress", "resolved", "closed"]] = None
    admin_response: Optional[str] = None
    priority: Optional[Literal["low", "medium", "high"]] = None


# ============ Goals & profiles ============

class WritingGoalCreate(SageModel):
    type: Literal["daily", "weekly", "assignment"] = "weekly"
    target_words: int = Field(ge=1)
    start_date: datetime = Field(default_factory=datetime.now)
    end_date: Optional[datetime] = None
    classroom_id: Optional[int] = None


class WritingGoalUpdate(SageModel):
    target_words: Optional[int] = Field(default=None, ge=1)
    end_date: Optional[datetime] = None
    is_completed: Optional[bool] = None


class StudentProfileUpdate(SageModel):
    writing_level: Optional[Literal["beginner", "intermediate", "advanced"]] = None
    strengths: Optional[List[str]] = None
    weaknesses: Optional[List[str]] = None
    common_mistakes: Optional[List[str]] = None
    improvement_areas: Optional[List[str]] = None


# ============ Serialization ============

HIDDEN_FIELDS = {"password_hash"}


def serialize(record):
    """Convert a storage record (or list of records) into camelCase JSON-ready data."""
    if record is None:
        return None
    if isinstance(record, list):
        return [serialize(r) for r in record]
    if isinstance(record, datetime):
        return record.isoformat()
    if not isinstance(record, dict):
        return record
    out = {}
    for key, value in record.items():
        if key in HIDDEN_FIELDS:
            continue
        if isinstance(value, (dict, list, datetime)):
            value = serialize(value)
        out[to_camel(key)] = value
    return out


def count_words(text: str) -> int:
    """Whitespace-split word count, empty tokens dropped."""
    if not text:
        return 0
    return len([w for w in text.strip().split() if w])
