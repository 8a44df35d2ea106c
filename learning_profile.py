"""
Learning Profile data classes — profiles, respondent contributions,
in-progress assessment sessions, teacher assignments.

Persistence lives in db_stores.py; these are plain records plus the
JSON views returned by the API.
"""

from __future__ import annotations

import secrets
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any


def _now() -> str:
    return datetime.now().isoformat()


def new_share_token() -> str:
    return secrets.token_urlsafe(16)


@dataclass
class Profile:
    child_name: str
    grade: str
    scores: dict[str, float]
    personality_label: str
    description: str
    raw_responses: dict[str, Any]
    strengths: list[str] = field(default_factory=list)
    growth_areas: list[str] = field(default_factory=list)
    preferences: dict[str, Any] = field(default_factory=dict)
    quiz_type: str = "general"
    respondent_type: str = "parent"
    teacher_id: int | None = None
    assignment_token: str = ""
    is_public: bool = True
    share_token: str = field(default_factory=new_share_token)
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: str = field(default_factory=_now)
    updated_at: str = field(default_factory=_now)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def public_view(self) -> dict[str, Any]:
        """Fields shown to anonymous share-link viewers."""
        data = self.to_dict()
        for private in ("raw_responses", "teacher_id", "assignment_token"):
            data.pop(private, None)
        return data


@dataclass
class Contribution:
    profile_id: str
    quiz_type: str
    respondent_type: str
    raw_responses: dict[str, Any]
    scores: dict[str, float]
    weight: float
    respondent_name: str = ""
    id: int | None = None
    created_at: str = field(default_factory=_now)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class ProgressSession:
    session_id: str
    child_name: str
    grade: str
    responses: dict[str, Any] = field(default_factory=dict)
    current_question: int = 1
    parent_email: str | None = None
    assignment_token: str | None = None
    expires_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def summary(self, total_questions: int) -> dict[str, Any]:
        """Compact view used by cross-device recovery."""
        return {
            "session_id": self.session_id,
            "child_name": self.child_name,
            "grade": self.grade,
            "current_question": self.current_question,
            "total_questions": total_questions,
            "progress_percentage": round(self.current_question / total_questions * 100),
            "responses_count": len(self.responses),
            "last_saved": self.updated_at,
            "expires_at": self.expires_at,
            "assignment_token": self.assignment_token,
        }


@dataclass
class Assignment:
    teacher_id: int
    child_name: str
    parent_email: str
    grade: str = ""
    assignment_token: str = field(default_factory=lambda: secrets.token_hex(16))
    status: str = "pending"  # pending | sent | completed
    profile_id: str | None = None
    id: int | None = None
    created_at: str = field(default_factory=_now)
    sent_at: str = ""
    completed_at: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
