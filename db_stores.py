"""
DB-backed store classes for the Learning Profile service.

ProfileStoreDB, ProgressStoreDB and AssignmentStoreDB read and write through
database.get_db(), so they work with both SQLite and the PostgreSQL wrapper.
Any database failure surfaces as StoreError.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta
from functools import wraps
from typing import Any, Callable, Optional

from database import get_db
from learning_profile import Assignment, Contribution, Profile, ProgressSession
from scoring import ScoringResult

logger = logging.getLogger(__name__)

PROGRESS_TTL_DAYS = 7


class StoreError(Exception):
    """Raised when the backing database fails an operation."""


def store_operation(func: Callable) -> Callable:
    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except StoreError:
            raise
        except Exception as e:
            raise StoreError(f"{func.__qualname__} failed: {e}") from e
    return wrapper


def _now() -> str:
    return datetime.now().isoformat()


# ── Profiles ─────────────────────────────────────────────────────────


class ProfileStoreDB:
    """Completed learning profiles plus their respondent contributions."""

    @store_operation
    def create(self, profile: Profile, contribution_weight: float = 1.0,
               respondent_name: str = "") -> str:
        db = get_db()
        db.execute(
            "INSERT INTO profiles (id, child_name, grade, scores, personality_label, description, "
            "raw_responses, strengths, growth_areas, preferences, quiz_type, respondent_type, "
            "teacher_id, assignment_token, is_public, share_token, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (profile.id, profile.child_name, profile.grade, json.dumps(profile.scores),
             profile.personality_label, profile.description, json.dumps(profile.raw_responses),
             json.dumps(profile.strengths), json.dumps(profile.growth_areas),
             json.dumps(profile.preferences), profile.quiz_type, profile.respondent_type,
             profile.teacher_id, profile.assignment_token, int(profile.is_public),
             profile.share_token, profile.created_at, profile.updated_at),
        )
        self._insert_contribution(db, Contribution(
            profile_id=profile.id,
            quiz_type=profile.quiz_type,
            respondent_type=profile.respondent_type,
            respondent_name=respondent_name,
            raw_responses=profile.raw_responses,
            scores=profile.scores,
            weight=contribution_weight,
            created_at=profile.created_at,
        ))
        db.commit()
        logger.info("Created profile %s (%s)", profile.id, profile.personality_label)
        return profile.id

    @store_operation
    def get(self, profile_id: str) -> Optional[Profile]:
        row = get_db().execute("SELECT * FROM profiles WHERE id=?", (profile_id,)).fetchone()
        return self._row_to_profile(row) if row else None

    @store_operation
    def get_by_share_token(self, token: str) -> Optional[Profile]:
        """Only public profiles are reachable by share token."""
        row = get_db().execute(
            "SELECT * FROM profiles WHERE share_token=? AND is_public=1", (token,),
        ).fetchone()
        return self._row_to_profile(row) if row else None

    @store_operation
    def set_privacy(self, profile_id: str, is_public: bool) -> bool:
        db = get_db()
        cur = db.execute(
            "UPDATE profiles SET is_public=?, updated_at=? WHERE id=?",
            (int(is_public), _now(), profile_id),
        )
        db.commit()
        return cur.rowcount > 0

    @store_operation
    def list_for_teacher(self, teacher_id: int) -> list[Profile]:
        rows = get_db().execute(
            "SELECT * FROM profiles WHERE teacher_id=? ORDER BY created_at DESC", (teacher_id,),
        ).fetchall()
        return [self._row_to_profile(r) for r in rows]

    @store_operation
    def delete(self, profile_id: str) -> bool:
        db = get_db()
        db.execute("DELETE FROM profile_contributions WHERE profile_id=?", (profile_id,))
        cur = db.execute("DELETE FROM profiles WHERE id=?", (profile_id,))
        db.commit()
        return cur.rowcount > 0

    # Contributions

    @store_operation
    def add_contribution(self, contribution: Contribution) -> int:
        db = get_db()
        new_id = self._insert_contribution(db, contribution)
        db.commit()
        return new_id

    @store_operation
    def contributions(self, profile_id: str) -> list[Contribution]:
        rows = get_db().execute(
            "SELECT * FROM profile_contributions WHERE profile_id=? ORDER BY id", (profile_id,),
        ).fetchall()
        return [
            Contribution(
                id=r["id"], profile_id=r["profile_id"], quiz_type=r["quiz_type"],
                respondent_type=r["respondent_type"], respondent_name=r["respondent_name"],
                raw_responses=json.loads(r["raw_responses"]), scores=json.loads(r["scores"]),
                weight=r["weight"], created_at=r["created_at"],
            )
            for r in rows
        ]

    @store_operation
    def update_scoring(self, profile_id: str, result: ScoringResult) -> None:
        """Overwrite the derived fields after contributions change."""
        db = get_db()
        db.execute(
            "UPDATE profiles SET scores=?, personality_label=?, description=?, strengths=?, "
            "growth_areas=?, preferences=?, updated_at=? WHERE id=?",
            (json.dumps(result.scores), result.personality_label, result.description,
             json.dumps(result.strengths), json.dumps(result.growth_areas),
             json.dumps(result.preferences), _now(), profile_id),
        )
        db.commit()

    @staticmethod
    def _insert_contribution(db, c: Contribution) -> int:
        cur = db.execute(
            "INSERT INTO profile_contributions (profile_id, quiz_type, respondent_type, "
            "respondent_name, raw_responses, scores, weight, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            (c.profile_id, c.quiz_type, c.respondent_type, c.respondent_name,
             json.dumps(c.raw_responses), json.dumps(c.scores), c.weight, c.created_at),
        )
        return cur.lastrowid

    @staticmethod
    def _row_to_profile(r) -> Profile:
        return Profile(
            id=r["id"], child_name=r["child_name"], grade=r["grade"],
            scores=json.loads(r["scores"]), personality_label=r["personality_label"],
            description=r["description"], raw_responses=json.loads(r["raw_responses"]),
            strengths=json.loads(r["strengths"]), growth_areas=json.loads(r["growth_areas"]),
            preferences=json.loads(r["preferences"]), quiz_type=r["quiz_type"],
            respondent_type=r["respondent_type"], teacher_id=r["teacher_id"],
            assignment_token=r["assignment_token"], is_public=bool(r["is_public"]),
            share_token=r["share_token"], created_at=r["created_at"],
            updated_at=r["updated_at"],
        )


# ── Assessment progress ──────────────────────────────────────────────


class ProgressStoreDB:
    """Partial answers keyed by session id; rows expire after ttl_days."""

    def __init__(self, ttl_days: int = PROGRESS_TTL_DAYS):
        self.ttl_days = ttl_days

    @store_operation
    def save(self, session: ProgressSession) -> ProgressSession:
        now = datetime.now()
        session.updated_at = now.isoformat()
        session.expires_at = (now + timedelta(days=self.ttl_days)).isoformat()
        db = get_db()
        db.execute(
            "INSERT INTO assessment_progress (session_id, child_name, grade, responses, "
            "current_question, parent_email, assignment_token, expires_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?) "
            "ON CONFLICT(session_id) DO UPDATE SET child_name=excluded.child_name, "
            "grade=excluded.grade, responses=excluded.responses, "
            "current_question=excluded.current_question, parent_email=excluded.parent_email, "
            "assignment_token=excluded.assignment_token, expires_at=excluded.expires_at, "
            "updated_at=excluded.updated_at",
            (session.session_id, session.child_name, session.grade, json.dumps(session.responses),
             session.current_question, session.parent_email, session.assignment_token,
             session.expires_at, session.updated_at),
        )
        db.commit()
        return session

    @store_operation
    def load(self, session_id: str | None = None,
             parent_email: str | None = None) -> Optional[ProgressSession]:
        """Fetch an unexpired session by id, else the newest for parent_email."""
        db = get_db()
        now = _now()
        if session_id:
            row = db.execute(
                "SELECT * FROM assessment_progress WHERE session_id=? AND expires_at > ?",
                (session_id, now),
            ).fetchone()
        elif parent_email:
            row = db.execute(
                "SELECT * FROM assessment_progress WHERE parent_email=? AND expires_at > ? "
                "ORDER BY updated_at DESC LIMIT 1",
                (parent_email, now),
            ).fetchone()
        else:
            return None
        return self._row_to_session(row) if row else None

    @store_operation
    def list_for_email(self, parent_email: str) -> list[ProgressSession]:
        rows = get_db().execute(
            "SELECT * FROM assessment_progress WHERE parent_email=? AND expires_at > ? "
            "ORDER BY updated_at DESC",
            (parent_email, _now()),
        ).fetchall()
        return [self._row_to_session(r) for r in rows]

    @store_operation
    def delete(self, session_id: str) -> bool:
        db = get_db()
        cur = db.execute("DELETE FROM assessment_progress WHERE session_id=?", (session_id,))
        db.commit()
        return cur.rowcount > 0

    @store_operation
    def purge_expired(self) -> int:
        db = get_db()
        cur = db.execute("DELETE FROM assessment_progress WHERE expires_at <= ?", (_now(),))
        db.commit()
        if cur.rowcount:
            logger.info("Purged %d expired progress sessions", cur.rowcount)
        return cur.rowcount

    @staticmethod
    def _row_to_session(r) -> ProgressSession:
        return ProgressSession(
            session_id=r["session_id"], child_name=r["child_name"], grade=r["grade"],
            responses=json.loads(r["responses"]), current_question=r["current_question"],
            parent_email=r["parent_email"], assignment_token=r["assignment_token"],
            expires_at=r["expires_at"], updated_at=r["updated_at"],
        )


# ── Teacher assignments ──────────────────────────────────────────────


class AssignmentStoreDB:
    """Assessment invitations issued by one teacher."""

    def __init__(self, teacher_id: int):
        self.teacher_id = teacher_id

    @store_operation
    def create(self, child_name: str, parent_email: str, grade: str = "") -> Assignment:
        assignment = Assignment(
            teacher_id=self.teacher_id, child_name=child_name,
            parent_email=parent_email, grade=grade,
        )
        db = get_db()
        cur = db.execute(
            "INSERT INTO assignments (teacher_id, child_name, grade, parent_email, "
            "assignment_token, status, created_at) VALUES (?, ?, ?, ?, ?, ?, ?)",
            (self.teacher_id, child_name, grade, parent_email, assignment.assignment_token,
             assignment.status, assignment.created_at),
        )
        db.commit()
        assignment.id = cur.lastrowid
        return assignment

    @store_operation
    def all(self, status: str | None = None) -> list[Assignment]:
        db = get_db()
        if status:
            rows = db.execute(
                "SELECT * FROM assignments WHERE teacher_id=? AND status=? ORDER BY created_at",
                (self.teacher_id, status),
            ).fetchall()
        else:
            rows = db.execute(
                "SELECT * FROM assignments WHERE teacher_id=? ORDER BY created_at",
                (self.teacher_id,),
            ).fetchall()
        return [self._row_to_assignment(r) for r in rows]

    @store_operation
    def mark_sent(self, assignment_ids: list[int]) -> None:
        if not assignment_ids:
            return
        db = get_db()
        now = _now()
        for aid in assignment_ids:
            db.execute(
                "UPDATE assignments SET status='sent', sent_at=? "
                "WHERE id=? AND teacher_id=? AND status != 'completed'",
                (now, aid, self.teacher_id),
            )
        db.commit()

    @staticmethod
    @store_operation
    def by_token(token: str) -> Optional[Assignment]:
        row = get_db().execute(
            "SELECT * FROM assignments WHERE assignment_token=?", (token,),
        ).fetchone()
        return AssignmentStoreDB._row_to_assignment(row) if row else None

    @staticmethod
    @store_operation
    def mark_completed(token: str, profile_id: str) -> Optional[Assignment]:
        db = get_db()
        cur = db.execute(
            "UPDATE assignments SET status='completed', profile_id=?, completed_at=? "
            "WHERE assignment_token=?",
            (profile_id, _now(), token),
        )
        db.commit()
        if not cur.rowcount:
            return None
        return AssignmentStoreDB.by_token(token)

    @staticmethod
    def _row_to_assignment(r) -> Assignment:
        return Assignment(
            id=r["id"], teacher_id=r["teacher_id"], child_name=r["child_name"],
            grade=r["grade"], parent_email=r["parent_email"],
            assignment_token=r["assignment_token"], status=r["status"],
            profile_id=r["profile_id"], created_at=r["created_at"],
            sent_at=r["sent_at"], completed_at=r["completed_at"],
        )
