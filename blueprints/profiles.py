"""Learning profile routes — submit answers, read, share, privacy, extra respondents."""

from __future__ import annotations

import logging
from typing import Any

from flask import Blueprint, jsonify

from assessment_config import QUIZ_TYPES, RESPONDENT_TYPES
from audit import log_event
from db_stores import AssignmentStoreDB, ProfileStoreDB, ProgressStoreDB
from helpers import absolute_url, current_user_id, json_body, missing_fields, scoring_config, teacher_required
from learning_profile import Contribution, Profile
from scoring import calculate_scores, consolidate_scores, describe_scores, extract_preferences, score_responses

logger = logging.getLogger(__name__)

bp = Blueprint("profiles", __name__)


@bp.record_once
def _exempt_api_from_csrf(state: Any) -> None:
    csrf = state.app.extensions.get("csrf")
    if csrf:
        csrf.exempt(bp)


def _respondent_fields(data: dict[str, Any]) -> tuple[str, str] | str:
    """(quiz_type, respondent_type) from the payload, or an error message."""
    quiz_type = data.get("quiz_type") or "general"
    respondent_type = data.get("respondent_type") or "parent"
    if quiz_type not in QUIZ_TYPES:
        return f"Unknown quiz_type: {quiz_type}"
    if respondent_type not in RESPONDENT_TYPES:
        return f"Unknown respondent_type: {respondent_type}"
    return quiz_type, respondent_type


def _links(profile: Profile) -> dict[str, str]:
    return {
        "share_url": absolute_url(f"/share/{profile.share_token}"),
        "results_url": absolute_url(f"/results/{profile.id}"),
    }


@bp.route("/api/profiles", methods=["POST"])
def api_create_profile():
    data = json_body()
    if data is None:
        return jsonify({"error": "Request body must be a JSON object"}), 400

    missing = missing_fields(data, "child_name", "responses")
    if missing:
        return jsonify({"error": f"Missing required fields: {', '.join(missing)}"}), 400
    responses = data["responses"]
    if not isinstance(responses, dict):
        return jsonify({"error": "responses must be an object of question id to answer"}), 400

    fields = _respondent_fields(data)
    if isinstance(fields, str):
        return jsonify({"error": fields}), 400
    is_public = data.get("is_public", True)
    if not isinstance(is_public, bool):
        return jsonify({"error": "is_public must be a boolean"}), 400

    quiz_type, respondent_type = fields

    assignment = None
    token = data.get("assignment_token") or ""
    if token:
        assignment = AssignmentStoreDB.by_token(token)
        if assignment is None:
            return jsonify({"error": "Unknown assignment token"}), 400

    result = score_responses(responses, scoring_config())
    profile = Profile(
        child_name=str(data["child_name"]).strip(),
        grade=str(data.get("grade") or ""),
        scores=result.scores,
        personality_label=result.personality_label,
        description=result.description,
        raw_responses={str(k): v for k, v in responses.items()},
        strengths=result.strengths,
        growth_areas=result.growth_areas,
        preferences=result.preferences,
        quiz_type=quiz_type,
        respondent_type=respondent_type,
        teacher_id=assignment.teacher_id if assignment else None,
        assignment_token=token,
        is_public=is_public,
    )

    store = ProfileStoreDB()
    store.create(profile, QUIZ_TYPES[quiz_type], str(data.get("respondent_name") or ""))
    if assignment:
        AssignmentStoreDB.mark_completed(token, profile.id)
    if data.get("session_id"):
        ProgressStoreDB().delete(str(data["session_id"]))

    return jsonify({"profile": profile.to_dict(), **_links(profile)}), 201


@bp.route("/api/profiles/<profile_id>")
def api_get_profile(profile_id: str):
    store = ProfileStoreDB()
    profile = store.get(profile_id)
    if not profile:
        return jsonify({"error": "Profile not found"}), 404
    return jsonify({
        "profile": profile.to_dict(),
        "contributions": [c.to_dict() for c in store.contributions(profile_id)],
        **_links(profile),
    })


@bp.route("/api/profiles/<profile_id>/privacy", methods=["PATCH"])
def api_profile_privacy(profile_id: str):
    data = json_body()
    if data is None or not isinstance(data.get("is_public"), bool):
        return jsonify({"error": "is_public must be a boolean"}), 400

    is_public = data["is_public"]
    if not ProfileStoreDB().set_privacy(profile_id, is_public):
        return jsonify({"error": "Profile not found"}), 404

    log_event("profile_privacy", current_user_id(), f"profile={profile_id} is_public={is_public}")
    return jsonify({"success": True, "is_public": is_public})


@bp.route("/api/profiles/<profile_id>/contributions", methods=["POST"])
@teacher_required
def api_add_contribution(profile_id: str):
    """Fold another respondent's answers into the consolidated profile."""
    store = ProfileStoreDB()
    if not store.get(profile_id):
        return jsonify({"error": "Profile not found"}), 404

    data = json_body()
    if data is None or not isinstance(data.get("responses"), dict):
        return jsonify({"error": "responses must be an object of question id to answer"}), 400
    fields = _respondent_fields(data)
    if isinstance(fields, str):
        return jsonify({"error": fields}), 400
    quiz_type, respondent_type = fields

    config = scoring_config()
    responses = {str(k): v for k, v in data["responses"].items()}
    store.add_contribution(Contribution(
        profile_id=profile_id,
        quiz_type=quiz_type,
        respondent_type=respondent_type,
        respondent_name=str(data.get("respondent_name") or ""),
        raw_responses=responses,
        scores=calculate_scores(responses, config),
        weight=QUIZ_TYPES[quiz_type],
    ))

    contributions = store.contributions(profile_id)
    consolidated = consolidate_scores(
        ((calculate_scores(c.raw_responses, config), c.weight) for c in contributions),
        config.categories,
    )
    preferences: dict[str, Any] = {}
    for c in reversed(contributions):
        preferences.update(extract_preferences(c.raw_responses))
    store.update_scoring(profile_id, describe_scores(consolidated, config, preferences))

    logger.info("Profile %s now has %d contributions", profile_id, len(contributions))
    return jsonify({
        "profile": store.get(profile_id).to_dict(),
        "contributions": [c.to_dict() for c in contributions],
    }), 201


@bp.route("/api/profiles/<profile_id>", methods=["DELETE"])
def api_delete_profile(profile_id: str):
    store = ProfileStoreDB()
    profile = store.get(profile_id)
    if not profile:
        return jsonify({"error": "Profile not found"}), 404
    if profile.teacher_id is not None and profile.teacher_id != current_user_id():
        return jsonify({"error": "Not allowed"}), 403
    store.delete(profile_id)
    log_event("profile_delete", current_user_id(), f"profile={profile_id}")
    return jsonify({"success": True})


@bp.route("/api/share/<token>")
def api_shared_profile(token: str):
    profile = ProfileStoreDB().get_by_share_token(token)
    if not profile:
        return jsonify({"error": "Profile not found"}), 404
    return jsonify({"profile": profile.public_view()})
