"""Match routes: invite, respond, compare and read-only views."""
from flask import Blueprint, current_app, jsonify, request

from faceoff.auth_utils import login_required
from faceoff.uploads import parse_photo_upload

matches_bp = Blueprint('matches', __name__)


def _workflow():
    return current_app.extensions['match_workflow']


def _coerce_bool(raw_value):
    if isinstance(raw_value, bool):
        return raw_value
    if isinstance(raw_value, (int, float)):
        return raw_value == 1
    if raw_value is None:
        return False
    return str(raw_value).strip().lower() in {'1', 'true', 'yes', 'on'}


@matches_bp.route('', methods=['POST'])
@login_required
def create_match():
    """Invite another user; the creator's photo travels with the invite."""
    photo_bytes = parse_photo_upload()
    if photo_bytes is None:
        return jsonify({'message': 'No photo uploaded'}), 400

    match = _workflow().create(
        request.current_user,
        request.form.get('invitedUsername'),
        photo_bytes,
    )
    return jsonify(match.to_dict())


@matches_bp.route('/<int:match_id>/respond', methods=['POST'])
@login_required
def respond_to_match(match_id):
    accept = _coerce_bool(request.form.get('accept'))
    # A declined invite ignores any attached file.
    photo_bytes = parse_photo_upload() if accept else None
    match = _workflow().respond(
        match_id, request.current_user, accept, photo_bytes=photo_bytes,
    )
    return jsonify({'status': match.status})


@matches_bp.route('/<int:match_id>/compare', methods=['POST'])
@login_required
def compare_match(match_id):
    result = _workflow().compare(match_id, request.current_user)
    return jsonify(result)


@matches_bp.route('', methods=['GET'])
@login_required
def list_matches():
    matches = _workflow().list_for_user(request.current_user)
    return jsonify([match.to_participant_dict() for match in matches])


@matches_bp.route('/<int:match_id>', methods=['GET'])
@login_required
def get_match(match_id):
    match = _workflow().get_for_user(match_id, request.current_user)
    return jsonify(match.to_participant_dict())
