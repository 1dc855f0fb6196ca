"""Leaderboard and feedback routes."""
from flask import Blueprint, current_app, jsonify, request

from faceoff.auth_utils import login_required

community_bp = Blueprint('community', __name__)


@community_bp.route('/leaderboard', methods=['GET'])
def get_leaderboard():
    users = current_app.extensions['match_workflow'].leaderboard()
    return jsonify([user.to_public_dict() for user in users])


@community_bp.route('/feedback', methods=['POST'])
@login_required
def submit_feedback():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'message': 'Feedback is required'}), 400

    current_app.extensions['match_workflow'].submit_feedback(
        request.current_user,
        data.get('feedback'),
        max_length=current_app.config.get('FEEDBACK_MAX_LENGTH', 2000),
    )
    return jsonify({'message': 'Feedback submitted successfully'})
