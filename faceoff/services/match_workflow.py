"""Match lifecycle: create → respond → compare.

    pending ──decline──▶ declined
       │
     accept (photo)
       ▼
     ready ──compare──▶ completed
"""
import base64
import logging
import time

from faceoff.errors import Forbidden, InvalidRequest, NotFound
from faceoff.models import (
    MATCH_COMPLETED, MATCH_DECLINED, MATCH_PENDING, MATCH_READY, SCORE_DECIMALS,
    pick_winner,
)

logger = logging.getLogger(__name__)


def encode_photo(photo_bytes):
    return base64.b64encode(photo_bytes).decode('ascii')


class MatchWorkflow:
    def __init__(self, store, scorer, compare_delay=0.5, sleep=time.sleep,
                 leaderboard_size=10):
        self.store = store
        self.scorer = scorer
        self.compare_delay = compare_delay
        self.leaderboard_size = leaderboard_size
        self._sleep = sleep

    def _load_match(self, match_id):
        match = self.store.get_match(match_id)
        if not match:
            raise NotFound('Match not found')
        return match

    def create(self, requester, invited_username, photo_bytes):
        username = str(invited_username or '').strip()
        if not username:
            raise InvalidRequest('Invited username is required')
        if not photo_bytes:
            raise InvalidRequest('No photo uploaded')

        invited = self.store.get_user_by_username(username)
        if not invited:
            raise NotFound('Invited user not found')
        if invited.id == requester.id:
            raise InvalidRequest('You cannot challenge yourself')

        match = self.store.create_match(
            creator_id=requester.id,
            invited_id=invited.id,
            creator_photo=encode_photo(photo_bytes),
        )
        logger.info('Match %s created: %s invited %s', match.id, requester.id, invited.id)
        return match

    def respond(self, match_id, responder, accept, photo_bytes=None):
        match = self._load_match(match_id)
        if match.invited_id != responder.id:
            raise Forbidden()
        if match.status != MATCH_PENDING:
            raise InvalidRequest(f'Match is already {match.status}')

        if not accept:
            return self.store.update_match(
                match.id, {'status': MATCH_DECLINED}, expected_status=MATCH_PENDING,
            )

        if not photo_bytes:
            raise InvalidRequest('No photo uploaded')
        return self.store.update_match(
            match.id,
            {'invited_photo': encode_photo(photo_bytes), 'status': MATCH_READY},
            expected_status=MATCH_PENDING,
        )

    def compare(self, match_id, requester):
        match = self._load_match(match_id)
        if match.creator_id != requester.id:
            raise Forbidden()
        if match.status != MATCH_READY:
            raise InvalidRequest('Match not ready for comparison')

        logger.info('Comparing photos for match %s', match.id)
        creator_score = self.scorer.score_photo(match.creator_photo)
        # Scored one after the other, spaced by compare_delay.
        if self.compare_delay:
            self._sleep(self.compare_delay)
        invited_score = self.scorer.score_photo(match.invited_photo)

        # Decide the winner on the values that get stored.
        creator_score = round(creator_score, SCORE_DECIMALS)
        invited_score = round(invited_score, SCORE_DECIMALS)

        winner_id = pick_winner(
            match.creator_id, creator_score, match.invited_id, invited_score,
        )
        self.store.update_match(
            match.id,
            {
                'creator_score': creator_score,
                'invited_score': invited_score,
                'status': MATCH_COMPLETED,
            },
            expected_status=MATCH_READY,
            winner_id=winner_id,
        )
        logger.info(
            'Match %s completed: %.3f vs %.3f, winner=%s',
            match_id, creator_score, invited_score, winner_id,
        )
        return {'creatorScore': creator_score, 'invitedScore': invited_score}

    def list_for_user(self, user):
        return self.store.get_user_matches(user.id)

    def get_for_user(self, match_id, user):
        match = self._load_match(match_id)
        if not match.involves(user.id):
            raise Forbidden()
        return match

    def leaderboard(self):
        return self.store.get_leaderboard(limit=self.leaderboard_size)

    def submit_feedback(self, user, text, max_length=2000):
        cleaned = str(text or '').strip()
        if not cleaned:
            raise InvalidRequest('Feedback is required')
        if len(cleaned) > max_length:
            raise InvalidRequest(f'Feedback must be at most {max_length} characters')
        return self.store.save_feedback(user.id, cleaned)
