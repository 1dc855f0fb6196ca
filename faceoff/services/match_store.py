"""Persistence for users, matches and feedback.

Every mutating match write publishes an event through the notifier handed in
at construction; the store never reaches for a global broadcaster.
"""
import logging

from faceoff.errors import InvalidRequest, MatchStateConflict, NotFound
from faceoff.models import (
    Feedback, Match, User, MATCH_COMPLETED, MATCH_PENDING, MATCH_READY,
    MATCH_STATUSES, MATCH_TRANSITIONS, statuses_leading_to,
)
from faceoff.time_utils import utcnow_naive

logger = logging.getLogger(__name__)

_MUTABLE_MATCH_FIELDS = {'status', 'invited_photo', 'creator_score', 'invited_score'}


class MatchStore:
    def __init__(self, session, notifier=None):
        self.session = session
        self.notifier = notifier

    # ── Users ────────────────────────────────────────────────────────────

    def get_user(self, user_id):
        return self.session.get(User, user_id)

    def get_user_by_username(self, username):
        return self.session.query(User).filter(User.username == username).first()

    def create_user(self, username, password_hash):
        user = User(username=username, password_hash=password_hash, score=0)
        self.session.add(user)
        self.session.commit()
        return user

    def increment_user_score(self, user_id, commit=True):
        updated = self.session.query(User).filter(User.id == user_id).update(
            {User.score: User.score + 1}, synchronize_session=False,
        )
        if commit:
            self.session.commit()
        return bool(updated)

    def delete_user(self, user_id):
        """Remove a user along with their matches and feedback."""
        user = self.get_user(user_id)
        if not user:
            raise NotFound('User not found')
        self.delete_user_matches(user_id, commit=False)
        self.session.query(Feedback).filter(Feedback.user_id == user_id).delete(
            synchronize_session=False,
        )
        self.session.delete(user)
        self.session.commit()

    def get_leaderboard(self, limit=10):
        return self.session.query(User).order_by(
            User.score.desc(), User.id.asc(),
        ).limit(limit).all()

    # ── Matches ──────────────────────────────────────────────────────────

    def create_match(self, creator_id, invited_id, creator_photo):
        match = Match(
            creator_id=creator_id,
            invited_id=invited_id,
            creator_photo=creator_photo,
            status=MATCH_PENDING,
            created_at=utcnow_naive(),
        )
        self.session.add(match)
        self.session.commit()
        self._notify('match_created', match)
        return match

    def get_match(self, match_id):
        return self.session.get(Match, match_id)

    def update_match(self, match_id, changes, expected_status=None, winner_id=None):
        """Apply ``changes`` to one match in a single guarded statement.

        The row is only touched while its current status may legally move to
        ``changes['status']`` (or, without a status change, while it is not
        terminal), narrowed to ``expected_status`` when given. When
        ``winner_id`` is given their score is incremented in the same
        transaction, so a lost race never credits anyone.
        """
        unknown = set(changes) - _MUTABLE_MATCH_FIELDS
        if unknown:
            raise ValueError(f'Cannot update match fields: {", ".join(sorted(unknown))}')

        allowed_from = self._allowed_source_statuses(changes)
        if expected_status:
            if expected_status not in allowed_from:
                raise MatchStateConflict(
                    f'Match cannot move from {expected_status} to {changes.get("status")}'
                )
            allowed_from = [expected_status]

        query = self.session.query(Match).filter(
            Match.id == match_id, Match.status.in_(allowed_from),
        )

        values = {getattr(Match, field): value for field, value in changes.items()}
        updated = query.update(values, synchronize_session=False)
        if not updated:
            self.session.rollback()
            current = self.get_match(match_id)
            if current is None:
                raise NotFound('Match not found')
            raise MatchStateConflict(f'Match is already {current.status}')

        if winner_id is not None:
            self.increment_user_score(winner_id, commit=False)
        self.session.commit()

        match = self.get_match(match_id)
        self._notify('match_updated', match)
        return match

    @staticmethod
    def _allowed_source_statuses(changes):
        status = changes.get('status')
        if 'invited_photo' in changes and status != MATCH_READY:
            raise InvalidRequest('The invited photo is only set when a match becomes ready')
        if {'creator_score', 'invited_score'} & set(changes) and status != MATCH_COMPLETED:
            raise InvalidRequest('Scores are only set when a match completes')
        if status is None:
            return sorted(MATCH_TRANSITIONS)

        if status not in MATCH_STATUSES:
            raise InvalidRequest(f'Unknown match status: {status}')
        if status == MATCH_READY and not changes.get('invited_photo'):
            raise InvalidRequest('A ready match needs the invited photo')
        if status == MATCH_COMPLETED and (
            changes.get('creator_score') is None or changes.get('invited_score') is None
        ):
            raise InvalidRequest('A completed match needs both scores')
        return statuses_leading_to(status)

    def get_user_matches(self, user_id):
        return self.session.query(Match).filter(
            (Match.creator_id == user_id) | (Match.invited_id == user_id)
        ).order_by(Match.created_at.desc(), Match.id.desc()).all()

    def delete_user_matches(self, user_id, commit=True):
        deleted = self.session.query(Match).filter(
            (Match.creator_id == user_id) | (Match.invited_id == user_id)
        ).delete(synchronize_session=False)
        if commit:
            self.session.commit()
        return deleted

    # ── Feedback ─────────────────────────────────────────────────────────

    def save_feedback(self, user_id, text):
        entry = Feedback(user_id=user_id, feedback=text, created_at=utcnow_naive())
        self.session.add(entry)
        self.session.commit()
        return entry

    def _notify(self, event_type, match):
        if self.notifier is None:
            return
        try:
            self.notifier({'type': event_type, 'match': match.to_event_dict()})
        except Exception:
            # fire-and-forget, the write is already committed
            logger.exception('Failed to publish %s for match %s', event_type, match.id)
