from faceoff.app import db
from faceoff.time_utils import utcnow_naive, isoformat_or_none

MATCH_PENDING = 'pending'
MATCH_READY = 'ready'
MATCH_DECLINED = 'declined'
MATCH_COMPLETED = 'completed'

MATCH_STATUSES = (MATCH_PENDING, MATCH_READY, MATCH_DECLINED, MATCH_COMPLETED)

# Current status -> statuses it may move to. Terminal statuses have no entry.
MATCH_TRANSITIONS = {
    MATCH_PENDING: (MATCH_READY, MATCH_DECLINED),
    MATCH_READY: (MATCH_COMPLETED,),
}

# Scores are persisted as NUMERIC(10, 3).
SCORE_DECIMALS = 3


def statuses_leading_to(status):
    """Statuses from which a match may move to ``status``."""
    return sorted(
        current for current, successors in MATCH_TRANSITIONS.items()
        if status in successors
    )


def pick_winner(creator_id, creator_score, invited_id, invited_score):
    """Return the id with the strictly higher score, or None for a draw."""
    if creator_score is None or invited_score is None:
        return None
    if creator_score > invited_score:
        return creator_id
    if invited_score > creator_score:
        return invited_id
    return None


class User(db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    score = db.Column(db.Integer, default=0, nullable=False)
    created_at = db.Column(db.DateTime, default=lambda: utcnow_naive())

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'score': self.score,
            'createdAt': isoformat_or_none(self.created_at),
        }

    def to_public_dict(self):
        return {'id': self.id, 'username': self.username, 'score': self.score}


class Match(db.Model):
    __tablename__ = 'matches'

    id = db.Column(db.Integer, primary_key=True)
    creator_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    invited_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    creator_photo = db.Column(db.Text, nullable=False)  # base64
    invited_photo = db.Column(db.Text, nullable=True)  # base64, set on accept
    creator_score = db.Column(db.Numeric(10, 3, asdecimal=False), nullable=True)
    invited_score = db.Column(db.Numeric(10, 3, asdecimal=False), nullable=True)
    status = db.Column(db.String(20), default=MATCH_PENDING, nullable=False)
    created_at = db.Column(db.DateTime, default=lambda: utcnow_naive(), nullable=False)

    creator = db.relationship('User', foreign_keys=[creator_id])
    invited = db.relationship('User', foreign_keys=[invited_id])

    @property
    def winner_id(self):
        """Strictly higher score wins; equal scores are a draw (None)."""
        if self.status != MATCH_COMPLETED:
            return None
        return pick_winner(
            self.creator_id, self.creator_score, self.invited_id, self.invited_score,
        )

    def involves(self, user_id):
        return user_id in (self.creator_id, self.invited_id)

    def to_dict(self, include_photos=True):
        data = {
            'id': self.id,
            'creatorId': self.creator_id,
            'invitedId': self.invited_id,
            'creatorUsername': self.creator.username if self.creator else None,
            'invitedUsername': self.invited.username if self.invited else None,
            'creatorScore': self.creator_score,
            'invitedScore': self.invited_score,
            'winnerId': self.winner_id,
            'status': self.status,
            'createdAt': isoformat_or_none(self.created_at),
        }
        if include_photos:
            data['creatorPhoto'] = self.creator_photo
            data['invitedPhoto'] = self.invited_photo
        return data

    def to_participant_dict(self):
        """Full record once completed; photos and scores withheld before that."""
        if self.status == MATCH_COMPLETED:
            return self.to_dict()
        data = self.to_dict(include_photos=False)
        data['creatorScore'] = None
        data['invitedScore'] = None
        return data

    def to_event_dict(self):
        return self.to_dict(include_photos=False)


class Feedback(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    feedback = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, default=lambda: utcnow_naive(), nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'userId': self.user_id,
            'feedback': self.feedback,
            'createdAt': isoformat_or_none(self.created_at),
        }
