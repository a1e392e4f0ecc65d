from app.extensions import db
from app.utils import utcnow, isoformat


class Tour(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    location = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=False)
    start_date = db.Column(db.DateTime, nullable=False, index=True)
    end_date = db.Column(db.DateTime, nullable=False)
    registration_deadline = db.Column(db.DateTime, nullable=False)
    participant_limit = db.Column(db.Integer, nullable=False)
    # Mirrors count(participants); only ever changed by a conditional UPDATE
    participant_count = db.Column(db.Integer, nullable=False, default=0)
    duration = db.Column(db.String(50), nullable=False)
    elevation_gain = db.Column(db.Integer, nullable=False, default=0)
    fee = db.Column(db.Float, nullable=False, default=0.0)
    leader_id = db.Column(db.Integer, db.ForeignKey('user.id', ondelete='SET NULL'), nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow)

    leader = db.relationship('User', foreign_keys=[leader_id])
    participants = db.relationship('Participant', backref='tour', lazy='dynamic', cascade='all, delete-orphan')

    __table_args__ = (
        db.CheckConstraint('participant_limit > 0', name='check_tour_participant_limit_positive'),
        db.CheckConstraint('participant_count >= 0', name='check_tour_participant_count_non_negative'),
        db.CheckConstraint('participant_count <= participant_limit', name='check_tour_participant_count_lte_limit'),
        db.CheckConstraint('elevation_gain >= 0', name='check_tour_elevation_gain_non_negative'),
        db.CheckConstraint('fee >= 0', name='check_tour_fee_non_negative'),
    )

    def __repr__(self):
        return f"Tour('{self.title}', {self.participant_count}/{self.participant_limit})"

    @property
    def is_full(self):
        return self.participant_count >= self.participant_limit

    def registration_open(self, now):
        return now <= self.registration_deadline

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'location': self.location,
            'description': self.description,
            'start_date': isoformat(self.start_date),
            'end_date': isoformat(self.end_date),
            'registration_deadline': isoformat(self.registration_deadline),
            'participant_limit': self.participant_limit,
            'participant_count': self.participant_count,
            'duration': self.duration,
            'elevation_gain': self.elevation_gain,
            'fee': self.fee,
            'leader_id': self.leader_id,
        }


class Participant(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    tour_id = db.Column(db.Integer, db.ForeignKey('tour.id', ondelete='CASCADE'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    joined_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    __table_args__ = (db.UniqueConstraint('tour_id', 'user_id', name='_tour_participant_uc'),)

    def __repr__(self):
        return f"Participant(Tour: {self.tour_id}, User: {self.user_id})"

    def to_dict(self, with_user=False):
        data = {
            'user_id': self.user_id,
            'tour_id': self.tour_id,
            'joined_at': isoformat(self.joined_at),
        }
        if with_user:
            data['user'] = self.user.to_dict()
        return data
