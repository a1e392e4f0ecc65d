from app.extensions import db, login_manager
from app.utils import utcnow, isoformat
from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash

ROLE_USER = 'user'
ROLE_ADMIN = 'admin'


@login_manager.user_loader
def load_user(user_id):
    return db.session.get(User, int(user_id))


class User(db.Model, UserMixin):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=False)
    email = db.Column(db.String(150), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(10), nullable=False, default=ROLE_USER)
    birth_date = db.Column(db.Date)
    parent_email = db.Column(db.String(150))
    profile_picture = db.Column(db.String(255))
    created_at = db.Column(db.DateTime, default=utcnow)

    # No delete cascade; rows leave through tour_service.leave so participant_count stays in step
    participations = db.relationship('Participant', backref='user', lazy='dynamic')
    reservations = db.relationship('MaterialReservation', backref='user', lazy='dynamic',
                                   foreign_keys='MaterialReservation.user_id', cascade='all, delete-orphan')

    __table_args__ = (
        db.CheckConstraint("role IN ('user', 'admin')", name='check_user_role'),
    )

    def __repr__(self):
        return f"User('{self.name}', '{self.email}', '{self.role}')"

    @property
    def is_admin(self):
        return self.role == ROLE_ADMIN

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'role': self.role,
            'profile_picture_url': self.profile_picture_url,
        }

    @property
    def profile_picture_url(self):
        if not self.profile_picture:
            return None
        return f"/uploads/{self.profile_picture}"


class ApiLog(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    timestamp = db.Column(db.DateTime, default=utcnow, index=True)
    event_type = db.Column(db.String(100), index=True)
    status = db.Column(db.String(50), index=True)
    details = db.Column(db.Text)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id', ondelete='SET NULL'), nullable=True)
    ip_address = db.Column(db.String(45))

    def to_dict(self):
        return {
            'id': self.id,
            'timestamp': isoformat(self.timestamp),
            'event_type': self.event_type,
            'status': self.status,
            'details': self.details,
            'user_id': self.user_id,
        }
