from app.extensions import db
from app.utils import utcnow, isoformat

STATUS_PENDING = 'pending'
STATUS_APPROVED = 'approved'
STATUS_REJECTED = 'rejected'
DECISIONS = (STATUS_APPROVED, STATUS_REJECTED)


class Material(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text)
    quantity_available = db.Column(db.Integer, nullable=False, default=0)
    price = db.Column(db.Float, nullable=False, default=0.0)
    # size label -> count, e.g. {"42": 10}
    sizes = db.Column(db.JSON, nullable=True)
    # Bumped on every approval and stock edit so they serialize on this row
    version = db.Column(db.Integer, nullable=False, default=1)

    reservations = db.relationship('MaterialReservation', backref='material', lazy='dynamic',
                                   cascade='all, delete-orphan')

    __table_args__ = (
        db.CheckConstraint('quantity_available >= 0', name='check_material_quantity_non_negative'),
        db.CheckConstraint('price >= 0', name='check_material_price_non_negative'),
    )

    def __repr__(self):
        return f"Material('{self.name}', {self.quantity_available})"

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'quantity_available': self.quantity_available,
            'price': self.price,
            'sizes': self.sizes,
        }


class MaterialReservation(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id', ondelete='CASCADE'), nullable=False, index=True)
    material_id = db.Column(db.Integer, db.ForeignKey('material.id', ondelete='CASCADE'), nullable=False)
    quantity_reserved = db.Column(db.Integer, nullable=False)
    size = db.Column(db.String(20))
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)
    status = db.Column(db.String(10), nullable=False, default=STATUS_PENDING)
    reservation_date = db.Column(db.DateTime, nullable=False, default=utcnow)
    decided_at = db.Column(db.DateTime)
    decided_by_id = db.Column(db.Integer, db.ForeignKey('user.id', ondelete='SET NULL'))

    decided_by = db.relationship('User', foreign_keys=[decided_by_id])

    __table_args__ = (
        db.CheckConstraint('quantity_reserved >= 1', name='check_reservation_quantity_positive'),
        db.CheckConstraint('end_date >= start_date', name='check_reservation_dates_ordered'),
        db.CheckConstraint("status IN ('pending', 'approved', 'rejected')", name='check_reservation_status'),
        # Admin view: all reservations of one material, newest first
        db.Index('ix_material_reservation_material_date', 'material_id', 'reservation_date'),
    )

    def __repr__(self):
        return f"MaterialReservation(User: {self.user_id}, Material: {self.material_id}, Status: {self.status})"

    @property
    def is_terminal(self):
        return self.status in DECISIONS

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'material_id': self.material_id,
            'quantity_reserved': self.quantity_reserved,
            'size': self.size,
            'start_date': isoformat(self.start_date),
            'end_date': isoformat(self.end_date),
            'status': self.status,
            'reservation_date': isoformat(self.reservation_date),
            'decided_at': isoformat(self.decided_at),
        }
