"""Tour participation gate and tour administration.

A member may join a tour while the roster is below ``participant_limit`` and
the registration deadline has not passed; leaving is always allowed. The
capacity check and the roster insert run in one transaction: the seat is
claimed with a conditional UPDATE on ``tour.participant_count`` so two joins
racing for the last seat cannot both succeed.
"""
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from app.extensions import db
from app.models.tour import Tour, Participant
from app.services.errors import (
    PermissionDenied, NotFound, CapacityError, DeadlineError, ConflictError, ValidationError
)
from app.services.validation_service import session_management, log_event
from app.utils import utcnow, month_bounds

JOINED = 'joined'
NOT_JOINED = 'not_joined'

ROSTER_LIMIT = 50

TOUR_FIELDS = (
    'title', 'location', 'description', 'start_date', 'end_date', 'registration_deadline',
    'participant_limit', 'duration', 'elevation_gain', 'fee', 'leader_id',
)


def require_admin(actor):
    if actor is None or not getattr(actor, 'is_admin', False):
        raise PermissionDenied('Only administrators may do this.')


def get_tour(tour_id):
    tour = db.session.get(Tour, tour_id)
    if tour is None:
        raise NotFound('Tour not found.')
    return tour


# --- Participation ---

def join(actor, tour_id, now=None, ip_address=None):
    now = now or utcnow()
    with session_management():
        tour = get_tour(tour_id)
        if Participant.query.filter_by(tour_id=tour.id, user_id=actor.id).first():
            raise ConflictError('You are already participating in this tour.', code='already_joined')
        if not tour.registration_open(now):
            raise DeadlineError('Registration for this tour is closed.')

        claimed = db.session.execute(
            update(Tour)
            .where(Tour.id == tour.id, Tour.participant_count < Tour.participant_limit)
            .values(participant_count=Tour.participant_count + 1)
            .execution_options(synchronize_session=False)
        )
        if claimed.rowcount != 1:
            raise CapacityError('This tour is full.', code='tour_full')

        participant = Participant(tour_id=tour.id, user_id=actor.id, joined_at=now)
        db.session.add(participant)
        try:
            db.session.flush()
        except IntegrityError as e:
            raise ConflictError('You are already participating in this tour.', code='already_joined') from e

    log_event('Tour Joined', 'SUCCESS', {'tour_id': tour_id}, user_id=actor.id, ip_address=ip_address)
    return participant


def leave(actor, tour_id, ip_address=None):
    """Leave a tour. There is no deadline on leaving."""
    with session_management():
        tour = get_tour(tour_id)
        deleted = Participant.query.filter_by(tour_id=tour.id, user_id=actor.id).delete()
        if not deleted:
            raise ConflictError('You are not participating in this tour.', code='not_joined')
        db.session.execute(
            update(Tour)
            .where(Tour.id == tour.id, Tour.participant_count > 0)
            .values(participant_count=Tour.participant_count - 1)
            .execution_options(synchronize_session=False)
        )

    log_event('Tour Left', 'SUCCESS', {'tour_id': tour_id}, user_id=actor.id, ip_address=ip_address)


def status(actor, tour_id):
    get_tour(tour_id)
    exists = Participant.query.filter_by(tour_id=tour_id, user_id=actor.id).first() is not None
    return JOINED if exists else NOT_JOINED


def participation_state(actor, tour, now=None):
    """Which action the tour page offers: joined, registration_closed, full or open."""
    now = now or utcnow()
    if actor is not None and status(actor, tour.id) == JOINED:
        return JOINED
    if not tour.registration_open(now):
        return 'registration_closed'
    if tour.is_full:
        return 'full'
    return 'open'


# --- Reads ---

def list_tours(upcoming_only=False, now=None):
    query = Tour.query
    if upcoming_only:
        query = query.filter(Tour.end_date >= (now or utcnow())).order_by(Tour.start_date.asc())
    else:
        query = query.order_by(Tour.start_date.desc())
    return query.all()


def tours_in_month(year, month):
    start, end = month_bounds(year, month)
    return Tour.query.filter(Tour.start_date <= end, Tour.end_date >= start) \
        .order_by(Tour.start_date.asc()).all()


def tours_for_user(user_id):
    return Tour.query.join(Participant, Participant.tour_id == Tour.id) \
        .filter(Participant.user_id == user_id) \
        .order_by(Tour.start_date.asc()).all()


def roster(actor, tour_id, limit=ROSTER_LIMIT):
    require_admin(actor)
    tour = get_tour(tour_id)
    return tour.participants.order_by(Participant.joined_at.asc()).limit(limit).all()


# --- Administration ---

def _check_tour_values(values):
    errors = {}
    if values['end_date'] < values['start_date']:
        errors['end_date'] = ['End date must be on or after the start date.']
    if values['registration_deadline'] > values['end_date']:
        errors['registration_deadline'] = ['Registration deadline must not be after the end date.']
    if values['participant_limit'] is None or values['participant_limit'] < 1:
        errors['participant_limit'] = ['Limit must be a positive number.']
    if errors:
        raise ValidationError('Invalid tour.', errors=errors)


def create_tour(actor, ip_address=None, **values):
    require_admin(actor)
    values = {k: values.get(k) for k in TOUR_FIELDS}
    if values['leader_id'] is None:
        values['leader_id'] = actor.id
    _check_tour_values(values)
    with session_management():
        tour = Tour(participant_count=0, **values)
        db.session.add(tour)
        db.session.flush()
        tour_id = tour.id
    log_event('Tour Created', 'SUCCESS', {'tour_id': tour_id, 'title': values['title']},
              user_id=actor.id, ip_address=ip_address)
    return tour


def update_tour(actor, tour_id, ip_address=None, **values):
    require_admin(actor)
    with session_management():
        tour = get_tour(tour_id)
        merged = {k: values.get(k, getattr(tour, k)) for k in TOUR_FIELDS}
        if merged['leader_id'] is None:
            merged['leader_id'] = tour.leader_id
        _check_tour_values(merged)
        if merged['participant_limit'] < tour.participant_count:
            raise ValidationError('Invalid tour.', errors={
                'participant_limit': [f"{tour.participant_count} members already joined this tour."]
            })
        for key, value in merged.items():
            setattr(tour, key, value)
        try:
            db.session.flush()
        except IntegrityError as e:
            # A join slipped in between the check and the flush
            raise ValidationError('Invalid tour.', errors={
                'participant_limit': ['Limit is below the current number of participants.']
            }) from e
    log_event('Tour Updated', 'SUCCESS', {'tour_id': tour_id}, user_id=actor.id, ip_address=ip_address)
    return tour


def delete_tour(actor, tour_id, ip_address=None):
    """Delete a tour together with its roster."""
    require_admin(actor)
    with session_management():
        tour = get_tour(tour_id)
        title = tour.title
        Participant.query.filter_by(tour_id=tour.id).delete()
        db.session.delete(tour)
    log_event('Tour Deleted', 'SUCCESS', {'tour_id': tour_id, 'title': title},
              user_id=actor.id, ip_address=ip_address)
