"""Equipment reservation workflow.

Members file requests (``pending``); an administrator moves each request to
``approved`` or ``rejected`` exactly once. ``Material.quantity_available`` is
the size of the pool and is never decremented: the units in use for a date
range are the approved reservations overlapping it, and approval refuses to
push that total past the pool.
"""
from sqlalchemy import update, select, func

from app.extensions import db
from app.models.equipment import (
    Material, MaterialReservation, STATUS_PENDING, STATUS_APPROVED, DECISIONS
)
from app.services.errors import NotFound, ValidationError, ConflictError, CapacityError
from app.services.notification_service import notify_reservation_pending, notify_reservation_decided
from app.services.tour_service import require_admin
from app.services.validation_service import session_management, log_event
from app.utils import utcnow


def get_material(material_id):
    material = db.session.get(Material, material_id)
    if material is None:
        raise NotFound('Material not found.')
    return material


def get_reservation(reservation_id):
    reservation = db.session.get(MaterialReservation, reservation_id)
    if reservation is None:
        raise NotFound('Reservation not found.')
    return reservation


def approved_quantity(material_id, start_date, end_date, size=None):
    """Units held by approved reservations whose dates overlap [start_date, end_date], optionally of one size."""
    query = select(func.coalesce(func.sum(MaterialReservation.quantity_reserved), 0)).where(
        MaterialReservation.material_id == material_id,
        MaterialReservation.status == STATUS_APPROVED,
        MaterialReservation.start_date <= end_date,
        MaterialReservation.end_date >= start_date,
    )
    if size is not None:
        query = query.where(MaterialReservation.size == size)
    return db.session.execute(query).scalar_one()


def peak_approved_quantity(material_id, size=None):
    """
    Largest approved_quantity over the date range of any approved reservation
    of the material. Stock edits may not go below it.
    """
    query = MaterialReservation.query.filter_by(material_id=material_id, status=STATUS_APPROVED)
    if size is not None:
        query = query.filter_by(size=size)
    return max(
        (approved_quantity(material_id, r.start_date, r.end_date, size=size) for r in query.all()),
        default=0,
    )


def lock_material(material_id):
    """Bumps the version so the row's write lock is held until commit; returns (pool, sizes)."""
    db.session.execute(
        update(Material)
        .where(Material.id == material_id)
        .values(version=Material.version + 1)
        .execution_options(synchronize_session=False)
    )
    return db.session.execute(
        select(Material.quantity_available, Material.sizes)
        .where(Material.id == material_id)
        .with_for_update()
    ).one()


def availability(material, start_date, end_date):
    return max(material.quantity_available - approved_quantity(material.id, start_date, end_date), 0)


def _check_request(material, quantity, start_date, end_date, size):
    errors = {}
    if quantity is None or quantity < 1:
        errors['quantity'] = ['Quantity must be at least 1.']
    elif quantity > material.quantity_available:
        errors['quantity'] = [f"Only {material.quantity_available} available."]
    if start_date is None:
        errors['start_date'] = ['Please enter a valid start date.']
    if end_date is None:
        errors['end_date'] = ['Please enter a valid end date.']
    elif start_date is not None and end_date < start_date:
        errors['end_date'] = ['End date must be on or after the start date.']
    if size:
        sizes = material.sizes or {}
        if size not in sizes:
            errors['size'] = [f"Size {size} does not exist for {material.name}."]
        elif quantity and quantity > sizes[size]:
            errors['size'] = [f"Only {sizes[size]} available in size {size}."]
    if errors:
        raise ValidationError('Invalid reservation request.', errors=errors)


def request_reservation(actor, material_id, quantity, start_date, end_date, size=None, now=None, ip_address=None):
    now = now or utcnow()
    with session_management():
        material = get_material(material_id)
        _check_request(material, quantity, start_date, end_date, size or None)
        reservation = MaterialReservation(
            user_id=actor.id,
            material_id=material.id,
            quantity_reserved=quantity,
            size=size or None,
            start_date=start_date,
            end_date=end_date,
            status=STATUS_PENDING,
            reservation_date=now,
        )
        db.session.add(reservation)
        db.session.flush()
        reservation_id = reservation.id

    log_event('Reservation Requested', 'SUCCESS',
              {'reservation_id': reservation_id, 'material_id': material_id, 'quantity': quantity},
              user_id=actor.id, ip_address=ip_address)
    notify_reservation_pending(reservation)
    return reservation


def decide(actor, reservation_id, decision, now=None, ip_address=None):
    require_admin(actor)
    if decision not in DECISIONS:
        raise ValidationError('Invalid decision.', errors={'status': ["Must be 'approved' or 'rejected'."]})
    now = now or utcnow()

    with session_management():
        reservation = get_reservation(reservation_id)
        if reservation.is_terminal:
            raise ConflictError(f"This reservation was already {reservation.status}.", code='already_decided')

        if decision == STATUS_APPROVED:
            pool, sizes = lock_material(reservation.material_id)
            in_use = approved_quantity(reservation.material_id, reservation.start_date, reservation.end_date)
            if in_use + reservation.quantity_reserved > pool:
                raise CapacityError(
                    f"Only {max(pool - in_use, 0)} units are free for these dates.",
                    code='insufficient_stock'
                )
            if reservation.size:
                size_pool = (sizes or {}).get(reservation.size, 0)
                size_in_use = approved_quantity(reservation.material_id, reservation.start_date,
                                                reservation.end_date, size=reservation.size)
                if size_in_use + reservation.quantity_reserved > size_pool:
                    raise CapacityError(
                        f"Only {max(size_pool - size_in_use, 0)} units in size {reservation.size} are free for these dates.",
                        code='insufficient_stock'
                    )

        changed = db.session.execute(
            update(MaterialReservation)
            .where(MaterialReservation.id == reservation.id, MaterialReservation.status == STATUS_PENDING)
            .values(status=decision, decided_at=now, decided_by_id=actor.id)
            .execution_options(synchronize_session=False)
        )
        if changed.rowcount != 1:
            raise ConflictError('This reservation has already been decided.', code='already_decided')

    log_event('Reservation Decided', decision.upper(), {'reservation_id': reservation_id},
              user_id=actor.id, ip_address=ip_address)
    notify_reservation_decided(reservation)
    return reservation


def reservations_for_material(actor, material_id):
    """Every request for one material, newest first (served by ix_material_reservation_material_date)."""
    require_admin(actor)
    get_material(material_id)
    return MaterialReservation.query.filter_by(material_id=material_id) \
        .order_by(MaterialReservation.reservation_date.desc()).all()


def reservations_for_user(user_id):
    return MaterialReservation.query.filter_by(user_id=user_id) \
        .order_by(MaterialReservation.reservation_date.desc()).all()


def pending_reservations():
    return MaterialReservation.query.filter_by(status=STATUS_PENDING) \
        .order_by(MaterialReservation.reservation_date.asc()).all()
