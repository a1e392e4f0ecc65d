import datetime

import pytest

from app.extensions import db, mail
from app.models.equipment import Material, MaterialReservation, STATUS_PENDING, STATUS_APPROVED, STATUS_REJECTED
from app.services import reservation_service, material_service
from app.services.errors import ValidationError, ConflictError, CapacityError, PermissionDenied, NotFound
from conftest import NOW, make_material

JULY_1 = datetime.date(2030, 7, 1)
JULY_3 = datetime.date(2030, 7, 3)


def test_request_then_approve_then_reject_is_refused(admin, alice):
    material = make_material(quantity_available=5)
    reservation = reservation_service.request_reservation(alice, material.id, 3, JULY_1, JULY_3, now=NOW)
    assert reservation.status == STATUS_PENDING
    assert reservation.reservation_date == NOW

    reservation_service.decide(admin, reservation.id, STATUS_APPROVED, now=NOW)
    assert reservation.status == STATUS_APPROVED
    assert reservation.decided_by_id == admin.id

    with pytest.raises(ConflictError) as exc:
        reservation_service.decide(admin, reservation.id, STATUS_REJECTED, now=NOW)
    assert exc.value.code == 'already_decided'
    assert db.session.get(MaterialReservation, reservation.id).status == STATUS_APPROVED


def test_rejected_is_terminal_too(admin, alice):
    material = make_material()
    reservation = reservation_service.request_reservation(alice, material.id, 1, JULY_1, JULY_1, now=NOW)
    reservation_service.decide(admin, reservation.id, STATUS_REJECTED, now=NOW)

    with pytest.raises(ConflictError):
        reservation_service.decide(admin, reservation.id, STATUS_APPROVED, now=NOW)
    assert reservation.status == STATUS_REJECTED


@pytest.mark.parametrize('quantity, start, end, field', [
    (0, JULY_1, JULY_3, 'quantity'),
    (-2, JULY_1, JULY_3, 'quantity'),
    (6, JULY_1, JULY_3, 'quantity'),
    (1, JULY_3, JULY_1, 'end_date'),
])
def test_invalid_requests_write_nothing(alice, quantity, start, end, field):
    material = make_material(quantity_available=5)
    with pytest.raises(ValidationError) as exc:
        reservation_service.request_reservation(alice, material.id, quantity, start, end, now=NOW)
    assert field in exc.value.errors
    assert MaterialReservation.query.count() == 0


def test_sized_material(alice):
    shoes = make_material(name='Climbing Shoes', quantity_available=20, sizes={'42': 2, '43': 10})

    with pytest.raises(ValidationError) as exc:
        reservation_service.request_reservation(alice, shoes.id, 1, JULY_1, JULY_3, size='50', now=NOW)
    assert 'size' in exc.value.errors

    with pytest.raises(ValidationError):
        reservation_service.request_reservation(alice, shoes.id, 3, JULY_1, JULY_3, size='42', now=NOW)

    reservation = reservation_service.request_reservation(alice, shoes.id, 2, JULY_1, JULY_3, size='42', now=NOW)
    assert reservation.size == '42'


def test_request_for_unknown_material(alice):
    with pytest.raises(NotFound):
        reservation_service.request_reservation(alice, 404, 1, JULY_1, JULY_3, now=NOW)


def test_only_admins_decide(alice, bob):
    material = make_material()
    reservation = reservation_service.request_reservation(alice, material.id, 1, JULY_1, JULY_3, now=NOW)
    with pytest.raises(PermissionDenied):
        reservation_service.decide(bob, reservation.id, STATUS_APPROVED, now=NOW)
    assert reservation.status == STATUS_PENDING


def test_decision_must_be_terminal_status(admin, alice):
    material = make_material()
    reservation = reservation_service.request_reservation(alice, material.id, 1, JULY_1, JULY_3, now=NOW)
    with pytest.raises(ValidationError):
        reservation_service.decide(admin, reservation.id, STATUS_PENDING, now=NOW)


def test_approval_respects_overlapping_stock(admin, alice, bob):
    material = make_material(quantity_available=5)
    first = reservation_service.request_reservation(alice, material.id, 3, JULY_1, JULY_3, now=NOW)
    second = reservation_service.request_reservation(bob, material.id, 3, datetime.date(2030, 7, 3),
                                                     datetime.date(2030, 7, 5), now=NOW)
    later = reservation_service.request_reservation(bob, material.id, 3, datetime.date(2030, 7, 10),
                                                    datetime.date(2030, 7, 12), now=NOW)

    reservation_service.decide(admin, first.id, STATUS_APPROVED, now=NOW)

    with pytest.raises(CapacityError) as exc:
        reservation_service.decide(admin, second.id, STATUS_APPROVED, now=NOW)
    assert exc.value.code == 'insufficient_stock'
    assert second.status == STATUS_PENDING

    reservation_service.decide(admin, later.id, STATUS_APPROVED, now=NOW)
    assert later.status == STATUS_APPROVED

    # The pool itself is never decremented
    assert db.session.get(Material, material.id).quantity_available == 5
    assert reservation_service.availability(material, JULY_1, JULY_3) == 2
    assert reservation_service.availability(material, datetime.date(2030, 7, 20), datetime.date(2030, 7, 21)) == 5

    # Rejecting never needs stock
    reservation_service.decide(admin, second.id, STATUS_REJECTED, now=NOW)
    assert second.status == STATUS_REJECTED


def test_notifications_are_sent(admin, alice):
    material = make_material()
    with mail.record_messages() as outbox:
        reservation = reservation_service.request_reservation(alice, material.id, 1, JULY_1, JULY_3, now=NOW)
        reservation_service.decide(admin, reservation.id, STATUS_APPROVED, now=NOW)

    assert [m.subject for m in outbox] == ['Reservation request sent', 'Reservation approved']
    assert outbox[0].recipients == ['alice@example.com']


def test_admin_and_member_reads(admin, alice, bob):
    material = make_material()
    other = make_material(name='Helmet')
    a = reservation_service.request_reservation(alice, material.id, 1, JULY_1, JULY_3, now=NOW)
    b = reservation_service.request_reservation(bob, material.id, 1, JULY_1, JULY_3, now=NOW + datetime.timedelta(hours=1))
    reservation_service.request_reservation(bob, other.id, 1, JULY_1, JULY_3, now=NOW)

    assert [r.id for r in reservation_service.reservations_for_material(admin, material.id)] == [b.id, a.id]
    assert [r.id for r in reservation_service.reservations_for_user(alice.id)] == [a.id]
    with pytest.raises(PermissionDenied):
        reservation_service.reservations_for_material(alice, material.id)
    assert len(reservation_service.pending_reservations()) == 3


def test_material_crud(admin, alice):
    with pytest.raises(PermissionDenied):
        material_service.create_material(alice, name='Crampons', quantity_available=4, price=7)

    crampons = material_service.create_material(admin, name='Crampons', description='12-point', quantity_available=4,
                                                price=7, sizes='S:2, L:2')
    assert crampons.sizes == {'S': 2, 'L': 2}

    material_service.update_material(admin, crampons.id, quantity_available=6, sizes='')
    assert crampons.quantity_available == 6
    assert crampons.sizes is None

    reservation = reservation_service.request_reservation(alice, crampons.id, 1, JULY_1, JULY_3, now=NOW)
    reservation_id = reservation.id
    material_service.delete_material(admin, crampons.id)
    assert db.session.get(MaterialReservation, reservation_id) is None
    assert [m.name for m in material_service.list_materials()] == []


@pytest.mark.parametrize('raw, expected', [
    (None, None),
    ('', None),
    ({'38': '3'}, {'38': 3}),
    ('38:10, 39: 4', {'38': 10, '39': 4}),
    ('{"38": 10, "39": 4}', {'38': 10, '39': 4}),
])
def test_parse_sizes(ctx, raw, expected):
    assert material_service.parse_sizes(raw) == expected


@pytest.mark.parametrize('raw', ['38', '38:x', '38:-1', '{"38": 10', '{"38": "x"}', ['38:10']])
def test_parse_sizes_rejects(ctx, raw):
    with pytest.raises(ValidationError):
        material_service.parse_sizes(raw)


def test_size_count_limits_approvals(admin, alice, bob):
    shoes = make_material(name='Climbing Shoes', quantity_available=20, sizes={'42': 2, '43': 10})
    first = reservation_service.request_reservation(alice, shoes.id, 2, JULY_1, JULY_3, size='42', now=NOW)
    second = reservation_service.request_reservation(bob, shoes.id, 2, JULY_1, JULY_3, size='42', now=NOW)
    other_size = reservation_service.request_reservation(bob, shoes.id, 2, JULY_1, JULY_3, size='43', now=NOW)

    reservation_service.decide(admin, first.id, STATUS_APPROVED, now=NOW)
    with pytest.raises(CapacityError) as exc:
        reservation_service.decide(admin, second.id, STATUS_APPROVED, now=NOW)
    assert exc.value.code == 'insufficient_stock'
    assert second.status == STATUS_PENDING

    reservation_service.decide(admin, other_size.id, STATUS_APPROVED, now=NOW)
    assert reservation_service.approved_quantity(shoes.id, JULY_1, JULY_3, size='42') == 2


def test_stock_cannot_drop_below_approved(admin, alice):
    rope = make_material(quantity_available=5)
    reservation = reservation_service.request_reservation(alice, rope.id, 5, JULY_1, JULY_3, now=NOW)
    reservation_service.decide(admin, reservation.id, STATUS_APPROVED, now=NOW)

    with pytest.raises(ValidationError) as exc:
        material_service.update_material(admin, rope.id, quantity_available=1)
    assert 'quantity_available' in exc.value.errors
    assert db.session.get(Material, rope.id).quantity_available == 5

    material_service.update_material(admin, rope.id, quantity_available=5, name='Climbing Rope 60m')
    assert rope.name == 'Climbing Rope 60m'


def test_size_count_cannot_drop_below_approved(admin, alice):
    shoes = make_material(name='Climbing Shoes', quantity_available=20, sizes={'42': 3})
    reservation = reservation_service.request_reservation(alice, shoes.id, 3, JULY_1, JULY_3, size='42', now=NOW)
    reservation_service.decide(admin, reservation.id, STATUS_APPROVED, now=NOW)

    for sizes in ('42:2', '43:10'):
        with pytest.raises(ValidationError) as exc:
            material_service.update_material(admin, shoes.id, sizes=sizes)
        assert 'sizes' in exc.value.errors
    assert db.session.get(Material, shoes.id).sizes == {'42': 3}

    material_service.update_material(admin, shoes.id, sizes='42:3, 43:10')
    assert shoes.sizes == {'42': 3, '43': 10}
