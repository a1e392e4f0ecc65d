import json

from app.extensions import db
from app.models.equipment import Material, MaterialReservation, STATUS_APPROVED
from app.services.errors import ValidationError
from app.services.reservation_service import get_material, lock_material, peak_approved_quantity
from app.services.tour_service import require_admin
from app.services.validation_service import session_management, log_event

MATERIAL_FIELDS = ('name', 'description', 'quantity_available', 'price', 'sizes')


def parse_sizes(raw):
    """
    Accepts a dict, a JSON object sent as text or the admin text format and
    returns {label: count} or None.
    Example:
        Input: "38:10, 39: 4"
        Output: {"38": 10, "39": 4}
    """
    if isinstance(raw, str) and raw.strip().startswith('{'):
        try:
            raw = json.loads(raw)
        except ValueError as e:
            raise ValidationError('Invalid sizes.', errors={'sizes': ['Sizes are not valid JSON.']}) from e
    if raw is None or raw == '' or raw == {}:
        return None
    if isinstance(raw, dict):
        items = raw.items()
    else:
        items = []
        for chunk in str(raw).split(','):
            if not chunk.strip():
                continue
            if ':' not in chunk:
                raise ValidationError('Invalid sizes.', errors={'sizes': [f"'{chunk.strip()}' is not label:count."]})
            label, count = chunk.split(':', 1)
            items.append((label, count))

    sizes = {}
    for label, count in items:
        label = str(label).strip()
        try:
            count = int(str(count).strip())
        except ValueError:
            raise ValidationError('Invalid sizes.', errors={'sizes': [f"Count for size {label} must be a number."]})
        if not label or count < 0:
            raise ValidationError('Invalid sizes.', errors={'sizes': [f"Size {label or '?'} needs a count of 0 or more."]})
        sizes[label] = count
    return sizes or None


def list_materials():
    return Material.query.order_by(Material.name.asc()).all()


def create_material(actor, ip_address=None, **values):
    require_admin(actor)
    values = {k: values.get(k) for k in MATERIAL_FIELDS}
    values['sizes'] = parse_sizes(values['sizes'])
    with session_management():
        material = Material(**values)
        db.session.add(material)
        db.session.flush()
        material_id = material.id
    log_event('Material Created', 'SUCCESS', {'material_id': material_id, 'name': values['name']},
              user_id=actor.id, ip_address=ip_address)
    return material


def _check_stock_edit(material_id, changes):
    """Stock may not drop below what approved reservations already hold."""
    errors = {}
    if changes.get('quantity_available') is not None:
        held = peak_approved_quantity(material_id)
        if changes['quantity_available'] < held:
            errors['quantity_available'] = [f"{held} units are already approved for overlapping dates."]
    if 'sizes' in changes:
        new_sizes = changes['sizes'] or {}
        reserved_sizes = db.session.query(MaterialReservation.size).filter(
            MaterialReservation.material_id == material_id,
            MaterialReservation.status == STATUS_APPROVED,
            MaterialReservation.size.isnot(None),
        ).distinct().all()
        for (size,) in reserved_sizes:
            held = peak_approved_quantity(material_id, size=size)
            if new_sizes.get(size, 0) < held:
                errors.setdefault('sizes', []).append(f"{held} units in size {size} are already approved.")
    if errors:
        raise ValidationError('Invalid material.', errors=errors)


def update_material(actor, material_id, ip_address=None, **values):
    require_admin(actor)
    changes = {key: parse_sizes(values[key]) if key == 'sizes' else values[key]
               for key in MATERIAL_FIELDS if key in values}
    with session_management():
        material = get_material(material_id)
        lock_material(material.id)
        _check_stock_edit(material.id, changes)
        for key, value in changes.items():
            setattr(material, key, value)
    log_event('Material Updated', 'SUCCESS', {'material_id': material_id},
              user_id=actor.id, ip_address=ip_address)
    return material


def delete_material(actor, material_id, ip_address=None):
    """Delete a material and every reservation filed against it."""
    require_admin(actor)
    with session_management():
        material = get_material(material_id)
        name = material.name
        MaterialReservation.query.filter_by(material_id=material.id).delete()
        db.session.delete(material)
    log_event('Material Deleted', 'SUCCESS', {'material_id': material_id, 'name': name},
              user_id=actor.id, ip_address=ip_address)
