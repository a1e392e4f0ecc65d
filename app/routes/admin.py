from functools import wraps

from flask import Blueprint, request, jsonify
from flask_login import login_required, current_user

from app.forms.forms import TourForm, MaterialForm, DecisionForm
from app.models.user import User, ApiLog
from app.models.tour import Tour
from app.models.equipment import Material, MaterialReservation, STATUS_PENDING
from app.services import tour_service, reservation_service, material_service
from app.services.validation_service import ensure_valid

admin = Blueprint('admin', __name__)


# --- Admin required decorator ---
def admin_required(f):
    """Route guard; the services check the role again where the write happens."""
    @wraps(f)
    @login_required
    def decorated_function(*args, **kwargs):
        if not current_user.is_admin:
            return jsonify({'success': False, 'error': 'permission_denied',
                            'message': 'Only administrators may do this.'}), 403
        return f(*args, **kwargs)
    return decorated_function


def _actor():
    return current_user._get_current_object()


@admin.route('/dashboard')
@admin_required
def dashboard():
    return jsonify({
        'tours': Tour.query.count(),
        'materials': Material.query.count(),
        'members': User.query.count(),
        'pending_reservations': MaterialReservation.query.filter_by(status=STATUS_PENDING).count(),
    })


@admin.route('/users')
@admin_required
def users_list():
    page = request.args.get('page', 1, type=int)
    users = User.query.order_by(User.name).paginate(page=page, per_page=15)
    return jsonify({'page': users.page, 'pages': users.pages, 'items': [u.to_dict() for u in users.items]})


@admin.route('/logs')
@admin_required
def logs():
    page = request.args.get('page', 1, type=int)
    entries = ApiLog.query.order_by(ApiLog.timestamp.desc()).paginate(page=page, per_page=50)
    return jsonify({'page': entries.page, 'pages': entries.pages, 'items': [e.to_dict() for e in entries.items]})


# --- Tour management ---
@admin.route('/tours')
@admin_required
def tours_list():
    return jsonify([t.to_dict() for t in tour_service.list_tours()])


@admin.route('/tour/new', methods=['POST'])
@admin_required
def add_tour():
    form = ensure_valid(TourForm())
    tour = tour_service.create_tour(_actor(), ip_address=request.remote_addr, **form.tour_values())
    return jsonify({'success': True, 'tour': tour.to_dict()}), 201


@admin.route('/tour/<int:tour_id>/edit', methods=['POST'])
@admin_required
def edit_tour(tour_id):
    tour_service.get_tour(tour_id)
    form = ensure_valid(TourForm())
    tour = tour_service.update_tour(_actor(), tour_id, ip_address=request.remote_addr, **form.tour_values())
    return jsonify({'success': True, 'tour': tour.to_dict()})


@admin.route('/tour/<int:tour_id>/delete', methods=['POST'])
@admin_required
def delete_tour(tour_id):
    tour_service.delete_tour(_actor(), tour_id, ip_address=request.remote_addr)
    return jsonify({'success': True})


@admin.route('/tour/<int:tour_id>/participants')
@admin_required
def tour_participants(tour_id):
    participants = tour_service.roster(_actor(), tour_id)
    return jsonify([p.to_dict(with_user=True) for p in participants])


# --- Material management ---
@admin.route('/materials')
@admin_required
def materials_list():
    return jsonify([m.to_dict() for m in material_service.list_materials()])


@admin.route('/material/new', methods=['POST'])
@admin_required
def add_material():
    form = ensure_valid(MaterialForm())
    material = material_service.create_material(
        _actor(), ip_address=request.remote_addr,
        name=form.name.data,
        description=form.description.data,
        quantity_available=form.quantity_available.data,
        price=form.price.data,
        sizes=form.sizes.data,
    )
    return jsonify({'success': True, 'material': material.to_dict()}), 201


@admin.route('/material/<int:material_id>/edit', methods=['POST'])
@admin_required
def edit_material(material_id):
    reservation_service.get_material(material_id)
    form = ensure_valid(MaterialForm())
    material = material_service.update_material(
        _actor(), material_id, ip_address=request.remote_addr,
        name=form.name.data,
        description=form.description.data,
        quantity_available=form.quantity_available.data,
        price=form.price.data,
        sizes=form.sizes.data,
    )
    return jsonify({'success': True, 'material': material.to_dict()})


@admin.route('/material/<int:material_id>/delete', methods=['POST'])
@admin_required
def delete_material(material_id):
    material_service.delete_material(_actor(), material_id, ip_address=request.remote_addr)
    return jsonify({'success': True})


# --- Reservation approval ---
@admin.route('/material/<int:material_id>/reservations')
@admin_required
def material_reservations(material_id):
    reservations = reservation_service.reservations_for_material(_actor(), material_id)
    return jsonify([r.to_dict() for r in reservations])


@admin.route('/reservation/<int:reservation_id>/decide', methods=['POST'])
@admin_required
def decide_reservation(reservation_id):
    form = ensure_valid(DecisionForm())
    reservation = reservation_service.decide(_actor(), reservation_id, form.status.data,
                                             ip_address=request.remote_addr)
    return jsonify({'success': True, 'reservation': reservation.to_dict()})
