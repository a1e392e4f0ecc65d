from datetime import date

from flask import Blueprint, request, jsonify, current_app, send_from_directory
from flask_login import login_required, current_user

from app.forms.forms import ReservationForm, PostForm, CommentForm, ProfileForm
from app.services import tour_service, reservation_service, material_service, community_service
from app.services.errors import ValidationError
from app.services.storage_service import save_profile_picture
from app.services.validation_service import ensure_valid, session_management
from app.utils import utcnow

main = Blueprint('main', __name__)


def _actor():
    return current_user._get_current_object()


def _date_arg(name):
    value = request.args.get(name)
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        raise ValidationError('Invalid query.', errors={name: ['Expected a date as YYYY-MM-DD.']})


@main.route('/health')
def health():
    return jsonify({'message': 'Alpine Connect API is running'})


# --- TOURS ---
@main.route('/tours')
@login_required
def tours():
    upcoming = request.args.get('upcoming', '0') in ('1', 'true')
    return jsonify([t.to_dict() for t in tour_service.list_tours(upcoming_only=upcoming)])


@main.route('/tours/<int:tour_id>')
@login_required
def tour_detail(tour_id):
    tour = tour_service.get_tour(tour_id)
    data = tour.to_dict()
    data['leader'] = tour.leader.to_dict() if tour.leader else None
    data['participation'] = tour_service.participation_state(_actor(), tour, utcnow())
    return jsonify(data)


@main.route('/tours/<int:tour_id>/status')
@login_required
def tour_status(tour_id):
    return jsonify({'tour_id': tour_id, 'status': tour_service.status(_actor(), tour_id)})


@main.route('/tours/<int:tour_id>/join', methods=['POST'])
@login_required
def join_tour(tour_id):
    participant = tour_service.join(_actor(), tour_id, ip_address=request.remote_addr)
    tour = tour_service.get_tour(tour_id)
    return jsonify({
        'success': True,
        'message': f'You have successfully joined the "{tour.title}" tour.',
        'participant': participant.to_dict(),
    }), 201


@main.route('/tours/<int:tour_id>/leave', methods=['POST'])
@login_required
def leave_tour(tour_id):
    tour_service.leave(_actor(), tour_id, ip_address=request.remote_addr)
    return jsonify({'success': True, 'message': 'You have left the tour.'})


@main.route('/my-tours')
@login_required
def my_tours():
    return jsonify([t.to_dict() for t in tour_service.tours_for_user(current_user.id)])


@main.route('/calendar')
@login_required
def calendar():
    today = utcnow().date()
    year = request.args.get('year', default=today.year, type=int)
    month = request.args.get('month', default=today.month, type=int)
    if not 1 <= month <= 12:
        raise ValidationError('Invalid query.', errors={'month': ['Month must be between 1 and 12.']})
    return jsonify({
        'year': year,
        'month': month,
        'tours': [t.to_dict() for t in tour_service.tours_in_month(year, month)],
    })


# --- MATERIAL ---
@main.route('/materials')
@login_required
def materials():
    return jsonify([m.to_dict() for m in material_service.list_materials()])


@main.route('/materials/<int:material_id>/availability')
@login_required
def material_availability(material_id):
    material = reservation_service.get_material(material_id)
    start_date, end_date = _date_arg('start_date'), _date_arg('end_date')
    return jsonify({
        'material_id': material.id,
        'start_date': start_date.isoformat(),
        'end_date': end_date.isoformat(),
        'available': reservation_service.availability(material, start_date, end_date),
    })


@main.route('/materials/<int:material_id>/reservations', methods=['POST'])
@login_required
def request_reservation(material_id):
    form = ensure_valid(ReservationForm())
    reservation = reservation_service.request_reservation(
        _actor(), material_id,
        quantity=form.quantity.data,
        start_date=form.start_date.data,
        end_date=form.end_date.data,
        size=form.size.data,
        ip_address=request.remote_addr,
    )
    return jsonify({
        'success': True,
        'message': f'Your request for {reservation.material.name} has been sent for approval.',
        'reservation': reservation.to_dict(),
    }), 201


@main.route('/my-reservations')
@login_required
def my_reservations():
    return jsonify([r.to_dict() for r in reservation_service.reservations_for_user(current_user.id)])


# --- COMMUNITY ---
@main.route('/posts', methods=['GET', 'POST'])
@login_required
def posts():
    if request.method == 'POST':
        form = ensure_valid(PostForm())
        post = community_service.create_post(_actor(), form.content.data, color=form.color.data)
        return jsonify({'success': True, 'post': post.to_dict()}), 201
    return jsonify([p.to_dict() for p in community_service.list_posts()])


@main.route('/posts/<int:post_id>')
@login_required
def post_detail(post_id):
    return jsonify(community_service.get_post(post_id).to_dict())


@main.route('/posts/<int:post_id>/comments', methods=['GET', 'POST'])
@login_required
def comments(post_id):
    if request.method == 'POST':
        form = ensure_valid(CommentForm())
        comment = community_service.add_comment(_actor(), post_id, form.content.data)
        return jsonify({'success': True, 'comment': comment.to_dict()}), 201
    return jsonify([c.to_dict() for c in community_service.list_comments(post_id)])


@main.route('/documents', methods=['GET', 'POST'])
@login_required
def documents():
    if request.method == 'POST':
        file = request.files.get('file')
        if file is None:
            raise ValidationError('Invalid upload.', errors={'file': ['Please select a file to upload.']})
        document = community_service.upload_document(_actor(), file, ip_address=request.remote_addr)
        return jsonify({'success': True, 'message': f'{document.name} has been uploaded.',
                        'document': document.to_dict()}), 201
    return jsonify([d.to_dict() for d in community_service.list_documents()])


@main.route('/documents/<int:document_id>', methods=['DELETE'])
@login_required
def delete_document(document_id):
    community_service.delete_document(_actor(), document_id, ip_address=request.remote_addr)
    return jsonify({'success': True})


@main.route('/uploads/<path:filename>')
@login_required
def uploaded_file(filename):
    return send_from_directory(current_app.config['UPLOAD_FOLDER'], filename)


# --- PROFILE ---
@main.route('/profile', methods=['GET', 'POST'])
@login_required
def profile():
    if request.method == 'POST':
        form = ensure_valid(ProfileForm())
        user = _actor()
        picture = request.files.get('picture')
        with session_management():
            user.name = form.name.data.strip()
            if picture:
                user.profile_picture = save_profile_picture(picture, user.id)
    data = current_user.to_dict()
    data['tours'] = [t.to_dict() for t in tour_service.tours_for_user(current_user.id)]
    return jsonify(data)
