from flask import Blueprint, request, jsonify, current_app
from flask_login import login_user, logout_user, current_user, login_required
from flask_wtf import FlaskForm
from wtforms import StringField, PasswordField, BooleanField
from wtforms.fields import DateField
from wtforms.validators import DataRequired, Email, Length, Optional

from app.extensions import db
from app.models.user import User, ROLE_ADMIN, ROLE_USER
from app.services.errors import ValidationError, ConflictError
from app.services.validation_service import ensure_valid, validate_registration, session_management, log_event
from app.utils import utcnow

auth = Blueprint('auth', __name__)


# --- Registration form ---
class RegistrationForm(FlaskForm):
    name = StringField('Name', validators=[DataRequired(message="This field is required.")])
    email = StringField('E-mail', validators=[DataRequired(message="This field is required."), Email(message="Please enter a valid e-mail.")])
    password = PasswordField('Password', validators=[DataRequired(message="This field is required."), Length(min=6, message="Password must be at least 6 characters.")])
    birth_date = DateField('Date of birth', format='%Y-%m-%d', validators=[DataRequired(message="Please enter a valid date of birth.")])
    parent_email = StringField('Parent e-mail', validators=[Optional(), Email(message="Please enter a valid parent email.")])


class LoginForm(FlaskForm):
    email = StringField('E-mail', validators=[DataRequired(), Email()])
    password = PasswordField('Password', validators=[DataRequired()])
    remember = BooleanField('Remember me')


# --- Routes ---
@auth.route('/register', methods=['POST'])
def register():
    form = ensure_valid(RegistrationForm())

    result = validate_registration(form.birth_date.data, form.parent_email.data, utcnow().date())
    if not result.ok:
        raise ValidationError('Invalid registration.', errors=result.errors)

    email = form.email.data.strip().lower()
    if User.query.filter_by(email=email).first():
        raise ConflictError('This e-mail is already registered.', code='email_taken')

    role = ROLE_ADMIN if email in current_app.config.get('ADMIN_EMAILS', []) else ROLE_USER
    with session_management():
        user = User(
            name=form.name.data.strip(),
            email=email,
            role=role,
            birth_date=form.birth_date.data,
            parent_email=form.parent_email.data or None,
        )
        user.set_password(form.password.data)
        db.session.add(user)

    log_event('Registration', 'SUCCESS', {'email': email, 'role': role},
              user_id=user.id, ip_address=request.remote_addr)
    return jsonify({'success': True, 'user': user.to_dict()}), 201


@auth.route('/login', methods=['POST'])
def login():
    form = ensure_valid(LoginForm())
    user = User.query.filter_by(email=form.email.data.strip().lower()).first()

    if user and user.check_password(form.password.data):
        login_user(user, remember=form.remember.data)
        return jsonify({'success': True, 'user': user.to_dict()})

    log_event('Login', 'FAILED', {'email': form.email.data}, ip_address=request.remote_addr)
    return jsonify({'success': False, 'error': 'invalid_credentials',
                    'message': 'Login failed. Check your e-mail and password.'}), 401


@auth.route('/logout', methods=['POST'])
@login_required
def logout():
    logout_user()
    return jsonify({'success': True})


@auth.route('/me')
@login_required
def me():
    return jsonify(current_user.to_dict())
