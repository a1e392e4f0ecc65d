import json
from collections import namedtuple
from contextlib import contextmanager

from flask import current_app
from sqlalchemy.exc import OperationalError

from app.extensions import db
from app.models.user import ApiLog
from app.services.errors import ValidationError, TransportError
from app.utils import age_on

PARENT_EMAIL_AGE = 14

ValidationResult = namedtuple('ValidationResult', ['ok', 'errors'])


def log_event(event_type, status, details, user_id=None, ip_address=None):
    """Central place for writing audit entries to ApiLog."""
    try:
        log_entry = ApiLog(
            event_type=event_type,
            status=status,
            details=json.dumps(details, ensure_ascii=False, default=str),
            user_id=user_id,
            ip_address=ip_address
        )
        db.session.add(log_entry)
        db.session.commit()
    except Exception:
        current_app.logger.exception("Could not write audit log entry %s", event_type)
        db.session.rollback()


@contextmanager
def session_management():
    """Commit on success, roll back on any error so nothing is half-written."""
    try:
        yield
        db.session.commit()
    except OperationalError as e:
        db.session.rollback()
        current_app.logger.error("Database unavailable: %s", e)
        raise TransportError('The database is currently unavailable, please retry.') from e
    except Exception:
        db.session.rollback()
        raise


def ensure_valid(form):
    """Run the WTForms validators and raise a ValidationError with field messages."""
    if not form.validate():
        raise ValidationError('Invalid input.', errors=form.errors)
    return form


def validate_registration(birth_date, parent_email, today):
    """
    Registration rule that depends on another field: members younger than
    PARENT_EMAIL_AGE must name a parent e-mail.
    Returns a ValidationResult instead of raising so the caller decides.
    """
    errors = {}
    if birth_date is None:
        errors['birth_date'] = ['Please enter a valid date of birth.']
    elif birth_date > today:
        errors['birth_date'] = ['Date of birth cannot be in the future.']
    elif age_on(birth_date, today) < PARENT_EMAIL_AGE and not parent_email:
        errors['parent_email'] = ['Please enter a valid parent email.']
    return ValidationResult(ok=not errors, errors=errors)
