from flask import current_app
from flask_mail import Message

from app.extensions import mail


def _send(subject, recipients, body):
    recipients = [r for r in recipients if r]
    if not recipients:
        return False
    try:
        mail.send(Message(subject=subject, recipients=recipients, body=body))
        return True
    except Exception:
        # Notifications are best effort; the write they describe is already committed
        current_app.logger.exception("Failed to send mail '%s'", subject)
        return False


def notify_reservation_pending(reservation):
    material = reservation.material
    body = (
        f"Hello {reservation.user.name},\n\n"
        f"your request for {reservation.quantity_reserved} x {material.name} "
        f"({reservation.start_date:%d.%m.%Y} - {reservation.end_date:%d.%m.%Y}) "
        f"has been sent for approval.\n"
    )
    return _send('Reservation request sent', [reservation.user.email], body)


def notify_reservation_decided(reservation):
    material = reservation.material
    body = (
        f"Hello {reservation.user.name},\n\n"
        f"your request for {reservation.quantity_reserved} x {material.name} "
        f"({reservation.start_date:%d.%m.%Y} - {reservation.end_date:%d.%m.%Y}) "
        f"was {reservation.status}.\n"
    )
    return _send(f"Reservation {reservation.status}", [reservation.user.email], body)


def send_pending_digest(admin_emails, report):
    return _send('Pending material reservations', admin_emails, report)
