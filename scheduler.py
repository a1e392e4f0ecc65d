import datetime

from app import create_app
from app.models.user import User, ROLE_ADMIN
from app.services.notification_service import send_pending_digest
from app.services.reservation_service import pending_reservations


def build_pending_report(reservations, today):
    """Plain-text digest of pending requests grouped by material, or None when there are none."""
    if not reservations:
        return None

    report_by_material = {}
    for res in reservations:
        line = (
            f"- {res.user.name} <{res.user.email}>: {res.quantity_reserved} unit(s)"
            f"{' size ' + res.size if res.size else ''}, "
            f"{res.start_date:%d.%m.%Y} - {res.end_date:%d.%m.%Y} "
            f"(requested {res.reservation_date:%d.%m.%Y})"
        )
        report_by_material.setdefault(res.material.name, []).append(line)

    message_body = [f"Pending material reservations as of {today:%d.%m.%Y}:", ""]
    for material_name, lines in sorted(report_by_material.items()):
        message_body.append(f"{material_name}:")
        message_body.extend(lines)
        message_body.append("")
    return "\n".join(message_body)


def send_daily_pending_report(today=None):
    """
    Mails the administrators every reservation request still waiting for a
    decision. Meant to run once a day from cron.
    """
    today = today or datetime.date.today()

    report = build_pending_report(pending_reservations(), today)
    if report is None:
        print(f"No pending reservations on {today:%d.%m.%Y}. Nothing to send.")
        return None

    admins = [u.email for u in User.query.filter_by(role=ROLE_ADMIN).all()]
    send_pending_digest(admins, report)
    print(report)
    return report


if __name__ == "__main__":
    app = create_app()
    with app.app_context():
        send_daily_pending_report()
