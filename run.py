import datetime

import click

from app import create_app
from app.extensions import db
from app.models import User, Tour, Participant, Material, MaterialReservation, Post, Comment, Document, ApiLog
from app.models.user import ROLE_ADMIN
from app.utils import utcnow

app = create_app()


@app.shell_context_processor
def make_shell_context():
    return {
        'db': db,
        'User': User,
        'Tour': Tour,
        'Participant': Participant,
        'Material': Material,
        'MaterialReservation': MaterialReservation,
        'Post': Post,
        'Comment': Comment,
        'Document': Document,
        'ApiLog': ApiLog,
    }


def sample_tours(now, leader_id):
    def days(n):
        return now + datetime.timedelta(days=n)

    return [
        Tour(title="Sunset Hike to Eagle's Peak", location='Alpine National Park',
             description="A scenic hike to the famous Eagle's Peak, timed perfectly to watch the sunset over the mountains. "
                         "This is a moderately challenging trail suitable for most fitness levels.",
             start_date=days(7), end_date=days(7), registration_deadline=days(5),
             participant_limit=20, duration='5h', elevation_gain=850, fee=0.0, leader_id=leader_id),
        Tour(title='3-Day Glacier Lake Kayak Adventure', location='Glacier Lake',
             description='Spend three days kayaking on the crystal-clear waters of Glacier Lake. We will explore hidden '
                         'coves and enjoy a picnic on a secluded beach. Basic swimming skills required.',
             start_date=days(14), end_date=days(16), registration_deadline=days(10),
             participant_limit=15, duration='3 days', elevation_gain=0, fee=120.0, leader_id=leader_id),
        Tour(title="Beginner's Rock Climbing at Granite Falls", location='Granite Falls',
             description='Learn the basics of rock climbing and rappelling in a safe and supportive environment. '
                         'All equipment is provided. No prior experience necessary!',
             start_date=days(21), end_date=days(21), registration_deadline=days(18),
             participant_limit=10, duration='1 day', elevation_gain=150, fee=35.0, leader_id=leader_id),
    ]


def sample_materials():
    return [
        Material(name='Climbing Rope', description='60m dynamic rope for all climbing activities.', price=5, quantity_available=10),
        Material(name='Harness', description='Standard climbing harness, adjustable.', price=3, quantity_available=10),
        Material(name='Climbing Shoes', description='High-performance climbing shoes for grip and precision.', price=4,
                 quantity_available=100, sizes={str(size): 10 for size in range(38, 48)}),
        Material(name='Via Ferrata Set', description='Includes energy-absorbing lanyards and carabiners.', price=8, quantity_available=10),
        Material(name='Helmet', description='Essential for climbing and via ferrata.', price=2, quantity_available=10),
        Material(name='Crampons', description='For glacier travel and icy conditions.', price=7, quantity_available=10),
        Material(name='Ice Axe', description='General-purpose ice axe for mountaineering.', price=6, quantity_available=10),
        Material(name='Bivy Sack', description='Emergency waterproof bivouac sack.', price=3, quantity_available=10),
        Material(name='Avalanche Safety Equipment', description='Kit includes a transceiver, shovel, and probe.', price=15, quantity_available=10),
        Material(name='Snowshoes', description='For winter hiking in deep snow.', price=5, quantity_available=10),
    ]


@app.cli.command('seed_db')
@click.option('--what', type=click.Choice(['all', 'tours', 'materials']), default='all')
def seed_db_command(what):
    """Adds the sample tours and materials."""
    db.create_all()
    if what in ('all', 'tours'):
        leader = User.query.filter_by(role=ROLE_ADMIN).order_by(User.id).first()
        db.session.add_all(sample_tours(utcnow(), leader.id if leader else None))
    if what in ('all', 'materials'):
        db.session.add_all(sample_materials())
    db.session.commit()
    click.echo(f'Seeded {what}.')
