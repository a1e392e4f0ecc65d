import os
from dotenv import load_dotenv

# Load environment variables from .env
load_dotenv()

basedir = os.path.abspath(os.path.dirname(__file__))


def _split_list(value):
    return [item.strip().lower() for item in (value or '').split(',') if item.strip()]


class Config:
    """Base configuration."""
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'change-me'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///' + os.path.join(basedir, 'app.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # The API speaks JSON, forms are fed from request bodies
    WTF_CSRF_ENABLED = False

    MAIL_SERVER = os.environ.get('MAIL_SERVER') or 'smtp.gmail.com'
    MAIL_PORT = int(os.environ.get('MAIL_PORT') or 587)
    MAIL_USE_TLS = True
    MAIL_USERNAME = os.environ.get('MAIL_USERNAME')
    MAIL_PASSWORD = os.environ.get('MAIL_PASSWORD')
    MAIL_DEFAULT_SENDER = os.environ.get('MAIL_DEFAULT_SENDER') or 'no-reply@alpine-connect.local'

    ADMIN_EMAILS = _split_list(os.environ.get('ADMIN_EMAILS'))

    UPLOAD_FOLDER = os.environ.get('UPLOAD_FOLDER') or os.path.join(basedir, 'uploads')
    MAX_CONTENT_LENGTH = 16 * 1024 * 1024


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    MAIL_SUPPRESS_SEND = True
    ADMIN_EMAILS = ['admin@example.com']
    SECRET_KEY = 'testing'
