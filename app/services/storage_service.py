import os
import uuid

from flask import current_app
from PIL import Image, UnidentifiedImageError
from werkzeug.utils import secure_filename

from app.services.errors import ValidationError

PROFILE_PICTURE_SIZE = (400, 400)


def _folder(*parts):
    path = os.path.join(current_app.config['UPLOAD_FOLDER'], *parts)
    os.makedirs(path, exist_ok=True)
    return path


def save_document(file_storage):
    """Stores an uploaded file under documents/ and returns (display name, stored filename)."""
    original = secure_filename(file_storage.filename or '')
    if not original:
        raise ValidationError('Invalid upload.', errors={'file': ['Please select a file to upload.']})
    stored = f"{uuid.uuid4().hex}_{original}"
    file_storage.save(os.path.join(_folder('documents'), stored))
    return file_storage.filename, stored


def delete_document_file(filename):
    path = os.path.join(_folder('documents'), filename)
    if os.path.exists(path):
        os.remove(path)


def save_profile_picture(file_storage, user_id):
    """Thumbnails the picture and returns its path relative to UPLOAD_FOLDER."""
    _, f_ext = os.path.splitext(secure_filename(file_storage.filename or ''))
    picture_fn = f"profile_{user_id}_{uuid.uuid4().hex}{f_ext.lower() or '.png'}"
    try:
        i = Image.open(file_storage)
        i.thumbnail(PROFILE_PICTURE_SIZE)
        i.save(os.path.join(_folder('profiles'), picture_fn))
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise ValidationError('Invalid upload.', errors={'picture': ['The file is not a supported image.']}) from e
    return f"profiles/{picture_fn}"
