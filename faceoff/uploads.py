"""Photo upload parsing for multipart match requests."""
import os

from flask import current_app, request

from faceoff.errors import InvalidRequest

ALLOWED_PHOTO_EXTENSIONS = {'.jpeg', '.jpg', '.png'}
ALLOWED_PHOTO_MIMETYPES = {'image/jpeg', 'image/jpg', 'image/png'}


def _max_photo_bytes():
    raw_value = current_app.config.get('MAX_PHOTO_BYTES', 5 * 1024 * 1024)
    try:
        parsed = int(raw_value)
    except (TypeError, ValueError):
        parsed = 5 * 1024 * 1024
    return max(1, parsed)


def parse_photo_upload(field='photo'):
    """Return the uploaded photo bytes, or None when no file was sent.

    Extension and MIME type must both name jpeg/jpg/png.
    """
    upload = request.files.get(field)
    if upload is None or not upload.filename:
        return None

    extension = os.path.splitext(upload.filename)[1].lower()
    mimetype = str(upload.mimetype or '').lower()
    if extension not in ALLOWED_PHOTO_EXTENSIONS or mimetype not in ALLOWED_PHOTO_MIMETYPES:
        raise InvalidRequest('Only jpeg, jpg and png files are allowed')

    limit = _max_photo_bytes()
    photo_bytes = upload.read(limit + 1)
    if len(photo_bytes) > limit:
        raise InvalidRequest(
            f'File is too large. Maximum size is {limit // (1024 * 1024)}MB'
        )
    if not photo_bytes:
        raise InvalidRequest('Uploaded photo is empty')
    return photo_bytes
