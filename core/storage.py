"""
Photo upload helpers.

Mobile clients send camera captures either as multipart files or as
base64 data URLs (data:image/jpeg;base64,...).
"""

import base64
import binascii
import mimetypes
import re
import uuid

from django.core.files.base import ContentFile

DATA_URL_RE = re.compile(r'^data:(?P<mime>[\w.+-]+/[\w.+-]+);base64,(?P<payload>.+)$', re.DOTALL)

EXTENSION_OVERRIDES = {
    'image/jpeg': '.jpg',
    'image/jpg': '.jpg',
}


def decode_data_url(data_url: str, name: str = None) -> ContentFile:
    """
    Decode a base64 data URL into a ContentFile.

    Raises:
        ValueError: if the string is not a valid base64 data URL
    """
    match = DATA_URL_RE.match((data_url or '').strip())
    if not match:
        raise ValueError("Format data URL tidak valid.")

    mime = match.group('mime').lower()
    try:
        content = base64.b64decode(match.group('payload'), validate=True)
    except (binascii.Error, ValueError):
        raise ValueError("Format data URL tidak valid.")

    extension = EXTENSION_OVERRIDES.get(mime) or mimetypes.guess_extension(mime) or '.bin'
    stem = name or uuid.uuid4().hex
    return ContentFile(content, name=f"{stem}{extension}")


def photo_from_request(request, field: str, name: str = None):
    """
    Return the uploaded file for `field`, from multipart or data URL.

    Returns None when the field is absent.
    """
    uploaded = request.FILES.get(field)
    if uploaded is not None:
        return uploaded

    value = request.data.get(field)
    if value:
        return decode_data_url(value, name=name)
    return None
