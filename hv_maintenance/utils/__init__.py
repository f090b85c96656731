# hv_maintenance/utils/__init__.py
import base64
import binascii
import re
import uuid
import secrets
import string
from typing import Optional, Tuple

DEFAULT_IMAGE_MIME = "image/jpeg"

_DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?P<params>(;[^;,]+)*?);base64,(?P<payload>.*)$", re.DOTALL)


def unique_string(length=None):
    """
    Generates a unique string.
    - If length is provided (e.g., unique_string(12)), generates a random string of that size.
    - If no length is provided, generates a UUID hex.
    """
    if length is None:
        return uuid.uuid4().hex

    alphabet = string.ascii_lowercase + string.digits
    return ''.join(secrets.choice(alphabet) for _ in range(length))


def new_record_id() -> str:
    return f"rec-{unique_string()}"


def new_stage_id() -> str:
    return f"stg-{unique_string(10)}"


def new_image_id() -> str:
    return f"img-{unique_string(10)}"


def parse_data_url(value: str) -> Tuple[bytes, Optional[str]]:
    """
    Decodes ``data:<mime>;base64,<payload>`` (or a bare base64 string)
    into raw bytes plus the declared mime type, if any.
    """
    match = _DATA_URL_RE.match(value.strip())
    mime = None
    payload = value.strip()
    if match:
        mime = match.group("mime")
        payload = match.group("payload")
    elif value.startswith("data:"):
        raise ValueError("Only base64 data URLs are supported")

    try:
        return base64.b64decode(payload, validate=True), mime
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"Invalid base64 image payload: {e}") from e


def to_data_url(data: bytes, mime_type: Optional[str] = None) -> str:
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type or DEFAULT_IMAGE_MIME};base64,{encoded}"
