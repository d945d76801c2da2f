import os
import re
import secrets
import string

from requestkit.errors import EmptyInput


RANDOM_STRING_SOURCE = string.ascii_letters + string.digits

_SLUG_RE = re.compile(r"[^a-z0-9]+")
_UNSAFE_FILENAME_RE = re.compile(r"[^\w\-. ]")


def random_string(length: int) -> str:
    """Return length characters drawn from ASCII letters and digits."""
    if length < 0:
        raise ValueError("length must be >= 0")
    return "".join(secrets.choice(RANDOM_STRING_SOURCE) for _ in range(length))


def slugify(text: str) -> str:
    """
    Lowercase text and collapse every run of characters outside [a-z0-9]
    into a single hyphen.

    Raises:
        EmptyInput: text is empty, or nothing alphanumeric survives.
    """
    if not text:
        raise EmptyInput("empty string not permitted")

    slug = _SLUG_RE.sub("-", text.lower()).strip("-")
    if not slug:
        raise EmptyInput("after removing characters, slug is zero length")
    return slug


def sanitize_filename(filename: str) -> str:
    """Strip path components and replace unsafe characters."""
    # Take only the final component (no directory traversal)
    filename = (filename or "").replace("\\", "/").split("/")[-1]
    filename = filename.replace("\x00", "")
    filename = _UNSAFE_FILENAME_RE.sub("_", filename)
    # no hidden files, no "." or ".."
    filename = filename.strip(". ")
    if len(filename) > 255:
        name, ext = os.path.splitext(filename)
        filename = name[: 255 - len(ext)] + ext
    return filename or "unnamed"


def create_dir_if_not_exist(path: str, mode: int = 0o755) -> None:
    if not os.path.exists(path):
        os.makedirs(path, mode=mode, exist_ok=True)
