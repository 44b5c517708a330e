import typing
import logging
import time
import uuid

from .constants import PLACEHOLDER_PATTERN

logger = logging.getLogger(__name__)


class Placeholder(typing.NamedTuple):
    token: str
    kind: str
    name: str


def generate_unique_id(obj: object):
    """
    Generate unique identify for objects
    :param obj: The object to generate the id for
    :return: string
    """
    pk = getattr(obj, "_id", None)
    if pk is None:
        pk = f"{obj.__class__.__name__}-{time.time()}-{str(uuid.uuid4())}"
        setattr(obj, "_id", pk)
    return pk


def find_placeholders(pattern: str) -> typing.List[Placeholder]:
    """
    Find the distinct placeholder tokens in a command pattern.

    Args:
        pattern: The command pattern e.g. "cat {i:in} > {o:out}"
    Returns:
        Placeholders in the order they first appear. A token repeated in
        the pattern is only returned once.
    """
    placeholders = []
    seen = set()
    for match in PLACEHOLDER_PATTERN.finditer(pattern):
        token = match.group(0)
        if token in seen:
            continue
        seen.add(token)
        placeholders.append(
            Placeholder(token=token, kind=match.group(1), name=match.group(2))
        )
    return placeholders


def unresolved_placeholders(command: str) -> typing.List[str]:
    return [placeholder.token for placeholder in find_placeholders(command)]


def get_obj_klass_import_str(obj: typing.Any) -> str:
    return f"{obj.__class__.__module__}.{obj.__class__.__qualname__}"
