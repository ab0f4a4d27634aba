"""Helpers for reading authorization responses out of URL fragments.

An authorization server that answers with ``response_mode=fragment``
redirects to ``<redirect_uri>#code=...&state=...``. The monitor treats a
location hash as final as soon as :func:`hash_contains_known_properties`
recognizes it.
"""

from __future__ import annotations

from urllib.parse import parse_qsl, urlsplit

from popauth.constants import KNOWN_HASH_PROPERTIES


def strip_hash_prefix(value: str) -> str:
    """Drop everything up to and including a leading ``#/`` or ``#``."""
    index = value.find("#/")
    if index > -1:
        return value[index + 2:]
    index = value.find("#")
    if index > -1:
        return value[index + 1:]
    return value


def deserialize_hash(value: str) -> dict[str, str]:
    """Parse a fragment such as ``#code=abc&state=xyz`` into a dict.

    Keys and values are percent-decoded and blank values are kept. When a
    key repeats, the last occurrence wins.

    Example::

        >>> deserialize_hash("#/code=abc&state=")
        {'code': 'abc', 'state': ''}
    """
    query = strip_hash_prefix(value)
    if not query:
        return {}
    return dict(parse_qsl(query, keep_blank_values=True))


def hash_contains_known_properties(value: str) -> bool:
    """Return True when *value* carries an authorization result marker.

    A hash is recognized when any of ``code``, ``error``,
    ``error_description`` or ``state`` is present with a non-empty value.
    Empty strings and strings without ``=`` are never recognized.
    """
    if not value or "=" not in value:
        return False
    params = deserialize_hash(value)
    return any(params.get(name) for name in KNOWN_HASH_PROPERTIES)


def hash_from_href(href: str) -> str:
    """Return the ``#fragment`` part of *href*, or ``""`` if it has none."""
    fragment = urlsplit(href).fragment
    return f"#{fragment}" if fragment else ""


def origin_of(url: str) -> str:
    """Return ``scheme://host[:port]`` for *url*, lowercased."""
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}".lower()
