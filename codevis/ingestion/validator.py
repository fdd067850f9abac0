from __future__ import annotations

import re

from codevis.errors import InvalidURIError

INVALID_URI_REASON = "Expected URI to git repository"

_GIT_URI_PATTERN = re.compile(r"\.git\Z")


def validate_uri(uri: object) -> bool:
    """只做语法检查：非空字符串且以 `.git` 结尾。无副作用。"""
    if not isinstance(uri, str) or not uri:
        return False
    return _GIT_URI_PATTERN.search(uri) is not None


def ensure_valid_uri(uri: str) -> str:
    if not validate_uri(uri):
        raise InvalidURIError(INVALID_URI_REASON)
    return uri
