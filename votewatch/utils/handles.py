"""
Social-media handle normalization.

Stored handles must be bare usernames. Data entered by hand often holds a
profile URL or a leading ``@`` instead.
"""

import re
from typing import Optional

_PROFILE_URL_PREFIX = re.compile(
    r"^(?:https?://)?(?:www\.|mobile\.)?(?:twitter\.com|x\.com)/",
    re.IGNORECASE,
)
_PATH_TAIL = re.compile(r"[/?#]")


def normalize_handle(raw: Optional[str]) -> str:
    """
    Reduce a handle, ``@handle`` or profile URL to the bare username.
    
    >>> normalize_handle("https://x.com/JohnDoe/status/123?x=1")
    'JohnDoe'
    >>> normalize_handle(" @janedoe ")
    'janedoe'
    """
    if not raw:
        return ""
    handle = _PROFILE_URL_PREFIX.sub("", raw.strip())
    handle = _PATH_TAIL.split(handle, maxsplit=1)[0]
    if handle.startswith("@"):
        handle = handle[1:]
    return handle.strip()
