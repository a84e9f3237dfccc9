"""Handle tokens used to predict portal Request object paths."""

from __future__ import annotations

import itertools
import os
import re
import secrets
import threading
import time

TOKEN_PREFIX = "xdportal"
REQUEST_PATH_PREFIX = "/org/freedesktop/portal/desktop/request"

_TOKEN_RE = re.compile(r"^[A-Za-z0-9_]+$")
_counter = itertools.count(1)
_counter_lock = threading.Lock()
_process_nonce = f"{os.getpid():x}{time.time_ns() & 0xFFFFFFFF:08x}"


def _random_part() -> str:
    try:
        return secrets.token_hex(5)
    except NotImplementedError:
        # No OS randomness; the counter alone keeps tokens unique.
        return _process_nonce


def new_token() -> str:
    """Return a process-unique handle token, valid as an object path element."""
    with _counter_lock:
        seq = next(_counter)
    return f"{TOKEN_PREFIX}_{seq}_{_random_part()}"


def is_valid_token(token: str) -> bool:
    return bool(token) and bool(_TOKEN_RE.match(token))


def sender_path_element(unique_name: str) -> str:
    """``:1.42`` -> ``1_42`` as the portal does when building request paths."""
    return unique_name.lstrip(":").replace(".", "_")


def request_path(unique_name: str, token: str) -> str:
    return f"{REQUEST_PATH_PREFIX}/{sender_path_element(unique_name)}/{token}"
