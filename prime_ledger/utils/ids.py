"""Identifier generation"""

import secrets
import time


def random_id(prefix: str = "id") -> str:
    """Short prefixed id: <prefix>_<time base36>_<random base36>"""
    stamp = _base36(int(time.time() * 1000))[-6:]
    rand = _base36(secrets.randbits(32))[:6]
    return f"{prefix}_{stamp}_{rand}"


def _base36(value: int) -> str:
    digits = "0123456789abcdefghijklmnopqrstuvwxyz"
    if value == 0:
        return "0"
    out = []
    while value:
        value, rem = divmod(value, 36)
        out.append(digits[rem])
    return "".join(reversed(out))
