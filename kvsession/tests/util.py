"""Helpers for testing the session store."""

from typing import Any, Dict, List, Optional, Tuple

from werkzeug.wrappers import Request, Response

SECRET = 'foosecret-foosecret-foosecret-foosecret'
OTHER_SECRET = 'barsecret-barsecret-barsecret-barsecret'


class FakeRedis(object):
    """Stands in for a :class:`redis.Redis` client, recording commands."""

    def __init__(self, pong: Any = True) -> None:
        self.data: Dict[str, bytes] = {}
        self.commands: List[Tuple] = []
        self.pong = pong
        self.closed = False

    def setex(self, key: str, seconds: int, value: bytes) -> bool:
        self.commands.append(('SETEX', key, seconds, value))
        self.data[key] = value
        return True

    def get(self, key: str) -> Optional[bytes]:
        self.commands.append(('GET', key))
        return self.data.get(key)

    def delete(self, key: str) -> int:
        self.commands.append(('DEL', key))
        return 1 if self.data.pop(key, None) is not None else 0

    def ping(self) -> Any:
        return self.pong

    def close(self) -> None:
        self.closed = True


def make_request(**cookies: str) -> Request:
    """Build a request carrying ``cookies``."""
    headers = {}
    if cookies:
        headers['Cookie'] = '; '.join(f'{k}={v}' for k, v in cookies.items())
    return Request.from_values(headers=headers)


def set_cookie_header(response: Response, name: str) -> str:
    """Get the ``Set-Cookie`` header for ``name`` on ``response``."""
    for header in response.headers.getlist('Set-Cookie'):
        if header.startswith(f'{name}='):
            return str(header)
    raise AssertionError(f'No cookie {name} was set')


def cookie_value(response: Response, name: str) -> str:
    """Get the value of the cookie ``name`` set on ``response``."""
    header = set_cookie_header(response, name)
    return header.split(';', 1)[0].split('=', 1)[1]
