import json

import pytest


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=None, content=b""):
        self.status_code = status_code
        self.content = content
        self._payload = payload
        if text is None:
            text = json.dumps(payload) if payload is not None else ""
        self.text = text

    @property
    def ok(self):
        return 200 <= self.status_code < 400

    def json(self):
        if self._payload is None:
            return json.loads(self.text)
        return self._payload


class FakeSession:
    """Stands in for ``requests.Session``; replies are consumed in order."""

    def __init__(self, *replies):
        self.replies = list(replies)
        self.calls = []

    def _next(self, method, url, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    def post(self, url, **kwargs):
        return self._next("POST", url, **kwargs)

    def patch(self, url, **kwargs):
        return self._next("PATCH", url, **kwargs)

    def get(self, url, **kwargs):
        return self._next("GET", url, **kwargs)


def gemini_reply(text):
    return FakeResponse(200, {"candidates": [{"content": {"parts": [{"text": text}]}}]})


def gemini_error(status_code, message):
    return FakeResponse(status_code, {"error": {"code": status_code, "message": message}})


@pytest.fixture
def fakes():
    class Fakes:
        Response = FakeResponse
        Session = FakeSession
        reply = staticmethod(gemini_reply)
        error = staticmethod(gemini_error)

    return Fakes
