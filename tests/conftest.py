"""
Brief: Global pytest configuration: src/ on sys.path, per-test timeout and
fake-provider resolvers.

Inputs:
  - None

Outputs:
  - None
"""

import os
import signal
import sys
import threading
import time

import pytest

# Ensure 'src' is on sys.path so 'dohrace' package is importable in tests
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
SRC_DIR = os.path.join(ROOT, "src")
if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)

from dohrace.resolver import Resolver  # noqa: E402
from dohrace.response import parse_response  # noqa: E402


def _alarm_handler(signum, frame):
    raise TimeoutError("Test exceeded 10 seconds")


if hasattr(signal, "SIGALRM"):
    signal.signal(signal.SIGALRM, _alarm_handler)


@pytest.fixture(autouse=True)
def enforce_test_timeout():
    """
    Brief: Enforce a hard 10-second timeout for each test.

    Inputs:
      - None

    Outputs:
      - None: Cancels alarm after test
    """
    if hasattr(signal, "SIGALRM"):
        signal.alarm(10)
        try:
            yield
        finally:
            signal.alarm(0)
    else:
        yield


@pytest.fixture(autouse=True)
def reset_default_resolver():
    """Brief: Drop any default Resolver a test installed."""
    from dohrace import default

    yield
    default.set_default_resolver(None)


def answer(rtype, data, ttl=60, name="example.com."):
    """Build one Answer mapping as providers send it."""
    return {"name": name, "type": rtype, "TTL": ttl, "data": data}


def body(*answers, status=0, **extra):
    """Build a decoded ProviderResponse for the given answers."""
    payload = {"Status": status, "Answer": list(answers), **extra}
    import json

    return parse_response(json.dumps(payload))


class Slow:
    """Provider behaviour: wait for an event (or delay), then yield value."""

    def __init__(self, value, delay=None, gate=None):
        self.value = value
        self.delay = delay
        self.gate = gate

    def __call__(self):
        if self.gate is not None:
            self.gate.wait(5)
        if self.delay:
            time.sleep(self.delay)
        if isinstance(self.value, BaseException):
            raise self.value
        return self.value


class FakeResolver(Resolver):
    """
    Brief: Resolver whose providers are in-process behaviours.

    Inputs:
      - behaviours: mapping url -> ProviderResponse, exception, or Slow
      - kwargs: forwarded to Resolver

    Outputs:
      - Resolver recording every (url, domain, qtype) call in .calls
    """

    def __init__(self, behaviours, **kwargs):
        super().__init__(list(behaviours), **kwargs)
        self.behaviours = dict(behaviours)
        self.calls = []
        self._calls_lock = threading.Lock()

    def _query_provider(self, url, domain, qtype):
        with self._calls_lock:
            self.calls.append((url, domain, qtype))
        b = self.behaviours[url]
        if isinstance(b, Slow):
            return b()
        if isinstance(b, BaseException):
            raise b
        return b
