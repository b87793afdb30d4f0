"""
Test Fakes Module
=================

Fake transport and observers that record what the relay does to them.
"""

from .fake_observer import FailingObserver, RecordingObserver, SlowObserver
from .fake_transport import FakeTransport

__all__ = [
    # Transport fakes
    "FakeTransport",
    # Observer fakes
    "RecordingObserver",
    "FailingObserver",
    "SlowObserver",
]
