"""Textual integration for changetracker. Opt-in — requires textual.

Polls a Tracker from the app's event loop and hands each non-empty change
report to a callback that updates widgets. Textual coupling lives here only;
the core package stays agnostic of any UI.
"""

import logging
import threading
from contextlib import contextmanager

from textual.css.query import NoMatches

logger = logging.getLogger("changetracker.textual")

# Module-owned pause state, keyed by id(app) so multiple apps work in tests.
_paused_apps: set[int] = set()


@contextmanager
def pause(app):
    """Suspend change delivery during widget replacement."""
    key = id(app)
    _paused_apps.add(key)
    try:
        yield
    finally:
        _paused_apps.discard(key)


def is_safe(app) -> bool:
    """Is the widget tree in a queryable state?"""
    return app.is_running and id(app) not in _paused_apps


def _deliver(tracker, on_changes) -> None:
    tracker.detect_changes()
    changes = tracker.get_changes()
    if not changes:
        return
    try:
        on_changes(changes)
    except NoMatches as e:
        logger.debug("Dropped %d changes, widget not mounted: %s", len(changes), e)


def flush(app, tracker, on_changes) -> None:
    """Detect and deliver once, now. Skipped while the app is not safe."""
    if is_safe(app):
        _deliver(tracker, on_changes)


def sync(app, tracker, on_changes, *, interval: float = 0.1):
    """Deliver tracker changes to on_changes every `interval` seconds.

    Ticks that fire off the app's thread are marshaled with
    call_from_thread. Returns the Textual timer (call .stop() to end).
    """
    _main = threading.get_ident()

    def _tick():
        if not is_safe(app):
            return
        if threading.get_ident() != _main:
            app.call_from_thread(_deliver, tracker, on_changes)
        else:
            _deliver(tracker, on_changes)

    return app.set_interval(interval, _tick)
