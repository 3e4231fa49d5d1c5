"""
Tests for wiring the reminder scanner into the app lifespan.
"""

from fastapi import FastAPI

import main


def test_scanner_not_started_when_disabled(mock_db, monkeypatch):
    monkeypatch.setattr(main.settings, "reminder_enabled", False)
    app = FastAPI()

    main.start_reminder_scanner(app)

    assert app.state.reminder_scanner is None


def test_scanner_started_when_enabled(mock_db, monkeypatch):
    monkeypatch.setattr(main.settings, "reminder_enabled", True)
    monkeypatch.setattr(main.settings, "reminder_scan_interval_seconds", 3600)
    app = FastAPI()

    main.start_reminder_scanner(app)
    scanner = app.state.reminder_scanner

    try:
        assert scanner is not None
        assert scanner.is_running
    finally:
        scanner.stop()

    assert not scanner.is_running
