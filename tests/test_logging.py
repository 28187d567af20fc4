from __future__ import annotations


def test_batch_id_is_added_inside_a_batch(coordinator):
    from dynamap.observability.logging import _add_batch_id

    assert _add_batch_id(None, "info", {"event": "x"}) == {"event": "x"}

    with coordinator.in_batch() as batch:
        out = _add_batch_id(None, "info", {"event": "x"})
        assert out["batch_id"] == batch.batch_id

    assert "batch_id" not in _add_batch_id(None, "info", {"event": "x"})


def test_explicit_batch_id_is_kept(coordinator):
    from dynamap.observability.logging import _add_batch_id

    with coordinator.in_batch():
        out = _add_batch_id(None, "info", {"event": "x", "batch_id": "other"})
    assert out["batch_id"] == "other"


def test_configure_logging_installs_json_handler(monkeypatch):
    import logging

    import structlog

    from dynamap.observability import logging as dlog

    root = logging.getLogger()
    monkeypatch.setattr(dlog, "_CONFIGURED", False)
    monkeypatch.setattr(root, "handlers", list(root.handlers))
    monkeypatch.setattr(root, "level", root.level)

    dlog.configure_logging(level="DEBUG")
    try:
        assert isinstance(root.handlers[0].formatter, structlog.stdlib.ProcessorFormatter)
        assert root.level == logging.DEBUG
        assert dlog._CONFIGURED is True
    finally:
        structlog.reset_defaults()
