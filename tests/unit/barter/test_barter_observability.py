import json
import logging

from src.core.common.observability import (
    JsonFormatter,
    configure_logging,
    correlation_id_var,
    correlation_scope,
)


def _record(message: str, **extra_fields) -> logging.LogRecord:
    record = logging.LogRecord(
        name="src.core.barter.negotiation",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=message,
        args=(),
        exc_info=None,
    )
    if extra_fields:
        record.extra_fields = extra_fields
    return record


def test_json_formatter_emits_structured_fields(monkeypatch):
    monkeypatch.delenv("SERVICE_NAME", raising=False)

    payload = json.loads(
        JsonFormatter().format(_record("negotiation.transition.committed", version=2))
    )

    assert payload["message"] == "negotiation.transition.committed"
    assert payload["service"] == "barter-negotiation-engine"
    assert payload["logger"] == "src.core.barter.negotiation"
    assert payload["level"] == "INFO"
    assert payload["version"] == 2
    assert "correlation_id" not in payload


def test_correlation_scope_binds_and_resets_id():
    with correlation_scope("corr_test") as correlation_id:
        payload = json.loads(JsonFormatter().format(_record("negotiation.lineage.opened")))
        assert correlation_id == "corr_test"
        assert payload["correlation_id"] == "corr_test"

    assert correlation_id_var.get() == ""


def test_correlation_scope_generates_id_when_missing():
    with correlation_scope() as correlation_id:
        assert correlation_id.startswith("corr_")


def test_configure_logging_installs_json_handler():
    root = logging.getLogger()
    saved_handlers = list(root.handlers)
    saved_level = root.level
    try:
        configure_logging("debug")

        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JsonFormatter)
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
