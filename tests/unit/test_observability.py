"""Tests for logging setup, request context and tool instrumentation."""

import asyncio
import io
import json
import logging

import pytest

from taskplan_mcp.core.context import generate_correlation_id, get_correlation_id, sync_request_context
from taskplan_mcp.core.logging_config import (
    ROOT_LOGGER_NAME,
    ContextFilter,
    HumanReadableFormatter,
    StructuredFormatter,
    configure_logging,
)
from taskplan_mcp.core.observability import audit_log, get_metrics, mcp_tool


@pytest.fixture
def restore_package_logger():
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    handlers, level = list(logger.handlers), logger.level
    yield logger
    logger.handlers[:] = handlers
    logger.setLevel(level)


def _record(message="hello", **extra):
    record = logging.LogRecord("taskplan_mcp.core.hierarchy", logging.INFO, __file__, 1, message, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    ContextFilter().filter(record)
    return record


class TestRequestContext:
    def test_generated_ids_use_prefix(self):
        assert generate_correlation_id(prefix="cli").startswith("cli_")

    def test_context_is_scoped(self):
        with sync_request_context(correlation_id="req_1") as ctx:
            assert ctx.correlation_id == "req_1"
            assert get_correlation_id() == "req_1"
        assert get_correlation_id() == ""


class TestFormatters:
    def test_structured_is_json_with_correlation_id(self):
        with sync_request_context(correlation_id="req_json"):
            record = _record(goal_id=3)
        entry = json.loads(StructuredFormatter().format(record))

        assert entry["level"] == "INFO"
        assert entry["message"] == "hello"
        assert entry["correlation_id"] == "req_json"
        assert entry["extra"] == {"goal_id": 3}

    def test_structured_without_extra(self):
        entry = json.loads(StructuredFormatter(include_extra=False).format(_record(goal_id=3)))
        assert "extra" not in entry

    def test_human_readable_strips_package_prefix(self):
        with sync_request_context(correlation_id="req_text"):
            record = _record()
        line = HumanReadableFormatter().format(record)
        assert "[INFO] [req_text] core.hierarchy: hello" in line


class TestConfigureLogging:
    def test_single_handler_on_package_logger(self, restore_package_logger):
        stream = io.StringIO()
        configure_logging(level="debug", structured=True, stream=stream)
        configure_logging(level="debug", structured=True, stream=stream)

        logger = restore_package_logger
        assert len(logger.handlers) == 1
        assert logger.level == logging.DEBUG

        logging.getLogger("taskplan_mcp.core.hierarchy").info("Created goal %s", 1)
        assert json.loads(stream.getvalue().splitlines()[-1])["message"] == "Created goal 1"

    def test_unknown_level_falls_back_to_info(self, restore_package_logger):
        configure_logging(level="chatty", stream=io.StringIO())
        assert restore_package_logger.level == logging.INFO


class TestMcpTool:
    def test_sync_tool_runs_in_context(self, caplog):
        seen = {}

        @mcp_tool(tool_name="sample")
        def sample(action: str) -> dict:
            seen["corr"] = get_correlation_id()
            return {"ok": True}

        with caplog.at_level(logging.DEBUG, logger=ROOT_LOGGER_NAME):
            assert sample(action="list") == {"ok": True}

        assert seen["corr"].startswith("tool_")
        audit = [r for r in caplog.records if hasattr(r, "audit")]
        assert audit[-1].audit["details"]["tool"] == "sample"
        assert audit[-1].audit["details"]["action"] == "list"
        assert audit[-1].audit["details"]["success"] is True

    def test_existing_context_is_reused(self):
        @mcp_tool(tool_name="sample")
        def sample() -> str:
            return get_correlation_id()

        with sync_request_context(correlation_id="req_outer"):
            assert sample() == "req_outer"

    def test_exceptions_propagate_and_are_audited(self, caplog):
        @mcp_tool(tool_name="broken")
        def broken() -> dict:
            raise RuntimeError("nope")

        with caplog.at_level(logging.INFO, logger=ROOT_LOGGER_NAME):
            with pytest.raises(RuntimeError):
                broken()

        audit = [r for r in caplog.records if hasattr(r, "audit")]
        assert audit[-1].audit["details"]["success"] is False
        assert audit[-1].audit["details"]["error"] == "nope"

    def test_async_tool(self):
        @mcp_tool(tool_name="async_sample")
        async def sample() -> str:
            return get_correlation_id()

        assert asyncio.run(sample()).startswith("tool_")

    def test_metrics_are_logged(self, caplog):
        with caplog.at_level(logging.DEBUG, logger=ROOT_LOGGER_NAME):
            get_metrics().counter("task.added", value=2, labels={"goal": "1"})
            get_metrics().gauge("tasks.open", 5)

        metrics = [r.metric for r in caplog.records if hasattr(r, "metric")]
        assert metrics[0]["name"] == "task.added"
        assert metrics[0]["value"] == 2
        assert metrics[1]["type"] == "gauge"

    def test_audit_log_unknown_event_kept(self, caplog):
        with caplog.at_level(logging.INFO, logger=ROOT_LOGGER_NAME):
            audit_log("server_start", version="1")

        record = [r for r in caplog.records if hasattr(r, "audit")][-1]
        assert record.audit["event_type"] == "tool_invocation"
        assert record.audit["details"]["original_event_type"] == "server_start"
