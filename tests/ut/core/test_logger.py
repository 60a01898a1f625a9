"""日志配置测试"""

from __future__ import annotations

import json
import logging

from blockrepo.utils.logger import JSONFormatter, reset_logging, setup_logging


def _record(msg: str, *args, **extra) -> logging.LogRecord:
    record = logging.LogRecord("blockrepo.core.builder", logging.INFO, __file__, 10, msg, args, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    def test_fields(self) -> None:
        entry = json.loads(JSONFormatter().format(_record("已加载 %s", "github/acme/blocks")))
        assert entry["level"] == "INFO"
        assert entry["logger"] == "blockrepo.core.builder"
        assert entry["message"] == "已加载 github/acme/blocks"
        assert "registry" not in entry

    def test_context_fields(self) -> None:
        entry = json.loads(JSONFormatter().format(_record("x", registry="fs://reg", item="ui/button")))
        assert entry["registry"] == "fs://reg"
        assert entry["item"] == "ui/button"


class TestSetupLogging:
    def test_replaces_handlers(self) -> None:
        try:
            setup_logging("debug", json_output=True)
            setup_logging("warning")
            root = logging.getLogger()
            assert len(root.handlers) == 1
            assert root.level == logging.WARNING
            assert not isinstance(root.handlers[0].formatter, JSONFormatter)
        finally:
            reset_logging()
