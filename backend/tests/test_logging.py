from __future__ import annotations

import logging

import orjson

from packet_builder.core.logging import JsonFormatter, log_context


def test_json_formatter_groups_context() -> None:
    record = logging.LogRecord("packet_builder.test", logging.WARNING, __file__, 1, "Skipped %s", ("a.txt",), None)
    for key, value in log_context(record_id=7, attachment_id="att_1", actor=None).items():
        setattr(record, key, value)

    payload = orjson.loads(JsonFormatter().format(record))
    assert payload["message"] == "Skipped a.txt"
    assert payload["level"] == "WARNING"
    assert payload["context"] == {"record_id": 7, "attachment_id": "att_1"}
