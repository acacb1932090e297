import logging

from core.exceptions import IndexRequestError
from core.logging import ErrorContextFormatter


def make_record(**extra):
    record = logging.LogRecord("connector.runner", logging.ERROR, __file__, 1, "Push failed", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_error_context_is_appended():
    error = IndexRequestError("rejected", context={"item_id": "t1"}, status_code=503)
    line = ErrorContextFormatter("%(message)s").format(make_record(error_context=error.to_dict()))

    assert line.startswith("Push failed | error_context=")
    assert '"item_id": "t1"' in line
    assert '"status_code": 503' in line


def test_plain_records_are_unchanged():
    assert ErrorContextFormatter("%(levelname)s %(message)s").format(make_record()) == "ERROR Push failed"
