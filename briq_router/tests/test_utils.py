from typing import Any


def assert_status_ok(value: Any) -> Any:
    assert isinstance(value, tuple), (
        f"Expected status tuple (bool, result), got {type(value).__name__}: {value!r}"
    )
    assert len(value) == 2, f"Expected status tuple length 2, got {len(value)}: {value!r}"
    ok, result = value
    assert ok is True, f"Expected success, got failure: {result!r}"
    return result


def assert_status_failed(value: Any) -> str:
    assert isinstance(value, tuple) and len(value) == 2, (
        f"Expected status tuple (bool, result), got {value!r}"
    )
    ok, message = value
    assert ok is False, f"Expected failure, got success: {message!r}"
    assert isinstance(message, str), (
        f"Expected str error, got {type(message).__name__}: {message!r}"
    )
    return message
