from unittest.mock import MagicMock

import pytest

from treecover.errors import ServiceUnavailableError
from treecover.remote import RemoteCaller, is_transient


@pytest.fixture
def remote():
    return RemoteCaller(tries=3, delay=0, backoff=1)


def test__call__succeeds_first_time__returns_value(remote) -> None:
    func = MagicMock(return_value=42)

    assert remote.call("test call", func) == 42
    func.assert_called_once()


def test__call__transient_then_success__retries_and_returns(remote) -> None:
    func = MagicMock(side_effect=[ConnectionError("reset"), Exception("HTTP 503"), "done"])

    assert remote.call("test call", func) == "done"
    assert func.call_count == 3


def test__call__transient_every_time__raises_service_unavailable(remote) -> None:
    original = Exception("Too Many Requests: rate limit exceeded")
    func = MagicMock(side_effect=original)

    with pytest.raises(ServiceUnavailableError, match="test call after 3 attempts") as exc_info:
        remote.call("test call", func)

    assert func.call_count == 3
    assert exc_info.value.__cause__ is original


def test__call__non_transient__raised_without_retry(remote) -> None:
    func = MagicMock(side_effect=ValueError("Image.select: band 'nope' not found"))

    with pytest.raises(ValueError, match="band 'nope' not found"):
        remote.call("test call", func)

    func.assert_called_once()


def test__RemoteCaller__zero_tries__raises() -> None:
    with pytest.raises(ValueError, match="at least 1"):
        RemoteCaller(tries=0)


@pytest.mark.parametrize(
    ("error", "expected"),
    [
        (TimeoutError(), True),
        (ConnectionError(), True),
        (Exception("Deadline exceeded"), True),
        (Exception("The service is currently unavailable."), True),
        (Exception("Error 429"), True),
        (Exception("Collection.loadTable: Table not found"), False),
        (Exception("Computation error 4290 pixels"), False),
    ],
)
def test__is_transient__classifies_errors(error, expected) -> None:
    assert is_transient(error) is expected
