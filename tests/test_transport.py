"""
Tests for the JSON-RPC HTTP transport
"""

from unittest.mock import MagicMock, patch

import pytest
import requests

from cyber_abstract.transport import HttpTransport, RelayerHttpError, RpcResponseError

RPC_URL = "https://api.cyberconnect.dev/rpc"


def make_response(status_code=200, body=None, text=""):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.text = text
    if isinstance(body, Exception):
        response.json.side_effect = body
    else:
        response.json.return_value = body
    return response


@pytest.fixture
def session():
    return MagicMock(spec=requests.Session)


def test_request_posts_json_rpc_payload(session):
    session.post.return_value = make_response(body={"jsonrpc": "2.0", "id": 1, "result": "0xabc"})
    transport = HttpTransport(RPC_URL, timeout_seconds=5, session=session)

    assert transport.request("eth_sendUserOperation", [{"sender": "0x1"}, "0xEP"]) == "0xabc"

    _, kwargs = session.post.call_args
    assert session.post.call_args[0][0] == RPC_URL
    assert kwargs["json"] == {
        "jsonrpc": "2.0",
        "method": "eth_sendUserOperation",
        "params": [{"sender": "0x1"}, "0xEP"],
        "id": 1,
    }
    assert kwargs["timeout"] == 5


def test_request_ids_increase(session):
    session.post.return_value = make_response(body={"result": None})
    transport = HttpTransport(RPC_URL, session=session)

    transport.request("eth_getUserOperationByHash", ["0x1", {"chainId": 1}])
    transport.request("eth_getUserOperationByHash", ["0x1", {"chainId": 1}])

    ids = [call.kwargs["json"]["id"] for call in session.post.call_args_list]
    assert ids == [1, 2]


def test_retries_are_disabled_on_own_session(session):
    with patch("cyber_abstract.transport.requests.Session", return_value=session):
        transport = HttpTransport(RPC_URL)

    assert transport.session is session

    mounted = {call.args[0]: call.args[1] for call in session.mount.call_args_list}
    assert set(mounted) == {"http://", "https://"}
    for adapter in mounted.values():
        assert adapter.max_retries.total == 0


def test_caller_session_adapters_are_left_alone(session):
    transport = HttpTransport(RPC_URL, session=session)

    assert transport.session is session
    session.mount.assert_not_called()


@pytest.mark.parametrize("error", [{}, "", 0, False])
def test_falsy_rpc_error_is_still_an_error(session, error):
    session.post.return_value = make_response(body={"jsonrpc": "2.0", "id": 1, "error": error})
    transport = HttpTransport(RPC_URL, session=session)

    with pytest.raises(RpcResponseError) as exc_info:
        transport.request("cc_estimateUserOperation", [{}, {}])
    assert exc_info.value.method == "cc_estimateUserOperation"


def test_null_error_member_is_success(session):
    session.post.return_value = make_response(body={"jsonrpc": "2.0", "id": 1, "error": None, "result": "0x1"})
    transport = HttpTransport(RPC_URL, session=session)

    assert transport.request("eth_sendUserOperation", [{}, "0xEP", {}]) == "0x1"


def test_rpc_error_is_raised(session):
    session.post.return_value = make_response(
        body={"error": {"code": -32602, "message": "invalid params", "data": {"field": "to"}}}
    )
    transport = HttpTransport(RPC_URL, session=session)

    with pytest.raises(RpcResponseError) as exc_info:
        transport.request("cc_sponsorUserOperation", [{}, {}])

    assert exc_info.value.method == "cc_sponsorUserOperation"
    assert exc_info.value.code == -32602
    assert exc_info.value.message == "invalid params"
    assert exc_info.value.data == {"field": "to"}


def test_http_error_is_raised(session):
    session.post.return_value = make_response(status_code=502, text="bad gateway")
    transport = HttpTransport(RPC_URL, session=session)

    with pytest.raises(RelayerHttpError) as exc_info:
        transport.request("cc_estimateUserOperation", [{}, {}])
    assert exc_info.value.status_code == 502


def test_non_json_body_is_raised(session):
    session.post.return_value = make_response(body=ValueError("no json"), text="<html>")
    transport = HttpTransport(RPC_URL, session=session)

    with pytest.raises(RelayerHttpError):
        transport.request("cc_estimateUserOperation", [{}, {}])


def test_network_errors_propagate_after_one_attempt(session):
    session.post.side_effect = requests.ConnectionError("refused")
    transport = HttpTransport(RPC_URL, session=session)

    with pytest.raises(requests.ConnectionError):
        transport.request("eth_sendUserOperation", [{}, "0xEP", {}])
    assert session.post.call_count == 1


def test_context_manager_closes_session(session):
    with HttpTransport(RPC_URL, session=session):
        pass
    session.close.assert_called_once()
