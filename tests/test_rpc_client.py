"""
Tests for the node JSON-RPC client and the faucet client.
"""
from unittest.mock import Mock

import pytest
import requests

from nimiq_activator.core.controller import ValidatorController
from nimiq_activator.core.keystore import KeyStore
from nimiq_activator.protocol.types.common import NodeUnavailableError, RpcError
from nimiq_activator.rpc.client import NodeClient
from nimiq_activator.rpc.faucet import FaucetClient

from conftest import sample

NODE_URL = "http://node:8648"


def response(body=None, status_code=200, json_error=False):
    resp = Mock(spec=requests.Response)
    resp.status_code = status_code
    resp.text = str(body)
    if status_code >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status_code} error")
    if json_error:
        resp.json.side_effect = ValueError("not json")
    else:
        resp.json.return_value = body
    return resp


def result(data):
    return {"jsonrpc": "2.0", "id": 1, "result": {"data": data, "metadata": None}}


def make_client(*responses):
    session = Mock(spec=requests.Session)
    session.post.side_effect = list(responses)
    return NodeClient(NODE_URL, timeout=3.0, session=session), session


def rpc_errors(method, kind):
    return sample("nimiq_rpc_errors_total", method=method, kind=kind) or 0


# ═══════════════════════════════════════════════════════════════════
# ENVELOPE
# ═══════════════════════════════════════════════════════════════════

def test_request_envelope():
    client, session = make_client(response(result(True)))

    assert client.is_consensus_established() is True
    args, kwargs = session.post.call_args
    assert args == (NODE_URL,)
    assert kwargs["timeout"] == 3.0
    assert kwargs["json"]["jsonrpc"] == "2.0"
    assert kwargs["json"]["method"] == "isConsensusEstablished"
    assert kwargs["json"]["params"] == []


def test_request_ids_increase():
    client, session = make_client(response(result(1)), response(result(2)))
    client.get_epoch_number()
    client.get_block_number()

    ids = [c.kwargs["json"]["id"] for c in session.post.call_args_list]
    assert ids[1] > ids[0]


def test_unwrapped_result_is_accepted():
    client, _ = make_client(response({"jsonrpc": "2.0", "id": 1, "result": 12}))

    assert client.get_epoch_number() == 12


def test_error_payload_raises_rpc_error():
    client, _ = make_client(response({"jsonrpc": "2.0", "id": 1, "error": {"code": -32000, "message": "boom"}}))

    with pytest.raises(RpcError) as exc:
        client.get_epoch_number()
    assert exc.value.code == -32000
    assert exc.value.message == "boom"
    assert sample("nimiq_rpc_errors_total", method="getEpochNumber", kind="rpc") >= 1


def test_transport_error_raises_node_unavailable():
    session = Mock(spec=requests.Session)
    session.post.side_effect = requests.ConnectionError("refused")
    client = NodeClient(NODE_URL, session=session)

    with pytest.raises(NodeUnavailableError):
        client.get_block_number()


def test_http_status_error():
    client, _ = make_client(response(None, status_code=502))

    with pytest.raises(NodeUnavailableError):
        client.get_block_number()


def test_malformed_json():
    client, _ = make_client(response(json_error=True))

    with pytest.raises(NodeUnavailableError):
        client.get_address()


# ═══════════════════════════════════════════════════════════════════
# METHODS
# ═══════════════════════════════════════════════════════════════════

@pytest.mark.parametrize("data", [None, "not-a-number", {"epoch": 3}])
def test_non_numeric_block_number_is_node_unavailable(data):
    client, _ = make_client(response(result(data)))
    before = rpc_errors("getBlockNumber", "transport")

    with pytest.raises(NodeUnavailableError):
        client.get_block_number()
    assert rpc_errors("getBlockNumber", "transport") == before + 1


def test_null_epoch_is_node_unavailable():
    client, _ = make_client(response(result(None)))

    with pytest.raises(NodeUnavailableError):
        client.get_epoch_number()


def test_null_epoch_does_not_abort_epoch_update(tmp_path, address):
    client, _ = make_client(response(result(None)))
    controller = ValidatorController(client, KeyStore(str(tmp_path)), address=address)

    assert controller.update_epoch() is None


def test_non_list_stakers_is_node_unavailable():
    client, _ = make_client(response(result(7)))

    with pytest.raises(NodeUnavailableError):
        client.get_total_stake("NQ01")


def test_account_balance():
    client, session = make_client(response(result({"address": "NQ01", "balance": 4_000_000_000, "type": "basic"})))

    assert client.get_account_balance("NQ01") == 4_000_000_000
    assert session.post.call_args.kwargs["json"]["params"] == ["NQ01"]


def test_validator_not_found_is_none():
    client, _ = make_client(response({"jsonrpc": "2.0", "id": 1, "error": {"code": -32603, "message": "Validator not found"}}))

    assert client.get_validator_by_address("NQ01") is None


def test_validator_null_data_is_none():
    client, _ = make_client(response(result(None)))

    assert client.get_validator_by_address("NQ01") is None


def test_validator_transport_error_propagates():
    client, _ = make_client(response(None, status_code=500))

    with pytest.raises(NodeUnavailableError):
        client.get_validator_by_address("NQ01")


def test_validator_record():
    client, _ = make_client(response(result({
        "address": "NQ01",
        "balance": 10_000_000_000,
        "numStakers": 2,
        "inactivityFlag": None,
        "retired": True,
        "jailedFrom": 500,
    })))

    rec = client.get_validator_by_address("NQ01")
    assert rec.retired is True
    assert rec.jailed_from == 500
    assert rec.num_stakers == 2


def test_total_stake_sums_stakers():
    client, _ = make_client(response(result([
        {"address": "NQ02", "balance": 100},
        {"address": "NQ03", "balance": 250},
    ])))

    assert client.get_total_stake("NQ01") == 350


def test_unlock_failure():
    client, session = make_client(response(result(False)))

    with pytest.raises(RpcError):
        client.unlock_account("NQ01", "", 0)
    assert session.post.call_args.kwargs["json"]["params"] == ["NQ01", "", 0]


def test_import_raw_key_requires_address():
    client, _ = make_client(response(result("")))

    with pytest.raises(RpcError):
        client.import_raw_key("secret")


def test_new_validator_transaction_params():
    client, session = make_client(response(result("0100ff")))

    raw = client.send_new_validator_transaction("NQ01", "NQ01", "sig", "vote", "NQ01", "", 500, "+0")

    assert raw == "0100ff"
    body = session.post.call_args.kwargs["json"]
    assert body["method"] == "sendNewValidatorTransaction"
    assert body["params"] == ["NQ01", "NQ01", "sig", "vote", "NQ01", "", 500, "+0"]


def test_reactivate_transaction_params():
    client, session = make_client(response(result("hash")))

    assert client.send_reactivate_validator_transaction("NQ01", "NQ01", "sig", 500, "+0") == "hash"
    assert session.post.call_args.kwargs["json"]["params"] == ["NQ01", "NQ01", "sig", 500, "+0"]


# ═══════════════════════════════════════════════════════════════════
# FAUCET
# ═══════════════════════════════════════════════════════════════════

def test_faucet_success():
    session = Mock(spec=requests.Session)
    session.post.return_value = response("ok", status_code=200)
    faucet = FaucetClient("https://faucet.example/tapit", session=session)

    assert faucet.request_funds("NQ77 FUND") is True
    args, kwargs = session.post.call_args
    assert args == ("https://faucet.example/tapit",)
    assert kwargs["data"] == {"address": "NQ77 FUND"}
    assert sample("nimiq_faucet_requests_total", "NQ77 FUND", result="success") == 1


def test_faucet_rejection():
    session = Mock(spec=requests.Session)
    session.post.return_value = response("rate limited", status_code=429)
    faucet = FaucetClient("https://faucet.example/tapit", session=session)

    assert faucet.request_funds("NQ78 FUND") is False
    assert sample("nimiq_faucet_requests_total", "NQ78 FUND", result="failure") == 1


def test_faucet_connection_error():
    session = Mock(spec=requests.Session)
    session.post.side_effect = requests.Timeout("slow")
    faucet = FaucetClient(session=session)

    assert faucet.request_funds("NQ79 FUND") is False


# ═══════════════════════════════════════════════════════════════════
# ERROR ACCOUNTING
# ═══════════════════════════════════════════════════════════════════

@pytest.mark.parametrize("method,call", [
    ("importRawKey", lambda c: c.import_raw_key("secret")),
    ("unlockAccount", lambda c: c.unlock_account("NQ01")),
    ("sendNewValidatorTransaction",
     lambda c: c.send_new_validator_transaction("NQ01", "NQ01", "sig", "vote", "NQ01", "", 500, "+0")),
    ("sendReactivateValidatorTransaction",
     lambda c: c.send_reactivate_validator_transaction("NQ01", "NQ01", "sig", 500, "+0")),
    ("sendRawTransaction", lambda c: c.send_raw_transaction("0100ff")),
])
def test_empty_wallet_and_tx_results_are_counted(method, call):
    client, _ = make_client(response(result(None)))
    before = rpc_errors(method, "rpc")

    with pytest.raises(RpcError):
        call(client)
    assert rpc_errors(method, "rpc") == before + 1


def test_missing_address_is_counted():
    client, _ = make_client(response(result("")))
    before = rpc_errors("getAddress", "transport")

    with pytest.raises(NodeUnavailableError):
        client.get_address()
    assert rpc_errors("getAddress", "transport") == before + 1
