"""
Module 08 - Settlement Verifier Unit Tests
Tests for core/settlement/verifier.py and core/http/client.py
"""
import json
from datetime import timedelta
from unittest.mock import MagicMock

import base58
import pytest
import requests

from core.config.runtime import RuntimeConfig
from core.engine import RewardEngine
from core.http.client import HttpClient
from core.schemas.errors import (
    InvalidTxSignatureException,
    SettlementVerificationException,
    WrongProgramException,
)
from core.settlement.verifier import (
    SettlementOutcome,
    SolanaSettlementVerifier,
    is_valid_signature,
)


RPC_URL = "http://rpc.test"
TX_SIG = base58.b58encode(bytes(range(1, 65))).decode()
PROGRAM_ID = base58.b58encode(bytes([7]) * 32).decode()
OTHER_PROGRAM = base58.b58encode(bytes([9]) * 32).decode()


def _response(body, status_code: int = 200) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.content = json.dumps(body).encode()
    response.headers = {"Content-Type": "application/json"}
    response.url = RPC_URL
    response.elapsed = timedelta(milliseconds=5)
    return response


def _session_returning(body, status_code: int = 200) -> MagicMock:
    session = MagicMock(spec=requests.Session)
    session.request.return_value = _response(body, status_code)
    return session


def _session_replying(*bodies) -> MagicMock:
    session = MagicMock(spec=requests.Session)
    session.request.side_effect = [_response(body) for body in bodies]
    return session


def _rpc_methods(session) -> list[str]:
    return [c.kwargs["json"]["method"] for c in session.request.call_args_list]


def _verifier(session, commitment: str = "confirmed", program_id=None) -> SolanaSettlementVerifier:
    return SolanaSettlementVerifier(
        RPC_URL, http=HttpClient(session=session), commitment=commitment, program_id=program_id
    )


def _status_body(status):
    return {"jsonrpc": "2.0", "id": 1, "result": {"context": {"slot": 10}, "value": [status]}}


def _transaction_body(account_keys, loaded=None):
    meta = {"err": None}
    if loaded is not None:
        meta["loadedAddresses"] = loaded
    return {
        "jsonrpc": "2.0",
        "id": 1,
        "result": {
            "slot": 42,
            "meta": meta,
            "transaction": {"message": {"accountKeys": account_keys}},
        },
    }


CONFIRMED = {"slot": 42, "err": None, "confirmationStatus": "finalized"}


class TestSignatureFormat:

    def test_valid(self):
        assert is_valid_signature(TX_SIG)

    @pytest.mark.parametrize("sig", ["", "abc", "0" * 88, TX_SIG + "111"])
    def test_invalid(self, sig):
        assert not is_valid_signature(sig)

    def test_invalid_rejected_before_rpc(self):
        session = _session_returning({})
        with pytest.raises(InvalidTxSignatureException) as exc_info:
            _verifier(session).check("not-a-signature")
        assert exc_info.value.code == "INVALID_TX_SIGNATURE"
        assert not exc_info.value.retryable
        session.request.assert_not_called()


class TestCheck:

    def test_request_payload(self):
        session = _session_returning(_status_body(None))
        _verifier(session).check(TX_SIG)
        kwargs = session.request.call_args.kwargs
        assert kwargs["method"] == "POST"
        assert kwargs["url"] == RPC_URL
        assert kwargs["json"]["method"] == "getSignatureStatuses"
        assert kwargs["json"]["params"][0] == [TX_SIG]
        assert session.request.call_count == 1

    def test_unknown_signature_pending(self):
        status = _verifier(_session_returning(_status_body(None))).check(TX_SIG)
        assert status.outcome == SettlementOutcome.PENDING

    def test_confirmed(self):
        body = _status_body({"slot": 42, "err": None, "confirmationStatus": "confirmed"})
        status = _verifier(_session_returning(body)).check(TX_SIG)
        assert status.outcome == SettlementOutcome.CONFIRMED
        assert status.slot == 42

    def test_finalized_satisfies_confirmed(self):
        body = _status_body({"slot": 42, "err": None, "confirmationStatus": "finalized"})
        assert _verifier(_session_returning(body)).check(TX_SIG).outcome == SettlementOutcome.CONFIRMED

    def test_processed_is_pending(self):
        body = _status_body({"slot": 42, "err": None, "confirmationStatus": "processed"})
        assert _verifier(_session_returning(body)).check(TX_SIG).outcome == SettlementOutcome.PENDING

    def test_confirmed_below_finalized_commitment(self):
        body = _status_body({"slot": 42, "err": None, "confirmationStatus": "confirmed"})
        verifier = _verifier(_session_returning(body), commitment="finalized")
        assert verifier.check(TX_SIG).outcome == SettlementOutcome.PENDING

    def test_error_is_failed(self):
        err = {"InstructionError": [0, {"Custom": 6001}]}
        body = _status_body({"slot": 42, "err": err, "confirmationStatus": "finalized"})
        status = _verifier(_session_returning(body)).check(TX_SIG)
        assert status.outcome == SettlementOutcome.FAILED
        assert status.error == err


class TestRpcFailures:

    def test_rpc_error_body(self):
        body = {"jsonrpc": "2.0", "id": 1, "error": {"code": -32005, "message": "busy"}}
        with pytest.raises(SettlementVerificationException) as exc_info:
            _verifier(_session_returning(body)).check(TX_SIG)
        assert exc_info.value.details["reason"] == "rpc_error"
        assert exc_info.value.retryable

    def test_http_error_status(self):
        with pytest.raises(SettlementVerificationException) as exc_info:
            _verifier(_session_returning({}, status_code=502)).check(TX_SIG)
        assert exc_info.value.details["reason"] == "rpc_unavailable"

    def test_connection_error(self):
        session = MagicMock(spec=requests.Session)
        session.request.side_effect = requests.ConnectionError("refused")
        with pytest.raises(SettlementVerificationException) as exc_info:
            _verifier(session).check(TX_SIG)
        assert exc_info.value.details["reason"] == "rpc_unavailable"

    def test_unknown_commitment(self):
        with pytest.raises(ValueError):
            SolanaSettlementVerifier(RPC_URL, commitment="instant")


class TestProgramCheck:

    def test_program_among_account_keys(self):
        session = _session_replying(
            _status_body(CONFIRMED),
            _transaction_body([TX_SIG[:44], PROGRAM_ID]),
        )
        status = _verifier(session, program_id=PROGRAM_ID).check(TX_SIG)
        assert status.outcome == SettlementOutcome.CONFIRMED
        assert _rpc_methods(session) == ["getSignatureStatuses", "getTransaction"]
        params = session.request.call_args_list[1].kwargs["json"]["params"]
        assert params[0] == TX_SIG
        assert params[1]["maxSupportedTransactionVersion"] == 0

    def test_other_program_rejected(self):
        session = _session_replying(
            _status_body(CONFIRMED),
            _transaction_body([OTHER_PROGRAM]),
        )
        with pytest.raises(WrongProgramException) as exc_info:
            _verifier(session, program_id=PROGRAM_ID).check(TX_SIG)
        assert exc_info.value.code == "TX_WRONG_PROGRAM"
        assert not exc_info.value.retryable
        assert exc_info.value.details["program_id"] == PROGRAM_ID

    def test_parsed_account_keys(self):
        session = _session_replying(
            _status_body(CONFIRMED),
            _transaction_body([{"pubkey": PROGRAM_ID, "signer": False, "writable": False}]),
        )
        assert _verifier(session, program_id=PROGRAM_ID).check(TX_SIG).outcome == SettlementOutcome.CONFIRMED

    def test_lookup_table_addresses(self):
        session = _session_replying(
            _status_body(CONFIRMED),
            _transaction_body([OTHER_PROGRAM], loaded={"writable": [], "readonly": [PROGRAM_ID]}),
        )
        assert _verifier(session, program_id=PROGRAM_ID).check(TX_SIG).outcome == SettlementOutcome.CONFIRMED

    def test_transaction_not_served_yet(self):
        session = _session_replying(
            _status_body(CONFIRMED),
            {"jsonrpc": "2.0", "id": 1, "result": None},
        )
        assert _verifier(session, program_id=PROGRAM_ID).check(TX_SIG).outcome == SettlementOutcome.PENDING

    def test_unconfirmed_skips_transaction_lookup(self):
        session = _session_replying(_status_body(None))
        assert _verifier(session, program_id=PROGRAM_ID).check(TX_SIG).outcome == SettlementOutcome.PENDING
        assert _rpc_methods(session) == ["getSignatureStatuses"]

    def test_failed_skips_transaction_lookup(self):
        body = _status_body({"slot": 42, "err": {"InstructionError": [0, "Custom"]}, "confirmationStatus": "finalized"})
        session = _session_replying(body)
        assert _verifier(session, program_id=PROGRAM_ID).check(TX_SIG).outcome == SettlementOutcome.FAILED
        assert _rpc_methods(session) == ["getSignatureStatuses"]


class TestEngineWiring:

    def test_program_id_passed_to_verifier(self, store):
        config = RuntimeConfig.from_dict({
            "settlement": {"rpc_url": RPC_URL, "program_id": PROGRAM_ID, "commitment": "finalized"},
        })
        verifier = RewardEngine.from_config(config, store=store).claims.settlement
        assert verifier.program_id == PROGRAM_ID
        assert verifier.commitment == "finalized"

    def test_no_rpc_no_verifier(self, store):
        assert RewardEngine.from_config(RuntimeConfig(), store=store).claims.settlement is None
