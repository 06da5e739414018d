"""
Shared fixtures for CyberAbstract tests
"""

import pytest

from cyber_abstract.relayer import RelayerClient
from cyber_abstract.user_operations import BaseContractCall, RpcContext

SENDER = "0x1111111111111111111111111111111111111111"
TARGET = "0x2222222222222222222222222222222222222222"
OWNER = "0x3333333333333333333333333333333333333333"
USER_OP_HASH = "0x" + "ab" * 32
TX_HASH = "0x" + "cd" * 32
BLOCK_HASH = "0x" + "ef" * 32
SIGNATURE = "0x" + "12" * 65


class FakeTransport:
    """In-memory transport recording every request"""

    def __init__(self, responses=None):
        self.responses = dict(responses or {})
        self.calls = []
        self.closed = False

    def request(self, method, params):
        self.calls.append((method, params))
        response = self.responses[method]
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(params)
        return response

    def methods(self):
        return [method for method, _ in self.calls]

    def close(self):
        self.closed = True


def estimate_payload(fast=(100, 10), medium=(80, 8), slow=(60, 6)):
    def tier(fees):
        return {"maxFeePerGas": fees[0], "maxPriorityFeePerGas": fees[1]}

    return {
        "chainId": 1,
        "totalGasLimit": 250000,
        "totalGasFee": 25000000,
        "credits": 42,
        "fast": tier(fast),
        "medium": tier(medium),
        "slow": tier(slow),
    }


def unsigned_user_operation_payload():
    return {
        "sender": SENDER,
        "nonce": 7,
        "initCode": "0x",
        "callData": "0xdeadbeef",
        "callGasLimit": 100000,
        "verificationGasLimit": 150000,
        "preVerificationGas": 50000,
        "maxFeePerGas": 100,
        "maxPriorityFeePerGas": 10,
        "paymasterAndData": "0x" + "99" * 20,
    }


def sponsor_payload():
    return {
        "userOperation": unsigned_user_operation_payload(),
        "userOperationHash": USER_OP_HASH,
    }


def transaction_payload():
    return {
        "transactionHash": TX_HASH,
        "blockHash": BLOCK_HASH,
        "blockNumber": "0x10",
        "entryPoint": "0x5FF137D4b0FDCD49DcA30c7CF57E578a026d2789",
        "userOperation": {**unsigned_user_operation_payload(), "signature": SIGNATURE},
    }


@pytest.fixture
def ctx():
    return RpcContext(chain_id=1, owner=OWNER)


@pytest.fixture
def contract_call():
    return BaseContractCall(sender=SENDER, to=TARGET, call_data="0xdeadbeef")


@pytest.fixture
def transport():
    return FakeTransport({
        "cc_estimateUserOperation": estimate_payload(),
        "cc_sponsorUserOperation": sponsor_payload(),
        "eth_sendUserOperation": USER_OP_HASH,
        "eth_getUserOperationByHash": transaction_payload(),
    })


@pytest.fixture
def relayer(transport):
    return RelayerClient(transport)
