"""
CyberConnect sponsor/relayer RPC methods

Estimator, Sponsor, Submitter and Status Lookup, each a single JSON-RPC
round trip issued on a worker thread so concurrent orchestrations can share
one transport.
"""

import asyncio
import logging
from typing import Any, Dict, List, NamedTuple, Optional

from cyber_abstract.config import ENTRY_POINT
from cyber_abstract.transport import Transport
from cyber_abstract.user_operations import (
    BaseContractCall,
    EstimateContractCall,
    EstimateUserOperationReturn,
    MalformedValueError,
    RpcContext,
    SponsorContractCall,
    SponsorUserOperationReturn,
    UserOperation,
    UserOperationTransaction,
    require_hex_value,
)

logger = logging.getLogger(__name__)

ESTIMATE_USER_OPERATION = "cc_estimateUserOperation"
SPONSOR_USER_OPERATION = "cc_sponsorUserOperation"
SEND_USER_OPERATION = "eth_sendUserOperation"
GET_USER_OPERATION_BY_HASH = "eth_getUserOperationByHash"


class RpcMethod(NamedTuple):
    name: str
    params: tuple
    returns: str


RPC_METHODS: Dict[str, RpcMethod] = {
    ESTIMATE_USER_OPERATION: RpcMethod(
        ESTIMATE_USER_OPERATION,
        ("EstimateContractCall", "RpcContext"),
        "EstimateUserOperationReturn",
    ),
    SPONSOR_USER_OPERATION: RpcMethod(
        SPONSOR_USER_OPERATION,
        ("SponsorContractCall", "RpcContext"),
        "SponsorUserOperationReturn",
    ),
    SEND_USER_OPERATION: RpcMethod(
        SEND_USER_OPERATION,
        ("UserOperation", "entryPointAddress", "RpcContext"),
        "Hash",
    ),
    GET_USER_OPERATION_BY_HASH: RpcMethod(
        GET_USER_OPERATION_BY_HASH,
        ("Hash", "{chainId}"),
        "UserOperationTransaction",
    ),
}


class RelayerClient:
    """Client for the four sponsor/relayer RPC methods"""

    def __init__(self, transport: Transport, entry_point_address: str = ENTRY_POINT):
        self.transport = transport
        self.entry_point_address = require_hex_value("entry_point_address", entry_point_address)

    async def estimate_transaction(
        self, contract_call: BaseContractCall, ctx: RpcContext
    ) -> EstimateUserOperationReturn:
        """Get tiered fee estimates for a contract call"""
        estimate_call = EstimateContractCall.from_contract_call(
            contract_call, self.entry_point_address
        )
        result = await self._request(
            ESTIMATE_USER_OPERATION, [estimate_call.to_rpc(), ctx.to_rpc()]
        )
        return EstimateUserOperationReturn.from_rpc(result)

    async def sponsor_user_operation(
        self, contract_call: SponsorContractCall, ctx: RpcContext
    ) -> SponsorUserOperationReturn:
        """Ask the sponsor for an unsigned UserOperation and the hash to sign"""
        result = await self._request(
            SPONSOR_USER_OPERATION,
            [contract_call.to_rpc(self.entry_point_address), ctx.to_rpc()],
        )
        return SponsorUserOperationReturn.from_rpc(result)

    async def send_user_operation(self, user_operation: UserOperation, ctx: RpcContext) -> str:
        """Submit a signed UserOperation and return its tracking hash"""
        if not isinstance(user_operation, UserOperation):
            raise MalformedValueError("userOperation", user_operation, "expected a signed UserOperation")

        logger.debug(f"Full UserOp to relayer: {user_operation.to_rpc()}")
        result = await self._request(
            SEND_USER_OPERATION,
            [user_operation.to_rpc(), self.entry_point_address, ctx.to_rpc()],
        )
        user_operation_hash = require_hex_value("userOperationHash", result)
        logger.info(f"UserOperation sent successfully: {user_operation_hash}")
        return user_operation_hash

    async def get_user_operation_by_hash(
        self, user_operation_hash: str, ctx: RpcContext
    ) -> Optional[UserOperationTransaction]:
        """Look up a submitted UserOperation; None while it is not yet settled"""
        require_hex_value("userOperationHash", user_operation_hash)
        result = await self._request(
            GET_USER_OPERATION_BY_HASH,
            [user_operation_hash, {"chainId": ctx.chain_id}],
        )
        if result is None:
            return None
        return UserOperationTransaction.from_rpc(result)

    async def wait_for_user_operation(
        self,
        user_operation_hash: str,
        ctx: RpcContext,
        timeout_seconds: float = 180,
        poll_seconds: float = 2.0,
    ) -> UserOperationTransaction:
        """Poll get_user_operation_by_hash until the operation settles

        The deadline covers request time as well as the sleeps between polls.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout_seconds
        while loop.time() < deadline:
            transaction = await self.get_user_operation_by_hash(user_operation_hash, ctx)
            if transaction:
                return transaction
            await asyncio.sleep(max(0.0, min(poll_seconds, deadline - loop.time())))
        raise TimeoutError(
            f"UserOperation not included within {timeout_seconds}s: {user_operation_hash}"
        )

    async def _request(self, method: str, params: List[Any]) -> Any:
        expected = RPC_METHODS[method].params
        if len(params) != len(expected):
            raise ValueError(f"{method} takes {len(expected)} params {expected}, got {len(params)}")

        logger.info(f"Calling {method}")
        return await asyncio.to_thread(self.transport.request, method, params)

    def close(self) -> None:
        close = getattr(self.transport, "close", None)
        if close:
            close()
