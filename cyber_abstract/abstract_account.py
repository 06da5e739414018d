"""
Sponsored transaction orchestration for CyberConnect UserOperations
"""

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Union

from cyber_abstract.config import CyberAbstractConfig, DEFAULT_CHAIN_ID, DEFAULT_TIMEOUT_SECONDS, ENTRY_POINT
from cyber_abstract.relayer import RelayerClient
from cyber_abstract.signers import Signer, resolve_signature
from cyber_abstract.transport import HttpTransport
from cyber_abstract.user_operations import (
    BaseContractCall,
    EstimateUserOperationReturn,
    RpcContext,
    SponsorContractCall,
    SponsorUserOperationReturn,
    UserOperation,
    UserOperationTransaction,
)

logger = logging.getLogger(__name__)

SponsorFunction = Callable[[SponsorContractCall, RpcContext], Awaitable[SponsorUserOperationReturn]]


@dataclass(frozen=True)
class SendTransactionOverride:
    """Replace the sponsor step and/or supply a precomputed estimate"""

    sponsor_user_operation: Optional[SponsorFunction] = None
    estimated_fee: Optional[EstimateUserOperationReturn] = None


@dataclass(frozen=True)
class Submitted:
    """The signed UserOperation was accepted by the relayer"""

    user_operation_hash: str
    user_operation: UserOperation
    submitted = True


@dataclass(frozen=True)
class Declined:
    """The signer returned no signature; nothing was submitted"""

    user_operation_hash_to_sign: str
    submitted = False


SendTransactionResult = Union[Submitted, Declined]


class CyberAbstract:
    """Estimate, sponsor, sign and submit contract calls as UserOperations"""

    def __init__(self, signer: Signer, relayer: RelayerClient, chain_id: int = DEFAULT_CHAIN_ID):
        self.signer = signer
        self.relayer = relayer
        self.chain_id = chain_id

    @property
    def entry_point_address(self) -> str:
        return self.relayer.entry_point_address

    def context(self, owner: str) -> RpcContext:
        """RpcContext for owner on this client's chain"""
        return RpcContext(chain_id=self.chain_id, owner=owner)

    async def estimate_transaction(
        self, contract_call: BaseContractCall, ctx: RpcContext
    ) -> EstimateUserOperationReturn:
        return await self.relayer.estimate_transaction(contract_call, ctx)

    async def sponsor_user_operation(
        self, contract_call: SponsorContractCall, ctx: RpcContext
    ) -> SponsorUserOperationReturn:
        return await self.relayer.sponsor_user_operation(contract_call, ctx)

    async def send_user_operation(self, user_operation: UserOperation, ctx: RpcContext) -> str:
        return await self.relayer.send_user_operation(user_operation, ctx)

    async def get_user_operation_by_hash(
        self, user_operation_hash: str, ctx: RpcContext
    ) -> Optional[UserOperationTransaction]:
        return await self.relayer.get_user_operation_by_hash(user_operation_hash, ctx)

    async def wait_for_user_operation(
        self, user_operation_hash: str, ctx: RpcContext, **kwargs
    ) -> UserOperationTransaction:
        return await self.relayer.wait_for_user_operation(user_operation_hash, ctx, **kwargs)

    async def send_transaction(
        self,
        contract_call: BaseContractCall,
        ctx: RpcContext,
        override: Optional[SendTransactionOverride] = None,
    ) -> SendTransactionResult:
        """Run estimate -> sponsor -> sign -> submit for one contract call

        RPC failures propagate unchanged. A declined signature is not an
        error: the flow stops before submission and returns Declined.
        """
        override = override or SendTransactionOverride()
        logger.info(f"Sending transaction from {contract_call.sender} to {contract_call.to}")

        # Fee estimate
        estimated_fee = override.estimated_fee
        if estimated_fee is None:
            estimated_fee = await self.estimate_transaction(contract_call, ctx)

        # Sponsorship, priced at the fast tier
        sponsor_contract_call = SponsorContractCall.from_estimate(contract_call, estimated_fee)
        sponsor = override.sponsor_user_operation or self.sponsor_user_operation
        sponsored = await sponsor(sponsor_contract_call, ctx)

        # Signature
        signature = await resolve_signature(self.signer, sponsored.user_operation_hash)
        if signature is None:
            logger.info(f"Signature declined for {sponsored.user_operation_hash}, not submitting")
            return Declined(user_operation_hash_to_sign=sponsored.user_operation_hash)

        # Submission
        user_operation = sponsored.user_operation.with_signature(signature)
        user_operation_hash = await self.send_user_operation(user_operation, ctx)
        return Submitted(user_operation_hash=user_operation_hash, user_operation=user_operation)

    def close(self) -> None:
        self.relayer.close()


def create_cyber_abstract(
    signer: Signer,
    rpc_url: str,
    entry_point: Optional[str] = None,
    chain_id: int = DEFAULT_CHAIN_ID,
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
) -> CyberAbstract:
    """Create a CyberAbstract client talking to rpc_url"""
    config = CyberAbstractConfig(
        rpc_url=rpc_url,
        chain_id=chain_id,
        entry_point_address=entry_point or ENTRY_POINT,
        timeout_seconds=timeout_seconds,
    )
    return create_cyber_abstract_from_config(signer, config)


def create_cyber_abstract_from_config(signer: Signer, config: CyberAbstractConfig) -> CyberAbstract:
    transport = HttpTransport(config.rpc_url, timeout_seconds=config.timeout_seconds)
    relayer = RelayerClient(transport, entry_point_address=config.entry_point_address)
    logger.info(f"CyberAbstract client initialized for chain {config.chain_id} at {config.rpc_url}")
    return CyberAbstract(signer, relayer, chain_id=config.chain_id)


def create_cyber_abstract_from_environment(signer: Signer) -> CyberAbstract:
    """Create a CyberAbstract client from CYBER_ABSTRACT_* environment variables"""
    return create_cyber_abstract_from_config(signer, CyberAbstractConfig.from_environment())
