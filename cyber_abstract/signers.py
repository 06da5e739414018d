"""
Signer capability for sponsored UserOperations

A signer is any callable that takes the userOperationHash handed out by the
sponsor and returns a 0x signature, or None when the owner declines. It may
be a plain function or a coroutine function.
"""

import asyncio
import inspect
import logging
from typing import Awaitable, Callable, Optional, Union

from eth_account import Account
from eth_account.messages import encode_defunct
from hexbytes import HexBytes
from web3 import Web3

from cyber_abstract.user_operations import require_hex_value

logger = logging.getLogger(__name__)

Signer = Callable[[str], Union[Optional[str], Awaitable[Optional[str]]]]


def _is_coroutine_signer(signer: Signer) -> bool:
    return inspect.iscoroutinefunction(signer) or inspect.iscoroutinefunction(
        getattr(signer, "__call__", None)
    )


async def resolve_signature(signer: Signer, user_operation_hash: str) -> Optional[str]:
    """Invoke the signer and wait for its answer; no timeout is applied

    Plain callables run on a worker thread so a blocking approval prompt
    does not stall other orchestrations.
    """
    if _is_coroutine_signer(signer):
        signature = signer(user_operation_hash)
    else:
        signature = await asyncio.to_thread(signer, user_operation_hash)
    if inspect.isawaitable(signature):
        signature = await signature
    if not signature:
        return None
    return require_hex_value("signature", signature)


class LocalAccountSigner:
    """Signs userOperationHash as an EIP-191 personal message with a local key"""

    def __init__(self, private_key: str):
        self._account = Account.from_key(private_key)

    @property
    def address(self) -> str:
        return self._account.address

    async def __call__(self, user_operation_hash: str) -> Optional[str]:
        logger.info(f"Signing UserOperation hash with {self.address}")
        message = encode_defunct(primitive=bytes(HexBytes(user_operation_hash)))
        signed = self._account.sign_message(message)
        return Web3.to_hex(signed.signature)
