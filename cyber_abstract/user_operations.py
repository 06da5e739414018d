"""
UserOperation value types for CyberConnect sponsored transactions

Every type converts to and from the camelCase wire shape used by the
sponsor/relayer backend. Gas and fee values are Python ints so wei amounts
are never rounded.
"""

import logging
import re
from dataclasses import dataclass, fields
from typing import Any, Dict, NamedTuple, Optional

logger = logging.getLogger(__name__)

HEX_PREFIX = "0x"
DEFAULT_VALUE = "0"
FEE_TIERS = ("fast", "medium", "slow")

_DECIMAL_INT = re.compile(r"[0-9]+")
_HEX_INT = re.compile(r"0x[0-9a-fA-F]+")


class MalformedValueError(ValueError):
    """A field failed its shallow type check"""

    def __init__(self, field: str, value: Any, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Malformed {field}: {reason} (got {value!r})")


class HexValidation(NamedTuple):
    ok: bool
    value: Any
    reason: Optional[str] = None


def is_hex_value(value: Any) -> bool:
    """True iff value is a string starting with 0x"""
    return isinstance(value, str) and value.startswith(HEX_PREFIX)


def validate_hex_value(value: Any) -> HexValidation:
    """Check the 0x prefix only; length and charset are not inspected"""
    if not isinstance(value, str):
        return HexValidation(False, value, "expected a hex string")
    if not value.startswith(HEX_PREFIX):
        return HexValidation(False, value, "missing 0x prefix")
    return HexValidation(True, value)


def require_hex_value(field: str, value: Any) -> str:
    result = validate_hex_value(value)
    if not result.ok:
        raise MalformedValueError(field, value, result.reason)
    return value


def parse_int(field: str, value: Any) -> int:
    """Parse a JSON integer, decimal string or 0x hex string"""
    if isinstance(value, bool):
        raise MalformedValueError(field, value, "expected an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        if _HEX_INT.fullmatch(value):
            return int(value, 16)
        if _DECIMAL_INT.fullmatch(value):
            return int(value, 10)
        raise MalformedValueError(field, value, "expected an integer string")
    raise MalformedValueError(field, value, "expected an integer")


def _get(data: Dict[str, Any], key: str) -> Any:
    if not isinstance(data, dict):
        raise MalformedValueError(key, data, "expected an object")
    if key not in data:
        raise MalformedValueError(key, None, "missing field")
    return data[key]


@dataclass(frozen=True)
class RpcContext:
    """Chain and owner identity threaded through relayer calls"""

    chain_id: int
    owner: str

    def __post_init__(self):
        require_hex_value("owner", self.owner)

    def to_rpc(self) -> Dict[str, Any]:
        return {"chainId": self.chain_id, "owner": self.owner}

    @classmethod
    def from_rpc(cls, data: Dict[str, Any]) -> "RpcContext":
        return cls(
            chain_id=parse_int("chainId", _get(data, "chainId")),
            owner=_get(data, "owner"),
        )


@dataclass(frozen=True)
class UnsignedUserOperation:
    """UserOperation as issued by the sponsor, before signing"""

    sender: str
    nonce: int
    init_code: str
    call_data: str
    call_gas_limit: int
    verification_gas_limit: int
    pre_verification_gas: int
    max_fee_per_gas: int
    max_priority_fee_per_gas: int
    paymaster_and_data: str

    def __post_init__(self):
        require_hex_value("sender", self.sender)
        require_hex_value("initCode", self.init_code)
        require_hex_value("callData", self.call_data)
        require_hex_value("paymasterAndData", self.paymaster_and_data)

    def with_signature(self, signature: str) -> "UserOperation":
        """Attach a signature, leaving every other field untouched"""
        values = {f.name: getattr(self, f.name) for f in fields(UnsignedUserOperation)}
        return UserOperation(**values, signature=signature)

    def to_rpc(self) -> Dict[str, Any]:
        return {
            "sender": self.sender,
            "nonce": self.nonce,
            "initCode": self.init_code,
            "callData": self.call_data,
            "callGasLimit": self.call_gas_limit,
            "verificationGasLimit": self.verification_gas_limit,
            "preVerificationGas": self.pre_verification_gas,
            "maxFeePerGas": self.max_fee_per_gas,
            "maxPriorityFeePerGas": self.max_priority_fee_per_gas,
            "paymasterAndData": self.paymaster_and_data,
        }

    @staticmethod
    def _fields_from_rpc(data: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "sender": _get(data, "sender"),
            "nonce": parse_int("nonce", _get(data, "nonce")),
            "init_code": _get(data, "initCode"),
            "call_data": _get(data, "callData"),
            "call_gas_limit": parse_int("callGasLimit", _get(data, "callGasLimit")),
            "verification_gas_limit": parse_int(
                "verificationGasLimit", _get(data, "verificationGasLimit")
            ),
            "pre_verification_gas": parse_int(
                "preVerificationGas", _get(data, "preVerificationGas")
            ),
            "max_fee_per_gas": parse_int("maxFeePerGas", _get(data, "maxFeePerGas")),
            "max_priority_fee_per_gas": parse_int(
                "maxPriorityFeePerGas", _get(data, "maxPriorityFeePerGas")
            ),
            "paymaster_and_data": _get(data, "paymasterAndData"),
        }

    @classmethod
    def from_rpc(cls, data: Dict[str, Any]) -> "UnsignedUserOperation":
        return cls(**cls._fields_from_rpc(data))


@dataclass(frozen=True)
class UserOperation(UnsignedUserOperation):
    """Signed UserOperation, ready for eth_sendUserOperation"""

    signature: str

    def __post_init__(self):
        super().__post_init__()
        require_hex_value("signature", self.signature)

    def without_signature(self) -> UnsignedUserOperation:
        values = {f.name: getattr(self, f.name) for f in fields(UnsignedUserOperation)}
        return UnsignedUserOperation(**values)

    def to_rpc(self) -> Dict[str, Any]:
        return {**super().to_rpc(), "signature": self.signature}

    @classmethod
    def from_rpc(cls, data: Dict[str, Any]) -> "UserOperation":
        return cls(**cls._fields_from_rpc(data), signature=_get(data, "signature"))


@dataclass(frozen=True)
class BaseContractCall:
    """Caller-supplied description of the contract call to sponsor"""

    sender: str
    to: str
    call_data: str
    value: Optional[str] = None
    max_fee_per_gas: Optional[int] = None
    max_priority_fee_per_gas: Optional[int] = None

    def __post_init__(self):
        require_hex_value("sender", self.sender)
        require_hex_value("to", self.to)
        require_hex_value("callData", self.call_data)


@dataclass(frozen=True)
class EstimateContractCall:
    """BaseContractCall widened for cc_estimateUserOperation

    Nonce and both fee fields are always sent as null so estimation never
    assumes a fee.
    """

    sender: str
    to: str
    call_data: str
    value: str
    entry_point: str
    nonce: None = None
    max_fee_per_gas: None = None
    max_priority_fee_per_gas: None = None

    @classmethod
    def from_contract_call(cls, call: BaseContractCall, entry_point: str) -> "EstimateContractCall":
        return cls(
            sender=call.sender,
            to=call.to,
            call_data=call.call_data,
            value=call.value or DEFAULT_VALUE,
            entry_point=entry_point,
        )

    def to_rpc(self) -> Dict[str, Any]:
        return {
            "sender": self.sender,
            "to": self.to,
            "callData": self.call_data,
            "value": self.value,
            "nonce": None,
            "maxFeePerGas": None,
            "maxPriorityFeePerGas": None,
            "ep": self.entry_point,
        }


@dataclass(frozen=True)
class SponsorContractCall:
    """BaseContractCall widened with the fees chosen from an estimate

    The entry point is attached by the sponsor step, not carried here.
    """

    sender: str
    to: str
    call_data: str
    value: str
    max_fee_per_gas: int
    max_priority_fee_per_gas: int
    nonce: None = None

    @classmethod
    def from_estimate(
        cls, call: BaseContractCall, estimate: "EstimateUserOperationReturn", tier: str = "fast"
    ) -> "SponsorContractCall":
        fees = estimate.tier(tier)
        return cls(
            sender=call.sender,
            to=call.to,
            call_data=call.call_data,
            value=call.value or DEFAULT_VALUE,
            max_fee_per_gas=fees.max_fee_per_gas,
            max_priority_fee_per_gas=fees.max_priority_fee_per_gas,
        )

    def to_rpc(self, entry_point: str) -> Dict[str, Any]:
        return {
            "sender": self.sender,
            "to": self.to,
            "callData": self.call_data,
            "value": self.value,
            "nonce": None,
            "maxFeePerGas": self.max_fee_per_gas,
            "maxPriorityFeePerGas": self.max_priority_fee_per_gas,
            "ep": entry_point,
        }


@dataclass(frozen=True)
class FeeTier:
    max_fee_per_gas: int
    max_priority_fee_per_gas: int

    @classmethod
    def from_rpc(cls, name: str, data: Dict[str, Any]) -> "FeeTier":
        return cls(
            max_fee_per_gas=parse_int(f"{name}.maxFeePerGas", _get(data, "maxFeePerGas")),
            max_priority_fee_per_gas=parse_int(
                f"{name}.maxPriorityFeePerGas", _get(data, "maxPriorityFeePerGas")
            ),
        )

    def to_rpc(self) -> Dict[str, Any]:
        return {
            "maxFeePerGas": self.max_fee_per_gas,
            "maxPriorityFeePerGas": self.max_priority_fee_per_gas,
        }


@dataclass(frozen=True)
class EstimateUserOperationReturn:
    """Fee estimate with fast/medium/slow tiers"""

    chain_id: int
    total_gas_limit: int
    total_gas_fee: int
    credits: int
    fast: FeeTier
    medium: FeeTier
    slow: FeeTier

    def tier(self, name: str) -> FeeTier:
        if name not in FEE_TIERS:
            raise ValueError(f"Unknown fee tier {name!r}, expected one of {FEE_TIERS}")
        return getattr(self, name)

    @classmethod
    def from_rpc(cls, data: Dict[str, Any]) -> "EstimateUserOperationReturn":
        return cls(
            chain_id=parse_int("chainId", _get(data, "chainId")),
            total_gas_limit=parse_int("totalGasLimit", _get(data, "totalGasLimit")),
            total_gas_fee=parse_int("totalGasFee", _get(data, "totalGasFee")),
            credits=parse_int("credits", _get(data, "credits")),
            **{name: FeeTier.from_rpc(name, _get(data, name)) for name in FEE_TIERS},
        )

    def to_rpc(self) -> Dict[str, Any]:
        return {
            "chainId": self.chain_id,
            "totalGasLimit": self.total_gas_limit,
            "totalGasFee": self.total_gas_fee,
            "credits": self.credits,
            **{name: self.tier(name).to_rpc() for name in FEE_TIERS},
        }


@dataclass(frozen=True)
class SponsorUserOperationReturn:
    """Unsigned operation plus the exact hash the signer must sign"""

    user_operation: UnsignedUserOperation
    user_operation_hash: str

    def __post_init__(self):
        require_hex_value("userOperationHash", self.user_operation_hash)

    @classmethod
    def from_rpc(cls, data: Dict[str, Any]) -> "SponsorUserOperationReturn":
        return cls(
            user_operation=UnsignedUserOperation.from_rpc(_get(data, "userOperation")),
            user_operation_hash=_get(data, "userOperationHash"),
        )


@dataclass(frozen=True)
class UserOperationTransaction:
    """Settled UserOperation as reported by eth_getUserOperationByHash"""

    transaction_hash: str
    block_hash: str
    block_number: int
    entry_point: str
    user_operation: UserOperation

    def __post_init__(self):
        require_hex_value("transactionHash", self.transaction_hash)
        require_hex_value("blockHash", self.block_hash)
        require_hex_value("entryPoint", self.entry_point)

    @classmethod
    def from_rpc(cls, data: Dict[str, Any]) -> "UserOperationTransaction":
        return cls(
            transaction_hash=_get(data, "transactionHash"),
            block_hash=_get(data, "blockHash"),
            block_number=parse_int("blockNumber", _get(data, "blockNumber")),
            entry_point=_get(data, "entryPoint"),
            user_operation=UserOperation.from_rpc(_get(data, "userOperation")),
        )
