"""
CyberAbstract sponsored transactions

A client for CyberConnect-style sponsored UserOperations: estimate fees,
obtain a sponsored unsigned UserOperation, sign its hash with a caller
supplied signer, and submit it to the relayer.
"""

# Main client
from cyber_abstract.abstract_account import (
    CyberAbstract,
    Declined,
    SendTransactionOverride,
    Submitted,
    create_cyber_abstract,
    create_cyber_abstract_from_environment,
)

# Configuration
from cyber_abstract.config import ENTRY_POINT, CyberAbstractConfig

# Individual components for advanced usage
from cyber_abstract.relayer import RelayerClient
from cyber_abstract.signers import LocalAccountSigner
from cyber_abstract.transport import HttpTransport, RelayerError, RelayerHttpError, RpcResponseError
from cyber_abstract.user_operations import (
    BaseContractCall,
    EstimateUserOperationReturn,
    FeeTier,
    MalformedValueError,
    RpcContext,
    SponsorContractCall,
    SponsorUserOperationReturn,
    UnsignedUserOperation,
    UserOperation,
    UserOperationTransaction,
    is_hex_value,
    validate_hex_value,
)

__version__ = "0.1.0"

__all__ = [
    "CyberAbstract",
    "create_cyber_abstract",
    "create_cyber_abstract_from_environment",
    "SendTransactionOverride",
    "Submitted",
    "Declined",
    "CyberAbstractConfig",
    "ENTRY_POINT",
    "RelayerClient",
    "HttpTransport",
    "LocalAccountSigner",
    "RelayerError",
    "RelayerHttpError",
    "RpcResponseError",
    "MalformedValueError",
    "BaseContractCall",
    "RpcContext",
    "FeeTier",
    "EstimateUserOperationReturn",
    "SponsorContractCall",
    "SponsorUserOperationReturn",
    "UnsignedUserOperation",
    "UserOperation",
    "UserOperationTransaction",
    "is_hex_value",
    "validate_hex_value",
]
