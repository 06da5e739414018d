"""
Configuration for CyberConnect sponsored user operations
"""

import os
from dataclasses import dataclass

from cyber_abstract.user_operations import require_hex_value

# Network constants
ENTRY_POINT = "0x5FF137D4b0FDCD49DcA30c7CF57E578a026d2789"
DEFAULT_CHAIN_ID = 1
DEFAULT_TIMEOUT_SECONDS = 30

# Environment variable names
RPC_URL_ENV = "CYBER_ABSTRACT_RPC_URL"
CHAIN_ID_ENV = "CYBER_ABSTRACT_CHAIN_ID"
ENTRY_POINT_ENV = "CYBER_ABSTRACT_ENTRY_POINT"
TIMEOUT_ENV = "CYBER_ABSTRACT_TIMEOUT"


@dataclass(frozen=True)
class CyberAbstractConfig:
    """Configuration for the sponsor/relayer endpoint"""

    rpc_url: str
    chain_id: int = DEFAULT_CHAIN_ID
    entry_point_address: str = ENTRY_POINT
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS

    def __post_init__(self):
        if not self.rpc_url:
            raise ValueError("rpc_url is required")
        require_hex_value("entry_point_address", self.entry_point_address)

    @classmethod
    def from_environment(cls) -> "CyberAbstractConfig":
        """Build configuration from CYBER_ABSTRACT_* environment variables"""
        rpc_url = os.environ.get(RPC_URL_ENV)
        if not rpc_url:
            raise ValueError(f"{RPC_URL_ENV} environment variable is required")

        return cls(
            rpc_url=rpc_url,
            chain_id=int(os.environ.get(CHAIN_ID_ENV, DEFAULT_CHAIN_ID)),
            entry_point_address=os.environ.get(ENTRY_POINT_ENV) or ENTRY_POINT,
            timeout_seconds=float(os.environ.get(TIMEOUT_ENV, DEFAULT_TIMEOUT_SECONDS)),
        )
