"""
ZKLend Core Library
===================

Zero-knowledge collateral proofs and the private lending protocol built on them.

Modules:
    - config: Configuration management with Pydantic Settings
    - logging: Structured logging with structlog
    - errors: Error-kind taxonomy shared by the verifier, registry and pool
    - zk: Constraint system, gadgets, circuits and the Groth16 backend
    - protocol: Commitment/nullifier registry and the lending pool

Version: 0.1.0
"""

__version__ = "0.1.0"
__author__ = "ZKLend Team"

from zklend.config import settings
from zklend.logging import get_logger, setup_logging

__all__ = [
    "settings",
    "get_logger",
    "setup_logging",
    "__version__",
]
