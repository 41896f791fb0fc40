"""
Host-facing integration: configuration, instruction decoding, dispatch and
the in-memory ledger.
"""

from .config import EngineConfig, config_from_env, load_config
from .dispatcher import ProcessResult, process_instruction, process_or_raise
from .instructions import decode_instruction
from .ledger import InMemoryLedger

__all__ = [
    "EngineConfig",
    "config_from_env",
    "load_config",
    "ProcessResult",
    "process_instruction",
    "process_or_raise",
    "decode_instruction",
    "InMemoryLedger",
]
