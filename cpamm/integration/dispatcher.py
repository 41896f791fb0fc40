"""
Instruction entry point.

`process_or_raise` decodes the instruction, routes it through `_DISPATCH` and
propagates the first `AmmError`. `process_instruction` is the host-facing form:
it never raises an `AmmError`, reporting a `ProcessResult` with the stable
numeric code instead. Any other exception is a bug and propagates unchanged.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Sequence

from ..core.errors import AmmError
from ..core.types import Operation, Transition
from ..state.accounts import AccountInfo
from .config import EngineConfig
from .instructions import InstructionArgs, decode_instruction
from .ledger import Ledger
from .processor import (
    process_add_liquidity,
    process_initialize,
    process_remove_liquidity,
    process_swap,
)

logger = logging.getLogger(__name__)

Handler = Callable[[EngineConfig, Ledger, Sequence[AccountInfo], InstructionArgs], Transition]

_DISPATCH: Dict[Operation, Handler] = {
    Operation.INITIALIZE: process_initialize,
    Operation.ADD_LIQUIDITY: process_add_liquidity,
    Operation.REMOVE_LIQUIDITY: process_remove_liquidity,
    Operation.SWAP: process_swap,
}


@dataclass(frozen=True)
class ProcessResult:
    """Outcome of one instruction.

    ``ok=True`` carries the committed ``transition``; ``ok=False`` carries the
    ``error`` and its numeric ``code``. ``operation`` is None when the data
    could not be decoded.
    """

    ok: bool
    operation: Optional[Operation] = None
    transition: Optional[Transition] = None
    error: Optional[AmmError] = None
    code: int = 0


def process_or_raise(
    config: EngineConfig,
    ledger: Ledger,
    accounts: Sequence[AccountInfo],
    data: bytes,
) -> Transition:
    """Run one instruction.

    Raises:
        PoolError: Pool-specific rejection (custom code).
        ProgramError: Structural rejection (builtin code).
    """
    instruction = decode_instruction(data)
    logger.debug("dispatching %s with %d accounts", instruction.operation.name, len(accounts))
    handler = _DISPATCH[instruction.operation]
    return handler(config, ledger, accounts, instruction.args)


def _peek_operation(data: bytes) -> Optional[Operation]:
    if not data:
        return None
    try:
        return Operation(data[0])
    except ValueError:
        return None


def process_instruction(
    config: EngineConfig,
    ledger: Ledger,
    accounts: Sequence[AccountInfo],
    data: bytes,
) -> ProcessResult:
    operation = _peek_operation(data)
    try:
        transition = process_or_raise(config, ledger, accounts, data)
    except AmmError as exc:
        logger.info(
            "rejected %s: %s (code %d)",
            operation.name if operation is not None else "instruction",
            exc,
            exc.code,
        )
        return ProcessResult(ok=False, operation=operation, error=exc, code=exc.code)
    return ProcessResult(ok=True, operation=transition.operation, transition=transition)
