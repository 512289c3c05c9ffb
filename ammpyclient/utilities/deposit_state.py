from enum import Enum
from functools import wraps
from loguru import logger
from ammpyclient.utilities.exceptions import InvalidStateTransitionException

class DepositState(Enum):
    INIT = "init"                               # Deposit request created
    ADDRESSES_DERIVED = "addresses_derived"     # Pool and depositor accounts known
    PRE_BALANCES_READ = "pre_balances_read"     # Balances observed before the deposit
    INSTRUCTION_BUILT = "instruction_built"     # Payload encoded
    SUBMITTED = "submitted"                     # Transaction sent, cannot be aborted anymore
    CONFIRMED = "confirmed"                     # Network reported "confirmed" commitment
    POST_BALANCES_READ = "post_balances_read"   # Balances observed after the deposit
    REPORTED = "reported"                       # Result reported, terminal
    FAILED = "failed"                           # Terminal failure

# happy path order
DEPOSIT_STATE_ORDER = [
    DepositState.INIT,
    DepositState.ADDRESSES_DERIVED,
    DepositState.PRE_BALANCES_READ,
    DepositState.INSTRUCTION_BUILT,
    DepositState.SUBMITTED,
    DepositState.CONFIRMED,
    DepositState.POST_BALANCES_READ,
    DepositState.REPORTED,
]
TERMINAL_STATES = [DepositState.REPORTED, DepositState.FAILED]
# states from which a deposit can still be abandoned without touching the ledger
ABORTABLE_STATES = [DepositState.INIT, DepositState.ADDRESSES_DERIVED, DepositState.PRE_BALANCES_READ, DepositState.INSTRUCTION_BUILT]

class DepositStateMachine:
    """Tracks one deposit through DEPOSIT_STATE_ORDER, or into FAILED"""

    def __init__(self):
        self.state = DepositState.INIT
        self.history = [DepositState.INIT]

    def can_transition(self, target: DepositState) -> bool:
        if self.state in TERMINAL_STATES:
            return False
        if target == DepositState.FAILED:
            return True
        current_index = DEPOSIT_STATE_ORDER.index(self.state)
        return DEPOSIT_STATE_ORDER.index(target) == current_index + 1

    def transition(self, target: DepositState):
        if not self.can_transition(target):
            raise InvalidStateTransitionException(self.state.value, target.value)
        logger.debug(f"Deposit state: {self.state.value} -> {target.value}")
        self.state = target
        self.history.append(target)

    def fail(self):
        if self.state not in TERMINAL_STATES:
            self.transition(DepositState.FAILED)

    @property
    def is_abortable(self) -> bool:
        return self.state in ABORTABLE_STATES

def advances_to(target: DepositState):
    """
    Decorator that moves the owner's `state_machine` to `target` once the
    wrapped coroutine returns. On exception the machine moves to FAILED.
    """
    def decorator(func):
        @wraps(func)
        async def wrapper(self, *args, **kwargs):
            try:
                result = await func(self, *args, **kwargs)
            except BaseException:
                self.state_machine.fail()
                raise
            self.state_machine.transition(target)
            return result
        return wrapper
    return decorator
