from typing import List, Optional

class BalanceUnavailableException(Exception):
    """ This exception is raised when a token balance could not be observed after all read attempts """
    def __init__(self, account, attempts, reason):
        self.account = account
        self.attempts = attempts
        self.reason = reason
        super().__init__(f"Balance unavailable for {account} after {attempts} attempts: {reason}")

class TransactionRejectedException(Exception):
    """ This exception is raised when the AMM program rejects the deposit transaction.
    The program log lines are kept verbatim so they can be surfaced to the user.
    """
    def __init__(self, message: str, logs: Optional[List[str]] = None, signature: Optional[str] = None):
        self.signature = signature
        self.logs = list(logs or [])
        self.reason = message
        super().__init__(f"Transaction rejected: {message}")

class SubmissionFailedException(Exception):
    """ This exception is raised when the transaction could not be submitted or confirmed for transport reasons """
    def __init__(self, reason, signature=None):
        self.reason = reason
        self.signature = signature
        super().__init__(f"Transaction submission failed: {reason}")

class ConfirmationTimeoutException(Exception):
    """ This exception is raised when the network does not confirm a submitted transaction in time """
    def __init__(self, signature, timeout):
        self.signature = signature
        self.timeout = timeout
        super().__init__(f"Transaction {signature} not confirmed within {timeout} seconds")

class KeypairLoadException(Exception):
    """ This exception is raised when the depositor keypair file is missing or malformed """
    def __init__(self, path, reason):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot load keypair from {path}: {reason}")

class InvalidConfigurationException(Exception):
    """ This exception is raised when a deposit configuration value fails validation """
    def __init__(self, field, reason):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid configuration for '{field}': {reason}")

class InvalidAmountException(Exception):
    """ This exception is raised when a deposit amount does not fit in an unsigned 64-bit integer """
    def __init__(self, amount):
        self.amount = amount
        super().__init__(f"Amount must be an integer between 0 and 2^64 - 1, got: {amount!r}")

class InstructionDecodeException(Exception):
    """ This exception is raised when instruction data is not a valid deposit payload """
    def __init__(self, reason):
        self.reason = reason
        super().__init__(f"Cannot decode deposit instruction: {reason}")

class InvalidStateTransitionException(Exception):
    """ This exception is raised when the deposit state machine is driven out of order """
    def __init__(self, current_state, target_state):
        self.current_state = current_state
        self.target_state = target_state
        super().__init__(f"Cannot transition deposit from {current_state} to {target_state}")
