"""Exceptions raised inside Intent Bridge stages.

Each stage catches its own errors at its boundary and degrades to a
structured result; these types make the fallback decision explicit.
"""


class IntentBridgeError(Exception):
    """Base exception for the Intent Bridge."""
    pass


class DelegateError(IntentBridgeError):
    """Language-model delegate failed or returned an unusable parse."""
    pass


class ExecutionError(IntentBridgeError):
    """A live API call could not be built or did not succeed."""
    pass


class PersistenceError(IntentBridgeError):
    """The learning store could not be read or written."""
    pass


class RegistrationError(IntentBridgeError):
    """A service registration record is malformed."""
    pass
