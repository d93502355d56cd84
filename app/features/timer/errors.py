"""Timer feature exceptions"""


class TimerError(Exception):
    """Base class for timer engine errors"""


class TimerValidationError(TimerError, ValueError):
    """Malformed task id or status; raised before any I/O or state change"""


class TimerBusyError(TimerError):
    """Another transition is still in flight on this engine"""


class TimerClosedError(TimerError):
    """The engine has been shut down"""


class SessionNotFoundError(TimerError, LookupError):
    """No time session with the requested id"""
