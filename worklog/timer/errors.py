"""Timer engine exceptions."""


class TimerError(Exception):
    """Base class for timer engine failures."""


class ValidationError(TimerError, ValueError):
    """A command was issued with invalid input (e.g. no project)."""


class PersistenceError(TimerError):
    """A durable write to the time entry store failed."""


class NoActiveSessionError(TimerError):
    """The engine holds no session."""
