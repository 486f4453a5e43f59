"""Exceptions raised by the unifier pipeline."""


class UnifierError(Exception):
    pass


class UnsupportedEnvironmentError(UnifierError):
    """No usable way to select a root directory."""


class SelectionCancelled(UnifierError):
    """The user abandoned root selection. Not a failure."""


class RunCancelled(UnifierError):
    """A run was cancelled while files were being classified."""


class DispatcherError(UnifierError):
    """The worker pool could not be started or died as a whole."""


class ProcessingError(UnifierError):
    pass


class RenderError(UnifierError):
    pass
