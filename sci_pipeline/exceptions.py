class ImproperlyConfigured(Exception):
    pass


class PipelineError(Exception):

    def __init__(self, message, code=None, params=None):
        super().__init__(message, code)
        self.message = message
        self.code = code
        self.params = params or {}

    def __str__(self):
        return str(self.message)

    def to_dict(self):
        return {
            "error_class": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "params": self.params,
        }


class ConfigurationError(ImproperlyConfigured, PipelineError):
    """
    Raised when a command pattern cannot be resolved against the task's
    inputs, outputs and parameters. This is a workflow definition bug.
    """

    def __init__(self, message, code="configuration_error", params=None):
        PipelineError.__init__(self, message, code=code, params=params)


class ExecutionError(PipelineError):
    """Raised when a task's command exits with an error or cannot be started."""

    def __init__(self, message, code="execution_error", params=None, exception=None):
        super().__init__(message, code=code, params=params)
        self.exception = exception

    @property
    def returncode(self):
        return self.params.get("returncode")

    @property
    def stderr(self):
        return self.params.get("stderr")


class TargetError(PipelineError):
    """Raised when a filesystem operation on a target fails."""

    def __init__(self, message, code="target_error", params=None, exception=None):
        super().__init__(message, code=code, params=params)
        self.exception = exception


class StateError(ValueError, PipelineError):
    """Raised when a task is asked to execute outside the CREATED state."""

    def __init__(self, message, code="state_error", params=None):
        PipelineError.__init__(self, message, code=code, params=params)


class ResourceStateWarning(UserWarning):
    """
    An output file, temporary file or FIFO is present where it should not be,
    or a required FIFO is missing. Never raised: the task skips execution instead.
    """

    def __init__(self, message, path=None):
        super().__init__(message)
        self.message = message
        self.path = path

    def __str__(self):
        return self.message
