"""
Error taxonomy for the task service.
Each error knows its HTTP status and the message the caller is allowed to see.
"""


class TaskServiceError(Exception):
    status_code = 500
    public_message = "Internal server error"

    def __init__(self, message: str = None):
        super().__init__(message or self.public_message)


class ValidationError(TaskServiceError):
    """Missing or invalid caller input. Reported verbatim."""
    status_code = 400

    @property
    def public_message(self) -> str:
        return str(self)


class TaskNotFound(TaskServiceError):
    status_code = 404
    public_message = "Task not found"


class UnprocessableIntent(TaskServiceError):
    """The model referenced a task that is not among the open tasks."""
    status_code = 422
    public_message = "AI matched non-existent task"


class MalformedModelOutput(TaskServiceError):
    """Completion text could not be parsed into an intent."""
    public_message = "Failed to parse AI response"

    def __init__(self, message: str, raw_text: str = ""):
        super().__init__(message)
        self.raw_text = raw_text


class GenerationFailure(TaskServiceError):
    public_message = "Failed to generate task"


class StoreFailure(TaskServiceError):
    public_message = "Database operation failed"
