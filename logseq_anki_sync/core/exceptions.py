__all__ = [
    "AnkiConnectError",
    "ManagerInitError",
    "MissingManagerError",
]


class AnkiConnectError(Exception):
    """
    Raised when AnkiConnect returns an error for a request, or for an
    individual action within a `multi` request.
    """

    action: str | None
    error: str

    def __init__(self, error: str, action: str | None = None):
        self.action = action
        self.error = error
        prefix = f"{action}: " if action else ""
        super().__init__(f"{prefix}{error}")


class ManagerInitError(Exception):
    """
    Raised when a {obj}`NoteManager` can't load the remote state of its
    model. The model is then unusable for the remainder of the sync run.
    """

    def __init__(self, model_name: str, reason: str):
        self.model_name = model_name
        super().__init__(
            f"Failed to initialize manager for model '{model_name}': {reason}"
        )


class MissingManagerError(Exception):
    """
    Raised while processing a note whose target model has no initialized
    manager.
    """

    def __init__(self, model_name: str):
        self.model_name = model_name
        super().__init__(f"No manager found for model: {model_name}")

