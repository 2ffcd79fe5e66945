class ConflictError(Exception):
    """A uniqueness rule was violated (e.g. email already registered)."""

    def __init__(self, message: str = "Conflict"):
        super().__init__(message)
        self.message = message
