"""Storage layer exceptions."""


class StoreConnectionError(Exception):
    """A backing store could not be reached at startup."""

    def __init__(self, store: str, message: str):
        super().__init__(f"{store}: {message}")
        self.store = store
