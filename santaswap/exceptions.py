"""
Exceptions raised by the store adapter and the services.

Views catch these and turn them into flashed messages or error pages.
"""


class SantaError(Exception):
    """Base class for every santaswap error."""
    pass


# ============ Store errors ============

class StoreError(SantaError):
    """The document store could not serve a read or a write."""
    pass


class StoreNotProvisioned(StoreError):
    """The backing collection does not exist yet (run `flask db upgrade`)."""
    pass


class StoreUnavailable(StoreError):
    """Connectivity or permission failure talking to the store."""
    pass


class StoreNotFound(StoreError):
    """A partial update targeted a document that does not exist."""
    def __init__(self, key):
        self.key = key
        super().__init__(f"Document {key} not found")


# ============ Draw errors ============

class DrawRejected(SantaError):
    """The draw cannot run (fewer than 2 participants)."""
    pass


# ============ Action errors ============

class ActionInProgress(SantaError):
    """The same action is already running for this actor."""
    def __init__(self, action, actor):
        self.action = action
        self.actor = actor
        super().__init__(f"{action} already in progress for {actor}")
