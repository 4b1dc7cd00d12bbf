from __future__ import annotations

from santaswap.documents import MemoryDocumentStore
from santaswap.exceptions import StoreUnavailable

ADMIN_NAME = "Gerardo"
ADMIN_PASSWORD = "polo-norte"


def login(client, name, password="pw", follow_redirects=False):
    return client.post(
        "/auth/login",
        data={"name": name, "password": password},
        follow_redirects=follow_redirects,
    )


def follow_cycle(assignments):
    """Walk giver -> receiver from the first giver; returns the visit order."""
    edges = {a.giver: a.receiver for a in assignments}
    start = assignments[0].giver
    order = [start]
    current = edges[start]
    while current != start:
        order.append(current)
        current = edges[current]
    return order


class BrokenReads(MemoryDocumentStore):
    """Fails the first ``failures`` reads, then behaves."""

    def __init__(self, failures=1, error=None):
        super().__init__()
        self.failures = failures
        self.error = error or StoreUnavailable("network unreachable")

    def get(self, key):
        if self.failures > 0:
            self.failures -= 1
            raise self.error
        return super().get(key)


class ReadOnly(MemoryDocumentStore):
    def set(self, key, data):
        raise StoreUnavailable("permission-denied")

    def update(self, key, fields):
        raise StoreUnavailable("permission-denied")
