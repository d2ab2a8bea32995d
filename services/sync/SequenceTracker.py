import itertools


class SequenceTracker:
    """
    Hands out request sequence tokens and decides whether a response may still be committed.

    Tokens come from one monotonically increasing counter shared by all channels.
    A channel is a collection ("documents") or a single entity (("documents", 42)).

    - collection responses commit only while their token is the latest issued on the channel
    - entity responses commit only if their token is newer than the last one applied to that id
    - invalidation makes every outstanding token stale; requests are not aborted
    """

    def __init__(self):
        self._counter = itertools.count(1)
        self._latest: dict[str, int] = {}
        self._applied: dict[tuple[str, int], int] = {}
        self._floor = 0

    def issue(self, channel: str) -> int:
        """Issues a new token and makes it the latest one of the channel."""
        token = next(self._counter)
        self._latest[channel] = token
        return token

    def is_latest(self, channel: str, token: int) -> bool:
        return token > self._floor and self._latest.get(channel) == token

    def can_apply(self, kind: str, entity_id: int, token: int) -> bool:
        return token > self._floor and token > self._applied.get((kind, entity_id), 0)

    def mark_applied(self, kind: str, entity_id: int, token: int) -> None:
        key = (kind, entity_id)
        if token > self._applied.get(key, 0):
            self._applied[key] = token

    def invalidate(self, channel: str) -> None:
        """Supersedes every outstanding token of a collection channel."""
        self._latest[channel] = next(self._counter)

    def invalidate_all(self) -> None:
        """Makes every token issued so far stale, on every channel."""
        self._floor = next(self._counter)
        self._latest.clear()
        self._applied.clear()
