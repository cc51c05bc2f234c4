from __future__ import annotations

from collections import defaultdict


class RequestTokens:
    """
    Monotonic request ids per target ("config", "suggestions", ...).

    Usage:
        token = tokens.issue("config")
        data = await load(...)
        if not tokens.is_current("config", token):
            return  # a newer request superseded this one
    """

    def __init__(self):
        self._latest: dict[str, int] = defaultdict(int)

    def issue(self, target: str) -> int:
        self._latest[target] += 1
        return self._latest[target]

    def is_current(self, target: str, token: int) -> bool:
        return self._latest[target] == token

    def cancel(self, target: str) -> None:
        """Invalidate whatever is in flight for `target`."""
        self._latest[target] += 1
