from typing import Any, Callable, Dict

KINDS = ("profile", "candidates", "results", "reviewStats", "reviews")


class DataCache:
    """Last loaded value per data type; reloaded only when empty or forced."""

    def __init__(self):
        self._values: Dict[str, Any] = {}

    def get(self, kind: str, loader: Callable[[], Any], force_refresh: bool = False) -> Any:
        if kind not in KINDS:
            raise KeyError(f"Unknown cache kind {kind!r}")
        if force_refresh or kind not in self._values:
            self._values[kind] = loader()
        return self._values[kind]

    def is_loaded(self, kind: str) -> bool:
        return kind in self._values

    def invalidate(self, *kinds: str) -> None:
        for kind in kinds:
            self._values.pop(kind, None)

    def clear(self) -> None:
        self._values.clear()
