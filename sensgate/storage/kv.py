"""Named-option store abstraction."""

from __future__ import annotations

from abc import ABC, abstractmethod

from sensgate.core.errors import OptionStoreError

_TRUE_VALUES = frozenset({"true", "1", "yes", "on"})
_FALSE_VALUES = frozenset({"false", "0", "no", "off"})


def parse_option_bool(value: str) -> bool:
    candidate = str(value or "").strip().lower()
    if candidate in _TRUE_VALUES:
        return True
    if candidate in _FALSE_VALUES:
        return False
    raise OptionStoreError(f"invalid boolean value: {value!r}")


class OptionStore(ABC):
    @abstractmethod
    def get_option(self, key: str) -> str | None:
        pass

    @abstractmethod
    def set_option(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    def all_options(self) -> dict[str, str]:
        pass

    def get_bool(self, key: str, default: bool) -> bool:
        raw = self.get_option(key)
        if raw is None:
            return default
        return parse_option_bool(raw)
