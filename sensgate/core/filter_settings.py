"""Operator-facing live updates of the sensitive filter."""

from __future__ import annotations

from dataclasses import dataclass

from sensgate.config.sensitive import serialize_terms
from sensgate.core.errors import OptionStoreError, TermStoreError
from sensgate.core.filter_state import FilterState
from sensgate.storage.kv import OptionStore, parse_option_bool
from sensgate.util.logger import logger

KEY_ENABLED = "SensitiveFilterEnabled"
KEY_WORDS = "SensitiveWords"
KEY_RESPONSE = "SensitiveFilterResponse"
SETTING_KEYS = (KEY_ENABLED, KEY_WORDS, KEY_RESPONSE)


@dataclass(slots=True)
class SettingResult:
    success: bool
    message: str = ""

    def to_dict(self) -> dict:
        return {"success": self.success, "message": self.message}


class FilterSettings:
    def __init__(self, state: FilterState, options: OptionStore) -> None:
        self.state = state
        self.options = options

    def restore_enabled(self) -> None:
        """Apply the persisted enabled flag, if any, to the live state."""
        try:
            raw = self.options.get_option(KEY_ENABLED)
            if raw is None:
                return
            self.state.set_enabled(parse_option_bool(raw))
        except OptionStoreError as exc:
            logger.warning("restore %s from option store failed: %s", KEY_ENABLED, exc)

    def apply(self, key: str, value: str) -> SettingResult:
        try:
            if key == KEY_ENABLED:
                flag = parse_option_bool(value)
                self.options.set_option(KEY_ENABLED, "true" if flag else "false")
                self.state.set_enabled(flag)
            elif key == KEY_WORDS:
                if not self.state.update_terms(value):
                    return SettingResult(False, "sensitive words list is empty")
                self.options.set_option(KEY_WORDS, value)
            elif key == KEY_RESPONSE:
                if not self.state.update_refusal(value):
                    return SettingResult(False, "sensitive response is empty")
                self.options.set_option(KEY_RESPONSE, value)
            else:
                logger.warning("sensitive filter setting rejected key=%s", key)
                return SettingResult(False, "invalid setting")
        except (TermStoreError, OptionStoreError) as exc:
            logger.error("sensitive filter setting failed key=%s error=%s", key, exc)
            return SettingResult(False, str(exc))
        logger.info("sensitive filter setting applied key=%s", key)
        return SettingResult(True)

    def current(self) -> dict:
        snapshot = self.state.snapshot()
        return {
            KEY_ENABLED: snapshot.enabled,
            KEY_WORDS: serialize_terms(list(snapshot.terms)),
            KEY_RESPONSE: snapshot.refusal,
        }
