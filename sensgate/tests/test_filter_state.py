import threading
import time

import pytest

from sensgate.config.sensitive import TermStore
from sensgate.core.errors import TermStoreError
from sensgate.core.filter_state import FilterState


def _state(tmp_path, words: str | None = "badword\nsecret", refusal: str | None = None, enabled: bool = True):
    config_dir = tmp_path / "config"
    config_dir.mkdir(parents=True, exist_ok=True)
    if words is not None:
        (config_dir / "sensitive_words.txt").write_text(words, encoding="utf-8")
    if refusal is not None:
        (config_dir / "sensitive_response.txt").write_text(refusal, encoding="utf-8")
    store = TermStore(config_dir / "sensitive_words.txt", config_dir / "sensitive_response.txt")
    return FilterState(store, enabled=enabled)


def test_init_once_loads_terms_and_refusal(tmp_path):
    state = _state(tmp_path, refusal="no way")
    assert not state.initialized
    snapshot = state.init_once()
    assert snapshot.enabled is True
    assert snapshot.terms == ("badword", "secret")
    assert snapshot.refusal == "no way"
    assert snapshot.matchers.contains("a SECRET")
    assert state.snapshot() is snapshot
    assert state.init_once() is snapshot


def test_init_once_runs_loader_exactly_once_under_contention(tmp_path, monkeypatch):
    state = _state(tmp_path)
    calls: list[int] = []
    original = state.term_store.load_terms

    def slow_load_terms():
        calls.append(1)
        time.sleep(0.05)
        return original()

    monkeypatch.setattr(state.term_store, "load_terms", slow_load_terms)
    results = []

    def worker():
        results.append(state.snapshot())

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(calls) == 1
    assert len({id(item) for item in results}) == 1
    assert results[0].terms == ("badword", "secret")


def test_update_terms_rebuilds_and_persists(tmp_path):
    state = _state(tmp_path)
    state.init_once()
    applied = state.update_terms("foo,bar\nbaz , qux")
    assert applied == ["foo", "bar", "baz", "qux"]

    snapshot = state.snapshot()
    assert snapshot.terms == ("foo", "bar", "baz", "qux")
    assert snapshot.matchers.terms == snapshot.terms
    assert snapshot.matchers.contains("BAZ!")
    assert not snapshot.matchers.contains("badword")
    assert state.term_store.words_file.read_text(encoding="utf-8") == "foo\nbar\nbaz\nqux"


def test_update_terms_with_empty_blob_is_noop(tmp_path):
    state = _state(tmp_path)
    before = state.init_once()
    assert state.update_terms(" ,\n  \n,") == []
    assert state.snapshot() is before
    assert state.term_store.words_file.read_text(encoding="utf-8") == "badword\nsecret"


def test_update_refusal_keeps_matchers(tmp_path):
    state = _state(tmp_path)
    before = state.init_once()
    state.update_refusal("请勿发送敏感内容")
    after = state.snapshot()
    assert after.refusal == "请勿发送敏感内容"
    assert after.matchers is before.matchers
    assert state.term_store.response_file.read_text(encoding="utf-8") == "请勿发送敏感内容"


def test_set_enabled(tmp_path):
    state = _state(tmp_path)
    state.set_enabled(False)
    assert state.snapshot().enabled is False
    state.set_enabled(True)
    assert state.snapshot().enabled is True


def test_update_terms_save_failure_is_raised_after_publish(tmp_path, monkeypatch):
    state = _state(tmp_path)
    state.init_once()

    def broken_save(terms):
        raise TermStoreError("disk full")

    monkeypatch.setattr(state.term_store, "save_terms", broken_save)
    with pytest.raises(TermStoreError):
        state.update_terms("newterm")
    assert state.snapshot().matchers.contains("a NEWTERM")


def test_readers_never_see_mismatched_terms_and_matchers(tmp_path):
    state = _state(tmp_path)
    state.init_once()
    stop = threading.Event()
    mismatches: list[tuple] = []

    def reader():
        while not stop.is_set():
            snapshot = state.snapshot()
            if snapshot.terms != snapshot.matchers.terms:
                mismatches.append(snapshot.terms)

    readers = [threading.Thread(target=reader) for _ in range(4)]
    for thread in readers:
        thread.start()
    for i in range(50):
        state.update_terms(f"term{i}\nother{i}")
    stop.set()
    for thread in readers:
        thread.join()

    assert mismatches == []
    assert state.snapshot().terms == ("term49", "other49")


def test_empty_refusal_update_keeps_current_text(tmp_path):
    state = _state(tmp_path, refusal="no way")
    before = state.init_once()
    assert state.update_refusal("") is False
    assert state.snapshot() is before
    assert state.term_store.response_file.read_text(encoding="utf-8") == "no way"


def test_concurrent_term_updates_persist_in_publish_order(tmp_path, monkeypatch):
    state = _state(tmp_path)
    state.init_once()
    store = state.term_store
    real_save = store.save_terms
    first_saving = threading.Event()

    def slow_save(terms):
        if terms == ["aaa"]:
            first_saving.set()
            time.sleep(0.2)
        real_save(terms)

    monkeypatch.setattr(store, "save_terms", slow_save)
    first = threading.Thread(target=state.update_terms, args=("aaa",))
    first.start()
    assert first_saving.wait(2.0)
    second = threading.Thread(target=state.update_terms, args=("bbb",))
    second.start()
    first.join()
    second.join()

    assert state.snapshot().terms == ("bbb",)
    assert tuple(store.load_terms()) == state.snapshot().terms
