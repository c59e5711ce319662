import os
import stat

import pytest

from sensgate.config.sensitive import DEFAULT_REFUSAL, DEFAULT_WORDS, TermStore, parse_terms, serialize_terms
from sensgate.core.errors import TermStoreError


def _store(tmp_path) -> TermStore:
    return TermStore(
        words_file=tmp_path / "config" / "sensitive_words.txt",
        response_file=tmp_path / "config" / "sensitive_response.txt",
    )


def test_parse_terms_mixed_separators():
    assert parse_terms("foo,bar\nbaz , qux") == ["foo", "bar", "baz", "qux"]


def test_parse_terms_skips_blanks_and_duplicates():
    blob = "  alpha  \n\n   \n beta,, alpha ,gamma\r\n敏感词 \n,,\n"
    assert parse_terms(blob) == ["alpha", "beta", "gamma", "敏感词"]
    assert parse_terms("") == []
    assert parse_terms(" , \n ,") == []


def test_load_terms_creates_default_file(tmp_path):
    store = _store(tmp_path)
    terms = store.load_terms()
    assert terms == list(DEFAULT_WORDS)
    assert store.words_file.read_text(encoding="utf-8") == "\n".join(DEFAULT_WORDS)


def test_load_terms_reads_existing_file(tmp_path):
    store = _store(tmp_path)
    store.words_file.parent.mkdir(parents=True)
    store.words_file.write_text("one, two\nthree\n", encoding="utf-8")
    assert store.load_terms() == ["one", "two", "three"]


def test_load_terms_io_error_yields_empty_list(tmp_path):
    store = _store(tmp_path)
    store.words_file.mkdir(parents=True)
    assert store.load_terms() == []


def test_load_refusal_creates_default_and_reads_verbatim(tmp_path):
    store = _store(tmp_path)
    assert store.load_refusal() == DEFAULT_REFUSAL
    assert store.response_file.read_text(encoding="utf-8") == DEFAULT_REFUSAL

    store.response_file.write_text("  请文明用语\n", encoding="utf-8")
    assert store.load_refusal() == "  请文明用语\n"


def test_load_refusal_empty_file_keeps_default(tmp_path):
    store = _store(tmp_path)
    store.response_file.parent.mkdir(parents=True)
    store.response_file.write_text("", encoding="utf-8")
    assert store.load_refusal("fallback text") == "fallback text"


def test_save_terms_round_trip_and_permissions(tmp_path):
    store = _store(tmp_path)
    terms = ["foo", "bar", "敏感词"]
    store.save_terms(terms)
    assert store.words_file.read_text(encoding="utf-8") == "foo\nbar\n敏感词"
    assert stat.S_IMODE(os.stat(store.words_file).st_mode) == 0o644
    assert parse_terms(serialize_terms(terms)) == terms
    assert store.load_terms() == terms


def test_save_refusal_writes_verbatim(tmp_path):
    store = _store(tmp_path)
    store.save_refusal("blocked\nby policy ")
    assert store.response_file.read_text(encoding="utf-8") == "blocked\nby policy "


def test_save_errors_are_raised(tmp_path):
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("x", encoding="utf-8")
    store = TermStore(words_file=blocker / "words.txt", response_file=blocker / "response.txt")
    with pytest.raises(TermStoreError):
        store.save_terms(["a"])
    with pytest.raises(TermStoreError):
        store.save_refusal("a")


def test_ensure_files_does_not_overwrite(tmp_path):
    store = _store(tmp_path)
    store.words_file.parent.mkdir(parents=True)
    store.words_file.write_text("mine", encoding="utf-8")
    store.ensure_files()
    assert store.words_file.read_text(encoding="utf-8") == "mine"
    assert store.response_file.read_text(encoding="utf-8") == DEFAULT_REFUSAL


def test_from_settings_uses_config_dir(tmp_path, monkeypatch):
    from sensgate.config.settings import settings

    monkeypatch.setattr(settings, "config_dir", str(tmp_path / "cfg"))
    monkeypatch.setattr(settings, "sensitive_words_file", "")
    monkeypatch.setattr(settings, "sensitive_response_file", str(tmp_path / "other" / "resp.txt"))
    store = TermStore.from_settings()
    assert store.words_file == tmp_path / "cfg" / "sensitive_words.txt"
    assert store.response_file == tmp_path / "other" / "resp.txt"
