import dataclasses

import pytest

from sensgate.core.matcher import AhoCorasick, MatcherSet, augmented_patterns


def test_aho_corasick_follows_failure_links():
    automaton = AhoCorasick(["abcd", "bc"])
    assert automaton.first_match("xabce") == "bc"

    automaton = AhoCorasick(["aab"])
    assert automaton.first_match("aaab") == "aab"
    assert automaton.first_match("abab") is None


def test_aho_corasick_overlapping_patterns():
    automaton = AhoCorasick(["he", "she", "his", "hers"])
    assert automaton.first_match("ushers") in {"she", "he"}
    assert automaton.first_match("xyz") is None
    assert len(automaton) == 4


def test_aho_corasick_ignores_empty_and_duplicate_patterns():
    automaton = AhoCorasick(["", "abc", "abc"])
    assert len(automaton) == 1
    assert AhoCorasick([]).first_match("anything") is None


def test_augmented_patterns_adds_normalized_letter_variants():
    patterns = augmented_patterns(["BadWord", "ＡＢＣ", "敏感词", "１２３", "badword"])
    assert patterns == ["BadWord", "ＡＢＣ", "敏感词", "１２３", "badword", "abc"]


def test_literal_hit():
    matchers = MatcherSet.build(["敏感词1"])
    assert matchers.contains("这是敏感词1测试")
    assert matchers.match("这是敏感词1测试") == "敏感词1"


def test_case_insensitive_hit_through_augmented_matcher():
    matchers = MatcherSet.build(["badword"])
    assert matchers.contains("I said BADword loudly")


def test_uppercase_term_matches_lowercase_text():
    matchers = MatcherSet.build(["ABC"])
    assert matchers.contains("see abc here")


def test_fullwidth_term_matches_halfwidth_text():
    matchers = MatcherSet.build(["ＡＢＣ"])
    assert matchers.contains("see abc here")
    assert matchers.contains("see ＡＢＣ here")


def test_halfwidth_term_matches_fullwidth_text():
    matchers = MatcherSet.build(["secret"])
    assert matchers.contains("the ＳＥＣＲＥＴ word")
    assert matchers.contains("the　ｓｅｃｒｅｔ")


def test_width_variant_without_letters_is_literal_only():
    matchers = MatcherSet.build(["１２３"])
    assert matchers.contains("code １２３")
    assert not matchers.contains("code 123")


def test_no_match_and_empty_inputs():
    matchers = MatcherSet.build(["badword"])
    assert not matchers.contains("nothing to see")
    assert not matchers.contains("")
    empty = MatcherSet.build([])
    assert not empty.contains("badword")
    assert not MatcherSet.empty().contains("")


def test_every_configured_term_is_found_as_substring():
    terms = ["foo", "Ｂar", "敏感", "x-y", "ＡＢＣ１"]
    matchers = MatcherSet.build(terms)
    for term in terms:
        for text in (term, f"pre {term}", f"{term} post", f"a{term}b"):
            assert matchers.contains(text), (term, text)


def test_normalized_containment_is_found():
    matchers = MatcherSet.build(["Secret", "ＫＥＹ"])
    for text in ("my SECRET", "ｓｅｃｒｅｔ!", "a secret", "the key", "ＫｅＹ", "KEY"):
        assert matchers.contains(text), text


def test_matcher_set_is_immutable_and_deduplicated():
    matchers = MatcherSet.build(["a", "b", "a", ""])
    assert matchers.terms == ("a", "b")
    with pytest.raises(dataclasses.FrozenInstanceError):
        matchers.terms = ("c",)
