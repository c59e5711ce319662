from sensgate.core.normalize import contains_ascii_letter, normalize


def test_normalize_lowercases_ascii():
    assert normalize("I said BADword") == "i said badword"


def test_normalize_folds_fullwidth_ascii_and_ideographic_space():
    assert normalize("ＡＢＣ") == "abc"
    assert normalize("Ｈｅｌｌｏ　Ｗｏｒｌｄ！") == "hello world!"
    assert normalize("１２３＃～") == "123#~"


def test_normalize_leaves_other_scripts_untouched():
    assert normalize("敏感词") == "敏感词"
    assert normalize("") == ""


def test_normalize_is_idempotent():
    samples = [
        "ＡＢＣ abc ABC",
        "Ｈｅｌｌｏ　Ｗｏｒｌｄ",
        "混合 ＴＥＸＴ with ｆｕｌｌ width！",
        "plain ascii",
        "Straße İstanbul",
    ]
    for sample in samples:
        once = normalize(sample)
        assert normalize(once) == once


def test_contains_ascii_letter():
    assert contains_ascii_letter("敏感a")
    assert contains_ascii_letter("Z9")
    assert not contains_ascii_letter("１２３")
    assert not contains_ascii_letter("ＡＢＣ")
    assert not contains_ascii_letter("敏感词")
