import pytest

from worldfairs.config import DEFAULTS, load_rules


def test_no_path_gives_defaults():
    assert load_rules(None) == DEFAULTS
    assert load_rules("") == DEFAULTS


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError, match="absent.yml"):
        load_rules(str(tmp_path / "absent.yml"))


def test_empty_file_gives_defaults(tmp_path):
    p = tmp_path / "empty.yml"
    p.write_text("")
    assert load_rules(str(p)) == DEFAULTS


def test_yaml_overrides_merge(tmp_path):
    p = tmp_path / "rules.yml"
    p.write_text(
        "alpha: 0.01\n"
        "multicollinearity:\n  vif_threshold: 10\n"
        "models:\n  only:\n    response: visitors\n    predictors: [area]\n"
        "unknown_key: 1\n"
    )
    rules = load_rules(str(p))
    assert rules["alpha"] == 0.01
    assert rules["multicollinearity"]["vif_threshold"] == 10
    # untouched sections keep their defaults
    assert rules["influence"]["cooks_numerator"] == 4
    assert rules["confidence_level"] == 0.95
    # models replace the default set
    assert list(rules["models"]) == ["only"]
    assert "unknown_key" not in rules


def test_defaults_not_mutated(tmp_path):
    rules = load_rules(None)
    rules["influence"]["cooks_numerator"] = 99
    assert DEFAULTS["influence"]["cooks_numerator"] == 4
