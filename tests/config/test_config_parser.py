"""
Brief: Tests for mdnsprobe.config.config_parser.

Inputs:
  - None

Outputs:
  - None
"""

import pytest

from mdnsprobe.config.config_parser import (
    DEFAULT_TIMEOUT_SECONDS,
    ProbeConfig,
    load_config,
    parse_duration,
)


@pytest.mark.parametrize(
    "value,expected",
    [
        ("2s", 2.0),
        ("500ms", 0.5),
        ("1m30s", 90.0),
        ("1.5h", 5400.0),
        ("250us", 0.00025),
        ("0", 0.0),
        ("3", 3.0),
        (0, 0.0),
        (1.25, 1.25),
    ],
)
def test_parse_duration(value, expected):
    assert parse_duration(value) == pytest.approx(expected)


@pytest.mark.parametrize("value", ["", "abc", "2x", "s", "1s junk", "-1s", -3, True, "inf", "-inf", "nan", float("inf")])
def test_parse_duration_rejects_bad_values(value):
    with pytest.raises(ValueError):
        parse_duration(value)


def test_defaults():
    cfg = load_config()
    assert cfg.timeout == DEFAULT_TIMEOUT_SECONDS
    assert cfg.show_addresses is False
    assert cfg.destination == ("224.0.0.251", 5353)
    assert cfg.bind_host == "0.0.0.0"
    assert cfg.logging == {}


def test_yaml_file_and_overrides(tmp_path):
    """
    Brief: YAML values load, and non-None overrides win.

    Inputs:
      - YAML with timeout, show_addresses and logging
      - overrides: timeout=0, show_addresses=None

    Outputs:
      - None: Asserts merged values
    """
    path = tmp_path / "probe.yaml"
    path.write_text(
        "timeout: 1m\nshow_addresses: true\nlogging:\n  level: debug\n"
    )
    cfg = load_config(str(path), {"timeout": 0, "show_addresses": None})
    assert cfg.timeout == 0.0
    assert cfg.show_addresses is True
    assert cfg.logging == {"level": "debug"}

    assert load_config(str(path)).timeout == 60.0


def test_empty_yaml_file_uses_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    assert load_config(str(path)) == ProbeConfig()


@pytest.mark.parametrize(
    "body",
    [
        "timeout: soon\n",
        "port: 0\n",
        "group: not-an-ip\n",
        "unknown_key: 1\n",
        "- a\n- b\n",
        "timeout: [\n",
    ],
)
def test_invalid_config_raises_value_error(tmp_path, body):
    path = tmp_path / "bad.yaml"
    path.write_text(body)
    with pytest.raises(ValueError):
        load_config(str(path))


def test_missing_file_raises_value_error(tmp_path):
    with pytest.raises(ValueError) as excinfo:
        load_config(str(tmp_path / "nope.yaml"))
    assert "nope.yaml" in str(excinfo.value)


def test_non_finite_timeout_is_rejected_by_load_config():
    with pytest.raises(ValueError):
        load_config(None, {"timeout": "inf"})


def test_huge_finite_timeout_is_accepted():
    assert load_config(None, {"timeout": "1e20"}).timeout == 1e20
