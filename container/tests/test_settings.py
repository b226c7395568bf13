# tests/test_settings.py
import pytest

from swiftcheck.settings import ConvertOptions, load_options


def test_defaults_match_typing_and_settle_policy():
    opts = ConvertOptions()
    assert opts.keystroke_delay_ms == 10
    assert opts.settle_timeout_ms == 15000
    assert opts.poll_interval_ms <= 500
    assert opts.settle_timeout == 15.0


def test_load_options_reads_environment():
    opts = load_options({"KEYSTROKE_DELAY_MS": "25", "SETTLE_TIMEOUT_MS": "30000", "POLL_INTERVAL_MS": "250"})
    assert opts.keystroke_delay == 0.025
    assert opts.settle_timeout_ms == 30000
    assert opts.poll_interval == 0.25


def test_load_options_falls_back_to_defaults():
    opts = load_options({})
    assert repr(opts) == "ConvertOptions(keystroke_delay_ms=10, settle_timeout_ms=15000, poll_interval_ms=100)"


@pytest.mark.parametrize("kwargs", [
    {"keystroke_delay_ms": -1},
    {"settle_timeout_ms": 0},
    {"poll_interval_ms": 0},
    {"poll_interval_ms": 500, "settle_timeout_ms": 500},
])
def test_invalid_options_rejected(kwargs):
    with pytest.raises(ValueError):
        ConvertOptions(**kwargs)


def test_typing_delay_required_only_on_demand():
    opts = ConvertOptions(keystroke_delay_ms=0)
    with pytest.raises(ValueError):
        opts.require_typing_delay()
