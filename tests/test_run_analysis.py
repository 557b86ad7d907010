import json

import pytest

from run_analysis import build_parser, main

RAMP = [float(x) for x in range(1, 52)]


def test_text_report_success(price_csv, capsys):
    code = main(["--input", str(price_csv(RAMP))])
    out = capsys.readouterr().out

    assert code == 0
    assert "Suggestion:" in out
    assert "BUY" in out
    assert "Breakout above recent high in uptrend" in out
    assert "41.5000" in out


def test_json_report(price_csv, capsys):
    code = main(["--input", str(price_csv(RAMP)), "--format", "json"])
    data = json.loads(capsys.readouterr().out)

    assert code == 0
    assert data['suggestion'] == "BUY"
    assert data['sma20'] == pytest.approx(41.5)
    assert data['sma50'] == pytest.approx(26.5)
    assert data['last_timestamp'] == "2025-01-03T02:00:00+00:00"


def test_context_flag_appends_market_context(price_csv, capsys):
    code = main(["--input", str(price_csv([100.0] * 51)), "--context"])
    out = capsys.readouterr().out

    assert code == 0
    assert "Market context" in out
    assert "SIDEWAYS" in out


def test_config_overrides_are_applied(price_csv, tmp_path, capsys):
    config = tmp_path / "params.json"
    config.write_text(json.dumps({"signal": {"short_period": 5, "long_period": 10, "breakout_lookback": 5}}))

    # 12 samples are too few for the defaults but enough for SMA(5)/SMA(10)
    code = main(["--input", str(price_csv(RAMP[:12])), "--config", str(config)])
    assert code == 0
    assert "BUY" in capsys.readouterr().out


def test_resampling_shrinks_series(price_csv, capsys):
    code = main(["--input", str(price_csv(RAMP)), "--resample-hours", "2"])
    assert code == 7
    assert "need at least 51 samples, got 26" in capsys.readouterr().err


@pytest.mark.parametrize("body, expected", [
    ("time,value\n2025-01-01T00:00:00Z,1.0\n", 4),
    ("timestamp,price\nnot-a-time,1.0\n", 5),
    ("timestamp,price\n2025-01-01T00:00:00Z,abc\n", 6),
    ("timestamp,price\n2025-01-01T00:00:00Z,1.0\n", 7),
])
def test_input_failures_map_to_exit_codes(write_csv, capsys, body, expected):
    code = main(["--input", str(write_csv(body))])
    err = capsys.readouterr().err

    assert code == expected
    assert err.startswith("Error: ")


def test_missing_input_file(tmp_path, capsys):
    code = main(["--input", str(tmp_path / "missing.csv")])
    assert code == 3
    assert "Input file not found" in capsys.readouterr().err


def test_insufficient_data_with_fifty_rows(price_csv, capsys):
    code = main(["--input", str(price_csv([100.0] * 50))])
    assert code == 7
    assert "need at least 51 samples, got 50" in capsys.readouterr().err


def test_invalid_config_file(price_csv, tmp_path):
    config = tmp_path / "params.json"
    config.write_text('{"signal": {"short_period": 0}}')
    assert main(["--input", str(price_csv(RAMP)), "--config", str(config)]) == 2


def test_negative_resample_hours_is_a_usage_error(price_csv):
    with pytest.raises(SystemExit) as exc:
        main(["--input", str(price_csv(RAMP)), "--resample-hours", "-1"])
    assert exc.value.code == 2


def test_input_is_required():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


@pytest.mark.parametrize("overrides", [
    {"regime": {"min_trend_strength": "x"}},
    {"output": {"decimal_places": -1}},
    {"output": {"label_width": "wide"}},
])
def test_bad_config_values_exit_before_analysis(price_csv, tmp_path, capsys, overrides):
    config = tmp_path / "params.json"
    config.write_text(json.dumps(overrides))

    code = main(["--input", str(price_csv(RAMP)), "--config", str(config), "--context"])
    captured = capsys.readouterr()

    assert code == 2
    assert captured.err.startswith("Error: ")
    assert captured.out == ""
