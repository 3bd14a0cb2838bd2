import json

from teamtravel.obs.context import clear_context, request_id_var, user_id_var
from teamtravel.obs.logger import log_event
from teamtravel.obs.metrics import get_counter, get_metrics_snapshot, inc_counter, record_timing, reset_metrics


def last_log_line(capsys):
    return json.loads(capsys.readouterr().out.strip().splitlines()[-1])


def test_logger_redacts_email(capsys):
    log_event("step", email="sarah@acmetech.com", step="unit-test")
    line = last_log_line(capsys)
    assert line["email"] == "s***@acmetech.com"
    assert line["event"] == "step"
    assert line["level"] == "INFO"


def test_logger_carries_request_context(capsys):
    request_id_var.set("req-9")
    user_id_var.set("u-9")
    try:
        log_event("ctx", level="WARNING")
        line = last_log_line(capsys)
    finally:
        clear_context()
    assert line["request_id"] == "req-9"
    assert line["user_id"] == "u-9"
    assert line["level"] == "WARNING"


def test_explicit_user_id_wins(capsys):
    user_id_var.set("ambient")
    try:
        log_event("ctx", user_id="explicit")
        line = last_log_line(capsys)
    finally:
        clear_context()
    assert line["user_id"] == "explicit"


def test_counters_are_keyed_by_labels():
    inc_counter("chat_messages_total", {"route": "help"})
    inc_counter("chat_messages_total", {"route": "help"})
    inc_counter("chat_messages_total", {"route": "greeting"}, amount=3)
    assert get_counter("chat_messages_total", {"route": "help"}) == 2
    assert get_counter("chat_messages_total", {"route": "greeting"}) == 3
    assert get_counter("chat_messages_total") == 0


def test_histogram_bins():
    record_timing("search_ms", 75, {"origin": "JFK"})
    record_timing("search_ms", 25000, {"origin": "JFK"})
    record_timing("search_ms", None)
    hist = get_metrics_snapshot()["histograms"][0]
    assert hist["counts"][1] == 1
    assert hist["counts"][-1] == 1
    assert hist["sum_ms"] == 25075.0


def test_reset_metrics():
    inc_counter("x")
    reset_metrics()
    assert get_metrics_snapshot() == {"counters": [], "histograms": []}
