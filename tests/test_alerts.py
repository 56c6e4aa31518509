import pytest
from medicine_utils import AlertKind, Priority, filter_alerts, generate_alerts


def summary(alerts):
    return [(a.medicine_id, a.kind, a.priority) for a in alerts]


def test_scenario_alerts(scenario, today):
    alerts = generate_alerts(scenario, today)
    assert summary(alerts) == [
        ("a", AlertKind.EXPIRED, Priority.HIGH),
        ("a", AlertKind.OUT_OF_STOCK, Priority.HIGH),
        ("b", AlertKind.EXPIRING_SOON, Priority.MEDIUM),
        ("b", AlertKind.LOW_STOCK, Priority.MEDIUM),
    ]
    assert [a.message for a in alerts] == [
        "A has expired",
        "A is out of stock",
        "B expires in 10 days",
        "B is running low (5 left)",
    ]


def test_safe_well_stocked_record_has_no_alerts(record, today):
    assert generate_alerts([record("C", days=400, quantity=50)], today) == []


def test_urgent_expiry_is_high_priority(record, today):
    alerts = generate_alerts([record("Soon", days=7, quantity=100)], today)
    assert summary(alerts) == [("soon", AlertKind.EXPIRING_SOON, Priority.HIGH)]
    assert alerts[0].message == "Soon expires in 7 days"


def test_expired_suppresses_expiring_soon(record, today):
    alerts = generate_alerts([record("Today", days=0, quantity=100)], today)
    assert [a.kind for a in alerts] == [AlertKind.EXPIRED]


def test_high_priority_first_then_generation_order(record, today):
    records = [
        record("Low", days=200, quantity=2),
        record("Empty", days=200, quantity=0),
        record("Urgent", days=3, quantity=80),
        record("Later", days=20, quantity=80),
    ]
    alerts = generate_alerts(records, today)
    assert [a.medicine_id for a in alerts] == ["empty", "urgent", "low", "later"]
    assert [a.priority for a in alerts] == [Priority.HIGH, Priority.HIGH, Priority.MEDIUM, Priority.MEDIUM]


def test_custom_window_and_urgency(record, today):
    alerts = generate_alerts([record("Far", days=45, quantity=80)], today, window_days=60, urgent_days=50)
    assert summary(alerts) == [("far", AlertKind.EXPIRING_SOON, Priority.HIGH)]


def test_alert_ids_and_medicine_reference(scenario, today):
    alerts = generate_alerts(scenario, today)
    assert [a.alert_id for a in alerts] == ["expired-a", "out-stock-a", "expiring-b", "low-stock-b"]
    assert alerts[0].medicine is scenario[0]


def test_missing_expiry_only_raises_stock_alerts(record, today):
    alerts = generate_alerts([record("Undated", days=None, quantity=0)], today)
    assert [a.kind for a in alerts] == [AlertKind.OUT_OF_STOCK]


@pytest.mark.parametrize("expiry, stock, kinds", [
    (True, True, [AlertKind.EXPIRED, AlertKind.OUT_OF_STOCK, AlertKind.EXPIRING_SOON, AlertKind.LOW_STOCK]),
    (True, False, [AlertKind.EXPIRED, AlertKind.EXPIRING_SOON]),
    (False, True, [AlertKind.OUT_OF_STOCK, AlertKind.LOW_STOCK]),
    (False, False, []),
])
def test_filter_alerts_by_setting(scenario, today, expiry, stock, kinds):
    alerts = filter_alerts(generate_alerts(scenario, today), expiry=expiry, stock=stock)
    assert [a.kind for a in alerts] == kinds
