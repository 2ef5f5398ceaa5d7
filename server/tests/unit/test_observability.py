"""Unit tests for the metrics collector."""

from prometheus_client import CollectorRegistry

from travelbook.core.observability import MetricsCollector


def test_record_request_uses_route_labels():
    collector = MetricsCollector(CollectorRegistry())

    collector.record_request("GET", "/api/packages/{package_id}", 200, 0.05)
    collector.record_request("GET", "/api/packages/{package_id}", 200, 0.07)

    value = collector.registry.get_sample_value(
        "http_requests_total",
        {"method": "GET", "endpoint": "/api/packages/{package_id}", "status_code": "200"},
    )
    assert value == 2.0


def test_booking_metrics():
    collector = MetricsCollector(CollectorRegistry())

    collector.record_booking_created(1300.0)
    collector.record_booking_status_change("cancelled")

    registry = collector.registry
    assert registry.get_sample_value("bookings_created_total") == 1.0
    assert registry.get_sample_value("booking_total_price_sum") == 1300.0
    assert registry.get_sample_value("booking_status_changes_total", {"status": "cancelled"}) == 1.0
    assert b"bookings_created_total" in collector.render()
