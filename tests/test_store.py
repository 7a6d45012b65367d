from __future__ import annotations

import logging

import pytest

from m365_standards.models import Severity
from m365_standards.sinks.log_sink import StandardsLogSink
from m365_standards.store.compliance_store import ComplianceStore


@pytest.fixture
def store(tmp_path):
    return ComplianceStore(tmp_path / "nested" / "standards.db")


class TestComplianceStore:
    def test_comparison_field_upserts(self, store):
        store.set_comparison_field("standards.ExternalCalendarSharing", False, "contoso")
        store.set_comparison_field("standards.ExternalCalendarSharing", True, "contoso")
        assert store.get_comparison_field("standards.ExternalCalendarSharing", "contoso") is True
        assert store.get_comparison_field("standards.ExternalCalendarSharing", "fabrikam") is None

    def test_baseline_field_keeps_value_type(self, store):
        store.set_baseline_field("ExternalCalendarSharingDisabled", False, "bool", "contoso")
        assert store.get_baseline_field("ExternalCalendarSharingDisabled", "contoso") == {
            "value": False,
            "value_type": "bool",
        }

    def test_alerts_are_appended(self, store):
        store.raise_alert("External calendar sharing is enabled", {"enabled": True},
                          "contoso", "ExternalCalendarSharing", "std-1")
        store.raise_alert("External calendar sharing is enabled", {"enabled": True},
                          "contoso", "ExternalCalendarSharing", "std-1")
        alerts = store.get_alerts("contoso")
        assert len(alerts) == 2
        assert alerts[0]["payload"] == {"enabled": True}
        assert alerts[0]["standard_id"] == "std-1"
        assert store.get_alerts("fabrikam") == []


class TestStandardsLogSink:
    def test_persists_and_logs(self, store, caplog):
        sink = StandardsLogSink(store)
        with caplog.at_level(logging.INFO, logger="m365_standards.standards"):
            sink.log("Standards", "contoso", "External calendar sharing is already disabled",
                     Severity.INFO)
            sink.log("Standards", "contoso", "Could not get state. Error: Forbidden",
                     Severity.ERROR, {"kind": "fetch"})

        entries = store.get_log_entries("contoso")
        assert [e["severity"] for e in entries] == ["Error", "Info"]
        assert entries[0]["data"] == {"kind": "fetch"}
        assert [r.levelno for r in caplog.records] == [logging.INFO, logging.ERROR]
        assert "[Standards] [contoso]" in caplog.records[0].getMessage()

    def test_accepts_plain_severity_strings(self, caplog):
        sink = StandardsLogSink()
        with caplog.at_level(logging.WARNING, logger="m365_standards.standards"):
            sink.log("Standards", "contoso", "heads up", "Warning")
        assert caplog.records[0].levelno == logging.WARNING
