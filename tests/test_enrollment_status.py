"""
Tests for autopilot_tools.enrollment_status module.
"""

import pytest

from autopilot_tools import enrollment_status as esp
from autopilot_tools.enrollment_status import EnrollmentStatusOptions
from autopilot_tools.errors import InputError


class TestBuildPageBody:
    """Tests for the ESP body."""

    def test_defaults(self):
        body = esp.build_page_body(EnrollmentStatusOptions(display_name="ESP"))
        assert body["@odata.type"] == esp.ESP_TYPE
        assert body["displayName"] == "ESP"
        assert body["showInstallationProgress"] is True
        assert body["installProgressTimeoutInMinutes"] == 60
        assert body["customErrorMessage"] == esp.DEFAULT_ERROR_MESSAGE
        assert body["blockDeviceSetupRetryByUser"] is False

    def test_merge_keeps_unsupplied(self):
        """Unsupplied options keep the current values; explicit False applies."""
        current = esp.build_page_body(EnrollmentStatusOptions(
            display_name="ESP", timeout_minutes=90, allow_log_collection=True, allow_reset_on_failure=True,
        ))

        body = esp.build_page_body(EnrollmentStatusOptions(allow_reset_on_failure=False), current)

        assert body["installProgressTimeoutInMinutes"] == 90
        assert body["allowLogCollectionOnInstallFailure"] is True
        assert body["allowDeviceResetOnInstallFailure"] is False
        assert body["displayName"] == "ESP"

    def test_bad_timeout(self):
        with pytest.raises(InputError):
            esp.build_page_body(EnrollmentStatusOptions(display_name="ESP", timeout_minutes=0))


class TestPageCrud:
    """Tests for status page commands."""

    def test_list_filters_type(self, session):
        """Only completion page configurations are listed."""
        session.get_all.return_value = [
            {"id": "1", "@odata.type": esp.ESP_TYPE},
            {"id": "2", "@odata.type": "#microsoft.graph.deviceEnrollmentLimitConfiguration"},
        ]
        assert [p["id"] for p in esp.get_pages(session)] == ["1"]

    def test_create(self, session):
        esp.create_page(session, EnrollmentStatusOptions(display_name="ESP"))
        assert session.post.call_args.args[0] == esp.CONFIGURATIONS

    def test_create_requires_name(self, session):
        with pytest.raises(InputError):
            esp.create_page(session, EnrollmentStatusOptions())

    def test_update(self, session):
        session.get.return_value = esp.build_page_body(EnrollmentStatusOptions(display_name="ESP"))

        body = esp.update_page(session, "c1", EnrollmentStatusOptions(custom_error_message="Call x1234"))

        session.patch.assert_called_once_with(f"{esp.CONFIGURATIONS}/c1", body)
        assert body["customErrorMessage"] == "Call x1234"
        assert body["displayName"] == "ESP"

    def test_update_rejects_bad_timeout_before_read(self, session):
        """A non-positive timeout fails without touching Graph."""
        with pytest.raises(InputError):
            esp.update_page(session, "c1", EnrollmentStatusOptions(timeout_minutes=-5))
        session.get.assert_not_called()
        session.patch.assert_not_called()

    def test_delete(self, session):
        esp.delete_page(session, "c1")
        session.delete.assert_called_once_with(f"{esp.CONFIGURATIONS}/c1")
