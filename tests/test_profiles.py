"""
Tests for autopilot_tools.profiles module.
"""

import pytest

from autopilot_tools import profiles
from autopilot_tools.errors import InputError
from autopilot_tools.profile_json import AZURE_AD_PROFILE, ProfileOptions, build_profile_body


class TestProfileCrud:
    """Tests for deployment profile create/read/update/delete."""

    def test_list_and_get(self, session):
        session.get_all.return_value = [{"id": "p1"}]
        session.get.return_value = {"id": "p1"}

        assert profiles.get_profiles(session) == [{"id": "p1"}]
        assert profiles.get_profiles(session, id="p1") == [{"id": "p1"}]
        session.get.assert_called_once_with(f"{profiles.PROFILES}/p1")

    def test_create(self, session):
        """Create posts the encoded body."""
        session.post.return_value = {"id": "new"}

        created = profiles.create_profile(session, ProfileOptions(display_name="Kiosk", device_usage="shared"))

        assert created == {"id": "new"}
        uri, body = session.post.call_args.args
        assert uri == profiles.PROFILES
        assert body["@odata.type"] == AZURE_AD_PROFILE
        assert body["outOfBoxExperienceSettings"]["deviceUsageType"] == "shared"

    def test_create_requires_name(self, session):
        with pytest.raises(InputError):
            profiles.create_profile(session, ProfileOptions())
        session.post.assert_not_called()

    def test_create_rejects_invalid_options(self, session):
        with pytest.raises(InputError, match="user_type"):
            profiles.create_profile(session, ProfileOptions(display_name="x", user_type="guest"))

    def test_update_changes_only_supplied_field(self, session):
        """Partial update: one field changes, the rest is the current profile."""
        current = build_profile_body(ProfileOptions(
            display_name="Kiosk",
            description="front desk",
            hide_eula=True,
            hide_privacy=True,
            device_name_template="K-%SERIAL%",
        ))
        current["id"] = "p1"
        session.get.return_value = current

        body = profiles.update_profile(session, "p1", ProfileOptions(description="lobby"))

        session.patch.assert_called_once_with(f"{profiles.PROFILES}/p1", body)
        assert body["description"] == "lobby"
        for key in ("displayName", "deviceNameTemplate", "language", "enableWhiteGlove", "outOfBoxExperienceSettings"):
            assert body[key] == current[key]

    def test_update_rejects_invalid_options_before_read(self, session):
        """Invalid options fail without touching Graph."""
        with pytest.raises(InputError, match="device_usage"):
            profiles.update_profile(session, "p1", ProfileOptions(device_usage="kiosk"))
        session.get.assert_not_called()
        session.patch.assert_not_called()

    def test_delete(self, session):
        profiles.delete_profile(session, "p1")
        session.delete.assert_called_once_with(f"{profiles.PROFILES}/p1")

    def test_assigned_devices(self, session):
        session.get_all.return_value = []
        profiles.get_assigned_devices(session, "p1")
        session.get_all.assert_called_once_with(f"{profiles.PROFILES}/p1/assignedDevices")


class TestAssignments:
    """Tests for group assignments."""

    def test_assign_group(self, session):
        profiles.assign_group(session, "p1", "g1")
        session.post.assert_called_once_with(
            f"{profiles.PROFILES}/p1/assignments",
            {"target": {"@odata.type": profiles.GROUP_TARGET, "groupId": "g1"}},
        )

    def test_assign_exclusion(self, session):
        profiles.assign_group(session, "p1", "g1", exclude=True)
        assert session.post.call_args.args[1]["target"]["@odata.type"] == profiles.EXCLUSION_TARGET

    def test_remove_uses_composite_key(self, session):
        """Assignments are addressed as <profile>_<group>."""
        profiles.remove_assignment(session, "p1", "g1")
        session.delete.assert_called_once_with(f"{profiles.PROFILES}/p1/assignments/p1_g1")

    def test_list_assignments(self, session):
        session.get_all.return_value = [{"id": "p1_g1"}]
        assert profiles.get_assignments(session, "p1") == [{"id": "p1_g1"}]


class TestExportConfiguration:
    """Tests for configuration file export."""

    def test_uses_tenant_info(self, session):
        """Tenant id and initial domain come from the organization resource."""
        session.get.return_value = {"id": "p1", "displayName": "Kiosk", "outOfBoxExperienceSettings": {"hideEULA": True}}
        session.get_all.return_value = [{
            "id": "tenant-guid",
            "verifiedDomains": [
                {"name": "contoso.com", "isDefault": True, "isInitial": False},
                {"name": "contoso.onmicrosoft.com", "isDefault": False, "isInitial": True},
            ],
        }]

        cfg = profiles.export_configuration(session, "p1")

        assert cfg["CloudAssignedTenantId"] == "tenant-guid"
        assert cfg["CloudAssignedTenantDomain"] == "contoso.onmicrosoft.com"
        assert cfg["CloudAssignedOobeConfig"] == 264 + 16
        assert cfg["ZtdCorrelationId"] == "p1"
