"""Tests for identity matching and (de)serialization of the model types."""

import pytest

from dispswitch.models import (
    GLOBAL_PROPERTIES,
    MONITOR_PROPERTIES,
    DisplayIdentity,
    LogicalMonitor,
    SavedConfiguration,
    Transform,
    filter_properties,
)


class TestPrefixMatching:

    def test_connector_only_matches_full_identity(self):
        saved = DisplayIdentity("DP-1", "", "", "")
        live = DisplayIdentity("DP-1", "Dell", "U2720Q", "ABC123")
        assert saved.matches(live)
        assert live.matches(saved)

    def test_conflicting_vendor_does_not_match(self):
        saved = DisplayIdentity("DP-1", "Dell", "X", "Y")
        live = DisplayIdentity("DP-1", "HP", "Z", "W")
        assert not saved.matches(live)

    def test_different_connector_does_not_match(self):
        assert not DisplayIdentity("DP-1").matches(DisplayIdentity("DP-2", "Dell", "U2720Q", "ABC123"))

    def test_full_identities_need_every_component(self):
        a = DisplayIdentity("DP-1", "Dell", "U2720Q", "ABC123")
        b = DisplayIdentity("DP-1", "Dell", "U2720Q", "XYZ789")
        assert not a.matches(b)
        assert a.matches(DisplayIdentity("DP-1", "Dell", "U2720Q", "ABC123"))

    def test_partial_identity_matches_on_its_prefix(self):
        saved = DisplayIdentity("DP-1", "Dell")
        assert saved.matches(DisplayIdentity("DP-1", "Dell", "U2720Q", "ABC123"))
        assert not saved.matches(DisplayIdentity("DP-1", "HP", "Z27", "W1"))

    def test_interior_empty_component_is_compared(self):
        saved = DisplayIdentity("DP-1", "", "U2720Q", "")
        assert not saved.matches(DisplayIdentity("DP-1", "Dell", "U2720Q", "ABC123"))

    def test_significant_strips_trailing_empties(self):
        assert DisplayIdentity("DP-1", "Dell", "", "").significant == ("DP-1", "Dell")


class TestDisplayIdentity:

    def test_from_list_pads_short_identities(self):
        identity = DisplayIdentity.from_list(["HDMI-1"])
        assert identity.as_tuple() == ("HDMI-1", "", "", "")

    @pytest.mark.parametrize("parts", [[], ["a", "b", "c", "d", "e"]])
    def test_from_list_rejects_bad_arity(self, parts):
        with pytest.raises(ValueError):
            DisplayIdentity.from_list(parts)

    def test_str_skips_empty_components(self):
        assert str(DisplayIdentity("DP-1", "", "U2720Q", "")) == "DP-1 U2720Q"


def test_filter_properties_drops_unknown_keys_and_coerces():
    props = filter_properties({"underscanning": 1, "color-mode": 3}, MONITOR_PROPERTIES)
    assert props == {"underscanning": True}
    assert props["underscanning"] is True


def test_filter_properties_keeps_layout_mode_integer():
    assert filter_properties({"layout-mode": 2}, GLOBAL_PROPERTIES) == {"layout-mode": 2}


def test_logical_monitor_from_dict_normalizes_types():
    lm = LogicalMonitor.from_dict({
        "x": 0, "y": 0, "scale": 1, "transform": 1, "primary": 1,
        "monitors": [{"identity": ["DP-1"], "mode_id": "m", "properties": {"underscanning": False}}],
    })
    assert isinstance(lm.scale, float)
    assert lm.transform is Transform.ROTATE_90
    assert lm.primary is True
    assert lm.monitors[0].identity == DisplayIdentity("DP-1")


def test_positional_configuration_widens_connector_to_identity():
    entry = [
        "Desk",
        1234,
        [[0, 0, 1.0, 0, True, [["DP-1", "3840x2160@60", {"underscanning": False}]]]],
        {"layout-mode": 1},
        [["DP-1", "DEL", "DELL U2720Q", "ABC123"]],
    ]
    config = SavedConfiguration.from_dict(entry)

    assert config.name == "Desk"
    assert config.hash == 1234
    assert config.properties == {"layout-mode": 1}
    monitor = config.logical_monitors[0].monitors[0]
    assert monitor.identity == DisplayIdentity("DP-1", "DEL", "DELL U2720Q", "ABC123")
    assert monitor.mode_id == "3840x2160@60"
    assert monitor.properties == {"underscanning": False}


def test_positional_configuration_without_display_list_keeps_connector():
    entry = ["Old", 1, [[0, 0, 1.0, 0, True, [["eDP-1", "m", {}]]]], {}, []]
    config = SavedConfiguration.from_dict(entry)
    assert config.referenced_identities == [DisplayIdentity("eDP-1")]


def test_positional_configuration_requires_five_fields():
    with pytest.raises(ValueError):
        SavedConfiguration.from_dict(["name", 1, []])


def test_transform_label():
    assert Transform.FLIPPED_270.label == "Flipped 270°"
