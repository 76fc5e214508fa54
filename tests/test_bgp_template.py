"""Tests for the BGP template declaration."""
import pytest

from ros_reconciler.engine import DiffEngine, SchemaValidator, ValueCodec
from ros_reconciler.engine.schema import AttributeKind
from ros_reconciler.resources import BGP_TEMPLATE, build_registry


DEVICE_ITEM = {
    ".id": "*2",
    "address-families": "ip,ipv6,l2vpn,l2vpn-cisco,vpnv4",
    "as": "65000",
    "hold-time": "infinity",
    "input.ignore-as-path-len": "true",
    "keepalive-time": "1s",
    "multihop": "true",
    "name": "temp1",
    "output.redistribute": "connected,static,rip,ospf,bgp,vpn,dhcp,fantasy,modem,copy",
    "templates": "default",
    "vrf": "main",
}


class TestDeclaration:
    """Tests for the BGP template schema."""

    def test_registered(self):
        assert build_registry()["bgp_template"] is BGP_TEMPLATE
        assert BGP_TEMPLATE.path == "/routing/bgp/template"
        assert BGP_TEMPLATE.natural_key == "name"

    def test_required(self):
        assert sorted(BGP_TEMPLATE.required) == ["as", "name"]

    def test_blocks(self):
        assert BGP_TEMPLATE.attributes["input"].kind == AttributeKind.BLOCK
        assert BGP_TEMPLATE.attributes["output"].kind == AttributeKind.BLOCK
        assert BGP_TEMPLATE.attribute("input.allow_as").device_key == "allow-as"

    def test_templates_is_a_set(self):
        assert BGP_TEMPLATE.attributes["templates"].kind == AttributeKind.SET

    def test_extra_resources(self):
        """Registries are assembled explicitly and may carry more types."""
        from ros_reconciler.engine.schema import ResourceSchema, scalar

        extra = ResourceSchema.declare("bgp_connection", "/routing/bgp/connection", [scalar("name")])
        assert set(build_registry(extra)) == {"bgp_template", "bgp_connection"}


class TestDeviceItem:
    """Decoding and diffing a real RouterOS template item."""

    def test_decode(self):
        values = ValueCodec().decode_bag(BGP_TEMPLATE, DEVICE_ITEM)
        assert values["name"] == "temp1"
        assert values["multihop"] is True
        assert values["hold_time"] == "infinity"
        assert values["templates"] == frozenset({"default"})
        assert values["input"] == {"ignore_as_path_len": True}
        assert values["output"]["redistribute"].startswith("connected,static")
        assert values["disabled"] is False
        assert values["nexthop_choice"] == "default"

    def test_device_item_validates(self):
        """A decoded item is acceptable desired state for the same template."""
        values = ValueCodec().decode_bag(BGP_TEMPLATE, DEVICE_ITEM)
        desired = {k: v for k, v in values.items() if v is not None}
        desired["templates"] = sorted(desired["templates"])
        result = SchemaValidator(BGP_TEMPLATE).validate(desired)
        assert result.valid, result.errors

    @pytest.mark.parametrize("desired,expected", [
        ({"keepalive_time": "1s"}, set()),
        ({"keepalive_time": "00:00:01"}, set()),
        ({"keepalive_time": "2s"}, {"keepalive_time"}),
        ({"hold_time": "infinity"}, set()),
    ])
    def test_duration_diffs(self, desired, expected):
        observed = ValueCodec().decode_bag(BGP_TEMPLATE, DEVICE_ITEM)
        managed = {
            "name": "temp1",
            "as": "65000",
            "address_families": "ip,ipv6,l2vpn,l2vpn-cisco,vpnv4",
            **desired,
        }
        managed.setdefault("hold_time", "infinity")
        managed.setdefault("keepalive_time", "1s")
        diff = DiffEngine().calculate(BGP_TEMPLATE, managed, observed)
        assert {c.name for c in diff.changes} == expected

    def test_reordered_redistribute_is_no_change(self):
        """The device's ordering of redistribute sources is not a diff."""
        observed = ValueCodec().decode_bag(BGP_TEMPLATE, DEVICE_ITEM)
        diff = DiffEngine().calculate(BGP_TEMPLATE, {
            "name": "temp1",
            "as": "65000",
            "address_families": "vpnv4,l2vpn-cisco,l2vpn,ipv6,ip",
            "hold_time": "infinity",
            "keepalive_time": "1s",
            "output": {"redistribute": "copy,modem,fantasy,dhcp,vpn,bgp,ospf,rip,static,connected"},
        }, observed)
        assert diff.no_change
        assert {c.name for c in diff.suppressed} >= {"address_families", "output.redistribute"}
