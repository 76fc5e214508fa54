"""BGP peer template, /routing/bgp/template (RouterOS 7).

Sample device item:

    {
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
        "vrf": "main"
    }

https://help.mikrotik.com/docs/display/ROS/BGP
"""
from ..engine.schema import DataType, ResourceSchema, block, scalar, set_of
from ..engine.suppress import duration_equal, multi_value_equal
from ..engine.validators import (
    duration_between,
    int_between,
    ipv4_address,
    multi_value_in,
    one_of,
)
from .common import comment_attribute, disabled_attribute, name_attribute

ADDRESS_FAMILIES = ("ip", "ipv6", "l2vpn", "l2vpn-cisco", "vpnv4")
REDISTRIBUTE_SOURCES = (
    "bgp", "connected", "bgp-mpls-vpn", "dhcp", "fantasy",
    "modem", "ospf", "rip", "static", "vpn", "copy",
)


INPUT = block(
    "input",
    [
        scalar(
            "accept_communities",
            description="Drop incoming updates with these communities before parsing.",
        ),
        scalar(
            "accept_ext_communities",
            description="Drop incoming updates with these extended communities before parsing.",
        ),
        scalar(
            "accept_large_communities",
            description="Drop incoming updates with these large communities before parsing.",
        ),
        scalar("accept_nlri", description="Address list of prefixes to accept."),
        scalar("accept_unknown", description="Accept updates with unknown attributes."),
        # afi | alone | instance | main | remote-as | vrf; the device may report "0"
        scalar("affinity", description="Input process affinity."),
        scalar(
            "allow_as",
            DataType.INT,
            validators=[int_between(0, 10)],
            description="Times the local AS may appear in a received AS path.",
        ),
        scalar("filter", description="Input routing filter chain."),
        scalar(
            "ignore_as_path_len",
            DataType.BOOL,
            description="Ignore AS path length in best path selection.",
        ),
        scalar("limit_process_routes_ipv4", DataType.INT),
        scalar("limit_process_routes_ipv6", DataType.INT),
    ],
    description="Parameters associated with BGP input.",
)

OUTPUT = block(
    "output",
    [
        scalar("affinity", description="Output process affinity."),
        scalar(
            "default_originate",
            validators=[one_of(["always", "if-installed", "never"])],
            description="How to originate a default route to the peer.",
        ),
        scalar(
            "default_prepend",
            DataType.INT,
            validators=[int_between(0, 255)],
            description="Prepend the local AS this many times to default routes.",
        ),
        scalar("filter_chain", description="Output routing filter chain."),
        scalar("filter_select", description="Output select rule chain."),
        scalar("keep_sent_attributes", DataType.BOOL),
        scalar("network", description="Address list of networks to advertise."),
        scalar("no_client_to_client_reflection", DataType.BOOL),
        scalar("no_early_cut", DataType.BOOL),
        scalar(
            "redistribute",
            validators=[multi_value_in(REDISTRIBUTE_SOURCES)],
            equivalence=multi_value_equal,
            description="Comma-separated route types to redistribute to the peer.",
        ),
    ],
    description="Parameters associated with BGP output.",
)


BGP_TEMPLATE = ResourceSchema.declare(
    "bgp_template",
    "/routing/bgp/template",
    [
        scalar(
            "add_path_out",
            default="none",
            validators=[one_of(["all", "none"])],
        ),
        scalar(
            "address_families",
            default="ip",
            validators=[multi_value_in(ADDRESS_FAMILIES)],
            equivalence=multi_value_equal,
            description="Address families exchanged with the peer.",
        ),
        scalar(
            "as",
            required=True,
            description="32-bit AS number, AS-Plain or AS-Dot; 'confederation/as' for confederations.",
        ),
        scalar(
            "as_override",
            DataType.BOOL,
            description="Replace the peer's AS in AS-PATH with the local AS.",
        ),
        scalar(
            "cisco_vpls_nlri_len_fmt",
            validators=[one_of(["auto-bits", "auto-bytes", "bits", "bytes"])],
        ),
        scalar(
            "cluster_id",
            validators=[ipv4_address()],
            description="Route reflector cluster id.",
        ),
        comment_attribute(),
        disabled_attribute(),
        scalar(
            "hold_time",
            computed=True,
            default="3m",
            validators=[duration_between("3s", "1h", allow_infinity=True)],
            equivalence=duration_equal,
            description="BGP hold time; 'infinity' never expires the session.",
        ),
        INPUT,
        scalar(
            "keepalive_time",
            default="3m",
            equivalence=duration_equal,
        ),
        scalar("multihop", DataType.BOOL, description="Peer may be more than one hop away."),
        name_attribute("Name of the BGP template."),
        scalar(
            "nexthop_choice",
            default="default",
            validators=[one_of(["default", "force-self", "propagate"])],
        ),
        OUTPUT,
        scalar("remove_private_as", DataType.BOOL),
        scalar("router_id", description="BGP router id, or the name of a router-id instance."),
        scalar("routing_table", computed=True, description="Table where received routes are installed."),
        scalar("save_to", description="File to dump received/sent BGP messages to."),
        set_of("templates", description="Templates this template inherits from."),
        scalar("use_bfd", DataType.BOOL, description="Use BFD to detect peer failure."),
        scalar("vrf", default="main", description="VRF the peering runs in."),
    ],
)
