"""CIDR functions over IPv4 and IPv6 prefixes."""

import ipaddress

from strata._errors import ParseError
from strata._value import Number, ParamType, Value, require_integer

from ._registry import FunctionGroup

functions = FunctionGroup()

# cidrsubnets() refuses to enumerate more subnets than this
MAX_SUBNETS = 65536


def _network(prefix: str) -> ipaddress.IPv4Network | ipaddress.IPv6Network:
    try:
        return ipaddress.ip_network(prefix, strict=False)
    except ValueError as e:
        msg = f"Invalid CIDR prefix '{prefix}': {e}"
        raise ParseError(msg) from e


@functions.register("cidr::netmask", ParamType.STRING, aliases=("cidrnetmask",))
def netmask(prefix: str) -> Value:
    return str(_network(prefix).netmask)


@functions.register("cidr::range", ParamType.STRING, aliases=("cidrrange",))
def address_range(prefix: str) -> Value:
    """First and last address of a prefix."""
    network = _network(prefix)
    return [str(network.network_address), str(network.broadcast_address)]


@functions.register("cidr::host", ParamType.STRING, ParamType.NUMBER, aliases=("cidrhost",))
def host(prefix: str, hostnum: Number) -> Value:
    """Address of the n-th host in a prefix; negative numbers count from the end."""
    network = _network(prefix)
    index = require_integer(hostnum, "cidrhost() host number")
    if index < 0:
        index += network.num_addresses
    if not 0 <= index < network.num_addresses:
        msg = f"Host number {hostnum} is out of range for {network}"
        raise ValueError(msg)
    return str(network.network_address + index)


@functions.register("cidr::subnets", ParamType.STRING, ParamType.NUMBER, aliases=("cidrsubnets",))
def subnets(prefix: str, newbits: Number) -> Value:
    """All subnets obtained by extending the prefix length by ``newbits``."""
    network = _network(prefix)
    bits = require_integer(newbits, "cidrsubnets() new bits")
    if bits < 0 or network.prefixlen + bits > network.max_prefixlen:
        msg = f"Cannot extend /{network.prefixlen} by {bits} bits (maximum prefix length {network.max_prefixlen})"
        raise ValueError(msg)
    if 2**bits > MAX_SUBNETS:
        msg = f"Extending by {bits} bits would produce more than {MAX_SUBNETS} subnets"
        raise ValueError(msg)
    return [str(subnet) for subnet in network.subnets(prefixlen_diff=bits)]
