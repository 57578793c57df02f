"""
Network utilities: address types and interface management.
"""

import ipaddress
import logging
import re
from typing import List, Optional, Union

from scapy.all import conf, get_if_hwaddr, get_if_list

from config import settings

logger = logging.getLogger(__name__)

# IPv4 address of a host on the segment
NetworkAddress = ipaddress.IPv4Address


def parse_network_address(value: Union[str, NetworkAddress]) -> NetworkAddress:
    """
    Parse an IPv4 address.

    Raises:
        ValueError: If the value is not a valid IPv4 address.
    """
    if isinstance(value, NetworkAddress):
        return value
    return ipaddress.IPv4Address(str(value).strip())


class HardwareAddress:
    """An immutable 6-byte MAC address."""

    __slots__ = ('_octets',)

    LENGTH = 6

    def __init__(self, octets: bytes):
        octets = bytes(octets)
        if len(octets) != self.LENGTH:
            raise ValueError(f"MAC address must be {self.LENGTH} bytes, got {len(octets)}")
        object.__setattr__(self, '_octets', octets)

    def __setattr__(self, name, value):
        raise AttributeError("HardwareAddress is immutable")

    @classmethod
    def parse(cls, text: Union[str, 'HardwareAddress']) -> 'HardwareAddress':
        """
        Parse 'aa:bb:cc:dd:ee:ff', 'AA-BB-CC-DD-EE-FF' or 'aabbccddeeff'.

        Raises:
            ValueError: If the text is not a MAC address.
        """
        if isinstance(text, HardwareAddress):
            return text
        digits = str(text).strip()
        if ':' in digits or '-' in digits:
            groups = re.split('[:-]', digits)
            if len(groups) != cls.LENGTH or any(len(group) != 2 for group in groups):
                raise ValueError(f"Invalid MAC address: {text!r}")
            digits = ''.join(groups)
        if len(digits) != cls.LENGTH * 2:
            raise ValueError(f"Invalid MAC address: {text!r}")
        try:
            return cls(bytes.fromhex(digits))
        except ValueError:
            raise ValueError(f"Invalid MAC address: {text!r}") from None

    @property
    def octets(self) -> bytes:
        return self._octets

    def formatted(self, separator: str = '-', upper: bool = True) -> str:
        """Render with a custom separator; defaults to 'AA-BB-CC-DD-EE-FF'."""
        fmt = '{:02X}' if upper else '{:02x}'
        return separator.join(fmt.format(b) for b in self._octets)

    def __str__(self):
        return self.formatted(':', upper=False)

    def __repr__(self):
        return f"HardwareAddress({str(self)!r})"

    def __eq__(self, other):
        if isinstance(other, HardwareAddress):
            return self._octets == other._octets
        return NotImplemented

    def __hash__(self):
        return hash(self._octets)


HardwareAddress.BROADCAST = HardwareAddress.parse(settings.BROADCAST_MAC)
HardwareAddress.ZERO = HardwareAddress.parse(settings.ZERO_MAC)


class InterfaceInfo:
    """Information about a network interface."""

    def __init__(self, name: str, description: str = "", mac: str = "",
                 ip: str = "", gateway: str = ""):
        self.name = name
        self.description = description
        self.mac = mac
        self.ip = ip
        self.gateway = gateway

    def __repr__(self):
        return (f"InterfaceInfo(name={self.name!r}, mac={self.mac!r}, "
                f"ip={self.ip!r}, gateway={self.gateway!r})")

    def is_valid(self) -> bool:
        """Check if interface has required attributes for ARP operations."""
        return bool(self.mac and self.ip and self.ip != "0.0.0.0")


def get_interface_addresses(interface: str) -> List[ipaddress._BaseAddress]:
    """
    Get every configured address of an interface, IPv4 first.

    Args:
        interface: Interface name.

    Returns:
        List of IPv4Address/IPv6Address objects (may be empty).
    """
    try:
        iface = conf.ifaces.dev_from_name(interface)
    except ValueError:
        return []

    addresses = []
    for family in (4, 6):
        for addr in iface.ips.get(family, []):
            try:
                addresses.append(ipaddress.ip_address(addr.split('%')[0]))
            except ValueError:
                logger.debug("Skipping unparseable address %r on %s", addr, interface)
    return addresses


def get_gateway(interface: str = None) -> Optional[str]:
    """
    Get the default gateway IP address from Scapy's routing table.

    Args:
        interface: Optional interface name to get gateway for.

    Returns:
        Gateway IP address string or None.
    """
    iface, _, gateway = conf.route.route("0.0.0.0")
    if not gateway or gateway == "0.0.0.0":
        return None
    if interface is not None and str(iface) != interface:
        return None
    return gateway


def get_interface_info(interface: str) -> Optional[InterfaceInfo]:
    """
    Get detailed information about a specific interface.

    Args:
        interface: Interface name (e.g., 'eth0', 'en0').

    Returns:
        InterfaceInfo object or None if interface not found.
    """
    if interface not in get_if_list():
        return None

    info = InterfaceInfo(name=interface)
    try:
        dev = conf.ifaces.dev_from_name(interface)
        info.description = getattr(dev, 'description', '') or ''
    except ValueError:
        pass

    try:
        info.mac = get_if_hwaddr(interface)
    except (OSError, ValueError) as e:
        logger.debug("No MAC address for %s: %s", interface, e)

    ipv4 = [a for a in get_interface_addresses(interface) if a.version == 4]
    if ipv4:
        info.ip = str(ipv4[0])
    info.gateway = get_gateway(interface) or ""
    return info


def get_interfaces() -> List[InterfaceInfo]:
    """
    Get list of all network interfaces with their information.

    Returns:
        List of InterfaceInfo objects for each interface.
    """
    interfaces = []
    for name in get_if_list():
        info = get_interface_info(name)
        if info is not None:
            interfaces.append(info)
    return interfaces


def print_interfaces(interfaces: Optional[List[InterfaceInfo]] = None):
    """Print available network interfaces in a formatted way."""
    if interfaces is None:
        interfaces = get_interfaces()

    print("\nAvailable Network Interfaces:")
    print("-" * 70)

    for i, iface in enumerate(interfaces, 1):
        print(f"{i}. {iface.name}")
        if iface.description:
            print(f"   Description: {iface.description}")
        if iface.mac:
            print(f"   MAC: {iface.mac}")
        if iface.ip:
            print(f"   IP: {iface.ip}")
        if iface.gateway:
            print(f"   Gateway: {iface.gateway}")
        print()


def select_interface(interfaces: Optional[List[InterfaceInfo]] = None,
                     input_func=input) -> InterfaceInfo:
    """
    Show the interface menu and ask for a choice until a valid one is given.

    Args:
        interfaces: Interfaces to offer (all usable ones if None).
        input_func: Prompt function, replaceable for tests.

    Returns:
        The chosen InterfaceInfo.

    Raises:
        RuntimeError: If no usable interface exists.
    """
    if interfaces is None:
        interfaces = [i for i in get_interfaces() if i.is_valid()]
    if not interfaces:
        raise RuntimeError("No network interface with an IPv4 address was found")

    print_interfaces(interfaces)
    while True:
        choice = input_func(f"Select interface [1-{len(interfaces)}]: ").strip()
        if choice.isdigit() and 1 <= int(choice) <= len(interfaces):
            return interfaces[int(choice) - 1]
        print(f"Invalid choice: {choice!r}")
