"""
ARP Poisoning Attack Modules

This package contains controlled ARP poisoning attack implementations
for security research and testing purposes.

Modules:
- AddressResolver: active ARP resolution of a single host
- FrameForger: forged ARP replies and table restoration
- ARPSpoofer: poisoning session between a target and its gateway
"""

from attacks.address_resolver import AddressResolver
from attacks.frame_forger import FrameForger
from attacks.arp_spoofer import ARPSpoofer, SpoofStatistics

__all__ = [
    'AddressResolver',
    'FrameForger',
    'ARPSpoofer',
    'SpoofStatistics',
]
