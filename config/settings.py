"""
Configuration settings for the ARP spoofer.
"""

import logging
from typing import Optional

import yaml

# =============================================================================
# Network Settings
# =============================================================================
# Default network interface (will be asked for interactively if None)
INTERFACE = None

# Broadcast and unknown MAC addresses
BROADCAST_MAC = "ff:ff:ff:ff:ff:ff"
ZERO_MAC = "00:00:00:00:00:00"

# ARP operation codes
ARP_REQUEST = 1
ARP_REPLY = 2

# Ethernet types
ETH_TYPE_ARP = 0x0806
ETH_TYPE_IPV4 = 0x0800

# BPF expression restricting capture to ARP frames
ARP_CAPTURE_FILTER = "arp"

# =============================================================================
# Resolution Settings
# =============================================================================
# Seconds to wait for an ARP reply after the request went out
RESOLVE_TIMEOUT = 1.0

# Seconds between starting capture and sending the request. libpcap does not
# report when it is actually listening, so a reply racing the request can be
# missed without this.
CAPTURE_SETTLE_DELAY = 0.5

# =============================================================================
# Attack Settings
# =============================================================================
# Interval between spoofed ARP packets (seconds)
SPOOF_INTERVAL = 2.0

# Poison the gateway as well as the target on each cycle
BIDIRECTIONAL = False

# =============================================================================
# Logging Settings
# =============================================================================
LOG_LEVEL = "INFO"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# =============================================================================
# Safety Settings
# =============================================================================
# Auto-restore ARP tables on exit
AUTO_RESTORE_ARP = True

# Number of restoration packets per host, and the gap between them
RESTORE_COUNT = 5
RESTORE_INTERVAL = 0.5


# =============================================================================
# Helper Functions
# =============================================================================

def setup_logging(level: str = LOG_LEVEL):
    """Configure the root logger with the project format."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
    )


class ARPConfig:
    """
    Configuration class for ARP operations.

    This class provides a convenient interface to access ARP-related settings.
    """

    FIELDS = (
        'interface',
        'spoof_interval',
        'resolve_timeout',
        'settle_delay',
        'bidirectional',
        'restore_on_exit',
        'restore_count',
    )

    # Accepted YAML value types per field
    FIELD_TYPES = {
        'interface': (str, type(None)),
        'spoof_interval': (int, float),
        'resolve_timeout': (int, float),
        'settle_delay': (int, float),
        'bidirectional': (bool,),
        'restore_on_exit': (bool,),
        'restore_count': (int,),
    }

    def __init__(
        self,
        interface: Optional[str] = INTERFACE,
        spoof_interval: float = SPOOF_INTERVAL,
        resolve_timeout: float = RESOLVE_TIMEOUT,
        settle_delay: float = CAPTURE_SETTLE_DELAY,
        bidirectional: bool = BIDIRECTIONAL,
        restore_on_exit: bool = AUTO_RESTORE_ARP,
        restore_count: int = RESTORE_COUNT
    ):
        """
        Initialize ARP configuration.

        Args:
            interface: Network interface to use (selected interactively if None).
            spoof_interval: Interval between spoofing cycles.
            resolve_timeout: Seconds to wait for an ARP reply.
            settle_delay: Seconds between starting capture and sending the request.
            bidirectional: Whether to poison the gateway as well.
            restore_on_exit: Whether to re-announce true bindings on exit.
            restore_count: Number of restoration packets per host.
        """
        self.interface = interface
        self.spoof_interval = spoof_interval
        self.resolve_timeout = resolve_timeout
        self.settle_delay = settle_delay
        self.bidirectional = bidirectional
        self.restore_on_exit = restore_on_exit
        self.restore_count = restore_count

    @property
    def is_valid(self) -> bool:
        """Check if the configuration is valid."""
        return (
            self.spoof_interval > 0
            and self.resolve_timeout > 0
            and self.settle_delay >= 0
            and self.restore_count >= 0
        )

    def to_dict(self) -> dict:
        """Convert configuration to dictionary."""
        return {name: getattr(self, name) for name in self.FIELDS}

    @classmethod
    def from_yaml(cls, path: str) -> 'ARPConfig':
        """
        Load configuration from a YAML file.

        Args:
            path: Path to a YAML mapping whose keys are ARPConfig fields.

        Returns:
            ARPConfig with the file's values over the defaults.

        Raises:
            ValueError: If the file is not valid YAML, not a mapping, or has
                unknown keys or wrongly typed values.
        """
        with open(path, "r", encoding="utf-8") as fh:
            try:
                data = yaml.safe_load(fh) or {}
            except yaml.YAMLError as e:
                raise ValueError(f"{path}: invalid YAML: {e}") from e

        if not isinstance(data, dict):
            raise ValueError(f"{path}: expected a mapping, got {type(data).__name__}")

        unknown = sorted(str(key) for key in set(data) - set(cls.FIELDS))
        if unknown:
            raise ValueError(f"{path}: unknown settings: {', '.join(unknown)}")

        for name, value in data.items():
            expected = cls.FIELD_TYPES[name]
            # bool is an int subclass; only boolean fields take true/false
            if not isinstance(value, expected) or (isinstance(value, bool) and bool not in expected):
                raise ValueError(
                    f"{path}: {name} must be {' or '.join(t.__name__ for t in expected)}, "
                    f"got {value!r}"
                )

        return cls(**data)
