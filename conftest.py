"""
Shared fixtures: an in-memory capture device standing in for a real interface.
"""

import ipaddress
import threading

import pytest
from scapy.all import Ether

from core.arp_packet import AddressBindingFrame, ArpOperation, LinkFrame
from core.exceptions import TransmitFailure
from core.network_utils import HardwareAddress, parse_network_address

DEVICE_MAC = "cc:cc:cc:cc:cc:cc"
DEVICE_IP = "10.0.0.100"


class FakeDevice:
    """
    Records sent frames and delivers frames to registered callbacks.

    responder(frame) may return frames to deliver in reaction to a send;
    they are delivered synchronously, or from a timer thread when
    reply_delay is set, like a real capture thread would.
    """

    def __init__(self, mac=DEVICE_MAC, addresses=(DEVICE_IP,), name="fake0"):
        self.name = name
        self.mac_address = HardwareAddress.parse(mac)
        self.addresses = [ipaddress.ip_address(a) for a in addresses]
        self.sent = []
        self.callbacks = []
        self.filter = None
        self.delivering = False
        self.start_calls = 0
        self.stop_calls = 0
        self.responder = None
        self.reply_delay = None
        self.fail_on = None

    def set_filter(self, expression):
        self.filter = expression

    def add_callback(self, callback):
        self.callbacks.append(callback)

    def remove_callback(self, callback):
        if callback in self.callbacks:
            self.callbacks.remove(callback)

    def start_delivery(self):
        self.start_calls += 1
        self.delivering = True

    def stop_delivery(self):
        self.stop_calls += 1
        self.delivering = False

    def send(self, frame):
        if self.fail_on is not None and self.fail_on(frame):
            raise TransmitFailure("link down", operation="send", address=self.name)
        self.sent.append(frame)
        if self.responder is None:
            return
        replies = self.responder(frame) or []
        if self.reply_delay:
            timer = threading.Timer(self.reply_delay, self.deliver, args=(replies,))
            timer.daemon = True
            timer.start()
        else:
            self.deliver(replies)

    def deliver(self, frames):
        for frame in frames:
            packet = Ether(frame.to_bytes())
            for callback in list(self.callbacks):
                callback(packet)


def make_reply(sender_ip, sender_mac, target_ip=DEVICE_IP, target_mac=DEVICE_MAC,
               operation=ArpOperation.REPLY):
    sender_mac = HardwareAddress.parse(sender_mac)
    target_mac = HardwareAddress.parse(target_mac)
    return LinkFrame(
        source=sender_mac,
        destination=target_mac,
        payload=AddressBindingFrame(
            operation=operation,
            sender_mac=sender_mac,
            sender_ip=parse_network_address(sender_ip),
            target_mac=target_mac,
            target_ip=parse_network_address(target_ip)
        )
    )


def answer_for(hosts):
    """Responder answering ARP requests for the given {ip: mac} hosts."""
    hosts = {parse_network_address(ip): mac for ip, mac in hosts.items()}

    def responder(frame):
        arp = frame.payload
        if arp.operation != ArpOperation.REQUEST or arp.target_ip not in hosts:
            return []
        return [make_reply(arp.target_ip, hosts[arp.target_ip])]

    return responder


@pytest.fixture
def device():
    return FakeDevice()


@pytest.fixture
def device_factory():
    return FakeDevice


@pytest.fixture
def reply():
    return make_reply


@pytest.fixture
def responder_for():
    return answer_for
