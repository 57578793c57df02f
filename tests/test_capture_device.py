import logging

import pytest

from core import capture_device
from core.arp_packet import ARPPacketBuilder
from core.capture_device import CaptureDevice
from core.exceptions import TransmitFailure
from core.network_utils import HardwareAddress

DEVICE_MAC = "cc:cc:cc:cc:cc:cc"


class FakeSniffer:
    """Stands in for scapy's AsyncSniffer; keeps the prn it was given."""

    instances = []

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.prn = kwargs['prn']
        self.running = False
        self.start_calls = 0
        self.stop_calls = 0
        FakeSniffer.instances.append(self)

    def start(self):
        self.start_calls += 1
        self.running = True

    def stop(self):
        self.stop_calls += 1
        self.running = False


@pytest.fixture
def sent(monkeypatch):
    frames = []
    monkeypatch.setattr(capture_device, "sendp",
                        lambda packet, **kwargs: frames.append((packet, kwargs)))
    return frames


@pytest.fixture
def scapy_device(monkeypatch, sent):
    FakeSniffer.instances = []
    monkeypatch.setattr(capture_device, "AsyncSniffer", FakeSniffer)
    monkeypatch.setattr(capture_device, "get_if_hwaddr", lambda iface: DEVICE_MAC)
    return CaptureDevice("eth9")


def reply_frame():
    return ARPPacketBuilder(DEVICE_MAC).build_arp_reply(
        "10.0.0.1", "10.0.0.5", "aa:aa:aa:aa:aa:aa"
    )


def test_mac_address_comes_from_interface(scapy_device):
    assert scapy_device.name == "eth9"
    assert scapy_device.mac_address == HardwareAddress.parse(DEVICE_MAC)


def test_unknown_interface_mac_is_runtime_error(monkeypatch):
    def no_such_interface(iface):
        raise OSError(f"{iface}: no such device")

    monkeypatch.setattr(capture_device, "get_if_hwaddr", no_such_interface)

    with pytest.raises(RuntimeError, match="nope0"):
        CaptureDevice("nope0")


def test_send_uses_the_device_interface(scapy_device, sent):
    frame = reply_frame()

    scapy_device.send(frame)

    packet, kwargs = sent[0]
    assert bytes(packet) == frame.to_bytes()
    assert kwargs['iface'] == "eth9"


@pytest.mark.parametrize("error", [OSError("Network is down"), PermissionError("Operation not permitted"),
                                   ValueError("bad frame")])
def test_send_error_becomes_transmit_failure(scapy_device, monkeypatch, error):
    def broken_sendp(packet, **kwargs):
        raise error

    monkeypatch.setattr(capture_device, "sendp", broken_sendp)

    with pytest.raises(TransmitFailure) as excinfo:
        scapy_device.send(reply_frame())

    assert excinfo.value.operation == "send"
    assert excinfo.value.address == "eth9"
    assert excinfo.value.__cause__ is error


def test_start_delivery_is_idempotent(scapy_device):
    scapy_device.set_filter("arp")

    scapy_device.start_delivery()
    scapy_device.start_delivery()

    assert len(FakeSniffer.instances) == 1
    sniffer = FakeSniffer.instances[0]
    assert sniffer.start_calls == 1
    assert sniffer.kwargs['iface'] == "eth9"
    assert sniffer.kwargs['filter'] == "arp"
    assert scapy_device.is_delivering


def test_stop_then_start_opens_a_new_sniffer(scapy_device):
    scapy_device.start_delivery()
    scapy_device.stop_delivery()
    scapy_device.start_delivery()

    first, second = FakeSniffer.instances
    assert first.stop_calls == 1
    assert second.running


def test_failing_callback_does_not_starve_the_others(scapy_device, caplog):
    received = []

    def broken(packet):
        raise KeyError("boom")

    scapy_device.add_callback(received.append)
    scapy_device.add_callback(broken)
    scapy_device.add_callback(lambda packet: received.append(("second", packet)))
    scapy_device.start_delivery()

    packet = reply_frame().to_scapy()
    with caplog.at_level(logging.WARNING, logger="core.capture_device"):
        FakeSniffer.instances[0].prn(packet)

    assert received == [packet, ("second", packet)]
    assert "Packet callback error" in caplog.text


def test_removed_callback_is_not_called(scapy_device):
    received = []
    scapy_device.add_callback(received.append)
    scapy_device.start_delivery()

    scapy_device.remove_callback(received.append)
    scapy_device.remove_callback(received.append)
    FakeSniffer.instances[0].prn(reply_frame().to_scapy())

    assert received == []


def test_close_stops_delivery_and_drops_callbacks(scapy_device):
    received = []
    scapy_device.add_callback(received.append)
    scapy_device.start_delivery()
    sniffer = FakeSniffer.instances[0]

    scapy_device.close()
    sniffer.prn(reply_frame().to_scapy())

    assert sniffer.stop_calls == 1
    assert not scapy_device.is_delivering
    assert received == []


def test_context_manager_closes(scapy_device):
    with scapy_device as device:
        device.start_delivery()

    assert FakeSniffer.instances[0].stop_calls == 1
    assert not scapy_device.is_delivering
