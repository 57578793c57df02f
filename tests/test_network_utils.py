import ipaddress

import pytest

from core.network_utils import (
    HardwareAddress, InterfaceInfo, parse_network_address, select_interface
)


@pytest.mark.parametrize("text", [
    "aa:bb:cc:dd:ee:ff",
    "AA-BB-CC-DD-EE-FF",
    "aabbccddeeff",
])
def test_hardware_address_parse_forms(text):
    assert HardwareAddress.parse(text).octets == bytes.fromhex("aabbccddeeff")


def test_hardware_address_rendering():
    mac = HardwareAddress.parse("aa:bb:cc:dd:ee:0f")

    assert str(mac) == "aa:bb:cc:dd:ee:0f"
    assert mac.formatted() == "AA-BB-CC-DD-EE-0F"


@pytest.mark.parametrize("text", [
    "", "aa:bb:cc", "zz:bb:cc:dd:ee:ff", "aa:bb:cc:dd:ee:ff:00",
    "aa:bbc:cd:de:ef:f", "aa:bb:cc:dd:eeff", "aabb-ccdd-eeff",
])
def test_hardware_address_rejects_garbage(text):
    with pytest.raises(ValueError):
        HardwareAddress.parse(text)


def test_hardware_address_is_immutable_and_hashable():
    mac = HardwareAddress.parse("aa:bb:cc:dd:ee:ff")

    with pytest.raises(AttributeError):
        mac._octets = b"\x00" * 6
    assert {mac, HardwareAddress.parse("AA-BB-CC-DD-EE-FF")} == {mac}


def test_parse_network_address():
    assert parse_network_address(" 10.0.0.5 ") == ipaddress.IPv4Address("10.0.0.5")
    with pytest.raises(ValueError):
        parse_network_address("fe80::1")


def test_select_interface_retries_until_valid(capsys):
    interfaces = [
        InterfaceInfo("eth0", mac="aa:aa:aa:aa:aa:aa", ip="10.0.0.2"),
        InterfaceInfo("wlan0", mac="bb:bb:bb:bb:bb:bb", ip="10.0.1.2"),
    ]
    answers = iter(["x", "9", "2"])

    chosen = select_interface(interfaces, input_func=lambda prompt: next(answers))

    assert chosen.name == "wlan0"
    assert "Invalid choice" in capsys.readouterr().out


def test_select_interface_without_candidates():
    with pytest.raises(RuntimeError):
        select_interface([], input_func=lambda prompt: "1")
