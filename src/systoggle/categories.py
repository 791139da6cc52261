from __future__ import annotations

from typing import Callable


CATEGORY_ORDER: tuple[str, ...] = (
    "Audio",
    "Bluetooth",
    "Containers",
    "Display",
    "Network",
    "Printing",
    "Security",
    "Systemd Core",
    "Other",
)


def _prefixed(*prefixes: str) -> Callable[[str], bool]:
    return lambda name: name.startswith(prefixes)


# Evaluated top to bottom, first match wins. systemd-networkd/resolved must
# be claimed by Network before the generic systemd- rule sees them.
RULES: tuple[tuple[Callable[[str], bool], str], ...] = (
    (
        _prefixed(
            "NetworkManager",
            "wpa_supplicant",
            "systemd-networkd",
            "systemd-resolved",
            "iwd",
            "dhcpcd",
            "connman",
        ),
        "Network",
    ),
    (_prefixed("pipewire", "pulseaudio", "wireplumber"), "Audio"),
    (_prefixed("bluetooth", "blueman"), "Bluetooth"),
    (_prefixed("gdm", "sddm", "lightdm", "greetd", "ly"), "Display"),
    (_prefixed("docker", "podman", "containerd"), "Containers"),
    (_prefixed("firewalld", "ufw", "apparmor", "sshd", "fail2ban"), "Security"),
    (_prefixed("cups", "avahi"), "Printing"),
    (_prefixed("systemd-"), "Systemd Core"),
    (lambda name: True, "Other"),
)


def strip_suffix(unit_name: str) -> str:
    if unit_name.endswith(".service"):
        return unit_name[: -len(".service")]
    return unit_name


def categorize(unit_name: str) -> str:
    name = strip_suffix(unit_name)
    for matches, label in RULES:
        if matches(name):
            return label
    return "Other"


def category_rank(label: str) -> int:
    try:
        return CATEGORY_ORDER.index(label)
    except ValueError:
        return len(CATEGORY_ORDER)
