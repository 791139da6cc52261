from __future__ import annotations

from .categories import strip_suffix


_CURATED: dict[str, str] = {
    # display managers
    "gdm": "GNOME Display Manager. Graphical login screen that starts X11/Wayland sessions.",
    "sddm": "Simple Desktop Display Manager. Qt-based login screen, common with KDE Plasma.",
    "lightdm": "Lightweight Display Manager. Cross-desktop login screen with pluggable greeters.",
    "ly": "Terminal-based display manager, an alternative to graphical login screens.",
    "greetd": "Minimal login daemon with pluggable greeters (tuigreet, gtkgreet, ...).",
    # network
    "NetworkManager": "Desktop network daemon for WiFi, Ethernet, VPN and mobile broadband.",
    "NetworkManager-dispatcher": "Runs scripts from /etc/NetworkManager/dispatcher.d/ on network events.",
    "NetworkManager-wait-online": "Holds boot until the network is up. Can slow boot on slow links.",
    "systemd-networkd": "systemd's network manager, configured with .network files in /etc/systemd/network/.",
    "systemd-resolved": "systemd DNS resolver with caching, DNSSEC and DNS-over-TLS. Manages /etc/resolv.conf.",
    "wpa_supplicant": "WPA/WPA2/WPA3 WiFi authentication. Usually driven by NetworkManager.",
    "iwd": "Intel Wireless Daemon. Simpler wpa_supplicant alternative, usable as NetworkManager backend.",
    "dnsmasq": "Lightweight DNS forwarder and DHCP server, often used for VM networking or PXE.",
    "nextdns": "NextDNS client. Routes DNS through NextDNS for filtering and tracking protection.",
    "openvpn-client": "OpenVPN tunnel. Template unit, instantiate with a config name.",
    "openvpn-server": "OpenVPN tunnel. Template unit, instantiate with a config name.",
    # audio
    "pipewire": "Audio/video server replacing PulseAudio and JACK. Handles screen sharing and Bluetooth audio.",
    "wireplumber": "PipeWire session manager. Routing policy, devices and Bluetooth profiles.",
    "pulseaudio": "Legacy sound server, superseded by PipeWire on most desktops.",
    # bluetooth
    "bluetooth": "BlueZ daemon. Pairing, connections and profiles (A2DP, HFP, ...).",
    "blueman-mechanism": "Privilege helper for the Blueman Bluetooth applet.",
    # printing
    "cups": "Common Unix Printing System. Print queues and IPP printing, web UI on localhost:631.",
    "avahi-daemon": "mDNS/DNS-SD daemon. .local name resolution and service discovery.",
    "avahi-dnsconfd": "Applies DNS servers discovered via Avahi. Rarely needed.",
    # security
    "sshd": "OpenSSH server. Remote shell, scp/sftp and tunneling.",
    "ufw": "Uncomplicated Firewall, a frontend for iptables/nftables.",
    "firewalld": "Zone-based dynamic firewall on top of nftables.",
    "nftables": "Loads kernel packet filtering rules from /etc/nftables.conf.",
    "apparmor": "Mandatory access control with per-program profiles.",
    "auditd": "Linux audit daemon. Records security-relevant events per configured rules.",
    "fail2ban": "Bans IPs that show malicious behaviour in log files.",
    # power and hardware
    "upower": "Battery information and suspend/hibernate support for desktops.",
    "power-profiles-daemon": "Switches between balanced, power-saver and performance profiles.",
    "cpupower": "Sets the CPU frequency governor at boot from /etc/default/cpupower.",
    "lm_sensors": "Reads temperatures, fan speeds and voltages from sensor chips.",
    "smartd": "S.M.A.R.T. disk health monitoring.",
    "fancontrol": "Adjusts fan speeds from lm_sensors readings.",
    # containers
    "docker": "Docker container runtime. API on /var/run/docker.sock.",
    "podman": "Daemonless, rootless-by-default container engine.",
    "containerd": "Low-level container runtime used by Docker and Kubernetes.",
    # systemd core
    "systemd-timesyncd": "Simple NTP client keeping the clock in sync.",
    "systemd-oomd": "Kills cgroups under memory pressure before the kernel OOM killer does.",
    "systemd-homed": "Portable, optionally encrypted home directories.",
    "systemd-boot-update": "Updates the systemd-boot EFI loader after systemd upgrades.",
    "systemd-pstore": "Archives kernel crash data from /sys/fs/pstore.",
    # misc
    "accounts-daemon": "D-Bus user account service used by GDM and GNOME Settings.",
    "rtkit-daemon": "RealtimeKit. Grants realtime priority to audio processes without root.",
    "udisks2": "Disk management over D-Bus; mounts removable media for file managers.",
    "ModemManager": "Mobile broadband modem control. Safe to disable without a modem.",
    "haveged": "Entropy daemon. Rarely needed on modern kernels.",
    "gpm": "Mouse support on virtual consoles. Not needed in graphical sessions.",
    "reflector": "Refreshes and sorts the Arch Linux mirror list.",
    "ananicy-cpp": "Adjusts process niceness and I/O priority for desktop responsiveness.",
    "cachyos-rate-mirrors": "Ranks CachyOS pacman mirrors by speed.",
    "scx_loader": "Loads sched-ext CPU schedulers.",
    "seatd": "Seat management for Wayland compositors such as Sway.",
}


def describe(unit_name: str) -> str | None:
    """Curated description for a unit, template instances resolved to their base name."""
    base = strip_suffix(unit_name).split("@", 1)[0]
    return _CURATED.get(base)
