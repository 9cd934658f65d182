"""Local network interface helpers."""

import ifaddr


def local_ipv4_addresses() -> list[str]:
    """Return the non-loopback IPv4 addresses of this machine.

    Falls back to the loopback address when no other interface is up.
    """
    addresses: list[str] = []
    for adapter in ifaddr.get_adapters():
        for ip in adapter.ips:
            if not ip.is_IPv4:
                continue
            address = str(ip.ip)
            if address.startswith("127.") or address in addresses:
                continue
            addresses.append(address)
    return addresses or ["127.0.0.1"]
