"""mdnsprobe: list mDNS/DNS-SD services advertised on the local network."""

__version__ = "0.1.0"
