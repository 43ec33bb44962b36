"""Datagram transports used by the service browser."""
