"""Configuration and logging setup for the mdnsprobe CLI."""
