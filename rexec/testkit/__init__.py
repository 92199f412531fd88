"""Test support: fake transports."""
