"""Barcode scans turned into gamepad macros on networked virtual Linux controllers."""

__version__ = "0.1.0"

__all__ = ["client", "controller", "macros", "protocol", "server"]