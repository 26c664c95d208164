from .finalize import finalize
from .guest_setup import setup_guest
from .host_setup import setup_host

__all__ = ["setup_host", "setup_guest", "finalize"]
