"""domainscope - hardened acquisition of DNS, TLS, registration and web metadata."""

from domainscope.version import __version__

__all__ = ["__version__"]
