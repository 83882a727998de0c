"""Artifact collectors.

Importing this package registers every collector with ``CollectorRegistry``.
"""

from domainscope.collectors.base import BaseCollector
from domainscope.collectors.certificates import CertificateCollector
from domainscope.collectors.context import AcquisitionContext, open_context
from domainscope.collectors.dns import DnsCollector
from domainscope.collectors.headers import HeadersCollector
from domainscope.collectors.hosting import HostingCollector
from domainscope.collectors.registration import RegistrationCollector
from domainscope.collectors.registry import CollectorRegistry
from domainscope.collectors.seo import SeoCollector

__all__ = [
    "AcquisitionContext",
    "BaseCollector",
    "CertificateCollector",
    "CollectorRegistry",
    "DnsCollector",
    "HeadersCollector",
    "HostingCollector",
    "RegistrationCollector",
    "SeoCollector",
    "open_context",
]
