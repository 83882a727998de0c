"""Known provider identification."""

from domainscope.providers.catalog import CatalogEntry, StaticProviderCatalog, match_first
from domainscope.providers.cloudflare import is_cloudflare_ip

__all__ = ["CatalogEntry", "StaticProviderCatalog", "is_cloudflare_ip", "match_first"]
