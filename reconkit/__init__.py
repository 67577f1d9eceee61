"""DNS and network reconnaissance toolkit: resolvers, wildcard detection, NSEC walking, ASN caching and graph exports."""

__version__ = "0.1.0"