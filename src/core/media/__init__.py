"""
Access to stored media objects through short-lived signed URLs.
"""

from .resolver import SignedUrlResolver, UrlSigner

__all__ = ["SignedUrlResolver", "UrlSigner"]
