"""Remote content-discovery service client."""

from .zipf_client import ZipfClient

__all__ = ["ZipfClient"]
