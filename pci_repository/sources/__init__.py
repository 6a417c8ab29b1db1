"""Text sources for the PCI ID registry."""

from urllib.parse import urlparse

from pci_repository.config.models import SourceConfig
from pci_repository.interfaces.source import TextSource
from pci_repository.sources.file import FileTextSource
from pci_repository.sources.http import HttpTextSource


def create_source(config: SourceConfig) -> TextSource:
    """Create a text source from config.

    ``http``/``https`` URLs are fetched over the network, ``file://`` URLs and
    bare paths are read from disk.
    """
    parsed = urlparse(config.url)
    if parsed.scheme in ("http", "https"):
        return HttpTextSource(config.url, timeout=config.timeout)
    if parsed.scheme == "file":
        return FileTextSource(parsed.path)
    if parsed.scheme and len(parsed.scheme) > 1:
        raise ValueError(
            f"Unsupported source URL scheme: {parsed.scheme!r}. "
            "Use http(s)://, file:// or a filesystem path."
        )
    return FileTextSource(config.url)


__all__ = [
    "FileTextSource",
    "HttpTextSource",
    "TextSource",
    "create_source",
]
