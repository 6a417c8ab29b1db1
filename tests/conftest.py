"""Shared test fixtures for the PCI repository pipeline."""

import logging

import pytest

from pci_repository.config.models import RepositoryConfig
from pci_repository.log import PACKAGE_LOGGER
from pci_repository.storage.memory_store import MemoryStore

HEADER = (
    "#\n"
    "#\tList of PCI ID's\n"
    "#\n"
    "#\tVersion: {version}\n"
    "#\tDate:    {version} 03:15:02\n"
    "#\n"
    "\n"
)

SAMPLE_DEVICES = [
    "0001  SafeNet (wrong ID)",
    "0010  Allied Telesis, Inc (Wrong ID)",
    "\t8139  AT-2500TX V3 Ethernet",
    "8086  Intel Corporation",
    "\t1229  82557/8/9/0/1 Ethernet Pro 100",
    "\t\t8086 0001  EtherExpress PRO/100B (TX)",
    "\t\t8086 0002  EtherExpress PRO/100B (T4)",
    "\t100e  82540EM Gigabit Ethernet Controller",
]

SAMPLE_CLASSES = [
    "C 00  Unclassified device",
    "\t00  Non-VGA unclassified device",
    "\t01  VGA compatible unclassified device",
    "C 01  Mass storage controller",
    "\t01  IDE interface",
    "\t\t00  ISA Compatibility mode-only controller",
    "\t\t05  PCI native mode-only controller",
    "C 02  Network controller",
]


def build_registry(
    devices: list[str],
    classes: list[str] | None = None,
    version: str = "2024.01.01",
) -> str:
    parts = [HEADER.format(version=version), "# Vendors, devices and subsystems.\n"]
    parts += [f"{line}\n" for line in devices]
    if classes:
        parts.append("\n# List of known device classes\n\n")
        parts += [f"{line}\n" for line in classes]
    return "".join(parts)


class StaticSource:
    """TextSource returning fixed text, counting fetches."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.fetches = 0

    @property
    def location(self) -> str:
        return "memory://pci.ids"

    async def fetch(self) -> str:
        self.fetches += 1
        return self.text


class RecordingStore(MemoryStore):
    """MemoryStore that records every call by operation name."""

    def __init__(self) -> None:
        super().__init__()
        self.calls: list[str] = []

    async def get_aggregate(self, section, root_id):
        self.calls.append("get_aggregate")
        return await super().get_aggregate(section, root_id)

    async def insert_aggregate(self, section, root):
        self.calls.append("insert_aggregate")
        await super().insert_aggregate(section, root)

    async def replace_aggregate(self, section, root):
        self.calls.append("replace_aggregate")
        await super().replace_aggregate(section, root)

    async def get_marker(self):
        self.calls.append("get_marker")
        return await super().get_marker()

    async def save_marker(self, marker):
        self.calls.append("save_marker")
        await super().save_marker(marker)

    @property
    def writes(self) -> list[str]:
        return [c for c in self.calls if c in ("insert_aggregate", "replace_aggregate", "save_marker")]


@pytest.fixture(autouse=True)
def _reset_package_logger():
    """CLI tests install handlers on the package logger; undo that for caplog."""
    yield
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


@pytest.fixture
def make_registry():
    return build_registry


@pytest.fixture
def sample_registry():
    return build_registry(SAMPLE_DEVICES, SAMPLE_CLASSES)


@pytest.fixture
def static_source():
    return StaticSource


@pytest.fixture
def store():
    return RecordingStore()


@pytest.fixture
def sample_config():
    return RepositoryConfig()
