"""Deployment artifact loading.

The deployment step writes the registry address and its compiler artifact
into an artifacts directory:

* ``contract-address_<Name>.json`` -- ``{"<Name>": "0x..."}``
* ``<Name>.json`` -- compiler output whose ``abi`` key holds the ABI
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .errors import ConfigError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegistryArtifact:
    address: str
    abi: list[dict[str, Any]] = field(default_factory=list)


def _read_json(path: Path) -> Any:
    if not path.is_file():
        raise ConfigError(f"Artifact file not found: {path}")
    try:
        with open(path) as f:
            return json.load(f)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Artifact file {path} is not valid JSON: {exc}") from exc


def load_registry_artifact(
    directory: str | Path,
    contract_name: str = "ProductManager",
    address_override: str = "",
) -> RegistryArtifact:
    """Read the registry address and ABI from *directory*."""
    directory = Path(directory)

    abi_doc = _read_json(directory / f"{contract_name}.json")
    abi = abi_doc.get("abi") if isinstance(abi_doc, dict) else None
    if not isinstance(abi, list):
        raise ConfigError(f"{contract_name}.json has no 'abi' list")

    if address_override:
        address = address_override
    else:
        address_doc = _read_json(directory / f"contract-address_{contract_name}.json")
        address = address_doc.get(contract_name) if isinstance(address_doc, dict) else None
        if not isinstance(address, str) or not address:
            raise ConfigError(
                f"contract-address_{contract_name}.json has no '{contract_name}' entry"
            )

    logger.debug("Loaded %s artifact at %s (%d ABI entries)", contract_name, address, len(abi))
    return RegistryArtifact(address=address, abi=abi)
