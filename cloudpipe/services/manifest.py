"""Decoded view of a spotguide's ``.banzaicloud/spotguide.yaml``."""
from dataclasses import dataclass, field
from typing import Any, Dict, List

import yaml


@dataclass
class Resources:
    cpu: int = 0
    memory: int = 0
    filters: List[str] = field(default_factory=list)
    same_size: bool = False
    on_demand_pct: int = 0
    min_nodes: int = 0
    max_nodes: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'sumCpu': self.cpu,
            'sumMem': self.memory,
            'filters': list(self.filters),
            'sameSize': self.same_size,
            'onDemandPct': self.on_demand_pct,
            'minNodes': self.min_nodes,
            'maxNodes': self.max_nodes,
        }


@dataclass
class SpotguideManifest:
    name: str = ''
    description: str = ''
    tags: List[str] = field(default_factory=list)
    resources: Resources = field(default_factory=Resources)
    # Launch time questions; their schema is left to the UI.
    questions: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'description': self.description,
            'tags': list(self.tags),
            'resources': self.resources.to_dict(),
            'questions': list(self.questions),
        }


class ManifestError(ValueError):
    pass


def decode_manifest(raw: bytes) -> SpotguideManifest:
    """
    Decode raw manifest bytes.
    An empty document decodes to an empty manifest, anything that is not a
    YAML mapping raises ManifestError.
    """
    try:
        document = yaml.safe_load(raw or b'')
    except yaml.YAMLError as e:
        raise ManifestError(f"invalid spotguide manifest: {e}") from e

    if document is None:
        return SpotguideManifest()
    if not isinstance(document, dict):
        raise ManifestError("spotguide manifest must be a mapping")

    resources = document.get('resources') or {}
    if not isinstance(resources, dict):
        raise ManifestError("spotguide manifest 'resources' must be a mapping")

    try:
        return SpotguideManifest(
            name=str(document.get('name') or ''),
            description=str(document.get('description') or ''),
            tags=[str(tag) for tag in document.get('tags') or []],
            resources=Resources(
                cpu=int(resources.get('sumCpu') or 0),
                memory=int(resources.get('sumMem') or 0),
                filters=[str(f) for f in resources.get('filters') or []],
                same_size=bool(resources.get('sameSize', False)),
                on_demand_pct=int(resources.get('onDemandPct') or 0),
                min_nodes=int(resources.get('minNodes') or 0),
                max_nodes=int(resources.get('maxNodes') or 0),
            ),
            questions=list(document.get('questions') or []),
        )
    except (TypeError, ValueError) as e:
        raise ManifestError(f"invalid spotguide manifest: {e}") from e
