"""In-memory deployment archive: ``package.xml`` plus named artifacts."""

from __future__ import annotations

import io
import zipfile
from dataclasses import dataclass, field
from xml.sax.saxutils import escape

MANIFEST_PATH = 'package.xml'
METADATA_XMLNS = 'http://soap.sforce.com/2006/04/metadata'


@dataclass(frozen=True, slots=True)
class MetadataArtifact:
    """One archive entry, e.g. ``settings/Security.settings``."""

    path: str
    body: str


@dataclass(frozen=True, slots=True)
class PackageManifest:
    """``package.xml`` contents: metadata type name -> member names."""

    version: str
    types: tuple[tuple[str, tuple[str, ...]], ...] = field(default_factory=tuple)

    def to_xml(self) -> str:
        lines = [
            '<?xml version="1.0" encoding="UTF-8"?>',
            f'<Package xmlns="{METADATA_XMLNS}">',
        ]
        for type_name, members in self.types:
            lines.append('    <types>')
            for member in members:
                lines.append(f'        <members>{escape(member)}</members>')
            lines.append(f'        <name>{escape(type_name)}</name>')
            lines.append('    </types>')
        lines.append(f'    <version>{escape(self.version)}</version>')
        lines.append('</Package>')
        return '\n'.join(lines)


def build_archive(
    manifest: PackageManifest,
    artifacts: list[MetadataArtifact] | tuple[MetadataArtifact, ...],
) -> bytes:
    """Zip the manifest and artifacts; the archive is closed before returning."""
    if not artifacts:
        raise ValueError('archive needs at least one artifact')

    paths = [a.path for a in artifacts]
    if MANIFEST_PATH in paths:
        raise ValueError(f'{MANIFEST_PATH} is written from the manifest, not as an artifact')
    if len(set(paths)) != len(paths):
        raise ValueError(f'duplicate artifact paths: {sorted(paths)}')

    buf = io.BytesIO()
    with zipfile.ZipFile(buf, 'w', compression=zipfile.ZIP_DEFLATED) as zf:
        zf.writestr(MANIFEST_PATH, manifest.to_xml())
        for artifact in artifacts:
            zf.writestr(artifact.path, artifact.body)
    return buf.getvalue()
