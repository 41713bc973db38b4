"""Discover external node packs on disk.

A pack is a directory holding ``manifest.json``, ``runner.py`` and an
optional ``requirements.txt``::

    custom-nodes/
        gridflow-ollama/
            manifest.json   {"name": ..., "version": ..., "nodes": [...]}
            runner.py
            requirements.txt
"""
import hashlib
import json
import re
from pathlib import Path

from loguru import logger
from pydantic import ValidationError

from ..models.schemas import NodePack, ManifestNodeSchema

_SLUG_RE = re.compile(r"[^a-zA-Z0-9._-]")


def sanitize_slug(slug: str) -> str:
    return _SLUG_RE.sub("", slug or "")


def pack_dir(root: Path, slug: str) -> Path | None:
    """Resolve a pack directory, refusing anything outside ``root``."""
    clean = sanitize_slug(slug)
    if not clean or clean in (".", ".."):
        return None
    base = root.resolve()
    path = (base / clean).resolve()
    if not path.is_dir() or base not in path.parents:
        return None
    return path


def load_pack(path: Path) -> NodePack | None:
    manifest_path = path / "manifest.json"
    if not manifest_path.is_file():
        return None
    try:
        manifest = json.loads(manifest_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Skipping pack {path.name}: unreadable manifest ({e})")
        return None
    if not isinstance(manifest, dict):
        logger.warning(f"Skipping pack {path.name}: manifest is not an object")
        return None

    nodes: list[ManifestNodeSchema] = []
    for entry in manifest.get("nodes") or []:
        try:
            node = ManifestNodeSchema.model_validate(entry)
        except ValidationError as e:
            logger.warning(f"Pack {path.name}: skipping invalid node entry ({e.error_count()} errors)")
            continue
        if not node.type:
            continue
        nodes.append(node)

    requirements = path / "requirements.txt"
    requirements_hash = None
    if requirements.is_file():
        requirements_hash = hashlib.sha1(requirements.read_bytes()).hexdigest()

    return NodePack(
        slug=path.name,
        name=manifest.get("name") or path.name,
        version=str(manifest.get("version") or "0.0.0"),
        runner="runner.py" if (path / "runner.py").is_file() else None,
        has_requirements=requirements.is_file(),
        requirements_hash=requirements_hash,
        nodes=nodes,
    )


def discover_packs(root: Path) -> list[NodePack]:
    """Every loadable pack directly under ``root``, sorted by slug."""
    if not root.is_dir():
        return []
    packs = []
    for path in sorted(p for p in root.iterdir() if p.is_dir()):
        pack = load_pack(path)
        if pack is not None:
            packs.append(pack)
    return packs
