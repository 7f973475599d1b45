from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable

from tqdm import tqdm

from .capture import CapturedFile
from .links import Link
from .seed import Seed
from .urls import path_key, safe_filename_piece

MANIFEST_NAME = "manifest.json"


def utc_iso() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


def relpath_posix(path: Path, base_dir: Path) -> str:
    rel = path.relative_to(base_dir)
    return rel.as_posix()


@dataclass
class SeedResult:
    """One seed's crawl result as read back from an export."""

    label: str
    path: str
    name: str | None
    error: str | None
    pages_parsed: int
    links: list[Link]
    files: list[CapturedFile]


@dataclass
class CrawlResult:
    site_url: str
    generated_at: str
    seeds: list[SeedResult] = field(default_factory=list)

    def seed(self, label: str) -> SeedResult | None:
        for seed in self.seeds:
            if seed.label == label:
                return seed
        return None


@dataclass
class ResultWriter:
    out_dir: Path

    def __post_init__(self) -> None:
        self.json_path = self.out_dir / MANIFEST_NAME
        self.files_dir = self.out_dir / "files"

    def write_file(self, seed_dir: str, captured: CapturedFile) -> Path:
        piece = safe_filename_piece(captured.abs_path)
        path = self.files_dir / seed_dir / f"{piece}--{path_key(captured.abs_path)}"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(captured.content())
        return path

    def write_summary(self, summary: dict[str, Any]) -> None:
        self.json_path.parent.mkdir(parents=True, exist_ok=True)
        self.json_path.write_text(
            json.dumps(summary, indent=2, ensure_ascii=False) + "\n",
            encoding="utf-8",
            newline="\n",
        )


def write_result(
    out_dir: Path,
    site_url: str,
    seeds: Iterable[Seed],
    *,
    progress: bool = False,
) -> Path:
    """Export a finished crawl: ``manifest.json`` plus every captured body.

    Bodies are written decompressed so two exports can be diffed with
    ordinary tools as well as with ``compare_exports``.
    """

    writer = ResultWriter(out_dir)
    seed_entries: list[dict[str, Any]] = []

    for index, seed in enumerate(seeds):
        seed_dir = f"{index:02d}-{safe_filename_piece(seed.label)}"
        file_entries: list[dict[str, Any]] = []
        for captured in tqdm(
            seed.files,
            desc=f"Writing {seed.label}",
            unit="file",
            disable=not progress,
        ):
            path = writer.write_file(seed_dir, captured)
            file_entries.append(
                {
                    "abs_path": captured.abs_path,
                    "content_type": captured.content_type,
                    "sha256": captured.sha256(),
                    "raw": relpath_posix(path, out_dir),
                }
            )

        seed_entries.append(
            {
                "label": seed.label,
                "path": seed.path,
                "name": seed.name,
                "status": seed.status.value,
                "error": seed.error,
                "pages_parsed": seed.pages_parsed,
                "links": [link.to_dict() for link in seed.links.values()],
                "files": file_entries,
            }
        )

    writer.write_summary(
        {"site_url": site_url, "generated_at": utc_iso(), "seeds": seed_entries}
    )
    return writer.json_path


def load_result(path: Path) -> CrawlResult:
    """Read an export written by ``write_result``.

    ``path`` may be the export directory or its ``manifest.json``.
    """

    manifest_path = path / MANIFEST_NAME if path.is_dir() else path
    if not manifest_path.exists():
        raise FileNotFoundError(f"Missing {MANIFEST_NAME} in: {path}")
    base_dir = manifest_path.parent

    try:
        data = json.loads(manifest_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid manifest {manifest_path}: {e}") from e

    result = CrawlResult(
        site_url=str(data.get("site_url") or ""),
        generated_at=str(data.get("generated_at") or ""),
    )
    for entry in data.get("seeds") or []:
        files = []
        for item in entry.get("files") or []:
            raw_path = base_dir / str(item["raw"])
            files.append(
                CapturedFile(
                    str(item["abs_path"]),
                    str(item.get("content_type") or ""),
                    raw_path.read_bytes(),
                )
            )
        result.seeds.append(
            SeedResult(
                label=str(entry.get("label") or entry.get("path") or ""),
                path=str(entry.get("path") or ""),
                name=entry.get("name"),
                error=entry.get("error"),
                pages_parsed=int(entry.get("pages_parsed") or 0),
                links=[Link.from_dict(item) for item in entry.get("links") or []],
                files=files,
            )
        )
    return result
