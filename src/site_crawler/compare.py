from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .links import Link
from .manifest import CrawlResult, SeedResult, load_result


def link_key(link: Link) -> str:
    """Identity of a link across two runs.

    Internal links are keyed by path so that two copies of a site on
    different hosts (old and new) line up.
    """

    if link.internal:
        return link.abs_path or "/"
    return link.abs_url


@dataclass(frozen=True)
class LinkChange:
    key: str
    old_outcome: str
    new_outcome: str
    old_pages: list[str]
    new_pages: list[str]

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "old": {"outcome": self.old_outcome, "pages": list(self.old_pages)},
            "new": {"outcome": self.new_outcome, "pages": list(self.new_pages)},
        }


@dataclass(frozen=True)
class SeedDiff:
    seed: str
    links_added: list[str] = field(default_factory=list)
    links_removed: list[str] = field(default_factory=list)
    links_changed: list[LinkChange] = field(default_factory=list)
    files_added: list[str] = field(default_factory=list)
    files_removed: list[str] = field(default_factory=list)
    files_changed: list[str] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return any(
            (
                self.links_added,
                self.links_removed,
                self.links_changed,
                self.files_added,
                self.files_removed,
                self.files_changed,
            )
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "seed": self.seed,
            "links_added": list(self.links_added),
            "links_removed": list(self.links_removed),
            "links_changed": [c.to_dict() for c in self.links_changed],
            "files_added": list(self.files_added),
            "files_removed": list(self.files_removed),
            "files_changed": list(self.files_changed),
        }


@dataclass(frozen=True)
class ResultDiff:
    seeds_added: list[str]
    seeds_removed: list[str]
    seeds: list[SeedDiff]

    @property
    def has_changes(self) -> bool:
        if self.seeds_added or self.seeds_removed:
            return True
        return any(s.has_changes for s in self.seeds)

    def to_dict(self) -> dict[str, Any]:
        return {
            "seeds_added": list(self.seeds_added),
            "seeds_removed": list(self.seeds_removed),
            "seeds": [s.to_dict() for s in self.seeds],
        }


def compare_seeds(old: SeedResult, new: SeedResult) -> SeedDiff:
    old_links = {link_key(link): link for link in old.links}
    new_links = {link_key(link): link for link in new.links}

    changed: list[LinkChange] = []
    for key in old_links.keys() & new_links.keys():
        before, after = old_links[key], new_links[key]
        if before.outcome != after.outcome or before.pages != after.pages:
            changed.append(
                LinkChange(
                    key=key,
                    old_outcome=before.outcome,
                    new_outcome=after.outcome,
                    old_pages=before.pages,
                    new_pages=after.pages,
                )
            )

    old_files = {f.abs_path: f for f in old.files}
    new_files = {f.abs_path: f for f in new.files}
    files_changed = [
        path
        for path in old_files.keys() & new_files.keys()
        if old_files[path].content() != new_files[path].content()
        or old_files[path].content_type != new_files[path].content_type
    ]

    return SeedDiff(
        seed=old.label,
        links_added=sorted(new_links.keys() - old_links.keys()),
        links_removed=sorted(old_links.keys() - new_links.keys()),
        links_changed=sorted(changed, key=lambda c: c.key),
        files_added=sorted(new_files.keys() - old_files.keys()),
        files_removed=sorted(old_files.keys() - new_files.keys()),
        files_changed=sorted(files_changed),
    )


def compare_results(old: CrawlResult, new: CrawlResult) -> ResultDiff:
    old_labels = [s.label for s in old.seeds]
    new_labels = [s.label for s in new.seeds]

    diffs: list[SeedDiff] = []
    for old_seed in old.seeds:
        new_seed = new.seed(old_seed.label)
        if new_seed is not None:
            diffs.append(compare_seeds(old_seed, new_seed))

    return ResultDiff(
        seeds_added=[label for label in new_labels if label not in old_labels],
        seeds_removed=[label for label in old_labels if label not in new_labels],
        seeds=diffs,
    )


def compare_exports(old_dir: Path, new_dir: Path) -> ResultDiff:
    return compare_results(load_result(old_dir), load_result(new_dir))
