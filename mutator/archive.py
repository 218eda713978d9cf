"""SHA-indexed archive of evaluated candidates with lineage metadata."""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any, Optional


def compute_sha(source: str) -> str:
    """Short SHA used to name candidate sources."""

    return hashlib.sha256(source.encode("utf-8")).hexdigest()[:12]


class CandidateArchive:
    """Store candidate sources and their evaluation metadata on disk."""

    def __init__(self, archive_dir: str = "archive", suffix: str = "") -> None:
        self.dir = Path(archive_dir)
        self.dir.mkdir(parents=True, exist_ok=True)
        self.suffix = suffix
        self.db: dict[str, dict[str, Any]] = {}
        self._load_existing()

    def _load_existing(self) -> None:
        for meta_file in self.dir.glob("candidate_*_meta.json"):
            try:
                metadata = json.loads(meta_file.read_text(encoding="utf-8"))
            except json.JSONDecodeError:
                continue
            sha = str(metadata.get("sha", ""))
            if sha:
                self.db[sha] = metadata

    def save(
        self,
        source: str,
        generation: int,
        parent_sha: Optional[str] = None,
        extra: Optional[dict[str, Any]] = None,
    ) -> str:
        """Save candidate source and metadata, then return its short SHA.

        A source seen again keeps its first generation and parent; once
        accepted it stays accepted.
        """

        sha = compute_sha(source)
        metadata = self.db.get(sha)
        if metadata is None:
            metadata = {"sha": sha, "suffix": self.suffix, "generation": generation, "parent_sha": parent_sha}
            self.db[sha] = metadata
            self._code_path(sha, self.suffix).write_text(source, encoding="utf-8")

        accepted = bool(metadata.get("accepted")) or bool((extra or {}).get("accepted"))
        metadata.update(extra or {})
        metadata["accepted"] = accepted
        self._write_meta(sha)
        return sha

    def get_code(self, sha: str) -> str:
        """Load archived source by SHA."""

        suffix = str(self.get_meta(sha).get("suffix", self.suffix))
        return self._code_path(sha, suffix).read_text(encoding="utf-8")

    def get_meta(self, sha: str) -> dict[str, Any]:
        if sha not in self.db:
            raise KeyError(f"Unknown candidate SHA: {sha}")
        return self.db[sha]

    def accepted_shas(self) -> list[str]:
        """SHAs of accepted candidates ordered by first generation seen."""

        accepted = [(sha, meta) for sha, meta in self.db.items() if meta.get("accepted")]
        accepted.sort(key=lambda item: int(item[1].get("generation", 0)))
        return [sha for sha, _ in accepted]

    def _code_path(self, sha: str, suffix: str) -> Path:
        return self.dir / f"candidate_{sha}{suffix}"

    def _write_meta(self, sha: str) -> None:
        path = self.dir / f"candidate_{sha}_meta.json"
        path.write_text(json.dumps(self.db[sha], ensure_ascii=False, indent=2), encoding="utf-8")
