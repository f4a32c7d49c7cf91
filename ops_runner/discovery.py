"""Discovery of Pester test files and the tags they declare."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_TEST_PATTERN = "*.Tests.ps1"

_BLOCK_LINE = re.compile(r"^\s*(Describe|Context|It)\b", re.IGNORECASE)
_TAG_ARGUMENT = re.compile(
    r"-Tags?\s+("
    r"@\([^)]*\)"
    r"|(?:['\"][^'\"]+['\"]\s*,\s*)*['\"][^'\"]+['\"]"
    r"|[\w.-]+"
    r")",
    re.IGNORECASE,
)
_QUOTED = re.compile(r"['\"]([^'\"]+)['\"]")


@dataclass
class TestCatalog:
    """Test files under a root with the tags each one declares."""

    __test__ = False

    root: Path
    files: list[Path] = field(default_factory=list)
    tags_by_file: dict[Path, list[str]] = field(default_factory=dict)

    @property
    def tags(self) -> list[str]:
        seen: dict[str, None] = {}
        for path in self.files:
            for tag in self.tags_by_file.get(path, []):
                seen.setdefault(tag, None)
        return sorted(seen, key=str.lower)

    def files_with_tags(self, tags: list[str] | tuple[str, ...]) -> list[Path]:
        wanted = {tag.lower() for tag in tags}
        return [
            path
            for path in self.files
            if wanted & {tag.lower() for tag in self.tags_by_file.get(path, [])}
        ]

    def tags_for(self, files: list[Path]) -> list[str]:
        seen: dict[str, None] = {}
        for path in files:
            for tag in self.tags_by_file.get(path, []):
                seen.setdefault(tag, None)
        return sorted(seen, key=str.lower)

    def display_path(self, path: Path) -> str:
        try:
            return str(path.relative_to(self.root))
        except ValueError:
            return str(path)


def discover_test_files(root: Path, pattern: str = DEFAULT_TEST_PATTERN) -> list[Path]:
    """Return test scripts under ``root`` sorted by path."""
    root = root.expanduser()
    if root.is_file():
        return [root]
    if not root.is_dir():
        logger.warning("Test root %s does not exist", root)
        return []
    return sorted(path for path in root.rglob(pattern) if path.is_file())


def parse_tag_argument(argument: str) -> list[str]:
    quoted = _QUOTED.findall(argument)
    if quoted:
        return [tag.strip() for tag in quoted if tag.strip()]
    bare = argument.strip()
    return [bare] if bare and not bare.startswith("@(") else []


def extract_tags(path: Path) -> list[str]:
    """Collect ``-Tag`` values from Describe/Context/It lines, first-seen order."""
    try:
        text = path.read_text(encoding="utf-8-sig", errors="replace")
    except OSError as exc:
        logger.warning("Cannot read %s: %s", path, exc)
        return []

    seen: dict[str, None] = {}
    for line in text.splitlines():
        if not _BLOCK_LINE.match(line):
            continue
        for match in _TAG_ARGUMENT.finditer(line):
            for tag in parse_tag_argument(match.group(1)):
                seen.setdefault(tag, None)
    return list(seen)


def build_catalog(root: Path, pattern: str = DEFAULT_TEST_PATTERN) -> TestCatalog:
    files = discover_test_files(root, pattern)
    catalog = TestCatalog(root=root if root.is_dir() else root.parent, files=files)
    for path in files:
        catalog.tags_by_file[path] = extract_tags(path)
    logger.debug("Discovered %d test files with %d tags", len(files), len(catalog.tags))
    return catalog
