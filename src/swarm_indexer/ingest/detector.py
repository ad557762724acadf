"""Language and project-type detection."""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

EXTENSION_LANGUAGES = {
    ".go": "go",
    ".py": "python",
    ".js": "javascript",
    ".jsx": "javascript",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".java": "java",
    ".rs": "rust",
    ".rb": "ruby",
    ".c": "c",
    ".h": "c",
    ".cpp": "cpp",
    ".cc": "cpp",
    ".cxx": "cpp",
    ".hpp": "cpp",
    ".md": "markdown",
    ".txt": "text",
    ".json": "json",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".toml": "toml",
}

# Checked in order; the first marker present decides the project type
PROJECT_MARKERS = (
    ("go.mod", "go"),
    ("package.json", "node"),
    ("requirements.txt", "python"),
    ("pyproject.toml", "python"),
    ("setup.py", "python"),
    ("Cargo.toml", "rust"),
    ("pom.xml", "java"),
    ("build.gradle", "java"),
    ("Gemfile", "ruby"),
)

VCS_MARKERS = ((".git", "git"), (".svn", "svn"), (".hg", "hg"))
IDE_MARKERS = (".vscode", ".idea")


@dataclass
class ProjectInfo:
    """What a root directory looks like as a software project.

    Attributes:
        type: go, node, python, rust, java, ruby or unknown
        has_vcs: Whether a version-control directory is present
        vcs_type: git, svn or hg when ``has_vcs``
        has_ide_config: Whether an IDE settings directory is present
        dependencies: Best-effort name -> version map
    """

    type: str = "unknown"
    has_vcs: bool = False
    vcs_type: str = ""
    has_ide_config: bool = False
    dependencies: dict[str, str] = field(default_factory=dict)


def parse_go_mod(text: str) -> dict[str, str]:
    """Extract required modules from go.mod content."""
    deps = {}
    in_require = False
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if line.startswith("require ("):
            in_require = True
            continue
        if in_require and line == ")":
            in_require = False
            continue
        parts = line.split()
        if in_require and len(parts) >= 2:
            deps[parts[0]] = parts[1]
        elif line.startswith("require ") and len(parts) >= 3:
            deps[parts[1]] = parts[2]
    return deps


def parse_package_json(text: str) -> dict[str, str]:
    """Extract dependencies and devDependencies from package.json content."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        return {}
    if not isinstance(data, dict):
        return {}
    deps = {}
    for key in ("dependencies", "devDependencies"):
        section = data.get(key)
        if isinstance(section, dict):
            deps.update({str(name): str(version) for name, version in section.items()})
    return deps


class Detector:
    """Detects file languages by extension and project types by marker files."""

    def detect_language(self, path: Path | str) -> str:
        """Return the language tag for a file, or "unknown"."""
        return EXTENSION_LANGUAGES.get(Path(path).suffix.lower(), "unknown")

    def detect_project(self, root: Path | str) -> ProjectInfo:
        """Inspect a directory for project, VCS and IDE markers.

        Raises:
            FileNotFoundError: If ``root`` does not exist
        """
        root = Path(root)
        if not root.exists():
            raise FileNotFoundError(f"project root does not exist: {root}")

        info = ProjectInfo()
        for marker, project_type in PROJECT_MARKERS:
            marker_path = root / marker
            if not marker_path.is_file():
                continue
            info.type = project_type
            info.dependencies = self._parse_dependencies(marker_path)
            break

        for marker, vcs_type in VCS_MARKERS:
            if (root / marker).is_dir():
                info.has_vcs = True
                info.vcs_type = vcs_type
                break

        info.has_ide_config = any((root / marker).is_dir() for marker in IDE_MARKERS)

        logger.debug(f"Detected project {root}: type={info.type}, vcs={info.vcs_type or 'none'}")
        return info

    def _parse_dependencies(self, marker_path: Path) -> dict[str, str]:
        try:
            text = marker_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"⚠️ Could not read {marker_path}: {e}")
            return {}
        if marker_path.name == "go.mod":
            return parse_go_mod(text)
        if marker_path.name == "package.json":
            return parse_package_json(text)
        return {}
