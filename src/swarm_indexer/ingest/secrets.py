"""Secret detection: whole-file skips by name and inline findings by pattern."""

import fnmatch
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

REDACTION = "[REDACTED]"

# Files that are never indexed, matched against the file name
SECRET_FILE_PATTERNS = (
    ".env",
    ".env.*",
    "*.pem",
    "*.key",
    "*.p12",
    "*.pfx",
    "*.keystore",
    "*.jks",
    "id_rsa",
    "id_dsa",
    "id_ecdsa",
    "id_ed25519",
    ".netrc",
    ".pgpass",
    ".htpasswd",
    "credentials.json",
    "service-account*.json",
)

SECRET_PATTERNS = (
    ("aws_access_key", re.compile(r"\b(?:AKIA|ASIA)[0-9A-Z]{16}\b")),
    ("private_key", re.compile(r"-----BEGIN (?:[A-Z]+ )?PRIVATE KEY-----")),
    ("github_token", re.compile(r"\bgh[pousr]_[A-Za-z0-9]{36,}\b")),
    ("slack_token", re.compile(r"\bxox[abprs]-[A-Za-z0-9-]{10,}\b")),
    ("google_api_key", re.compile(r"\bAIza[0-9A-Za-z_\-]{35}\b")),
    (
        "generic_secret",
        re.compile(
            r"""(?i)\b(?:api[_-]?key|secret|password|passwd|token)\b\s*[:=]\s*["']?([^\s"']{8,})"""
        ),
    ),
)


@dataclass
class Finding:
    """An inline secret located in file content.

    Attributes:
        line: 1-indexed line of the match
        column: 1-indexed column of the match
        match: Matched secret text
        type: Pattern name that matched
        start: Character offset of the secret in the content
        end: Character offset just past the secret
    """

    line: int
    column: int
    match: str
    type: str
    start: int
    end: int


@dataclass
class ScanResult:
    """Outcome of a file-level scan."""

    should_skip: bool = False
    reason: str = ""
    findings: list[Finding] = field(default_factory=list)


class SecretsScanner:
    """Finds secrets so they can be kept out of the index."""

    def scan_file(self, path: Path | str) -> ScanResult:
        """Decide from the file name whether a file must be skipped entirely."""
        name = Path(path).name
        for pattern in SECRET_FILE_PATTERNS:
            if fnmatch.fnmatchcase(name, pattern):
                return ScanResult(should_skip=True, reason=f"secret file ({pattern})")
        return ScanResult()

    def scan_content(self, content: str) -> list[Finding]:
        """Locate inline secrets, ordered by position, without overlaps."""
        findings = []
        for secret_type, pattern in SECRET_PATTERNS:
            for match in pattern.finditer(content):
                group = 1 if match.groups() else 0
                start, end = match.span(group)
                line = content.count("\n", 0, start) + 1
                column = start - (content.rfind("\n", 0, start) + 1) + 1
                findings.append(
                    Finding(
                        line=line,
                        column=column,
                        match=match.group(group),
                        type=secret_type,
                        start=start,
                        end=end,
                    )
                )

        findings.sort(key=lambda finding: (finding.start, -finding.end))
        merged: list[Finding] = []
        for finding in findings:
            if merged and finding.start < merged[-1].end:
                continue
            merged.append(finding)

        if merged:
            logger.debug(f"Found {len(merged)} inline secrets")
        return merged

    def redact(self, content: str, findings: list[Finding]) -> str:
        """Replace every finding's span with a redaction marker."""
        if not findings:
            return content
        parts = []
        cursor = 0
        for finding in sorted(findings, key=lambda f: f.start):
            if finding.start < cursor:
                continue
            parts.append(content[cursor : finding.start])
            parts.append(REDACTION)
            cursor = finding.end
        parts.append(content[cursor:])
        return "".join(parts)
