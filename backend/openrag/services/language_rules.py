"""
Language tables - extension mapping, structure rules and import patterns.

Adding a language means adding rows here; the splitters never branch on
language names themselves.
"""

import re
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Optional

# Lines of a file scanned for import/require statements
DEPENDENCY_SCAN_LINES = 50

EXTENSION_LANGUAGES = {
    ".ts": "typescript",
    ".tsx": "typescript",
    ".mts": "typescript",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".py": "python",
    ".java": "java",
    ".cpp": "cpp",
    ".cc": "cpp",
    ".cxx": "cpp",
    ".hpp": "cpp",
    ".c": "c",
    ".h": "c",
    ".cs": "csharp",
    ".php": "php",
    ".rb": "ruby",
    ".go": "go",
    ".rs": "rust",
    ".kt": "kotlin",
    ".swift": "swift",
    ".scala": "scala",
    ".md": "markdown",
    ".markdown": "markdown",
    ".mdx": "markdown",
    ".rst": "restructuredtext",
    ".txt": "text",
    ".json": "json",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".toml": "toml",
    ".xml": "xml",
    ".html": "html",
    ".css": "css",
    ".scss": "scss",
    ".vue": "vue",
    ".svelte": "svelte",
    ".sh": "bash",
    ".sql": "sql",
}

CODE_LANGUAGES = frozenset({
    "typescript", "javascript", "python", "java", "cpp", "c",
    "csharp", "php", "ruby", "go", "rust", "kotlin", "swift", "scala",
})

MARKUP_LANGUAGES = frozenset({"markdown"})


@dataclass(frozen=True)
class StructureRule:
    """How to spot the start of a function or class in one language."""
    function_start: re.Pattern
    class_start: re.Pattern
    # Whether a closing brace can end a structure (False for indentation languages)
    brace_delimited: bool = True

    def is_function_start(self, line: str) -> bool:
        return bool(self.function_start.match(line.strip()))

    def is_class_start(self, line: str) -> bool:
        return bool(self.class_start.match(line.strip()))

    def is_structure_start(self, line: str) -> bool:
        return self.is_function_start(line) or self.is_class_start(line)


_SCRIPT_RULE = StructureRule(
    function_start=re.compile(
        r"^(?:export\s+)?(?:default\s+)?(?:async\s+)?function\b"
        r"|^(?:export\s+)?(?:const|let|var)\s+\w+\s*(?::[^=]+)?=\s*(?:async\s+)?(?:\([^)]*\)|\w+)\s*(?::\s*[\w<>\[\]|, ]+)?\s*=>"
        r"|^\w+\s*\([^)]*\)\s*:\s*\w+\s*=>"
    ),
    class_start=re.compile(r"^(?:export\s+)?(?:default\s+)?(?:abstract\s+)?class\s+\w+"),
)

_MANAGED_RULE = StructureRule(
    function_start=re.compile(
        r"^(?:public|private|protected|internal|static)\b.*\w+\s*\([^)]*\)\s*(?:throws\s+[\w.,\s]+)?\{"
    ),
    class_start=re.compile(
        r"^(?:(?:public|private|protected|internal)\s+)?(?:(?:abstract|static|final|sealed|partial)\s+)*"
        r"(?:class|interface|enum|record)\s+\w+"
    ),
)

STRUCTURE_RULES: dict[str, StructureRule] = {
    "typescript": _SCRIPT_RULE,
    "javascript": _SCRIPT_RULE,
    "python": StructureRule(
        function_start=re.compile(r"^(?:async\s+)?def\s+\w+"),
        class_start=re.compile(r"^class\s+\w+"),
        brace_delimited=False,
    ),
    "java": _MANAGED_RULE,
    "csharp": _MANAGED_RULE,
    "go": StructureRule(
        function_start=re.compile(r"^func\s+"),
        class_start=re.compile(r"^type\s+\w+\s+(?:struct|interface)\b"),
    ),
    "rust": StructureRule(
        function_start=re.compile(r"^(?:pub(?:\([^)]*\))?\s+)?(?:async\s+)?(?:unsafe\s+)?fn\s+\w+"),
        class_start=re.compile(r"^(?:pub(?:\([^)]*\))?\s+)?(?:struct|enum|trait|impl)\b"),
    ),
}

_SCRIPT_IMPORTS = (
    re.compile(r"^import\s+.*\s+from\s+['\"]([^'\"]+)['\"]"),
    re.compile(r"^import\s+['\"]([^'\"]+)['\"]"),
    re.compile(r"require\s*\(\s*['\"]([^'\"]+)['\"]\s*\)"),
)

DEPENDENCY_PATTERNS: dict[str, tuple[re.Pattern, ...]] = {
    "typescript": _SCRIPT_IMPORTS,
    "javascript": _SCRIPT_IMPORTS,
    "python": (re.compile(r"^(?:from\s+([\w.]+)\s+import|import\s+([\w.]+))"),),
    "java": (re.compile(r"^import\s+(?:static\s+)?([\w.]+(?:\.\*)?)\s*;"),),
    "csharp": (re.compile(r"^using\s+(?:static\s+)?([\w.]+)\s*;"),),
    "go": (re.compile(r"^import\s+(?:\w+\s+)?\"([^\"]+)\""),),
    "rust": (re.compile(r"^(?:pub\s+)?use\s+([\w:]+)"),),
}


def detect_language(path: str) -> Optional[str]:
    """Map a file path to a language tag, or None when unknown."""
    suffix = PurePosixPath(path).suffix.lower()
    return EXTENSION_LANGUAGES.get(suffix)


def get_structure_rule(language: Optional[str]) -> Optional[StructureRule]:
    return STRUCTURE_RULES.get(language or "")


def is_code_language(language: Optional[str]) -> bool:
    return (language or "") in CODE_LANGUAGES


def is_markup_language(language: Optional[str]) -> bool:
    return (language or "") in MARKUP_LANGUAGES


def extract_dependencies(content: str, language: Optional[str]) -> Optional[list[str]]:
    """
    Collect import/require targets from the head of a file.

    Args:
        content: Full file content
        language: Language tag of the file

    Returns:
        Targets in first-seen order without duplicates, or None when the
        language has no import patterns.
    """
    patterns = DEPENDENCY_PATTERNS.get(language or "")
    if patterns is None:
        return None

    dependencies: list[str] = []
    for line in content.split("\n")[:DEPENDENCY_SCAN_LINES]:
        trimmed = line.strip()
        for pattern in patterns:
            match = pattern.search(trimmed)
            if not match:
                continue
            target = next((group for group in match.groups() if group), None)
            if target and target not in dependencies:
                dependencies.append(target)
            break

    return dependencies
