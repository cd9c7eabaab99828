# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Best-effort lexical analysis of JavaScript and TypeScript sources.

Nothing here parses the language. Every extraction is a regular expression
run over the raw text, so unusual formatting yields false positives and
negatives. Scores depend on exactly these matches; keep them lexical.
"""

import logging
import re

from rcs.model import ApiSurface, ComponentAnalysis, ComponentType
from rcs.source import component_name

logger = logging.getLogger(__name__)

_IDENTIFIER = r"[a-zA-Z_$][a-zA-Z0-9_$]*"

IMPORT_PATTERN = re.compile(r"import.*from\s+['\"`]([^'\"`]+)['\"`]")
EXPORT_PATTERN = re.compile(
    rf"export\s+(?:const|let|var|function|class|interface|type|default)\s+({_IDENTIFIER})"
)
FUNCTION_PATTERN = re.compile(rf"(?:export\s+)?(?:async\s+)?function\s+({_IDENTIFIER})")
CLASS_PATTERN = re.compile(rf"(?:export\s+)?class\s+({_IDENTIFIER})")
INTERFACE_PATTERN = re.compile(rf"(?:export\s+)?interface\s+({_IDENTIFIER})")
BLOCK_COMMENT_PATTERN = re.compile(r"/\*\*?\s*(.*?)\s*\*/", re.DOTALL)

REUSABILITY_KEYWORDS: tuple[str, ...] = (
    "util",
    "helper",
    "service",
    "parser",
    "validator",
    "transformer",
    "processor",
    "handler",
    "manager",
    "factory",
    "builder",
)

# Each pattern is checked once; overlapping matches compound.
COMPATIBILITY_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"async.*function.*\("),
    re.compile(r"interface.*\{"),
    re.compile(r"export.*class"),
    re.compile(r"\.json\("),
    re.compile(r"fetch\("),
    re.compile(r"Promise<"),
)

# Checked in order against the relative path; first hit wins.
TYPE_PATH_HINTS: tuple[tuple[tuple[str, ...], ComponentType], ...] = (
    (("service",), ComponentType.SERVICE),
    (("util", "lib"), ComponentType.UTILITY),
    (("component",), ComponentType.COMPONENT),
    (("parser",), ComponentType.PARSER),
    (("validat",), ComponentType.VALIDATOR),
    (("workflow",), ComponentType.WORKFLOW),
)

RECOMMENDED_PATTERNS: dict[ComponentType, str] = {
    ComponentType.SERVICE: "mcp-server-module",
    ComponentType.UTILITY: "mcp-utility-function",
    ComponentType.PARSER: "mcp-data-processor",
    ComponentType.VALIDATOR: "mcp-input-validator",
}
GENERIC_PATTERN = "mcp-generic-module"

PATTERN_COMPATIBILITY_BONUS: dict[ComponentType, int] = {
    ComponentType.PARSER: 20,
    ComponentType.VALIDATOR: 15,
}

DESCRIPTION_MAX_LENGTH = 200


def clamp_score(score: int) -> int:
    """Clamp a heuristic score to [0, 100]."""
    return max(0, min(100, score))


class ComponentAnalyzer:
    """Score one source file for reusability and protocol compatibility."""

    def analyze(
        self, file_path: str, content: str, default_type: ComponentType
    ) -> ComponentAnalysis:
        """Analyze one file's text.

        The caller filters out files below the minimum content length and
        handles read errors.

        Args:
            file_path: Project-relative path, ``/``-separated.
            content: Full file text.
            default_type: Type assumed before path-based classification.

        Returns:
            Fully populated analysis.
        """
        dependencies = IMPORT_PATTERN.findall(content)
        api_surface = ApiSurface(
            exports=EXPORT_PATTERN.findall(content),
            functions=FUNCTION_PATTERN.findall(content),
            classes=CLASS_PATTERN.findall(content),
            interfaces=INTERFACE_PATTERN.findall(content),
        )
        tags: list[str] = []
        reusability_score = self._score_reusability(
            file_path=file_path,
            dependencies=dependencies,
            api_surface=api_surface,
            tags=tags,
        )
        compatibility_score = sum(
            15 for pattern in COMPATIBILITY_PATTERNS if pattern.search(content)
        )
        component_type = classify_component_type(file_path, default_type)
        compatibility_score += PATTERN_COMPATIBILITY_BONUS.get(component_type, 0)

        return ComponentAnalysis(
            name=component_name(file_path),
            file_path=file_path,
            component_type=component_type,
            description=extract_description(
                content=content,
                component_type=component_type,
                export_count=len(api_surface.exports),
            ),
            reusability_score=clamp_score(reusability_score),
            protocol_compatibility_score=clamp_score(compatibility_score),
            dependencies=dependencies,
            api_surface=api_surface,
            recommended_pattern=RECOMMENDED_PATTERNS.get(component_type, GENERIC_PATTERN),
            tags=tags,
        )

    def _score_reusability(
        self,
        file_path: str,
        dependencies: list[str],
        api_surface: ApiSurface,
        tags: list[str],
    ) -> int:
        score = 0
        if api_surface.exports:
            score += 20
        if api_surface.functions:
            score += 15
        if api_surface.classes:
            score += 15
        if api_surface.interfaces:
            score += 10

        if len(dependencies) < 5:
            score += 10
        elif len(dependencies) > 10:
            score -= 10

        lowered = file_path.lower()
        for keyword in REUSABILITY_KEYWORDS:
            if keyword in lowered:
                score += 15
                tags.append(keyword)
                break
        return score


def classify_component_type(file_path: str, default_type: ComponentType) -> ComponentType:
    """Override the default type from substrings of the file path."""
    for hints, component_type in TYPE_PATH_HINTS:
        if any(hint in file_path for hint in hints):
            return component_type
    return default_type


def extract_description(content: str, component_type: ComponentType, export_count: int) -> str:
    """Return the first block comment collapsed to one line, or a summary.

    Args:
        content: Full file text.
        component_type: Classified type, used by the fallback summary.
        export_count: Number of exported names, used by the fallback summary.

    Returns:
        Description of at most 200 characters when taken from a comment.
    """
    match = BLOCK_COMMENT_PATTERN.search(content)
    if match:
        description = match.group(1).replace("*", "").replace("\n", " ").strip()
        description = description[:DESCRIPTION_MAX_LENGTH]
        if description:
            return description
    return f"{component_type.value} module containing {export_count} exports"
