"""
Feature library.

Owns the generated features the runner can execute, and splits generated
step-definition bundles back into their individual source files.
"""

import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from ..core.exceptions import ValidationError
from ..execution.models import Feature

# Generated bundles mark each file with a banner:
#   // ============
#   // 📁 tests/pages/LoginPage.ts
#   // ============
FILE_HEADER_PATTERN = re.compile(
    r"// =+\n// 📁 (.+)\n// =+\n([\s\S]*?)(?=// =+\n// 📁|$)"
)
FALLBACK_STEPS_PATH = "tests/steps/steps.ts"


@dataclass(frozen=True)
class SourceFile:
    """One file of a generated steps bundle."""

    name: str
    path: str
    content: str


def parse_steps_files(steps_code: str) -> List[SourceFile]:
    """
    Split a generated steps bundle into files.

    Args:
        steps_code: Generated automation code, possibly with file banners

    Returns:
        The files in bundle order; a single ``steps.ts`` when there are no banners
    """
    files = []
    for match in FILE_HEADER_PATTERN.finditer(steps_code):
        path = match.group(1).strip()
        files.append(
            SourceFile(
                name=path.split("/")[-1] or path,
                path=path,
                content=match.group(2).strip(),
            )
        )

    if not files and steps_code:
        files.append(
            SourceFile(
                name=FALLBACK_STEPS_PATH.split("/")[-1],
                path=FALLBACK_STEPS_PATH,
                content=steps_code,
            )
        )
    return files


class FeatureLibrary:
    """Newest-first collection of features."""

    def __init__(self, features: Optional[Iterable[Feature]] = None):
        self._features: List[Feature] = []
        for feature in features or []:
            self._features.append(feature)

    def add(self, feature: Feature) -> Feature:
        if self.get(feature.id) is not None:
            raise ValidationError(
                f"Feature id already exists: {feature.id}",
                validation_type="feature",
                violations=[f"duplicate id {feature.id}"],
            )
        self._features.insert(0, feature)
        return feature

    def get(self, feature_id: str) -> Optional[Feature]:
        for feature in self._features:
            if feature.id == feature_id:
                return feature
        return None

    def find_by_title(self, query: str) -> Optional[Feature]:
        """First feature whose title contains ``query``, ignoring case."""
        needle = query.strip().lower()
        if not needle:
            return None
        for feature in self._features:
            if needle in feature.title.lower():
                return feature
        return None

    def available_tags(self) -> List[str]:
        tags = set()
        for feature in self._features:
            tags.update(feature.tags)
        return sorted(tags)

    def filter_by_tag(self, tag: Optional[str]) -> List[Feature]:
        if not tag:
            return list(self._features)
        return [f for f in self._features if f.has_tag(tag)]

    def titles(self) -> Dict[str, str]:
        return {f.id: f.title for f in self._features}

    def __iter__(self):
        return iter(list(self._features))

    def __len__(self) -> int:
        return len(self._features)
