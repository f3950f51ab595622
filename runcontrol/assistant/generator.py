"""
Gherkin and step-definition generation.

Turns a user story into a ``.feature`` file and Playwright/Cucumber step
definitions using the configured LLM.
"""

from dataclasses import dataclass
from typing import Optional

from ..core.config import Config
from ..execution.models import Feature
from .llm import LLMClient

SECTION_SEPARATOR = "|||SECTION_SEPARATOR|||"
MISSING_STEPS_PLACEHOLDER = "// No step definitions generated or format error."

SYSTEM_PROMPT = f"""\
You are a QA automation engineer working with Cucumber and Playwright.
Convert the user story into:
1. A valid Gherkin .feature file.
2. TypeScript step definitions using @cucumber/cucumber and Playwright with
   Page Object classes. Start each file with a banner:
   // ============================================================
   // 📁 tests/pages/<PageName>.ts
   // ============================================================
Separate the feature text from the TypeScript with the exact string
"{SECTION_SEPARATOR}". Do not wrap the output in markdown code fences."""


@dataclass
class GeneratedAssets:
    """Feature text and step definitions produced by the model."""

    feature: str
    steps: str

    def to_feature(self, feature_id: Optional[str] = None) -> Feature:
        return Feature.from_gherkin(self.feature, self.steps, feature_id=feature_id)


def split_sections(text: str) -> GeneratedAssets:
    """Split model output into feature text and steps code."""
    parts = text.split(SECTION_SEPARATOR)
    if len(parts) < 2:
        return GeneratedAssets(feature=text.strip(), steps=MISSING_STEPS_PLACEHOLDER)
    return GeneratedAssets(feature=parts[0].strip(), steps=parts[1].strip())


class GherkinGenerator:
    """Generates test assets from user stories."""

    def __init__(self, config: Config, llm: Optional[LLMClient] = None):
        self.config = config
        self.llm = llm or LLMClient(config)

    def select_model(self, has_image: bool, fast: bool) -> str:
        """Vision model for images, lite model for fast mode, default otherwise."""
        if has_image:
            return self.config.vision_model_name
        if fast:
            return self.config.fast_model_name
        return self.config.model_name

    async def generate(
        self,
        user_story: str,
        context: Optional[str] = None,
        image_base64: Optional[str] = None,
        mime_type: Optional[str] = None,
        fast: bool = False,
    ) -> GeneratedAssets:
        """
        Generate a feature file and step definitions.

        Raises:
            ModelError: If the model call fails
        """
        prompt = f"User Story / Acceptance Criteria:\n{user_story}\n"
        if context:
            prompt += f"\nAdditional Technical Context: {context}\n"
        prompt += "\nGenerate the Feature file and Step Definitions now."

        has_image = bool(image_base64 and mime_type)
        if has_image:
            user_content = [
                {
                    "type": "image_url",
                    "image_url": {"url": f"data:{mime_type};base64,{image_base64}"},
                },
                {"type": "text", "text": prompt},
            ]
        else:
            user_content = prompt

        result = await self.llm.complete(
            [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": user_content},
            ],
            model=self.select_model(has_image, fast),
            temperature=0.2,
            task_type="generation",
        )
        return split_sections(result.content)
