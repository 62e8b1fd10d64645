"""Deterministic prompt construction from model and environment attributes."""

import logging
from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional, Tuple

from fashiongen.core.models import EnvironmentAttributes, ModelAttributes

logger = logging.getLogger(__name__)

# Values that carry no distinguishing detail for any attribute
NEUTRAL_VALUES: FrozenSet[str] = frozenset({"default", "none", "unspecified", "n/a", "any"})


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _article(word: str) -> str:
    return "an" if word[:1].lower() in "aeiou" else "a"


def _sentence(text: str) -> str:
    return text if text.endswith((".", "!", "?")) else f"{text}."


@dataclass(frozen=True)
class AttributePhrase:
    """Maps one or more attribute fields to a prompt fragment.

    When several fields are listed their non-neutral values are joined with
    spaces before being substituted, so hair style and colour become a single
    fragment.

    Attributes:
        fields: Attribute names read from the settings object
        template: Fragment with one ``{}`` placeholder
        sentinels: Lower-cased values that suppress the fragment
    """
    fields: Tuple[str, ...]
    template: str
    sentinels: FrozenSet[str] = NEUTRAL_VALUES

    def render(self, attributes: object) -> Optional[str]:
        values = []
        for name in self.fields:
            value = _clean(getattr(attributes, name, None))
            if value is not None and value.lower() not in self.sentinels:
                values.append(value)
        if not values:
            return None
        return self.template.format(" ".join(values))


class PromptBuilder:
    """Builds the natural-language prompt sent to the image model.

    The output is persisted with every generation record, so it must be a
    pure function of the attribute objects. All branching is on sentinel
    equality.
    """

    SUBJECT_PHRASES: Tuple[AttributePhrase, ...] = (
        AttributePhrase(("ethnicity",), "of {} ethnicity",
                        NEUTRAL_VALUES | {"ambiguous ethnicity", "ambiguous"}),
        AttributePhrase(("body_type",), "with {} body proportions", NEUTRAL_VALUES | {"average"}),
        AttributePhrase(("age_range",), "aged {}", NEUTRAL_VALUES | {"26-35"}),
        AttributePhrase(("height",), "of {} height", NEUTRAL_VALUES | {"average"}),
        AttributePhrase(("hair_style", "hair_color"), "with {} hair"),
        AttributePhrase(("accessories",), "accessorized with {}", NEUTRAL_VALUES | {"no accessories"}),
    )

    BACKGROUND_DESCRIPTIONS: Dict[str, str] = {
        "studio-white": "Clean white studio background with a seamless backdrop and professional studio setup.",
        "studio-gradient": "Studio setting with a smooth gradient backdrop in soft neutral tones.",
        "in-store": "Upscale retail boutique interior with tasteful clothing racks and displays.",
        "lifestyle-home": "Bright, modern home interior with natural, lived-in styling.",
        "lifestyle-office": "Contemporary office space with clean lines and a professional ambiance.",
        "outdoor-urban": "Outdoor urban street setting with city architecture in the background.",
        "outdoor-nature": "Outdoor nature setting with lush greenery and soft natural surroundings.",
        "seasonal-spring": "Spring outdoor setting with blooming flowers and fresh green foliage.",
        "seasonal-summer": "Summer outdoor setting with bright sunshine and vibrant, warm surroundings.",
        "seasonal-fall": "Autumn outdoor setting with golden and red fall foliage.",
        "seasonal-winter": "Winter outdoor setting with soft snow and crisp, cool surroundings.",
    }
    FALLBACK_BACKGROUND = "Professional photography setting with a clean, well-lit background."

    DEFAULT_GENDER = "female"
    DEFAULT_POSE = "standing in a natural, relaxed pose"
    SUBJECT_SUFFIX = "wearing the clothing item shown in the provided image"

    STYLE_CLAUSE = (
        "Authentic, high-end fashion photography with a natural, confident expression "
        "and realistic body proportions. The clothing item from the provided image is the "
        "visual focus: reproduce its exact design, color, fabric texture, pattern and fit."
    )

    DEFAULT_LIGHTING = "Studio Softbox"
    DEFAULT_LENS_STYLE = "Fashion Magazine (Standard)"
    DEFAULT_CAMERA_ANGLE = "Eye Level"

    def build_subject_clause(self, model: ModelAttributes) -> str:
        """Describe the model wearing the uploaded garment."""
        fragments: List[str] = []
        for phrase in self.SUBJECT_PHRASES:
            fragment = phrase.render(model)
            if fragment:
                fragments.append(fragment)

        gender = self._value_or_none(model.gender)
        gender = gender.lower() if gender else self.DEFAULT_GENDER

        pose = self._value_or_none(model.pose)
        if pose:
            pose_fragment = f"in {_article(pose)} {pose.lower()} pose"
        else:
            pose_fragment = self.DEFAULT_POSE

        parts = [f"{_article(gender)} {gender} model", *fragments, pose_fragment, self.SUBJECT_SUFFIX]
        return ", ".join(parts)

    def build_setting_clause(self, env: EnvironmentAttributes) -> str:
        """Describe the background, season and atmosphere."""
        custom = _clean(env.background_custom)
        preset = _clean(env.background_preset)

        if custom:
            sentences = [_sentence(f"Custom setting: {custom}")]
            season_encoded = False
        else:
            key = preset.lower() if preset else ""
            sentences = [self.BACKGROUND_DESCRIPTIONS.get(key, self.FALLBACK_BACKGROUND)]
            season_encoded = key.startswith("seasonal-")

        season = self._value_or_none(env.season)
        if season and not season_encoded:
            sentences.append(f"The scene reflects a {season.lower()} season atmosphere.")

        time_of_day = self._value_or_none(env.time_of_day)
        weather = self._value_or_none(env.weather)
        if time_of_day and weather:
            sentences.append(f"Captured during {time_of_day.lower()} with {weather.lower()} weather conditions.")
        elif time_of_day:
            sentences.append(f"Captured during {time_of_day.lower()}.")
        elif weather:
            sentences.append(f"Captured with {weather.lower()} weather conditions.")

        return " ".join(sentences)

    def build_technical_clause(self, env: EnvironmentAttributes) -> str:
        """Describe lighting, lens and camera angle."""
        lighting = self._value_or_none(env.lighting) or self.DEFAULT_LIGHTING
        lens = self._value_or_none(env.lens_style) or self.DEFAULT_LENS_STYLE
        angle = self._value_or_none(env.camera_angle) or self.DEFAULT_CAMERA_ANGLE
        return (
            f"Photographed with {lighting} lighting, {_article(lens)} {lens} lens style "
            f"and {_article(angle)} {angle} camera angle, in high resolution with sharp "
            f"focus on the garment."
        )

    def build_prompt(self, model: ModelAttributes, env: EnvironmentAttributes) -> str:
        """Build the full multi-paragraph prompt.

        Args:
            model: Appearance attributes of the generated model
            env: Scene and camera attributes

        Returns:
            Prompt text with a directive header followed by the
            "Setting:", "Style:" and "Technical details:" sections
        """
        prompt = "\n\n".join([
            f"Generate a photorealistic fashion photograph of {self.build_subject_clause(model)}.",
            f"Setting: {self.build_setting_clause(env)}",
            f"Style: {self.STYLE_CLAUSE}",
            f"Technical details: {self.build_technical_clause(env)}",
        ])
        logger.debug(f"Built prompt ({len(prompt)} chars): {prompt[:80]}...")
        return prompt

    @staticmethod
    def _value_or_none(value: Optional[str]) -> Optional[str]:
        text = _clean(value)
        if text is None or text.lower() in NEUTRAL_VALUES:
            return None
        return text


# Global prompt builder instance
_global_builder: Optional[PromptBuilder] = None


def get_prompt_builder() -> PromptBuilder:
    """Get or create the global prompt builder instance.

    Returns:
        Global PromptBuilder instance
    """
    global _global_builder

    if _global_builder is None:
        _global_builder = PromptBuilder()

    return _global_builder


def build_prompt(model: ModelAttributes, env: EnvironmentAttributes) -> str:
    """Shortcut for ``get_prompt_builder().build_prompt(model, env)``."""
    return get_prompt_builder().build_prompt(model, env)
