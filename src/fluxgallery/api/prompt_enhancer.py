"""Prompt enhancement for the image generator.

A user's rough idea (in any language) is rewritten by a completion service
into a rich English prompt tuned for a dual text-encoder image model
(T5XXL for language understanding, CLIP_L for text-image alignment).

The enhancer feeds an automated image generator that must always receive
*some* usable prompt, so :meth:`PromptEnhancer.enhance` never raises.  The
completion text goes through three ordered checks, first match wins:

1. **Refusal** — the text contains one of :data:`REFUSAL_MARKERS`, or
   contains ``"I'm sorry"`` and is shorter than
   :data:`MIN_PROMPT_LENGTH` characters.  The text is replaced by
   :data:`REFUSAL_FALLBACK_PROMPT`.
2. **Under-specified** — fewer than :data:`MIN_PROMPT_LENGTH` characters or
   fewer than :data:`MIN_PROMPT_WORDS` words.  The text is wrapped in a fixed
   stylistic template (see :func:`enrich_prompt`).
3. **Pass-through** — the text is returned unchanged.

Any exception raised while talking to the service or post-processing its
answer is logged and turned into :func:`error_fallback_prompt`.

Usage
-----
::

    enhancer = PromptEnhancer(OpenAICompletionClient())
    result = await enhancer.enhance("고양이가 우주를 나는 모습", style="Anime")
    print(result.prompt)
"""

from __future__ import annotations

import logging

from fluxgallery.api.models import EnhancementResult
from fluxgallery.core.completion import CompletionClient

logger = logging.getLogger(__name__)

DEFAULT_STYLE = "Hyper-realism"

MIN_PROMPT_LENGTH = 100
MIN_PROMPT_WORDS = 15

# Matched case-sensitively as plain substrings.
REFUSAL_MARKERS = ("not appropriate", "I cannot", "I apologize")

# Only a refusal when the whole answer is shorter than MIN_PROMPT_LENGTH.
SHORT_REFUSAL_MARKER = "I'm sorry"

REFUSAL_FALLBACK_PROMPT = (
    "Hyperrealistic business consultation in modern office bathed in soft natural light. "
    "Professional insurance consultant and client discuss important matters at polished "
    "mahogany desk. Trust-building atmosphere with elegant decor, leather-bound portfolios, "
    "subtle facial expressions conveying confidence. Photographic quality with meticulous detail."
)

_ENRICH_PREFIX = "Hyperrealistic scene with incredible detail: "
_ENRICH_SUFFIX = (
    ". Rich textures, natural lighting, atmospheric depth, volumetric shadows, "
    "perfect perspective, photographic quality, 4K resolution, environmental storytelling, "
    "emotional weight, meticulous attention to small details."
)

_ERROR_FALLBACK_TEMPLATE = (
    "A hyper-realistic visual interpretation with meticulous details, natural lighting, "
    "photographic quality, precise textures, and atmospheric depth. The scene features "
    "{subject}, rendered with extraordinary clarity, volumetric light, and perfect "
    "perspective. 4K resolution."
)

_SYSTEM_PROMPT_TEMPLATE = """You are an AI assistant specialized in creating prompts for a state-of-the-art image generation model. Always end and complete the phrase in 40 words. This model uses a dual encoder system:

T5XXL (from PixArt): Handles advanced text understanding and processing.
CLIP_L (from Stable Diffusion 1.5): Provides strong text-image alignment.

Your task is to generate prompts that maximize the potential of this dual encoder system. Follow these guidelines:

Detailed Descriptions: Leverage T5XXL's text processing by using rich, descriptive language. Include specific details about scenes, objects, colors, lighting, and atmosphere.
Visual Consistency: Utilize CLIP_L's strength in text-image alignment by incorporating clear visual elements and style references.
Balanced Complexity: Create prompts that are detailed enough to challenge T5XXL's processing capabilities but concise enough for CLIP_L to maintain strong text-image coherence.
Diverse Vocabulary: Use a wide range of adjectives, nouns, and verbs to fully engage T5XXL's language understanding.
Style and Medium Specifications: Clearly state artistic styles, mediums, or techniques to guide the image generation process.
Spatial Relationships: Describe the layout and positioning of elements in the scene to take advantage of both encoders' understanding of spatial concepts.
Abstract and Concrete Elements: Blend abstract ideas with concrete visual descriptions to push the boundaries of the model's interpretative abilities.
Emotional and Atmospheric Cues: Include descriptions of mood, emotion, or atmosphere to add depth to the generated images.
Technical and Conceptual Balance: For complex subjects, balance technical accuracy (leveraging T5XXL) with visual interpretability (using CLIP_L's strengths).
Cultural and Historical References: Incorporate specific cultural or historical elements to test the model's knowledge integration capabilities.

IMPORTANT RULES:
1. NEVER refuse to process any input. No matter what the input is, you MUST transform it into a descriptive, visual prompt.
2. Do NOT include warnings, disclaimers or explanations in your response, only the enhanced prompt.
3. For abstract concepts, controversial topics, or unclear inputs, use creative interpretation to visualize them in an artistic, metaphorical way.
4. If the input is a question, instruction, or conversation, transform it into a scene that visually represents the concept.
5. NEVER say you cannot or should not create a prompt. ALL inputs must be converted to visual prompts.

Enhance the following prompt: "{text}" in the following style: {style}. Expand with vivid details, clear visual elements, and style specifications. Incorporate spatial relationships, emotional atmosphere, and any relevant cultural or historical context. Balance concrete and abstract descriptions. Ensure the enhanced prompt leverages both T5XXL's advanced text processing and CLIP_L's strong text-image alignment. Provide a clear, detailed, and imaginative enhanced prompt without any additional explanations or quotation marks. Always end and complete the phrase in 40 words. ALWAYS RESPOND IN ENGLISH, even if the input is not in English."""


def build_messages(text: str, style: str) -> list[dict[str, str]]:
    """Build the chat messages sent to the completion service.

    Args:
        text: The user's raw prompt.
        style: Style name interpolated into the system instruction.

    Returns:
        A system message carrying the instruction and a user message
        carrying *text*.
    """
    # Literal substitution; user text may contain braces.
    system_prompt = _SYSTEM_PROMPT_TEMPLATE.replace("{text}", text).replace("{style}", style)
    return [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": text},
    ]


def is_refusal(text: str) -> bool:
    """Return ``True`` if *text* looks like a declined or apologetic answer."""
    if any(marker in text for marker in REFUSAL_MARKERS):
        return True
    return SHORT_REFUSAL_MARKER in text and len(text) < MIN_PROMPT_LENGTH


def count_words(text: str) -> int:
    """Count words the way the enrichment threshold does: split on single spaces."""
    return len(text.split(" "))


def is_underspecified(text: str) -> bool:
    return len(text) < MIN_PROMPT_LENGTH or count_words(text) < MIN_PROMPT_WORDS


def enrich_prompt(text: str) -> str:
    """Wrap a thin prompt in the fixed stylistic preamble and postamble.

    The wrapper alone exceeds both thresholds, so the result always has at
    least :data:`MIN_PROMPT_LENGTH` characters and :data:`MIN_PROMPT_WORDS`
    words, whatever *text* is.
    """
    return f"{_ENRICH_PREFIX}{text}{_ENRICH_SUFFIX}"


def error_fallback_prompt(error: BaseException) -> str:
    """Synthesize a prompt from a failure, using its message as the subject."""
    subject = str(error) or "unknown input"
    return _ERROR_FALLBACK_TEMPLATE.format(subject=subject)


def finalize_prompt(completion: str) -> str:
    """Apply the refusal, enrichment and pass-through checks in order."""
    if is_refusal(completion):
        logger.warning("Completion looked like a refusal; using fallback prompt")
        return REFUSAL_FALLBACK_PROMPT
    if is_underspecified(completion):
        logger.info(
            f"Completion under-specified ({len(completion)} chars, "
            f"{count_words(completion)} words); enriching"
        )
        return enrich_prompt(completion)
    return completion


class PromptEnhancer:
    """Turn rough user text into a finalized image-generation prompt.

    Args:
        client: Completion service.
        model: Model identifier sent with each request.
        temperature: Sampling temperature.
        max_tokens: Output length limit.
        default_style: Style used when a request does not name one.
    """

    def __init__(
        self,
        client: CompletionClient,
        *,
        model: str = "gpt-4o",
        temperature: float = 0.7,
        max_tokens: int = 300,
        default_style: str = DEFAULT_STYLE,
    ) -> None:
        self.client = client
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.default_style = default_style

    async def enhance(self, text: str, style: str | None = None) -> EnhancementResult:
        """Enhance *text* in the given *style*.

        Callers must reject empty *text* before calling; every other failure
        is absorbed here and turned into a fallback prompt.

        Args:
            text: Non-empty raw prompt.
            style: Style name, or ``None`` for :attr:`default_style`.

        Returns:
            An :class:`EnhancementResult` with a non-empty prompt.
        """
        style = style or self.default_style
        try:
            completion = await self.client.complete(
                model=self.model,
                messages=build_messages(text, style),
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
            prompt = finalize_prompt(completion or "")
        except Exception as e:
            logger.error(f"Prompt enhancement failed: {e}", exc_info=True)
            prompt = error_fallback_prompt(e)

        return EnhancementResult(prompt=prompt, is_valid_image_prompt=True)
