"""Three-block prompt composition for slab interior renders.

The generation prompt is composed from two fixed directives followed by the
caller's own text.  The directives establish a consistent rendering style and
tie the output to the attached slab photo.

Template Structure::

    [Fixed: rendering style directive]

    [Fixed: material fidelity directive, with the slab label if given]

    USER REQUEST:
    [Caller prompt, verbatim]

Each block is separated by double newlines.  The caller prompt is placed
last, behind an explicit ``USER REQUEST:`` header, so the model can tell the
service's instructions apart from user free text.  It is never truncated or
rewritten.

Usage
-----
::

    compiled = build_prompt("Kitchen island with waterfall edge", label="Lot-802")
"""

from __future__ import annotations

from dataclasses import dataclass

# ---------------------------------------------------------------------------
# Fixed directives.
# These are constants rather than configuration: they define the look every
# render shares.  Callers control variation through the prompt and label.
# ---------------------------------------------------------------------------

_STYLE_DIRECTIVE = (
    "Create an ultra realistic architectural interior rendering in 4K quality. "
    "Natural, soft daylight with accurate reflections on polished stone surfaces. "
    "Eye-level, slightly wide-angle camera framing with straight verticals, as in "
    "a professional interior design photograph. "
    "Do not add any text, captions, logos, labels or watermarks to the image."
)

_MATERIAL_DIRECTIVE = (
    "Material: premium Blue Jeans Marble{label_clause}. "
    "The attached reference image is the authoritative source for the stone: "
    "reproduce its exact pattern, veining and colours (dramatic denim-blue veining "
    "with bronze accents) on every stone surface. "
    "Do not invent a new texture, do not recolour the slab and do not replace it "
    "with a generic marble."
)

USER_REQUEST_HEADER = "USER REQUEST:"


@dataclass(frozen=True)
class CompositePrompt:
    """The final instruction text sent to the generation model."""

    text: str

    def __str__(self) -> str:
        return self.text


def material_directive(label: str | None = None) -> str:
    """Return the material fidelity block, naming the slab when *label* is set."""
    stripped_label = (label or "").strip()
    label_clause = f' slab "{stripped_label}"' if stripped_label else ""
    return _MATERIAL_DIRECTIVE.format(label_clause=label_clause)


def build_prompt(prompt: str, label: str | None = None) -> str:
    """Compile the full generation prompt.

    Args:
        prompt: The caller's free-text request.  Included verbatim.
        label: Optional slab label (e.g. a lot number) woven into the
            material directive.

    Returns:
        The compiled prompt with blocks separated by double newlines
        (``\\n\\n``).
    """
    parts: list[str] = [
        _STYLE_DIRECTIVE,
        material_directive(label),
        f"{USER_REQUEST_HEADER}\n{prompt}",
    ]
    return "\n\n".join(parts)


def compose(prompt: str, label: str | None = None) -> CompositePrompt:
    """Like :func:`build_prompt`, wrapped in a :class:`CompositePrompt`."""
    return CompositePrompt(text=build_prompt(prompt, label))
