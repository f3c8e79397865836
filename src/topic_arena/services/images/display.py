"""Client-side fallback for images that fail to load.

This runs after an image URL has been chosen and does not go back through
the resolution chain: the first failure swaps in a generated image for the
label, the second an inline SVG placeholder.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from urllib.parse import quote
from xml.sax.saxutils import escape

from topic_arena.models import ImageSource

from .wikimedia import build_pollinations_url

PLACEHOLDER_LABEL_LIMIT = 60
PLACEHOLDER_DEFAULT_LABEL = "Image unavailable"

_SVG_TEMPLATE = """\
<svg xmlns="http://www.w3.org/2000/svg" width="800" height="800" viewBox="0 0 800 800">
  <defs>
    <linearGradient id="g" x1="0" y1="0" x2="1" y2="1">
      <stop offset="0%" stop-color="#111827"/>
      <stop offset="50%" stop-color="#1f2937"/>
      <stop offset="100%" stop-color="#0b1020"/>
    </linearGradient>
  </defs>
  <rect width="100%" height="100%" fill="url(#g)"/>
  <text x="50%" y="50%" dominant-baseline="middle" text-anchor="middle"
        font-family="ui-sans-serif, system-ui, -apple-system, Segoe UI, Roboto, Helvetica, Arial"
        font-size="32" fill="#e5e7eb">{label}</text>
</svg>"""


def normalize_src(src: str) -> str:
    """Trim a URL and upgrade plain http to https."""
    trimmed = src.strip()
    if trimmed.startswith("http://"):
        return "https://" + trimmed[len("http://") :]
    return trimmed


def build_placeholder_data_url(label: str) -> str:
    """Inline SVG data URL showing the (escaped, shortened) label."""
    short = label.strip()[:PLACEHOLDER_LABEL_LIMIT]
    safe = escape(short or PLACEHOLDER_DEFAULT_LABEL, {'"': "&quot;", "'": "&apos;"})
    svg = _SVG_TEMPLATE.format(label=safe)
    return f"data:image/svg+xml;charset=utf-8,{quote(svg, safe='')}"


@dataclass
class DisplayImage:
    """Tracks which source an image element should show.

    Attributes:
        src: URL originally chosen for the contender.
        label: Text for the fallbacks (generation prompt and placeholder).
        enable_generated_fallback: Try a generated image before the placeholder.
    """

    src: str
    label: str
    enable_generated_fallback: bool = True
    current_src: str = field(init=False)
    step: int = field(init=False, default=0)

    def __post_init__(self) -> None:
        self.current_src = normalize_src(self.src)

    @property
    def source(self) -> ImageSource | None:
        """Provenance of the current fallback, or None for the original URL."""
        if self.step == 1:
            return "pollinations"
        if self.step == 2:  # noqa: PLR2004
            return "placeholder"
        return None

    def on_error(self) -> str:
        """Advance after a load failure and return the URL to show next."""
        if self.step == 0 and self.enable_generated_fallback:
            self.step = 1
            self.current_src = build_pollinations_url(self.label)
        elif self.step < 2:  # noqa: PLR2004
            self.step = 2
            self.current_src = build_placeholder_data_url(self.label)
        return self.current_src

    def reset(self, src: str) -> None:
        """Start over for a new upstream URL."""
        self.src = src
        self.current_src = normalize_src(src)
        self.step = 0
