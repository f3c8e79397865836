from .display import DisplayImage, build_placeholder_data_url, normalize_src
from .resolver import ImageResolver, ResolutionContext
from .wikimedia import WikimediaClient, WikipediaHit, build_pollinations_url

__all__ = [
    "DisplayImage",
    "ImageResolver",
    "ResolutionContext",
    "WikimediaClient",
    "WikipediaHit",
    "build_placeholder_data_url",
    "build_pollinations_url",
    "normalize_src",
]
