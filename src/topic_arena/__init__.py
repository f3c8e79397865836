"""Topic Arena.

Pick a topic, gather contenders with images, and rank them through
pairwise votes with Elo ratings.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
