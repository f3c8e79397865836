from .pairing import next_pair, select_pair

__all__ = [
    "next_pair",
    "select_pair",
]
