from __future__ import annotations

from dataclasses import dataclass

__all__ = ["OrpSlices", "orp_index", "split_orp"]


@dataclass(frozen=True)
class OrpSlices:
    """Focal-letter split of a token: ``left`` + ``pivot`` + ``right``."""

    left: str
    pivot: str
    right: str

    @property
    def text(self) -> str:
        return f"{self.left}{self.pivot}{self.right}"

    @property
    def has_pivot(self) -> bool:
        # Single-codepoint tokens are drawn whole without a highlighted letter.
        return bool(self.left or self.right)


def orp_index(token: str) -> int:
    length = len(token)
    if length < 2:
        return 0
    return (length - 1) // 2


def split_orp(token: str) -> OrpSlices:
    # Python strings index by codepoint, so astral characters stay intact.
    if len(token) < 2:
        return OrpSlices(left="", pivot=token, right="")
    index = orp_index(token)
    return OrpSlices(
        left=token[:index],
        pivot=token[index],
        right=token[index + 1 :],
    )
