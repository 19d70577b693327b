"""Ad block markers inside episode scripts."""

from __future__ import annotations

import re

from .scoring import AD_END, AD_START
from .sponsorship import AdContent

_INLINE_BLOCK_RE = re.compile(re.escape(AD_START) + r".*?" + re.escape(AD_END), re.DOTALL)


def insertion_index(line_count: int, placement: str) -> int:
    if placement == "intro":
        return int(line_count * 0.2)
    if placement == "outro":
        return int(line_count * 0.8)
    return line_count // 2


def insert_ad_block(script: str, ad: AdContent) -> str:
    """Splice a padded, marked ad block into *script* at the slot's line index."""
    lines = script.split("\n")
    index = insertion_index(len(lines), ad.placement)
    lines[index:index] = ["", AD_START, ad.script, AD_END, ""]
    return "\n".join(lines)


def strip_ad_blocks(script: str) -> str:
    """Remove every marked ad block, including the blank padding around it."""
    lines = script.split("\n")
    kept: list[str] = []
    i = 0
    while i < len(lines):
        if lines[i].strip() != AD_START:
            kept.append(lines[i])
            i += 1
            continue
        end = i + 1
        while end < len(lines) and lines[end].strip() != AD_END:
            end += 1
        if end == len(lines):
            # unterminated block; leave the rest untouched
            kept.extend(lines[i:])
            break
        if kept and kept[-1] == "":
            kept.pop()
        i = end + 1
        if i < len(lines) and lines[i] == "":
            i += 1
    return _INLINE_BLOCK_RE.sub("", "\n".join(kept))


def count_ad_blocks(script: str) -> int:
    return min(script.count(AD_START), script.count(AD_END))
