"""Ad block insertion and removal in episode scripts."""

import pytest

from sponsorcast.domain.scoring import AD_END, AD_START
from sponsorcast.domain.script_markers import count_ad_blocks, insert_ad_block, insertion_index, strip_ad_blocks
from sponsorcast.domain.sponsorship import AdContent

SCRIPT = "\n".join(f"HOST: line {i}" for i in range(10))


def _ad(placement: str = "mid-roll", script: str = "Sponsored by ByteBox.") -> AdContent:
    return AdContent(script=script, placement=placement)


class TestInsertionIndex:

    @pytest.mark.parametrize(
        "placement,expected",
        [("intro", 2), ("outro", 8), ("mid-roll", 5), ("natural", 5)],
    )
    def test_index_by_slot(self, placement, expected):
        assert insertion_index(10, placement) == expected

    def test_short_scripts(self):
        assert insertion_index(1, "intro") == 0
        assert insertion_index(1, "outro") == 0
        assert insertion_index(1, "mid-roll") == 0


class TestInsertAndStrip:

    def test_block_is_padded_and_marked(self):
        merged = insert_ad_block(SCRIPT, _ad("intro"))
        lines = merged.split("\n")
        assert lines[2:7] == ["", AD_START, "Sponsored by ByteBox.", AD_END, ""]
        assert lines[7] == "HOST: line 2"
        assert count_ad_blocks(merged) == 1

    @pytest.mark.parametrize("placement", ["intro", "mid-roll", "outro", "natural"])
    def test_strip_restores_original(self, placement):
        merged = insert_ad_block(SCRIPT, _ad(placement))
        assert strip_ad_blocks(merged) == SCRIPT

    def test_strip_removes_every_block(self):
        merged = insert_ad_block(insert_ad_block(SCRIPT, _ad("intro")), _ad("outro", "Second sponsor."))
        assert count_ad_blocks(merged) == 2
        assert strip_ad_blocks(merged) == SCRIPT

    def test_inline_block_is_removed(self):
        text = f"HOST: before {AD_START} buy now {AD_END} after"
        assert strip_ad_blocks(text) == "HOST: before  after"

    def test_unterminated_block_is_left_alone(self):
        text = f"HOST: a\n{AD_START}\ndangling"
        assert strip_ad_blocks(text) == text

    def test_count_without_markers(self):
        assert count_ad_blocks(SCRIPT) == 0
