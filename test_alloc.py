import pytest

from alloc import find_contiguous, mark_extent
from fs import Superblock


class TestFindContiguous:
    def test_first_fit_on_blank_disk(self):
        assert find_contiguous(Superblock.blank(), 3) == 1

    def test_skips_holes_that_are_too_small(self):
        sb = Superblock.blank()
        mark_extent(sb, 1, 2, True)
        mark_extent(sb, 5, 1, True)
        # blocks 3-4 free, too small for 3
        assert find_contiguous(sb, 3) == 6
        assert find_contiguous(sb, 2) == 3

    def test_whole_data_area(self):
        sb = Superblock.blank()
        assert find_contiguous(sb, 127) == 1
        mark_extent(sb, 127, 1, True)
        assert find_contiguous(sb, 127) is None
        assert find_contiguous(sb, 126) == 1

    def test_last_block_is_a_candidate(self):
        sb = Superblock.blank()
        mark_extent(sb, 1, 126, True)
        assert find_contiguous(sb, 1) == 127

    def test_full_disk(self):
        sb = Superblock.blank()
        mark_extent(sb, 1, 127, True)
        assert find_contiguous(sb, 1) is None

    def test_zero_size_rejected(self):
        with pytest.raises(ValueError):
            find_contiguous(Superblock.blank(), 0)


class TestMarkExtent:
    def test_mark_and_release(self):
        sb = Superblock.blank()
        mark_extent(sb, 6, 4, True)
        assert [sb.is_block_free(b) for b in range(5, 11)] == [True, False, False, False, False, True]
        assert sb.used_block_count() == 5

        mark_extent(sb, 6, 4, False)
        assert sb == Superblock.blank()
