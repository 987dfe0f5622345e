import pytest

from alloc import mark_extent
from fs import ROOT_INDEX, Inode, Superblock, encode_name
from fsck import check_consistency


def make_file(name, start, size, parent=ROOT_INDEX):
    inode = Inode(encode_name(name))
    inode.used = True
    inode.size = size
    inode.start_block = start
    inode.parent = parent
    return inode


def make_dir(name, parent=ROOT_INDEX):
    inode = Inode(encode_name(name))
    inode.used = True
    inode.is_dir = True
    inode.parent = parent
    return inode


@pytest.fixture
def sb():
    """Consistent superblock with a directory in slot 0 and two files."""
    sb = Superblock.blank()
    sb.inodes[0] = make_dir("dir")
    sb.inodes[1] = make_file("a", 1, 2)
    sb.inodes[2] = make_file("b", 3, 1, parent=0)
    mark_extent(sb, 1, 3, True)
    return sb


class TestConsistentImages:
    def test_blank_disk(self):
        assert check_consistency(Superblock.blank()) == 0

    def test_populated_disk(self, sb):
        assert check_consistency(sb) == 0

    def test_file_may_end_on_last_block(self):
        sb = Superblock.blank()
        sb.inodes[0] = make_file("end", 120, 8)
        mark_extent(sb, 120, 8, True)
        assert check_consistency(sb) == 0


class TestSingleRuleViolations:
    def test_free_inode_with_leftover_bytes(self, sb):
        sb.inodes[5].start_block = 9
        assert check_consistency(sb) == 1

    def test_used_inode_without_name(self, sb):
        sb.inodes[1].name = b"\x00abc\x00"
        assert check_consistency(sb) == 1

    def test_file_start_block_zero(self, sb):
        sb.inodes[3] = make_file("z", 0, 0)
        assert check_consistency(sb) == 2

    def test_file_runs_past_end_of_disk(self, sb):
        sb.inodes[3] = make_file("big", 127, 2)
        assert check_consistency(sb) == 2

    def test_file_start_block_past_last_block(self, sb):
        sb.inodes[3] = make_file("far", 200, 1)
        assert check_consistency(sb) == 2

    def test_directory_with_size(self, sb):
        sb.inodes[0].size = 1
        assert check_consistency(sb) == 3

    def test_directory_with_start_block(self, sb):
        sb.inodes[0].start_block = 4
        assert check_consistency(sb) == 3

    def test_self_parent(self, sb):
        sb.inodes[0].parent = 0
        assert check_consistency(sb) == 4

    def test_reserved_parent(self, sb):
        sb.inodes[1].parent = 126
        assert check_consistency(sb) == 4

    def test_parent_is_a_file(self, sb):
        sb.inodes[2].parent = 1
        assert check_consistency(sb) == 4

    def test_parent_is_unused(self, sb):
        sb.inodes[2].parent = 50
        assert check_consistency(sb) == 4

    def test_duplicate_names_in_root(self, sb):
        sb.inodes[3] = make_dir("A")
        assert check_consistency(sb) == 5

    def test_duplicate_names_in_subdirectory(self, sb):
        sb.inodes[3] = make_dir("B", parent=0)
        assert check_consistency(sb) == 5

    def test_same_name_in_different_directories(self, sb):
        sb.inodes[3] = make_dir("b")
        assert check_consistency(sb) == 0

    def test_allocated_block_marked_free(self, sb):
        sb.set_block_used(2, False)
        assert check_consistency(sb) == 6

    def test_used_block_owned_by_nobody(self, sb):
        sb.set_block_used(40, True)
        assert check_consistency(sb) == 6

    def test_overlapping_extents(self, sb):
        sb.inodes[3] = make_file("c", 2, 2)
        sb.set_block_used(4, True)
        assert check_consistency(sb) == 6

    def test_superblock_bit_cleared(self, sb):
        sb.set_block_used(0, False)
        assert check_consistency(sb) == 6


class TestFirstErrorWins:
    def test_rule_one_reported_before_rule_six(self, sb):
        sb.inodes[7].name = b"junk\x00"
        sb.set_block_used(99, True)
        assert check_consistency(sb) == 1

    def test_rule_two_reported_before_rule_four(self, sb):
        sb.inodes[3] = make_file("x", 0, 1, parent=126)
        assert check_consistency(sb) == 2

    def test_rule_three_reported_before_rule_five(self, sb):
        sb.inodes[3] = make_dir("DIR")
        sb.inodes[3].size = 2
        assert check_consistency(sb) == 3

    def test_rule_four_reported_before_rule_five(self, sb):
        sb.inodes[3] = make_dir("a")
        sb.inodes[4] = make_dir("q", parent=4)
        assert check_consistency(sb) == 4
