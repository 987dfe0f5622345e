"""
Mount-time consistency checks for a superblock snapshot.

Rules run in a fixed order and the first broken one wins:

  1. free inodes are all zero, used inodes have a non-empty name
  2. file extents lie inside blocks 1..127
  3. directories have size 0 and start block 0
  4. parent index is not self, not 126, and names a used directory
  5. names are unique (case-insensitive) among siblings
  6. each data block is covered by at most one file and the bitmap agrees
"""

from typing import Callable, List

from fs import NUM_BLOCKS, NUM_INODES, RESERVED_PARENT, ROOT_INDEX, Superblock, names_equal

CONSISTENT = 0


def check_free_inodes(sb: Superblock) -> bool:
    for inode in sb.inodes:
        if not inode.used:
            if not inode.is_zero():
                return False
        elif inode.name[0] == 0:
            return False
    return True


def check_file_extents(sb: Superblock) -> bool:
    for inode in sb.inodes:
        if inode.used and not inode.is_dir:
            if inode.start_block < 1 or inode.start_block > NUM_BLOCKS - 1:
                return False
            if inode.start_block + inode.size - 1 > NUM_BLOCKS - 1:
                return False
    return True


def check_directory_fields(sb: Superblock) -> bool:
    for inode in sb.inodes:
        if inode.used and inode.is_dir:
            if inode.size != 0 or inode.start_block != 0:
                return False
    return True


def check_parents(sb: Superblock) -> bool:
    for index, inode in enumerate(sb.inodes):
        if not inode.used:
            continue
        parent = inode.parent
        if parent == index or parent == RESERVED_PARENT:
            return False
        if parent < NUM_INODES:
            parent_inode = sb.inodes[parent]
            if not (parent_inode.used and parent_inode.is_dir):
                return False
    return True


def _group_has_duplicates(sb: Superblock, parent: int) -> bool:
    members = [inode for inode in sb.inodes if inode.used and inode.parent == parent]
    for i in range(len(members)):
        for j in range(i + 1, len(members)):
            if names_equal(members[i].name, members[j].name):
                return True
    return False


def check_unique_names(sb: Superblock) -> bool:
    if _group_has_duplicates(sb, ROOT_INDEX):
        return False
    for index, inode in enumerate(sb.inodes):
        if inode.used and inode.is_dir and _group_has_duplicates(sb, index):
            return False
    return True


def check_block_usage(sb: Superblock) -> bool:
    block_count = [0] * NUM_BLOCKS
    block_count[0] = 1  # superblock

    for inode in sb.inodes:
        if inode.used and not inode.is_dir:
            for block_num in range(inode.start_block, inode.start_block + inode.size):
                block_count[block_num] += 1

    for block_num in range(NUM_BLOCKS):
        if sb.is_block_free(block_num):
            if block_count[block_num] > 0:
                return False
        elif block_count[block_num] != 1:
            return False
    return True


CHECKS: List[Callable[[Superblock], bool]] = [
    check_free_inodes,
    check_file_extents,
    check_directory_fields,
    check_parents,
    check_unique_names,
    check_block_usage,
]


def check_consistency(sb: Superblock) -> int:
    """Return the number of the first violated rule, or 0 if the superblock is consistent."""
    for code, check in enumerate(CHECKS, start=1):
        if not check(sb):
            return code
    return CONSISTENT
