"""First-fit contiguous allocation over the superblock free-space bitmap."""

from typing import Optional

from fs import NUM_BLOCKS, Superblock


def find_contiguous(sb: Superblock, size: int) -> Optional[int]:
    """Return the first block of the lowest run of `size` free blocks, or None.

    Candidate starts go from block 1 up to NUM_BLOCKS - size. Callers must
    reject size 0 before getting here.
    """
    if size <= 0:
        raise ValueError("Extent size must be positive")

    for start in range(1, NUM_BLOCKS - size + 1):
        if all(sb.is_block_free(start + i) for i in range(size)):
            return start
    return None


def mark_extent(sb: Superblock, start: int, size: int, used: bool):
    """Flip the bitmap bits of blocks [start, start + size). No bounds recheck."""
    for block_num in range(start, start + size):
        sb.set_block_used(block_num, used)
