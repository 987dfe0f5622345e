import logging
from dataclasses import dataclass
from typing import List, Optional

from alloc import find_contiguous, mark_extent
from blockstore import BlockStore
from fs import BLOCK_SIZE, NAME_LEN, NUM_BLOCKS, ROOT_INDEX, Inode, Superblock, encode_name
from fsck import check_consistency

logger = logging.getLogger(__name__)

MAX_FILE_BLOCKS = NUM_BLOCKS - 1
ZERO_BLOCK = b"\x00" * BLOCK_SIZE
SELF_NAME = "."
PARENT_NAME = ".."


class FSError(Exception):
    """Base class for errors reported by file system operations."""


class NotMountedError(FSError):
    def __init__(self):
        super().__init__("No file system is mounted")


class DiskUnavailableError(FSError):
    def __init__(self, disk_name: str):
        self.disk_name = disk_name
        super().__init__(f"Cannot find disk {disk_name}")


class InconsistentError(FSError):
    def __init__(self, disk_name: str, code: int):
        self.disk_name = disk_name
        self.code = code
        super().__init__(f"File system in {disk_name} is inconsistent (error code: {code})")


class TableFullError(FSError):
    def __init__(self, disk_name: str, name: str):
        self.disk_name = disk_name
        self.name = name
        super().__init__(f"Superblock in disk {disk_name} is full, cannot create {name}")


class NameConflictError(FSError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"File or directory {name} already exists")


class NoSpaceError(FSError):
    def __init__(self, disk_name: str, size: int):
        self.disk_name = disk_name
        self.size = size
        super().__init__(f"Cannot allocate {size} blocks on {disk_name}")


class NotFoundError(FSError):
    def __init__(self, name: str, what: str = "File or directory"):
        self.name = name
        self.what = what
        super().__init__(f"{what} {name} does not exist")


class WrongKindError(NotFoundError):
    """The name exists but is a directory where a file is needed, or the reverse."""


class OutOfRangeError(FSError):
    def __init__(self, name: str, block_num: int):
        self.name = name
        self.block_num = block_num
        super().__init__(f"{name} does not have block {block_num}")


@dataclass
class DirListing:
    """One line of a directory listing"""

    name: str
    is_dir: bool
    value: int  # child count for directories, size in blocks for files


class FileSystem:
    """Session state for the simulator: mounted disk, superblock, cwd and I/O buffer."""

    def __init__(self):
        self.store: Optional[BlockStore] = None
        self.superblock: Optional[Superblock] = None
        self.disk_name: Optional[str] = None
        self.cwd = ROOT_INDEX
        self.buffer = bytearray(BLOCK_SIZE)

    @property
    def mounted(self) -> bool:
        return self.store is not None

    def _require_mounted(self):
        if not self.mounted:
            raise NotMountedError()

    def _save_superblock(self):
        self.store.write_block(0, self.superblock.pack())

    def _find_free_inode(self) -> Optional[int]:
        for index, inode in enumerate(self.superblock.inodes):
            if not inode.used:
                return index
        return None

    def _find_inode(self, name: str, parent: int) -> Optional[int]:
        for index, inode in enumerate(self.superblock.inodes):
            if inode.used and inode.parent == parent and inode.matches(name):
                return index
        return None

    def _children(self, dir_index: int) -> List[int]:
        return [
            index
            for index, inode in enumerate(self.superblock.inodes)
            if inode.used and inode.parent == dir_index
        ]

    def _count_children(self, dir_index: int) -> int:
        # . and .. are always counted
        return len(self._children(dir_index)) + 2

    def _find_file(self, name: str) -> Inode:
        index = self._find_inode(name, self.cwd)
        if index is None:
            raise NotFoundError(name, "File")
        inode = self.superblock.inodes[index]
        if inode.is_dir:
            raise WrongKindError(name, "File")
        return inode

    def _check_block(self, name: str, inode: Inode, block_num: int):
        if block_num < 0 or block_num >= inode.size:
            raise OutOfRangeError(name, block_num)

    def mount(self, disk_name: str):
        """Mount a disk image, replacing the current mount only if the new one is consistent."""
        try:
            store = BlockStore(disk_name)
        except OSError:
            raise DiskUnavailableError(disk_name)

        try:
            if store.block_count < 1:
                raise DiskUnavailableError(disk_name)
            candidate = Superblock.unpack(store.read_block(0))
            code = check_consistency(candidate)
            if code:
                raise InconsistentError(disk_name, code)
        except FSError:
            store.close()
            raise

        if self.store is not None:
            self.store.close()
        self.store = store
        self.superblock = candidate
        self.disk_name = disk_name
        self.cwd = ROOT_INDEX
        logger.info("Mounted %s", disk_name)

    def create(self, name: str, size: int):
        """Create a file of `size` blocks in the current directory, or a directory when size is 0."""
        self._require_mounted()
        if not name or len(name) > NAME_LEN:
            raise ValueError(f"Name must be 1 to {NAME_LEN} characters")
        if size < 0 or size > MAX_FILE_BLOCKS:
            raise ValueError(f"Size must be between 0 and {MAX_FILE_BLOCKS}")

        inode_idx = self._find_free_inode()
        if inode_idx is None:
            raise TableFullError(self.disk_name, name)

        if name in (SELF_NAME, PARENT_NAME) or self._find_inode(name, self.cwd) is not None:
            raise NameConflictError(name)

        start_block = 0
        if size > 0:
            start_block = find_contiguous(self.superblock, size)
            if start_block is None:
                raise NoSpaceError(self.disk_name, size)

        inode = self.superblock.inodes[inode_idx]
        inode.clear()
        inode.name = encode_name(name)
        inode.used = True
        inode.parent = self.cwd
        if size == 0:
            inode.is_dir = True
        else:
            inode.size = size
            inode.start_block = start_block
            mark_extent(self.superblock, start_block, size, True)
            for block_num in range(start_block, start_block + size):
                self.store.write_block(block_num, ZERO_BLOCK)

        self._save_superblock()
        logger.debug("Created %s in slot %d (size=%d, start=%d)", name, inode_idx, size, start_block)

    def _delete_recursive(self, inode_idx: int):
        inode = self.superblock.inodes[inode_idx]
        if not inode.used:
            return

        if inode.is_dir:
            for child in self._children(inode_idx):
                self._delete_recursive(child)
        else:
            for block_num in range(inode.start_block, inode.start_block + inode.size):
                self.store.write_block(block_num, ZERO_BLOCK)
            mark_extent(self.superblock, inode.start_block, inode.size, False)

        logger.debug("Freed slot %d (%s)", inode_idx, inode.display_name)
        inode.clear()

    def delete(self, name: str):
        """Delete a file, or a directory together with everything below it."""
        self._require_mounted()
        inode_idx = self._find_inode(name, self.cwd)
        if inode_idx is None:
            raise NotFoundError(name)

        self._delete_recursive(inode_idx)
        self._save_superblock()

    def read(self, name: str, block_num: int):
        """Copy block `block_num` of a file into the session buffer."""
        self._require_mounted()
        inode = self._find_file(name)
        self._check_block(name, inode, block_num)
        self.buffer[:] = self.store.read_block(inode.start_block + block_num)

    def write(self, name: str, block_num: int):
        """Copy the session buffer into block `block_num` of a file."""
        self._require_mounted()
        inode = self._find_file(name)
        self._check_block(name, inode, block_num)
        self.store.write_block(inode.start_block + block_num, bytes(self.buffer))

    def set_buffer(self, data: bytes):
        """Replace the session buffer, zero padding to a full block."""
        self._require_mounted()
        if len(data) > BLOCK_SIZE:
            raise ValueError(f"Buffer data exceeds {BLOCK_SIZE} bytes")
        self.buffer[:] = data + b"\x00" * (BLOCK_SIZE - len(data))

    def ls(self) -> List[DirListing]:
        """List the current directory: '.', '..', then children in slot order."""
        self._require_mounted()
        current_count = self._count_children(self.cwd)
        if self.cwd == ROOT_INDEX:
            parent_count = current_count
        else:
            parent_count = self._count_children(self.superblock.inodes[self.cwd].parent)

        entries = [
            DirListing(SELF_NAME, True, current_count),
            DirListing(PARENT_NAME, True, parent_count),
        ]
        for index in self._children(self.cwd):
            inode = self.superblock.inodes[index]
            if inode.is_dir:
                entries.append(DirListing(inode.display_name, True, self._count_children(index)))
            else:
                entries.append(DirListing(inode.display_name, False, inode.size))
        return entries

    def cd(self, name: str):
        """Change the current directory."""
        self._require_mounted()
        if name == SELF_NAME:
            return
        if name == PARENT_NAME:
            if self.cwd != ROOT_INDEX:
                self.cwd = self.superblock.inodes[self.cwd].parent
            return

        inode_idx = self._find_inode(name, self.cwd)
        if inode_idx is None:
            raise NotFoundError(name, "Directory")
        if not self.superblock.inodes[inode_idx].is_dir:
            raise WrongKindError(name, "Directory")
        self.cwd = inode_idx

    def pwd(self) -> str:
        """Path of the current directory, for display only."""
        if not self.mounted:
            return "/"
        parts = []
        index = self.cwd
        while index != ROOT_INDEX:
            inode = self.superblock.inodes[index]
            parts.append(inode.display_name)
            index = inode.parent
        return "/" + "/".join(reversed(parts))

    def defrag(self):
        """Slide every file extent toward block 1, preserving order and contents."""
        self._require_mounted()
        files = [
            (index, inode)
            for index, inode in enumerate(self.superblock.inodes)
            if inode.used and not inode.is_dir
        ]
        # sorted() is stable, so equal start blocks keep slot order
        files = sorted(files, key=lambda item: item[1].start_block)

        next_free = 1
        for index, inode in files:
            old_start = inode.start_block
            # empty files cover no blocks and keep their start block
            if inode.size and old_start != next_free:
                for offset in range(inode.size):
                    scratch = self.store.read_block(old_start + offset)
                    self.store.write_block(next_free + offset, scratch)
                inode.start_block = next_free
                logger.debug("Moved %s from block %d to %d", inode.display_name, old_start, next_free)
            next_free += inode.size

        for block_num in range(next_free, NUM_BLOCKS):
            self.store.write_block(block_num, ZERO_BLOCK)

        self.superblock.free_block_list[:] = bytes(len(self.superblock.free_block_list))
        self.superblock.set_block_used(0, True)
        for _, inode in files:
            mark_extent(self.superblock, inode.start_block, inode.size, True)

        self._save_superblock()

    def close(self):
        """Release the mounted disk, if any"""
        if self.store is not None:
            self.store.close()
            self.store = None
        self.superblock = None
        self.disk_name = None
        self.cwd = ROOT_INDEX
