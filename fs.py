import struct
from typing import List

import attr

BLOCK_SIZE = 1024
NUM_BLOCKS = 128
DISK_SIZE = BLOCK_SIZE * NUM_BLOCKS

INODE_SIZE = 8  # name(5) + isused_size(1) + start_block(1) + isdir_parent(1)
NUM_INODES = 126
BITMAP_SIZE = NUM_BLOCKS // 8
NAME_LEN = 5

# Values of the 7-bit parent field
ROOT_INDEX = 127
RESERVED_PARENT = 126

# Bit 7 of isused_size / isdir_parent, bits 0-6 hold the packed value
FLAG_MASK = 0x80
VALUE_MASK = 0x7F

_INODE_FMT = "<5sBBB"


def encode_name(name: str) -> bytes:
    """Encode a name into exactly NAME_LEN bytes, truncating and zero padding."""
    raw = name.encode("latin-1", errors="replace")[:NAME_LEN]
    return raw + b"\x00" * (NAME_LEN - len(raw))


def names_equal(a: bytes, b: bytes) -> bool:
    """Case-insensitive comparison of two raw names, stopping at the first NUL."""
    return a.split(b"\x00", 1)[0].lower() == b.split(b"\x00", 1)[0].lower()


@attr.s(auto_attribs=True)
class Inode:
    name: bytes = attr.ib(default=b"\x00" * NAME_LEN)
    isused_size: int = 0
    start_block: int = 0
    isdir_parent: int = 0

    # isused_size: bit 7 = used, bits 0-6 = size in blocks
    @property
    def used(self) -> bool:
        return (self.isused_size & FLAG_MASK) != 0

    @used.setter
    def used(self, value: bool):
        if value:
            self.isused_size |= FLAG_MASK
        else:
            self.isused_size &= VALUE_MASK

    @property
    def size(self) -> int:
        return self.isused_size & VALUE_MASK

    @size.setter
    def size(self, value: int):
        self.isused_size = (self.isused_size & FLAG_MASK) | (value & VALUE_MASK)

    # isdir_parent: bit 7 = directory, bits 0-6 = parent index
    @property
    def is_dir(self) -> bool:
        return (self.isdir_parent & FLAG_MASK) != 0

    @is_dir.setter
    def is_dir(self, value: bool):
        if value:
            self.isdir_parent |= FLAG_MASK
        else:
            self.isdir_parent &= VALUE_MASK

    @property
    def parent(self) -> int:
        return self.isdir_parent & VALUE_MASK

    @parent.setter
    def parent(self, value: int):
        self.isdir_parent = (self.isdir_parent & FLAG_MASK) | (value & VALUE_MASK)

    @property
    def display_name(self) -> str:
        return self.name.split(b"\x00", 1)[0].decode("latin-1")

    def is_zero(self) -> bool:
        return self.pack() == b"\x00" * INODE_SIZE

    def clear(self):
        self.name = b"\x00" * NAME_LEN
        self.isused_size = 0
        self.start_block = 0
        self.isdir_parent = 0

    def matches(self, name: str) -> bool:
        return names_equal(self.name, encode_name(name))

    def pack(self) -> bytes:
        return struct.pack(_INODE_FMT, self.name, self.isused_size, self.start_block, self.isdir_parent)

    @classmethod
    def unpack(cls, data: bytes) -> "Inode":
        return cls(*struct.unpack(_INODE_FMT, data[:INODE_SIZE]))


def _empty_bitmap() -> bytearray:
    return bytearray(BITMAP_SIZE)


def _empty_table() -> List[Inode]:
    return [Inode() for _ in range(NUM_INODES)]


@attr.s(auto_attribs=True)
class Superblock:
    """Block 0: the 16 byte free-space bitmap followed by 126 packed inodes.

    Bit for block n sits at byte n // 8, bit 7 - n % 8 (MSB first).
    A set bit means the block is in use.
    """

    free_block_list: bytearray = attr.ib(factory=_empty_bitmap)
    inodes: List[Inode] = attr.ib(factory=_empty_table)

    @free_block_list.validator
    def _check_bitmap(self, attribute, value):
        if len(value) != BITMAP_SIZE:
            raise ValueError(f"free block list must be {BITMAP_SIZE} bytes, got {len(value)}")

    @inodes.validator
    def _check_inodes(self, attribute, value):
        if len(value) != NUM_INODES:
            raise ValueError(f"inode table must hold {NUM_INODES} entries, got {len(value)}")

    def is_block_free(self, block_num: int) -> bool:
        byte_idx = block_num // 8
        bit_idx = 7 - (block_num % 8)
        return (self.free_block_list[byte_idx] & (1 << bit_idx)) == 0

    def set_block_used(self, block_num: int, used: bool):
        byte_idx = block_num // 8
        bit_idx = 7 - (block_num % 8)
        if used:
            self.free_block_list[byte_idx] |= 1 << bit_idx
        else:
            self.free_block_list[byte_idx] &= ~(1 << bit_idx) & 0xFF

    def used_block_count(self) -> int:
        return sum(bin(byte).count("1") for byte in self.free_block_list)

    def pack(self) -> bytes:
        data = bytes(self.free_block_list) + b"".join(inode.pack() for inode in self.inodes)
        if len(data) != BLOCK_SIZE:
            raise ValueError(f"Superblock packed to {len(data)} bytes, expected {BLOCK_SIZE}")
        return data

    @classmethod
    def unpack(cls, data: bytes) -> "Superblock":
        if len(data) < BLOCK_SIZE:
            raise ValueError(f"Superblock needs {BLOCK_SIZE} bytes, got {len(data)}")
        bitmap = bytearray(data[:BITMAP_SIZE])
        inodes = [
            Inode.unpack(data[BITMAP_SIZE + i * INODE_SIZE : BITMAP_SIZE + (i + 1) * INODE_SIZE])
            for i in range(NUM_INODES)
        ]
        return cls(bitmap, inodes)

    @classmethod
    def blank(cls) -> "Superblock":
        """Superblock of a freshly formatted disk: only block 0 in use."""
        sb = cls()
        sb.set_block_used(0, True)
        return sb
