import os

from fs import BLOCK_SIZE


class BlockStore:
    """Positioned 1 KiB block reads and writes over one disk image file.

    Block indices are trusted; callers validate them.
    """

    def __init__(self, image_path: str):
        if not os.path.exists(image_path):
            raise FileNotFoundError(f"Disk image {image_path} not found")
        self.image_path = image_path
        self.image_file = open(image_path, "r+b")

    @property
    def block_count(self) -> int:
        return os.path.getsize(self.image_path) // BLOCK_SIZE

    def read_block(self, block_num: int) -> bytes:
        self.image_file.seek(block_num * BLOCK_SIZE)
        data = self.image_file.read(BLOCK_SIZE)
        # short images read back as zeros past their end
        return data + b"\x00" * (BLOCK_SIZE - len(data))

    def write_block(self, block_num: int, data: bytes):
        if len(data) != BLOCK_SIZE:
            raise ValueError(f"Block data must be {BLOCK_SIZE} bytes, got {len(data)}")
        self.image_file.seek(block_num * BLOCK_SIZE)
        self.image_file.write(data)
        self.image_file.flush()

    def close(self):
        if self.image_file:
            self.image_file.close()
            self.image_file = None
