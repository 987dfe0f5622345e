import pytest

from fs import BLOCK_SIZE, Superblock
from fsapi import FileSystem
from mkdisk import create_disk


def write_superblock(image_path, sb: Superblock):
    with open(image_path, "r+b") as f:
        f.seek(0)
        f.write(sb.pack())


def read_block(image_path, block_num):
    with open(image_path, "rb") as f:
        f.seek(block_num * BLOCK_SIZE)
        return f.read(BLOCK_SIZE)


@pytest.fixture
def disk(tmp_path):
    image_path = str(tmp_path / "disk0")
    create_disk(image_path)
    return image_path


@pytest.fixture
def fs(disk):
    filesystem = FileSystem()
    filesystem.mount(disk)
    yield filesystem
    filesystem.close()
