import sys

from fs import BLOCK_SIZE, NUM_BLOCKS, Superblock


def create_disk(image_path: str):
    """Write an empty, consistent disk image: only block 0 in use, no inodes"""
    with open(image_path, "wb") as f:
        f.write(Superblock.blank().pack())
        f.write(b"\x00" * (BLOCK_SIZE * (NUM_BLOCKS - 1)))


def main():
    if len(sys.argv) > 1:
        image_path = sys.argv[1]
    else:
        image_path = "disk0"
    create_disk(image_path)


if __name__ == "__main__":
    main()
