import argparse
import logging
import re
import sys

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from fs import BLOCK_SIZE, NAME_LEN
from fsapi import FileSystem, FSError, MAX_FILE_BLOCKS

console = Console(soft_wrap=True, highlight=False, markup=False, emoji=False)
err_console = Console(stderr=True, soft_wrap=True, highlight=False, markup=False, emoji=False)

logger = logging.getLogger(__name__)

MAX_BLOCK_NUM = 126

commands = []


class CommandError(Exception):
    """A command line that is malformed before it reaches the file system."""


def command(letter, description):
    def decorator(func):
        commands.append({'name': letter, 'func': func, 'description': description})
        return func
    return decorator


def find_command(letter):
    return next((c for c in commands if c['name'] == letter), None)


def split_args(args, count):
    parts = args.split()
    if len(parts) != count:
        raise CommandError(f"expected {count} argument(s), got {len(parts)}")
    return parts


def parse_name(token):
    if len(token) > NAME_LEN:
        raise CommandError(f"name longer than {NAME_LEN} characters: {token}")
    return token


def parse_number(token, low, high):
    if not re.fullmatch(r"[+-]?\d+", token, re.ASCII):
        raise CommandError(f"not a number: {token}")
    value = int(token)
    if value < low or value > high:
        raise CommandError(f"{value} not in range {low}..{high}")
    return value


def require_no_args(args):
    if args:
        raise CommandError("command takes no arguments")


@command('M', 'Mount a disk image: M <disk>')
def handle_mount(fs, args):
    disk_name, = split_args(args, 1)
    fs.mount(disk_name)


@command('C', 'Create a file (size > 0) or directory (size 0): C <name> <size>')
def handle_create(fs, args):
    name, size = split_args(args, 2)
    fs.create(parse_name(name), parse_number(size, 0, MAX_FILE_BLOCKS))


@command('D', 'Delete a file or directory: D <name>')
def handle_delete(fs, args):
    name, = split_args(args, 1)
    fs.delete(parse_name(name))


@command('R', 'Read a file block into the buffer: R <name> <block>')
def handle_read(fs, args):
    name, block_num = split_args(args, 2)
    fs.read(parse_name(name), parse_number(block_num, 0, MAX_BLOCK_NUM))


@command('W', 'Write the buffer into a file block: W <name> <block>')
def handle_write(fs, args):
    name, block_num = split_args(args, 2)
    fs.write(parse_name(name), parse_number(block_num, 0, MAX_BLOCK_NUM))


@command('B', 'Replace the buffer contents: B <bytes>')
def handle_buffer(fs, args):
    if not args:
        raise CommandError("missing buffer contents")
    data = args.encode('latin-1', errors='replace')
    if len(data) > BLOCK_SIZE:
        raise CommandError(f"buffer contents longer than {BLOCK_SIZE} bytes")
    fs.set_buffer(data)


@command('L', 'List the current directory')
def handle_ls(fs, args):
    require_no_args(args)
    for entry in fs.ls():
        if entry.is_dir:
            console.print(f"{entry.name:<5} {entry.value:>3}")
        else:
            console.print(f"{entry.name:<5} {entry.value:>3} KB")


@command('O', 'Defragment the disk')
def handle_defrag(fs, args):
    require_no_args(args)
    fs.defrag()


@command('Y', 'Change the current directory: Y <name>')
def handle_cd(fs, args):
    name, = split_args(args, 1)
    fs.cd(parse_name(name))


def split_line(line):
    """Split a command line into its letter and the raw argument text."""
    line = line.rstrip("\n").lstrip()
    if not line:
        return None, ""
    return line[0], line[1:].lstrip()


def execute_line(fs, line):
    """Run one command line. Raises CommandError or FSError on failure."""
    letter, args = split_line(line)
    if letter is None:
        return
    cmd_entry = find_command(letter)
    if cmd_entry is None:
        raise CommandError(f"unknown command: {letter}")
    cmd_entry['func'](fs, args)


def run_script(fs, input_file):
    try:
        f = open(input_file, encoding='latin-1')
    except OSError:
        err_console.print(f"Error: Cannot open input file {input_file}")
        return 1

    with f:
        for line_num, line in enumerate(f, start=1):
            try:
                execute_line(fs, line)
            except CommandError as e:
                logger.debug("%s:%d: %s", input_file, line_num, e)
                err_console.print(f"Command Error: {input_file}, {line_num}")
            except FSError as e:
                err_console.print(f"Error: {e}")
    return 0


def handle_help():
    console.print("Available commands:")
    for cmd in sorted(commands, key=lambda x: x['name']):
        console.print(f"  {cmd['name']}: {cmd['description']}")
    console.print("  help: Show available commands")
    console.print("  exit: Leave the shell")


def interactive(fs):
    prompt_console = Console(highlight=False)
    while True:
        try:
            disk = escape(fs.disk_name or "-")
            prompt = f"[bold cyan]{disk}:{escape(fs.pwd())}[/bold cyan][bold white]>[/bold white] "
            line = prompt_console.input(prompt).strip()
        except (KeyboardInterrupt, EOFError):
            console.print("\nExiting...")
            break

        if not line:
            continue
        if line.lower() in ("exit", "quit"):
            break
        if line.lower() == "help":
            handle_help()
            continue

        try:
            execute_line(fs, line)
        except CommandError as e:
            err_console.print(f"Command Error: {e}")
        except FSError as e:
            err_console.print(f"Error: {e}")


def setup_logging(verbose=False):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def main(argv=None):
    parser = argparse.ArgumentParser(description="Simulate a small UNIX-like file system on 128 KiB disk images")
    parser.add_argument("input_file", nargs="?", help="command file to run; omit for an interactive prompt")
    parser.add_argument("-v", "--verbose", action="store_true", help="log debug messages to stderr")
    options = parser.parse_args(argv)

    setup_logging(options.verbose)

    fs = FileSystem()
    try:
        if options.input_file:
            return run_script(fs, options.input_file)
        interactive(fs)
        return 0
    finally:
        fs.close()


if __name__ == "__main__":
    sys.exit(main())
