#!/usr/bin/env python3
"""
ossify/cli.py
Command-line interface for ossify: filesystem-style commands for object storage
"""

import sys
import argparse
import traceback
from typing import List, Optional

from tqdm import tqdm

from config.config import config_service, load_storage_config
from services.errors import OssifyError
from services.storage import storage_service


def non_empty_path(value: str) -> str:
    """argparse type rejecting empty or whitespace-only paths"""
    if not value or not value.strip():
        raise argparse.ArgumentTypeError("Path cannot be empty")
    return value


def positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected a positive integer, got '{value}'")
    if number <= 0:
        raise argparse.ArgumentTypeError(f"Expected a positive integer, got '{value}'")
    return number


class OssifyCLI:
    """Main CLI application"""

    def __init__(self):
        self.config = config_service
        self.storage = storage_service
        self.debug = False

    def build_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            prog='ossify',
            description='ossify - filesystem-style commands for OSS, S3, MinIO and local storage',
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="""
Examples:
  ossify ls / -L
  ossify put ./photos /backup -R
  ossify get /backup/photos ./restore
  ossify cp /reports/2024 /archive/
  ossify rm /tmp -R -f
  ossify du /backup -s

Storage is selected with STORAGE_PROVIDER (oss, s3, minio, fs).
            """
        )

        # Global flags
        parser.add_argument('-v', '--verbose', action='store_true',
                            help='Enable verbose debug output')
        parser.add_argument('-j', '--jobs', type=positive_int, default=None,
                            help='Concurrent file transfers (default: 10)')

        subparsers = parser.add_subparsers(dest='command', help='Commands')

        # ========================================================================
        # Listing & inspection
        # ========================================================================

        ls_parser = subparsers.add_parser('ls', help='List directory contents')
        ls_parser.add_argument('path', nargs='?', default='/', type=non_empty_path, help='Remote path')
        ls_parser.add_argument('-L', '--long', action='store_true', help='Show type, size and modification time')
        ls_parser.add_argument('-R', '--recursive', action='store_true', help='List recursively')

        du_parser = subparsers.add_parser('du', help='Show disk usage')
        du_parser.add_argument('path', nargs='?', default='/', type=non_empty_path, help='Remote path')
        du_parser.add_argument('-s', '--summary', action='store_true', help='Only show the total')

        stat_parser = subparsers.add_parser('stat', help='Show object metadata')
        stat_parser.add_argument('path', type=non_empty_path, help='Remote path')
        stat_format = stat_parser.add_mutually_exclusive_group()
        stat_format.add_argument('--json', action='store_true', help='Single-line JSON output')
        stat_format.add_argument('--raw', action='store_true', help='key=value per line')

        cat_parser = subparsers.add_parser('cat', help='Print file content')
        cat_parser.add_argument('path', type=non_empty_path, help='Remote file')
        cat_parser.add_argument('-f', '--force', action='store_true', help='Display large files without asking')
        cat_parser.add_argument('--size-limit', type=positive_int, default=None, metavar='MB',
                                help='Ask before displaying files larger than this (default: 10)')

        # ========================================================================
        # Transfers
        # ========================================================================

        get_parser = subparsers.add_parser('get', help='Download files or directories')
        get_parser.add_argument('remote', type=non_empty_path, help='Remote path')
        get_parser.add_argument('local', type=non_empty_path, help='Local directory')

        put_parser = subparsers.add_parser('put', help='Upload files or directories')
        put_parser.add_argument('local', type=non_empty_path, help='Local path')
        put_parser.add_argument('remote', type=non_empty_path, help='Remote directory')
        put_parser.add_argument('-R', '--recursive', action='store_true', help='Upload directories recursively')

        cp_parser = subparsers.add_parser('cp', help='Copy files or directories')
        cp_parser.add_argument('source', type=non_empty_path, help='Source path')
        cp_parser.add_argument('destination', type=non_empty_path, help='Destination path')

        mv_parser = subparsers.add_parser('mv', help='Move files or directories')
        mv_parser.add_argument('source', type=non_empty_path, help='Source path')
        mv_parser.add_argument('destination', type=non_empty_path, help='Destination path')

        # ========================================================================
        # Mutations
        # ========================================================================

        rm_parser = subparsers.add_parser('rm', help='Delete files or directories')
        rm_parser.add_argument('paths', nargs='+', type=non_empty_path, help='Remote paths')
        rm_parser.add_argument('-R', '--recursive', action='store_true', help='Delete directories recursively')
        rm_parser.add_argument('-f', '--force', action='store_true', help='Do not ask for confirmation')

        mkdir_parser = subparsers.add_parser('mkdir', help='Create a directory')
        mkdir_parser.add_argument('path', type=non_empty_path, help='Remote directory')
        mkdir_parser.add_argument('-p', '--parents', action='store_true', help='Create parent directories as needed')

        # ========================================================================
        # Other Commands
        # ========================================================================

        subparsers.add_parser('config', help='Show configuration')

        return parser

    def run(self, args: list) -> int:
        """Main entry point"""
        parser = self.build_parser()
        parsed = parser.parse_args(args)

        if not parsed.command:
            parser.print_help()
            return 0

        # Set debug mode and output sinks
        self.debug = parsed.verbose
        self.storage.debug = self.debug
        self.storage.out = tqdm.write
        self.storage.progress_sink = self._print_progress
        self.storage.show_progress = True

        handlers = {
            'ls': self.handle_list,
            'du': self.handle_du,
            'stat': self.handle_stat,
            'cat': self.handle_cat,
            'get': self.handle_get,
            'put': self.handle_put,
            'cp': self.handle_copy,
            'mv': self.handle_move,
            'rm': self.handle_delete,
            'mkdir': self.handle_mkdir,
        }

        try:
            if parsed.command == 'config':
                return self.handle_config()

            handler = handlers.get(parsed.command)
            if handler is None:
                print(f"Unknown command: {parsed.command}")
                return 1

            self._prepare_client(parsed)
            return handler(parsed)

        except KeyboardInterrupt:
            print("\n❌ Cancelled by user", file=sys.stderr)
            return 1
        except OssifyError as e:
            self._report_error(f"❌ {e}")
            return 1
        except ValueError as e:
            self._report_error(f"❌ Error: {e}")
            return 1

    def _report_error(self, message: str) -> None:
        print(message, file=sys.stderr)
        if self.debug:
            traceback.print_exc()

    def _prepare_client(self, parsed) -> None:
        """Connect the storage service using the environment"""
        settings = self.config.read_settings()
        if parsed.jobs:
            settings['max_concurrency'] = parsed.jobs
        self.storage.configure(settings=settings)

    @staticmethod
    def _print_progress(line: str) -> None:
        tqdm.write(f" {line}", file=sys.stderr)

    # ============================================================================
    # LISTING & INSPECTION HANDLERS
    # ============================================================================

    def handle_list(self, args) -> int:
        """Handle ls command"""
        count = self.storage.list(args.path, long=args.long, recursive=args.recursive)
        if self.debug:
            print(f"🔍 [DEBUG] {count} entries")
        return 0

    def handle_du(self, args) -> int:
        """Handle du command"""
        self.storage.disk_usage(args.path, summary=args.summary)
        return 0

    def handle_stat(self, args) -> int:
        """Handle stat command"""
        output_format = 'json' if args.json else 'raw' if args.raw else 'human'
        meta = self.storage.stat(args.path)
        print(meta.render(output_format))
        return 0

    def handle_cat(self, args) -> int:
        """Handle cat command"""
        written = self.storage.cat(args.path, force=args.force, size_limit_mb=args.size_limit,
                                   confirm=self._confirm_large_file)
        sys.stdout.flush()
        if self.debug:
            print(f"\n🔍 [DEBUG] {written} bytes written", file=sys.stderr)
        return 0

    def _confirm_large_file(self, size: int) -> bool:
        size_mb = size // (1024 * 1024)
        if not sys.stdin.isatty():
            print(f"File is large ({size_mb} MB). Skipping display in non-interactive mode.", file=sys.stderr)
            return False
        try:
            response = input(f"⚠️  File is large ({size_mb} MB). Display anyway? (y/N): ")
        except EOFError:
            return False
        if response.strip().lower() not in ('y', 'yes'):
            print("Display cancelled.", file=sys.stderr)
            return False
        return True

    # ============================================================================
    # TRANSFER HANDLERS
    # ============================================================================

    def handle_get(self, args) -> int:
        """Handle get command"""
        print(f"📥 Downloading {args.remote} → {args.local}")
        self.storage.download(args.remote, args.local)
        return 0

    def handle_put(self, args) -> int:
        """Handle put command"""
        print(f"📤 Uploading {args.local} → {args.remote}")
        self.storage.upload(args.local, args.remote, recursive=args.recursive)
        return 0

    def handle_copy(self, args) -> int:
        """Handle cp command"""
        self.storage.copy(args.source, args.destination)
        return 0

    def handle_move(self, args) -> int:
        """Handle mv command"""
        self.storage.move(args.source, args.destination)
        return 0

    # ============================================================================
    # MUTATION HANDLERS
    # ============================================================================

    def handle_delete(self, args) -> int:
        """Handle rm command"""
        if not args.force and not self._confirm_deletion(args.paths, args.recursive):
            print("❌ Cancelled")
            return 0

        self.storage.delete(args.paths, recursive=args.recursive)
        return 0

    def _confirm_deletion(self, paths: List[str], recursive: bool) -> bool:
        what = "recursively delete" if recursive else "delete"
        print(f"⚠️  About to {what} {len(paths)} path(s):")
        for path in paths[:5]:
            print(f"  🔥 {path}")
        if len(paths) > 5:
            print(f"  ... {len(paths) - 5} more")
        try:
            response = input("Continue? (y/N): ")
        except EOFError:
            return False
        return response.strip().lower() in ('y', 'yes')

    def handle_mkdir(self, args) -> int:
        """Handle mkdir command"""
        self.storage.mkdir(args.path, parents=args.parents)
        return 0

    # ============================================================================
    # OTHER HANDLERS
    # ============================================================================

    def handle_config(self) -> int:
        """Handle config command"""
        print("╔════════════════════════════════════════╗")
        print("║         Configuration                  ║")
        print("╚════════════════════════════════════════╝")
        print(f"📁 Config dir: {self.config.ossify_data_dir}")
        print(f"⚙️  Settings: {self.config.settings_file}")
        print("")
        print("🔧 Tuning:")
        for name, value in self.config.read_settings().items():
            print(f"   {name}: {value}")

        print("")
        try:
            storage_config = load_storage_config()
            print(f"🗄️  Storage: {storage_config.describe()}")
        except OssifyError as e:
            print(f"🗄️  Storage: not configured ({e})")
        return 0


def main(argv: Optional[List[str]] = None):
    """Main entry point"""
    cli = OssifyCLI()
    sys.exit(cli.run(sys.argv[1:] if argv is None else argv))


if __name__ == '__main__':
    main()
