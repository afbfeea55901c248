"""
Tests for key path helpers and file/directory resolution.
"""

import pytest
from pathlib import Path

# Add parent directory to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from services.operator import EntryMode
from services.paths import (
    PathResolver,
    PathSpec,
    base_name,
    ensure_trailing_slash,
    is_directory_hint,
    join_key,
    normalize,
    relative_to,
    to_key,
)
from conftest import put_object


class TestRelativeTo:
    """Test relative_to."""

    def test_key_under_base(self):
        assert relative_to('a/b/c.txt', 'a/b') == 'c.txt'

    def test_nested_key_under_base(self):
        assert relative_to('a/b/c/d.txt', 'a/b/') == 'c/d.txt'

    def test_key_equal_to_base_gives_base_name(self):
        assert relative_to('a/b', 'a/b') == 'b'
        assert relative_to('a/b/', 'a/b') == 'b'

    def test_key_outside_base_gives_base_name(self):
        assert relative_to('x/y/z.txt', 'a/b') == 'z.txt'

    def test_sibling_with_common_prefix_is_outside(self):
        """'ab/x' is not under 'a' even though the strings share a prefix."""
        assert relative_to('ab/x.txt', 'a') == 'x.txt'

    def test_root_base(self):
        assert relative_to('a/b.txt', '') == 'a/b.txt'
        assert relative_to('/a/b.txt', '/') == 'a/b.txt'

    def test_directory_key_loses_trailing_slash(self):
        assert relative_to('a/sub/', 'a') == 'sub'


class TestJoinAndNames:
    """Test join_key, base_name and normalization helpers."""

    @pytest.mark.parametrize('base,name,expected', [
        ('a', 'b', 'a/b'),
        ('a/', 'b', 'a/b'),
        ('a/', '/b', 'a/b'),
        ('', 'b', 'b'),
        ('/', 'b/', 'b/'),
        ('a', '', 'a/'),
    ])
    def test_join_key(self, base, name, expected):
        assert join_key(base, name) == expected

    def test_base_name(self):
        assert base_name('a/b/c.txt') == 'c.txt'
        assert base_name('a/b/') == 'b'
        assert base_name('file') == 'file'
        assert base_name('/') == ''

    def test_normalize_is_idempotent(self):
        once = normalize('//a/b//')
        assert once == 'a/b'
        assert normalize(once) == once

    def test_normalize_one_side(self):
        assert normalize('/a/', leading=True, trailing=False) == 'a/'
        assert normalize('/a/', leading=False, trailing=True) == '/a'

    def test_to_key(self):
        assert to_key('/a/b') == 'a/b'
        assert to_key('/a/b/') == 'a/b/'
        assert to_key('/') == ''

    def test_directory_hint(self):
        assert is_directory_hint('a/')
        assert not is_directory_hint('a')

    def test_ensure_trailing_slash(self):
        assert ensure_trailing_slash('a') == 'a/'
        assert ensure_trailing_slash('a/') == 'a/'
        assert ensure_trailing_slash('') == ''

    def test_path_spec(self):
        spec = PathSpec.parse('/docs/')
        assert spec.normalized == 'docs'
        assert spec.directory_hint
        assert not spec.is_root
        assert PathSpec.parse('/').is_root


class TestPathResolver:
    """Test stat-then-list directory detection."""

    def test_file(self, store):
        put_object(store, 'a/file.txt', b'data')
        resolver = PathResolver(store)
        assert resolver.kind('a/file.txt') is EntryMode.FILE
        assert not resolver.is_directory('a/file.txt')

    def test_directory(self, store):
        put_object(store, 'a/file.txt', b'data')
        resolver = PathResolver(store)
        assert resolver.kind('a') is EntryMode.DIR
        assert resolver.is_directory('a/')

    def test_missing(self, store):
        resolver = PathResolver(store)
        assert resolver.kind('nope') is None
        assert not resolver.exists('nope')

    def test_root_is_directory(self, store):
        resolver = PathResolver(store)
        assert resolver.is_directory('/')
        assert resolver.is_directory('')

    def test_virtual_directory_on_s3(self, s3_store):
        """No 'v/' marker object; the listing under the prefix decides."""
        resolver = PathResolver(s3_store({'v/inner.txt': b'1'}))
        assert resolver.kind('v') is EntryMode.DIR
        assert resolver.kind('v/') is EntryMode.DIR

    def test_marker_only_directory_on_s3(self, s3_store):
        """Nothing under 'm/' but the marker itself."""
        resolver = PathResolver(s3_store({'m/': b''}))
        assert resolver.kind('m') is EntryMode.DIR

    def test_missing_on_s3(self, s3_store):
        resolver = PathResolver(s3_store({'v/inner.txt': b'1'}))
        assert resolver.kind('nope') is None
        assert resolver.kind('nope/') is None
        assert not resolver.exists('v/inner')
