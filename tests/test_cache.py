"""Tests for the per-file diagnostics cache."""
from pathlib import Path

import pytest

from sharplint.analyzer.cache import AnalysisCache

DIAGNOSTIC = {
    'rule_id': 'MB1050',
    'message': "Class 'Foo' is never used",
    'severity': 'warning',
    'path': 'Foo.cs',
    'line': 1,
    'column': 1,
    'end_line': 1,
    'end_column': 20,
}


@pytest.fixture
def cache(tmp_path):
    with AnalysisCache(tmp_path) as cache:
        yield cache


def test_creates_cache_directory(tmp_path):
    with AnalysisCache(tmp_path, '.custom_cache'):
        pass
    assert (tmp_path / '.custom_cache' / 'analysis.db').exists()


def test_hit_requires_same_content_and_fingerprint(cache):
    path = Path('Foo.cs')
    cache.set_diagnostics(path, 'hash-1', 'config-1', [DIAGNOSTIC])

    assert cache.get_diagnostics(path, 'hash-1', 'config-1') == [DIAGNOSTIC]
    assert cache.get_diagnostics(path, 'hash-2', 'config-1') is None
    assert cache.get_diagnostics(path, 'hash-1', 'config-2') is None
    assert cache.get_diagnostics(Path('Bar.cs'), 'hash-1', 'config-1') is None


def test_newer_entry_replaces_older(cache):
    path = Path('Foo.cs')
    cache.set_diagnostics(path, 'hash-1', 'config-1', [DIAGNOSTIC])
    cache.set_diagnostics(path, 'hash-2', 'config-1', [])

    assert cache.get_diagnostics(path, 'hash-1', 'config-1') is None
    assert cache.get_diagnostics(path, 'hash-2', 'config-1') == []


def test_invalidate_and_clear(cache):
    cache.set_diagnostics(Path('Foo.cs'), 'h', 'c', [])
    cache.set_diagnostics(Path('Bar.cs'), 'h', 'c', [DIAGNOSTIC])

    cache.invalidate_file(Path('Foo.cs'))
    assert cache.get_diagnostics(Path('Foo.cs'), 'h', 'c') is None
    assert cache.get_diagnostics(Path('Bar.cs'), 'h', 'c') == [DIAGNOSTIC]

    cache.clear_cache()
    assert cache.get_cache_stats()['total_files'] == 0


def test_stats(cache):
    cache.set_diagnostics(Path('Foo.cs'), 'h', 'config-1', [])
    cache.set_diagnostics(Path('Bar.cs'), 'h', 'config-1', [DIAGNOSTIC])
    cache.set_diagnostics(Path('Baz.cs'), 'h', 'config-2', [DIAGNOSTIC])

    assert cache.get_cache_stats() == {
        'total_files': 3,
        'files_with_findings': 2,
        'configurations': 2,
    }


def test_fingerprint_tracks_configuration(tmp_path):
    catalog = tmp_path / 'catalog.json'
    catalog.write_text('{}')
    base = AnalysisCache.fingerprint('1.0.0', {'a': [1]}, catalog, ['MB1050'])

    assert base == AnalysisCache.fingerprint('1.0.0', {'a': [1]}, catalog, ['MB1050'])
    assert base != AnalysisCache.fingerprint('1.0.1', {'a': [1]}, catalog, ['MB1050'])
    assert base != AnalysisCache.fingerprint('1.0.0', {'a': [2]}, catalog, ['MB1050'])
    assert base != AnalysisCache.fingerprint('1.0.0', {'a': [1]}, catalog, ['MB1050', 'Mindbox2003'])

    catalog.write_text('{"types": []}')
    assert base != AnalysisCache.fingerprint('1.0.0', {'a': [1]}, catalog, ['MB1050'])


def test_rule_order_does_not_matter():
    first = AnalysisCache.fingerprint('1', {}, None, ['b', 'a'])
    second = AnalysisCache.fingerprint('1', {}, None, ['a', 'b'])
    assert first == second


def test_content_hash():
    assert AnalysisCache.content_hash(b'class A {}') == AnalysisCache.content_hash(b'class A {}')
    assert AnalysisCache.content_hash(b'class A {}') != AnalysisCache.content_hash(b'class B {}')
