"""Analysis engine: discovers C# sources and runs the rules on each unit."""
import codecs
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Union

from .binder import SemanticModel
from .cache import AnalysisCache
from .external_catalog import ExternalApiCatalog
from .lowering import lower_tree
from .parser import LanguageParser
from ..rules.base import AnalyzerRule, Diagnostic
from ..utils.logger import warn

DEFAULT_EXCLUDED_DIRS = frozenset({
    'bin', 'obj', '.git', '.vs', '.idea', '.vscode', 'node_modules',
    'packages', 'TestResults', '.sharplint_cache',
})


def discover_sources(paths: Iterable[Union[str, Path]], excluded_dirs: Iterable[str] = ()) -> List[Path]:
    """Collect ``.cs`` files under the given files and directories.

    Args:
        paths: Files and/or directories
        excluded_dirs: Extra directory names to skip (added to the defaults)

    Returns:
        Sorted, de-duplicated list of source files
    """
    excluded = DEFAULT_EXCLUDED_DIRS | set(excluded_dirs)
    found = set()
    for path in paths:
        path = Path(path)
        if path.is_file():
            if LanguageParser.from_file_extension(path) is not None:
                found.add(path)
            continue
        for file_path in path.rglob('*.cs'):
            relative_parts = file_path.relative_to(path).parts[:-1]
            if any(part in excluded for part in relative_parts):
                continue
            if file_path.is_file():
                found.add(file_path)
    return sorted(found)


@dataclass
class FileReport:
    """Outcome of analyzing one file."""
    path: Path
    diagnostics: List[Diagnostic] = field(default_factory=list)
    cached: bool = False
    error: Optional[str] = None


class AnalysisEngine:
    """Parses, lowers and binds one compilation unit at a time, then runs every rule."""

    def __init__(self, rules: List[AnalyzerRule], catalog: Optional[ExternalApiCatalog] = None,
                 cache: Optional[AnalysisCache] = None, fingerprint: str = ""):
        """Initialize the engine.

        Args:
            rules: Active rules
            catalog: External API catalog (defaults to the bundled one)
            cache: Optional result cache
            fingerprint: Configuration fingerprint used as part of the cache key
        """
        self.rules = rules
        self.catalog = catalog if catalog is not None else ExternalApiCatalog()
        self.cache = cache
        self.fingerprint = fingerprint
        self.parser = LanguageParser('csharp')

    def analyze_source(self, source: Union[bytes, str], path: str = "<memory>") -> List[Diagnostic]:
        """Run all rules over one in-memory compilation unit.

        Returns:
            Diagnostics sorted by (line, column, rule id)
        """
        if isinstance(source, str):
            source = source.encode('utf-8')
        if source.startswith(codecs.BOM_UTF8):
            source = source[len(codecs.BOM_UTF8):]

        tree = self.parser.parse_source(source)
        syntax_tree = lower_tree(tree, source, path)
        model = SemanticModel(syntax_tree, self.catalog)

        diagnostics = []
        for rule in self.rules:
            diagnostics.extend(rule.analyze(syntax_tree, model))
        return sorted(diagnostics, key=Diagnostic.sort_key)

    def analyze_file(self, file_path: Path) -> FileReport:
        """Analyze one file, using the cache when possible.

        Unreadable or non-UTF-8 files are skipped with a warning.
        """
        file_path = Path(file_path)
        try:
            source = file_path.read_bytes()
            source.decode('utf-8')
        except (OSError, UnicodeDecodeError) as e:
            warn(f"[AnalysisEngine] Skipping {file_path}: {e}")
            return FileReport(file_path, error=str(e))

        content_hash = AnalysisCache.content_hash(source)
        if self.cache is not None:
            cached = self.cache.get_diagnostics(file_path, content_hash, self.fingerprint)
            if cached is not None:
                return FileReport(file_path, [Diagnostic.from_dict(d) for d in cached], cached=True)

        diagnostics = self.analyze_source(source, str(file_path))

        if self.cache is not None:
            self.cache.set_diagnostics(file_path, content_hash, self.fingerprint,
                                       [d.to_dict() for d in diagnostics])
        return FileReport(file_path, diagnostics)

    def analyze_paths(self, files: Iterable[Path],
                      on_file: Optional[Callable[[FileReport], None]] = None) -> List[FileReport]:
        """Analyze files sequentially.

        Args:
            files: Source files (see ``discover_sources``)
            on_file: Called after each file, e.g. to advance a progress bar
        """
        reports = []
        for file_path in files:
            report = self.analyze_file(file_path)
            reports.append(report)
            if on_file is not None:
                on_file(report)
        return reports
